"""In-memory storage backend for tests and ephemeral sessions."""

from collections.abc import AsyncIterator

from .base import KeyValueStore


class MemoryStorage(KeyValueStore):
    """Dict-backed key-value store. Lost when the process exits."""

    def __init__(self, **config):
        super().__init__(**config)
        self._data: dict[str, bytes] = {}
        self.save_count = 0

    async def load(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def save(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)
        self.save_count += 1

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self._data

    async def list_keys(self, prefix: str = "") -> AsyncIterator[str]:
        for key in sorted(self._data):
            if key.startswith(prefix):
                yield key
