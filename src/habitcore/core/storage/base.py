"""
Abstract base class for durable local key-value storage.

The freeze ledger, the offline mutation queue and the milestone bookkeeping
persist small JSON documents that must survive a process restart. They only
see this narrow contract, so tests can inject an in-memory store.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from loguru import logger


class KeyValueStore(ABC):
    """Async key -> bytes persistence."""

    def __init__(self, **config):
        self.config = config

    @abstractmethod
    async def load(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if the key is absent."""

    @abstractmethod
    async def save(self, key: str, data: bytes) -> None:
        """Store *data* under *key*, replacing any previous value atomically."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if deleted, False if it didn't exist."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a key exists."""

    @abstractmethod
    def list_keys(self, prefix: str = "") -> AsyncIterator[str]:
        """List keys with optional prefix filter."""

    async def load_json(self, key: str, default: Any = None) -> Any:
        """Load and decode a JSON document.

        A missing key or an undecodable document yields *default*; the latter
        is logged, since it means the stored state was lost.
        """
        raw = await self.load(key)
        if raw is None:
            return default
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Discarding unreadable document at '{key}': {e}")
            return default

    async def save_json(self, key: str, obj: Any) -> None:
        await self.save(key, json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8"))
