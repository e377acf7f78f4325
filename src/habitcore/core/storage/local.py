"""
Filesystem store: one file per key below a root directory.

A save writes ``<file>.tmp`` first and renames it over the target, so a crash
mid-write leaves the previous document readable.
"""

from collections.abc import AsyncIterator
from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os
from loguru import logger

from habitcore.core.exceptions import StoragePermissionError

from .base import KeyValueStore

_PARTIAL = ".tmp"


class LocalStorage(KeyValueStore):
    """Key-value store on the local filesystem.

    Keys are ``/``-separated relative paths (``milestones/achieved.json``).
    Anything that could resolve outside ``base_path`` is refused with
    StoragePermissionError.
    """

    def __init__(self, base_path: str = "~/.habitcore-data/storage", **config):
        super().__init__(**config)
        self.root = Path(base_path).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        cleaned = key.strip()
        if not cleaned or "\x00" in cleaned or "\\" in cleaned:
            raise StoragePermissionError(f"Invalid storage key {key!r}")
        relative = PurePosixPath(cleaned)
        if relative.is_absolute() or cleaned.startswith("~"):
            raise StoragePermissionError(f"Storage key {key!r} must be relative")
        target = (self.root / relative).resolve()
        if not target.is_relative_to(self.root):
            raise StoragePermissionError(f"Storage key {key!r} escapes {self.root}")
        return target

    async def load(self, key: str) -> bytes | None:
        target = self._path_for(key)
        if not target.is_file():
            return None
        try:
            async with aiofiles.open(target, "rb") as fh:
                return await fh.read()
        except PermissionError as e:
            raise StoragePermissionError(f"Cannot read {target}: {e}") from e

    async def save(self, key: str, data: bytes) -> None:
        target = self._path_for(key)
        partial = target.with_name(target.name + _PARTIAL)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(partial, "wb") as fh:
                await fh.write(data)
            await aiofiles.os.replace(partial, target)
        except PermissionError as e:
            raise StoragePermissionError(f"Cannot write {target}: {e}") from e
        logger.debug(f"Stored {len(data)} bytes under {key!r}")

    async def delete(self, key: str) -> bool:
        target = self._path_for(key)
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            return False
        return True

    async def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    async def list_keys(self, prefix: str = "") -> AsyncIterator[str]:
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or path.name.endswith(_PARTIAL):
                continue
            key = path.relative_to(self.root).as_posix()
            if key.startswith(prefix):
                yield key
