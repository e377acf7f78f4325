"""
In-memory read cache with per-entry TTL expiry.

Keeps remote reads from being repeated within a session. Entries are purged
lazily: the lookup that finds an expired entry also evicts it, so no stale
read ever survives a single ``get``. Nothing here is durable, and the cache is
never a source of truth.

Keys are plain strings namespaced by prefix (``routine_items:<user>``,
``day_color:<user>:<date>``) so that ``clear(prefix)`` can drop one family of
derived views without touching unrelated reads.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from loguru import logger

T = TypeVar("T")

_MISSING: Any = object()

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its insertion time and TTL (seconds)."""

    value: T
    inserted_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.inserted_at <= self.ttl


class ClientCache:
    """TTL-keyed in-memory cache.

    Args:
        clock: Returns the current time in seconds. Defaults to
            ``time.monotonic``; tests inject a fake clock.
        default_ttl: TTL used when ``set`` is called without one.
    """

    def __init__(self, clock: Clock | None = None, default_ttl: float = 300.0):
        self._clock = clock or time.monotonic
        self.default_ttl = default_ttl
        self._entries: dict[str, CacheEntry[Any]] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or *default* if missing or expired.

        A cached ``None`` is a hit; pass a sentinel as *default* to tell the two apart.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store *value* under *key* for *ttl* seconds."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl=ttl)

    def clear(self, prefix: str | None = None) -> int:
        """Drop every entry, or only those whose key starts with *prefix*.

        Returns the number of entries removed.
        """
        if not prefix:
            removed = len(self._entries)
            self._entries.clear()
        else:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
            removed = len(doomed)
        if removed:
            logger.debug(f"Cache cleared {removed} entr{'y' if removed == 1 else 'ies'} (prefix={prefix!r})")
        return removed

    def size(self) -> int:
        """Number of stored entries, including ones not yet found expired."""
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]], ttl: float | None = None) -> T:
        """Return the cached value for *key*, awaiting *loader* on a miss.

        Loader exceptions propagate and nothing is cached for the key.
        """
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = await loader()
        self.set(key, value, ttl)
        return value
