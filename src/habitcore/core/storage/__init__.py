"""
Durable local storage for habitcore.

A narrow async key -> bytes contract with a local filesystem backend and an
in-memory backend for tests.
"""

from habitcore.core.exceptions import StorageError, StoragePermissionError

from .base import KeyValueStore
from .local import LocalStorage
from .memory import MemoryStorage

__all__ = [
    "KeyValueStore",
    "LocalStorage",
    "MemoryStorage",
    "StorageError",
    "StoragePermissionError",
]
