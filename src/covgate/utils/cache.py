"""Caching primitives for parsed syntax trees."""

from __future__ import annotations

import hashlib
import threading
from typing import Generic, TypeVar

_T = TypeVar("_T")


class MemoryCache(Generic[_T]):
    """In-memory LRU cache.

    Recency is tracked through dict insertion order (delete and re-insert on
    every hit). All operations hold an internal lock, so one instance may be
    shared by a threaded lint host.

    Args:
        max_size: Maximum number of entries before LRU eviction.
    """

    def __init__(self, max_size: int = 256) -> None:
        self._max_size = max_size
        self._store: dict[str, _T] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> _T | None:
        """Return the cached value, or ``None`` if missing."""
        with self._lock:
            if key not in self._store:
                return None
            value = self._store.pop(key)
            self._store[key] = value
            return value

    def put(self, key: str, value: _T) -> None:
        """Store a value, evicting the least recently used entry if at capacity."""
        with self._lock:
            if key in self._store:
                del self._store[key]
            elif len(self._store) >= self._max_size:
                oldest = next(iter(self._store))
                del self._store[oldest]
            self._store[key] = value

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)


def content_hash(data: bytes) -> str:
    """Compute a stable 16-char hex hash for *data*."""
    return hashlib.sha256(data).hexdigest()[:16]
