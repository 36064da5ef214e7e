"""
In-memory TTL cache bounded by entry count.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """
    TTL + capacity bounded cache.

    Entries expire ttl_seconds after their last write or read. When full, the
    least recently used entry is evicted. Single event loop only; no locking.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 500, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[K, tuple[float, V]] = OrderedDict()

    def get(self, key: K) -> V | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        now = self._clock()
        if now >= expires_at:
            del self._store[key]
            return None
        self._store[key] = (now + self.ttl_seconds, value)
        self._store.move_to_end(key)
        return value

    def set(self, key: K, value: V) -> None:
        self._store[key] = (self._clock() + self.ttl_seconds, value)
        self._store.move_to_end(key)
        self._purge()

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: object) -> bool:
        entry = self._store.get(key)  # type: ignore[arg-type]
        return entry is not None and self._clock() < entry[0]

    def __len__(self) -> int:
        self._purge()
        return len(self._store)

    def _purge(self) -> None:
        now = self._clock()
        for key in [key for key, (expires_at, _) in self._store.items() if now >= expires_at]:
            del self._store[key]
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)
