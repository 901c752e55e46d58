"""
Bounded in-memory cache for scraped accommodation pages.

The cache is an ordinary object handed to whoever needs it; capacity and the
eviction strategy are constructor arguments. Two strategies are provided:
FifoEviction drops the oldest insertion, LruEviction drops the least
recently read or written key.
"""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    cached_at: float


class FifoEviction:
    name = "fifo"

    def on_read(self, entries: "OrderedDict[str, CacheEntry]", key: str) -> None:
        return None

    def on_write(self, entries: "OrderedDict[str, CacheEntry]", key: str) -> None:
        # Re-writing a key keeps its original insertion slot
        return None


class LruEviction:
    name = "lru"

    def on_read(self, entries: "OrderedDict[str, CacheEntry]", key: str) -> None:
        entries.move_to_end(key)

    def on_write(self, entries: "OrderedDict[str, CacheEntry]", key: str) -> None:
        entries.move_to_end(key)


EVICTION_POLICIES = {
    FifoEviction.name: FifoEviction,
    LruEviction.name: LruEviction,
}


def make_eviction_policy(name: str):
    try:
        return EVICTION_POLICIES[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown cache eviction policy: {name}")


class ScrapeCache(Generic[V]):
    """Keyed cache holding at most `capacity` entries."""

    def __init__(self, capacity: int = 100, eviction=None):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        self.eviction = eviction or FifoEviction()
        self._entries: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            self.eviction.on_read(self._entries, key)
            return entry.value

    def put(self, key: str, value: V) -> None:
        if self.capacity == 0:
            return
        with self._lock:
            if key in self._entries:
                self._entries[key] = CacheEntry(value=value, cached_at=time.time())
                self.eviction.on_write(self._entries, key)
                return
            while len(self._entries) >= self.capacity:
                self._entries.popitem(last=False)
            self._entries[key] = CacheEntry(value=value, cached_at=time.time())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
