"""
In-Memory Item Cache

Process-local ItemCache:
- O(1) get/set via an OrderedDict kept in LRU order
- TTL-based expiration checked lazily on access
- Capacity-bounded; least recently used entries are evicted first
- Snapshots are deep-copied in and out, so callers cannot mutate entries

Thread-safe: every operation holds one threading.Lock, which gives the
per-key atomicity result sets rely on.
"""

from __future__ import annotations

import copy
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from itemmesh.core import constants as C
from itemmesh.core.errors import CacheError, CacheMiss
from itemmesh.core.types import Attributes, Err, Ok, Result, Timestamp
from itemmesh.cache.protocol import CacheStats


@dataclass(slots=True)
class _Entry:
    attributes: Attributes
    expires_at: Optional[Timestamp]

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at.is_past()


class InMemoryItemCache:
    """
    LRU + TTL snapshot cache.

    Usage:
        cache = InMemoryItemCache(max_entries=10_000, ttl_seconds=300)
        cache.set("planets", "earth", {"name": "Earth"})
        cache.get("planets", "earth").unwrap()   # {"name": "Earth"}

    A ttl_seconds of 0 or None keeps entries until evicted.
    """

    __slots__ = ("_store", "_max_entries", "_ttl_seconds", "_stats", "_lock")

    def __init__(
        self,
        max_entries: int = C.CACHE_DEFAULT_MAX_ENTRIES,
        ttl_seconds: Optional[float] = C.CACHE_DEFAULT_TTL_S,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._store: OrderedDict[tuple[str, str], _Entry] = OrderedDict()
        self._max_entries = max_entries
        self._ttl_seconds = ttl_seconds or None
        self._stats = CacheStats()
        self._lock = threading.Lock()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def get(self, collection: str, identity: str) -> Result[Attributes, CacheError]:
        key = (collection, identity)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._stats.misses += 1
                return Err(CacheMiss.for_key(collection, identity))

            if entry.is_expired:
                del self._store[key]
                self._stats.expirations += 1
                self._stats.misses += 1
                self._stats.entry_count = len(self._store)
                return Err(CacheMiss.for_key(collection, identity))

            self._store.move_to_end(key)
            self._stats.hits += 1
            return Ok(copy.deepcopy(entry.attributes))

    def set(self, collection: str, identity: str, attributes: Attributes) -> Result[None, CacheError]:
        key = (collection, identity)
        expires_at = Timestamp.now().plus_seconds(self._ttl_seconds) if self._ttl_seconds else None
        entry = _Entry(attributes=copy.deepcopy(attributes), expires_at=expires_at)

        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = entry

            # Evict LRU entries over capacity
            while len(self._store) > self._max_entries:
                self._store.popitem(last=False)
                self._stats.evictions += 1

            self._stats.entry_count = len(self._store)
        return Ok(None)

    def delete(self, collection: str, identity: str) -> Result[bool, CacheError]:
        with self._lock:
            removed = self._store.pop((collection, identity), None) is not None
            self._stats.entry_count = len(self._store)
        return Ok(removed)

    def flush(self) -> Result[int, CacheError]:
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._stats.entry_count = 0
        return Ok(count)

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count removed."""
        with self._lock:
            expired = [key for key, entry in self._store.items() if entry.is_expired]
            for key in expired:
                del self._store[key]
            self._stats.expirations += len(expired)
            self._stats.entry_count = len(self._store)
        return len(expired)
