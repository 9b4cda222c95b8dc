"""
Item Cache Protocol

Contract for the keyed snapshot store consulted before every row is turned
into an item. Keys are (collection, identity); values are attribute
snapshots as produced by Item.to_attributes().

Outcome model (every method returns Result, never raises):
    get -> Ok(snapshot)            hit
        -> Err(CacheMiss)          clean miss
        -> Err(CacheBackendError)  backend unreachable / corrupted entry

A miss is never reported as Ok(None); callers treat that as a broken
backend.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from itemmesh.core.errors import CacheError
from itemmesh.core.types import Attributes, Result


# =============================================================================
# CACHE STATISTICS
# =============================================================================
@dataclass
class CacheStats:
    """Cache performance statistics."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0
    errors: int = 0
    entry_count: int = 0

    @property
    def hit_rate(self) -> float:
        """Cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


# =============================================================================
# PROTOCOL
# =============================================================================
@runtime_checkable
class ItemCache(Protocol):
    """
    Keyed snapshot cache shared by every result set of a process.

    Implementations must be safe to call from several threads; a single
    get/set/delete is atomic per key.
    """

    @abstractmethod
    def get(self, collection: str, identity: str) -> Result[Attributes, CacheError]:
        """Fetch a snapshot. Err(CacheMiss) when absent or expired."""
        ...

    @abstractmethod
    def set(self, collection: str, identity: str, attributes: Attributes) -> Result[None, CacheError]:
        """Store a snapshot, replacing any existing entry."""
        ...

    @abstractmethod
    def delete(self, collection: str, identity: str) -> Result[bool, CacheError]:
        """Drop an entry. Ok(True) if one existed."""
        ...

    @abstractmethod
    def flush(self) -> Result[int, CacheError]:
        """Drop every entry. Returns the number removed."""
        ...
