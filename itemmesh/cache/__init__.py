"""
Cache Module: Item snapshot caches consulted by result sets.

Backends:
- memory: InMemoryItemCache (process-local, LRU + TTL)
- redis: RedisItemCache (shared, JSON + LZ4)
"""

from __future__ import annotations

from itemmesh.core.config import CacheConfig
from itemmesh.core.errors import ConfigurationError
from itemmesh.cache.memory import InMemoryItemCache
from itemmesh.cache.protocol import CacheStats, ItemCache
from itemmesh.cache.redis_cache import RedisItemCache


def create_item_cache(config: CacheConfig) -> ItemCache:
    """Build the cache backend named by `config.backend`."""
    if config.backend == "memory":
        return InMemoryItemCache(max_entries=config.max_entries, ttl_seconds=config.ttl_seconds)
    if config.backend == "redis":
        return RedisItemCache(config.redis, ttl_seconds=config.ttl_seconds)
    raise ConfigurationError.invalid("cache.backend", f"unknown backend {config.backend!r}")


__all__ = [
    "CacheStats",
    "InMemoryItemCache",
    "ItemCache",
    "RedisItemCache",
    "create_item_cache",
]
