"""
Redis Item Cache

ItemCache backed by Redis (or any wire-compatible server such as Valkey).

Key Schema:
    {prefix}{collection}:{identity}  ->  flag byte + JSON snapshot

Value Encoding:
    byte 0       0x00 raw JSON, 0x01 LZ4-frame-compressed JSON
    bytes 1..    payload

Snapshots larger than the configured threshold are compressed. Entries are
written with SETEX so Redis expires them; a ttl of 0 writes with plain SET.

Any redis.RedisError maps to CacheBackendError, never to a miss.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import lz4.frame
import redis
from redis.exceptions import RedisError

from itemmesh.core import constants as C
from itemmesh.core.config import RedisCacheConfig
from itemmesh.core.errors import CacheBackendError, CacheError, CacheMiss
from itemmesh.core.types import Attributes, Err, Ok, Result
from itemmesh.cache.protocol import CacheStats

logger = logging.getLogger(__name__)

FLAG_RAW: int = 0x00
FLAG_LZ4: int = 0x01


def encode_snapshot(attributes: Attributes, threshold: int) -> bytes:
    payload = json.dumps(attributes, separators=(",", ":"), sort_keys=True).encode("utf-8")
    if len(payload) >= threshold:
        return bytes([FLAG_LZ4]) + lz4.frame.compress(payload)
    return bytes([FLAG_RAW]) + payload


def decode_snapshot(data: bytes) -> Attributes:
    if not data:
        raise ValueError("empty cache entry")
    flag, payload = data[0], data[1:]
    if flag == FLAG_LZ4:
        payload = lz4.frame.decompress(payload)
    elif flag != FLAG_RAW:
        raise ValueError(f"unknown cache entry flag {flag:#04x}")
    snapshot = json.loads(payload.decode("utf-8"))
    if not isinstance(snapshot, dict):
        raise ValueError("cache entry is not an attribute map")
    return snapshot


class RedisItemCache:
    """
    Shared snapshot cache over Redis.

    Usage:
        cache = RedisItemCache(RedisCacheConfig(host="cache.internal"))
        cache.set("planets", "earth", {"name": "Earth"})

    A pre-built client may be injected (tests, connection pools).
    """

    __slots__ = ("_config", "_client", "_ttl_seconds", "_stats")

    def __init__(
        self,
        config: Optional[RedisCacheConfig] = None,
        ttl_seconds: int = C.CACHE_DEFAULT_TTL_S,
        client: Any = None,
    ) -> None:
        self._config = config or RedisCacheConfig()
        self._client = client if client is not None else redis.Redis(**self._config.get_connection_kwargs())
        self._ttl_seconds = ttl_seconds
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def _key(self, collection: str, identity: str) -> str:
        return f"{self._config.key_prefix}{collection}:{identity}"

    def _backend_error(
        self,
        operation: str,
        collection: str,
        identity: str,
        error: Exception,
    ) -> Err[CacheError]:
        self._stats.errors += 1
        return Err(CacheBackendError.backend_failure(operation, collection, identity, cause=error))

    def get(self, collection: str, identity: str) -> Result[Attributes, CacheError]:
        try:
            data = self._client.get(self._key(collection, identity))
        except RedisError as e:
            return self._backend_error("get", collection, identity, e)

        if data is None:
            self._stats.misses += 1
            return Err(CacheMiss.for_key(collection, identity))

        try:
            snapshot = decode_snapshot(data)
        except (ValueError, RuntimeError) as e:
            # json.JSONDecodeError is a ValueError; lz4 raises RuntimeError
            self._stats.errors += 1
            return Err(CacheBackendError.serialization(collection, identity, cause=e))

        self._stats.hits += 1
        return Ok(snapshot)

    def set(self, collection: str, identity: str, attributes: Attributes) -> Result[None, CacheError]:
        try:
            data = encode_snapshot(attributes, self._config.compression_threshold_bytes)
        except (TypeError, ValueError) as e:
            self._stats.errors += 1
            return Err(CacheBackendError.serialization(collection, identity, cause=e))

        key = self._key(collection, identity)
        try:
            if self._ttl_seconds:
                self._client.setex(key, self._ttl_seconds, data)
            else:
                self._client.set(key, data)
        except RedisError as e:
            return self._backend_error("set", collection, identity, e)
        return Ok(None)

    def delete(self, collection: str, identity: str) -> Result[bool, CacheError]:
        try:
            removed = self._client.delete(self._key(collection, identity))
        except RedisError as e:
            return self._backend_error("delete", collection, identity, e)
        return Ok(bool(removed))

    def flush(self) -> Result[int, CacheError]:
        """Delete every key under this cache's prefix."""
        removed = 0
        try:
            batch: list[Any] = []
            for key in self._client.scan_iter(match=f"{self._config.key_prefix}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    removed += self._client.delete(*batch)
                    batch.clear()
            if batch:
                removed += self._client.delete(*batch)
        except RedisError as e:
            return self._backend_error("flush", "*", "*", e)
        logger.info(f"Flushed {removed} cache entries under {self._config.key_prefix!r}")
        return Ok(removed)
