"""
Configuration Management for the Item Mesh Data-Access Layer

Provides validated configuration with sensible defaults.
Supports environment variable overrides (prefix ITEMMESH_).

Design:
- Immutable after construction (frozen dataclasses)
- Fail-fast on invalid configuration via validate()
- from_env() returns a Result instead of raising
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional

from itemmesh.core import constants as C
from itemmesh.core.errors import ConfigurationError
from itemmesh.core.types import Err, Ok, Result

ENV_PREFIX = "ITEMMESH_"


def _env(key: str, default: str = "") -> str:
    return os.getenv(f"{ENV_PREFIX}{key}", default)


def _env_int(key: str, default: int) -> int:
    return int(_env(key, str(default)))


def _env_bool(key: str, default: bool) -> bool:
    value = _env(key, "")
    if value == "":
        return default
    return value.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RemoteConfig:
    """Remote attribute store (SimpleDB API) connection configuration."""

    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key: str = ""
    secret_key: str = ""
    connect_timeout_ms: int = C.REMOTE_CONNECT_TIMEOUT_MS
    read_timeout_ms: int = C.REMOTE_READ_TIMEOUT_MS
    max_retries: int = C.RETRY_MAX_ATTEMPTS
    retry_base_ms: int = C.RETRY_BASE_MS

    def get_client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for the boto3 client constructor (sans config)."""
        kwargs: dict[str, Any] = {"region_name": self.region}
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.access_key:
            kwargs["aws_access_key_id"] = self.access_key
            kwargs["aws_secret_access_key"] = self.secret_key
        return kwargs


@dataclass(frozen=True)
class RedisCacheConfig:
    """Redis/Valkey cache connection configuration."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    ssl: bool = False
    key_prefix: str = C.CACHE_KEY_PREFIX
    socket_timeout_ms: int = 1000
    connect_timeout_ms: int = 1000
    compression_threshold_bytes: int = C.CACHE_COMPRESSION_THRESHOLD_BYTES

    def get_connection_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for redis.Redis."""
        return {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "password": self.password,
            "ssl": self.ssl,
            "socket_timeout": self.socket_timeout_ms / 1000,
            "socket_connect_timeout": self.connect_timeout_ms / 1000,
            "decode_responses": False,
        }


@dataclass(frozen=True)
class CacheConfig:
    """Item cache configuration."""

    backend: str = "memory"  # "memory" or "redis"
    max_entries: int = C.CACHE_DEFAULT_MAX_ENTRIES
    ttl_seconds: int = C.CACHE_DEFAULT_TTL_S
    redis: RedisCacheConfig = field(default_factory=RedisCacheConfig)


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging and metrics configuration."""

    log_level: str = "INFO"
    log_json: bool = True
    metrics_enabled: bool = True


@dataclass(frozen=True)
class ItemMeshConfig:
    """Root configuration."""

    domain_prefix: str = ""
    consistent_reads: bool = False
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> Result[ItemMeshConfig, ConfigurationError]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with ITEMMESH_.
        Example: ITEMMESH_DOMAIN_PREFIX, ITEMMESH_CACHE_BACKEND,
        ITEMMESH_REDIS_HOST, ITEMMESH_REMOTE_REGION
        """
        try:
            remote = RemoteConfig(
                region=_env("REMOTE_REGION", "us-east-1"),
                endpoint_url=_env("REMOTE_ENDPOINT_URL") or None,
                access_key=_env("REMOTE_ACCESS_KEY"),
                secret_key=_env("REMOTE_SECRET_KEY"),
                max_retries=_env_int("REMOTE_MAX_RETRIES", C.RETRY_MAX_ATTEMPTS),
            )

            redis = RedisCacheConfig(
                host=_env("REDIS_HOST", "localhost"),
                port=_env_int("REDIS_PORT", 6379),
                db=_env_int("REDIS_DB", 0),
                password=_env("REDIS_PASSWORD") or None,
                ssl=_env_bool("REDIS_SSL", False),
                key_prefix=_env("REDIS_KEY_PREFIX", C.CACHE_KEY_PREFIX),
            )

            cache = CacheConfig(
                backend=_env("CACHE_BACKEND", "memory"),
                max_entries=_env_int("CACHE_MAX_ENTRIES", C.CACHE_DEFAULT_MAX_ENTRIES),
                ttl_seconds=_env_int("CACHE_TTL_SECONDS", C.CACHE_DEFAULT_TTL_S),
                redis=redis,
            )

            observability = ObservabilityConfig(
                log_level=_env("LOG_LEVEL", "INFO").upper(),
                log_json=_env_bool("LOG_JSON", True),
                metrics_enabled=_env_bool("METRICS_ENABLED", True),
            )

            return Ok(cls(
                domain_prefix=_env("DOMAIN_PREFIX"),
                consistent_reads=_env_bool("CONSISTENT_READS", False),
                remote=remote,
                cache=cache,
                observability=observability,
            ))
        except (ValueError, TypeError) as e:
            return Err(ConfigurationError.invalid("environment", str(e)))

    def validate(self) -> Result[None, ConfigurationError]:
        """Validate configuration invariants."""
        if self.cache.backend not in ("memory", "redis"):
            return Err(ConfigurationError.invalid(
                "cache.backend", f"unknown backend {self.cache.backend!r}",
            ))
        if self.cache.max_entries < 1:
            return Err(ConfigurationError.invalid("cache.max_entries", "must be >= 1"))
        if self.cache.ttl_seconds < 0:
            return Err(ConfigurationError.invalid("cache.ttl_seconds", "must be >= 0"))
        if not 1 <= self.cache.redis.port <= 65535:
            return Err(ConfigurationError.invalid("cache.redis.port", "must be in 1-65535"))
        if self.remote.max_retries < 0:
            return Err(ConfigurationError.invalid("remote.max_retries", "must be >= 0"))
        if self.observability.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return Err(ConfigurationError.invalid(
                "observability.log_level", f"unknown level {self.observability.log_level!r}",
            ))
        return Ok(None)
