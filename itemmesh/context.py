"""
Store Context: Wiring of Executor, Cache, Registry and Configuration

One StoreContext is shared by every result set and item of an application.
It resolves collection names (domain prefix + item domain name) and
persists single items, keeping the cache in step with each write:

    save_item:   PutAttributes   -> cache.set(snapshot)
    remove_item: DeleteAttributes -> cache.delete

It also owns cache reconciliation for rows read from the store: a cached
snapshot wins over the remote row, and a miss recasts the row and
populates the cache (lookup_cached, then materialize).

A cache write that fails after a successful remote write is raised: a
stale snapshot would otherwise keep winning over the stored item.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Optional

from itemmesh.cache import ItemCache, InMemoryItemCache, create_item_cache
from itemmesh.core.config import ItemMeshConfig
from itemmesh.core.errors import CacheError, InternalInvariantError
from itemmesh.core.types import Attributes
from itemmesh.items.record import Item
from itemmesh.items.registry import RecastRegistry, default_registry
from itemmesh.observability.metrics import MetricsCollector
from itemmesh.remote.protocol import RemoteExecutor
from itemmesh.remote.simpledb import SimpleDBExecutor

if TYPE_CHECKING:
    from itemmesh.domain import Domain

logger = logging.getLogger(__name__)


class StoreContext:
    """
    Shared collaborators for result sets and items.

    Usage:
        context = StoreContext(SimpleDBExecutor.from_config(config.remote))
        planets = context.domain(Planet)
        for planet in planets.search(where={"color": "blue"}):
            ...
    """

    __slots__ = ("_executor", "_cache", "_registry", "_config", "_metrics")

    def __init__(
        self,
        executor: RemoteExecutor,
        cache: Optional[ItemCache] = None,
        registry: Optional[RecastRegistry] = None,
        config: Optional[ItemMeshConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._config = config or ItemMeshConfig()
        self._executor = executor
        self._cache = cache if cache is not None else InMemoryItemCache(
            max_entries=self._config.cache.max_entries,
            ttl_seconds=self._config.cache.ttl_seconds,
        )
        self._registry = registry or default_registry
        if metrics is None:
            # a private collector keeps disabled metrics out of the export
            enabled = self._config.observability.metrics_enabled
            metrics = MetricsCollector.get_instance() if enabled else MetricsCollector()
        self._metrics = metrics

    @classmethod
    def from_config(
        cls,
        config: ItemMeshConfig,
        registry: Optional[RecastRegistry] = None,
    ) -> StoreContext:
        """Build the SimpleDB executor and configured cache backend."""
        config.validate().unwrap()
        return cls(
            executor=SimpleDBExecutor.from_config(config.remote),
            cache=create_item_cache(config.cache),
            registry=registry,
            config=config,
        )

    @property
    def executor(self) -> RemoteExecutor:
        return self._executor

    @property
    def cache(self) -> ItemCache:
        return self._cache

    @property
    def registry(self) -> RecastRegistry:
        return self._registry

    @property
    def config(self) -> ItemMeshConfig:
        return self._config

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def collection_name(self, item_class: type[Item]) -> str:
        """Remote domain of `item_class`, with the configured prefix."""
        if not item_class.domain_name:
            raise ValueError(f"{item_class.__name__} does not declare domain_name")
        return f"{self._config.domain_prefix}{item_class.domain_name}"

    def domain(self, item_class: type[Item]) -> Domain:
        from itemmesh.domain import Domain
        return Domain(self, item_class)

    # -------------------------------------------------------------------------
    # ITEM PERSISTENCE
    # -------------------------------------------------------------------------

    def save_item(self, item: Item) -> None:
        """Write `item` to the store, then refresh its cache entry."""
        if item.id is None:
            item.id = uuid.uuid4().hex
        collection = self.collection_name(type(item))

        self._executor.put_attributes(collection, item.id, item.to_wire()).unwrap()

        written = self._cache.set(collection, item.id, item.to_attributes())
        if written.is_err():
            logger.warning(f"Cache refresh failed after saving {collection}/{item.id}: {written.error}")
            written.unwrap()
        item.bind(self)

    def remove_item(self, item: Item) -> None:
        """Delete `item` from the store, then drop its cache entry."""
        if item.id is None:
            raise ValueError(f"Cannot delete an unsaved {type(item).__name__}")
        collection = self.collection_name(type(item))

        self._executor.delete_attributes(collection, item.id).unwrap()

        dropped = self._cache.delete(collection, item.id)
        if dropped.is_err():
            logger.warning(f"Cache eviction failed after deleting {collection}/{item.id}: {dropped.error}")
            dropped.unwrap()

    # -------------------------------------------------------------------------
    # CACHE RECONCILIATION
    # -------------------------------------------------------------------------

    def lookup_cached(self, item_class: type[Item], identity: str) -> Optional[Item]:
        """
        Item rebuilt from its cached snapshot, or None on a cache miss.

        A cached snapshot wins over whatever the store returned for the row.

        Raises:
            CacheBackendError: The cache failed on lookup
            InternalInvariantError: The cache reported neither a hit nor a miss
        """
        collection = self.collection_name(item_class)
        outcome = self._cache.get(collection, identity)

        if outcome.is_ok():
            snapshot = outcome.unwrap()
            if snapshot is None:
                raise InternalInvariantError.reconciliation(
                    collection, identity, "lookup succeeded without a value",
                )
            self._metrics.cache_lookups.inc(outcome="hit")
            return self._registry.from_snapshot(item_class, identity, snapshot, self)

        error = outcome.error
        if isinstance(error, CacheError) and error.is_miss:
            self._metrics.cache_lookups.inc(outcome="miss")
            return None

        if isinstance(error, CacheError):
            self._metrics.cache_lookups.inc(outcome="error")
            logger.warning(f"Cache lookup failed for {collection}/{identity}: {error}")
            raise error

        raise InternalInvariantError.reconciliation(collection, identity, repr(outcome))

    def materialize(self, item_class: type[Item], identity: str, raw: Attributes) -> Item:
        """
        Recast raw store attributes into an item and populate the cache.

        A failed cache write is logged and counted; the item is still returned.
        """
        collection = self.collection_name(item_class)
        item = self._registry.from_remote(item_class, identity, raw, self)
        written = self._cache.set(collection, identity, item.to_attributes())
        if written.is_err():
            logger.debug(f"Cache population failed for {collection}/{identity}: {written.error}")
            self._metrics.cache_write_failures.inc()
        return item
