"""
Domain: Entry Point for Querying and Writing One Item Type

    planets = Domain(context, Planet)
    earth = planets.insert({"name": "Earth", "color": "blue"}, identity="earth")
    planets.find("earth")
    planets.search(where={"color": "blue"}, order_by="name", limit=10)
    planets.count(where={"moons": [">", "1"]})
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from itemmesh.context import StoreContext
from itemmesh.core import constants as C
from itemmesh.core.types import Attributes
from itemmesh.items.record import Item
from itemmesh.query.compiler import OrderBy, Where, compile_select
from itemmesh.resultset.cursor import ResultSet

logger = logging.getLogger(__name__)


class Domain:
    """Queries and writes for the items of one type."""

    __slots__ = ("_context", "_item_class")

    def __init__(self, context: StoreContext, item_class: type[Item]) -> None:
        self._context = context
        self._item_class = item_class

    @property
    def name(self) -> str:
        return self._context.collection_name(self._item_class)

    @property
    def item_class(self) -> type[Item]:
        return self._item_class

    def _consistent(self, consistent: Optional[bool]) -> bool:
        return self._context.config.consistent_reads if consistent is None else consistent

    def search(
        self,
        where: Optional[Where] = None,
        order_by: Optional[OrderBy] = None,
        limit: Any = None,
        consistent: Optional[bool] = None,
        overlay: Optional[Attributes] = None,
    ) -> ResultSet:
        """Lazy result set of matching items; nothing is fetched yet."""
        return ResultSet(
            self._context,
            self._item_class,
            where=where,
            order_by=order_by,
            limit=limit,
            consistent=consistent,
            overlay=overlay,
        )

    def find(self, identity: str, consistent: Optional[bool] = None) -> Optional[Item]:
        """
        Fetch one item by identity: cache first, then the store.

        A store hit populates the cache. Returns None when the item does
        not exist.
        """
        context = self._context
        cached = context.lookup_cached(self._item_class, identity)
        if cached is not None:
            return cached

        raw = context.executor.get_attributes(
            self.name, identity, consistent=self._consistent(consistent),
        ).unwrap()
        if raw is None:
            logger.debug(f"{self.name}/{identity} not found")
            return None
        return context.materialize(self._item_class, identity, raw)

    def insert(self, attributes: Attributes, identity: Optional[str] = None) -> Item:
        """Create and save an item; the recast attribute picks its type."""
        registry = self._context.registry
        concrete = registry.resolve_type(self._item_class, attributes)
        unknown = set(attributes) - set(concrete.attributes)
        if unknown:
            raise TypeError(f"{concrete.__name__} has no attributes {sorted(unknown)}")
        item = registry.instantiate(concrete, identity or uuid.uuid4().hex, attributes, self._context)
        return item.put()

    def count(self, where: Optional[Where] = None, consistent: Optional[bool] = None) -> int:
        """Count matching items with a single count(*) select."""
        query = compile_select(self._item_class, self.name, where=where, output=C.SELECT_COUNT)
        metrics = self._context.metrics
        with metrics.remote_latency.time(kind="count"):
            result = self._context.executor.execute_count(query, consistent=self._consistent(consistent))
        metrics.remote_selects.inc(kind="count")
        return result.unwrap()

    def __repr__(self) -> str:
        return f"Domain({self._item_class.__name__}, name={self.name!r})"
