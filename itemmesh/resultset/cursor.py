"""
Result Set: Lazy Cursor over Paginated Selects

Iterates the items matching a query, one at a time, fetching pages from the
remote executor on demand and following continuation tokens transparently.

State Machine:
    UNFETCHED --next()--> FETCHING --> READY(page, position)
    READY --row available--> READY (position + 1)
    READY --page used up, token--> REFETCHING --> READY(new page, 0)
    READY --page used up, no token--> EXHAUSTED (terminal)

Per-row pipeline:
    row -> cache lookup -> hit: rehydrate cached snapshot (remote row ignored)
                        -> miss: recast from remote attributes, populate cache
                        -> backend error: log, re-raise
        -> apply overlay -> hand to caller

Draining operations (count, search, update, delete, to_list) are built only
on next(); each consumes the cursor. A result set can be iterated or
counted, not both.

Not thread-safe: a cursor mutates its page and position on every next().
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Iterator, Optional

from itemmesh.core import constants as C
from itemmesh.core.errors import CompilationError, CursorError
from itemmesh.core.types import Attributes
from itemmesh.items.record import Item
from itemmesh.observability.logging import log_context
from itemmesh.query.compiler import OrderBy, Where, compile_select, identity_scope, normalize_limit
from itemmesh.remote.protocol import Page, Row

if TYPE_CHECKING:
    from itemmesh.context import StoreContext

logger = logging.getLogger(__name__)


class CursorState(Enum):
    """Lifecycle of a result set."""
    UNFETCHED = auto()
    FETCHING = auto()
    READY = auto()
    REFETCHING = auto()
    EXHAUSTED = auto()


class ResultSet:
    """
    Lazy, cursor-driven iterator over the items of one domain.

    Args:
        context: Store context (executor, cache, registry, config)
        item_class: Nominal item type of the rows
        where: Predicate mapping, compiled on first fetch
        result: A page already fetched; used as the first page instead of
            compiling `where`. Mutually exclusive with `where`.
        order_by: Attribute name, (name, direction) pair, or list of them
        limit: Maximum rows per select
        consistent: Ask the store for a consistent read. Defaults to the
            context's configuration.
        overlay: Attribute values assigned to every yielded item

    Usage:
        rs = ResultSet(context, Planet, where={"color": "blue"}, order_by="name")
        for planet in rs:
            print(planet.name)

        blue_ringed = ResultSet(context, Planet, where={"color": "blue"}).count(
            where={"rings": [">", "0"]}
        )
    """

    __slots__ = (
        "_context", "_item_class", "_where", "_result", "_order_by", "_limit",
        "_consistent", "_overlay", "_state", "_page", "_position",
        "_pending_token", "_page_query",
    )

    def __init__(
        self,
        context: StoreContext,
        item_class: type[Item],
        where: Optional[Where] = None,
        result: Optional[Page] = None,
        order_by: Optional[OrderBy] = None,
        limit: Any = None,
        consistent: Optional[bool] = None,
        overlay: Optional[Attributes] = None,
    ) -> None:
        if where is not None and result is not None:
            raise CompilationError.conflicting_sources()

        self._context = context
        self._item_class = item_class
        self._where = where
        self._result = result
        self._order_by = order_by
        self._limit = normalize_limit(limit)
        self._consistent = context.config.consistent_reads if consistent is None else consistent
        self._overlay: Attributes = dict(overlay or {})

        self._state = CursorState.UNFETCHED
        self._page: Page = Page()
        self._position = 0
        self._pending_token: Optional[str] = None
        self._page_query: Optional[str] = None

    # -------------------------------------------------------------------------
    # INSPECTION
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def position(self) -> int:
        """Index of the next row within the current page."""
        return self._position

    @property
    def item_class(self) -> type[Item]:
        return self._item_class

    @property
    def where(self) -> Optional[Where]:
        return self._where

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def consistent(self) -> bool:
        return self._consistent

    @property
    def overlay(self) -> Attributes:
        return dict(self._overlay)

    @property
    def collection(self) -> str:
        return self._context.collection_name(self._item_class)

    def to_query(self, output: Any = None) -> str:
        """The select expression this result set fetches with."""
        return compile_select(
            self._item_class,
            self.collection,
            where=self._where,
            order_by=self._order_by,
            limit=self._limit,
            output=output,
        )

    # -------------------------------------------------------------------------
    # ITERATION
    # -------------------------------------------------------------------------

    def next(self) -> Optional[Item]:
        """
        Next item, or None at the end of the sequence.

        Once exhausted, always returns None without contacting the store.

        Raises:
            CompilationError: The query options cannot be compiled
            RemoteExecutionError: The store rejected a select
            CacheBackendError: The cache failed on lookup
            InternalInvariantError: The cache returned an impossible outcome
        """
        if self._state is CursorState.EXHAUSTED:
            return None
        if self._state is CursorState.UNFETCHED:
            self._load_first_page()
            if self._state is CursorState.EXHAUSTED:
                return None

        while self._position >= len(self._page.rows):
            if self._page.is_final:
                self._state = CursorState.EXHAUSTED
                return None
            self._fetch(self._page.next_token, CursorState.REFETCHING)

        row = self._page.rows[self._position]
        self._position += 1

        item = self._reconcile(row)
        self._apply_overlay(item)
        self._context.metrics.items_yielded.inc(domain=self.collection)
        return item

    def __iter__(self) -> Iterator[Item]:
        return self

    def __next__(self) -> Item:
        item = self.next()
        if item is None:
            raise StopIteration
        return item

    def to_list(self) -> list[Item]:
        """Drain the remaining items, honouring any iteration already done."""
        return list(self)

    # -------------------------------------------------------------------------
    # DRAINING OPERATIONS
    # -------------------------------------------------------------------------

    def _drain_identities(self) -> list[str]:
        return [item.id for item in self]

    def count(self, where: Optional[Where] = None) -> int:
        """
        Number of items in the result set. Drains the cursor.

        With `where`, asks the store to count the drained items that also
        match it; otherwise counts the drained items locally.
        """
        identities = self._drain_identities()
        if where is None:
            return len(identities)
        if not identities:
            return 0

        self._warn_if_too_many(identities, "count")
        query = compile_select(
            self._item_class,
            self.collection,
            where=identity_scope(identities, where),
            output=C.SELECT_COUNT,
        )
        metrics = self._context.metrics
        with metrics.remote_latency.time(kind="count"):
            result = self._context.executor.execute_count(query, consistent=self._consistent)
        metrics.remote_selects.inc(kind="count")
        return result.unwrap()

    def search(self, where: Optional[Where] = None) -> ResultSet:
        """
        Narrow to the drained items matching `where`. Drains the cursor.

        The new result set selects "itemName() in (...) and (where)" and keeps
        this one's consistency flag and overlay. Only suitable for small
        result sets: the store caps comparisons per select.
        """
        identities = self._drain_identities()
        if not identities:
            return ResultSet(
                self._context,
                self._item_class,
                result=Page(),
                consistent=self._consistent,
                overlay=self._overlay,
            )

        self._warn_if_too_many(identities, "search")
        return ResultSet(
            self._context,
            self._item_class,
            where=identity_scope(identities, where),
            consistent=self._consistent,
            overlay=self._overlay,
        )

    def update(self, attributes: Attributes) -> int:
        """
        Assign `attributes` to every item and persist each one. Drains the cursor.

        Not atomic: if a write fails, earlier items stay written and later
        ones are untouched. Returns the number of items written.
        """
        written = 0
        with log_context(domain=self.collection, operation="update"):
            for item in self:
                item.update(attributes).put()
                written += 1
        logger.info(f"Updated {written} items in {self.collection}")
        return written

    def delete(self) -> int:
        """
        Delete every item. Drains the cursor.

        Same partial-failure behaviour as update(). Returns the number deleted.
        """
        deleted = 0
        with log_context(domain=self.collection, operation="delete"):
            for item in self:
                item.delete()
                deleted += 1
        logger.info(f"Deleted {deleted} items from {self.collection}")
        return deleted

    def paginate(self, items_per_page: int, page_number: int = 1) -> ResultSet:
        """
        Position a fresh result set at the start of page `page_number`.

        Sets the select limit to `items_per_page` unless a limit was already
        given. For later pages, a count(*) select limited to the skipped
        rows obtains the continuation token the first real fetch starts
        from. Returns self.

        Raises:
            CursorError: The result set has already been iterated, or was
                built from a supplied page
        """
        if self._state is not CursorState.UNFETCHED:
            raise CursorError.already_started("paginate", self._state.name)
        if self._result is not None:
            raise CursorError.supplied_result("paginate")
        per_page = normalize_limit(items_per_page)
        if per_page is None:
            raise CompilationError.invalid_limit(items_per_page)
        if isinstance(page_number, bool) or not isinstance(page_number, int) or page_number < 1:
            raise CompilationError.invalid_limit(page_number)

        if self._limit is None:
            self._limit = per_page
        if page_number == 1:
            return self

        skip = per_page * (page_number - 1)
        query = compile_select(
            self._item_class,
            self.collection,
            where=self._where,
            order_by=self._order_by,
            limit=skip,
            output=C.SELECT_COUNT,
        )
        metrics = self._context.metrics
        with metrics.remote_latency.time(kind="paginate"):
            result = self._context.executor.execute(query, consistent=self._consistent)
        metrics.remote_selects.inc(kind="paginate")
        page = result.unwrap()

        if page.next_token is None:
            # fewer than `skip` rows: the requested page is empty
            self._state = CursorState.EXHAUSTED
        else:
            self._pending_token = page.next_token
        return self

    # -------------------------------------------------------------------------
    # FETCHING
    # -------------------------------------------------------------------------

    def _load_first_page(self) -> None:
        if self._result is not None:
            self._page = self._result
            self._page_query = self._result.query
            self._position = 0
            self._state = CursorState.READY
            return
        self._fetch(self._pending_token, CursorState.FETCHING)
        self._pending_token = None

    def _fetch(self, next_token: Optional[str], transition: CursorState) -> None:
        previous = self._state
        self._state = transition
        try:
            if self._page_query is None:
                self._page_query = self.to_query()
            metrics = self._context.metrics
            with metrics.remote_latency.time(kind="select"):
                result = self._context.executor.execute(
                    self._page_query,
                    next_token=next_token,
                    consistent=self._consistent,
                )
            metrics.remote_selects.inc(kind="select")
            page = result.unwrap()
        except Exception:
            self._state = previous
            raise

        logger.debug(
            f"Fetched {len(page)} rows from {self.collection} "
            f"(more={'yes' if page.next_token else 'no'})"
        )
        self._page = page
        self._position = 0
        self._state = CursorState.READY

    # -------------------------------------------------------------------------
    # PER-ROW PIPELINE
    # -------------------------------------------------------------------------

    def _reconcile(self, row: Row) -> Item:
        """Build the item for a row, preferring the cached snapshot."""
        item = self._context.lookup_cached(self._item_class, row.identity)
        if item is None:
            item = self._context.materialize(self._item_class, row.identity, row.attributes)
        return item

    def _apply_overlay(self, item: Item) -> None:
        item.update(self._overlay)

    def _warn_if_too_many(self, identities: list[str], operation: str) -> None:
        if len(identities) > C.MAX_COMPARISONS_PER_SELECT:
            logger.warning(
                f"{operation} over {len(identities)} items in {self.collection}; "
                f"the store allows {C.MAX_COMPARISONS_PER_SELECT} comparisons per select"
            )

    def __repr__(self) -> str:
        return (
            f"ResultSet({self._item_class.__name__}, state={self._state.name}, "
            f"position={self._position})"
        )
