"""
Test Doubles: Scripted Executor, Faulty Cache and Sample Item Types

FakeExecutor answers selects from pages scripted by continuation token
(None for the first page) or by exact query, records every call, and keeps
single-item writes in a dict.
"""

from __future__ import annotations

from typing import Any, Optional

from itemmesh.cache.memory import InMemoryItemCache
from itemmesh.core.errors import CacheBackendError, CacheError, RemoteExecutionError
from itemmesh.core.types import Attributes, Err, Ok, Result
from itemmesh.items.record import Attribute, Item
from itemmesh.remote.protocol import Page, Row


# =============================================================================
# SAMPLE ITEM TYPES
# =============================================================================
class Planet(Item):
    domain_name = "planets"
    recast_using = "kind"
    attributes = {
        "name": Attribute(str),
        "color": Attribute(str),
        "kind": Attribute(str, default="planet"),
        "moons": Attribute(int, default=0),
        "status": Attribute(str, default="active"),
        "tags": Attribute(str, multi=True),
    }


class GasGiant(Planet):
    attributes = {"rings": Attribute(int, default=0)}


class Moon(Item):
    domain_name = "moons"
    attributes = {
        "name": Attribute(str),
        "habitable": Attribute(bool, default=False),
    }


def page(*rows: tuple[str, Attributes], token: Optional[str] = None) -> Page:
    """Page from (identity, attributes) pairs."""
    return Page(rows=tuple(Row(identity, dict(attrs)) for identity, attrs in rows), next_token=token)


# =============================================================================
# EXECUTOR
# =============================================================================
class FakeExecutor:
    """In-memory RemoteExecutor with scripted select pages."""

    def __init__(self, pages: Optional[dict[Optional[str], Page]] = None) -> None:
        self.pages: dict[Optional[str], Page] = dict(pages or {})
        self.query_pages: dict[str, Page] = {}
        self.count_result = 0
        self.select_error: Optional[RemoteExecutionError] = None
        self.fail_writes_for: set[str] = set()

        self.select_calls: list[tuple[str, Optional[str], bool]] = []
        self.count_calls: list[tuple[str, bool]] = []
        self.stored: dict[tuple[str, str], Attributes] = {}
        self.put_calls: list[tuple[str, str, Attributes]] = []
        self.delete_calls: list[tuple[str, str]] = []

    def execute(
        self,
        query: str,
        next_token: Optional[str] = None,
        consistent: bool = False,
    ) -> Result[Page, RemoteExecutionError]:
        self.select_calls.append((query, next_token, consistent))
        if self.select_error is not None:
            return Err(self.select_error)
        scripted = self.query_pages.get(query)
        if scripted is None:
            scripted = self.pages.get(next_token, Page())
        return Ok(Page(rows=scripted.rows, next_token=scripted.next_token, query=query))

    def execute_count(self, query: str, consistent: bool = False) -> Result[int, RemoteExecutionError]:
        self.count_calls.append((query, consistent))
        if self.select_error is not None:
            return Err(self.select_error)
        return Ok(self.count_result)

    def get_attributes(
        self,
        domain: str,
        identity: str,
        consistent: bool = False,
    ) -> Result[Optional[Attributes], RemoteExecutionError]:
        stored = self.stored.get((domain, identity))
        return Ok(dict(stored) if stored is not None else None)

    def put_attributes(self, domain: str, identity: str, attributes: Attributes) -> Result[None, RemoteExecutionError]:
        if identity in self.fail_writes_for:
            return Err(RemoteExecutionError.write_failed("PutAttributes", domain, identity))
        self.put_calls.append((domain, identity, dict(attributes)))
        self.stored[(domain, identity)] = {k: v for k, v in attributes.items() if v is not None}
        return Ok(None)

    def delete_attributes(self, domain: str, identity: str) -> Result[None, RemoteExecutionError]:
        if identity in self.fail_writes_for:
            return Err(RemoteExecutionError.write_failed("DeleteAttributes", domain, identity))
        self.delete_calls.append((domain, identity))
        self.stored.pop((domain, identity), None)
        return Ok(None)


# =============================================================================
# CACHE
# =============================================================================
class FaultyCache(InMemoryItemCache):
    """In-memory cache whose lookups or writes can be made to misbehave."""

    def __init__(self) -> None:
        super().__init__(max_entries=1000, ttl_seconds=None)
        self.get_fails = False
        self.set_fails = False
        self.get_returns_none = False

    def get(self, collection: str, identity: str) -> Result[Attributes, CacheError]:
        if self.get_fails:
            return Err(CacheBackendError.backend_failure("get", collection, identity))
        if self.get_returns_none:
            return Ok(None)  # type: ignore[arg-type]
        return super().get(collection, identity)

    def set(self, collection: str, identity: str, attributes: Attributes) -> Result[None, CacheError]:
        if self.set_fails:
            return Err(CacheBackendError.backend_failure("set", collection, identity))
        return super().set(collection, identity, attributes)


class FakeRedis:
    """Dict-backed stand-in for the redis.Redis calls the cache makes."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}
        self.error: Optional[Exception] = None

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    def get(self, key: str) -> Optional[bytes]:
        self._check()
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> bool:
        self._check()
        self.data[key] = value
        return True

    def setex(self, key: str, ttl: int, value: bytes) -> bool:
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def scan_iter(self, match: str = "*", count: Any = None):
        self._check()
        prefix = match.rstrip("*")
        return iter([key for key in list(self.data) if key.startswith(prefix)])
