"""
Remote Executor Protocol: Boundary to the Attribute Store

Structural subtyping protocol (PEP 544) for the store that answers select
expressions page by page, plus the single-item reads and writes that item
persistence needs.

All methods return Result[T, RemoteExecutionError]; transport, signing,
retries and timeouts belong to the implementation.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from itemmesh.core.errors import RemoteExecutionError
from itemmesh.core.types import Attributes, Result


# =============================================================================
# PAGE MODEL
# =============================================================================
@dataclass(frozen=True, slots=True)
class Row:
    """One item of a select page: identity plus raw attribute map."""
    identity: str
    attributes: Attributes = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Page:
    """
    One page of a select result.

    A page without a continuation token is the final page; an empty page
    that still carries a token is not. `query` records the select that
    produced the page so continuation can be requested for it.
    """
    rows: tuple[Row, ...] = ()
    next_token: Optional[str] = None
    query: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.next_token is None

    def __len__(self) -> int:
        return len(self.rows)


# =============================================================================
# EXECUTOR PROTOCOL
# =============================================================================
@runtime_checkable
class RemoteExecutor(Protocol):
    """Synchronous, blocking access to the remote store."""

    @abstractmethod
    def execute(
        self,
        query: str,
        next_token: Optional[str] = None,
        consistent: bool = False,
    ) -> Result[Page, RemoteExecutionError]:
        """Run a select, resuming at `next_token` when given."""
        ...

    @abstractmethod
    def execute_count(
        self,
        query: str,
        consistent: bool = False,
    ) -> Result[int, RemoteExecutionError]:
        """Run a `select count(*)` and return the scalar."""
        ...

    @abstractmethod
    def get_attributes(
        self,
        domain: str,
        identity: str,
        consistent: bool = False,
    ) -> Result[Optional[Attributes], RemoteExecutionError]:
        """Read one item; Ok(None) when it does not exist."""
        ...

    @abstractmethod
    def put_attributes(
        self,
        domain: str,
        identity: str,
        attributes: Attributes,
    ) -> Result[None, RemoteExecutionError]:
        """Replace the stored attributes of one item."""
        ...

    @abstractmethod
    def delete_attributes(
        self,
        domain: str,
        identity: str,
    ) -> Result[None, RemoteExecutionError]:
        """Delete one item."""
        ...
