"""
Error Hierarchy for the Item Mesh Data-Access Layer

Design Principles:
- Collaborators return Err(...) carrying one of these errors; the cursor
  raises them at the public boundary
- Never downgrade a backend failure to a miss
- Carry full error context for debugging and audit trails

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlation with request logs

Usage:
    result = cache.get("planets", "P1")
    match result:
        case Ok(attributes):
            hydrate(attributes)
        case Err(CacheMiss()):
            fetch_from_remote()
        case Err(error):
            raise error
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from itemmesh.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Query compilation errors
    - 2xxx: Remote execution errors
    - 3xxx: Cache errors
    - 4xxx: Cursor usage errors
    - 9xxx: Internal/configuration errors
    """

    # Compilation errors (1xxx)
    COMPILE_MALFORMED_PREDICATE = 1001
    COMPILE_UNKNOWN_OPERATOR = 1002
    COMPILE_BAD_ARITY = 1003
    COMPILE_MALFORMED_ORDER = 1004
    COMPILE_INVALID_LIMIT = 1005
    COMPILE_CONFLICTING_SOURCES = 1006

    # Remote execution errors (2xxx)
    REMOTE_QUERY_REJECTED = 2001
    REMOTE_TOO_MANY_COMPARISONS = 2002
    REMOTE_INVALID_NEXT_TOKEN = 2003
    REMOTE_UNAVAILABLE = 2004
    REMOTE_WRITE_FAILED = 2005

    # Cache errors (3xxx)
    CACHE_NOT_FOUND = 3001
    CACHE_BACKEND_FAILURE = 3002
    CACHE_SERIALIZATION = 3003

    # Cursor errors (4xxx)
    CURSOR_ALREADY_STARTED = 4001
    CURSOR_SUPPLIED_RESULT = 4002

    # Internal errors (9xxx)
    INTERNAL_INVARIANT_VIOLATION = 9001
    INTERNAL_CONFIGURATION_ERROR = 9002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class ItemMeshError(Exception):
    """
    Base class for all item mesh errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp for correlation
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[Exception] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def with_context(self, **kwargs: Any) -> ItemMeshError:
        """Add context to error (returns new instance of the same class)."""
        return type(self)(
            code=self.code,
            message=self.message,
            error_id=self.error_id,
            timestamp=self.timestamp,
            cause=self.cause,
            context={**self.context, **kwargs},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# COMPILATION ERRORS (LOCALLY DETECTABLE)
# =============================================================================
@dataclass
class CompilationError(ItemMeshError):
    """
    Malformed predicate, ordering or limit shape.

    Only the shape is checked locally; attribute names are never validated
    here (the store rejects unknown attributes itself).
    """

    @classmethod
    def malformed_predicate(cls, field_name: str, value: Any, reason: str) -> CompilationError:
        return cls(
            code=ErrorCode.COMPILE_MALFORMED_PREDICATE,
            message=f"Malformed predicate on '{field_name}': {reason}",
            context={"field": field_name, "value": repr(value)[:100], "reason": reason},
        )

    @classmethod
    def unknown_operator(cls, field_name: str, operator: Any) -> CompilationError:
        return cls(
            code=ErrorCode.COMPILE_UNKNOWN_OPERATOR,
            message=f"Unknown operator {operator!r} on '{field_name}'",
            context={"field": field_name, "operator": repr(operator)},
        )

    @classmethod
    def bad_arity(cls, field_name: str, operator: str, expected: str, got: int) -> CompilationError:
        return cls(
            code=ErrorCode.COMPILE_BAD_ARITY,
            message=f"Operator '{operator}' on '{field_name}' expects {expected} operand(s), got {got}",
            context={"field": field_name, "operator": operator, "expected": expected, "got": got},
        )

    @classmethod
    def malformed_order(cls, order_by: Any, reason: str) -> CompilationError:
        return cls(
            code=ErrorCode.COMPILE_MALFORMED_ORDER,
            message=f"Malformed order_by {order_by!r}: {reason}",
            context={"order_by": repr(order_by)[:100], "reason": reason},
        )

    @classmethod
    def invalid_limit(cls, limit: Any) -> CompilationError:
        return cls(
            code=ErrorCode.COMPILE_INVALID_LIMIT,
            message=f"Limit must be a positive integer, got {limit!r}",
            context={"limit": repr(limit)},
        )

    @classmethod
    def conflicting_sources(cls) -> CompilationError:
        return cls(
            code=ErrorCode.COMPILE_CONFLICTING_SOURCES,
            message="A result set takes either a where clause or a result page, not both",
        )


# =============================================================================
# REMOTE EXECUTION ERRORS
# =============================================================================
@dataclass
class RemoteExecutionError(ItemMeshError):
    """
    The remote store rejected or failed a request.

    Covers unknown attributes, comparison-count limits, stale or malformed
    continuation tokens, service unavailability and failed writes.
    """

    @classmethod
    def query_rejected(cls, query: str, reason: str, cause: Optional[Exception] = None) -> RemoteExecutionError:
        return cls(
            code=ErrorCode.REMOTE_QUERY_REJECTED,
            message=f"Store rejected query: {reason}",
            cause=cause,
            context={"query": query[:500], "reason": reason},
        )

    @classmethod
    def too_many_comparisons(cls, query: str, cause: Optional[Exception] = None) -> RemoteExecutionError:
        return cls(
            code=ErrorCode.REMOTE_TOO_MANY_COMPARISONS,
            message="Query exceeds the store's per-select comparison limit",
            cause=cause,
            context={"query": query[:500]},
        )

    @classmethod
    def invalid_next_token(cls, token: str, cause: Optional[Exception] = None) -> RemoteExecutionError:
        return cls(
            code=ErrorCode.REMOTE_INVALID_NEXT_TOKEN,
            message="Continuation token is malformed or expired",
            cause=cause,
            context={"next_token": token[:50]},
        )

    @classmethod
    def unavailable(cls, operation: str, cause: Optional[Exception] = None) -> RemoteExecutionError:
        return cls(
            code=ErrorCode.REMOTE_UNAVAILABLE,
            message=f"Store unavailable during {operation}",
            cause=cause,
            context={"operation": operation},
        )

    @classmethod
    def write_failed(
        cls,
        operation: str,
        domain: str,
        identity: str,
        cause: Optional[Exception] = None,
    ) -> RemoteExecutionError:
        return cls(
            code=ErrorCode.REMOTE_WRITE_FAILED,
            message=f"{operation} failed for item '{identity}' in '{domain}'",
            cause=cause,
            context={"operation": operation, "domain": domain, "identity": identity},
        )


# =============================================================================
# CACHE ERRORS
# =============================================================================
@dataclass
class CacheError(ItemMeshError):
    """Base class for cache outcomes other than a hit."""

    @property
    def is_miss(self) -> bool:
        return self.code == ErrorCode.CACHE_NOT_FOUND


@dataclass
class CacheMiss(CacheError):
    """Clean miss: the cache is healthy but holds no entry for the key."""

    @classmethod
    def for_key(cls, collection: str, identity: str) -> CacheMiss:
        return cls(
            code=ErrorCode.CACHE_NOT_FOUND,
            message=f"No cache entry for '{identity}' in '{collection}'",
            context={"collection": collection, "identity": identity},
        )


@dataclass
class CacheBackendError(CacheError):
    """The cache is reachable but erroring. Never treated as a miss."""

    @classmethod
    def backend_failure(
        cls,
        operation: str,
        collection: str,
        identity: str,
        cause: Optional[Exception] = None,
    ) -> CacheBackendError:
        return cls(
            code=ErrorCode.CACHE_BACKEND_FAILURE,
            message=f"Cache {operation} failed for '{identity}' in '{collection}'",
            cause=cause,
            context={"operation": operation, "collection": collection, "identity": identity},
        )

    @classmethod
    def serialization(
        cls,
        collection: str,
        identity: str,
        cause: Optional[Exception] = None,
    ) -> CacheBackendError:
        return cls(
            code=ErrorCode.CACHE_SERIALIZATION,
            message=f"Cache entry for '{identity}' in '{collection}' could not be (de)serialized",
            cause=cause,
            context={"collection": collection, "identity": identity},
        )


# =============================================================================
# CURSOR ERRORS
# =============================================================================
@dataclass
class CursorError(ItemMeshError):
    """Misuse of a result set's lifecycle."""

    @classmethod
    def already_started(cls, operation: str, state: str) -> CursorError:
        return cls(
            code=ErrorCode.CURSOR_ALREADY_STARTED,
            message=f"{operation} requires a fresh result set (current state: {state})",
            context={"operation": operation, "state": state},
        )

    @classmethod
    def supplied_result(cls, operation: str) -> CursorError:
        return cls(
            code=ErrorCode.CURSOR_SUPPLIED_RESULT,
            message=f"{operation} needs a query; this result set was built from an already-fetched page",
            context={"operation": operation},
        )


# =============================================================================
# INTERNAL ERRORS
# =============================================================================
@dataclass
class InternalInvariantError(ItemMeshError):
    """Reconciliation or state machine reached an impossible state."""

    @classmethod
    def reconciliation(cls, collection: str, identity: str, outcome: str) -> InternalInvariantError:
        return cls(
            code=ErrorCode.INTERNAL_INVARIANT_VIOLATION,
            message=(
                f"Cache lookup for '{identity}' in '{collection}' reported neither "
                f"a hit nor a miss ({outcome})"
            ),
            context={"collection": collection, "identity": identity, "outcome": outcome},
        )


@dataclass
class ConfigurationError(ItemMeshError):
    """Invalid or incomplete configuration."""

    @classmethod
    def invalid(cls, setting: str, reason: str) -> ConfigurationError:
        return cls(
            code=ErrorCode.INTERNAL_CONFIGURATION_ERROR,
            message=f"Invalid configuration for '{setting}': {reason}",
            context={"setting": setting, "reason": reason},
        )
