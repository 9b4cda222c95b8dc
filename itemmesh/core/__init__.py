"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for the item mesh:
- Result/Either monads for collaborator return values
- Error hierarchy (compilation, remote, cache, cursor, internal)
- Configuration management with validation
"""

from itemmesh.core.types import (
    Result,
    Ok,
    Err,
    Attributes,
    Timestamp,
)
from itemmesh.core.errors import (
    ErrorCode,
    ItemMeshError,
    CompilationError,
    RemoteExecutionError,
    CacheError,
    CacheMiss,
    CacheBackendError,
    CursorError,
    InternalInvariantError,
    ConfigurationError,
)
from itemmesh.core.config import ItemMeshConfig

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Attributes",
    "Timestamp",
    "ErrorCode",
    "ItemMeshError",
    "CompilationError",
    "RemoteExecutionError",
    "CacheError",
    "CacheMiss",
    "CacheBackendError",
    "CursorError",
    "InternalInvariantError",
    "ConfigurationError",
    "ItemMeshConfig",
]
