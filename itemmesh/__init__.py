"""
Item Mesh: Client-Side Result Sets over a Paginated Attribute Store

A data-access layer for SimpleDB-style stores, where every query answers
page by page and reads are eventually consistent:
- Query Compiler: where/order-by/limit mappings to select expressions
- Result Set: lazy cursor following continuation tokens on demand
- Item Cache: cache-aside snapshots that override stale remote rows
- Recast Registry: per-row resolution of the concrete item subtype
- Remote Executor: boto3 SimpleDB client with retries

Usage:
    from itemmesh import Attribute, Item, ItemMeshConfig, StoreContext

    class Planet(Item):
        domain_name = "planets"
        attributes = {"name": Attribute(str), "color": Attribute(str)}

    context = StoreContext.from_config(ItemMeshConfig.from_env().unwrap())
    for planet in context.domain(Planet).search(where={"color": "blue"}):
        print(planet.name)

License: MIT
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from itemmesh.core.types import (
    Result,
    Ok,
    Err,
    Attributes,
)
from itemmesh.core.errors import (
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

from itemmesh.items import (
    Attribute,
    Item,
    RecastRegistry,
    default_registry,
)
from itemmesh.query import compile_select
from itemmesh.remote import (
    Page,
    Row,
    RemoteExecutor,
    SimpleDBExecutor,
)
from itemmesh.cache import (
    ItemCache,
    InMemoryItemCache,
    RedisItemCache,
    create_item_cache,
)
from itemmesh.resultset import (
    CursorState,
    ResultSet,
)
from itemmesh.context import StoreContext
from itemmesh.domain import Domain

__all__ = [
    # Version
    "__version__",
    # Core types
    "Result",
    "Ok",
    "Err",
    "Attributes",
    # Errors
    "ItemMeshError",
    "CompilationError",
    "RemoteExecutionError",
    "CacheError",
    "CacheMiss",
    "CacheBackendError",
    "CursorError",
    "InternalInvariantError",
    "ConfigurationError",
    # Config
    "ItemMeshConfig",
    # Items
    "Attribute",
    "Item",
    "RecastRegistry",
    "default_registry",
    # Query
    "compile_select",
    # Remote
    "Page",
    "Row",
    "RemoteExecutor",
    "SimpleDBExecutor",
    # Cache
    "ItemCache",
    "InMemoryItemCache",
    "RedisItemCache",
    "create_item_cache",
    # Result sets
    "CursorState",
    "ResultSet",
    "StoreContext",
    "Domain",
]
