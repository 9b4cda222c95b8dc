"""
Item Records: Typed Objects for Rows of a Domain

An Item subclass names its domain, declares its attributes and, optionally,
the attribute whose stored value selects a concrete subclass (recast).

Example:
    class Planet(Item):
        domain_name = "planets"
        recast_using = "kind"
        attributes = {
            "name": Attribute(str),
            "color": Attribute(str),
            "kind": Attribute(str, default="planet"),
            "moons": Attribute(int, default=0),
        }

    class GasGiant(Planet):
        attributes = {"rings": Attribute(int, default=0)}

The row identity (itemName()) lives in `id`; it is never an attribute and
never appears in to_attributes().
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from itemmesh.core.constants import ITEM_NAME
from itemmesh.core.types import Attributes

if TYPE_CHECKING:
    from itemmesh.context import StoreContext


_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


# =============================================================================
# ATTRIBUTE DECLARATION
# =============================================================================
@dataclass(frozen=True)
class Attribute:
    """
    Declared attribute of an item.

    The store keeps every value as a string; `coerce` turns a wire value
    (string, or list of strings for multi-valued attributes) into the
    declared Python type, and `format` renders a Python value for a query.
    Coercion is idempotent so cached snapshots re-hydrate unchanged.
    """

    kind: type = str
    default: Any = None
    multi: bool = False

    def initial(self) -> Any:
        if self.multi and self.default is None:
            return []
        return copy.copy(self.default)

    def coerce(self, raw: Any) -> Any:
        if raw is None:
            return self.initial()
        if self.multi:
            values = raw if isinstance(raw, (list, tuple)) else [raw]
            return [self._coerce_one(v) for v in values]
        if isinstance(raw, (list, tuple)):
            # single-valued attribute stored with several values: first wins
            if not raw:
                return self.initial()
            raw = raw[0]
        return self._coerce_one(raw)

    def _coerce_one(self, value: Any) -> Any:
        if self.kind is bool:
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() in _TRUE_STRINGS
        if isinstance(value, self.kind):
            return value
        return self.kind(value)

    def format(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


# =============================================================================
# ITEM BASE CLASS
# =============================================================================
class Item:
    """Base class for typed records of a domain."""

    domain_name: ClassVar[str] = ""
    attributes: ClassVar[dict[str, Attribute]] = {}
    recast_using: ClassVar[Optional[str]] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Subclasses extend their parent's attribute declarations
        inherited: dict[str, Attribute] = {}
        for base in reversed(cls.__mro__[1:]):
            inherited.update(getattr(base, "attributes", {}))
        declared = cls.__dict__.get("attributes", {})
        for reserved in (ITEM_NAME, "id"):
            if reserved in declared:
                raise ValueError(f"{cls.__name__} may not declare reserved attribute {reserved!r}")
        cls.attributes = {**inherited, **declared}

    def __init__(self, id: Optional[str] = None, **values: Any) -> None:
        self.id = id
        self._context: Optional[StoreContext] = None
        unknown = set(values) - set(self.attributes)
        if unknown:
            raise TypeError(f"{type(self).__name__} has no attributes {sorted(unknown)}")
        for name, attribute in self.attributes.items():
            setattr(self, name, attribute.coerce(values[name]) if name in values else attribute.initial())

    # -------------------------------------------------------------------------
    # CONSTRUCTION
    # -------------------------------------------------------------------------

    @classmethod
    def from_wire(cls, identity: str, raw: Attributes) -> Item:
        """Build from the store's raw attribute map (values coerced)."""
        values = {
            name: attribute.coerce(raw.get(name))
            for name, attribute in cls.attributes.items()
        }
        return cls(id=identity, **values)

    @classmethod
    def from_snapshot(cls, identity: str, snapshot: Attributes) -> Item:
        """Re-hydrate from a cached, already-typed snapshot."""
        values = {
            name: copy.copy(snapshot[name])
            for name in cls.attributes
            if name in snapshot
        }
        return cls(id=identity, **values)

    @classmethod
    def format_value(cls, name: str, value: Any) -> str:
        """Render a value of attribute `name` for a select expression."""
        attribute = cls.attributes.get(name)
        if attribute is None:
            return Attribute().format(value)
        return attribute.format(value)

    # -------------------------------------------------------------------------
    # STATE
    # -------------------------------------------------------------------------

    def to_attributes(self) -> Attributes:
        """Snapshot of declared attributes; excludes the row identity."""
        return {
            name: copy.copy(getattr(self, name))
            for name in self.attributes
        }

    def to_wire(self) -> Attributes:
        """String form for the store; None marks an attribute to remove."""
        wire: Attributes = {}
        for name, attribute in self.attributes.items():
            value = getattr(self, name)
            if value is None:
                wire[name] = None
            elif attribute.multi:
                wire[name] = [attribute.format(v) for v in value]
            else:
                wire[name] = attribute.format(value)
        return wire

    def update(self, values: Attributes) -> Item:
        """
        Assign several attributes at once. Returns self for chaining.

        Declared attributes are coerced to their type, so a later
        to_attributes() snapshot is safe to re-hydrate from the cache.
        """
        for name, value in values.items():
            if name in (ITEM_NAME, "id"):
                raise ValueError(f"The row identity cannot be updated through {name!r}")
            attribute = self.attributes.get(name)
            setattr(self, name, attribute.coerce(value) if attribute is not None else value)
        return self

    # -------------------------------------------------------------------------
    # PERSISTENCE (delegated to the bound context)
    # -------------------------------------------------------------------------

    def bind(self, context: StoreContext) -> Item:
        self._context = context
        return self

    @property
    def context(self) -> StoreContext:
        if self._context is None:
            raise RuntimeError(f"{type(self).__name__} {self.id!r} is not bound to a store")
        return self._context

    def put(self) -> Item:
        """Persist to the store, then refresh the cache entry."""
        self.context.save_item(self)
        return self

    def delete(self) -> None:
        """Delete from the store, then drop the cache entry."""
        self.context.remove_item(self)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.id == other.id
            and self.to_attributes() == other.to_attributes()
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_attributes().items())
        return f"{type(self).__name__}(id={self.id!r}, {fields})"
