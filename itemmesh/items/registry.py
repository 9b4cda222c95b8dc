"""
Recast Registry: Runtime Subtype Resolution for Items

A nominal item type that declares `recast_using` lets the stored value of
that attribute choose the concrete subclass of each row. Variants are
registered against the class that declares `recast_using` (the recast
root); resolution is one dictionary lookup per row and falls back to the
nominal type when the discriminator is absent, unknown, or names a class
outside the nominal type's subtree.

Usage:
    registry = RecastRegistry()

    @registry.variant(Planet, "gas_giant")
    class GasGiant(Planet):
        ...

    concrete = registry.resolve_type(Planet, {"kind": "gas_giant"})
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from itemmesh.core.types import Attributes
from itemmesh.items.record import Item

if TYPE_CHECKING:
    from itemmesh.context import StoreContext

logger = logging.getLogger(__name__)

ItemType = TypeVar("ItemType", bound=type[Item])


def recast_root(item_class: type[Item]) -> Optional[type[Item]]:
    """The class in `item_class`'s MRO that declares `recast_using`."""
    for klass in item_class.__mro__:
        if "recast_using" in vars(klass) and klass.recast_using:
            return klass
    return None


class RecastRegistry:
    """Discriminator value -> concrete item type, per recast root."""

    __slots__ = ("_variants", "_lock")

    def __init__(self) -> None:
        self._variants: dict[type[Item], dict[str, type[Item]]] = {}
        self._lock = threading.Lock()

    def register(
        self,
        nominal: type[Item],
        discriminator: str,
        concrete: type[Item],
    ) -> None:
        """Map `discriminator` to `concrete` for rows of `nominal`'s recast root."""
        root = recast_root(nominal)
        if root is None:
            raise ValueError(f"{nominal.__name__} does not declare recast_using")
        if not issubclass(concrete, root):
            raise ValueError(f"{concrete.__name__} is not a subclass of {root.__name__}")
        with self._lock:
            self._variants.setdefault(root, {})[str(discriminator)] = concrete

    def variant(self, nominal: type[Item], discriminator: str) -> Callable[[ItemType], ItemType]:
        """Decorator form of register()."""
        def decorator(concrete: ItemType) -> ItemType:
            self.register(nominal, discriminator, concrete)
            return concrete
        return decorator

    def resolve_type(self, nominal: type[Item], attributes: Attributes) -> type[Item]:
        root = recast_root(nominal)
        if root is None:
            return nominal

        value = attributes.get(root.recast_using)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value is None:
            return nominal

        concrete = self._variants.get(root, {}).get(str(value))
        if concrete is None:
            logger.debug(f"No {root.__name__} variant for {value!r}; using {nominal.__name__}")
            return nominal
        if not issubclass(concrete, nominal):
            return nominal
        return concrete

    def instantiate(
        self,
        concrete: type[Item],
        identity: str,
        attributes: Attributes,
        context: Optional[StoreContext] = None,
        from_wire: bool = True,
    ) -> Item:
        """Build an instance of an already-resolved type."""
        if from_wire:
            item = concrete.from_wire(identity, attributes)
        else:
            item = concrete.from_snapshot(identity, attributes)
        if context is not None:
            item.bind(context)
        return item

    # -------------------------------------------------------------------------
    # FACTORY PATHS USED BY THE RESULT SET
    # -------------------------------------------------------------------------

    def from_remote(
        self,
        nominal: type[Item],
        identity: str,
        raw: Attributes,
        context: Optional[StoreContext] = None,
    ) -> Item:
        """Recast path: resolve the type from raw store attributes and coerce."""
        concrete = self.resolve_type(nominal, raw)
        return self.instantiate(concrete, identity, raw, context, from_wire=True)

    def from_snapshot(
        self,
        nominal: type[Item],
        identity: str,
        snapshot: Attributes,
        context: Optional[StoreContext] = None,
    ) -> Item:
        """Cache path: same resolution, snapshot assumed well-formed."""
        concrete = self.resolve_type(nominal, snapshot)
        return self.instantiate(concrete, identity, snapshot, context, from_wire=False)


# Process-wide registry used when a context is built without one
default_registry = RecastRegistry()
