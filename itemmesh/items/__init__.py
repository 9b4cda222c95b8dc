"""
Items Module: Typed records and recast (subtype) resolution.
"""

from itemmesh.items.record import Attribute, Item
from itemmesh.items.registry import RecastRegistry, default_registry, recast_root

__all__ = [
    "Attribute",
    "Item",
    "RecastRegistry",
    "default_registry",
    "recast_root",
]
