"""
Unit Tests: Items and Recast Registry

Tests:
    - Attribute coercion and formatting
    - Item construction, snapshots and wire form
    - Attribute inheritance and reserved names
    - Recast resolution and fallbacks
"""

import pytest

from itemmesh.items import Attribute, Item, RecastRegistry, recast_root
from itemmesh.tests.fakes import GasGiant, Moon, Planet


class TestAttribute:
    """Tests for Attribute."""

    def test_coerce_scalar(self):
        assert Attribute(int).coerce("42") == 42
        assert Attribute(float).coerce("2.5") == 2.5
        assert Attribute(str).coerce("x") == "x"

    def test_coerce_idempotent(self):
        attribute = Attribute(int)
        assert attribute.coerce(attribute.coerce("7")) == 7

    def test_coerce_bool(self):
        attribute = Attribute(bool)
        assert attribute.coerce("true") is True
        assert attribute.coerce("1") is True
        assert attribute.coerce("false") is False
        assert attribute.coerce(True) is True

    def test_single_valued_takes_first(self):
        assert Attribute(str).coerce(["a", "b"]) == "a"

    def test_multi_valued(self):
        attribute = Attribute(int, multi=True)
        assert attribute.coerce("3") == [3]
        assert attribute.coerce(["1", "2"]) == [1, 2]
        assert attribute.coerce(None) == []

    def test_missing_uses_default(self):
        assert Attribute(int, default=5).coerce(None) == 5

    def test_format(self):
        assert Attribute(bool).format(False) == "false"
        assert Attribute(int).format(3) == "3"


class TestItem:
    """Tests for the Item base class."""

    def test_defaults(self):
        planet = Planet(id="P1", name="Mars")
        assert planet.kind == "planet"
        assert planet.moons == 0
        assert planet.tags == []

    def test_unknown_attribute_rejected(self):
        with pytest.raises(TypeError):
            Planet(id="P1", diameter=10)

    def test_attributes_inherited(self):
        assert set(GasGiant.attributes) == set(Planet.attributes) | {"rings"}
        assert "rings" not in Planet.attributes

    def test_reserved_names_rejected(self):
        with pytest.raises(ValueError):
            class Bad(Item):
                domain_name = "bad"
                attributes = {"itemName()": Attribute(str)}

    def test_from_wire_coerces(self):
        planet = Planet.from_wire("P1", {"name": "Earth", "moons": "1", "tags": "blue"})
        assert planet.id == "P1"
        assert planet.moons == 1
        assert planet.tags == ["blue"]

    def test_snapshot_excludes_identity(self):
        snapshot = Planet(id="P1", name="Earth").to_attributes()
        assert "id" not in snapshot
        assert "itemName()" not in snapshot
        assert snapshot["name"] == "Earth"

    def test_snapshot_round_trip(self):
        planet = Planet(id="P1", name="Earth", moons=1, tags=["home"])
        assert Planet.from_snapshot("P1", planet.to_attributes()) == planet

    def test_snapshot_is_a_copy(self):
        planet = Planet(id="P1", tags=["a"])
        snapshot = planet.to_attributes()
        snapshot["tags"].append("b")
        assert planet.tags == ["a"]

    def test_to_wire(self):
        moon = Moon(id="M1", name="Europa", habitable=True)
        assert moon.to_wire() == {"name": "Europa", "habitable": "true"}
        assert Planet(id="P1", moons=2, tags=["x", "y"]).to_wire()["tags"] == ["x", "y"]
        assert Planet(id="P1").to_wire()["name"] is None

    def test_update_chains(self):
        planet = Planet(id="P1")
        assert planet.update({"name": "Mars", "moons": 2}) is planet
        assert planet.name == "Mars"

    def test_update_coerces_declared_attributes(self):
        planet = Planet(id="P1").update({"moons": "5", "tags": "rocky", "status": None})
        assert planet.moons == 5
        assert planet.tags == ["rocky"]
        assert planet.status == "active"

    def test_constructor_coerces(self):
        moon = Moon(id="M1", name="Europa", habitable="yes")
        assert moon.habitable is True
        assert moon.to_attributes() == {"name": "Europa", "habitable": True}

    def test_update_rejects_identity(self):
        with pytest.raises(ValueError):
            Planet(id="P1").update({"itemName()": "P2"})

    def test_unbound_put_fails(self):
        with pytest.raises(RuntimeError):
            Planet(id="P1").put()


class TestRecastRegistry:
    """Tests for RecastRegistry."""

    @pytest.fixture
    def registry(self):
        registry = RecastRegistry()
        registry.register(Planet, "gas_giant", GasGiant)
        return registry

    def test_recast_root(self):
        assert recast_root(Planet) is Planet
        assert recast_root(GasGiant) is Planet
        assert recast_root(Moon) is None

    def test_resolve(self, registry):
        assert registry.resolve_type(Planet, {"kind": "gas_giant"}) is GasGiant

    def test_resolve_list_valued(self, registry):
        assert registry.resolve_type(Planet, {"kind": ["gas_giant", "other"]}) is GasGiant

    @pytest.mark.parametrize("attributes", [{}, {"kind": "rocky"}, {"kind": []}])
    def test_fallback_to_nominal(self, registry, attributes):
        assert registry.resolve_type(Planet, attributes) is Planet

    def test_no_recast_declared(self, registry):
        assert registry.resolve_type(Moon, {"kind": "gas_giant"}) is Moon

    def test_variant_outside_nominal_subtree(self, registry):
        """A variant that is not a subclass of the nominal type is ignored."""
        class Dwarf(Planet):
            pass

        registry.register(Planet, "dwarf", Dwarf)
        assert registry.resolve_type(GasGiant, {"kind": "dwarf"}) is GasGiant

    def test_decorator(self):
        registry = RecastRegistry()

        @registry.variant(Planet, "ice_giant")
        class IceGiant(Planet):
            pass

        assert registry.resolve_type(Planet, {"kind": "ice_giant"}) is IceGiant

    def test_register_validation(self):
        registry = RecastRegistry()
        with pytest.raises(ValueError):
            registry.register(Moon, "x", Moon)
        with pytest.raises(ValueError):
            registry.register(Planet, "moon", Moon)

    def test_from_remote_and_snapshot(self, registry):
        remote = registry.from_remote(Planet, "J", {"kind": "gas_giant", "rings": "4"})
        cached = registry.from_snapshot(Planet, "J", remote.to_attributes())
        assert type(remote) is GasGiant and remote.rings == 4
        assert cached == remote
