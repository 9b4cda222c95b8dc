"""
Unit Tests: Query Compiler

Tests:
    - Predicate operators and arities
    - itemName() handling
    - Nested conjunctions
    - order by / limit / output normalisation
    - Quoting of names and values
"""

import pytest

from itemmesh.core.errors import CompilationError, ErrorCode
from itemmesh.query import (
    compile_output,
    compile_select,
    compile_where,
    identity_scope,
    normalize_limit,
    normalize_order_by,
    quote_name,
    quote_value,
)
from itemmesh.tests.fakes import Moon, Planet


class TestQuoting:
    """Tests for name and value quoting."""

    def test_names_backticked(self):
        assert quote_name("color") == "`color`"
        assert quote_name("we`ird") == "`we``ird`"

    def test_item_name_bare(self):
        assert quote_name("itemName()") == "itemName()"

    def test_values_single_quoted(self):
        assert quote_value("it's") == "'it''s'"


class TestWhere:
    """Tests for compile_where()."""

    def test_empty(self):
        assert compile_where(Planet, None) == ""
        assert compile_where(Planet, {}) == ""

    def test_equality_and_order_kept(self):
        where = {"color": "blue", "name": "Neptune"}
        assert compile_where(Planet, where) == "`color` = 'blue' and `name` = 'Neptune'"

    @pytest.mark.parametrize("operator", ["=", "!=", ">", ">=", "<", "<=", "like", "not like"])
    def test_binary_operators(self, operator):
        assert compile_where(Planet, {"name": [operator, "M%"]}) == f"`name` {operator} 'M%'"

    def test_operator_case_and_spacing_normalised(self):
        assert compile_where(Planet, {"name": ["NOT   LIKE", "x"]}) == "`name` not like 'x'"

    def test_in(self):
        assert compile_where(Planet, {"kind": ["in", "rocky", "gas_giant"]}) == (
            "`kind` in ('rocky', 'gas_giant')"
        )

    def test_between(self):
        assert compile_where(Planet, {"moons": ["between", 1, 10]}) == "`moons` between '1' and '10'"

    def test_null_tests(self):
        assert compile_where(Planet, {"color": ["is null"]}) == "`color` is null"
        assert compile_where(Planet, {"color": ["is not null"]}) == "`color` is not null"

    def test_values_formatted_by_attribute(self):
        """Booleans render the way they are stored."""
        assert compile_where(Moon, {"habitable": True}) == "`habitable` = 'true'"

    def test_item_name_like_any_field(self):
        assert compile_where(Planet, {"itemName()": ["in", "P1", "P2"]}) == "itemName() in ('P1', 'P2')"
        assert compile_where(Planet, {"itemName()": "P1"}) == "itemName() = 'P1'"

    def test_nested_conjunction(self):
        where = {"color": "blue", "-and": {"moons": [">", 1], "name": ["like", "N%"]}}
        assert compile_where(Planet, where) == (
            "`color` = 'blue' and (`moons` > '1' and `name` like 'N%')"
        )

    def test_conjunction_list(self):
        where = {"-and": [{"color": "blue"}, {"-and": {"moons": "2"}}]}
        assert compile_where(Planet, where) == "(`color` = 'blue') and ((`moons` = '2'))"

    def test_unknown_attribute_not_validated(self):
        """Attribute names are passed through for the store to judge."""
        assert compile_where(Planet, {"nonexistent": "x"}) == "`nonexistent` = 'x'"

    def test_unknown_operator(self):
        with pytest.raises(CompilationError) as exc_info:
            compile_where(Planet, {"name": ["~=", "x"]})
        assert exc_info.value.code == ErrorCode.COMPILE_UNKNOWN_OPERATOR

    @pytest.mark.parametrize("value", [["between", 1], ["=", 1, 2], ["in"], ["is null", 1]])
    def test_bad_arity(self, value):
        with pytest.raises(CompilationError) as exc_info:
            compile_where(Planet, {"moons": value})
        assert exc_info.value.code == ErrorCode.COMPILE_BAD_ARITY

    @pytest.mark.parametrize("where", [
        {"name": None},
        {"name": {"nested": 1}},
        {"name": []},
        {"-and": "color"},
        {"name": ["in", ["a"]]},
        "color = 'blue'",
    ])
    def test_malformed(self, where):
        with pytest.raises(CompilationError):
            compile_where(Planet, where)


class TestOrderLimitOutput:
    """Tests for order by, limit and output handling."""

    def test_order_by_forms(self):
        assert normalize_order_by(None) == []
        assert normalize_order_by("name") == [("name", "asc")]
        assert normalize_order_by(("name", "DESC")) == [("name", "desc")]
        assert normalize_order_by(["name", ("moons", "desc")]) == [("name", "asc"), ("moons", "desc")]

    @pytest.mark.parametrize("order_by", ["", [], [("name", "sideways")], 5])
    def test_malformed_order(self, order_by):
        with pytest.raises(CompilationError):
            normalize_order_by(order_by)

    def test_limit(self):
        assert normalize_limit(None) is None
        assert normalize_limit(10) == 10
        assert normalize_limit("25") == 25

    @pytest.mark.parametrize("limit", [0, -5, "ten", True, 2.5])
    def test_invalid_limit(self, limit):
        with pytest.raises(CompilationError):
            normalize_limit(limit)

    def test_output(self):
        assert compile_output(None) == "*"
        assert compile_output("count(*)") == "count(*)"
        assert compile_output(["name", "color"]) == "`name`, `color`"


class TestSelect:
    """Tests for compile_select() and identity_scope()."""

    def test_full_select(self):
        query = compile_select(
            Planet, "planets",
            where={"color": "blue"}, order_by=("itemName()", "desc"), limit=10,
        )
        assert query == "select * from `planets` where `color` = 'blue' order by itemName() desc limit 10"

    def test_count_select(self):
        assert compile_select(Planet, "planets", output="count(*)") == "select count(*) from `planets`"

    def test_identity_scope(self):
        assert identity_scope(["a", "b"]) == {"itemName()": ["in", "a", "b"]}
        assert identity_scope(["a"], {"color": "red"}) == {
            "itemName()": ["in", "a"],
            "-and": {"color": "red"},
        }
