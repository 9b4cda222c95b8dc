"""
Select Compiler: Declarative Query Options -> Store Select Expression

Turns a where mapping, ordering, limit and output projection into the
store's select language:

    select * from `planets` where `color` = 'blue' and `moons` > '2'
        order by `name` asc limit 10

Where mapping grammar:
    {"color": "blue"}                       equality
    {"moons": [">", 2]}                     comparison (= != > >= < <=)
    {"name": ["like", "Sat%"]}              like / not like
    {"kind": ["in", "rocky", "gas_giant"]}  membership
    {"moons": ["between", 1, 10]}           inclusive range
    {"rings": ["is null"]}                  null tests (is null / is not null)
    {"itemName()": ["in", "P1", "P2"]}      row identity, like any field
    {"-and": {...}} or {"-and": [{...}, {...}]}
                                            nested conjunctions, parenthesised

Clauses keep the mapping's insertion order. Only the shape is validated;
attribute names are passed through and any unknown name is rejected by
the store at execution time.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from itemmesh.core.constants import AND_KEY, ITEM_NAME, SELECT_ALL, SELECT_COUNT
from itemmesh.core.errors import CompilationError

if TYPE_CHECKING:
    from itemmesh.items.record import Item

Where = Mapping[str, Any]
OrderBy = Union[str, Sequence[Any]]

# operator -> (min operands, max operands); None means unbounded
OPERATORS: dict[str, tuple[int, Optional[int]]] = {
    "=": (1, 1),
    "!=": (1, 1),
    ">": (1, 1),
    ">=": (1, 1),
    "<": (1, 1),
    "<=": (1, 1),
    "like": (1, 1),
    "not like": (1, 1),
    "in": (1, None),
    "between": (2, 2),
    "is null": (0, 0),
    "is not null": (0, 0),
}

DIRECTIONS = ("asc", "desc")


# =============================================================================
# QUOTING
# =============================================================================
def quote_name(name: str) -> str:
    """Backtick-quote an attribute or domain name; itemName() stays bare."""
    if name == ITEM_NAME:
        return ITEM_NAME
    return "`" + name.replace("`", "``") + "`"


def quote_value(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


# =============================================================================
# WHERE
# =============================================================================
def _normalize_predicate(name: str, value: Any) -> tuple[str, list[Any]]:
    if isinstance(value, (list, tuple)):
        if not value:
            raise CompilationError.malformed_predicate(name, value, "empty operator list")
        operator = value[0]
        if not isinstance(operator, str):
            raise CompilationError.unknown_operator(name, operator)
        return " ".join(operator.lower().split()), list(value[1:])
    if value is None:
        raise CompilationError.malformed_predicate(
            name, value, "None is not a value; use ['is null']",
        )
    if isinstance(value, Mapping):
        raise CompilationError.malformed_predicate(
            name, value, f"mappings are only allowed under {AND_KEY!r}",
        )
    return "=", [value]


def _render_operand(item_class: type[Item], name: str, value: Any) -> str:
    if isinstance(value, (list, tuple, Mapping)) or value is None:
        raise CompilationError.malformed_predicate(name, value, "operands must be scalar")
    if name == ITEM_NAME:
        return quote_value(str(value))
    return quote_value(item_class.format_value(name, value))


def _compile_predicate(item_class: type[Item], name: str, value: Any) -> str:
    operator, operands = _normalize_predicate(name, value)
    if operator not in OPERATORS:
        raise CompilationError.unknown_operator(name, operator)

    low, high = OPERATORS[operator]
    if len(operands) < low or (high is not None and len(operands) > high):
        expected = f"{low}+" if high is None else (str(low) if low == high else f"{low}-{high}")
        raise CompilationError.bad_arity(name, operator, expected, len(operands))

    column = quote_name(name)
    rendered = [_render_operand(item_class, name, v) for v in operands]

    if operator == "in":
        return f"{column} in ({', '.join(rendered)})"
    if operator == "between":
        return f"{column} between {rendered[0]} and {rendered[1]}"
    if not rendered:
        return f"{column} {operator}"
    return f"{column} {operator} {rendered[0]}"


def _conjunction_parts(value: Any) -> list[Where]:
    if isinstance(value, Mapping):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(v, Mapping) for v in value):
        return list(value)
    raise CompilationError.malformed_predicate(
        AND_KEY, value, "expects a mapping or a list of mappings",
    )


def compile_where(item_class: type[Item], where: Optional[Where]) -> str:
    """Compile a where mapping to a boolean expression ('' when empty)."""
    if where is None:
        return ""
    if not isinstance(where, Mapping):
        raise CompilationError.malformed_predicate("<where>", where, "where must be a mapping")

    clauses: list[str] = []
    for name, value in where.items():
        if name == AND_KEY:
            for part in _conjunction_parts(value):
                nested = compile_where(item_class, part)
                if nested:
                    clauses.append(f"({nested})")
            continue
        if not isinstance(name, str) or not name:
            raise CompilationError.malformed_predicate(str(name), value, "field name must be a non-empty string")
        clauses.append(_compile_predicate(item_class, name, value))

    return " and ".join(clauses)


# =============================================================================
# ORDER BY / LIMIT / OUTPUT
# =============================================================================
def _is_direction(value: Any) -> bool:
    return isinstance(value, str) and value.lower() in DIRECTIONS


def normalize_order_by(order_by: Optional[OrderBy]) -> list[tuple[str, str]]:
    """
    Accepts "name", ("name", "desc"), or a list of those.

    A two-element sequence whose second element is a direction is a
    single (name, direction) pair.
    """
    if order_by is None:
        return []
    if isinstance(order_by, str):
        if not order_by:
            raise CompilationError.malformed_order(order_by, "empty attribute name")
        return [(order_by, "asc")]
    if not isinstance(order_by, (list, tuple)) or not order_by:
        raise CompilationError.malformed_order(order_by, "expected a name, a (name, direction) pair or a list")

    if len(order_by) == 2 and isinstance(order_by[0], str) and _is_direction(order_by[1]):
        return [(order_by[0], order_by[1].lower())]

    pairs: list[tuple[str, str]] = []
    for entry in order_by:
        if isinstance(entry, str) and entry:
            pairs.append((entry, "asc"))
        elif (
            isinstance(entry, (list, tuple))
            and len(entry) == 2
            and isinstance(entry[0], str)
            and entry[0]
            and _is_direction(entry[1])
        ):
            pairs.append((entry[0], entry[1].lower()))
        else:
            raise CompilationError.malformed_order(order_by, f"bad entry {entry!r}")
    return pairs


def normalize_limit(limit: Any) -> Optional[int]:
    if limit is None:
        return None
    if isinstance(limit, bool):
        raise CompilationError.invalid_limit(limit)
    if isinstance(limit, int):
        value = limit
    elif isinstance(limit, str) and limit.strip().isdigit():
        value = int(limit.strip())
    else:
        raise CompilationError.invalid_limit(limit)
    if value <= 0:
        raise CompilationError.invalid_limit(limit)
    return value


def compile_output(output: Any) -> str:
    if output is None or output == SELECT_ALL:
        return SELECT_ALL
    if output == SELECT_COUNT:
        return SELECT_COUNT
    if isinstance(output, str):
        return quote_name(output)
    if isinstance(output, (list, tuple)) and output and all(isinstance(o, str) and o for o in output):
        return ", ".join(quote_name(o) for o in output)
    raise CompilationError.malformed_predicate("<output>", output, "expected '*', 'count(*)' or attribute names")


# =============================================================================
# SELECT
# =============================================================================
@dataclass(frozen=True)
class Select:
    """A complete select request against one domain."""

    item_class: type[Item]
    domain: str
    where: Optional[Where] = None
    order_by: Optional[OrderBy] = None
    limit: Any = None
    output: Any = None

    def to_sql(self) -> str:
        parts = [f"select {compile_output(self.output)} from {quote_name(self.domain)}"]

        condition = compile_where(self.item_class, self.where)
        if condition:
            parts.append(f"where {condition}")

        ordering = normalize_order_by(self.order_by)
        if ordering:
            parts.append("order by " + ", ".join(
                f"{quote_name(name)} {direction}" for name, direction in ordering
            ))

        limit = normalize_limit(self.limit)
        if limit is not None:
            parts.append(f"limit {limit}")

        return " ".join(parts)


def compile_select(
    item_class: type[Item],
    domain: str,
    where: Optional[Where] = None,
    order_by: Optional[OrderBy] = None,
    limit: Any = None,
    output: Any = None,
) -> str:
    """Compile query options for `domain` into a select expression."""
    return Select(
        item_class=item_class,
        domain=domain,
        where=where,
        order_by=order_by,
        limit=limit,
        output=output,
    ).to_sql()


def identity_scope(identities: Sequence[str], where: Optional[Where] = None) -> dict[str, Any]:
    """Where mapping for "itemName() in (identities) and (where)"."""
    scoped: dict[str, Any] = {ITEM_NAME: ["in", *identities]}
    if where:
        scoped[AND_KEY] = where
    return scoped
