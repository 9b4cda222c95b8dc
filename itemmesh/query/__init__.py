"""
Query Module: Compilation of where/order/limit options to select expressions.
"""

from itemmesh.query.compiler import (
    OPERATORS,
    Select,
    compile_output,
    compile_select,
    compile_where,
    identity_scope,
    normalize_limit,
    normalize_order_by,
    quote_name,
    quote_value,
)

__all__ = [
    "OPERATORS",
    "Select",
    "compile_output",
    "compile_select",
    "compile_where",
    "identity_scope",
    "normalize_limit",
    "normalize_order_by",
    "quote_name",
    "quote_value",
]
