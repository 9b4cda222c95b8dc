"""
Result Set Module: Lazy cursor over paginated selects.
"""

from itemmesh.resultset.cursor import CursorState, ResultSet

__all__ = [
    "CursorState",
    "ResultSet",
]
