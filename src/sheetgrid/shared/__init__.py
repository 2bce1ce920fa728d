from __future__ import annotations

from .a1 import column_index, column_label, format_cell

__all__ = [
    "column_index",
    "column_label",
    "format_cell",
]
