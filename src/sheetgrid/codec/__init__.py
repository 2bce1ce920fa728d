"""Default spreadsheet codec used by the session."""

from __future__ import annotations

from .reader import DEFAULT_SHEET_NAME, coerce_text_value, parse_workbook
from .writer import write_csv, write_html, write_xls, write_xlsx

__all__ = [
    "DEFAULT_SHEET_NAME",
    "coerce_text_value",
    "parse_workbook",
    "write_csv",
    "write_html",
    "write_xls",
    "write_xlsx",
]
