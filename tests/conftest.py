from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
import time

from openpyxl import Workbook as OpenpyxlWorkbook
import pytest

from sheetgrid.codec.reader import parse_workbook
from sheetgrid.models import Workbook

XlsxFactory = Callable[[dict[str, list[list[object]]]], bytes]


def _make_xlsx(sheets: dict[str, list[list[object]]]) -> bytes:
    """Build an .xlsx payload with one worksheet per mapping entry.

    Args:
        sheets: Sheet name -> rows of cell values (None leaves a cell blank).

    Returns:
        Workbook bytes.
    """
    book = OpenpyxlWorkbook()
    book.remove(book.active)
    for name, rows in sheets.items():
        ws = book.create_sheet(title=name)
        for r, row in enumerate(rows, 1):
            for c, value in enumerate(row, 1):
                if value is not None:
                    ws.cell(row=r, column=c, value=value)
    stream = BytesIO()
    book.save(stream)
    book.close()
    return stream.getvalue()


@pytest.fixture
def make_xlsx() -> XlsxFactory:
    return _make_xlsx


@pytest.fixture
def two_sheet_xlsx() -> bytes:
    """Two-sheet workbook: Sheet1 holds a 2x2 block, Sheet2 a single column."""
    return _make_xlsx(
        {
            "Sheet1": [["name", "qty"], ["widget", 3]],
            "Sheet2": [["flag"], [True], [1.5]],
        }
    )


@pytest.fixture
def delaying_parser() -> Callable[[float], Callable[[bytes], Workbook]]:
    """Return a factory for parsers that stall on payloads starting with b"slow"."""

    def factory(delay: float) -> Callable[[bytes], Workbook]:
        def parser(data: bytes) -> Workbook:
            if data.startswith(b"slow"):
                time.sleep(delay)
            return parse_workbook(data)

        return parser

    return factory
