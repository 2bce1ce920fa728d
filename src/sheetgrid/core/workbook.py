from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from io import BytesIO
from typing import Any
import warnings

from openpyxl import load_workbook
import xlrd

# Emitted for features of Excel-authored files that openpyxl drops on load;
# cell values are unaffected.
_IGNORED_OPENPYXL_WARNINGS = (
    "Unknown extension is not supported and will be removed",
    "Conditional Formatting extension is not supported and will be removed",
    "Data Validation extension is not supported and will be removed",
    "Cannot parse header or footer so it will be ignored",
)


@contextmanager
def openpyxl_workbook(
    data: bytes, *, data_only: bool, read_only: bool
) -> Iterator[Any]:
    """Open an openpyxl workbook from bytes and ensure it is closed.

    Args:
        data: Workbook file contents.
        data_only: Whether to read cached formula results.
        read_only: Whether to open in read-only mode.

    Yields:
        openpyxl workbook instance.
    """
    with warnings.catch_warnings():
        for message in _IGNORED_OPENPYXL_WARNINGS:
            warnings.filterwarnings(
                "ignore", message=message, category=UserWarning, module="openpyxl"
            )
        wb = load_workbook(BytesIO(data), data_only=data_only, read_only=read_only)
    try:
        yield wb
    finally:
        try:
            wb.close()
        except Exception:
            pass


@contextmanager
def xlrd_workbook(data: bytes) -> Iterator[xlrd.book.Book]:
    """Open a legacy .xls workbook from bytes and release it afterwards.

    Args:
        data: Workbook file contents.

    Yields:
        xlrd book instance.
    """
    book = xlrd.open_workbook(file_contents=data)
    try:
        yield book
    finally:
        book.release_resources()
