from __future__ import annotations

import warnings

import pytest

from sheetgrid.codec.writer import write_xls
from sheetgrid.core import workbook as workbook_io
from sheetgrid.core.workbook import openpyxl_workbook, xlrd_workbook
from sheetgrid.models import Sheet, Workbook


def test_openpyxl_workbook_opens_bytes(make_xlsx) -> None:
    data = make_xlsx({"Data": [["x", 1]], "Other": [[None, "y"]]})
    with openpyxl_workbook(data, data_only=True, read_only=False) as wb:
        assert wb.sheetnames == ["Data", "Other"]
        assert wb["Other"]["B1"].value == "y"


def test_openpyxl_workbook_read_only_mode(make_xlsx) -> None:
    data = make_xlsx({"Data": [["x"]]})
    with openpyxl_workbook(data, data_only=True, read_only=True) as wb:
        assert wb.read_only
        assert [row for row in wb["Data"].iter_rows(values_only=True)] == [("x",)]


def test_xlrd_workbook_opens_bytes() -> None:
    data = write_xls(
        Workbook(sheet_names=["Only"], sheets={"Only": Sheet(cells={(0, 0): "v"})})
    )
    with xlrd_workbook(data) as book:
        assert book.sheet_names() == ["Only"]
        assert book.sheet_by_index(0).cell_value(0, 0) == "v"


class _ClosableBook:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_openpyxl_workbook_silences_dropped_feature_warnings(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    book = _ClosableBook()

    def _load_workbook(stream: object, **kwargs: object) -> _ClosableBook:
        for message in (
            "Data Validation extension is not supported and will be removed",
            "Cannot parse header or footer so it will be ignored",
            "Some other openpyxl problem",
        ):
            warnings.warn_explicit(
                message,
                UserWarning,
                "_reader.py",
                1,
                module="openpyxl.worksheet._reader",
            )
        return book

    monkeypatch.setattr(workbook_io, "load_workbook", _load_workbook)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        with workbook_io.openpyxl_workbook(b"", data_only=True, read_only=False) as wb:
            assert wb is book
    assert [str(item.message) for item in caught] == ["Some other openpyxl problem"]
    assert book.closed
