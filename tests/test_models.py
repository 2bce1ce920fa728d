from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError
import pytest

from sheetgrid.models import Grid, Sheet, Workbook, coerce_cell_value


def test_sheet_drops_empty_values() -> None:
    sheet = Sheet(cells={(0, 0): "a", (0, 1): "", (1, 0): None, (2, 2): 0})
    assert sheet.cells == {(0, 0): "a", (2, 2): 0}


def test_sheet_keeps_bool_values() -> None:
    sheet = Sheet(cells={(0, 0): True, (0, 1): False})
    assert sheet.cells[(0, 0)] is True
    assert sheet.cells[(0, 1)] is False


def test_sheet_rejects_negative_coordinates() -> None:
    with pytest.raises(ValidationError):
        Sheet(cells={(-1, 0): "x"})


def test_sheet_extent_and_row() -> None:
    sheet = Sheet(cells={(0, 0): "a", (3, 1): "b", (3, 4): "c"})
    assert sheet.max_row == 3
    assert sheet.max_col == 4
    assert sheet.row(3) == {1: "b", 4: "c"}
    assert sheet.row(1) == {}
    empty = Sheet()
    assert empty.is_empty
    assert empty.max_row == -1
    assert empty.max_col == -1


def test_workbook_validates_sheet_index() -> None:
    with pytest.raises(ValidationError, match="at least one sheet"):
        Workbook(sheet_names=[], sheets={})
    with pytest.raises(ValidationError, match="Duplicate sheet names"):
        Workbook(sheet_names=["A", "A"], sheets={"A": Sheet()})
    with pytest.raises(ValidationError, match="disagree"):
        Workbook(sheet_names=["A"], sheets={"B": Sheet()})


def test_workbook_get_and_replace_sheet() -> None:
    workbook = Workbook(sheet_names=["B", "A"], sheets={"A": Sheet(), "B": Sheet()})
    replacement = Sheet(cells={(0, 0): "x"})
    workbook.replace_sheet("A", replacement)
    assert workbook.get_sheet("A") == replacement
    assert workbook.sheet_names == ["B", "A"]
    with pytest.raises(KeyError, match="Sheet not found"):
        workbook.get_sheet("C")
    with pytest.raises(KeyError, match="Sheet not found"):
        workbook.replace_sheet("C", replacement)


def test_coerce_cell_value() -> None:
    assert coerce_cell_value(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
    assert coerce_cell_value(date(2024, 1, 2)) == "2024-01-02"
    assert coerce_cell_value(Decimal("1.25")) == 1.25
    assert coerce_cell_value(True) is True
    assert coerce_cell_value(None) is None
    assert coerce_cell_value(Path("a") / "b") == str(Path("a") / "b")


def test_grid_columns_are_labelled() -> None:
    grid = Grid(rows=[[None] * 28], column_count=28)
    labels = [column.label for column in grid.columns]
    assert labels[0] == "A"
    assert labels[26:] == ["AA", "AB"]
    with pytest.raises(ValidationError):
        Grid(column_count=-1)
