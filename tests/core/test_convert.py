from __future__ import annotations

import random

from sheetgrid.core.convert import from_grid, to_grid
from sheetgrid.models import CellValue, Sheet


def _random_sheet(rng: random.Random) -> Sheet:
    values: list[CellValue] = ["text", 0, 7, -2.5, True, False, "=A1", " "]
    cells = {
        (rng.randrange(12), rng.randrange(9)): rng.choice(values)
        for _ in range(rng.randrange(0, 30))
    }
    return Sheet(cells=cells)


def test_to_grid_empty_sheet() -> None:
    grid = to_grid(Sheet())
    assert grid.rows == []
    assert grid.column_count == 0
    assert grid.columns == []


def test_to_grid_rectangular_sheet() -> None:
    sheet = Sheet(cells={(0, 0): "name", (0, 1): "qty", (1, 0): "widget", (1, 1): 3})
    grid = to_grid(sheet)
    assert grid.rows == [["name", "qty"], ["widget", 3]]
    assert grid.column_count == 2
    assert [column.label for column in grid.columns] == ["A", "B"]
    assert grid.column_keys == [0, 1]


def test_to_grid_keeps_empty_rows_between_populated_ones() -> None:
    sheet = Sheet(cells={(0, 0): "a", (0, 1): "b", (2, 0): "c"})
    grid = to_grid(sheet)
    assert grid.rows == [["a", "b"], [None, None], ["c", None]]
    assert grid.column_count == 2


def test_column_count_follows_widest_row() -> None:
    sheet = Sheet(cells={(0, 0): 1, (1, 3): 2})
    grid = to_grid(sheet)
    assert grid.column_count == 1
    assert grid.rows[0] == [1]
    assert grid.rows[1] == [None, None, None, 2]


def test_sparse_cell_past_column_count_is_not_lost() -> None:
    sheet = Sheet(cells={(0, 0): "x", (0, 1): "y", (3, 6): "far"})
    grid = to_grid(sheet)
    assert grid.column_count == 2
    assert grid.rows[3][6] == "far"
    assert from_grid(grid.rows, grid.column_keys) == sheet


def test_from_grid_elides_empty_cells() -> None:
    sheet = from_grid([["a", None, ""], [None, None, None], [0, False, "b"]])
    assert sheet.cells == {(0, 0): "a", (2, 0): 0, (2, 1): False, (2, 2): "b"}


def test_from_grid_applies_column_keys() -> None:
    sheet = from_grid([["x", "y", "z"]], column_keys=[4, 1])
    assert sheet.cells == {(0, 4): "x", (0, 1): "y", (0, 2): "z"}


def test_round_trip_preserves_random_sheets() -> None:
    rng = random.Random(20240611)
    for _ in range(200):
        sheet = _random_sheet(rng)
        grid = to_grid(sheet)
        assert from_grid(grid.rows, grid.column_keys) == sheet


def test_to_grid_does_not_mutate_sheet() -> None:
    sheet = Sheet(cells={(1, 1): "b"})
    snapshot = dict(sheet.cells)
    grid = to_grid(sheet)
    grid.rows[1][1] = "changed"
    assert sheet.cells == snapshot
