"""Conversion between sparse sheets and dense editable grids."""

from __future__ import annotations

from collections.abc import Sequence

from sheetgrid.models import CellCoordinate, CellValue, Grid, GridRow, Sheet, is_empty_value


def to_grid(sheet: Sheet) -> Grid:
    """Materialize a sparse sheet as a dense grid.

    One row is produced for every index from 0 to the last populated row,
    empty rows included. ``column_count`` follows the widest observed row
    (the largest number of populated cells in a single row), so it can be
    smaller than the last populated column index. Rows are padded to
    ``column_count`` and additionally keep any cell lying past it at its
    own index.

    Args:
        sheet: Sparse sheet to materialize.

    Returns:
        Grid view of the sheet.
    """
    if sheet.is_empty:
        return Grid(rows=[], column_count=0)

    by_row: dict[int, dict[int, CellValue]] = {}
    for (row, col), value in sheet.cells.items():
        by_row.setdefault(row, {})[col] = value

    column_count = max(len(cols) for cols in by_row.values())
    rows: list[GridRow] = []
    for row in range(sheet.max_row + 1):
        cols = by_row.get(row, {})
        width = max(column_count, max(cols, default=-1) + 1)
        dense: GridRow = [None] * width
        for col, value in cols.items():
            dense[col] = value
        rows.append(dense)
    return Grid(rows=rows, column_count=column_count)


def from_grid(
    rows: Sequence[Sequence[CellValue]],
    column_keys: Sequence[int] | None = None,
) -> Sheet:
    """Rebuild a sparse sheet from grid rows.

    Position ``j`` of a row is stored at column ``column_keys[j]``; positions
    past the end of ``column_keys`` keep their own index. Cells holding
    ``None`` or ``""`` are omitted.

    Args:
        rows: Grid rows.
        column_keys: Positional column index assignment. Defaults to
            ``0..N-1`` for the widest row.

    Returns:
        Sparse sheet.
    """
    keys = list(column_keys) if column_keys is not None else []
    cells: dict[CellCoordinate, CellValue] = {}
    for row_index, row in enumerate(rows):
        for position, value in enumerate(row):
            if is_empty_value(value):
                continue
            col = keys[position] if position < len(keys) else position
            cells[(row_index, col)] = value
    return Sheet(cells=cells)
