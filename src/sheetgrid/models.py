from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import TypeAlias

from pydantic import BaseModel, Field, field_validator, model_validator

from .shared.a1 import column_label

CellValue: TypeAlias = str | int | float | bool | None
CellCoordinate: TypeAlias = tuple[int, int]
GridRow: TypeAlias = list[CellValue]


def is_empty_value(value: object) -> bool:
    """Return True for values a sheet does not store (None and "")."""
    return value is None or value == ""


def coerce_cell_value(value: object) -> CellValue:
    """Normalize a codec value into a scalar cell value."""
    if value is None or isinstance(value, str | bool | int | float):
        return value
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


class Sheet(BaseModel):
    """Sparse worksheet: zero-based (row, col) -> non-empty cell value."""

    cells: dict[CellCoordinate, CellValue] = Field(default_factory=dict)

    @field_validator("cells")
    @classmethod
    def _drop_empty_cells(
        cls, value: dict[CellCoordinate, CellValue]
    ) -> dict[CellCoordinate, CellValue]:
        for row, col in value:
            if row < 0 or col < 0:
                raise ValueError(f"Cell coordinate must be non-negative: ({row}, {col})")
        return {
            coord: cell for coord, cell in value.items() if not is_empty_value(cell)
        }

    @property
    def is_empty(self) -> bool:
        return not self.cells

    @property
    def max_row(self) -> int:
        """Largest populated row index, -1 for an empty sheet."""
        return max((row for row, _ in self.cells), default=-1)

    @property
    def max_col(self) -> int:
        """Largest populated column index, -1 for an empty sheet."""
        return max((col for _, col in self.cells), default=-1)

    def row(self, index: int) -> dict[int, CellValue]:
        """Return populated cells of one row keyed by column index."""
        return {col: value for (row, col), value in self.cells.items() if row == index}


class Workbook(BaseModel):
    """Ordered collection of named sparse sheets."""

    sheet_names: list[str]
    sheets: dict[str, Sheet]

    @model_validator(mode="after")
    def _check_sheet_index(self) -> Workbook:
        if not self.sheet_names:
            raise ValueError("Workbook must contain at least one sheet.")
        if len(set(self.sheet_names)) != len(self.sheet_names):
            raise ValueError(f"Duplicate sheet names: {self.sheet_names}")
        if set(self.sheet_names) != set(self.sheets):
            raise ValueError(
                "Sheet order and sheet mapping disagree. "
                f"order={self.sheet_names}, mapping={sorted(self.sheets)}"
            )
        return self

    def get_sheet(self, name: str) -> Sheet:
        """Return the sheet registered under name."""
        try:
            return self.sheets[name]
        except KeyError:
            raise KeyError(f"Sheet not found: {name}") from None

    def replace_sheet(self, name: str, sheet: Sheet) -> None:
        """Replace the contents of an existing sheet, keeping its position."""
        if name not in self.sheets:
            raise KeyError(f"Sheet not found: {name}")
        self.sheets[name] = sheet


class ColumnDescriptor(BaseModel):
    """Derived grid column: positional key plus its spreadsheet label."""

    key: int
    label: str


class Grid(BaseModel):
    """Dense editable view of exactly one sheet."""

    rows: list[GridRow] = Field(default_factory=list)
    column_count: int = Field(default=0, ge=0)

    @property
    def columns(self) -> list[ColumnDescriptor]:
        return [
            ColumnDescriptor(key=index, label=column_label(index))
            for index in range(self.column_count)
        ]

    @property
    def column_keys(self) -> list[int]:
        return list(range(self.column_count))
