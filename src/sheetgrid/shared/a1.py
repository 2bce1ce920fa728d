from __future__ import annotations

import re

_COLUMN_LABEL_PATTERN = re.compile(r"^[A-Za-z]+$")


def column_label(index: int) -> str:
    """Convert a zero-based column index to its spreadsheet label (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative: {index}")
    chunks: list[str] = []
    current = index + 1
    while current > 0:
        current -= 1
        chunks.append(chr(ord("A") + (current % 26)))
        current //= 26
    return "".join(reversed(chunks))


def column_index(label: str) -> int:
    """Convert a spreadsheet column label (A/AA) to a zero-based index."""
    normalized = label.strip().upper()
    if not _COLUMN_LABEL_PATTERN.match(normalized):
        raise ValueError(f"Invalid column label: {label}")
    index = 0
    for char in normalized:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def format_cell(row: int, col: int) -> str:
    """Format zero-based row/column as an A1 cell address."""
    if row < 0:
        raise ValueError(f"Row index must be non-negative: {row}")
    return f"{column_label(col)}{row + 1}"
