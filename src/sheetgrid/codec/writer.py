"""Workbook serializers for the supported export containers."""

from __future__ import annotations

import csv
from html import escape
from io import BytesIO, StringIO

from openpyxl import Workbook as OpenpyxlWorkbook
import xlwt

from sheetgrid.models import CellValue, Sheet, Workbook


def dense_rows(sheet: Sheet) -> list[list[CellValue]]:
    """Return the sheet as a rectangle spanning its full row/column extent."""
    width = sheet.max_col + 1
    rows: list[list[CellValue]] = [[None] * width for _ in range(sheet.max_row + 1)]
    for (row, col), value in sheet.cells.items():
        rows[row][col] = value
    return rows


def format_text(value: CellValue) -> str:
    """Render a cell value as plain text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def write_xlsx(workbook: Workbook) -> bytes:
    """Serialize every sheet, in order, into an Office Open XML workbook."""
    book = OpenpyxlWorkbook()
    book.remove(book.active)
    for name in workbook.sheet_names:
        ws = book.create_sheet(title=name)
        for (row, col), value in sorted(workbook.sheets[name].cells.items()):
            cell = ws.cell(row=row + 1, column=col + 1, value=value)
            if isinstance(value, str) and value.startswith("="):
                # keep formula-looking text as literal text
                cell.data_type = "s"
    stream = BytesIO()
    book.save(stream)
    return stream.getvalue()


def write_xls(workbook: Workbook) -> bytes:
    """Serialize every sheet, in order, into a legacy BIFF8 workbook."""
    book = xlwt.Workbook(encoding="utf-8")
    for name in workbook.sheet_names:
        ws = book.add_sheet(name, cell_overwrite_ok=True)
        for (row, col), value in sorted(workbook.sheets[name].cells.items()):
            ws.write(row, col, value)
    stream = BytesIO()
    book.save(stream)
    return stream.getvalue()


def write_csv(sheet: Sheet) -> bytes:
    """Serialize one sheet as UTF-8 comma-separated text."""
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in dense_rows(sheet):
        writer.writerow([format_text(value) for value in row])
    return buffer.getvalue().encode("utf-8")


def write_html(workbook: Workbook, *, title: str = "Workbook") -> bytes:
    """Serialize every sheet, in order, as one HTML table per sheet."""
    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{escape(title)}</title>",
        "</head>",
        "<body>",
    ]
    for name in workbook.sheet_names:
        parts.append(_table_html(name, workbook.sheets[name]))
    parts.extend(["</body>", "</html>"])
    return "\n".join(parts).encode("utf-8")


def _table_html(name: str, sheet: Sheet) -> str:
    html_parts = [f'<table data-sheet="{escape(name)}">', f"<caption>{escape(name)}</caption>"]
    for row in dense_rows(sheet):
        cells = "".join(
            f"<td>{escape(format_text(value)).replace(chr(10), '<br>')}</td>"
            for value in row
        )
        html_parts.append(f"<tr>{cells}</tr>")
    html_parts.append("</table>")
    return "\n".join(html_parts)
