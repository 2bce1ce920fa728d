"""Default workbook parser: detects the container from content and reads it."""

from __future__ import annotations

import codecs
import csv
from dataclasses import dataclass, field
from html.parser import HTMLParser
from io import BytesIO, StringIO
import logging
import re
from typing import Any
import zipfile

import chardet
import xlrd

from sheetgrid.core.workbook import openpyxl_workbook, xlrd_workbook
from sheetgrid.errors import ParseError
from sheetgrid.models import CellCoordinate, CellValue, Sheet, Workbook, coerce_cell_value

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "Sheet1"

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_TEXT_SAMPLE_BYTES = 4096
_ENCODING_SAMPLE_BYTES = 65_536
_MIN_ENCODING_CONFIDENCE = 0.5
_WIDE_BOMS = (
    codecs.BOM_UTF32_LE,
    codecs.BOM_UTF32_BE,
    codecs.BOM_UTF16_LE,
    codecs.BOM_UTF16_BE,
)
_DELIMITERS = ",;\t|"
_INT_PATTERN = re.compile(r"^[+-]?(?:0|[1-9][0-9]*)$")
_FLOAT_PATTERN = re.compile(r"^[+-]?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?$")


def parse_workbook(data: bytes) -> Workbook:
    """Parse spreadsheet bytes into a workbook.

    The container is detected from content: Office Open XML (ZIP), legacy
    BIFF (OLE2), HTML tables, or delimited text.

    Args:
        data: Raw file contents.

    Returns:
        Parsed workbook.

    Raises:
        ParseError: If the payload is malformed or not a supported format.
    """
    size = len(data)
    if not data:
        raise ParseError("malformed", "File is empty.", size=size)
    if data.startswith(_ZIP_MAGIC):
        logger.debug("Detected ZIP container (%d bytes).", size)
        return _parse_zip(data)
    if data.startswith(_OLE_MAGIC):
        logger.debug("Detected OLE2 container (%d bytes).", size)
        return _parse_xls(data)
    # UTF-16/32 text is full of NUL bytes; only a byte order mark vouches for it
    if not data.startswith(_WIDE_BOMS) and b"\x00" in data[:_TEXT_SAMPLE_BYTES]:
        raise ParseError(
            "unsupported",
            "Binary content is not a recognized spreadsheet format.",
            size=size,
        )
    text = _decode_text(data)
    if _looks_like_html(text):
        logger.debug("Detected HTML tables (%d bytes).", size)
        return _parse_html(text)
    logger.debug("Reading payload as delimited text (%d bytes).", size)
    return _parse_delimited(text)


def _parse_zip(data: bytes) -> Workbook:
    """Read an Office Open XML workbook via openpyxl."""
    try:
        with zipfile.ZipFile(BytesIO(data)) as archive:
            members = set(archive.namelist())
    except zipfile.BadZipFile as exc:
        raise ParseError("malformed", f"Corrupt ZIP container: {exc}", size=len(data)) from exc
    if "xl/workbook.bin" in members:
        raise ParseError(
            "unsupported",
            "Binary workbook (.xlsb) input is not supported.",
            size=len(data),
        )
    if "xl/workbook.xml" not in members:
        raise ParseError(
            "unsupported",
            "ZIP container is not a spreadsheet workbook.",
            size=len(data),
        )
    names: list[str] = []
    sheets: dict[str, Sheet] = {}
    try:
        with openpyxl_workbook(data, data_only=True, read_only=False) as wb:
            for ws in wb.worksheets:
                names.append(ws.title)
                sheets[ws.title] = _sheet_from_openpyxl(ws)
    except Exception as exc:
        raise ParseError("malformed", f"Failed to read workbook: {exc}", size=len(data)) from exc
    return _build_workbook(names, sheets, size=len(data))


def _sheet_from_openpyxl(ws: Any) -> Sheet:
    cells: dict[CellCoordinate, CellValue] = {}
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            cells[(cell.row - 1, cell.column - 1)] = coerce_cell_value(cell.value)
    return Sheet(cells=cells)


def _parse_xls(data: bytes) -> Workbook:
    """Read a legacy BIFF workbook via xlrd."""
    names: list[str] = []
    sheets: dict[str, Sheet] = {}
    try:
        with xlrd_workbook(data) as book:
            for ws in book.sheets():
                names.append(ws.name)
                sheets[ws.name] = _sheet_from_xlrd(ws, book.datemode)
    except Exception as exc:
        raise ParseError("malformed", f"Failed to read workbook: {exc}", size=len(data)) from exc
    return _build_workbook(names, sheets, size=len(data))


def _sheet_from_xlrd(ws: Any, datemode: int) -> Sheet:
    cells: dict[CellCoordinate, CellValue] = {}
    for row in range(ws.nrows):
        for col in range(ws.ncols):
            value = _xlrd_value(ws.cell(row, col), datemode)
            if value is not None:
                cells[(row, col)] = value
    return Sheet(cells=cells)


def _xlrd_value(cell: Any, datemode: int) -> CellValue:
    """Map an xlrd cell to a scalar cell value."""
    ctype = cell.ctype
    if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if ctype == xlrd.XL_CELL_NUMBER:
        return _narrow_number(cell.value)
    if ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate_as_datetime(cell.value, datemode).isoformat()
        except xlrd.xldate.XLDateError:
            return _narrow_number(cell.value)
    if ctype == xlrd.XL_CELL_ERROR:
        return xlrd.error_text_from_code.get(cell.value, "#N/A")
    return coerce_cell_value(cell.value)


def _narrow_number(value: float) -> int | float:
    """Return integral floats as int (BIFF stores every number as float)."""
    if value.is_integer():
        return int(value)
    return value


def _decode_text(data: bytes) -> str:
    """Decode a text payload.

    Valid UTF-8 (with or without BOM) wins outright. Otherwise chardet picks
    the encoding from a leading sample, and when it is unsure the common
    single-byte code pages are tried in order.
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass
    encoding, confidence = _detect_encoding(data)
    if encoding is not None:
        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug("Detected encoding %s does not decode the payload.", encoding)
        else:
            logger.debug("Decoded text as %s (confidence %.2f).", encoding, confidence)
            return text.removeprefix("\ufeff")
    try:
        text = data.decode("cp1252")
    except UnicodeDecodeError:
        logger.debug("Decoding text as latin-1.")
        return data.decode("latin-1")
    logger.debug("Decoded text as cp1252.")
    return text


def _detect_encoding(data: bytes) -> tuple[str | None, float]:
    """Return chardet's guess for the payload, or None below the confidence floor."""
    result = chardet.detect(data[:_ENCODING_SAMPLE_BYTES])
    encoding = result.get("encoding")
    confidence = result.get("confidence") or 0.0
    if encoding and confidence >= _MIN_ENCODING_CONFIDENCE:
        return encoding, confidence
    logger.debug("Encoding detection inconclusive (%s, %.2f).", encoding, confidence)
    return None, confidence


def _looks_like_html(text: str) -> bool:
    head = text.lstrip()
    return head.startswith("<") and "<table" in head.lower()


def _parse_delimited(text: str) -> Workbook:
    """Read delimited text into a single sheet."""
    try:
        delimiter = csv.Sniffer().sniff(text[:_TEXT_SAMPLE_BYTES], delimiters=_DELIMITERS).delimiter
    except csv.Error:
        delimiter = ","
    cells: dict[CellCoordinate, CellValue] = {}
    try:
        for row, record in enumerate(csv.reader(StringIO(text), delimiter=delimiter)):
            for col, raw in enumerate(record):
                value = coerce_text_value(raw)
                if value is not None:
                    cells[(row, col)] = value
    except csv.Error as exc:
        raise ParseError("malformed", f"Invalid delimited text: {exc}", size=len(text)) from exc
    return _build_workbook(
        [DEFAULT_SHEET_NAME], {DEFAULT_SHEET_NAME: Sheet(cells=cells)}, size=len(text)
    )


def coerce_text_value(raw: str) -> CellValue:
    """Convert a text field to a typed cell value.

    Empty text is None, TRUE/FALSE (any case) are booleans and plain numerals
    are numbers; anything else, including zero-padded codes, stays text.
    """
    if raw == "":
        return None
    upper = raw.upper()
    if upper == "TRUE":
        return True
    if upper == "FALSE":
        return False
    if _INT_PATTERN.match(raw):
        return int(raw)
    if _FLOAT_PATTERN.match(raw):
        return float(raw)
    return raw


@dataclass
class _HtmlTable:
    caption: str | None = None
    rows: list[list[str]] = field(default_factory=list)


class _TableCollector(HTMLParser):
    """Collect top-level <table> elements as rows of cell text."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.tables: list[_HtmlTable] = []
        self._depth = 0
        self._row: list[str] | None = None
        self._cell: list[str] | None = None
        self._colspan = 1
        self._caption: list[str] | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "table":
            self._depth += 1
            if self._depth == 1:
                self.tables.append(_HtmlTable())
            return
        if self._depth != 1:
            return
        if tag == "caption":
            self._caption = []
        elif tag == "tr":
            self._finish_row()
            self._row = []
        elif tag in ("td", "th"):
            self._finish_cell()
            if self._row is None:
                self._row = []
            self._cell = []
            self._colspan = _span(dict(attrs).get("colspan"))
        elif tag == "br" and self._cell is not None:
            self._cell.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag == "table":
            if self._depth == 1:
                self._finish_row()
            self._depth = max(self._depth - 1, 0)
            return
        if self._depth != 1:
            return
        if tag == "caption" and self._caption is not None:
            self.tables[-1].caption = "".join(self._caption).strip()
            self._caption = None
        elif tag in ("td", "th"):
            self._finish_cell()
        elif tag == "tr":
            self._finish_row()

    def handle_data(self, data: str) -> None:
        if self._depth != 1:
            return
        if self._cell is not None:
            self._cell.append(data)
        elif self._caption is not None:
            self._caption.append(data)

    def _finish_cell(self) -> None:
        if self._cell is None or self._row is None:
            return
        self._row.append("".join(self._cell).strip())
        self._row.extend([""] * (self._colspan - 1))
        self._cell = None
        self._colspan = 1

    def _finish_row(self) -> None:
        self._finish_cell()
        if self._row is not None and self.tables:
            self.tables[-1].rows.append(self._row)
        self._row = None


def _span(value: str | None) -> int:
    try:
        return max(int(value or 1), 1)
    except ValueError:
        return 1


def _parse_html(text: str) -> Workbook:
    """Read every top-level HTML table as a sheet, in document order."""
    collector = _TableCollector()
    collector.feed(text)
    collector.close()
    names: list[str] = []
    sheets: dict[str, Sheet] = {}
    for index, table in enumerate(collector.tables, start=1):
        name = _unique_name(table.caption or f"Sheet{index}", sheets)
        cells: dict[CellCoordinate, CellValue] = {}
        for row, record in enumerate(table.rows):
            for col, raw in enumerate(record):
                value = coerce_text_value(raw)
                if value is not None:
                    cells[(row, col)] = value
        names.append(name)
        sheets[name] = Sheet(cells=cells)
    return _build_workbook(names, sheets, size=len(text))


def _unique_name(name: str, taken: dict[str, Sheet]) -> str:
    if name not in taken:
        return name
    for idx in range(2, 10_000):
        candidate = f"{name} ({idx})"
        if candidate not in taken:
            return candidate
    raise ParseError("malformed", f"Too many sheets named {name}.")


def _build_workbook(names: list[str], sheets: dict[str, Sheet], *, size: int) -> Workbook:
    if not names:
        raise ParseError("malformed", "Workbook contains no worksheets.", size=size)
    return Workbook(sheet_names=names, sheets=sheets)
