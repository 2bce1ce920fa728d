"""Export multiplexer: dispatch a workbook to the serializer for a format.

Multi-sheet policy per format:

- ``xlsx`` / ``xls``: every sheet, in stored order, under its own name.
- ``html``: one ``<table>`` per sheet, in stored order, captioned by name.
- ``csv``: delimited text holds a single sheet, so only the active sheet is
  written (the first sheet when no active sheet is given).
"""

from __future__ import annotations

import logging
from typing import Literal, cast

from pydantic import BaseModel

from .codec.writer import write_csv, write_html, write_xls, write_xlsx
from .config import EXPORT_BASENAME
from .errors import ExportError
from .models import Workbook

logger = logging.getLogger(__name__)

ExportFormat = Literal["xlsx", "xls", "csv", "html"]
EXPORT_FORMATS: tuple[ExportFormat, ...] = ("xlsx", "xls", "csv", "html")
SINGLE_SHEET_FORMATS: frozenset[ExportFormat] = frozenset({"csv"})

MEDIA_TYPES: dict[ExportFormat, str] = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "xls": "application/vnd.ms-excel",
    "csv": "text/csv",
    "html": "text/html",
}


class ExportResult(BaseModel):
    """Serialized workbook ready for download."""

    format: ExportFormat  # noqa: A003
    filename: str
    media_type: str
    content: bytes
    sheet_names: list[str]


def resolve_format(value: str) -> ExportFormat:
    """Normalize user input ("XLSX", ".csv") into a supported export format.

    Raises:
        ExportError: If the format is not supported.
    """
    normalized = value.strip().lower().lstrip(".")
    if normalized not in EXPORT_FORMATS:
        supported = ", ".join(EXPORT_FORMATS)
        raise ExportError(
            "unsupported_format",
            f"Unsupported export format: {value}. Supported formats: {supported}.",
        )
    return cast(ExportFormat, normalized)


def export_filename(fmt: ExportFormat, basename: str = EXPORT_BASENAME) -> str:
    """Return the download filename for a format."""
    return f"{basename}.{fmt}"


def exported_sheet_names(
    workbook: Workbook, fmt: ExportFormat, *, active_sheet: str | None = None
) -> list[str]:
    """Return the sheets a format will contain, in output order."""
    if fmt in SINGLE_SHEET_FORMATS:
        return [_single_sheet_name(workbook, active_sheet)]
    return list(workbook.sheet_names)


def export_workbook(
    workbook: Workbook, fmt: str, *, active_sheet: str | None = None
) -> bytes:
    """Serialize a workbook into the requested format.

    Args:
        workbook: Workbook to serialize.
        fmt: Export format name.
        active_sheet: Sheet used by single-sheet formats.

    Returns:
        Serialized file contents.

    Raises:
        ExportError: If the format is unsupported or serialization fails.
    """
    resolved = resolve_format(fmt)
    target = _single_sheet_name(workbook, active_sheet)
    logger.debug(
        "Exporting %s with sheets %s",
        resolved,
        exported_sheet_names(workbook, resolved, active_sheet=target),
    )
    try:
        if resolved == "xlsx":
            return write_xlsx(workbook)
        if resolved == "xls":
            return write_xls(workbook)
        if resolved == "csv":
            return write_csv(workbook.get_sheet(target))
        return write_html(workbook)
    except Exception as exc:
        logger.error("Export to %s failed: %s", resolved, exc)
        raise ExportError(
            "serialization_failure", f"Failed to write {resolved}: {exc}"
        ) from exc


def _single_sheet_name(workbook: Workbook, active_sheet: str | None) -> str:
    if active_sheet is None:
        return workbook.sheet_names[0]
    if active_sheet not in workbook.sheets:
        raise ExportError(
            "serialization_failure", f"Sheet not found: {active_sheet}"
        )
    return active_sheet
