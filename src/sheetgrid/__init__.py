"""Spreadsheet editing session core: load, edit one sheet at a time, export."""

from __future__ import annotations

from .codec.reader import parse_workbook
from .config import SessionConfig, configure_logging
from .core.convert import from_grid, to_grid
from .errors import (
    ErrorReport,
    ExportError,
    NoWorkbookError,
    ParseError,
    PreconditionError,
    SchedulerBusyError,
    SessionBusyError,
    SheetgridError,
    UnknownSheetError,
)
from .export import ExportFormat, ExportResult, export_workbook
from .models import CellValue, ColumnDescriptor, Grid, Sheet, Workbook
from .scheduler import ParseHandle, ParseScheduler
from .session import Session, SessionState, SizeWarning
from .shared.a1 import column_label

__all__ = [
    "CellValue",
    "ColumnDescriptor",
    "ErrorReport",
    "ExportError",
    "ExportFormat",
    "ExportResult",
    "Grid",
    "NoWorkbookError",
    "ParseError",
    "ParseHandle",
    "ParseScheduler",
    "PreconditionError",
    "SchedulerBusyError",
    "Session",
    "SessionBusyError",
    "SessionConfig",
    "SessionState",
    "Sheet",
    "SheetgridError",
    "SizeWarning",
    "UnknownSheetError",
    "Workbook",
    "column_label",
    "configure_logging",
    "export_workbook",
    "from_grid",
    "parse_workbook",
    "to_grid",
]
