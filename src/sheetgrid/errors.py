from __future__ import annotations

from typing import Literal
from urllib.parse import quote

from pydantic import BaseModel

ErrorKind = Literal["parse", "export", "precondition"]
ParseFailureReason = Literal["malformed", "unsupported", "timeout", "cancelled"]
ExportFailureReason = Literal["unsupported_format", "serialization_failure"]

REPORT_SUBJECT = "Spreadsheet Session Error"

_PARSE_TITLES: dict[ParseFailureReason, str] = {
    "malformed": "This file does not appear to be a valid spreadsheet",
    "unsupported": "This file does not appear to be a valid spreadsheet",
    "timeout": "Timeout",
    "cancelled": "Loading cancelled",
}
_EXPORT_TITLES: dict[ExportFailureReason, str] = {
    "unsupported_format": "Unsupported export format",
    "serialization_failure": "Export failed",
}


class ErrorDetail(BaseModel):
    """Structured error details for session failures."""

    kind: ErrorKind
    reason: str | None = None
    message: str
    size: int | None = None


class ErrorReport(BaseModel):
    """User-forwardable report built from a failure."""

    subject: str
    body: str

    def mailto(self, address: str) -> str:
        """Return a mailto link carrying the report."""
        return f"mailto:{address}?subject={quote(self.subject)}&body={quote(self.body)}"


class SheetgridError(Exception):
    """Base error carrying a structured detail."""

    def __init__(self, detail: ErrorDetail) -> None:
        super().__init__(detail.message)
        self.detail = detail

    @property
    def message(self) -> str:
        return self.detail.message

    @property
    def title(self) -> str:
        return "Error"

    def report(self) -> ErrorReport:
        """Build a report body from the diagnostic message."""
        return ErrorReport(subject=REPORT_SUBJECT, body=self.detail.message)


class ParseError(SheetgridError, ValueError):
    """Parsing failed, timed out, or was cancelled."""

    def __init__(
        self, reason: ParseFailureReason, message: str, *, size: int | None = None
    ) -> None:
        super().__init__(
            ErrorDetail(kind="parse", reason=reason, message=message, size=size)
        )
        self.reason: ParseFailureReason = reason

    @property
    def title(self) -> str:
        return _PARSE_TITLES[self.reason]

    def report(self) -> ErrorReport:
        if self.reason == "timeout" and self.detail.size is not None:
            return ErrorReport(
                subject=REPORT_SUBJECT,
                body=f"Timeout on file of size {self.detail.size} bytes",
            )
        return super().report()


class ExportError(SheetgridError, ValueError):
    """Workbook export failed."""

    def __init__(self, reason: ExportFailureReason, message: str) -> None:
        super().__init__(ErrorDetail(kind="export", reason=reason, message=message))
        self.reason: ExportFailureReason = reason

    @property
    def title(self) -> str:
        return _EXPORT_TITLES[self.reason]


class PreconditionError(SheetgridError, RuntimeError):
    """Operation requested in a state that does not allow it."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorDetail(kind="precondition", message=message))


class SessionBusyError(PreconditionError):
    """Raised when an operation is requested while the session is busy."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Cannot run {operation} while another operation is in progress."
        )
        self.operation = operation


class SchedulerBusyError(PreconditionError):
    """Raised when a parse is submitted while another is pending."""

    def __init__(self) -> None:
        super().__init__("A parse is already in progress.")


class NoWorkbookError(PreconditionError):
    """Raised when an operation needs a loaded workbook."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Cannot run {operation}: no workbook is loaded.")
        self.operation = operation


class UnknownSheetError(PreconditionError):
    """Raised when a sheet name is not part of the workbook."""

    def __init__(self, name: str, available: list[str]) -> None:
        names = ", ".join(available)
        super().__init__(f"Sheet not found: {name}. Available sheets: {names}.")
        self.name = name
