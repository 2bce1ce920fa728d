"""Editing session: owns the workbook, the current sheet, and its grid.

State is one of ``empty`` (no workbook), ``ready`` (workbook loaded, grid
materialized for the current sheet) or ``busy`` (a load, sheet switch or
export is in progress). Every request made while busy is rejected.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
import functools
import logging
from types import TracebackType
from typing import Literal

import anyio.to_thread
from pydantic import BaseModel

from .codec.reader import parse_workbook
from .config import SessionConfig
from .core.convert import from_grid, to_grid
from .errors import (
    NoWorkbookError,
    ParseError,
    SessionBusyError,
    UnknownSheetError,
)
from .export import (
    MEDIA_TYPES,
    ExportResult,
    export_filename,
    export_workbook,
    exported_sheet_names,
    resolve_format,
)
from .models import CellValue, ColumnDescriptor, Grid, Workbook, is_empty_value
from .scheduler import ParseHandle, Parser, ParseScheduler

logger = logging.getLogger(__name__)

SessionState = Literal["empty", "ready", "busy"]


class SizeWarning(BaseModel):
    """Advisory raised before loading a large payload."""

    size: int
    threshold: int

    @property
    def message(self) -> str:
        megabytes = self.size // 1_048_576
        return f"File is {megabytes} MB and reading may be slow."


class Session:
    """Spreadsheet editing session.

    Use as an async context manager; the background parse worker lives for
    the duration of the block::

        async with Session() as session:
            await session.load_file(data)
            session.edit_cell(0, 0, "X")
            await session.select_sheet("Sheet2")
            result = await session.export("xlsx")

    Args:
        config: Session configuration.
        parser: Optional parser replacing the default codec.
    """

    def __init__(
        self, config: SessionConfig | None = None, *, parser: Parser | None = None
    ) -> None:
        self._config = config or SessionConfig()
        self._scheduler = ParseScheduler(
            parser or parse_workbook,
            timeout=self._config.parse_timeout_seconds,
            worker=self._config.worker,
        )
        self._workbook: Workbook | None = None
        self._current: str | None = None
        self._grid = Grid()
        self._dirty = False
        self._busy = False

    async def __aenter__(self) -> Session:
        await self._scheduler.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        return await self._scheduler.__aexit__(exc_type, exc, tb)

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        if self._busy:
            return "busy"
        return "empty" if self._workbook is None else "ready"

    @property
    def workbook(self) -> Workbook | None:
        return self._workbook

    @property
    def sheet_names(self) -> list[str]:
        return list(self._workbook.sheet_names) if self._workbook else []

    @property
    def current_sheet(self) -> str | None:
        return self._current

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def columns(self) -> list[ColumnDescriptor]:
        return self._grid.columns

    @property
    def is_dirty(self) -> bool:
        """Whether the grid holds edits not yet flushed into its sheet."""
        return self._dirty

    @property
    def parse_handle(self) -> ParseHandle | None:
        """The in-flight parse, if any."""
        return self._scheduler.pending

    async def load_file(
        self,
        data: bytes,
        *,
        confirm_large: Callable[[SizeWarning], bool] | None = None,
    ) -> Workbook:
        """Parse a file and make its first sheet current.

        Args:
            data: Raw spreadsheet bytes.
            confirm_large: Called when the payload exceeds the size warning
                threshold; returning False aborts the load.

        Returns:
            The loaded workbook.

        Raises:
            SessionBusyError: If another operation is in progress.
            ParseError: If the load was declined, failed, or timed out. The
                previous workbook and grid are left untouched.
        """
        self._ensure_idle("load_file")
        size = len(data)
        if size > self._config.size_warning_bytes:
            warning = SizeWarning(size=size, threshold=self._config.size_warning_bytes)
            logger.warning("%s (%d bytes)", warning.message, size)
            if confirm_large is not None and not confirm_large(warning):
                logger.info("Load of %d bytes declined.", size)
                raise ParseError(
                    "cancelled", f"Loading a {size}-byte file was declined.", size=size
                )
        with self._busy_for("load_file"):
            handle = self._scheduler.submit(data)
            try:
                workbook = await self._scheduler.wait(handle)
            except ParseError as exc:
                logger.warning("Load failed (%s): %s", exc.reason, exc.message)
                raise
            finally:
                if not handle.done:
                    self._scheduler.cancel(handle)
            first = workbook.sheet_names[0]
            self._workbook = workbook
            self._current = first
            self._grid = to_grid(workbook.get_sheet(first))
            self._dirty = False
        logger.info("Loaded workbook with sheets %s.", workbook.sheet_names)
        return workbook

    async def select_sheet(self, name: str) -> Grid:
        """Flush pending edits and materialize another sheet.

        Raises:
            SessionBusyError: If another operation is in progress.
            NoWorkbookError: If no workbook is loaded.
            UnknownSheetError: If ``name`` is not a sheet of the workbook.
        """
        self._ensure_idle("select_sheet")
        workbook = self._require_workbook("select_sheet")
        if name not in workbook.sheets:
            raise UnknownSheetError(name, workbook.sheet_names)
        with self._busy_for("select_sheet"):
            self._flush()
            self._grid = to_grid(workbook.get_sheet(name))
            self._current = name
            self._dirty = False
        logger.debug(
            "Selected sheet %s (%d rows, %d columns).",
            name,
            len(self._grid.rows),
            self._grid.column_count,
        )
        return self._grid

    def edit_grid(self, rows: Sequence[Sequence[CellValue]]) -> None:
        """Replace the grid rows. Edits reach the sheet on the next flush.

        The column set is kept as materialized; use ``edit_cell`` to add a
        column.
        """
        self._replace_rows("edit_grid", rows, self._grid.column_count)

    def edit_cell(self, row: int, col: int, value: CellValue) -> None:
        """Set one grid cell, growing the grid when the cell lies outside it.

        A non-empty value written past the last column widens ``columns`` so
        the new column is displayed right away.
        """
        if row < 0 or col < 0:
            raise ValueError(f"Cell coordinate must be non-negative: ({row}, {col})")
        column_count = self._grid.column_count
        if not is_empty_value(value):
            column_count = max(column_count, col + 1)
        rows = [list(existing) for existing in self._grid.rows]
        while len(rows) <= row:
            rows.append([None] * column_count)
        target = rows[row]
        if len(target) <= col:
            target.extend([None] * (col + 1 - len(target)))
        target[col] = value
        self._replace_rows("edit_cell", rows, column_count)

    def _replace_rows(
        self, operation: str, rows: Sequence[Sequence[CellValue]], column_count: int
    ) -> None:
        self._ensure_idle(operation)
        self._require_workbook(operation)
        self._grid = Grid(rows=[list(row) for row in rows], column_count=column_count)
        self._dirty = True

    async def export(self, fmt: str, *, sheet: str | None = None) -> ExportResult:
        """Flush pending edits and serialize the whole workbook.

        Args:
            fmt: Export format (xlsx, xls, csv, html).
            sheet: Sheet written by single-sheet formats. Defaults to the
                current sheet.

        Raises:
            SessionBusyError: If another operation is in progress.
            NoWorkbookError: If no workbook is loaded.
            UnknownSheetError: If ``sheet`` is not a sheet of the workbook.
            ExportError: If the format is unsupported or serialization fails.
        """
        self._ensure_idle("export")
        workbook = self._require_workbook("export")
        resolved = resolve_format(fmt)
        target = sheet or self._current
        if target not in workbook.sheets:
            raise UnknownSheetError(str(target), workbook.sheet_names)
        with self._busy_for("export"):
            self._flush()
            work = functools.partial(
                export_workbook, workbook, resolved, active_sheet=target
            )
            content = await anyio.to_thread.run_sync(work)
        logger.info("Exported %s (%d bytes).", resolved, len(content))
        return ExportResult(
            format=resolved,
            filename=export_filename(resolved, self._config.export_basename),
            media_type=MEDIA_TYPES[resolved],
            content=content,
            sheet_names=exported_sheet_names(workbook, resolved, active_sheet=target),
        )

    def _flush(self) -> None:
        """Write grid edits back into the current sheet."""
        if not self._dirty or self._workbook is None or self._current is None:
            return
        sheet = from_grid(self._grid.rows, self._grid.column_keys)
        self._workbook.replace_sheet(self._current, sheet)
        self._dirty = False
        logger.debug("Flushed %d cells into %s.", len(sheet.cells), self._current)

    def _ensure_idle(self, operation: str) -> None:
        if self._busy:
            raise SessionBusyError(operation)

    def _require_workbook(self, operation: str) -> Workbook:
        if self._workbook is None:
            raise NoWorkbookError(operation)
        return self._workbook

    @contextmanager
    def _busy_for(self, operation: str) -> Iterator[None]:
        self._ensure_idle(operation)
        self._busy = True
        logger.debug("Session busy: %s", operation)
        try:
            yield
        finally:
            self._busy = False
