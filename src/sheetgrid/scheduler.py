"""Background parse scheduling with a submission-time deadline."""

from __future__ import annotations

from collections.abc import Callable
import itertools
import logging
from types import TracebackType
from typing import TypeAlias

import anyio
from anyio.abc import TaskGroup
import anyio.to_process
import anyio.to_thread
from pydantic import BaseModel

from .codec.reader import parse_workbook
from .config import PARSE_TIMEOUT_SECONDS, WorkerKind
from .errors import ParseError, ParseFailureReason, SchedulerBusyError
from .models import Workbook

logger = logging.getLogger(__name__)

Parser: TypeAlias = Callable[[bytes], Workbook]


class ParseFailure(BaseModel):
    """Parser failure carried back across the worker boundary."""

    reason: ParseFailureReason
    message: str


def run_parser(parser: Parser, data: bytes) -> Workbook | ParseFailure:
    """Invoke a parser inside a worker and capture its failure as data."""
    try:
        result = parser(data)
    except ParseError as exc:
        return ParseFailure(reason=exc.reason, message=exc.message)
    except Exception as exc:
        return ParseFailure(reason="malformed", message=str(exc) or type(exc).__name__)
    if not isinstance(result, Workbook):
        return ParseFailure(
            reason="malformed",
            message=f"Parser returned {type(result).__name__}, expected Workbook.",
        )
    return result


class ParseHandle:
    """Ticket for one submitted parse."""

    def __init__(self, handle_id: int, size: int, deadline: float) -> None:
        self.id = handle_id
        self.size = size
        self.deadline = deadline
        self.cancel_requested = False
        self._scope = anyio.CancelScope(deadline=deadline)
        self._finished = anyio.Event()
        self._workbook: Workbook | None = None
        self._error: ParseError | None = None

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    def cancel(self) -> None:
        if self.done:
            return
        self.cancel_requested = True
        self._scope.cancel()

    def _resolve(self, outcome: Workbook | ParseError) -> None:
        if isinstance(outcome, ParseError):
            self._error = outcome
        else:
            self._workbook = outcome
        self._finished.set()

    async def _result(self) -> Workbook:
        await self._finished.wait()
        if self._error is not None:
            raise self._error
        if self._workbook is None:
            raise ParseError("cancelled", "Parsing was cancelled.", size=self.size)
        return self._workbook


class ParseScheduler:
    """Run one parse at a time off the event loop, bounded by a timeout.

    The scheduler owns a task group, so it must be entered with
    ``async with`` before submitting work.

    Args:
        parser: Callable turning bytes into a workbook. Must be picklable
            when the process worker is used.
        timeout: Seconds allowed from submission to completion.
        worker: ``"process"`` kills the worker on timeout or cancel;
            ``"thread"`` abandons it.
    """

    def __init__(
        self,
        parser: Parser = parse_workbook,
        *,
        timeout: float = PARSE_TIMEOUT_SECONDS,
        worker: WorkerKind = "process",
    ) -> None:
        self._parser = parser
        self._timeout = timeout
        self._worker = worker
        self._task_group: TaskGroup | None = None
        self._pending: ParseHandle | None = None
        self._ids = itertools.count(1)

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def pending(self) -> ParseHandle | None:
        """The in-flight handle, if any."""
        return self._pending

    async def __aenter__(self) -> ParseScheduler:
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        if self._pending is not None:
            self._pending.cancel()
        task_group = self._task_group
        if task_group is None:
            raise RuntimeError("ParseScheduler is not running; use 'async with'.")
        self._task_group = None
        return await task_group.__aexit__(exc_type, exc, tb)

    def submit(self, data: bytes) -> ParseHandle:
        """Start parsing in the background.

        Raises:
            SchedulerBusyError: If a parse is already pending.
            RuntimeError: If the scheduler has not been entered.
        """
        if self._task_group is None:
            raise RuntimeError("ParseScheduler is not running; use 'async with'.")
        if self._pending is not None:
            raise SchedulerBusyError()
        handle = ParseHandle(
            next(self._ids), len(data), anyio.current_time() + self._timeout
        )
        self._pending = handle
        logger.info("Parse %d submitted (%d bytes).", handle.id, handle.size)
        self._task_group.start_soon(self._run, handle, data)
        return handle

    async def wait(self, handle: ParseHandle) -> Workbook:
        """Wait for a handle and return its workbook.

        Raises:
            ParseError: If parsing failed, timed out, or was cancelled.
        """
        return await handle._result()

    def cancel(self, handle: ParseHandle) -> None:
        """Cancel a pending parse; it finishes with a ``cancelled`` error."""
        if not handle.done:
            logger.info("Parse %d cancel requested.", handle.id)
        handle.cancel()

    async def _run(self, handle: ParseHandle, data: bytes) -> None:
        try:
            handle._resolve(await self._parse(handle, data))
        finally:
            if not handle.done:
                handle._resolve(
                    ParseError("cancelled", "Parsing was cancelled.", size=handle.size)
                )
            if self._pending is handle:
                self._pending = None

    async def _parse(self, handle: ParseHandle, data: bytes) -> Workbook | ParseError:
        outcome: Workbook | ParseFailure | None = None
        if handle.cancel_requested:
            return ParseError("cancelled", "Parsing was cancelled.", size=handle.size)
        with handle._scope:
            outcome = await self._call_worker(data)
        if outcome is None:
            if handle.cancel_requested:
                logger.info("Parse %d cancelled.", handle.id)
                return ParseError("cancelled", "Parsing was cancelled.", size=handle.size)
            logger.warning(
                "Parse %d timed out after %g seconds.", handle.id, self._timeout
            )
            return ParseError(
                "timeout",
                f"Stopped reading after {self._timeout:g} seconds",
                size=handle.size,
            )
        if isinstance(outcome, ParseFailure):
            logger.warning("Parse %d failed (%s): %s", handle.id, outcome.reason, outcome.message)
            return ParseError(outcome.reason, outcome.message, size=handle.size)
        logger.info(
            "Parse %d finished with sheets %s.", handle.id, outcome.sheet_names
        )
        return outcome

    async def _call_worker(self, data: bytes) -> Workbook | ParseFailure:
        if self._worker == "process":
            try:
                return await anyio.to_process.run_sync(
                    run_parser, self._parser, data, cancellable=True
                )
            except anyio.BrokenWorkerProcess as exc:
                return ParseFailure(
                    reason="malformed", message=f"Parser worker crashed: {exc}"
                )
        return await anyio.to_thread.run_sync(
            run_parser, self._parser, data, abandon_on_cancel=True
        )
