from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

WorkerKind = Literal["process", "thread"]

PARSE_TIMEOUT_SECONDS = 10.0
SIZE_WARNING_BYTES = 1_048_576
EXPORT_BASENAME = "sheet"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class SessionConfig(BaseModel):
    """Configuration for a spreadsheet editing session."""

    parse_timeout_seconds: float = Field(
        default=PARSE_TIMEOUT_SECONDS, gt=0, description="Parse timeout in seconds."
    )
    size_warning_bytes: int = Field(
        default=SIZE_WARNING_BYTES,
        ge=0,
        description="Payload size above which a large-file warning is raised.",
    )
    worker: WorkerKind = Field(
        default="process", description="Background worker used for parsing."
    )
    export_basename: str = Field(
        default=EXPORT_BASENAME, min_length=1, description="Base filename for exports."
    )
    log_level: str = Field(default="INFO", description="Logging level.")
    log_file: Path | None = Field(default=None, description="Optional log file path.")


def configure_logging(config: SessionConfig) -> None:
    """Configure logging for the hosting process.

    Args:
        config: Session configuration.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file is not None:
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(
        level=config.log_level.upper(),
        handlers=handlers,
        format=LOG_FORMAT,
    )
