"""Logging utilities for stackup.

Builds the structlog logger for supervisor records such as wave launches and
forced kills. Records go to stdout or a rotating file, as JSON or text.
The global structlog configuration is left untouched.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Final, Literal, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]

DEFAULT_MAX_BYTES: Final = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT: Final = 5


def get_log_level(level: str | None = None) -> int:
    """Resolve the effective log level.

    STACKUP_DEBUG, when set, forces DEBUG. Otherwise `level` applies, which
    comes from the logging.level key (STACKUP_LOGGING__LEVEL in the
    environment), and INFO when it is missing or unknown.

    Args:
        level: Optional log level string (debug, info, warning, error).

    Returns:
        The logging level as an integer.
    """
    if getenv("STACKUP_DEBUG", None):
        return logging.DEBUG

    if level is None:
        return logging.INFO
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _rotating_logger(
    log_path: Path,
    level: int,
    backup_count: int,
    max_bytes: int,
) -> logging.Logger:
    log_path.parent.mkdir(parents=True, exist_ok=True)

    stdlib_logger = logging.getLogger(f"stackup.{log_path.stem}.{id(log_path)}")
    stdlib_logger.handlers.clear()
    stdlib_logger.propagate = False
    stdlib_logger.setLevel(level)

    handler = RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count
    )
    handler.setLevel(level)
    # structlog renders the record; the handler only writes it
    handler.setFormatter(logging.Formatter("%(message)s"))
    stdlib_logger.addHandler(handler)
    return stdlib_logger


def create_supervisor_logger(
    *,
    level: str | None = None,
    log_format: LogFormatType = "text",
    log_file: str = "",
    stream: TextIO | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create the logger for supervisor events.

    Records go to `log_file` through a rotating handler when one is given,
    otherwise to `stream` (stdout by default), interleaved with the
    multiplexed service output.

    Args:
        level: Log level threshold (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        log_file: Path to a log file, empty to log to the stream.
        stream: Text stream used when no log file is set.
        max_bytes: Size in bytes before the log file is rotated.
        backup_count: Number of rotated log files to keep.

    Returns:
        A FilteringBoundLogger instance configured for supervisor logging.
    """
    effective_level = get_log_level(level)

    raw_logger: logging.Logger | structlog.WriteLogger
    if log_file:
        raw_logger = _rotating_logger(
            Path(log_file), effective_level, backup_count, max_bytes
        )
    else:
        raw_logger = structlog.WriteLoggerFactory(file=stream or sys.stdout)()

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    logger = cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            raw_logger,
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )
    return logger.bind(logger="stackup")
