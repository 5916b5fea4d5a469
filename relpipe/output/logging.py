"""Structured logging for pipeline progress.

Phase handlers and the top-level run emit structlog events
(``build_started``, ``asset_uploaded``, ``total``...). Output goes to stderr,
either as plain ``key=value`` lines or as JSON lines for CI log collectors.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from structlog.types import Processor

__all__ = ["LOG_FORMATS", "format_duration", "get_logger", "setup_logging"]

LOG_FORMATS = ("plain", "json")


def setup_logging(
    level: str = "INFO",
    fmt: str = "plain",
    stream: TextIO | None = None,
    *,
    always_info: tuple[str, ...] = (),
) -> None:
    """Configure structlog on top of the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        fmt: "plain" for human-readable lines, "json" for JSON lines.
        stream: Destination stream (stderr if None).
        always_info: Loggers whose info lines pass whatever ``level`` is.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    if fmt.lower() == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=False,
            exception_formatter=structlog.dev.plain_traceback,
        )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)
    for name in always_info:
        logging.getLogger(name).setLevel(min(log_level, logging.INFO))

    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Example:
        logger = get_logger(__name__).bind(phase="release")
        logger.info("asset_uploaded", asset="hello.zip")
    """
    return structlog.get_logger(name)


def format_duration(seconds: float) -> str:
    """Render an elapsed time the way build tools do: 850ms, 4.21s, 3m12s."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    if minutes < 60:
        return f"{minutes}m{secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes}m{secs}s"
