"""Structured logging configuration for eventcast.

Uses structlog with either console or JSON rendering. The library never
configures logging on import; applications call ``configure_logging`` (or
``configure_from_settings``) once at startup.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

import structlog

if TYPE_CHECKING:
    from eventcast.config import BusSettings


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
    cache_logger: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines instead of colored console output
        stream: Output stream owned by the caller (defaults to stderr)
        cache_logger: Cache bound loggers on first use
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, level.upper()),
        force=True,
    )

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_logger,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def configure_from_settings(settings: BusSettings, stream: TextIO | None = None) -> None:
    """Configure logging from the ``EVENTCAST_LOG_*`` settings."""
    configure_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        stream=stream,
    )
