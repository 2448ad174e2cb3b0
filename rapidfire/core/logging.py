"""Structured logging configuration using structlog.

Provides JSON-formatted logs in production and colored console logs
in development. Records from standard library loggers (uvicorn, httpx)
are rendered through the same processor chain so a run produces one
consistent stream.
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor

# httpx logs one INFO line per request; a run sends thousands of them
TRANSPORT_LOGGERS = ("httpx", "httpcore")

_stdlib_handler: logging.Handler | None = None


def _build_renderer(format: Literal["json", "console"]) -> list[Processor]:
    """Final processors turning an event dict into an output line."""
    if format == "json":
        return [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def _route_stdlib_logging(
    level: int,
    shared_processors: list[Processor],
    renderer: list[Processor],
) -> None:
    """Send standard library records through structlog's formatter.

    Replaces the handler installed by a previous call, so configuring
    twice (tests, reloads) never duplicates output.
    """
    global _stdlib_handler

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *renderer,
            ],
        )
    )

    root = logging.getLogger()
    if _stdlib_handler is not None:
        root.removeHandler(_stdlib_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _stdlib_handler = handler

    transport_level = level if level <= logging.DEBUG else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)


def configure_logging(
    level: str = "INFO",
    format: Literal["json", "console"] = "json",
) -> None:
    """Configure structured logging for the application.

    Outbound request chatter from httpx/httpcore is only shown at DEBUG.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        format: Output format ('json' for production, 'console' for development).
    """
    numeric_level = getattr(logging, level.upper())

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]
    renderer = _build_renderer(format)

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    _route_stdlib_logging(numeric_level, shared_processors, renderer)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name (typically __name__).

    Returns:
        Configured structlog logger instance.
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
