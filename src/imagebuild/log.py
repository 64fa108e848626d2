"""
imagebuild.log - structlog Configuration
==========================================

Every module logs through a module-level ``structlog.get_logger()`` and
binds its own ``component`` context. This module wires the processor chain
once, at CLI startup:

    console → coloured key/value lines for operators watching a CI job
    json    → one JSON object per line for log aggregation

Usage:
    >>> from imagebuild.log import configure_logging
    >>> configure_logging("DEBUG", "json")
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog for the current process.

    Args:
        level: Standard logging level name; unknown names fall back to INFO.
        fmt: "console" or "json".
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        # ConsoleRenderer formats tracebacks itself
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
