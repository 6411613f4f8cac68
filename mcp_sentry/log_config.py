"""Logging setup for the Sentry MCP Server."""

import logging
import os
import sys
from typing import Optional

import structlog


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog to render to stderr.

    stdout is reserved for the stdio transport.

    Args:
        level: Log level name, defaults to the LOG_LEVEL environment variable or INFO
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(level=log_level, stream=sys.stderr, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
