"""
Structured logging setup (structlog).

Call setup_logging() once at process start.  Modules grab a logger with
get_logger(__name__) and log events with key/value context::

    logger = get_logger(__name__)
    logger.info("Canonical request built", versions=3, acl_entries=5)
"""

from __future__ import annotations

import logging
import sys

import structlog

from nmdbridge.core.config import settings


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure stdlib logging and structlog to share one output stream.

    Unset arguments come from settings; development runs log at DEBUG.
    """
    if level is None:
        level = "DEBUG" if settings.APP_ENV == "development" else settings.LOG_LEVEL
    if json_logs is None:
        json_logs = settings.LOG_JSON
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given module name."""
    return structlog.get_logger(name)
