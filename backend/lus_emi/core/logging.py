"""
Structured logging configuration.

Every module logs through structlog with event-style names and key/value
context, e.g. ``logger.info("transaction_completed", reference="LUS-4F2A91")``.
"""
import logging
import sys
from typing import Any

import structlog

from lus_emi.core.config import settings


def setup_logging() -> None:
    """Configure structlog and the stdlib root logger once at startup."""
    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_JSON
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )

    # uvicorn / sqlalchemy still log through the stdlib
    logging.basicConfig(level=level, stream=sys.stdout, format="%(message)s")
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
