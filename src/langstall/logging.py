"""Structured logging setup.

All application logs are emitted as one JSON object per line so they can be
shipped to a log aggregator unchanged. Per-request values (request id, user
id) are bound through structlog contextvars by the HTTP middleware and merged
into every event logged while the request is handled.
"""

import logging

import structlog
from structlog import contextvars as structlog_contextvars

from .config import settings


def configure_logging() -> None:
    """Configure structlog for application-wide logging.

    The stdlib root logger prints the bare message (structlog already renders
    the whole event), and ``force=True`` replaces handlers installed earlier by
    uvicorn or test runners.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


logger = structlog.get_logger()
