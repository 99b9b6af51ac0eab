"""
Structured logging setup for the vault service.

JSON lines in production, colored console output in development, always on
stdout. A scrubbing processor runs right after bound context is merged, so
neither a stray keyword argument nor a bound contextvar can put key material
or plaintext into a log line.
"""

import logging
import sys

import structlog

from envshare.config import settings

SENSITIVE_FIELDS = frozenset({"token", "key", "content", "plaintext", "authorization"})


def scrub_sensitive_fields(logger, method_name: str, event_dict: dict) -> dict:
    for field in SENSITIVE_FIELDS.intersection(event_dict):
        event_dict[field] = "[redacted]"
    return event_dict


def setup_logging() -> None:
    """Configure structlog and stdlib logging. Call once at startup."""
    level = getattr(logging, settings.log_level.upper())

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            scrub_sensitive_fields,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # APScheduler, SQLAlchemy and uvicorn log through stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
