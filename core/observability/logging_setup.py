"""
Collab structured logging setup.

- structlog processors chain (contextvars, level, ISO timestamps)
- Console rendering for development, JSON lines for production
- Request/actor context bound through structlog.contextvars
"""
from __future__ import annotations
import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog once at process start."""
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


def bind_actor(actor_id: str, **extra) -> None:
    """Attach the acting user to every log line of the current context."""
    structlog.contextvars.bind_contextvars(actor_id=actor_id, **extra)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
