"""structlog setup shared by the API process and the CLI scripts."""

import logging
import sys
from typing import Any

import structlog

from api.config import get_settings

# Loggers that flood the output at INFO with one line per fetched page.
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _renderer(production: bool, colors: bool) -> Any:
    if production:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=colors,
        exception_formatter=structlog.dev.plain_traceback,
    )


def setup_logging() -> None:
    """Route structlog and stdlib logging to stdout at the configured level."""
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        _renderer(settings.is_production, colors=not settings.is_test),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_analysis_context(domain: str, user_id: str | None = None) -> None:
    """Attach run identifiers to every log line emitted by the current task."""
    structlog.contextvars.bind_contextvars(domain=domain, user_id=user_id)


def clear_analysis_context() -> None:
    """Drop run identifiers bound by bind_analysis_context."""
    structlog.contextvars.unbind_contextvars("domain", "user_id")


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)
