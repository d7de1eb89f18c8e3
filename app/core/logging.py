"""
Structured Logging Configuration

Uses structlog for JSON-formatted, structured logs. Ingestion runs bind
their trigger and channel into contextvars so every event of a run can
be correlated.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from ..config import get_settings

# httpx logs full request URLs at INFO, and YouTube requests carry key=...
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default")

REDACTED = "***"


def _secrets() -> list:
    settings = get_settings()
    values = (settings.youtube_api_key, settings.gemini_api_key, settings.telegram_bot_token)
    return [value for value in values if value]


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask configured API keys and the bot token in string values."""
    secrets = _secrets()
    if not secrets:
        return event_dict

    for key, value in event_dict.items():
        if isinstance(value, str):
            for secret in secrets:
                value = value.replace(secret, REDACTED)
            event_dict[key] = value
    return event_dict


def setup_logging(log_level: Optional[str] = None):
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    settings = get_settings()

    if log_level is None:
        log_level = "DEBUG" if settings.debug else "INFO"
    level = getattr(logging, log_level.upper())

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.environment == "development":
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_run_context(**values: Any) -> None:
    """Attach key/values to every log event until clear_run_context()."""
    structlog.contextvars.bind_contextvars(**values)


def clear_run_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = "cinemax_ingest") -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
