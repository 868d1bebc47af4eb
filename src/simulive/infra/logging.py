"""
structlog setup for Simulive.

Events are rendered as JSON lines by default (``LOG_FORMAT=console`` switches
to structlog's human-readable renderer). Calibration offsets, drift
corrections and stream edits all pass through :func:`redact_secrets` first,
so Mux credentials, admin passwords and session cookies never reach the log.
"""

import logging
import re
from typing import Any

import structlog

from .settings import settings

REDACTED = "***REDACTED***"

# Substrings of event keys whose value is dropped entirely
SECRET_KEYS = (
    "mux_token_secret",
    "token",
    "password",
    "secret",
    "session",
    "cookie",
    "database_url",
    "redis_url",
)

# Inline secrets inside otherwise loggable strings
SECRET_PATTERNS = (
    (re.compile(r"://[^:/@\s]+:[^@\s]+@"), "://***:***@"),
    (re.compile(r"token=[^&\s]+"), "token=***"),
    (re.compile(r"password=[^&\s]+"), "password=***"),
)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        for pattern, replacement in SECRET_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, dict):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    return value


def redact_secrets(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor masking secret fields and inline credentials."""
    for key, value in event_dict.items():
        if key == "event":
            continue
        lowered = key.lower()
        event_dict[key] = REDACTED if any(s in lowered for s in SECRET_KEYS) else _scrub(value)
    return event_dict


def _renderer() -> Any:
    if settings.log_format.lower() == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def configure_logging(level: str | None = None) -> None:
    """Route structlog through stdlib logging at ``level`` (default ``LOG_LEVEL``)."""
    logging.basicConfig(format="%(message)s", level=(level or settings.log_level).upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            redact_secrets,
            _renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **context: Any) -> structlog.BoundLogger:
    """Logger tagged with the service name, environment and any extra ``context``."""
    return structlog.get_logger(name).bind(service="simulive", env=settings.env, **context)
