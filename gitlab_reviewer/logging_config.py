"""
Structured Logging Configuration

This module sets up structured logging using structlog on top of the
standard logging library. Logs are rendered as JSON in production and as
colored console lines during development.

Design Decisions:
- One processor chain shared by structlog and foreign (stdlib) loggers
- Every entry carries the service name and version
- Secrets (GitLab tokens, webhook secret, LLM keys) are redacted before rendering
"""

import logging
import sys
from typing import Any, Dict

import structlog
from structlog.types import EventDict, WrappedLogger

from gitlab_reviewer import __version__
from gitlab_reviewer.config import get_settings

SENSITIVE_KEYS = {
    "token", "private_token", "private-token", "x-gitlab-token", "api_key",
    "apikey", "secret", "password", "authorization", "credential", "bearer",
    "pat",
}

# GitLab PATs, OpenAI keys and Google API keys
SENSITIVE_VALUE_PREFIXES = ("glpat-", "gldt-", "sk-", "AIza")

REDACTED = "[REDACTED]"


def _is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    if key_lower in SENSITIVE_KEYS:
        return True
    return any(
        part in SENSITIVE_KEYS
        for part in key_lower.replace("-", "_").split("_")
    )


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if _is_sensitive_key(str(k)) else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, str) and value.startswith(SENSITIVE_VALUE_PREFIXES):
        return REDACTED
    return value


def filter_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor that redacts sensitive data from log entries.

    Keys are matched on whole underscore/hyphen separated words so that
    fields like ``author`` or ``path`` are left alone while ``gitlab_pat``
    and ``webhook_secret`` are masked. Nested dicts are walked.
    """
    result: Dict[str, Any] = {}
    for key, value in event_dict.items():
        if key != "event" and _is_sensitive_key(key):
            result[key] = REDACTED
        else:
            result[key] = _redact(value)
    return result


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to every log entry."""
    event_dict["app"] = "gitlab-mr-reviewer"
    event_dict["version"] = __version__
    return event_dict


def setup_logging() -> None:
    """
    Configure structured logging for the application.

    This function should be called once at application startup.
    It configures both structlog and the standard logging library.
    """
    settings = get_settings()

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_app_context,
        filter_sensitive_data,
    ]

    if settings.log_json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    # Replace rather than stack handlers if called again (tests, reloads)
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.log_level))

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance with the given name.

    Usage:
        logger = get_logger(__name__)
        logger.info("Review posted", project_id=42, merge_request_iid=7)
    """
    return structlog.get_logger(name)
