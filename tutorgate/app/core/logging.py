"""Structured logging configuration for tutorgate.

Uses the standard logging module configured through ``dictConfig``. The
``LOG_FORMAT`` setting selects plain text, a key=value "structured" line,
or one JSON object per record.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from tutorgate.app.core.config import settings

# Context fields callers pass through ``extra=``
CONTEXT_FIELDS = (
    "identity",      # Caller identity (session id)
    "provider",      # Text-generation provider name
    "attempt",       # Retry attempt number
    "path",          # Request path
    "status_code",   # HTTP response status
)

_RESERVED = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message",
    "asctime", "taskName",
})


class JSONFormatter(logging.Formatter):
    """Renders a record as one JSON object.

    Context fields appear at the top level when set; any other ``extra``
    values are grouped under ``"extra"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED or value is None:
                continue
            if key in CONTEXT_FIELDS:
                log_data[key] = value
            else:
                log_data.setdefault("extra", {})[key] = value

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Sets missing context fields to None so format strings can name them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration dictionary.

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()

    formatters: Dict[str, Dict[str, Any]] = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "structured": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - identity=%(identity)s - provider=%(provider)s - attempt=%(attempt)s"
        },
    }

    if log_format == "json":
        formatters["json"] = {"()": "tutorgate.app.core.logging.JSONFormatter"}
        default_formatter = "json"
    else:
        default_formatter = "structured" if log_format == "structured" else "standard"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {"()": "tutorgate.app.core.logging.ContextFilter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": default_formatter,
                "stream": sys.stdout,
                "filters": ["context"],
            },
        },
        "loggers": {
            "tutorgate": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


def setup_logging() -> None:
    """Configure logging for the application."""
    logging.config.dictConfig(get_logging_config())

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def get_logger(name: str = "tutorgate") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    identity: Optional[str] = None,
    provider: Optional[str] = None,
    attempt: Optional[int] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build an ``extra=`` dict, dropping fields that are None.

    Example:
        >>> logger.info(
        ...     "Stream completed",
        ...     extra=get_log_context(identity="session-1", provider="openai")
        ... )
    """
    context = {"identity": identity, "provider": provider, "attempt": attempt}
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
