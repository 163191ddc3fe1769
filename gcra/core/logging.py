"""Logging setup for processes that host the rate limiter.

The library itself only calls get_logger(); a host process may call
setup_logging() once to get text, key-annotated or JSON output.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from gcra.core.config import settings

# Record attributes describing a single rate limit decision
CONTEXT_FIELDS = ("key", "quantity", "attempt", "limited", "backend")


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    # LogRecord attributes that are never copied into "extra"
    RESERVED_ATTRS = frozenset((
        "name", "msg", "args", "levelname", "levelno", "pathname",
        "filename", "module", "exc_info", "exc_text", "stack_info",
        "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "message",
        "asctime", "taskName",
    ))

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        # False is meaningful for "limited", so only None is dropped
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        extra = {
            k: v for k, v in record.__dict__.items()
            if k not in self.RESERVED_ATTRS and k not in CONTEXT_FIELDS
        }
        if extra:
            log_data["extra"] = extra

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Give every record the decision fields so %-style formats never fail."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


def get_logging_config() -> Dict[str, Any]:
    """Build a dictConfig mapping from ``log_format`` and ``log_level``."""
    log_format = getattr(settings, "log_format", "text").lower()
    log_level = getattr(settings, "log_level", "INFO").upper()

    formatters: Dict[str, Any] = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "structured": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                      " - key=%(key)s - attempt=%(attempt)s - backend=%(backend)s"
        },
    }
    if log_format == "json":
        formatters["json"] = {"()": "gcra.core.logging.JSONFormatter"}
        formatter = "json"
    elif log_format == "structured":
        formatter = "structured"
    else:
        formatter = "standard"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {"()": "gcra.core.logging.ContextFilter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": formatter,
                "stream": sys.stdout,
                "filters": ["context"],
            },
        },
        "loggers": {
            "gcra": {
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
    """Apply get_logging_config() to the running process."""
    logging.config.dictConfig(get_logging_config())

    # redis-py is chatty at DEBUG
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str = "gcra") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    key: Optional[str] = None,
    quantity: Optional[int] = None,
    attempt: Optional[int] = None,
    limited: Optional[bool] = None,
    backend: Optional[str] = None,
    **extra
) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for a log call, omitting unset fields.

    Example:
        >>> logger.debug(
        ...     "Lost compare-and-set race",
        ...     extra=get_log_context(key="user:42", attempt=3)
        ... )
    """
    context = {
        "key": key,
        "quantity": quantity,
        "attempt": attempt,
        "limited": limited,
        "backend": backend,
    }
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
