"""Structured logging configuration for the Integration Fit Engine."""

import logging
import sys
from typing import Any

# Context fields promoted to top-level record attributes
CONTEXT_FIELDS = ("request_id", "tenant_id")

# Log level per COMPAT_ENGINE_ENV; anything unlisted logs at INFO
ENV_LOG_LEVELS = {
    "dev": logging.DEBUG,
    "test": logging.WARNING,
    "staging": logging.INFO,
    "prod": logging.INFO,
}


def _format_value(value: Any) -> str:
    text = str(value)
    if " " in text or "=" in text:
        return f'"{text}"'
    return text


class StructuredFormatter(logging.Formatter):
    """key=value log lines with request and tenant context first."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value
        log_data.update(getattr(record, "extra_data", None) or {})

        line = " ".join(f"{k}={_format_value(v)}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_for_env() -> int:
    try:
        from app.core.config import get_settings

        return ENV_LOG_LEVELS.get(get_settings().COMPAT_ENGINE_ENV, logging.INFO)
    except Exception:
        # Settings unavailable (e.g. missing Supabase env vars in a script)
        return logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger writing structured lines to stdout.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_env())
        logger.propagate = False
    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log an event with context fields.

    request_id and tenant_id become record attributes; everything else is
    appended as key=value pairs.
    """
    extra: dict[str, Any] = {field: kwargs.pop(field) for field in CONTEXT_FIELDS if field in kwargs}
    extra["extra_data"] = kwargs
    logger.log(level, msg, extra=extra)
