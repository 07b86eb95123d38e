"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.config
import re
from typing import Any

from .config import LoggingSettings

# httpx logs every request line at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore")
_BEARER_PATTERN = re.compile(r"(Bearer\s+)[^\s'\"]+", re.IGNORECASE)


class RedactTokensFilter(logging.Filter):
    """Mask bearer tokens that end up in formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _BEARER_PATTERN.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _formatter(structured: bool) -> dict[str, Any]:
    if structured:
        return {
            "format": '{{"time": "{asctime}", "level": "{levelname}", '
            '"logger": "{name}", "message": "{message}"}}',
            "style": "{",
        }
    return {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"}


def configure_logging(settings: LoggingSettings, *, stream: str = "stderr") -> None:
    """Configure application logging according to provided settings.

    Output goes to stderr by default; stdout carries the MCP stdio
    transport and must stay clean.
    """
    level = settings.level.upper()
    library_level = "DEBUG" if level == "DEBUG" else "WARNING"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": _formatter(settings.structured)},
            "filters": {"redact": {"()": RedactTokensFilter}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["redact"],
                    "level": level,
                    "stream": f"ext://sys.{stream}",
                },
            },
            "loggers": {
                name: {"level": library_level} for name in _CHATTY_LOGGERS
            },
            "root": {"handlers": ["console"], "level": level},
        }
    )


__all__ = ["RedactTokensFilter", "configure_logging"]
