from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable

from settings import get_settings

CONTEXT_KEYS = (
    "event_id",
    "payload_type",
    "mac",
    "reason",
    "event_count",
    "record_count",
    "start_date",
    "end_date",
    "source",
)

LOG_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


class ContextualFormatter(logging.Formatter):
    """Renders UTC timestamps and appends known ``extra`` fields as key=value."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self.context_keys = tuple(CONTEXT_KEYS if extra_keys is None else extra_keys)

    def context(self, record: logging.LogRecord) -> str:
        values = ((key, getattr(record, key, None)) for key in self.context_keys)
        return " ".join(f"{key}={value}" for key, value in values if value is not None)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = self.context(record)
        return f"{message} | {context}" if context else message


def build_logging_config(level: str | int) -> Dict[str, Any]:
    """dictConfig schema: one stderr handler, quiet HTTP client, services at ``level``."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": ContextualFormatter,
                "fmt": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
            }
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "contextual",
            }
        },
        "loggers": {
            "httpx": {"level": "WARNING"},
            "services": {"level": level},
        },
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Configure process-wide logging once; later calls are no-ops."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
