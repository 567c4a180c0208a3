"""Logging configuration.

Components log through ``logging.getLogger(__name__)`` and pass their
context with ``extra={...}``. This module installs the root handler from
``ObservabilityConfig``: a plain text format, or one JSON object per
record (extra fields included) when ``structured`` is enabled.
"""

from __future__ import annotations

import json
import logging.config
from typing import Any, Dict, Optional

from .config import ObservabilityConfig, get_config

# Attributes every LogRecord has; anything else came from ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config(config: ObservabilityConfig) -> Dict[str, Any]:
    """Build a ``dictConfig`` mapping for the given settings."""
    formatter: Dict[str, Any]
    if config.structured:
        formatter = {"()": JsonFormatter}
    else:
        formatter = {"format": config.format}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            }
        },
        "root": {"handlers": ["default"], "level": config.level.upper()},
    }


def configure_logging(config: Optional[ObservabilityConfig] = None) -> None:
    """Install the root logging handler."""
    logging.config.dictConfig(build_logging_config(config or get_config().observability))
