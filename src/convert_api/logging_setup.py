"""Logging helpers for the conversion API."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

__all__ = [
    "JsonLogFormatter",
    "configure_logging",
    "LOGGER_NAME",
]

LOGGER_NAME = "convert_api"


class JsonLogFormatter(logging.Formatter):
    """Emit log records as structured JSON lines."""

    # attributes every LogRecord carries; anything else came in through extra=
    _BASE_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = {
            key: _coerce_value(value)
            for key, value in record.__dict__.items()
            if key not in self._BASE_ATTRS
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logging(
    level: str = "INFO",
    *,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Attach a single JSON stderr handler to the package logger."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False
    logger.setLevel(_coerce_level(level))

    for handler in list(logger.handlers):
        if getattr(handler, "_convert_api_handler", False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setFormatter(JsonLogFormatter())
    handler._convert_api_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def _coerce_level(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def _coerce_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)

