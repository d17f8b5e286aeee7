"""Structured JSON logging with correlation-id context."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterable

CORRELATION_ID_CTX: ContextVar[str] = ContextVar("correlation_id", default="")

SERVICE_NAME = "eatwise-auth"

# Record attributes copied into the JSON line when set via ``extra=``.
AUTH_LOG_FIELDS = (
    "user_id",
    "notification",
    "path",
    "method",
    "status_code",
    "error_code",
)

# Driver/HTTP client loggers that flood DEBUG output with connection chatter.
NOISY_LOGGERS = ("pymongo", "urllib3")


class JsonLogFormatter(logging.Formatter):
    """Serialize log records into compact JSON lines."""

    def __init__(self, fields: Iterable[str] = AUTH_LOG_FIELDS) -> None:
        super().__init__()
        self._fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        """Return JSON string for the given log record."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "correlation_id": CORRELATION_ID_CTX.get(),
        }

        for key in self._fields:
            value = getattr(record, key, None)
            if value not in (None, ""):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger to emit structured JSON logs."""
    normalized_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(normalized_level)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(normalized_level, logging.WARNING))


def set_correlation_id(correlation_id: str) -> None:
    """Store correlation id in request-local context."""
    CORRELATION_ID_CTX.set(correlation_id)
