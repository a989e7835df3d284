"""Request logging middleware and JSON log formatting with PII filtering.

Every request gets a request ID (returned as ``X-Request-ID``) and a
duration. Log messages, exception text and request paths pass
through :func:`filter_pii` so emails, account numbers and aggregator
tokens never reach the log sink.
"""

import json
import logging
import re
import sys
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


PII_PATTERNS = [
    # Aggregator access / public tokens, e.g. access-sandbox-8ab9...
    (re.compile(r'\b(?:access|public|link)-(?:sandbox|development|production)-[A-Za-z0-9-]+'), '[TOKEN]'),
    # Email addresses
    (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), '[EMAIL]'),
    # Account and card numbers (9+ digit runs, with or without separators)
    (re.compile(r'\b\d{4}[\s-]?\d{4}[\s-]?\d{1,11}\b'), '[ACCOUNT]'),
    # Phone numbers (international format)
    (re.compile(r'\+\d{1,3}[-.\s]?\(?\d{2,4}\)?[-.\s]?\d{3,4}[-.\s]?\d{4,5}'), '[PHONE]'),
]

# Extra attributes copied from the log record into the JSON payload.
EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "error_code",
    "error_type",
    "client_ip",
    "account_id",
    "transaction_id",
    "action",
    "attempt",
    "wait_seconds",
    "imported",
    "updated",
    "removed",
    "categorized",
    "total",
)


def filter_pii(text: str) -> str:
    """Replace PII in ``text`` with placeholders."""
    if not text:
        return text

    filtered = text
    for pattern, replacement in PII_PATTERNS:
        filtered = pattern.sub(replacement, filtered)
    return filtered


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs start, end and failure of every request under one request id."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": filter_pii(request.url.path),
        }
        started = time.perf_counter()

        logger.info(
            "Request started",
            extra={**context, "client_ip": request.client.host if request.client else None},
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed",
                extra={**context, "duration_ms": _elapsed_ms(started), "error_type": type(exc).__name__},
            )
            raise

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "Request completed",
            extra={**context, "status_code": response.status_code, "duration_ms": _elapsed_ms(started)},
        )
        return response


class JSONLogFormatter(logging.Formatter):
    """One JSON object per record; known ``extra`` fields are copied through."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": filter_pii(record.getMessage()),
        }

        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = filter_pii(self.formatException(record.exc_info))

        return json.dumps(log_data, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Route the root logger through a single JSON stdout handler."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONLogFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
