"""Structured logging configuration with operation correlation."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import g, has_request_context, request

CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

_operation_id: ContextVar[str | None] = ContextVar("jwt_whitelist_operation_id", default=None)


class JSONFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting logic
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
            "operation_id": getattr(record, "operation_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra_keys = {"operation", "jti", "sub"}
        for key in extra_keys:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


class CorrelationFilter(logging.Filter):
    """Ensure ``request_id`` and ``operation_id`` attributes are present on records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.request_id = request_id() if has_request_context() else None
        record.operation_id = current_operation_id()
        return True


def request_id() -> str | None:
    """Return the id of the surrounding Flask request, if the host app is one."""

    if not has_request_context():
        return None
    if hasattr(g, "request_id"):
        return g.request_id  # type: ignore[no-any-return]
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return None


def current_operation_id() -> str | None:
    """Return the id of the token operation running in this context, if any."""

    return _operation_id.get()


@contextmanager
def operation_scope() -> Iterator[str]:
    """
    Tag every log record emitted inside the block with one operation id.

    Nested scopes (``refresh`` calling ``decode``/``invalidate``/``encode``)
    reuse the outermost id.
    """

    existing = _operation_id.get()
    if existing is not None:
        yield existing
        return
    token = _operation_id.set(uuid4().hex)
    try:
        yield _operation_id.get() or ""
    finally:
        _operation_id.reset(token)


def configure_logging(level: str | int = "INFO") -> None:
    """Configure the root logger with JSON-formatted stdout output."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(CorrelationFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    level_value: int | str = level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level_value = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level_value)


__all__ = ["configure_logging", "operation_scope", "current_operation_id", "request_id"]
