"""Logging handler that keeps certificate lifecycle events in ``LogEntry``.

Operators reconcile orphaned anchors and failed chain revocations from these
rows, so every record carries its ``context`` as queryable JSON.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping

from django.contrib.auth import get_user_model

# Attributes every LogRecord carries; anything else arrived through ``extra``.
RESERVED_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "context",
    "user",
}

_traceback_formatter = logging.Formatter()


def to_json_value(value: Any) -> Any:
    """Reduce ``value`` to something ``JSONField`` can store."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return to_json_value(value.value)
    if isinstance(value, (bytes, bytearray)):
        # Transaction hashes come back from web3 as bytes.
        return "0x" + bytes(value).hex()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if isinstance(value, Mapping):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_value(item) for item in value]
    if hasattr(value, "_meta") and hasattr(value, "pk"):
        return str(value.pk)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class DatabaseLogHandler(logging.Handler):
    """Write each record to the ``LogEntry`` table."""

    def emit(self, record: logging.LogRecord) -> None:
        from .models import LogEntry

        try:
            LogEntry.objects.create(
                logger_name=record.name,
                level=record.levelname.upper(),
                message=record.getMessage(),
                user=self.resolve_user(record),
                context=self.build_context(record),
            )
        except Exception:  # pragma: no cover - logging must never raise
            self.handleError(record)

    def build_context(self, record: logging.LogRecord) -> Dict[str, Any] | None:
        context: Dict[str, Any] = {}
        provided = getattr(record, "context", None)
        if isinstance(provided, Mapping):
            context.update(to_json_value(provided))

        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in RESERVED_RECORD_ATTRS and not key.startswith("_")
        }
        context.update(to_json_value(extras))

        if record.exc_info:
            context["exception"] = _traceback_formatter.formatException(record.exc_info)

        return context or None

    def resolve_user(self, record: logging.LogRecord):
        user = getattr(record, "user", None)
        if getattr(user, "pk", None):
            return user

        user_id = getattr(record, "user_id", None)
        if not user_id:
            return None
        return get_user_model()._default_manager.filter(pk=user_id).first()


__all__ = ["DatabaseLogHandler", "RESERVED_RECORD_ATTRS", "to_json_value"]
