"""
Structured JSON logging for the ledger kernel and its modules.

Every logger lives under the ``ledger_kernel`` namespace and emits one
JSON object per line.  Fields come from three places, most specific
first:

    1. ``extra={...}`` on the logging call
    2. ``LogContext`` fields bound by the surrounding operation
       (tenant, actor, filing, side effect)
    3. The record itself: timestamp, level, logger name, message

Usage::

    logger = get_logger("modules.tax.service")

    with LogContext.bind(tenant_id=tenant_id, filing_id=filing.id):
        logger.info("filing_marked_filed", extra={"period": "2026-01"})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "ledger_kernel"


class LogContext:
    """
    Operation-scoped log fields shared by every logger in the package.

    Backed by one ``ContextVar`` holding an immutable mapping, so threads
    and asyncio tasks each see their own fields.  Only the names in
    ``FIELDS`` can be bound; values are stored as strings.
    """

    FIELDS = (
        "correlation_id",
        "tenant_id",
        "actor_id",
        "entry_id",
        "filing_id",
        "side_effect",
    )

    _fields: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_context", default={})

    @classmethod
    def _merged(cls, updates: dict[str, Any]) -> dict[str, str]:
        unknown = set(updates) - set(cls.FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(cls._fields.get())
        merged.update({k: str(v) for k, v in updates.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context.  None values are ignored."""
        cls._fields.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(cls._fields.get())

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[dict[str, str]]:
        """Bind fields inside a ``with`` block; the previous fields come back on exit."""
        token = cls._fields.set(cls._merged(fields))
        try:
            yield cls.get_all()
        finally:
            cls._fields.reset(token)


# Attributes every LogRecord carries; anything else on a record came from extra=
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Ledger errors keep their structured data as public attributes
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = value
        for key, value in LogContext.get_all().items():
            payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``ledger_kernel`` logger.

    Only the first call takes effect until ``reset_logging``.  The
    package logger does not propagate, so host applications keep their
    own root configuration.
    """
    global _handler
    with _lock:
        if _handler is not None:
            return
        _handler = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(StructuredFormatter())

        package_logger = logging.getLogger(_LOGGER_PREFIX)
        package_logger.setLevel(level)
        package_logger.propagate = False
        package_logger.addHandler(_handler)


def reset_logging() -> None:
    """Detach the handler installed by ``configure_logging``.  Tests only."""
    global _handler
    with _lock:
        package_logger = logging.getLogger(_LOGGER_PREFIX)
        if _handler is not None:
            package_logger.removeHandler(_handler)
            _handler = None
        package_logger.setLevel(logging.WARNING)
