"""
Structured JSON logging for the discount engine.

Every record under the ``discount_kernel`` logger hierarchy is emitted as
one JSON object per line: a fixed envelope (ts, level, logger, message),
the request-scoped fields bound through ``LogContext``, and whatever the
call site passed in ``extra``.  Pricing calls bind ``business_id``,
``customer_id``, ``actor_id`` and a ``correlation_id``; discovery copies
the context into its worker threads so source lookups log with the same
fields.
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
from dataclasses import asdict, is_dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID, uuid4

# ---------------------------------------------------------------------------
# Request-scoped context
# ---------------------------------------------------------------------------

_EMPTY: Mapping[str, str] = MappingProxyType({})

_context: ContextVar[Mapping[str, str]] = ContextVar("discount_log_context", default=_EMPTY)


class LogContext:
    """
    Request-scoped log fields, safe across threads and asyncio tasks.

    The bound fields live in a single ContextVar holding a read-only
    mapping; every change installs a new mapping, so a copied context
    (``contextvars.copy_context``) never sees later changes.
    """

    FIELD_NAMES = (
        "correlation_id",
        "business_id",
        "customer_id",
        "actor_id",
        "request_id",
    )

    @classmethod
    def _merged(cls, fields: dict[str, Any]) -> Mapping[str, str]:
        unknown = set(fields) - set(cls.FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set context fields. Only non-None values are updated."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """All bound fields, in FIELD_NAMES order."""
        current = _context.get()
        return {name: current[name] for name in cls.FIELD_NAMES if name in current}

    @classmethod
    def get(cls, name: str) -> str | None:
        return _context.get().get(name)

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block, then restore."""
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)

    @classmethod
    def correlation_id(cls) -> str:
        """The bound correlation id, or a fresh one if none is bound."""
        return cls.get("correlation_id") or uuid4().hex


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    """Fallback for values json cannot encode natively."""
    match obj:
        case Enum():
            return obj.value
        case datetime() | date():
            return obj.isoformat()
        case Decimal() | UUID():
            return str(obj)
        case set() | frozenset():
            return sorted(str(v) for v in obj)
        case _ if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        case _:
            return str(obj)


def _error_payload(exc: BaseException) -> dict[str, Any]:
    """
    ``type``, ``code`` and ``message``, plus the public attributes a
    DiscountEngineError carries (conflict types, thresholds, totals).
    """
    details = {
        k: v for k, v in vars(exc).items()
        if not k.startswith("_") and k not in ("args", "code")
    }
    error: dict[str, Any] = {
        "type": type(exc).__name__,
        "code": getattr(exc, "code", None),
        "message": str(exc),
    }
    if details:
        error["details"] = details
    return error


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, bound context, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, val) for key, val in vars(record).items()
            if key not in _STDLIB_KEYS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = _error_payload(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Logger factory and setup
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "discount_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger under the discount_kernel namespace, e.g. ``get_logger("engines.stacking")``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the discount_kernel hierarchy.

    Idempotent: only the first call after import (or after
    ``reset_logging``) has any effect.  Records do not propagate to the
    root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Detach handlers and forget configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
