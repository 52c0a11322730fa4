"""
discount_engines.tracer -- DISCOUNT_ENGINE_TRACE records for pure engines.

Responsibility:
    ``@traced_engine`` wraps a stacking, gate or allocation call and emits
    one structured log record per invocation: engine name and version, a
    fingerprint of the inputs that decide the result, and the duration.
    Two calls with the same fingerprint must have produced the same
    discount, which is what makes the records useful when a customer
    disputes a price.

Architecture position:
    Engines -- infrastructure for the pure calculation layer.  Emits a log
    record only; never touches inputs or results.

Invariants enforced:
    - Arguments are bound to parameter names, so positional and keyword
      calls fingerprint identically.
    - Money is fingerprinted by normalized amount and currency (10 and
      10.00 USD hash the same); candidates by id, type and value; line
      items by id, amount and quantity.  Mapping keys are sorted.
    - SHA-256, truncated to 16 hex characters.

Failure modes:
    - Fields absent from the call are recorded as ``null``.
    - Unknown types fall back to ``str(value)``.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from discount_kernel.domain.discount import DiscountCandidate, LineItem
from discount_kernel.domain.values import Money
from discount_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_TYPE = "DISCOUNT_ENGINE_TRACE"


def _decimal(value: Decimal) -> str:
    return f"{value.normalize():f}" if value.is_finite() else str(value)


def _canonicalize(value: Any) -> str:
    match value:
        case None:
            return "null"
        case Enum():
            return str(value.value)
        case bool():
            return "true" if value else "false"
        case Decimal():
            return _decimal(value)
        case int() | float() | str() | UUID():
            return str(value)
        case Money():
            return f"{_decimal(value.amount)} {value.currency.code}"
        case DiscountCandidate():
            return (
                f"candidate({value.candidate_id},{value.source_type.value},"
                f"{value.discount_type.value},{_decimal(value.discount_value)})"
            )
        case LineItem():
            return f"line({value.line_id},{_decimal(value.amount)}x{value.quantity})"
        case Mapping():
            items = sorted(value.items(), key=lambda kv: str(kv[0]))
            return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
        case list() | tuple():
            return "[" + ",".join(_canonicalize(v) for v in value) + "]"
        case _:
            return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 of the named arguments, in field order."""
    canonical = "|".join(
        f"{field}={_canonicalize(arguments.get(field))}" for field in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorate a pure engine entry point with trace logging.

    Args:
        engine_name: e.g. "stacking".
        engine_version: bumped whenever the calculation changes.
        fingerprint_fields: parameter names that determine the result.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            logger.info(TRACE_TYPE, extra={
                "trace_type": TRACE_TYPE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fingerprint,
                "duration_ms": duration_ms,
                "function": func.__qualname__,
            })
            return result

        return wrapper

    return decorator
