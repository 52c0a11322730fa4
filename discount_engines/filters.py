"""
discount_engines.filters -- Post-discovery candidate filtering and ordering.

Responsibility:
    Applied to the aggregated candidates from every source, in order:
    filter_expired, filter_by_minimum, sort_by_priority.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Validity windows are date-only and inclusive at both ends.
    - Ordering is total: source-type priority, then discount value
      (highest first), then candidate id.  Identical inputs always produce
      identical order regardless of source completion order.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from discount_kernel.domain.discount import DiscountCandidate


def _as_date(value) -> date | None:
    if value is None:
        return None
    # only the calendar day counts
    if isinstance(value, datetime):
        return value.date()
    return value


def is_within_validity(candidate: DiscountCandidate, on: date) -> bool:
    valid_from = _as_date(candidate.valid_from)
    valid_to = _as_date(candidate.valid_to)
    if valid_from is not None and valid_from > on:
        return False
    if valid_to is not None and valid_to < on:
        return False
    return True


def filter_expired(
    candidates: Iterable[DiscountCandidate],
    on: date,
) -> list[DiscountCandidate]:
    """Keep candidates whose [valid_from, valid_to] window contains ``on``."""
    return [c for c in candidates if is_within_validity(c, on)]


def meets_minimum(
    candidate: DiscountCandidate,
    amount: Decimal,
    quantity: int,
) -> bool:
    if candidate.min_purchase is not None and amount < candidate.min_purchase:
        return False
    min_amount = candidate.metadata.get("min_amount")
    if min_amount is not None and amount < Decimal(str(min_amount)):
        return False
    if candidate.min_quantity is not None and quantity < int(candidate.min_quantity):
        return False
    return True


def filter_by_minimum(
    candidates: Iterable[DiscountCandidate],
    amount: Decimal,
    quantity: int,
) -> list[DiscountCandidate]:
    """Drop candidates whose minimum purchase or quantity is not met."""
    return [c for c in candidates if meets_minimum(c, amount, quantity)]


def priority_key(candidate: DiscountCandidate) -> tuple[int, Decimal, str]:
    return (candidate.type_priority, -candidate.discount_value, str(candidate.candidate_id))


def sort_by_priority(candidates: Iterable[DiscountCandidate]) -> list[DiscountCandidate]:
    """EARLY_PAYMENT, VOLUME, CATEGORY, PROMOTIONAL, PRICING_RULE; unknown last."""
    return sorted(candidates, key=priority_key)
