"""
discount_engines.eligibility -- Per-source applicability predicates.

Responsibility:
    Decide, for a single source record and a TransactionContext, whether
    that record can apply at all.  Discovery calls these after loading the
    raw rows; date windows and minimum-purchase checks are re-applied
    uniformly afterwards by discount_engines.filters.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Time-of-day checks take an explicit ``at`` datetime; callers supply it
    from the context or their injected clock.

Invariants enforced:
    - Inactive records never apply.
    - Early payment terms require a known customer; only the single best
      term (highest percentage) is offered.
    - Day-of-week conditions use 0 = Sunday ... 6 = Saturday.
    - Hour windows are inclusive at both ends.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any

from discount_kernel.domain.discount import TransactionContext
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)

ZERO = Decimal("0")


def promo_applies(
    promo: PromotionalSource,
    context: TransactionContext,
    customer_usage: int | None = None,
) -> bool:
    """
    Active, code-matching promotion with usage left.

    Without a promo code on the context every active promotion is
    considered.  ``customer_usage`` is the number of APPLIED allocations
    the customer already has against this promotion; it is only consulted
    when the promotion carries a per-customer limit.
    """
    if not promo.is_active:
        return False
    if context.promo_code and promo.promo_code != context.promo_code:
        return False
    if promo.is_exhausted:
        return False
    if (
        promo.per_customer_limit
        and context.customer_id is not None
        and customer_usage is not None
        and customer_usage >= promo.per_customer_limit
    ):
        return False
    return True


def volume_tier_applies(tier: VolumeTierSource, context: TransactionContext) -> bool:
    if not tier.is_active:
        return False
    amount = context.amount.amount
    if context.quantity <= 0 and amount <= ZERO:
        return False

    meets_quantity = tier.min_quantity is not None and context.quantity >= tier.min_quantity
    meets_amount = tier.min_amount is not None and amount >= tier.min_amount
    if not (meets_quantity or meets_amount):
        return False

    if (
        tier.applies_to == "CATEGORY"
        and tier.target_category_id is not None
        and tier.target_category_id != context.category_id
    ):
        return False
    return True


def best_payment_term(
    terms: Iterable[EarlyPaymentSource],
    context: TransactionContext,
) -> EarlyPaymentSource | None:
    """Highest-percentage active term, or None without a customer."""
    if context.customer_id is None:
        return None
    active = [term for term in terms if term.is_active]
    if not active:
        return None
    return max(active, key=lambda term: (term.discount_percentage, str(term.source_id)))


def category_rule_applies(rule: CategoryRuleSource, context: TransactionContext) -> bool:
    if not rule.is_active:
        return False
    if context.category_id is None and context.service_id is None:
        return False
    matches_category = rule.category_id is not None and rule.category_id == context.category_id
    matches_service = rule.service_id is not None and rule.service_id == context.service_id
    return matches_category or matches_service


def js_day_of_week(at: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (at.weekday() + 1) % 7


def _as_decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def pricing_rule_applies(
    rule: PricingRuleSource,
    context: TransactionContext,
    at: datetime,
) -> bool:
    """
    Evaluate a pricing rule's predicates against the context.

    Args:
        rule: The pricing rule row.
        context: Transaction being priced.
        at: Moment used for time_based rules.
    """
    if not rule.is_active:
        return False
    conditions = rule.conditions or {}

    match rule.rule_type:
        case "customer_category":
            wanted = conditions.get("customer_category_id")
            if wanted and str(wanted) != str(context.customer_category_id):
                return False

        case "quantity":
            min_quantity = conditions.get("min_quantity")
            if min_quantity is not None and context.quantity < int(min_quantity):
                return False
            max_quantity = conditions.get("max_quantity")
            if max_quantity is not None and context.quantity > int(max_quantity):
                return False
            min_amount = conditions.get("min_amount")
            if min_amount is not None and context.amount.amount < _as_decimal(min_amount):
                return False

        case "time_based":
            days = conditions.get("day_of_week") or []
            if days and js_day_of_week(at) not in {int(d) for d in days}:
                return False
            hour_start = conditions.get("hour_start")
            hour_end = conditions.get("hour_end")
            if hour_start is not None and hour_end is not None:
                if at.hour < int(hour_start) or at.hour > int(hour_end):
                    return False

    if rule.target_id is not None:
        match rule.target_entity:
            case "service":
                return rule.target_id == context.service_id
            case "customer":
                return rule.target_id == context.customer_id
            case "category":
                return rule.target_id == context.category_id
    return True
