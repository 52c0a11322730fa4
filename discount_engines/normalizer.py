"""
discount_engines.normalizer -- Source records to DiscountCandidate.

Responsibility:
    Turn each of the five source variants into the common DiscountCandidate
    shape consumed by filtering, stacking and the approval gate.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import discount_kernel/domain.

Invariants enforced:
    - Dispatch is by variant class (``match``), never by a type string.
    - Every candidate keeps the source row id as candidate_id so downstream
      allocation can reference the rule or promotion it came from.
    - Category rules are capped: discount_value never exceeds max_discount.

Failure modes:
    - TypeError for an object that is not one of the DiscountSource variants.
"""

from __future__ import annotations

from collections.abc import Iterable

from discount_kernel.domain.discount import (
    DiscountCandidate,
    DiscountSourceType,
    DiscountType,
)
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    DiscountSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)

CATEGORY_DISCOUNT_NAME = "Category Discount"


def normalize(source: DiscountSource) -> DiscountCandidate:
    """Normalize any source variant into a DiscountCandidate."""
    match source:
        case PromotionalSource():
            return normalize_promotion(source)
        case VolumeTierSource():
            return normalize_volume_tier(source)
        case EarlyPaymentSource():
            return normalize_payment_term(source)
        case CategoryRuleSource():
            return normalize_category_rule(source)
        case PricingRuleSource():
            return normalize_pricing_rule(source)
        case _:
            raise TypeError(f"Unsupported discount source: {type(source).__name__}")


def normalize_promotion(source: PromotionalSource) -> DiscountCandidate:
    return DiscountCandidate(
        candidate_id=source.source_id,
        source_type=DiscountSourceType.PROMOTIONAL,
        discount_type=source.discount_type,
        discount_value=source.discount_value,
        name=source.promo_code,
        valid_from=source.valid_from,
        valid_to=source.valid_to,
        min_purchase=source.min_purchase,
        stackable=source.stackable,
        description=source.description,
        metadata={
            "promo_code": source.promo_code,
            "per_customer_limit": source.per_customer_limit,
            "max_uses": source.max_uses,
            "times_used": source.times_used,
        },
    )


def normalize_volume_tier(source: VolumeTierSource) -> DiscountCandidate:
    return DiscountCandidate(
        candidate_id=source.source_id,
        source_type=DiscountSourceType.VOLUME,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=source.discount_percentage,
        name=source.tier_name,
        min_quantity=source.min_quantity,
        metadata={
            "min_amount": source.min_amount,
            "applies_to": source.applies_to,
        },
    )


def normalize_payment_term(source: EarlyPaymentSource) -> DiscountCandidate:
    return DiscountCandidate(
        candidate_id=source.source_id,
        source_type=DiscountSourceType.EARLY_PAYMENT,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=source.discount_percentage,
        name=source.term_name,
        metadata={
            "discount_days": source.discount_days,
            "net_days": source.net_days,
        },
    )


def normalize_category_rule(source: CategoryRuleSource) -> DiscountCandidate:
    value = source.discount_value
    if source.max_discount is not None:
        value = min(value, source.max_discount)
    return DiscountCandidate(
        candidate_id=source.source_id,
        source_type=DiscountSourceType.CATEGORY,
        discount_type=source.discount_type,
        discount_value=value,
        name=CATEGORY_DISCOUNT_NAME,
        valid_from=source.valid_from,
        valid_to=source.valid_to,
        min_purchase=source.min_amount,
        metadata={
            "category_id": source.category_id,
            "service_id": source.service_id,
            "max_discount": source.max_discount,
        },
    )


def normalize_pricing_rule(source: PricingRuleSource) -> DiscountCandidate:
    return DiscountCandidate(
        candidate_id=source.source_id,
        source_type=DiscountSourceType.PRICING_RULE,
        discount_type=adjustment_to_discount_type(source.adjustment_type),
        discount_value=source.adjustment_value,
        name=source.name,
        valid_from=source.valid_from,
        valid_to=source.valid_to,
        min_quantity=source.conditions.get("min_quantity"),
        priority=source.priority,
        description=source.description,
        metadata={
            "rule_type": source.rule_type,
            "target_entity": source.target_entity,
            "min_amount": source.conditions.get("min_amount"),
        },
    )


def adjustment_to_discount_type(adjustment_type: str | None) -> DiscountType:
    """``fixed`` maps to FIXED; anything else is a percentage."""
    if (adjustment_type or "").lower() == "fixed":
        return DiscountType.FIXED
    return DiscountType.PERCENTAGE


def normalize_all(sources: Iterable[DiscountSource]) -> list[DiscountCandidate]:
    return [normalize(source) for source in sources]

