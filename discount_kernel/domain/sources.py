"""
Sources -- typed records for the five discount source tables.

Each source table has its own shape; discovery reads them as one of these
frozen variants and the normalizer turns each variant into a
DiscountCandidate. ``DiscountSource`` is the closed union of all variants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Union
from uuid import UUID

from discount_kernel.domain.discount import DiscountType


@dataclass(frozen=True)
class PromotionalSource:
    """Promo-code driven discount with usage caps."""

    source_id: UUID
    promo_code: str
    discount_type: DiscountType
    discount_value: Decimal
    valid_from: date | None = None
    valid_to: date | None = None
    min_purchase: Decimal | None = None
    max_uses: int | None = None
    times_used: int = 0
    per_customer_limit: int | None = None
    stackable: bool = True
    is_active: bool = True
    description: str | None = None

    @property
    def is_exhausted(self) -> bool:
        """Global usage cap reached."""
        return self.max_uses is not None and self.times_used >= self.max_uses


@dataclass(frozen=True)
class VolumeTierSource:
    """Quantity or spend threshold tier."""

    source_id: UUID
    tier_name: str
    discount_percentage: Decimal
    min_quantity: int | None = None
    min_amount: Decimal | None = None
    applies_to: str = "ALL"  # ALL | CATEGORY
    target_category_id: UUID | None = None
    is_active: bool = True


@dataclass(frozen=True)
class EarlyPaymentSource:
    """Payment-term discount, e.g. 2/10 net 30."""

    source_id: UUID
    term_name: str
    discount_percentage: Decimal
    discount_days: int
    net_days: int
    is_active: bool = True


@dataclass(frozen=True)
class CategoryRuleSource:
    """Discount scoped to a category or a single service."""

    source_id: UUID
    discount_type: DiscountType
    discount_value: Decimal
    category_id: UUID | None = None
    service_id: UUID | None = None
    min_amount: Decimal | None = None
    max_discount: Decimal | None = None
    valid_from: date | None = None
    valid_to: date | None = None
    is_active: bool = True


@dataclass(frozen=True)
class PricingRuleSource:
    """
    General pricing rule with predicate conditions.

    ``rule_type`` selects which conditions apply:
        customer_category -- conditions["customer_category_id"]
        quantity          -- conditions["min_quantity" | "max_quantity" | "min_amount"]
        time_based        -- conditions["day_of_week"] (0=Sunday) and
                             conditions["hour_start"] / ["hour_end"] (inclusive)
    ``target_entity`` (service | customer | category) narrows the rule to a
    single ``target_id``.
    """

    source_id: UUID
    name: str
    rule_type: str
    adjustment_type: str  # percentage | fixed
    adjustment_value: Decimal
    conditions: dict[str, Any] = field(default_factory=dict, hash=False)
    target_entity: str | None = None
    target_id: UUID | None = None
    priority: int = 0
    valid_from: date | None = None
    valid_to: date | None = None
    is_active: bool = True
    description: str | None = None


DiscountSource = Union[
    PromotionalSource,
    VolumeTierSource,
    EarlyPaymentSource,
    CategoryRuleSource,
    PricingRuleSource,
]
