"""
Discount -- Candidate, context and stacking value objects.

Responsibility:
    Defines the normalized shapes that flow through the pricing pipeline:
    the immutable TransactionContext a caller prices, the DiscountCandidate
    every source record is normalized into, and the StackedDiscountResult
    produced by the stacking calculator.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - DiscountCandidate.discount_value >= 0.
    - StackedDiscountResult: final_amount == original_amount - total_discount
      and total_discount == sum(applied computed_amount), exact to the
      currency minor unit.
    - TransactionContext is frozen for the duration of one pipeline run.

Failure modes:
    - ValueError on negative discount values, quantities or line amounts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from discount_kernel.domain.values import Money


class DiscountSourceType(str, Enum):
    """Origin of a discount candidate."""

    PROMOTIONAL = "PROMOTIONAL"
    VOLUME = "VOLUME"
    EARLY_PAYMENT = "EARLY_PAYMENT"
    CATEGORY = "CATEGORY"
    PRICING_RULE = "PRICING_RULE"


class DiscountType(str, Enum):
    """How discount_value is interpreted."""

    PERCENTAGE = "PERCENTAGE"  # 0-100 of the original amount
    FIXED = "FIXED"  # Monetary amount, capped at the original amount


class ConflictType(str, Enum):
    DUPLICATE_TYPE = "DUPLICATE_TYPE"
    NON_STACKABLE = "NON_STACKABLE"


# Lower value is applied first.
TYPE_PRIORITY: dict[DiscountSourceType, int] = {
    DiscountSourceType.EARLY_PAYMENT: 10,
    DiscountSourceType.VOLUME: 20,
    DiscountSourceType.CATEGORY: 30,
    DiscountSourceType.PROMOTIONAL: 40,
    DiscountSourceType.PRICING_RULE: 50,
}

UNKNOWN_TYPE_PRIORITY = 999


def type_priority(source_type: DiscountSourceType | str) -> int:
    """Ordering rank of a source type; unknown types sort last."""
    try:
        return TYPE_PRIORITY[DiscountSourceType(source_type)]
    except ValueError:
        return UNKNOWN_TYPE_PRIORITY


@dataclass(frozen=True)
class LineItem:
    """
    One priced line of a transaction.

    ``amount`` is the unit price; ``line_amount`` is quantity x unit price.
    """

    line_id: str
    amount: Decimal
    quantity: int = 1
    line_type: str = "service"
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.amount < Decimal("0"):
            raise ValueError(f"Line {self.line_id} amount cannot be negative")
        if self.quantity < 0:
            raise ValueError(f"Line {self.line_id} quantity cannot be negative")

    @property
    def line_amount(self) -> Decimal:
        return self.amount * self.quantity


@dataclass(frozen=True)
class TransactionContext:
    """
    Everything discovery needs to know about the transaction being priced.

    Contract:
        Owned by the caller and immutable for one pipeline run.
    Guarantees:
        - quantity is non-negative.
        - line_items preserve caller order (allocation order).
    """

    business_id: UUID
    amount: Money
    customer_id: UUID | None = None
    quantity: int = 1
    promo_code: str | None = None
    category_id: UUID | None = None
    service_id: UUID | None = None
    customer_category_id: UUID | None = None
    transaction_date: date | None = None
    transaction_at: datetime | None = None
    line_items: tuple[LineItem, ...] = ()
    transaction_id: UUID | None = None
    transaction_type: str = "POS"

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError("Quantity cannot be negative")


@dataclass(frozen=True)
class DiscountCandidate:
    """
    A discount that discovery found legally applicable.

    Guarantees:
        - discount_value >= 0.
        - Percentage values are read on a 0-100 scale.
    """

    candidate_id: UUID
    source_type: DiscountSourceType
    discount_type: DiscountType
    discount_value: Decimal
    name: str
    valid_from: date | None = None
    valid_to: date | None = None
    min_purchase: Decimal | None = None
    min_quantity: int | None = None
    stackable: bool = True
    priority: int = 0
    description: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.discount_value, Decimal):
            object.__setattr__(self, "discount_value", Decimal(str(self.discount_value)))
        if self.discount_value < Decimal("0"):
            raise ValueError(
                f"Discount value cannot be negative: {self.discount_value}"
            )

    @property
    def type_priority(self) -> int:
        return type_priority(self.source_type)


@dataclass(frozen=True)
class AppliedDiscount:
    """A candidate as it was actually applied by the stacking calculator."""

    candidate_id: UUID
    source_type: DiscountSourceType
    discount_type: DiscountType
    discount_value: Decimal
    name: str
    computed_amount: Money


@dataclass(frozen=True)
class DiscountConflict:
    conflict_type: ConflictType
    message: str
    candidate_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class StackedDiscountResult:
    """
    Combined effect of all applied candidates.

    Guarantees:
        - final_amount == original_amount - total_discount.
        - total_discount == sum(a.computed_amount for a in applied).
        - 0 <= total_discount <= original_amount (for non-negative originals).
    """

    original_amount: Money
    applied: tuple[AppliedDiscount, ...]
    total_discount: Money
    final_amount: Money
    conflicts: tuple[DiscountConflict, ...] = ()

    @property
    def has_discount(self) -> bool:
        return self.total_discount.is_positive

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)
