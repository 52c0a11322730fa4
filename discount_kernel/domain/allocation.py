"""
Allocation -- discount allocation method and lifecycle types.

Allocation lines themselves are produced by the pure allocation engine;
this module holds the shared enums and the persisted-record DTOs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class AllocationMethod(str, Enum):
    """Weighting strategy used to spread a discount over line items."""

    PRO_RATA_AMOUNT = "PRO_RATA_AMOUNT"
    PRO_RATA_QUANTITY = "PRO_RATA_QUANTITY"
    CUSTOM_WEIGHTS = "CUSTOM_WEIGHTS"
    FIXED_PERCENTAGE = "FIXED_PERCENTAGE"


class AllocationStatus(str, Enum):
    PENDING = "PENDING"
    APPLIED = "APPLIED"
    VOID = "VOID"


ALLOCATION_TRANSITIONS: dict[AllocationStatus, frozenset[AllocationStatus]] = {
    AllocationStatus.PENDING: frozenset({AllocationStatus.APPLIED, AllocationStatus.VOID}),
    AllocationStatus.APPLIED: frozenset(),
    AllocationStatus.VOID: frozenset(),
}


@dataclass(frozen=True)
class AllocationLineRecord:
    line_id: str
    line_type: str
    line_amount: Decimal
    discount_amount: Decimal
    allocation_weight: Decimal
    quantity: int = 1


@dataclass(frozen=True)
class AllocationRecord:
    """Committed allocation header with its lines."""

    allocation_id: UUID
    business_id: UUID
    allocation_number: str
    total_discount_amount: Decimal
    currency: str
    allocation_method: AllocationMethod
    status: AllocationStatus
    created_at: datetime
    lines: tuple[AllocationLineRecord, ...]
    discount_rule_id: UUID | None = None
    promotional_discount_id: UUID | None = None
    transaction_id: UUID | None = None
    transaction_type: str | None = None
    customer_id: UUID | None = None
    created_by: UUID | None = None
    applied_at: datetime | None = None
    void_reason: str | None = None

    @property
    def lines_total(self) -> Decimal:
        return sum((line.discount_amount for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class AllocationDraft:
    """
    Allocation ready to be committed.

    ``lines`` must sum exactly to ``total_discount_amount``; the persistence
    service re-checks this before writing anything.
    """

    business_id: UUID
    total_discount_amount: Decimal
    currency: str
    allocation_method: AllocationMethod
    lines: tuple[AllocationLineRecord, ...]
    discount_rule_id: UUID | None = None
    promotional_discount_id: UUID | None = None
    transaction_id: UUID | None = None
    transaction_type: str | None = None
    customer_id: UUID | None = None
    allocation_number: str | None = None  # Assigned from the sequence when None

    @property
    def lines_total(self) -> Decimal:
        return sum((line.discount_amount for line in self.lines), Decimal("0"))
