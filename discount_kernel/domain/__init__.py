"""
Pure domain layer.

Immutable value objects and lifecycle tables with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (other than the injectable Clock interface)
- I/O
"""

from discount_kernel.domain.allocation import (
    AllocationDraft,
    AllocationLineRecord,
    AllocationMethod,
    AllocationRecord,
    AllocationStatus,
)
from discount_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    TERMINAL_APPROVAL_STATUSES,
    ApprovalDecision,
    ApprovalRequest,
    ApprovalStatus,
    GateState,
)
from discount_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from discount_kernel.domain.currency import MINOR_UNIT_DIGITS, is_known_currency, minor_unit
from discount_kernel.domain.discount import (
    TYPE_PRIORITY,
    AppliedDiscount,
    ConflictType,
    DiscountCandidate,
    DiscountConflict,
    DiscountSourceType,
    DiscountType,
    LineItem,
    StackedDiscountResult,
    TransactionContext,
)
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    DiscountSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)
from discount_kernel.domain.values import Currency, Money, sum_money

__all__ = [
    "APPROVAL_TRANSITIONS",
    "TERMINAL_APPROVAL_STATUSES",
    "TYPE_PRIORITY",
    "AllocationDraft",
    "AllocationLineRecord",
    "AllocationMethod",
    "AllocationRecord",
    "AllocationStatus",
    "AppliedDiscount",
    "ApprovalDecision",
    "ApprovalRequest",
    "ApprovalStatus",
    "CategoryRuleSource",
    "Clock",
    "ConflictType",
    "Currency",
    "DeterministicClock",
    "DiscountCandidate",
    "DiscountConflict",
    "DiscountSource",
    "DiscountSourceType",
    "DiscountType",
    "EarlyPaymentSource",
    "GateState",
    "LineItem",
    "MINOR_UNIT_DIGITS",
    "Money",
    "PricingRuleSource",
    "PromotionalSource",
    "StackedDiscountResult",
    "SystemClock",
    "TransactionContext",
    "VolumeTierSource",
    "is_known_currency",
    "minor_unit",
    "sum_money",
]
