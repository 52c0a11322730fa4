"""
Approval -- discount approval lifecycle types.

Responsibility:
    Status enum, transition table and frozen DTOs for discount approval
    requests, plus the gate states the pure approval gate reports.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A request is created PENDING and decided exactly once.
    - APPROVED and REJECTED are terminal; they have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from discount_kernel.exceptions import InvalidApprovalDecisionError


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class GateState(str, Enum):
    """Outcome of evaluating the approval gate for one pricing run."""

    NOT_REQUIRED = "NOT_REQUIRED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})


def resolve_decision_status(decision: ApprovalDecision | str) -> ApprovalStatus:
    """Map APPROVE or REJECT (case-insensitive) onto the status it produces.

    Raises:
        InvalidApprovalDecisionError: anything else, including status names
            such as "approved".
    """
    raw = str(getattr(decision, "value", decision)).strip().upper()
    match raw:
        case ApprovalDecision.APPROVE.value:
            return ApprovalStatus.APPROVED
        case ApprovalDecision.REJECT.value:
            return ApprovalStatus.REJECTED
        case _:
            raise InvalidApprovalDecisionError(str(decision))


def can_transition(current: ApprovalStatus, target: ApprovalStatus) -> bool:
    return target in APPROVAL_TRANSITIONS[current]


@dataclass(frozen=True)
class ApprovalRequest:
    """Persisted approval request as seen by callers."""

    request_id: UUID
    business_id: UUID
    requested_by: UUID | None
    original_amount: Decimal
    requested_discount: Decimal
    discount_percentage: Decimal
    approval_threshold: Decimal
    currency: str
    status: ApprovalStatus
    created_at: datetime
    reason: str | None = None
    decision_reason: str | None = None
    approver_id: UUID | None = None
    decided_at: datetime | None = None
    customer_id: UUID | None = None
    discounts: tuple[dict[str, Any], ...] = field(default=(), hash=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPROVAL_STATUSES
