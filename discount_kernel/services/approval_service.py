"""
discount_kernel.services.approval_service -- Discount approval lifecycle.

Responsibility:
    Persists approval requests raised when a discount meets the business
    threshold, records the single approve/reject decision, and serves
    tenant-scoped lookups.  Whether approval is required at all is decided
    by the pure gate in discount_engines.approval_gate.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Requests are created pending.
    - A decision moves pending -> approved | rejected exactly once, as
      allowed by APPROVAL_TRANSITIONS.  The UPDATE also carries the status
      it was checked against, so two concurrent approvers cannot both
      succeed; the loser gets ApprovalAlreadyDecidedError and the stored
      status is untouched.
    - Only APPROVE and REJECT are decisions; anything else is refused
      before the row is touched.
    - Every lookup is scoped by business_id.

Failure modes:
    - ApprovalNotFoundError if the request does not exist for the business.
    - ApprovalAlreadyDecidedError on a decision against a terminal request.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any, NoReturn
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from discount_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalRequest,
    ApprovalStatus,
    can_transition,
    resolve_decision_status,
)
from discount_kernel.domain.clock import Clock
from discount_kernel.domain.values import Money
from discount_kernel.exceptions import (
    ApprovalAlreadyDecidedError,
    ApprovalNotFoundError,
)
from discount_kernel.logging_config import get_logger
from discount_kernel.models.approval import DiscountApprovalModel
from discount_kernel.services.base import BaseService

logger = get_logger("services.approval")


class DiscountApprovalService(BaseService[DiscountApprovalModel]):
    """Manages discount approval request/decision lifecycle."""

    model = DiscountApprovalModel

    def __init__(self, session: Session, clock: Clock | None = None) -> None:
        super().__init__(session, clock)

    def submit(
        self,
        business_id: UUID,
        original_amount: Money,
        requested_discount: Money,
        discount_percentage: Decimal,
        approval_threshold: Decimal,
        requested_by: UUID | None = None,
        reason: str | None = None,
        customer_id: UUID | None = None,
        discounts: Sequence[dict[str, Any]] = (),
    ) -> ApprovalRequest:
        """Create a pending approval request and flush it."""
        model = DiscountApprovalModel(
            business_id=business_id,
            customer_id=customer_id,
            requested_by=requested_by,
            original_amount=original_amount.amount,
            requested_discount=requested_discount.amount,
            discount_percentage=discount_percentage,
            approval_threshold=approval_threshold,
            currency=original_amount.currency.code,
            status=ApprovalStatus.PENDING.value,
            reason=reason,
            discounts=list(discounts),
            created_at=self.clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "approval_requested",
            extra={
                "request_id": str(model.id),
                "business_id": str(business_id),
                "requested_discount": str(requested_discount.amount),
                "discount_percentage": str(discount_percentage),
                "approval_threshold": str(approval_threshold),
            },
        )
        return model.to_dto()

    def process_decision(
        self,
        business_id: UUID,
        request_id: UUID,
        decision: ApprovalDecision | str,
        approver_id: UUID,
        reason: str | None = None,
    ) -> ApprovalRequest:
        """
        Record the approve/reject decision for a pending request.

        Preconditions:
            - The request exists for ``business_id`` and is still pending.
        Postconditions:
            - status is approved or rejected; approver_id and decided_at set.
        Raises:
            ApprovalNotFoundError: unknown request for this business.
            ApprovalAlreadyDecidedError: request is no longer pending.
            InvalidApprovalDecisionError: decision is not APPROVE or REJECT.
        """
        new_status = resolve_decision_status(decision)

        current = ApprovalStatus(self._load(business_id, request_id).status)
        if not can_transition(current, new_status):
            self._refuse_decision(request_id, current, new_status)

        result = self.session.execute(
            update(DiscountApprovalModel)
            .where(DiscountApprovalModel.id == request_id)
            .where(DiscountApprovalModel.business_id == business_id)
            .where(DiscountApprovalModel.status == current.value)
            .values(
                status=new_status.value,
                approver_id=approver_id,
                decision_reason=reason,
                decided_at=self.clock.now(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            # Decided concurrently between the read and the update
            raced = ApprovalStatus(self._load(business_id, request_id).status)
            self._refuse_decision(request_id, raced, new_status)

        model = self._load(business_id, request_id)
        logger.info(
            "approval_decided",
            extra={
                "request_id": str(request_id),
                "business_id": str(business_id),
                "status": new_status.value,
                "approver_id": str(approver_id),
            },
        )
        return model.to_dto()

    def get(self, business_id: UUID, request_id: UUID) -> ApprovalRequest:
        """Load one request, scoped to the business."""
        return self._load(business_id, request_id).to_dto()

    def list_pending(self, business_id: UUID) -> list[ApprovalRequest]:
        """Pending requests for a business, oldest first."""
        rows = self.session.execute(
            select(DiscountApprovalModel)
            .where(DiscountApprovalModel.business_id == business_id)
            .where(DiscountApprovalModel.status == ApprovalStatus.PENDING.value)
            .order_by(DiscountApprovalModel.created_at, DiscountApprovalModel.id)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def _refuse_decision(
        self,
        request_id: UUID,
        current: ApprovalStatus,
        attempted: ApprovalStatus,
    ) -> NoReturn:
        logger.warning(
            "approval_decision_rejected",
            extra={
                "request_id": str(request_id),
                "current_status": current.value,
                "attempted_status": attempted.value,
            },
        )
        raise ApprovalAlreadyDecidedError(str(request_id), current.value)

    def _load(self, business_id: UUID, request_id: UUID) -> DiscountApprovalModel:
        model = self._find_for_business(business_id, request_id)
        if model is None:
            raise ApprovalNotFoundError(str(request_id), str(business_id))
        return model
