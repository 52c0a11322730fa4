"""
Module: discount_kernel.models.approval
Responsibility: ORM persistence for discount approval requests.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - DB check constraint limits status to pending / approved / rejected.
    - Decision fields (approver_id, decided_at, decision_reason) are only
      written by the single optimistic UPDATE in DiscountApprovalService.

Failure modes:
    - IntegrityError on an invalid status value.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from discount_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from discount_kernel.domain.approval import ApprovalRequest


class DiscountApprovalModel(Base):
    """Persistent discount approval request."""

    __tablename__ = "discount_approvals"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_discount_approvals_valid_status",
        ),
        Index(
            "ix_discount_approvals_business_status",
            "business_id", "status", "created_at",
        ),
    )

    business_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    requested_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    original_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    requested_discount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    approval_threshold: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    decision_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    discounts: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<DiscountApproval {self.id} business={self.business_id} status={self.status}>"

    def to_dto(self) -> ApprovalRequest:
        """Convert ORM model to frozen domain DTO."""
        from discount_kernel.domain.approval import (
            ApprovalRequest as ApprovalRequestDTO,
            ApprovalStatus,
        )

        return ApprovalRequestDTO(
            request_id=self.id,
            business_id=self.business_id,
            requested_by=self.requested_by,
            original_amount=self.original_amount,
            requested_discount=self.requested_discount,
            discount_percentage=self.discount_percentage,
            approval_threshold=self.approval_threshold,
            currency=self.currency,
            status=ApprovalStatus(self.status),
            created_at=self.created_at,
            reason=self.reason,
            decision_reason=self.decision_reason,
            approver_id=self.approver_id,
            decided_at=self.decided_at,
            customer_id=self.customer_id,
            discounts=tuple(self.discounts or ()),
        )
