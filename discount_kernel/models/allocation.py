"""
Module: discount_kernel.models.allocation
Responsibility: ORM persistence for committed discount allocations and their
    per-line splits.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - allocation_number is unique per business.
    - Status is one of PENDING / APPLIED / VOID.
    - At least one of discount_rule_id / promotional_discount_id is set
      (check constraint; the service raises a typed error first).
    - Header and lines are written in one savepoint by AllocationService,
      so the stored lines always sum to total_discount_amount.

Failure modes:
    - IntegrityError on duplicate allocation number (surfaced as
      AllocationNumberCollisionError).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from discount_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from discount_kernel.domain.allocation import AllocationLineRecord, AllocationRecord


class DiscountAllocationModel(Base):
    """Allocation header: one row per committed discount split."""

    __tablename__ = "discount_allocations"

    __table_args__ = (
        UniqueConstraint(
            "business_id", "allocation_number",
            name="uq_discount_allocations_business_number",
        ),
        CheckConstraint(
            "status IN ('PENDING', 'APPLIED', 'VOID')",
            name="ck_discount_allocations_valid_status",
        ),
        CheckConstraint(
            "discount_rule_id IS NOT NULL OR promotional_discount_id IS NOT NULL",
            name="ck_discount_allocations_reference",
        ),
        Index(
            "ix_discount_allocations_transaction",
            "business_id", "transaction_id",
        ),
        Index(
            "ix_discount_allocations_promo_customer",
            "business_id", "promotional_discount_id", "customer_id", "status",
        ),
    )

    business_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    allocation_number: Mapped[str] = mapped_column(String(50), nullable=False)
    discount_rule_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    promotional_discount_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    transaction_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    transaction_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    customer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    total_discount_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    allocation_method: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    created_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["DiscountAllocationLineModel"]] = relationship(
        "DiscountAllocationLineModel",
        back_populates="allocation",
        order_by="DiscountAllocationLineModel.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<DiscountAllocation {self.allocation_number} status={self.status}>"

    def to_dto(self) -> AllocationRecord:
        """Convert ORM model to frozen domain DTO."""
        from discount_kernel.domain.allocation import (
            AllocationMethod,
            AllocationRecord as AllocationRecordDTO,
            AllocationStatus,
        )

        return AllocationRecordDTO(
            allocation_id=self.id,
            business_id=self.business_id,
            allocation_number=self.allocation_number,
            total_discount_amount=self.total_discount_amount,
            currency=self.currency,
            allocation_method=AllocationMethod(self.allocation_method),
            status=AllocationStatus(self.status),
            created_at=self.created_at,
            lines=tuple(line.to_dto() for line in self.lines),
            discount_rule_id=self.discount_rule_id,
            promotional_discount_id=self.promotional_discount_id,
            transaction_id=self.transaction_id,
            transaction_type=self.transaction_type,
            customer_id=self.customer_id,
            created_by=self.created_by,
            applied_at=self.applied_at,
            void_reason=self.void_reason,
        )


class DiscountAllocationLineModel(Base):
    """Per line item share of an allocation."""

    __tablename__ = "discount_allocation_lines"

    __table_args__ = (
        UniqueConstraint(
            "allocation_id", "line_number",
            name="uq_discount_allocation_lines_number",
        ),
    )

    allocation_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("discount_allocations.id"), nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    line_item_id: Mapped[str] = mapped_column(String(100), nullable=False)
    line_type: Mapped[str] = mapped_column(String(30), nullable=False, default="service")
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)
    line_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    allocation_weight: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    allocation: Mapped[DiscountAllocationModel] = relationship(
        "DiscountAllocationModel", back_populates="lines",
    )

    def to_dto(self) -> AllocationLineRecord:
        from discount_kernel.domain.allocation import AllocationLineRecord as LineDTO

        return LineDTO(
            line_id=self.line_item_id,
            line_type=self.line_type,
            line_amount=self.line_amount,
            discount_amount=self.discount_amount,
            allocation_weight=self.allocation_weight,
            quantity=self.quantity,
        )
