"""
discount_kernel.services.allocation_service -- Discount allocation persistence.

Responsibility:
    Commits an allocation (header plus every line) produced by the pure
    allocation engine, assigns its allocation number, and manages the
    PENDING -> APPLIED / VOID lifecycle.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - All-or-nothing: header and lines are flushed inside one savepoint.
      A failure rolls the savepoint back, so no partial allocation is ever
      visible in the caller's transaction.
    - Exact sum: lines are re-checked against total_discount_amount before
      any write.
    - Every allocation references a discount rule or a promotion.
    - allocation_number is unique per business (DB constraint).
    - Only PENDING allocations may be applied or voided.

Failure modes:
    - MissingDiscountReferenceError when neither reference is supplied.
    - AllocationTotalMismatchError when lines do not reconcile.
    - AllocationNumberCollisionError on a duplicate allocation number.
    - AllocationPersistenceError on any other write failure.
    - AllocationNotFoundError / AllocationStateError on lifecycle actions.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from discount_kernel.domain.allocation import (
    ALLOCATION_TRANSITIONS,
    AllocationDraft,
    AllocationRecord,
    AllocationStatus,
)
from discount_kernel.domain.clock import Clock
from discount_kernel.exceptions import (
    AllocationNotFoundError,
    AllocationNumberCollisionError,
    AllocationPersistenceError,
    AllocationStateError,
    AllocationTotalMismatchError,
    MissingDiscountReferenceError,
)
from discount_kernel.logging_config import get_logger
from discount_kernel.models.allocation import (
    DiscountAllocationLineModel,
    DiscountAllocationModel,
)
from discount_kernel.services.base import BaseService
from discount_kernel.services.sequence_service import SequenceService, allocation_sequence_name

logger = get_logger("services.allocation")

ALLOCATION_NUMBER_PREFIX = "DA"


def format_allocation_number(at: datetime, value: int) -> str:
    """DA-YYYY-MM-NNNNNN."""
    return f"{ALLOCATION_NUMBER_PREFIX}-{at.year:04d}-{at.month:02d}-{value:06d}"


class AllocationService(BaseService[DiscountAllocationModel]):
    """Commits and manages discount allocations."""

    model = DiscountAllocationModel

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence_service: SequenceService | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._sequences = sequence_service or SequenceService(session)

    def next_allocation_number(self, business_id: UUID, at: datetime) -> str:
        """Draw the next number from the business/month sequence."""
        sequence_name = allocation_sequence_name(business_id, at)
        return format_allocation_number(at, self._sequences.next_value(sequence_name))

    def create_allocation(
        self,
        draft: AllocationDraft,
        created_by: UUID | None = None,
    ) -> AllocationRecord:
        """
        Write the allocation header and all of its lines atomically.

        Preconditions:
            - draft.lines sum exactly to draft.total_discount_amount.
            - draft carries a discount_rule_id or promotional_discount_id.
        Postconditions:
            - One PENDING header row and len(draft.lines) line rows exist
              in the caller's transaction, or nothing was written.
        """
        business_id = draft.business_id
        if draft.discount_rule_id is None and draft.promotional_discount_id is None:
            raise MissingDiscountReferenceError(str(business_id))

        expected = draft.total_discount_amount
        actual = draft.lines_total
        if expected != actual:
            raise AllocationTotalMismatchError(str(expected), str(actual))

        now = self.clock.now()
        allocation_number = draft.allocation_number or ""
        savepoint = self.session.begin_nested()
        try:
            if not allocation_number:
                allocation_number = self.next_allocation_number(business_id, now)
            header = DiscountAllocationModel(
                business_id=business_id,
                allocation_number=allocation_number,
                discount_rule_id=draft.discount_rule_id,
                promotional_discount_id=draft.promotional_discount_id,
                transaction_id=draft.transaction_id,
                transaction_type=draft.transaction_type,
                customer_id=draft.customer_id,
                total_discount_amount=expected,
                currency=draft.currency,
                allocation_method=draft.allocation_method.value,
                status=AllocationStatus.PENDING.value,
                created_by=created_by,
                created_at=now,
                lines=[
                    DiscountAllocationLineModel(
                        line_number=i + 1,
                        line_item_id=line.line_id,
                        line_type=line.line_type,
                        quantity=line.quantity,
                        line_amount=line.line_amount,
                        discount_amount=line.discount_amount,
                        allocation_weight=line.allocation_weight,
                    )
                    for i, line in enumerate(draft.lines)
                ],
            )
            self.session.add(header)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            if "allocation_number" in str(exc.orig):
                logger.warning(
                    "allocation_number_collision",
                    extra={"business_id": str(business_id), "allocation_number": allocation_number},
                )
                raise AllocationNumberCollisionError(allocation_number, str(business_id)) from exc
            logger.error(
                "allocation_persist_failed",
                extra={"business_id": str(business_id), "reason": str(exc.orig)},
            )
            raise AllocationPersistenceError(str(business_id), str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            savepoint.rollback()
            logger.error(
                "allocation_persist_failed",
                extra={"business_id": str(business_id), "reason": str(exc)},
            )
            raise AllocationPersistenceError(str(business_id), str(exc)) from exc

        logger.info(
            "allocation_created",
            extra={
                "allocation_id": str(header.id),
                "allocation_number": allocation_number,
                "business_id": str(business_id),
                "total_discount": str(expected),
                "method": draft.allocation_method.value,
                "line_count": len(draft.lines),
            },
        )
        return header.to_dto()

    def get_allocation(self, business_id: UUID, allocation_id: UUID) -> AllocationRecord:
        return self._load(business_id, allocation_id).to_dto()

    def list_for_transaction(
        self,
        business_id: UUID,
        transaction_id: UUID,
    ) -> list[AllocationRecord]:
        rows = self.session.execute(
            select(DiscountAllocationModel)
            .where(DiscountAllocationModel.business_id == business_id)
            .where(DiscountAllocationModel.transaction_id == transaction_id)
            .order_by(DiscountAllocationModel.created_at, DiscountAllocationModel.allocation_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def apply_allocation(
        self,
        business_id: UUID,
        allocation_id: UUID,
    ) -> AllocationRecord:
        """Mark a PENDING allocation as APPLIED (counts toward promo usage)."""
        model = self._load(business_id, allocation_id, for_update=True)
        self._check_transition(model, AllocationStatus.APPLIED, "apply")
        model.status = AllocationStatus.APPLIED.value
        model.applied_at = self.clock.now()
        self.session.flush()
        logger.info(
            "allocation_applied",
            extra={"allocation_id": str(allocation_id), "allocation_number": model.allocation_number},
        )
        return model.to_dto()

    def void_allocation(
        self,
        business_id: UUID,
        allocation_id: UUID,
        reason: str,
    ) -> AllocationRecord:
        """Void a PENDING allocation. Applied allocations cannot be voided."""
        model = self._load(business_id, allocation_id, for_update=True)
        self._check_transition(model, AllocationStatus.VOID, "void")
        model.status = AllocationStatus.VOID.value
        model.voided_at = self.clock.now()
        model.void_reason = reason
        self.session.flush()
        logger.info(
            "allocation_voided",
            extra={
                "allocation_id": str(allocation_id),
                "allocation_number": model.allocation_number,
                "reason": reason,
            },
        )
        return model.to_dto()

    def can_void(self, business_id: UUID, allocation_id: UUID) -> bool:
        model = self._load(business_id, allocation_id)
        return AllocationStatus.VOID in ALLOCATION_TRANSITIONS[AllocationStatus(model.status)]

    def _check_transition(
        self,
        model: DiscountAllocationModel,
        target: AllocationStatus,
        action: str,
    ) -> None:
        current = AllocationStatus(model.status)
        if target not in ALLOCATION_TRANSITIONS[current]:
            raise AllocationStateError(str(model.id), current.value, action)

    def _load(
        self,
        business_id: UUID,
        allocation_id: UUID,
        for_update: bool = False,
    ) -> DiscountAllocationModel:
        model = self._find_for_business(business_id, allocation_id, for_update=for_update)
        if model is None:
            raise AllocationNotFoundError(str(allocation_id), str(business_id))
        return model
