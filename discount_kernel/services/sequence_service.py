"""
SequenceService -- per-business, per-month counters behind allocation numbers.

Responsibility:
    ``next_value`` returns 1, 2, 3, ... for one named counter.  Allocation
    numbers (``DA-YYYY-MM-NNNNNN``) use one counter per business and month,
    named by ``allocation_sequence_name``.

Invariants enforced:
    - The counter row is read FOR UPDATE before it is incremented; two
      allocations for the same business and month never share a number.
    - Numbers are never derived from the allocations table.
    - Nothing is committed here.  A rolled-back allocation releases its
      number along with the rest of the transaction.

Failure modes:
    - Two transactions creating the same counter at once: the loser's
      INSERT fails inside a savepoint, which is rolled back, and the
      winner's row is locked and incremented instead.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from discount_kernel.logging_config import get_logger
from discount_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


def allocation_sequence_name(business_id: UUID, at: datetime) -> str:
    return f"discount_allocation:{business_id}:{at.year:04d}-{at.month:02d}"


class SequenceService:
    """Counter rows locked and incremented inside the caller's transaction."""

    def __init__(self, session: Session):
        self._session = session

    def _lock(self, name: str) -> SequenceCounter | None:
        stmt = (
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one_or_none()

    def _create(self, name: str) -> SequenceCounter:
        counter = SequenceCounter(name=name, current_value=0)
        try:
            with self._session.begin_nested():
                self._session.add(counter)
        except IntegrityError:
            logger.debug("sequence_create_conflict", extra={"sequence_name": name})
            existing = self._lock(name)
            if existing is None:
                raise
            return existing
        return counter

    def next_value(self, name: str) -> int:
        """Increment counter ``name`` (creating it at zero) and return the new value."""
        counter = self._lock(name) or self._create(name)
        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, name: str) -> int | None:
        """Last value handed out, or None if the counter was never used."""
        return self._session.scalars(
            select(SequenceCounter.current_value).where(SequenceCounter.name == name)
        ).one_or_none()
