"""
BaseService -- shared constructor and row lookup for the writing services.

Responsibility:
    Holds the caller's Session and the Clock that stamps created/decided/
    applied timestamps, and loads rows scoped to one business.

Invariants enforced:
    - Services flush; the caller owns commit and rollback.  Multi-row
      writes go through ``session.begin_nested()`` so they land whole.
    - A row is only ever loaded together with its ``business_id``; an id
      belonging to another business reads as missing.
"""

from abc import ABC
from typing import ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from discount_kernel.db.base import Base
from discount_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Session-bound service over one business-scoped table."""

    model: ClassVar[type]

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _find_for_business(
        self,
        business_id: UUID,
        row_id: UUID,
        for_update: bool = False,
    ) -> ModelType | None:
        """
        Row ``row_id`` if it belongs to ``business_id``, refreshed from the
        database.  ``for_update`` also locks it for a status transition.
        """
        stmt = (
            select(self.model)
            .where(self.model.id == row_id)
            .where(self.model.business_id == business_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).one_or_none()
