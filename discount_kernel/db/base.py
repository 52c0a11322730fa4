"""
Module: discount_kernel.db.base
Responsibility: Declarative base shared by the source tables, approvals,
    allocations and sequence counters.
Architecture position: Kernel > DB.  Imported by every model module; imports
    nothing from the rest of the kernel.

Invariants enforced:
    - Every row has a uuid4 ``id``, stored as a 36-character string so the
      same schema runs on SQLite in tests and PostgreSQL in deployment.
    - Discount values, amounts and weights map to Numeric(38, 9); a float
      column is never generated from a Decimal annotation.
    - Constraint and index names follow one naming convention, so
      migrations diff cleanly across dialects.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import JSON, Date, DateTime, MetaData, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """
    UUID column stored as String(36).

    Binds UUIDs or their string form (a malformed string fails before it
    reaches the database); loads as UUID.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = UUID(value)
        return str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base: uuid4 primary key plus the shared type map."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        dict: JSON,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
