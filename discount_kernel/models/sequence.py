"""
Module: discount_kernel.models.sequence
Responsibility: Counter rows backing allocation number generation.

Each row is one named sequence (one per business and month); the row is
locked and incremented by SequenceService, never derived from MAX()+1.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from discount_kernel.db.base import Base


class SequenceCounter(Base):
    """Named monotonic counter."""

    __tablename__ = "discount_sequence_counters"

    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
