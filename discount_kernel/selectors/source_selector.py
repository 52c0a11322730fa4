"""
Module: discount_kernel.selectors.source_selector
Responsibility: Read-only queries over the discount source tables, returning
    frozen source variants rather than ORM rows.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  Never adds, flushes or commits.

Invariants enforced:
    - Read-only access.
    - One short-lived session per lookup, taken from a sessionmaker, so the
      discovery fan-out can call every method concurrently from its own
      worker thread without sharing a Session.
    - Only active rows are returned; date windows, minimums and eligibility
      predicates are evaluated by the pure filter/eligibility functions.

Failure modes:
    - SQLAlchemyError propagates to the caller; discovery converts it into a
      failed source outcome.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from discount_kernel.domain.allocation import AllocationStatus
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)
from discount_kernel.logging_config import get_logger
from discount_kernel.models.allocation import DiscountAllocationModel
from discount_kernel.models.sources import (
    CategoryDiscountRuleModel,
    EarlyPaymentTermModel,
    PricingRuleModel,
    PromotionalDiscountModel,
    VolumeDiscountTierModel,
)

logger = get_logger("selectors.sources")


class SqlDiscountSourceStore:
    """
    Database-backed discount source lookups.

    Contract:
        Satisfies the DiscountSourceStore protocol used by discovery.
    Non-goals:
        - Does NOT create or edit source rows.
        - Does NOT cache rule definitions; every call re-reads the tables.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def promotions(self, business_id: UUID) -> list[PromotionalSource]:
        with self._session_factory() as session:
            rows = session.execute(
                select(PromotionalDiscountModel)
                .where(PromotionalDiscountModel.business_id == business_id)
                .where(PromotionalDiscountModel.is_active.is_(True))
                .order_by(PromotionalDiscountModel.promo_code)
            ).scalars().all()
            return [row.to_source() for row in rows]

    def volume_tiers(self, business_id: UUID) -> list[VolumeTierSource]:
        with self._session_factory() as session:
            rows = session.execute(
                select(VolumeDiscountTierModel)
                .where(VolumeDiscountTierModel.business_id == business_id)
                .where(VolumeDiscountTierModel.is_active.is_(True))
                .order_by(VolumeDiscountTierModel.discount_percentage.desc())
            ).scalars().all()
            return [row.to_source() for row in rows]

    def payment_terms(self, business_id: UUID) -> list[EarlyPaymentSource]:
        with self._session_factory() as session:
            rows = session.execute(
                select(EarlyPaymentTermModel)
                .where(EarlyPaymentTermModel.business_id == business_id)
                .where(EarlyPaymentTermModel.is_active.is_(True))
                .order_by(EarlyPaymentTermModel.discount_percentage.desc())
            ).scalars().all()
            return [row.to_source() for row in rows]

    def category_rules(self, business_id: UUID) -> list[CategoryRuleSource]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CategoryDiscountRuleModel)
                .where(CategoryDiscountRuleModel.business_id == business_id)
                .where(CategoryDiscountRuleModel.is_active.is_(True))
            ).scalars().all()
            return [row.to_source() for row in rows]

    def pricing_rules(self, business_id: UUID) -> list[PricingRuleSource]:
        with self._session_factory() as session:
            rows = session.execute(
                select(PricingRuleModel)
                .where(PricingRuleModel.business_id == business_id)
                .where(PricingRuleModel.is_active.is_(True))
                .order_by(PricingRuleModel.priority.desc())
            ).scalars().all()
            return [row.to_source() for row in rows]

    def count_customer_promo_usage(
        self,
        business_id: UUID,
        promo_id: UUID,
        customer_id: UUID,
    ) -> int:
        """Number of APPLIED allocations for this promotion and customer."""
        with self._session_factory() as session:
            count = session.execute(
                select(func.count(DiscountAllocationModel.id))
                .where(DiscountAllocationModel.business_id == business_id)
                .where(DiscountAllocationModel.promotional_discount_id == promo_id)
                .where(DiscountAllocationModel.customer_id == customer_id)
                .where(DiscountAllocationModel.status == AllocationStatus.APPLIED.value)
            ).scalar_one()
            logger.debug(
                "promo_usage_counted",
                extra={
                    "promo_id": str(promo_id),
                    "customer_id": str(customer_id),
                    "usage_count": count,
                },
            )
            return count
