"""
Module: discount_kernel.models.sources
Responsibility: ORM mappings for the five discount source tables.

Architecture position: Kernel > Models.  May import from db/base.py only.
    These tables are authored elsewhere; the discount engine only reads
    them (through SqlDiscountSourceStore) and converts rows to the frozen
    source variants in discount_kernel.domain.sources.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, Boolean, Date, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from discount_kernel.db.base import Base, UUIDString
from discount_kernel.domain.discount import DiscountType
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)


class PromotionalDiscountModel(Base):
    __tablename__ = "promotional_discounts"

    __table_args__ = (
        Index("ix_promotional_discounts_business_code", "business_id", "promo_code"),
    )

    business_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    promo_code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    min_purchase: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
    max_uses: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    times_used: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    per_customer_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    stackable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_source(self) -> PromotionalSource:
        return PromotionalSource(
            source_id=self.id,
            promo_code=self.promo_code,
            discount_type=DiscountType(self.discount_type.upper()),
            discount_value=self.discount_value,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            min_purchase=self.min_purchase,
            max_uses=self.max_uses,
            times_used=self.times_used or 0,
            per_customer_limit=self.per_customer_limit,
            stackable=self.stackable,
            is_active=self.is_active,
            description=self.description,
        )


class VolumeDiscountTierModel(Base):
    __tablename__ = "volume_discount_tiers"

    business_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    tier_name: Mapped[str] = mapped_column(String(100), nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    min_quantity: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    min_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
    applies_to: Mapped[str] = mapped_column(String(20), nullable=False, default="ALL")
    target_category_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_source(self) -> VolumeTierSource:
        return VolumeTierSource(
            source_id=self.id,
            tier_name=self.tier_name,
            discount_percentage=self.discount_percentage,
            min_quantity=self.min_quantity,
            min_amount=self.min_amount,
            applies_to=self.applies_to,
            target_category_id=self.target_category_id,
            is_active=self.is_active,
        )


class EarlyPaymentTermModel(Base):
    __tablename__ = "early_payment_terms"

    business_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    term_name: Mapped[str] = mapped_column(String(100), nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    discount_days: Mapped[int] = mapped_column(Integer, nullable=False)
    net_days: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_source(self) -> EarlyPaymentSource:
        return EarlyPaymentSource(
            source_id=self.id,
            term_name=self.term_name,
            discount_percentage=self.discount_percentage,
            discount_days=self.discount_days,
            net_days=self.net_days,
            is_active=self.is_active,
        )


class CategoryDiscountRuleModel(Base):
    __tablename__ = "category_discount_rules"

    business_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    category_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    service_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    min_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
    max_discount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_source(self) -> CategoryRuleSource:
        return CategoryRuleSource(
            source_id=self.id,
            discount_type=DiscountType(self.discount_type.upper()),
            discount_value=self.discount_value,
            category_id=self.category_id,
            service_id=self.service_id,
            min_amount=self.min_amount,
            max_discount=self.max_discount,
            valid_from=self.valid_from,
            valid_to=self.valid_until,
            is_active=self.is_active,
        )


class PricingRuleModel(Base):
    __tablename__ = "pricing_rules"

    business_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rule_type: Mapped[str] = mapped_column(String(50), nullable=False)
    conditions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    adjustment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    adjustment_value: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    target_entity: Mapped[str | None] = mapped_column(String(30), nullable=True)
    target_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_source(self) -> PricingRuleSource:
        return PricingRuleSource(
            source_id=self.id,
            name=self.name,
            rule_type=self.rule_type,
            adjustment_type=self.adjustment_type,
            adjustment_value=self.adjustment_value,
            conditions=dict(self.conditions or {}),
            target_entity=self.target_entity,
            target_id=self.target_id,
            priority=self.priority,
            valid_from=self.valid_from,
            valid_to=self.valid_until,
            is_active=self.is_active,
            description=self.description,
        )
