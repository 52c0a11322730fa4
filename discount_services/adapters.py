"""
Collaborator protocols consumed by the pricing pipeline.

Contract:
    DiscountSourceStore -- read-only raw rows per source type, per business.
    LedgerAdapter       -- posts the journal for a committed allocation.
    AnalyticsAdapter    -- usage aggregation; failures never fail pricing.

Architecture: discount_services/adapters.  Protocols and an in-memory
source store only; the SQL store lives in
discount_kernel.selectors.source_selector and satisfies
DiscountSourceStore structurally.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID

from discount_kernel.domain.discount import AppliedDiscount, TransactionContext
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    DiscountSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)
from discount_kernel.domain.values import Money

if TYPE_CHECKING:
    from discount_services.pricing_engine import PricingResult


@runtime_checkable
class DiscountSourceStore(Protocol):
    """Protocol for reading discount source rows for one business."""

    def promotions(self, business_id: UUID) -> list[PromotionalSource]:
        ...

    def volume_tiers(self, business_id: UUID) -> list[VolumeTierSource]:
        ...

    def payment_terms(self, business_id: UUID) -> list[EarlyPaymentSource]:
        ...

    def category_rules(self, business_id: UUID) -> list[CategoryRuleSource]:
        ...

    def pricing_rules(self, business_id: UUID) -> list[PricingRuleSource]:
        ...

    def count_customer_promo_usage(
        self,
        business_id: UUID,
        promo_id: UUID,
        customer_id: UUID,
    ) -> int:
        """APPLIED allocations this customer holds against the promotion."""
        ...


@dataclass(frozen=True)
class JournalReference:
    """Identity of the journal entry a ledger posted for an allocation."""

    journal_entry_id: UUID | str
    entry_number: str | None = None


@dataclass(frozen=True)
class DiscountJournalInfo:
    """What the ledger needs to book a committed discount allocation."""

    business_id: UUID
    allocation_id: UUID
    allocation_number: str
    total_discount: Money
    applied: tuple[AppliedDiscount, ...]
    user_id: UUID | None = None


@runtime_checkable
class LedgerAdapter(Protocol):
    def post_discount_journal(
        self,
        transaction: TransactionContext,
        discount_info: DiscountJournalInfo,
    ) -> JournalReference:
        ...


@runtime_checkable
class AnalyticsAdapter(Protocol):
    def record_discount_usage(self, business_id: UUID, result: PricingResult) -> None:
        ...


class InMemoryDiscountSourceStore:
    """
    DiscountSourceStore over plain lists, keyed by business.

    Used by tests and by callers that load rules from somewhere other than
    the database.  Thread-safe for the concurrent discovery fan-out.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sources: dict[UUID, list[DiscountSource]] = defaultdict(list)
        self._usage: dict[tuple[UUID, UUID, UUID], int] = defaultdict(int)

    def add(self, business_id: UUID, *sources: DiscountSource) -> None:
        with self._lock:
            self._sources[business_id].extend(sources)

    def record_usage(
        self,
        business_id: UUID,
        promo_id: UUID,
        customer_id: UUID,
        count: int = 1,
    ) -> None:
        with self._lock:
            self._usage[(business_id, promo_id, customer_id)] += count

    def _of_type(self, business_id: UUID, kind: type) -> list:
        with self._lock:
            return [s for s in self._sources.get(business_id, ()) if isinstance(s, kind)]

    def promotions(self, business_id: UUID) -> list[PromotionalSource]:
        return self._of_type(business_id, PromotionalSource)

    def volume_tiers(self, business_id: UUID) -> list[VolumeTierSource]:
        return self._of_type(business_id, VolumeTierSource)

    def payment_terms(self, business_id: UUID) -> list[EarlyPaymentSource]:
        return self._of_type(business_id, EarlyPaymentSource)

    def category_rules(self, business_id: UUID) -> list[CategoryRuleSource]:
        return self._of_type(business_id, CategoryRuleSource)

    def pricing_rules(self, business_id: UUID) -> list[PricingRuleSource]:
        return self._of_type(business_id, PricingRuleSource)

    def count_customer_promo_usage(
        self,
        business_id: UUID,
        promo_id: UUID,
        customer_id: UUID,
    ) -> int:
        with self._lock:
            return self._usage.get((business_id, promo_id, customer_id), 0)
