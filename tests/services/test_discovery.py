"""
Tests for concurrent discount discovery.

Covers:
- Candidates from every source type, filtered and ordered
- Partial failure: a raising source contributes nothing
- Timeout: a hung source is abandoned within the deadline
- Per-customer promotion usage
"""

import threading
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from discount_config.schema import EngineSettings
from discount_kernel.domain.discount import (
    DiscountSourceType,
    DiscountType,
    TransactionContext,
)
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)
from discount_kernel.domain.values import Money
from discount_kernel.logging_config import LogContext
from discount_services.adapters import InMemoryDiscountSourceStore
from discount_services.discovery import DiscountDiscoveryService, transaction_day


def make_context(business_id, amount="1000", **kwargs):
    return TransactionContext(business_id=business_id, amount=Money.of(amount, "USD"), **kwargs)


class FailingStore(InMemoryDiscountSourceStore):
    """Store whose volume lookup always raises."""

    def volume_tiers(self, business_id):
        raise ConnectionError("volume tiers unavailable")


class HangingStore(InMemoryDiscountSourceStore):
    """Store whose payment-term lookup blocks until released."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def payment_terms(self, business_id):
        self.release.wait(2)
        return super().payment_terms(business_id)


class TestDiscovery:
    """Fan-out over all five sources."""

    @pytest.fixture(autouse=True)
    def _setup(self, business_id, deterministic_clock):
        self.business_id = business_id
        self.clock = deterministic_clock
        self.category_id = uuid4()

    def populate(self, store):
        store.add(
            self.business_id,
            PromotionalSource(uuid4(), "SAVE10", DiscountType.PERCENTAGE, Decimal("10")),
            VolumeTierSource(uuid4(), "5+", Decimal("15"), min_quantity=5),
            EarlyPaymentSource(uuid4(), "2/10", Decimal("2"), 10, 30),
            CategoryRuleSource(
                uuid4(), DiscountType.PERCENTAGE, Decimal("5"), category_id=self.category_id,
            ),
            PricingRuleSource(uuid4(), "Any qty", "quantity", "percentage", Decimal("1")),
        )
        return store

    def test_all_sources_found_in_priority_order(self, customer_id):
        store = self.populate(InMemoryDiscountSourceStore())
        service = DiscountDiscoveryService(store, clock=self.clock)

        candidates = service.discover(
            self.business_id,
            make_context(
                self.business_id, quantity=5, customer_id=customer_id,
                promo_code="SAVE10", category_id=self.category_id,
            ),
        )

        assert [c.source_type for c in candidates] == [
            DiscountSourceType.EARLY_PAYMENT,
            DiscountSourceType.VOLUME,
            DiscountSourceType.CATEGORY,
            DiscountSourceType.PROMOTIONAL,
            DiscountSourceType.PRICING_RULE,
        ]

    def test_other_business_sees_nothing(self):
        store = self.populate(InMemoryDiscountSourceStore())
        service = DiscountDiscoveryService(store, clock=self.clock)
        other = uuid4()

        assert service.discover(other, make_context(other)) == []

    def test_expired_candidates_dropped(self):
        store = InMemoryDiscountSourceStore()
        store.add(
            self.business_id,
            PromotionalSource(
                uuid4(), "OLD", DiscountType.PERCENTAGE, Decimal("10"), valid_to=date(2024, 1, 14),
            ),
            PromotionalSource(
                uuid4(), "LAST_DAY", DiscountType.PERCENTAGE, Decimal("10"), valid_to=date(2024, 1, 15),
            ),
        )
        service = DiscountDiscoveryService(store, clock=self.clock)

        candidates = service.discover(self.business_id, make_context(self.business_id))

        assert [c.name for c in candidates] == ["LAST_DAY"]

    def test_minimum_purchase_filter(self):
        store = InMemoryDiscountSourceStore()
        store.add(
            self.business_id,
            PromotionalSource(
                uuid4(), "BIG", DiscountType.PERCENTAGE, Decimal("10"), min_purchase=Decimal("500"),
            ),
        )
        service = DiscountDiscoveryService(store, clock=self.clock)

        assert service.discover(self.business_id, make_context(self.business_id, amount="499")) == []
        assert len(service.discover(self.business_id, make_context(self.business_id, amount="500"))) == 1

    def test_per_customer_usage_limit(self, customer_id):
        promo = PromotionalSource(
            uuid4(), "ONCE", DiscountType.PERCENTAGE, Decimal("10"), per_customer_limit=1,
        )
        store = InMemoryDiscountSourceStore()
        store.add(self.business_id, promo)
        service = DiscountDiscoveryService(store, clock=self.clock)
        context = make_context(self.business_id, customer_id=customer_id, promo_code="ONCE")

        assert len(service.discover(self.business_id, context)) == 1

        store.record_usage(self.business_id, promo.source_id, customer_id)

        assert service.discover(self.business_id, context) == []

    def test_failing_source_is_isolated(self, captured_logs):
        store = self.populate(FailingStore())
        service = DiscountDiscoveryService(store, clock=self.clock)

        result = service.discover_with_outcomes(
            self.business_id, make_context(self.business_id, quantity=5, promo_code="SAVE10"),
        )

        assert [o.source for o in result.failed_sources] == [DiscountSourceType.VOLUME]
        assert "ConnectionError" in result.failed_sources[0].error
        assert DiscountSourceType.PROMOTIONAL in {c.source_type for c in result.candidates}
        assert DiscountSourceType.VOLUME not in {c.source_type for c in result.candidates}
        assert any(r["message"] == "discovery_source_failed" for r in captured_logs())

    def test_hung_source_times_out(self, customer_id, captured_logs):
        store = self.populate(HangingStore())
        settings = EngineSettings(source_timeout_seconds=0.2)
        service = DiscountDiscoveryService(store, settings=settings, clock=self.clock)

        started = time.monotonic()
        try:
            result = service.discover_with_outcomes(
                self.business_id,
                make_context(self.business_id, customer_id=customer_id, promo_code="SAVE10"),
            )
        finally:
            store.release.set()
        elapsed = time.monotonic() - started

        assert elapsed < 1.5
        timed_out = [o for o in result.outcomes if o.timed_out]
        assert [o.source for o in timed_out] == [DiscountSourceType.EARLY_PAYMENT]
        assert DiscountSourceType.PROMOTIONAL in {c.source_type for c in result.candidates}
        assert any(r["message"] == "discovery_source_timeout" for r in captured_logs())

    def test_log_context_attached_to_discovery_logs(self, captured_logs):
        store = self.populate(FailingStore())
        service = DiscountDiscoveryService(store, clock=self.clock)

        with LogContext.bind(correlation_id="corr-1"):
            service.discover(self.business_id, make_context(self.business_id))

        completed = [r for r in captured_logs() if r["message"] == "discovery_completed"]
        assert completed[0]["correlation_id"] == "corr-1"


class TestTransactionDay:

    def test_explicit_date_wins(self, deterministic_clock):
        context = make_context(uuid4(), transaction_date=date(2023, 5, 1))
        assert transaction_day(context, deterministic_clock) == date(2023, 5, 1)

    def test_moment_date(self, deterministic_clock):
        context = make_context(uuid4(), transaction_at=datetime(2023, 6, 2, 9, tzinfo=timezone.utc))
        assert transaction_day(context, deterministic_clock) == date(2023, 6, 2)

    def test_clock_default(self, deterministic_clock):
        assert transaction_day(make_context(uuid4()), deterministic_clock) == date(2024, 1, 15)
