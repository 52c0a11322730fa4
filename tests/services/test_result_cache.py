"""
Tests for the pricing result cache.

Covers:
- Fingerprint keys
- TTL boundary (hit at expiry, miss after)
- Probabilistic sweep
- Per-business invalidation
"""

import random
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from discount_kernel.domain.discount import TransactionContext
from discount_kernel.domain.values import Money
from discount_services.result_cache import PricingFingerprint, ResultCache


def make_fingerprint(business_id=None, amount="100", promo_code=None, customer_id=None,
                     currency="USD", **kwargs):
    return PricingFingerprint(
        business_id=business_id or uuid4(),
        customer_id=customer_id,
        amount=Decimal(amount),
        currency=currency,
        promo_code=promo_code,
        **kwargs,
    )


class TestFingerprint:

    def test_key_format(self):
        biz = uuid4()
        fp = make_fingerprint(biz, "100.50", "SAVE")
        assert fp.key == f"discount:{biz}:none:100.5:USD:SAVE:1:none:none:none:none:none"

    def test_equal_amounts_share_key(self):
        biz = uuid4()
        assert make_fingerprint(biz, "100").key == make_fingerprint(biz, "100.00").key

    def test_large_amount_not_exponent(self):
        fp = make_fingerprint(amount="1000")
        assert ":1000:USD:" in fp.key

    def test_currency_separates_keys(self):
        biz = uuid4()
        assert make_fingerprint(biz, "1000", currency="USD").key != \
            make_fingerprint(biz, "1000", currency="EUR").key

    @pytest.mark.parametrize("field,value", [
        ("quantity", 10),
        ("category_id", uuid4()),
        ("service_id", uuid4()),
        ("customer_category_id", uuid4()),
        ("transaction_date", date(2024, 6, 1)),
    ])
    def test_discovery_inputs_separate_keys(self, field, value):
        biz = uuid4()
        assert make_fingerprint(biz).key != make_fingerprint(biz, **{field: value}).key

    def test_from_context(self):
        biz, customer = uuid4(), uuid4()
        context = TransactionContext(
            business_id=biz, amount=Money.of("20", "USD"),
            customer_id=customer, promo_code="X",
        )
        fp = PricingFingerprint.from_context(context)
        assert fp == PricingFingerprint(biz, customer, Decimal("20"), "USD", "X")


class TestResultCache:
    """Lazily expiring, lock-protected TTL cache."""

    @pytest.fixture(autouse=True)
    def _cache(self, deterministic_clock):
        self.clock = deterministic_clock
        self.cache = ResultCache(self.clock, default_ttl_seconds=300, sweep_probability=0.0)

    def test_miss_then_hit(self):
        fp = make_fingerprint()
        assert self.cache.get(fp) is None

        self.cache.put(fp, "result")

        assert self.cache.get(fp) == "result"

    def test_hit_at_exact_expiry(self):
        fp = make_fingerprint()
        self.cache.put(fp, "result")

        self.clock.advance(300)

        assert self.cache.get(fp) == "result"

    def test_miss_after_expiry(self):
        fp = make_fingerprint()
        self.cache.put(fp, "result")

        self.clock.advance(300.001)

        assert self.cache.get(fp) is None
        assert len(self.cache) == 0

    def test_custom_ttl(self):
        fp = make_fingerprint()
        self.cache.put(fp, "result", ttl_seconds=10)

        self.clock.advance(11)

        assert self.cache.get(fp) is None

    def test_invalidate_business(self):
        biz = uuid4()
        self.cache.put(make_fingerprint(biz, "1"), "a")
        self.cache.put(make_fingerprint(biz, "2"), "b")
        other = make_fingerprint()
        self.cache.put(other, "c")

        removed = self.cache.invalidate(biz)

        assert removed == 2
        assert len(self.cache) == 1
        assert self.cache.get(other) == "c"

    def test_purge_expired(self):
        self.cache.put(make_fingerprint(), "old", ttl_seconds=5)
        self.clock.advance(10)
        self.cache.put(make_fingerprint(), "new")

        assert self.cache.purge_expired() == 1
        assert len(self.cache) == 1

    def test_clear(self):
        self.cache.put(make_fingerprint(), "x")
        self.cache.clear()
        assert len(self.cache) == 0


class TestSweep:

    def test_write_always_sweeps_at_probability_one(self, deterministic_clock):
        cache = ResultCache(deterministic_clock, sweep_probability=1.0, rng=random.Random(7))
        cache.put(make_fingerprint(), "old", ttl_seconds=1)
        deterministic_clock.advance(2)

        cache.put(make_fingerprint(), "new")

        assert len(cache) == 1

    def test_write_never_sweeps_at_probability_zero(self, deterministic_clock):
        cache = ResultCache(deterministic_clock, sweep_probability=0.0)
        cache.put(make_fingerprint(), "old", ttl_seconds=1)
        deterministic_clock.advance(2)

        cache.put(make_fingerprint(), "new")

        assert len(cache) == 2
