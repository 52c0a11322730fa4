"""
Tests for per-source eligibility predicates.

Covers:
- Promotions: code match, activity, global and per-customer usage caps
- Volume tiers: quantity or amount thresholds, category targeting
- Payment terms: best term, customer required
- Category rules: category or service match
- Pricing rules: customer category, quantity, time windows, targets
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from discount_engines.eligibility import (
    best_payment_term,
    category_rule_applies,
    js_day_of_week,
    pricing_rule_applies,
    promo_applies,
    volume_tier_applies,
)
from discount_kernel.domain.discount import DiscountType, TransactionContext
from discount_kernel.domain.sources import (
    CategoryRuleSource,
    EarlyPaymentSource,
    PricingRuleSource,
    PromotionalSource,
    VolumeTierSource,
)
from discount_kernel.domain.values import Money

# Monday
MONDAY_10AM = datetime(2024, 1, 15, 10, 0)


def make_context(amount="100", **kwargs):
    kwargs.setdefault("business_id", uuid4())
    return TransactionContext(amount=Money.of(amount, "USD"), **kwargs)


def make_promo(code="SAVE10", **kwargs):
    return PromotionalSource(
        source_id=uuid4(),
        promo_code=code,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        **kwargs,
    )


class TestPromotion:

    def test_matching_code(self):
        assert promo_applies(make_promo(), make_context(promo_code="SAVE10"))

    def test_other_code(self):
        assert not promo_applies(make_promo(), make_context(promo_code="OTHER"))

    def test_no_code_considers_all_active(self):
        assert promo_applies(make_promo(), make_context())

    def test_inactive(self):
        assert not promo_applies(make_promo(is_active=False), make_context())

    def test_exhausted(self):
        promo = make_promo(max_uses=10, times_used=10)
        assert not promo_applies(promo, make_context(promo_code="SAVE10"))

    def test_per_customer_limit_reached(self):
        promo = make_promo(per_customer_limit=1)
        context = make_context(promo_code="SAVE10", customer_id=uuid4())
        assert not promo_applies(promo, context, customer_usage=1)
        assert promo_applies(promo, context, customer_usage=0)

    def test_per_customer_limit_ignored_without_customer(self):
        promo = make_promo(per_customer_limit=1)
        assert promo_applies(promo, make_context(promo_code="SAVE10"), customer_usage=5)


class TestVolumeTier:

    def test_quantity_threshold(self):
        tier = VolumeTierSource(uuid4(), "5+", Decimal("15"), min_quantity=5)
        assert volume_tier_applies(tier, make_context(quantity=5))
        assert not volume_tier_applies(tier, make_context(quantity=4))

    def test_amount_threshold(self):
        tier = VolumeTierSource(uuid4(), "500+", Decimal("5"), min_amount=Decimal("500"))
        assert volume_tier_applies(tier, make_context(amount="500"))
        assert not volume_tier_applies(tier, make_context(amount="499.99"))

    def test_category_targeted_tier(self):
        category = uuid4()
        tier = VolumeTierSource(
            uuid4(), "Cat 2+", Decimal("5"),
            min_quantity=2, applies_to="CATEGORY", target_category_id=category,
        )
        assert volume_tier_applies(tier, make_context(quantity=2, category_id=category))
        assert not volume_tier_applies(tier, make_context(quantity=2, category_id=uuid4()))

    def test_empty_transaction(self):
        tier = VolumeTierSource(uuid4(), "any", Decimal("5"), min_quantity=0)
        assert not volume_tier_applies(tier, make_context(amount="0", quantity=0))


class TestPaymentTerms:

    def test_best_term_chosen(self):
        terms = [
            EarlyPaymentSource(uuid4(), "1/10", Decimal("1"), 10, 30),
            EarlyPaymentSource(uuid4(), "2/10", Decimal("2"), 10, 30),
            EarlyPaymentSource(uuid4(), "3/5", Decimal("3"), 5, 30, is_active=False),
        ]
        best = best_payment_term(terms, make_context(customer_id=uuid4()))
        assert best.term_name == "2/10"

    def test_requires_customer(self):
        terms = [EarlyPaymentSource(uuid4(), "2/10", Decimal("2"), 10, 30)]
        assert best_payment_term(terms, make_context()) is None

    def test_no_terms(self):
        assert best_payment_term([], make_context(customer_id=uuid4())) is None


class TestCategoryRule:

    def test_category_match(self):
        category = uuid4()
        rule = CategoryRuleSource(uuid4(), DiscountType.PERCENTAGE, Decimal("5"), category_id=category)
        assert category_rule_applies(rule, make_context(category_id=category))
        assert not category_rule_applies(rule, make_context(category_id=uuid4()))

    def test_service_match(self):
        service = uuid4()
        rule = CategoryRuleSource(uuid4(), DiscountType.PERCENTAGE, Decimal("5"), service_id=service)
        assert category_rule_applies(rule, make_context(service_id=service))

    def test_needs_category_or_service(self):
        rule = CategoryRuleSource(uuid4(), DiscountType.PERCENTAGE, Decimal("5"), category_id=uuid4())
        assert not category_rule_applies(rule, make_context())


def make_rule(rule_type, conditions=None, **kwargs):
    return PricingRuleSource(
        source_id=uuid4(),
        name="rule",
        rule_type=rule_type,
        adjustment_type="percentage",
        adjustment_value=Decimal("5"),
        conditions=conditions or {},
        **kwargs,
    )


class TestPricingRule:

    def test_day_of_week_is_sunday_based(self):
        assert js_day_of_week(MONDAY_10AM) == 1
        assert js_day_of_week(datetime(2024, 1, 14, 10, 0)) == 0

    def test_customer_category(self):
        wanted = uuid4()
        rule = make_rule("customer_category", {"customer_category_id": str(wanted)})
        assert pricing_rule_applies(rule, make_context(customer_category_id=wanted), MONDAY_10AM)
        assert not pricing_rule_applies(rule, make_context(customer_category_id=uuid4()), MONDAY_10AM)

    def test_quantity_bounds(self):
        rule = make_rule("quantity", {"min_quantity": 2, "max_quantity": 4, "min_amount": "50"})
        assert pricing_rule_applies(rule, make_context(quantity=3), MONDAY_10AM)
        assert not pricing_rule_applies(rule, make_context(quantity=5), MONDAY_10AM)
        assert not pricing_rule_applies(rule, make_context(quantity=1), MONDAY_10AM)
        assert not pricing_rule_applies(rule, make_context(amount="49", quantity=3), MONDAY_10AM)

    def test_time_window_inclusive(self):
        rule = make_rule("time_based", {"day_of_week": [1, 2], "hour_start": 9, "hour_end": 10})
        assert pricing_rule_applies(rule, make_context(), MONDAY_10AM)
        assert not pricing_rule_applies(rule, make_context(), datetime(2024, 1, 15, 11, 0))
        assert not pricing_rule_applies(rule, make_context(), datetime(2024, 1, 17, 10, 0))

    def test_hour_start_zero_is_a_bound(self):
        rule = make_rule("time_based", {"hour_start": 0, "hour_end": 6})
        assert pricing_rule_applies(rule, make_context(), datetime(2024, 1, 15, 0, 30))
        assert not pricing_rule_applies(rule, make_context(), MONDAY_10AM)

    def test_target_service(self):
        service = uuid4()
        rule = make_rule("quantity", target_entity="service", target_id=service)
        assert pricing_rule_applies(rule, make_context(service_id=service), MONDAY_10AM)
        assert not pricing_rule_applies(rule, make_context(service_id=uuid4()), MONDAY_10AM)

    def test_target_customer(self):
        customer = uuid4()
        rule = make_rule("quantity", target_entity="customer", target_id=customer)
        assert pricing_rule_applies(rule, make_context(customer_id=customer), MONDAY_10AM)

    def test_inactive(self):
        assert not pricing_rule_applies(make_rule("quantity", is_active=False), make_context(), MONDAY_10AM)

    def test_validity_dates_left_to_filters(self):
        rule = make_rule("quantity", valid_to=date(2000, 1, 1))
        assert pricing_rule_applies(rule, make_context(), MONDAY_10AM)
