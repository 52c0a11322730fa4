"""
Tests for candidate filtering and ordering.

Covers:
- Validity windows (inclusive at both ends, open-ended)
- Minimum purchase, minimum amount and minimum quantity
- Deterministic priority ordering
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from discount_engines.filters import (
    filter_by_minimum,
    filter_expired,
    is_within_validity,
    sort_by_priority,
)
from discount_kernel.domain.discount import (
    DiscountCandidate,
    DiscountSourceType,
    DiscountType,
)


def make_candidate(
    source_type=DiscountSourceType.PROMOTIONAL,
    value="10",
    valid_from=None,
    valid_to=None,
    min_purchase=None,
    min_quantity=None,
    metadata=None,
    candidate_id=None,
):
    return DiscountCandidate(
        candidate_id=candidate_id or uuid4(),
        source_type=source_type,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal(value),
        name="X",
        valid_from=valid_from,
        valid_to=valid_to,
        min_purchase=min_purchase,
        min_quantity=min_quantity,
        metadata=metadata or {},
    )


class TestValidityWindow:
    """A candidate is valid on days within [valid_from, valid_to]."""

    def test_last_valid_day_included(self):
        candidate = make_candidate(valid_to=date(2024, 3, 31))
        assert is_within_validity(candidate, date(2024, 3, 31))

    def test_day_after_valid_to_excluded(self):
        candidate = make_candidate(valid_to=date(2024, 3, 31))
        assert not is_within_validity(candidate, date(2024, 4, 1))

    def test_first_valid_day_included(self):
        candidate = make_candidate(valid_from=date(2024, 3, 1))
        assert is_within_validity(candidate, date(2024, 3, 1))
        assert not is_within_validity(candidate, date(2024, 2, 29))

    def test_open_ended_window(self):
        assert is_within_validity(make_candidate(), date(1999, 1, 1))

    def test_datetime_bounds_compare_by_day(self):
        candidate = make_candidate(valid_to=datetime(2024, 3, 31, 0, 0))
        assert is_within_validity(candidate, date(2024, 3, 31))

    def test_filter_expired(self):
        live = make_candidate(valid_to=date(2024, 12, 31))
        expired = make_candidate(valid_to=date(2023, 12, 31))
        future = make_candidate(valid_from=date(2025, 1, 1))

        kept = filter_expired([live, expired, future], date(2024, 6, 1))

        assert kept == [live]


class TestMinimums:
    """Minimum purchase and quantity requirements."""

    def test_min_purchase(self):
        candidate = make_candidate(min_purchase=Decimal("100"))
        assert filter_by_minimum([candidate], Decimal("100"), 1) == [candidate]
        assert filter_by_minimum([candidate], Decimal("99.99"), 1) == []

    def test_min_amount_from_metadata(self):
        candidate = make_candidate(metadata={"min_amount": Decimal("500")})
        assert filter_by_minimum([candidate], Decimal("499"), 10) == []
        assert filter_by_minimum([candidate], Decimal("500"), 10) == [candidate]

    def test_min_quantity(self):
        candidate = make_candidate(min_quantity=5)
        assert filter_by_minimum([candidate], Decimal("1000"), 4) == []
        assert filter_by_minimum([candidate], Decimal("1000"), 5) == [candidate]

    def test_no_minimums(self):
        candidate = make_candidate()
        assert filter_by_minimum([candidate], Decimal("0"), 0) == [candidate]


class TestPriorityOrdering:
    """EARLY_PAYMENT, VOLUME, CATEGORY, PROMOTIONAL, PRICING_RULE."""

    def test_type_order(self):
        rule = make_candidate(DiscountSourceType.PRICING_RULE)
        promo = make_candidate(DiscountSourceType.PROMOTIONAL)
        category = make_candidate(DiscountSourceType.CATEGORY)
        volume = make_candidate(DiscountSourceType.VOLUME)
        early = make_candidate(DiscountSourceType.EARLY_PAYMENT)

        ordered = sort_by_priority([rule, promo, category, volume, early])

        assert [c.source_type for c in ordered] == [
            DiscountSourceType.EARLY_PAYMENT,
            DiscountSourceType.VOLUME,
            DiscountSourceType.CATEGORY,
            DiscountSourceType.PROMOTIONAL,
            DiscountSourceType.PRICING_RULE,
        ]

    def test_higher_value_first_within_type(self):
        low = make_candidate(value="5")
        high = make_candidate(value="15")
        assert sort_by_priority([low, high]) == [high, low]

    def test_ties_broken_by_id(self):
        a = make_candidate(candidate_id=UUID(int=1))
        b = make_candidate(candidate_id=UUID(int=2))
        assert sort_by_priority([b, a]) == [a, b]
        assert sort_by_priority([a, b]) == [a, b]
