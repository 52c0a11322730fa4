"""
Tests for the stacking calculator.

Covers:
- Non-compounding stacking against the original amount
- Capping the running total at the original amount
- FIXED and PERCENTAGE per-candidate amounts
- Conflict reporting (duplicate type, non-stackable)
- Degenerate inputs (no candidates, zero amount)
- Determinism of repeated stacking
"""

from decimal import Decimal
from uuid import uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from discount_engines.stacking import StackingCalculator
from discount_kernel.domain.discount import (
    ConflictType,
    DiscountCandidate,
    DiscountSourceType,
    DiscountType,
)
from discount_kernel.domain.values import Money


def make_candidate(
    source_type=DiscountSourceType.PROMOTIONAL,
    discount_type=DiscountType.PERCENTAGE,
    value="10",
    stackable=True,
    name="SAVE",
):
    return DiscountCandidate(
        candidate_id=uuid4(),
        source_type=source_type,
        discount_type=discount_type,
        discount_value=Decimal(value),
        name=name,
        stackable=stackable,
    )


class TestStacking:
    """Discounts are computed against the original amount and summed."""

    def setup_method(self):
        self.calculator = StackingCalculator()

    def test_single_percentage_discount(self):
        """1000 with a 10% promotion -> 100 off, 900 final."""
        result = self.calculator.stack(
            original_amount=Money.of("1000", "USD"),
            candidates=[make_candidate(value="10")],
        )

        assert result.total_discount == Money.of("100.00", "USD")
        assert result.final_amount == Money.of("900.00", "USD")
        assert len(result.applied) == 1
        assert result.has_discount
        assert not result.has_conflicts

    def test_discounts_do_not_compound(self):
        """15% volume + 5% category on 1000 -> 150 + 50, not 150 + 42.50."""
        volume = make_candidate(DiscountSourceType.VOLUME, value="15", name="Tier 5+")
        category = make_candidate(DiscountSourceType.CATEGORY, value="5", name="Category Discount")

        result = self.calculator.stack(
            original_amount=Money.of("1000", "USD"),
            candidates=[volume, category],
        )

        assert [a.computed_amount for a in result.applied] == [
            Money.of("150.00", "USD"),
            Money.of("50.00", "USD"),
        ]
        assert result.total_discount == Money.of("200.00", "USD")
        assert result.final_amount == Money.of("800.00", "USD")

    def test_total_capped_at_original_amount(self):
        """Later candidates only get the headroom that is left."""
        first = make_candidate(DiscountSourceType.VOLUME, value="70")
        second = make_candidate(DiscountSourceType.CATEGORY, value="50")

        result = self.calculator.stack(
            original_amount=Money.of("200", "USD"),
            candidates=[first, second],
        )

        assert result.applied[0].computed_amount == Money.of("140.00", "USD")
        assert result.applied[1].computed_amount == Money.of("60.00", "USD")
        assert result.total_discount == Money.of("200", "USD")
        assert result.final_amount.is_zero

    def test_exhausted_headroom_skips_remaining_candidates(self):
        """A candidate that would add nothing is not recorded as applied."""
        full = make_candidate(DiscountSourceType.VOLUME, value="100")
        extra = make_candidate(DiscountSourceType.CATEGORY, value="5")

        result = self.calculator.stack(
            original_amount=Money.of("80", "USD"),
            candidates=[full, extra],
        )

        assert len(result.applied) == 1
        assert result.applied[0].candidate_id == full.candidate_id

    def test_sum_invariant(self):
        """final == original - total, total == sum(applied)."""
        candidates = [
            make_candidate(DiscountSourceType.EARLY_PAYMENT, value="2"),
            make_candidate(DiscountSourceType.VOLUME, value="7.5"),
            make_candidate(DiscountSourceType.PROMOTIONAL, DiscountType.FIXED, value="33.33"),
        ]
        original = Money.of("987.65", "USD")

        result = self.calculator.stack(original_amount=original, candidates=candidates)

        applied_sum = sum((a.computed_amount.amount for a in result.applied), Decimal("0"))
        assert result.total_discount.amount == applied_sum
        assert result.final_amount == original - result.total_discount

    def test_no_candidates(self):
        result = self.calculator.stack(
            original_amount=Money.of("50", "USD"),
            candidates=[],
        )

        assert result.total_discount.is_zero
        assert result.final_amount == Money.of("50", "USD")
        assert result.applied == ()

    def test_zero_amount_yields_zero_discount(self):
        result = self.calculator.stack(
            original_amount=Money.of("0", "USD"),
            candidates=[make_candidate(value="10")],
        )

        assert result.total_discount.is_zero
        assert result.final_amount.is_zero
        assert not result.has_discount


class TestCalculateDiscount:
    """Independent per-candidate amounts."""

    def test_percentage_rounds_half_up(self):
        amount = StackingCalculator.calculate_discount(
            Money.of("10.05", "USD"), DiscountType.PERCENTAGE, Decimal("50"),
        )
        assert amount == Money.of("5.03", "USD")

    def test_percentage_above_hundred_is_capped(self):
        amount = StackingCalculator.calculate_discount(
            Money.of("40", "USD"), DiscountType.PERCENTAGE, Decimal("150"),
        )
        assert amount == Money.of("40", "USD")

    def test_fixed_capped_at_amount(self):
        amount = StackingCalculator.calculate_discount(
            Money.of("25", "USD"), DiscountType.FIXED, Decimal("30"),
        )
        assert amount == Money.of("25.00", "USD")

    def test_fixed_below_amount(self):
        amount = StackingCalculator.calculate_discount(
            Money.of("50", "USD"), DiscountType.FIXED, Decimal("15"),
        )
        assert amount == Money.of("15.00", "USD")

    def test_zero_decimal_currency(self):
        amount = StackingCalculator.calculate_discount(
            Money.of("1001", "JPY"), DiscountType.PERCENTAGE, Decimal("10"),
        )
        assert amount == Money.of("100", "JPY")


class TestConflicts:
    """Conflicts are reported, never resolved."""

    def test_duplicate_type_reported(self):
        a = make_candidate(DiscountSourceType.PROMOTIONAL, value="5")
        b = make_candidate(DiscountSourceType.PROMOTIONAL, value="10")

        conflicts = StackingCalculator.check_conflicts([a, b])

        assert len(conflicts) == 1
        assert conflicts[0].conflict_type == ConflictType.DUPLICATE_TYPE
        assert set(conflicts[0].candidate_ids) == {a.candidate_id, b.candidate_id}

    def test_non_stackable_combined_with_others(self):
        exclusive = make_candidate(DiscountSourceType.PROMOTIONAL, stackable=False, name="VIP")
        other = make_candidate(DiscountSourceType.VOLUME)

        conflicts = StackingCalculator.check_conflicts([exclusive, other])

        assert [c.conflict_type for c in conflicts] == [ConflictType.NON_STACKABLE]
        assert conflicts[0].candidate_ids == (exclusive.candidate_id,)
        assert "VIP" in conflicts[0].message

    def test_non_stackable_alone_is_not_a_conflict(self):
        exclusive = make_candidate(stackable=False)
        assert StackingCalculator.check_conflicts([exclusive]) == []

    def test_conflicting_candidates_are_still_applied(self):
        a = make_candidate(DiscountSourceType.PROMOTIONAL, value="5")
        b = make_candidate(DiscountSourceType.PROMOTIONAL, value="10")

        result = StackingCalculator().stack(
            original_amount=Money.of("100", "USD"),
            candidates=[a, b],
        )

        assert result.has_conflicts
        assert result.total_discount == Money.of("15.00", "USD")

    def test_conflicts_computed_for_zero_amount(self):
        a = make_candidate(DiscountSourceType.VOLUME)
        b = make_candidate(DiscountSourceType.VOLUME)

        result = StackingCalculator().stack(
            original_amount=Money.of("0", "USD"),
            candidates=[a, b],
        )

        assert result.has_conflicts
        assert result.total_discount.is_zero


candidate_strategy = st.builds(
    make_candidate,
    source_type=st.sampled_from(list(DiscountSourceType)),
    discount_type=st.sampled_from(list(DiscountType)),
    value=st.decimals(min_value="0", max_value="150", places=2).map(str),
    stackable=st.booleans(),
)


class TestStackingProperties:
    """The same inputs always stack to the same result."""

    @given(
        amount=st.decimals(min_value="0", max_value="100000", places=2),
        candidates=st.lists(candidate_strategy, max_size=6),
    )
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_repeated_stacking_is_deterministic(self, amount, candidates):
        original = Money.of(amount, "USD")

        first = StackingCalculator().stack(original_amount=original, candidates=candidates)
        second = StackingCalculator().stack(original_amount=original, candidates=list(candidates))

        assert first == second
        assert Decimal("0") <= first.total_discount.amount <= amount
        assert first.final_amount == original - first.total_discount
