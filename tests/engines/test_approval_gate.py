"""
Tests for the approval gate.

Covers:
- Percentage of FIXED and PERCENTAGE candidates
- Threshold comparison (inclusive, zero threshold disables)
- Gate states for each prior approval status
"""

from decimal import Decimal
from uuid import uuid4

from discount_engines.approval_gate import (
    discount_percentage,
    evaluate_gate,
    requires_approval,
)
from discount_kernel.domain.approval import ApprovalStatus, GateState
from discount_kernel.domain.discount import (
    DiscountCandidate,
    DiscountSourceType,
    DiscountType,
)
from discount_kernel.domain.values import Money

THRESHOLD = Decimal("20")


def make_candidate(discount_type=DiscountType.PERCENTAGE, value="10"):
    return DiscountCandidate(
        candidate_id=uuid4(),
        source_type=DiscountSourceType.PROMOTIONAL,
        discount_type=discount_type,
        discount_value=Decimal(value),
        name="PROMO",
    )


class TestDiscountPercentage:

    def test_percentage_is_value(self):
        assert discount_percentage(make_candidate(value="12.5"), Money.of("80", "USD")) == Decimal("12.5")

    def test_fixed_relative_to_amount(self):
        candidate = make_candidate(DiscountType.FIXED, "15")
        assert discount_percentage(candidate, Money.of("50", "USD")) == Decimal("30")

    def test_fixed_on_zero_amount(self):
        candidate = make_candidate(DiscountType.FIXED, "15")
        assert discount_percentage(candidate, Money.of("0", "USD")) == Decimal("0")


class TestRequiresApproval:

    def test_at_threshold_requires(self):
        assert requires_approval(Decimal("20"), THRESHOLD)

    def test_below_threshold(self):
        assert not requires_approval(Decimal("19.99"), THRESHOLD)

    def test_zero_threshold_disables_gate(self):
        assert not requires_approval(Decimal("90"), Decimal("0"))

    def test_zero_percentage_never_requires(self):
        assert not requires_approval(Decimal("0"), THRESHOLD)


class TestEvaluateGate:
    """Gate state derivation."""

    def test_fixed_thirty_percent_on_fifty_pends(self):
        """A FIXED 15 on amount 50 is 30% and needs approval at a 20% threshold."""
        candidate = make_candidate(DiscountType.FIXED, "15")

        gate = evaluate_gate(
            candidates=[candidate],
            amount=Money.of("50", "USD"),
            threshold=THRESHOLD,
        )

        assert gate.state == GateState.PENDING
        assert gate.required
        assert not gate.allows_allocation
        assert gate.max_percentage == Decimal("30")
        assert gate.triggering_candidate_ids == (candidate.candidate_id,)

    def test_small_discounts_not_required(self):
        gate = evaluate_gate(
            candidates=[make_candidate(value="5"), make_candidate(value="10")],
            amount=Money.of("100", "USD"),
            threshold=THRESHOLD,
        )

        assert gate.state == GateState.NOT_REQUIRED
        assert gate.allows_allocation
        assert gate.max_percentage == Decimal("10")

    def test_approved_prior_status_allows(self):
        gate = evaluate_gate(
            candidates=[make_candidate(value="25")],
            amount=Money.of("100", "USD"),
            threshold=THRESHOLD,
            prior_status=ApprovalStatus.APPROVED,
        )

        assert gate.state == GateState.APPROVED
        assert gate.allows_allocation

    def test_rejected_prior_status_blocks(self):
        gate = evaluate_gate(
            candidates=[make_candidate(value="25")],
            amount=Money.of("100", "USD"),
            threshold=THRESHOLD,
            prior_status=ApprovalStatus.REJECTED,
        )

        assert gate.state == GateState.REJECTED
        assert not gate.allows_allocation

    def test_pending_prior_status_stays_pending(self):
        gate = evaluate_gate(
            candidates=[make_candidate(value="25")],
            amount=Money.of("100", "USD"),
            threshold=THRESHOLD,
            prior_status=ApprovalStatus.PENDING,
        )

        assert gate.state == GateState.PENDING

    def test_prior_status_ignored_when_not_required(self):
        gate = evaluate_gate(
            candidates=[make_candidate(value="5")],
            amount=Money.of("100", "USD"),
            threshold=THRESHOLD,
            prior_status=ApprovalStatus.REJECTED,
        )

        assert gate.state == GateState.NOT_REQUIRED

    def test_emits_engine_trace(self, captured_logs):
        evaluate_gate(
            candidates=[make_candidate()],
            amount=Money.of("100", "USD"),
            threshold=THRESHOLD,
        )

        traces = [r for r in captured_logs() if r["message"] == "DISCOUNT_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "approval_gate"
