"""
discount_engines.approval_gate -- Pure approval-gate evaluation.

Responsibility:
    Decide whether a set of discount candidates needs human approval
    before allocation, and fold a prior decision (if any) into a GateState.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The persisted request/decision lifecycle lives in
    discount_kernel.services.approval_service.

Invariants enforced:
    - A candidate triggers approval when its effective percentage of the
      transaction amount is >= the threshold (threshold > 0, percentage > 0).
    - FIXED candidates are converted: value / amount * 100.
    - Evaluation is idempotent: same inputs, same GateEvaluation.

Failure modes:
    - None.  A non-positive amount makes FIXED percentages zero.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from discount_engines.tracer import traced_engine
from discount_kernel.domain.approval import ApprovalStatus, GateState
from discount_kernel.domain.discount import DiscountCandidate, DiscountType
from discount_kernel.domain.values import Money

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class GateEvaluation:
    """Result of evaluating the approval gate."""

    state: GateState
    required: bool
    max_percentage: Decimal
    threshold: Decimal
    triggering_candidate_ids: tuple = ()

    @property
    def allows_allocation(self) -> bool:
        return self.state in (GateState.NOT_REQUIRED, GateState.APPROVED)


def discount_percentage(candidate: DiscountCandidate, amount: Money) -> Decimal:
    """Effective percentage of ``amount`` this candidate represents."""
    if candidate.discount_type == DiscountType.FIXED:
        if not amount.is_positive:
            return ZERO
        return candidate.discount_value / amount.amount * HUNDRED
    return candidate.discount_value


def requires_approval(percentage: Decimal, threshold: Decimal) -> bool:
    return percentage > ZERO and threshold > ZERO and percentage >= threshold


@traced_engine("approval_gate", "1.0", fingerprint_fields=("amount", "threshold", "prior_status"))
def evaluate_gate(
    candidates: Sequence[DiscountCandidate],
    amount: Money,
    threshold: Decimal,
    prior_status: ApprovalStatus | None = None,
) -> GateEvaluation:
    """
    Evaluate the gate for one pricing run.

    Args:
        candidates: Discovered candidates for the transaction.
        amount: Transaction amount the percentages are measured against.
        threshold: Business approval threshold, in percent.
        prior_status: Status of an existing approval request, if the caller
            references one.

    Returns:
        GateEvaluation with state NOT_REQUIRED, PENDING, APPROVED or REJECTED.
    """
    triggering = []
    max_pct = ZERO
    for candidate in candidates:
        pct = discount_percentage(candidate, amount)
        max_pct = max(max_pct, pct)
        if requires_approval(pct, threshold):
            triggering.append(candidate.candidate_id)

    required = bool(triggering)
    if not required:
        state = GateState.NOT_REQUIRED
    elif prior_status == ApprovalStatus.APPROVED:
        state = GateState.APPROVED
    elif prior_status == ApprovalStatus.REJECTED:
        state = GateState.REJECTED
    else:
        state = GateState.PENDING

    return GateEvaluation(
        state=state,
        required=required,
        max_percentage=max_pct,
        threshold=threshold,
        triggering_candidate_ids=tuple(triggering),
    )
