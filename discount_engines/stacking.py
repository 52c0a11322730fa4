"""
Module: discount_engines.stacking
Responsibility:
    Combine an ordered list of discount candidates into one aggregate
    discount for a single transaction, and report stacking conflicts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import discount_kernel/domain.

Invariants enforced:
    - Non-compounding: every discount is computed against the ORIGINAL
      amount, not the running discounted amount.
    - Non-negativity: the running total is capped at the original amount
      (an overflowing discount is truncated to the remaining headroom), so
      0 <= total_discount <= original_amount and final_amount >= 0.
    - Exactness: each computed amount is rounded half-up to the currency
      minor unit before summing; final_amount = original - total exactly.
    - Determinism: identical inputs always produce identical results.

Failure modes:
    - None raised for well-formed candidates.  Conflicts never block the
      calculation; they are returned on the result for the caller to act on.

Usage:
    from discount_engines.stacking import StackingCalculator

    result = StackingCalculator().stack(
        original_amount=Money.of("1000.00", "USD"),
        candidates=sorted_candidates,
    )
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal

from discount_engines.tracer import traced_engine
from discount_kernel.domain.discount import (
    AppliedDiscount,
    ConflictType,
    DiscountCandidate,
    DiscountConflict,
    DiscountType,
    StackedDiscountResult,
)
from discount_kernel.domain.values import Money
from discount_kernel.logging_config import get_logger

logger = get_logger("engines.stacking")

HUNDRED = Decimal("100")


class StackingCalculator:
    """
    Stack discounts in caller-supplied (priority) order.

    Contract:
        Pure functions, no I/O, no clock.
    Guarantees:
        - total_discount == sum(applied computed_amount).
        - Candidates whose computed amount is zero are not recorded as applied.
    Non-goals:
        - Does not sort or filter candidates; discovery already did.
        - Does not drop non-stackable candidates; see check_conflicts.
    """

    @traced_engine("stacking", "1.0", fingerprint_fields=("original_amount", "candidates"))
    def stack(
        self,
        original_amount: Money,
        candidates: Sequence[DiscountCandidate],
    ) -> StackedDiscountResult:
        currency = original_amount.currency
        conflicts = tuple(self.check_conflicts(candidates))

        if not candidates or not original_amount.is_positive:
            return StackedDiscountResult(
                original_amount=original_amount,
                applied=(),
                total_discount=Money.zero(currency),
                final_amount=original_amount if original_amount.is_positive else Money.zero(currency),
                conflicts=conflicts,
            )

        applied: list[AppliedDiscount] = []
        total = Money.zero(currency)

        for candidate in candidates:
            amount = self.calculate_discount(
                original_amount, candidate.discount_type, candidate.discount_value,
            )
            amount = amount.capped_at(original_amount - total)
            if not amount.is_positive:
                continue
            total = total + amount
            applied.append(
                AppliedDiscount(
                    candidate_id=candidate.candidate_id,
                    source_type=candidate.source_type,
                    discount_type=candidate.discount_type,
                    discount_value=candidate.discount_value,
                    name=candidate.name,
                    computed_amount=amount,
                )
            )

        final_amount = original_amount - total

        logger.info("stacking_completed", extra={
            "original_amount": str(original_amount.amount),
            "currency": currency.code,
            "candidate_count": len(candidates),
            "applied_count": len(applied),
            "total_discount": str(total.amount),
            "conflict_count": len(conflicts),
        })

        return StackedDiscountResult(
            original_amount=original_amount,
            applied=tuple(applied),
            total_discount=total,
            final_amount=final_amount,
            conflicts=conflicts,
        )

    @staticmethod
    def calculate_discount(
        amount: Money,
        discount_type: DiscountType,
        discount_value: Decimal,
    ) -> Money:
        """
        Discount for one candidate, independent of any other.

        PERCENTAGE values above 100 are treated as 100; FIXED values are
        capped at the amount.  Non-positive amounts yield zero.
        """
        if not amount.is_positive:
            return Money.zero(amount.currency)

        match DiscountType(discount_type):
            case DiscountType.PERCENTAGE:
                return amount.percentage(min(discount_value, HUNDRED)).round()
            case DiscountType.FIXED:
                return Money(amount=discount_value, currency=amount.currency).capped_at(amount).round()

    @staticmethod
    def check_conflicts(candidates: Sequence[DiscountCandidate]) -> list[DiscountConflict]:
        """
        Report stacking conflicts without resolving them.

        - More than one candidate of the same source type: DUPLICATE_TYPE.
        - A non-stackable candidate combined with any other: NON_STACKABLE.
        """
        conflicts: list[DiscountConflict] = []

        by_type: dict[str, list[DiscountCandidate]] = defaultdict(list)
        for candidate in candidates:
            by_type[candidate.source_type].append(candidate)

        for source_type, group in by_type.items():
            if len(group) > 1:
                type_name = getattr(source_type, "value", source_type)
                conflicts.append(
                    DiscountConflict(
                        conflict_type=ConflictType.DUPLICATE_TYPE,
                        message=f"Multiple {type_name} discounts found",
                        candidate_ids=tuple(c.candidate_id for c in group),
                    )
                )

        if len(candidates) > 1:
            for candidate in candidates:
                if not candidate.stackable:
                    conflicts.append(
                        DiscountConflict(
                            conflict_type=ConflictType.NON_STACKABLE,
                            message=f"Discount {candidate.name} cannot be combined with others",
                            candidate_ids=(candidate.candidate_id,),
                        )
                    )

        return conflicts
