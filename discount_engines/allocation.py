"""
Module: discount_engines.allocation
Responsibility:
    Split an aggregate transaction discount across the transaction's line
    items (pro-rata by amount, pro-rata by quantity, custom weights, fixed
    percentage) with deterministic rounding.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import discount_kernel/domain and discount_kernel/exceptions.

Invariants enforced:
    - Exact sum: for the three distributing methods, the lines sum to the
      requested total exactly.  Shares are floored to the currency minor
      unit and the leftover units go to the largest remainders; equal
      remainders favour the later line, so the last line in input order
      absorbs the remainder when shares are equal.
    - No negative lines: a non-negative pool never yields a negative line.
    - Fixed percentage computes each line independently (no remainder
      absorption); the result reports both the requested total and the
      actual sum.  ``absorb_percentage_drift`` reconciles it to the
      requested total before persisting.
    - Purity: no clock access, no I/O.

Failure modes:
    - AllocationWeightsError: weight count differs from line count, a weight
      is negative, or the weights do not sum to 1 within 0.001.
    - AllocationBasisError: the basis (sum of amounts / quantities) is zero
      while the discount to distribute is not.
    - InvalidAllocationMethodError: unknown method name.

Usage:
    from discount_engines.allocation import DiscountAllocationEngine
    from discount_kernel.domain import AllocationMethod, LineItem, Money

    result = DiscountAllocationEngine().allocate(
        line_items=[LineItem("a", Decimal("100")), LineItem("b", Decimal("200"))],
        total_discount=Money.of("30.00", "USD"),
        method=AllocationMethod.PRO_RATA_AMOUNT,
    )
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from discount_engines.tracer import traced_engine
from discount_kernel.domain.allocation import AllocationLineRecord, AllocationMethod
from discount_kernel.domain.discount import LineItem
from discount_kernel.domain.values import Money
from discount_kernel.exceptions import (
    AllocationBasisError,
    AllocationWeightsError,
    InvalidAllocationMethodError,
)
from discount_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
WEIGHT_TOLERANCE = Decimal("0.001")
WEIGHT_PRECISION = Decimal("0.000001")


@dataclass(frozen=True)
class AllocationLine:
    """
    Discount assigned to one line item.

    ``allocation_weight`` is discount/line_amount for the pro-rata methods
    (zero when the line amount is zero), the caller's weight for
    CUSTOM_WEIGHTS, and percentage/100 for FIXED_PERCENTAGE.
    """

    line_id: str
    line_type: str
    quantity: int
    line_amount: Money
    discount_amount: Money
    allocation_weight: Decimal

    def to_record(self) -> AllocationLineRecord:
        return AllocationLineRecord(
            line_id=self.line_id,
            line_type=self.line_type,
            line_amount=self.line_amount.amount,
            discount_amount=self.discount_amount.amount,
            allocation_weight=self.allocation_weight,
            quantity=self.quantity,
        )


@dataclass(frozen=True)
class AllocationResult:
    """
    Complete allocation result.

    Guarantees:
        - ``total_discount`` == sum of line discounts.
        - For distributing methods ``total_discount == requested_discount``.
        - ``rounding_adjustment`` is the requested total minus the sum of
          the half-up rounded shares: the drift the remainder pass removed.
    """

    requested_discount: Money
    total_discount: Money
    method: AllocationMethod
    lines: tuple[AllocationLine, ...]
    rounding_adjustment: Money

    @property
    def is_balanced(self) -> bool:
        return self.total_discount == self.requested_discount

    def to_records(self) -> tuple[AllocationLineRecord, ...]:
        return tuple(line.to_record() for line in self.lines)


@dataclass(frozen=True)
class AllocationValidation:
    valid: bool
    actual: Money
    expected: Money
    difference: Money


def validate_allocation_method(method: AllocationMethod | str) -> AllocationMethod:
    """Parse a method name, raising InvalidAllocationMethodError if unknown."""
    try:
        return AllocationMethod(getattr(method, "value", method))
    except ValueError as exc:
        raise InvalidAllocationMethodError(
            str(method), tuple(m.value for m in AllocationMethod),
        ) from exc


def validate_allocation_total(
    lines: Sequence[AllocationLine],
    expected_total: Money,
) -> AllocationValidation:
    """
    Check that the lines reconcile to ``expected_total``.

    Valid when the absolute difference is below one currency minor unit.
    This is the check persistence must pass before committing.
    """
    currency = expected_total.currency
    actual = Money.zero(currency)
    for line in lines:
        actual = actual + line.discount_amount
    difference = Money(amount=abs(actual.amount - expected_total.amount), currency=currency)
    return AllocationValidation(
        valid=difference.amount < currency.minor_unit,
        actual=actual,
        expected=expected_total,
        difference=difference,
    )


def absorb_percentage_drift(result: AllocationResult) -> AllocationResult:
    """
    Move the gap between a FIXED_PERCENTAGE result and its requested total
    onto the lines, last line first.

    A surplus is added to the last line.  A shortfall is taken from the
    last line down to zero, then from the line before it, and so on, so no
    line goes negative.  Balanced results are returned unchanged.
    """
    if result.is_balanced or not result.lines:
        return result

    currency = result.requested_discount.currency
    drift = result.requested_discount.amount - result.total_discount.amount
    amounts = [line.discount_amount.amount for line in result.lines]
    if drift > ZERO:
        amounts[-1] += drift
    else:
        owed = -drift
        for i in reversed(range(len(amounts))):
            taken = min(amounts[i], owed)
            amounts[i] -= taken
            owed -= taken
            if owed == ZERO:
                break

    logger.info("allocation_drift_absorbed", extra={
        "method": result.method.value,
        "requested_discount": str(result.requested_discount.amount),
        "line_total": str(result.total_discount.amount),
        "drift": str(drift),
    })
    return replace(
        result,
        total_discount=result.requested_discount,
        lines=tuple(
            replace(line, discount_amount=Money(amount=amount, currency=currency))
            for line, amount in zip(result.lines, amounts)
        ),
        rounding_adjustment=Money(amount=drift, currency=currency),
    )


def _to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def validate_weights(weights: Sequence[Decimal] | None, line_count: int) -> list[Decimal]:
    """
    Check CUSTOM_WEIGHTS input: one non-negative weight per line, summing
    to 1 within 0.001.

    Returns the weights as Decimals.

    Raises:
        AllocationWeightsError: on any violation.
    """
    if weights is None or len(weights) != line_count:
        raise AllocationWeightsError(
            f"Expected {line_count} weights, got {0 if weights is None else len(weights)}",
        )
    parsed = [_to_decimal(w) for w in weights]
    if any(w < ZERO for w in parsed):
        raise AllocationWeightsError("Weights cannot be negative")
    weight_total = sum(parsed, ZERO)
    if abs(weight_total - ONE) > WEIGHT_TOLERANCE:
        logger.warning("allocation_weights_rejected", extra={
            "weight_total": str(weight_total),
            "line_count": line_count,
        })
        raise AllocationWeightsError("Weights must sum to 1.0", weight_total)
    return parsed


class DiscountAllocationEngine:
    """
    Distribute a discount over line items.

    Contract:
        Pure functions with deterministic rounding.
        No I/O, no database access.
    Guarantees:
        - All intermediate calculations use full precision.
        - Line amounts rounded to currency decimal places (ROUND_HALF_UP).
        - Leftover minor units assigned by largest remainder, later line
          first on ties.
    Non-goals:
        - Does not persist; see discount_kernel.services.allocation_service.
    """

    @traced_engine("allocation", "1.0", fingerprint_fields=("total_discount", "method"))
    def allocate(
        self,
        line_items: Sequence[LineItem],
        total_discount: Money,
        method: AllocationMethod | str,
        weights: Sequence[Decimal] | None = None,
        percentage: Decimal | None = None,
    ) -> AllocationResult:
        """
        Allocate ``total_discount`` across ``line_items``.

        Args:
            line_items: Lines in allocation order; ties in rounding favour
                later lines.
            total_discount: Aggregate discount to distribute.
            method: Allocation method (enum or name).
            weights: One weight per line, CUSTOM_WEIGHTS only.
            percentage: FIXED_PERCENTAGE rate; derived from the total when
                omitted.
        """
        method = validate_allocation_method(method)
        t0 = time.monotonic()
        logger.info("allocation_started", extra={
            "total_discount": str(total_discount.amount),
            "currency": total_discount.currency.code,
            "method": method.value,
            "line_count": len(line_items),
        })

        if not line_items:
            logger.warning("allocation_no_lines", extra={
                "total_discount": str(total_discount.amount),
                "method": method.value,
            })
            return AllocationResult(
                requested_discount=total_discount,
                total_discount=Money.zero(total_discount.currency),
                method=method,
                lines=(),
                rounding_adjustment=Money.zero(total_discount.currency),
            )

        match method:
            case AllocationMethod.PRO_RATA_AMOUNT:
                result = self._allocate_by_amount(line_items, total_discount)
            case AllocationMethod.PRO_RATA_QUANTITY:
                result = self._allocate_by_quantity(line_items, total_discount)
            case AllocationMethod.CUSTOM_WEIGHTS:
                result = self._allocate_by_weights(line_items, total_discount, weights)
            case AllocationMethod.FIXED_PERCENTAGE:
                result = self._allocate_by_percentage(line_items, total_discount, percentage)

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("allocation_completed", extra={
            "method": method.value,
            "requested_discount": str(result.requested_discount.amount),
            "total_discount": str(result.total_discount.amount),
            "rounding_adjustment": str(result.rounding_adjustment.amount),
            "line_count": len(result.lines),
            "duration_ms": duration_ms,
        })
        return result

    def _allocate_by_amount(
        self,
        line_items: Sequence[LineItem],
        total_discount: Money,
    ) -> AllocationResult:
        basis = sum((item.line_amount for item in line_items), ZERO)
        if basis == ZERO:
            return self._zero_basis(line_items, total_discount, AllocationMethod.PRO_RATA_AMOUNT)
        return self._distribute(
            line_items,
            total_discount,
            AllocationMethod.PRO_RATA_AMOUNT,
            get_ratio=lambda i, item: item.line_amount / basis,
        )

    def _allocate_by_quantity(
        self,
        line_items: Sequence[LineItem],
        total_discount: Money,
    ) -> AllocationResult:
        basis = sum((Decimal(item.quantity) for item in line_items), ZERO)
        if basis == ZERO:
            return self._zero_basis(line_items, total_discount, AllocationMethod.PRO_RATA_QUANTITY)
        return self._distribute(
            line_items,
            total_discount,
            AllocationMethod.PRO_RATA_QUANTITY,
            get_ratio=lambda i, item: Decimal(item.quantity) / basis,
        )

    def _allocate_by_weights(
        self,
        line_items: Sequence[LineItem],
        total_discount: Money,
        weights: Sequence[Decimal] | None,
    ) -> AllocationResult:
        parsed = validate_weights(weights, len(line_items))
        return self._distribute(
            line_items,
            total_discount,
            AllocationMethod.CUSTOM_WEIGHTS,
            get_ratio=lambda i, item: parsed[i],
            get_weight=lambda i, item, discount: parsed[i],
        )

    def _allocate_by_percentage(
        self,
        line_items: Sequence[LineItem],
        total_discount: Money,
        percentage: Decimal | None,
    ) -> AllocationResult:
        currency = total_discount.currency
        if percentage is None:
            basis = sum((item.line_amount for item in line_items), ZERO)
            if basis == ZERO:
                return self._zero_basis(
                    line_items, total_discount, AllocationMethod.FIXED_PERCENTAGE,
                )
            percentage = total_discount.amount / basis * HUNDRED
        pct = min(max(_to_decimal(percentage), ZERO), HUNDRED)
        weight = (pct / HUNDRED).quantize(WEIGHT_PRECISION, rounding=ROUND_HALF_UP)

        lines: list[AllocationLine] = []
        total = Money.zero(currency)
        for item in line_items:
            line_amount = Money(amount=item.line_amount, currency=currency)
            discount = Money(amount=item.line_amount * pct / HUNDRED, currency=currency).round()
            total = total + discount
            lines.append(self._line(item, line_amount, discount, weight))

        return AllocationResult(
            requested_discount=total_discount,
            total_discount=total,
            method=AllocationMethod.FIXED_PERCENTAGE,
            lines=tuple(lines),
            rounding_adjustment=Money.zero(currency),
        )

    def _distribute(
        self,
        line_items: Sequence[LineItem],
        total_discount: Money,
        method: AllocationMethod,
        get_ratio: Callable[[int, LineItem], Decimal],
        get_weight: Callable[[int, LineItem, Money], Decimal] | None = None,
    ) -> AllocationResult:
        """Largest-remainder distribution of a pool.

        Every share is floored to the minor unit, then the leftover minor
        units go one each to the lines with the largest discarded fraction.
        Equal fractions favour the later line, so equal shares leave the
        remainder on the last line.

        Preconditions:
            - ``line_items`` is non-empty.
            - ``get_ratio`` returns the line's share of the pool; shares sum
              to 1 (within tolerance for custom weights).  Shares are
              normalized by their sum before use.
        Postconditions:
            - Sum of all ``discount_amount`` == ``total_discount`` exactly.
            - No line is negative for a non-negative ``total_discount``.
        """
        currency = total_discount.currency
        minor_unit = currency.minor_unit
        ratios = [get_ratio(i, item) for i, item in enumerate(line_items)]
        ratio_total = sum(ratios, ZERO)

        exact = [total_discount.amount * r / ratio_total for r in ratios]
        amounts = [share.quantize(minor_unit, rounding=ROUND_FLOOR) for share in exact]
        leftover = total_discount.amount - sum(amounts, ZERO)
        units = int(leftover // minor_unit)

        by_fraction = sorted(
            range(len(line_items)),
            key=lambda i: (exact[i] - amounts[i], i),
            reverse=True,
        )
        for i in by_fraction[:units]:
            amounts[i] += minor_unit
        # Sub-minor residue only exists when the pool itself is unrounded.
        amounts[by_fraction[0]] += leftover - units * minor_unit

        rounded_total = sum(
            (share.quantize(minor_unit, rounding=ROUND_HALF_UP) for share in exact), ZERO,
        )
        lines: list[AllocationLine] = []
        for i, item in enumerate(line_items):
            line_amount = Money(amount=item.line_amount, currency=currency)
            discount = Money(amount=amounts[i], currency=currency)
            if get_weight is not None:
                weight = get_weight(i, item, discount)
            else:
                weight = self._effective_weight(discount, line_amount)
            lines.append(self._line(item, line_amount, discount, weight))

        return AllocationResult(
            requested_discount=total_discount,
            total_discount=total_discount,
            method=method,
            lines=tuple(lines),
            rounding_adjustment=Money(
                amount=total_discount.amount - rounded_total, currency=currency,
            ),
        )

    def _zero_basis(
        self,
        line_items: Sequence[LineItem],
        total_discount: Money,
        method: AllocationMethod,
    ) -> AllocationResult:
        """Nothing to weigh by: only a zero discount can be allocated."""
        if not total_discount.is_zero:
            logger.warning("allocation_zero_basis", extra={
                "method": method.value,
                "total_discount": str(total_discount.amount),
            })
            raise AllocationBasisError(method.value, str(total_discount.amount))
        currency = total_discount.currency
        zero = Money.zero(currency)
        return AllocationResult(
            requested_discount=total_discount,
            total_discount=zero,
            method=method,
            lines=tuple(
                self._line(item, Money(amount=item.line_amount, currency=currency), zero, ZERO)
                for item in line_items
            ),
            rounding_adjustment=zero,
        )

    @staticmethod
    def _effective_weight(discount: Money, line_amount: Money) -> Decimal:
        if line_amount.is_zero:
            return ZERO
        return (discount.amount / line_amount.amount).quantize(
            WEIGHT_PRECISION, rounding=ROUND_HALF_UP,
        )

    @staticmethod
    def _line(
        item: LineItem,
        line_amount: Money,
        discount: Money,
        weight: Decimal,
    ) -> AllocationLine:
        return AllocationLine(
            line_id=item.line_id,
            line_type=item.line_type,
            quantity=item.quantity,
            line_amount=line_amount,
            discount_amount=discount,
            allocation_weight=weight,
        )
