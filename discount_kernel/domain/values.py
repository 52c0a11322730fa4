"""
Values -- Currency and Money, the value types behind every discount amount.

Responsibility:
    Transaction totals, candidate discounts, stacked totals and allocation
    lines are all Money.  Percent-of and capping helpers live here so the
    stacking and allocation engines never do raw Decimal arithmetic on
    amounts of possibly different currencies.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Depends only on
    discount_kernel.domain.currency.

Invariants enforced:
    - Amounts are Decimal, never float.
    - Currency codes are validated at construction.
    - Arithmetic and comparison never mix currencies.
    - Rounding is explicit (``round()``), to the currency's minor unit,
      half-up by default.

Failure modes:
    - ValueError for unparseable amounts, unknown currencies and
      mixed-currency operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import total_ordering

from discount_kernel.domain.currency import minor_digits, minor_unit, normalize_code

_HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True)
class Currency:
    """ISO 4217 code; always upper-case and known to the currency table."""

    code: str

    def __post_init__(self) -> None:
        normalized = normalize_code(self.code)
        minor_digits(normalized)
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return minor_digits(self.code)

    @property
    def minor_unit(self) -> Decimal:
        return minor_unit(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _to_decimal(value: Decimal | str | int) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise ValueError(f"Invalid amount: float {value!r}; pass a str or Decimal")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value}") from e


@total_ordering
@dataclass(frozen=True, slots=True)
class Money:
    """
    Decimal amount in one currency.

    Non-goals:
        - Does NOT convert between currencies.
        - Does NOT round implicitly; call ``round()``.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _to_decimal(self.amount))
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Build Money from a str, int or Decimal amount.

        Raises:
            ValueError: unparseable amount or unknown currency.
        """
        return cls(amount=_to_decimal(amount), currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    # -- predicates ------------------------------------------------------------

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    # -- rounding and discount helpers ----------------------------------------

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Rounded to the currency's minor unit."""
        return Money(
            amount=self.amount.quantize(self.currency.minor_unit, rounding=rounding),
            currency=self.currency,
        )

    def percentage(self, pct: Decimal) -> Money:
        """``pct`` percent of this amount, unrounded."""
        return Money(amount=self.amount * pct / _HUNDRED, currency=self.currency)

    def capped_at(self, ceiling: Money) -> Money:
        """This amount, or ``ceiling`` when this is larger."""
        self._same_currency(ceiling, "cap")
        return ceiling if self.amount > ceiling.amount else self

    # -- arithmetic --------------------------------------------------------------

    def _same_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {operation} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "add")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "subtract")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __mul__(self, factor: Decimal | int) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, (Decimal, int)):
            return NotImplemented
        return Money(amount=self.amount * factor, currency=self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "compare")
        return self.amount < other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


def sum_money(amounts, currency: str | Currency) -> Money:
    """Sum of Money values in ``currency``; zero for an empty iterable."""
    total = Money.zero(currency)
    for amount in amounts:
        total = total + amount
    return total
