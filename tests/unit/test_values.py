"""
Tests for Currency and Money value objects.
"""

import dataclasses
from decimal import Decimal

import pytest

from discount_kernel.domain.currency import MINOR_UNIT_DIGITS, is_known_currency, minor_unit
from discount_kernel.domain.values import Currency, Money, sum_money


class TestCurrency:

    def test_normalized_to_uppercase(self):
        assert Currency(" usd").code == "USD"

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError, match="Invalid ISO 4217"):
            Currency("XYZ")

    @pytest.mark.parametrize("code,places,unit", [
        ("USD", 2, Decimal("0.01")),
        ("JPY", 0, Decimal("1")),
        ("KWD", 3, Decimal("0.001")),
    ])
    def test_minor_units(self, code, places, unit):
        assert Currency(code).decimal_places == places
        assert MINOR_UNIT_DIGITS[code] == places
        assert minor_unit(code) == unit

    def test_is_known_currency(self):
        assert is_known_currency("eur")
        assert not is_known_currency("XYZ")
        assert not is_known_currency(None)


class TestMoney:

    def test_of_parses_strings(self):
        money = Money.of("10.50", "USD")
        assert money.amount == Decimal("10.50")
        assert money.currency == Currency("USD")

    def test_of_rejects_garbage(self):
        with pytest.raises(ValueError, match="Invalid amount"):
            Money.of("ten", "USD")

    def test_float_rejected(self):
        with pytest.raises(ValueError, match="float"):
            Money(amount=0.1, currency="USD")

    def test_immutable(self):
        money = Money.of("1", "USD")
        with pytest.raises(dataclasses.FrozenInstanceError):
            money.amount = Decimal("2")  # type: ignore[misc]

    def test_arithmetic(self):
        a = Money.of("10.00", "USD")
        b = Money.of("2.50", "USD")
        assert a + b == Money.of("12.50", "USD")
        assert a - b == Money.of("7.50", "USD")
        assert -b == Money.of("-2.50", "USD")
        assert a * 3 == Money.of("30.00", "USD")
        assert 3 * a == Money.of("30.00", "USD")

    def test_ordering(self):
        small, large = Money.of("1", "USD"), Money.of("2", "USD")
        assert small < large
        assert large >= small
        assert small <= Money.of("1.00", "USD")

    def test_mixed_currency_rejected(self):
        with pytest.raises(ValueError, match="different currencies"):
            Money.of("1", "USD") + Money.of("1", "EUR")
        with pytest.raises(ValueError, match="different currencies"):
            Money.of("1", "USD") < Money.of("1", "EUR")

    def test_round_half_up_to_minor_unit(self):
        assert Money.of("0.125", "USD").round().amount == Decimal("0.13")
        assert Money.of("10.5", "JPY").round().amount == Decimal("11")
        assert Money.of("1.0005", "KWD").round().amount == Decimal("1.001")

    def test_percentage(self):
        assert Money.of("1000", "USD").percentage(Decimal("15")) == Money.of("150", "USD")
        assert Money.of("33.33", "USD").percentage(Decimal("10")).round().amount == Decimal("3.33")

    def test_capped_at(self):
        ceiling = Money.of("50", "USD")
        assert Money.of("80", "USD").capped_at(ceiling) == ceiling
        assert Money.of("20", "USD").capped_at(ceiling) == Money.of("20", "USD")

    def test_zero_and_sign(self):
        zero = Money.zero("USD")
        assert zero.is_zero
        assert not zero.is_positive
        assert Money.of("0.01", "USD").is_positive
        assert Money.of("-0.01", "USD").is_negative

    def test_sum_money(self):
        assert sum_money([], "USD") == Money.zero("USD")
        assert sum_money(
            [Money.of("1.10", "USD"), Money.of("2.20", "USD")], "USD",
        ) == Money.of("3.30", "USD")
