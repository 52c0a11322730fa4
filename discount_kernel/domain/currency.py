"""
Currency -- ISO 4217 codes the engine prices in, and their minor units.

Every discount amount is rounded to the minor unit of its currency, so the
digit count here decides how fine allocation remainders can be: 0.01 for
USD, 1 for JPY, 0.001 for KWD.  Codes outside this table are rejected at
request validation rather than priced with a guessed precision.
"""

from decimal import Decimal
from types import MappingProxyType

MINOR_UNIT_DIGITS = MappingProxyType({
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "CAD": 2,
    "AUD": 2,
    "CHF": 2,
    "CNY": 2,
    "INR": 2,
    "KES": 2,
    "NGN": 2,
    "TZS": 2,
    "ZAR": 2,
    "JPY": 0,
    "KRW": 0,
    "RWF": 0,
    "UGX": 0,
    "XOF": 0,
    "BHD": 3,
    "JOD": 3,
    "KWD": 3,
    "OMR": 3,
})


def normalize_code(code: object) -> str:
    """Upper-cased, stripped code; empty string for anything that is not a str."""
    return code.strip().upper() if isinstance(code, str) else ""


def is_known_currency(code: object) -> bool:
    return normalize_code(code) in MINOR_UNIT_DIGITS


def minor_digits(code: str) -> int:
    """
    Decimal places of the currency's minor unit.

    Raises:
        ValueError: unknown code.
    """
    normalized = normalize_code(code)
    try:
        return MINOR_UNIT_DIGITS[normalized]
    except KeyError:
        raise ValueError(f"Invalid ISO 4217 currency code: {code}") from None


def minor_unit(code: str) -> Decimal:
    """Smallest representable amount, e.g. Decimal("0.01") for USD."""
    return Decimal(1).scaleb(-minor_digits(code))
