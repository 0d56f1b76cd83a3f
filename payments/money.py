"""
Conversion between integer minor units and PayPal's decimal-string amounts.

Amounts never pass through ``float``.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from payments.errors import ValidationError

# PayPal rejects decimals for these currencies
ZERO_DECIMAL_CURRENCIES = frozenset({"HUF", "JPY", "TWD"})


def normalize_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"Invalid currency code: {currency!r}", field="currency")
    return code


def currency_exponent(currency: str) -> int:
    return 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2


def to_major_units(amount: int, currency: str) -> str:
    """Format minor units as PayPal's ``value`` string, e.g. 1000 USD -> "10.00"."""
    exponent = currency_exponent(currency)
    value = Decimal(amount).scaleb(-exponent)
    return f"{value:.{exponent}f}"


def to_minor_units(value: str, currency: str) -> int:
    """Parse a PayPal ``value`` string back into minor units."""
    exponent = currency_exponent(currency)
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError(f"Invalid amount value: {value!r}", field="amount") from e
    minor = amount.scaleb(exponent).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)
