"""Minor-unit money helpers.

Amounts are stored as integers in the currency's minor unit (cents for EUR).
Formatting is the only place they are turned into decimal strings.
"""

from decimal import Decimal

# ISO 4217 currencies without a minor unit
_ZERO_DECIMAL_CURRENCIES = {
    "BIF",
    "CLP",
    "DJF",
    "GNF",
    "JPY",
    "KMF",
    "KRW",
    "MGA",
    "PYG",
    "RWF",
    "UGX",
    "VND",
    "VUV",
    "XAF",
    "XOF",
    "XPF",
}


def minor_unit_exponent(currency: str) -> int:
    return 0 if (currency or "").upper() in _ZERO_DECIMAL_CURRENCIES else 2


def format_minor_units(amount: int, currency: str) -> str:
    """Render an integer minor-unit amount, e.g. ``1999, "eur"`` -> ``"EUR 19.99"``."""
    exponent = minor_unit_exponent(currency)
    value = Decimal(int(amount or 0)).scaleb(-exponent)
    return f"{(currency or '').upper()} {value:.{exponent}f}"
