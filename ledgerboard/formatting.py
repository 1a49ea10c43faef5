"""
Presentation helpers: currencies, money and chart labels.

Formatting is deliberately kept out of the analytics engine, which works
on exact Decimals and knows nothing about currencies.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from pydantic import BaseModel


class Currency(BaseModel):
    code: str
    symbol: str
    name: str


AVAILABLE_CURRENCIES: list[Currency] = [
    Currency(code="USD", symbol="$", name="US Dollar"),
    Currency(code="EUR", symbol="€", name="Euro"),
    Currency(code="GBP", symbol="£", name="British Pound"),
    Currency(code="GHS", symbol="₵", name="Ghanaian Cedi"),
    Currency(code="NGN", symbol="₦", name="Nigerian Naira"),
    Currency(code="KES", symbol="KSh", name="Kenyan Shilling"),
    Currency(code="INR", symbol="₹", name="Indian Rupee"),
]

DEFAULT_CURRENCY_CODE = "GHS"

_CURRENCIES_BY_CODE = {currency.code: currency for currency in AVAILABLE_CURRENCIES}


def get_currency(code: str) -> Currency:
    """Look up a currency by ISO code, falling back to the default."""
    return _CURRENCIES_BY_CODE.get(
        (code or "").upper(), _CURRENCIES_BY_CODE[DEFAULT_CURRENCY_CODE]
    )


def format_currency(value: Union[Decimal, int, float], symbol: str) -> str:
    """
    Format an amount with two decimals and thousands separators.

    >>> format_currency(Decimal("1234.5"), "₵")
    '₵1,234.50'
    >>> format_currency(Decimal("-20"), "$")
    '-$20.00'
    """
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def format_week_label(week_key: str) -> str:
    """
    Chart label for a week key: '2024-03' -> 'W4 2024'.

    Week keys count from zero, labels from one.
    """
    if not week_key:
        return "N/A"
    year, _, week = week_key.partition("-")
    try:
        return f"W{int(week) + 1} {year}"
    except ValueError:
        return week_key
