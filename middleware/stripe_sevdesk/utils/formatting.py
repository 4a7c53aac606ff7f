"""
Formatting Helpers

Money and date conversions between Stripe and SevDesk representations.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

# Stripe charges these currencies in whole units, everything else in cents
ZERO_DECIMAL_CURRENCIES = {
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
}


def to_major_units(amount: int, currency: str) -> Decimal:
    """
    Convert a Stripe amount (smallest currency unit) to major units.

    Args:
        amount: Amount as sent by Stripe, e.g. 2999
        currency: ISO currency code, e.g. "eur"

    Returns:
        Decimal amount, e.g. Decimal("29.99")
    """
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(amount)
    return Decimal(amount) / Decimal(100)


def format_german_date(value: Optional[date] = None) -> str:
    """Format a date the way the German locale does (d.m.yyyy, no padding)"""
    value = value or date.today()
    return f"{value.day}.{value.month}.{value.year}"


def timestamp_to_date(timestamp: int) -> date:
    """Convert a Stripe unix timestamp to a UTC calendar date"""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()
