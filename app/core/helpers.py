"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Converting provider epoch timestamps to aware datetimes
- Money conversion between decimal amounts and minor currency units
- UUID validation

Usage:
    from core.helpers import from_unix_timestamp, to_minor_units

    created = from_unix_timestamp(1700000000)
    cents = to_minor_units(Decimal("19.99"), "usd")  # 1999
    yen = to_minor_units(Decimal("1000"), "jpy")  # 1000
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

MINOR_UNIT_FACTOR = Decimal("100")

# Currencies Stripe charges in whole units
# https://docs.stripe.com/currencies#zero-decimal
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif",
        "clp",
        "djf",
        "gnf",
        "jpy",
        "kmf",
        "krw",
        "mga",
        "pyg",
        "rwf",
        "ugx",
        "vnd",
        "vuv",
        "xaf",
        "xof",
        "xpf",
    }
)


def from_unix_timestamp(value: int | float | None) -> datetime | None:
    """
    Convert epoch seconds to a UTC-aware datetime.

    Args:
        value: Seconds since epoch, or None

    Returns:
        Aware datetime in UTC, or None when value is None
    """
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def is_zero_decimal_currency(currency: str | None) -> bool:
    return (currency or "").lower() in ZERO_DECIMAL_CURRENCIES


def to_minor_units(amount: Decimal | int | float | str, currency: str | None) -> int:
    """
    Convert a decimal amount to the smallest currency unit.

    Args:
        amount: Amount in major units (e.g. 19.99)
        currency: ISO currency code; zero-decimal currencies are not scaled

    Returns:
        Integer amount in minor units (e.g. 1999), rounded half up
    """
    value = Decimal(str(amount))
    if not is_zero_decimal_currency(currency):
        value *= MINOR_UNIT_FACTOR
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int | None, currency: str | None) -> Decimal:
    """
    Convert an integer minor-unit amount back to a decimal amount.

    Example:
        from_minor_units(1999, "usd")  # Decimal("19.99")
        from_minor_units(1000, "jpy")  # Decimal("1000")
    """
    value = Decimal(amount or 0)
    if is_zero_decimal_currency(currency):
        return value
    return (value / MINOR_UNIT_FACTOR).quantize(Decimal("0.01"))


def validate_uuid(value: str) -> bool:
    """
    Check if string is a valid UUID.

    Args:
        value: String to validate

    Returns:
        True if valid UUID, False otherwise
    """
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError, AttributeError):
        return False
