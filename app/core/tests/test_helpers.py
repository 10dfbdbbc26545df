"""
Tests for core helper functions.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.helpers import (
    from_minor_units,
    from_unix_timestamp,
    is_zero_decimal_currency,
    to_minor_units,
    validate_uuid,
)


class TestFromUnixTimestamp:
    def test_converts_to_aware_utc(self):
        result = from_unix_timestamp(1735689600)

        assert result == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert result.tzinfo is not None

    def test_none_passes_through(self):
        assert from_unix_timestamp(None) is None


class TestMinorUnits:
    @pytest.mark.parametrize(
        ("amount", "currency", "expected"),
        [
            (Decimal("19.99"), "usd", 1999),
            (Decimal("49"), "EUR", 4900),
            ("0.005", "usd", 1),
            (10, "usd", 1000),
            (Decimal("1000"), "jpy", 1000),
            (Decimal("1500"), "KRW", 1500),
        ],
    )
    def test_to_minor_units(self, amount, currency, expected):
        assert to_minor_units(amount, currency) == expected

    def test_from_minor_units(self):
        assert from_minor_units(1999, "usd") == Decimal("19.99")

    def test_from_minor_units_zero_decimal(self):
        assert from_minor_units(1000, "jpy") == Decimal("1000")

    def test_from_minor_units_treats_none_as_zero(self):
        assert from_minor_units(None, "usd") == Decimal("0.00")

    @pytest.mark.parametrize(
        ("currency", "expected"), [("jpy", True), ("VND", True), ("usd", False), (None, False)]
    )
    def test_is_zero_decimal_currency(self, currency, expected):
        assert is_zero_decimal_currency(currency) is expected


class TestValidateUuid:
    def test_valid(self):
        assert validate_uuid("6f1c2b1e-8f7a-4f4e-9d55-0d6f1b7f5c11") is True

    @pytest.mark.parametrize("value", ["not-a-uuid", "", None])
    def test_invalid(self, value):
        assert validate_uuid(value) is False
