"""Tests for micro-dollar conversion helpers."""

from decimal import Decimal

from aspec.money import (
    amount_usd_to_micros,
    format_usd,
    format_usd_from_micros,
    limit_usd_to_micros,
    micros_to_base_units,
    micros_to_usd_decimal,
    micros_to_usd_float,
)


class TestConversions:
    def test_amounts_round_up(self):
        assert amount_usd_to_micros("0.0000001") == 1
        assert amount_usd_to_micros(14.5) == 14_500_000

    def test_limits_round_down(self):
        assert limit_usd_to_micros("0.0000019") == 1
        assert limit_usd_to_micros(2000) == 2_000_000_000

    def test_back_to_usd(self):
        assert micros_to_usd_decimal(1_500_000) == Decimal("1.500000")
        assert micros_to_usd_float(200_000_000) == 200.0

    def test_base_units(self):
        assert micros_to_base_units(5_000_000) == 5_000_000
        assert micros_to_base_units(5_000_000, decimals=18) == 5 * 10**18
        assert micros_to_base_units(5_000_000, decimals=2) == 500


class TestFormatting:
    def test_format_usd_drops_trailing_zeros(self):
        assert format_usd(14.5) == "$14.5"
        assert format_usd(200.0) == "$200"
        assert format_usd(Decimal("0.25")) == "$0.25"

    def test_format_from_micros(self):
        assert format_usd_from_micros(1_800_000_000) == "$1800.00"


class TestLargeAmounts:
    def test_amounts_beyond_default_precision(self):
        assert amount_usd_to_micros(1e22) == 10**28
        assert limit_usd_to_micros("123456789012345678901234.5") == 123456789012345678901234_500000
        assert micros_to_usd_float(10**28) == 1e22

    def test_format_huge_amount(self):
        assert format_usd(1e22) == "$10000000000000000000000"
