"""
Unit tests for payments.money module.

These tests guard against penny drift in totals and split allocation.
"""

import pytest
from decimal import Decimal

from payments.money import (
    allocate,
    allocate_minor,
    currency_exponent,
    format_money,
    from_minor,
    percentage_of,
    quantize,
    to_minor,
    validate_minor_sum,
)


class TestQuantize:
    """Test Decimal quantization with banker's rounding."""

    def test_rounds_half_to_even_down(self):
        # 10.125 → 10.12 (round to even)
        assert quantize("EUR", "10.125") == Decimal("10.12")

    def test_rounds_half_to_even_up(self):
        # 10.135 → 10.14 (round to even)
        assert quantize("EUR", "10.135") == Decimal("10.14")

    def test_quantize_from_float(self):
        # Floats converted to string first
        assert quantize("EUR", 10.127) == Decimal("10.13")

    def test_quantize_from_int(self):
        assert quantize("USD", 10) == Decimal("10.00")

    def test_unknown_currency_defaults_to_two_decimals(self):
        assert currency_exponent("XXX") == 2
        assert currency_exponent("eur") == 2


class TestMinorUnits:
    def test_to_minor_quantizes_first(self):
        assert to_minor("EUR", "10.125") == 1012

    def test_from_minor(self):
        assert from_minor("EUR", 1013) == Decimal("10.13")
        assert from_minor("EUR", 0) == Decimal("0.00")


class TestPercentageOf:
    def test_simple_rate(self):
        assert percentage_of("EUR", "10.00", "21") == Decimal("2.10")

    def test_half_cent_rounds_to_even(self):
        # 0.25 * 10% = 0.025 → 0.02
        assert percentage_of("EUR", "0.25", "10") == Decimal("0.02")
        # 0.35 * 10% = 0.035 → 0.04
        assert percentage_of("EUR", "0.35", "10") == Decimal("0.04")

    def test_zero_rate(self):
        assert percentage_of("EUR", "99.99", "0") == Decimal("0.00")


class TestAllocateMinor:
    """Largest-remainder allocation."""

    def test_equal_weights_give_first_the_extra_cent(self):
        assert allocate_minor([100, 100, 100], 100) == [34, 33, 33]

    def test_proportional_weights(self):
        assert allocate_minor([1000, 1500, 2000], 100) == [22, 33, 45]

    def test_sum_is_always_exact(self):
        weights = [333, 1, 7919, 250, 12]
        for total in (0, 1, 99, 1000, 123457):
            assert sum(allocate_minor(weights, total)) == total

    def test_all_zero_weights(self):
        assert allocate_minor([0, 0], 500) == [0, 0]

    def test_zero_weight_gets_nothing(self):
        assert allocate_minor([0, 300], 50) == [0, 50]

    def test_negative_weights_rejected(self):
        with pytest.raises(ValueError):
            allocate_minor([100, -1], 10)

    def test_negative_total_rejected(self):
        with pytest.raises(ValueError):
            allocate_minor([100], -10)

    def test_decimal_wrapper(self):
        assert allocate("EUR", ["10.00", "20.00"], "1.00") == [Decimal("0.33"), Decimal("0.67")]


class TestValidateMinorSum:
    def test_exact_sum_passes(self):
        validate_minor_sum([500, 250, 250], 1000)

    def test_mismatch_raises(self):
        with pytest.raises(ValueError, match="expected 1000, got 999"):
            validate_minor_sum([500, 499], 1000, context="split")

    def test_tolerance(self):
        validate_minor_sum([500, 499], 1000, tolerance=1)


class TestFormatMoney:
    def test_euro(self):
        assert format_money("EUR", "1050.5") == "€1,050.50"

    def test_unknown_currency_uses_code(self):
        assert format_money("CHF", "3") == "CHF 3.00"
