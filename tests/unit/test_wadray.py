"""
test_wadray.py - Unit tests for fixed-point arithmetic

Tests:
- ray/wad/percent multiplication and division with half-up rounding
- ray <-> wad conversion
- Overflow, negative operand and division-by-zero errors
- Decimal boundary helpers (ray(), to_base_units, from_base_units)
"""

import pytest
from decimal import Decimal

from lendingledger import (
    RAY, WAD, MAX_UINT256,
    ray_mul, ray_div, wad_mul, wad_div, percent_mul, percent_div,
    ray_to_wad, wad_to_ray, ray, ray_to_decimal,
    to_base_units, from_base_units,
    FixedPointOverflow, DivisionByZero, InvalidAmount, MathError,
)


class TestRayMath:

    def test_ray_mul_identity(self):
        assert ray_mul(5 * RAY, RAY) == 5 * RAY

    def test_ray_mul_fraction(self):
        assert ray_mul(ray("0.5"), ray("0.5")) == ray("0.25")

    def test_ray_mul_rounds_half_up(self):
        # 1 * 0.5 ray units = 0.5 -> rounds up to 1
        assert ray_mul(1, RAY // 2) == 1
        assert ray_mul(1, RAY // 2 - 1) == 0

    def test_ray_mul_zero_short_circuits(self):
        assert ray_mul(0, MAX_UINT256) == 0
        assert ray_mul(MAX_UINT256, 0) == 0

    def test_ray_div(self):
        assert ray_div(RAY, 2 * RAY) == RAY // 2
        assert ray_div(1_000_000, RAY) == 1_000_000

    def test_ray_div_rounds_half_up(self):
        # 2 / 3 = 0.666... ray rounds to ...667
        assert ray_div(2, 3) == (2 * RAY + 1) // 3

    def test_ray_div_by_zero(self):
        with pytest.raises(DivisionByZero):
            ray_div(RAY, 0)

    def test_ray_mul_overflow(self):
        with pytest.raises(FixedPointOverflow):
            ray_mul(MAX_UINT256, 2 * RAY)

    def test_negative_operand_rejected(self):
        with pytest.raises(FixedPointOverflow):
            ray_mul(-1, RAY)

    def test_math_errors_share_base(self):
        assert issubclass(FixedPointOverflow, MathError)
        assert issubclass(DivisionByZero, MathError)


class TestWadAndPercent:

    def test_wad_mul_and_div(self):
        assert wad_mul(3 * WAD, WAD // 2) == 3 * WAD // 2
        assert wad_div(9 * WAD, 10 * WAD) == WAD * 9 // 10

    def test_wad_div_by_zero(self):
        with pytest.raises(DivisionByZero):
            wad_div(WAD, 0)

    def test_percent_mul(self):
        assert percent_mul(100 * WAD, 8500) == 85 * WAD
        assert percent_mul(0, 8500) == 0

    def test_percent_mul_rounds_half_up(self):
        # 1 * 50% = 0.5 -> 1
        assert percent_mul(1, 5000) == 1
        assert percent_mul(1, 4999) == 0

    def test_percent_div(self):
        assert percent_div(85 * WAD, 8500) == 100 * WAD
        with pytest.raises(DivisionByZero):
            percent_div(WAD, 0)

    def test_ray_wad_conversion(self):
        assert ray_to_wad(RAY) == WAD
        assert wad_to_ray(WAD) == RAY
        # 0.5 wad-unit rounds up
        assert ray_to_wad(500_000_000) == 1
        assert ray_to_wad(499_999_999) == 0


class TestDecimalBoundary:

    def test_ray_from_string(self):
        assert ray("0.8") == 8 * 10**26
        assert ray("1") == RAY
        assert ray(Decimal("0.0000001")) == 10**20

    def test_ray_rejects_excess_precision(self):
        with pytest.raises(ValueError):
            ray("0.0000000000000000000000000001")

    def test_ray_to_decimal(self):
        assert ray_to_decimal(ray("0.035")) == Decimal("0.035")

    def test_to_base_units(self):
        assert to_base_units(Decimal("1.5"), 6) == 1_500_000
        assert to_base_units(Decimal("10000"), 6) == 10_000_000_000
        assert to_base_units(Decimal("0"), 6) == 0

    def test_to_base_units_rejects_dust(self):
        with pytest.raises(InvalidAmount):
            to_base_units(Decimal("0.0000001"), 6)

    def test_to_base_units_rejects_non_finite(self):
        with pytest.raises(InvalidAmount):
            to_base_units(Decimal("NaN"), 6)
        with pytest.raises(InvalidAmount):
            to_base_units(Decimal("Infinity"), 6)

    def test_from_base_units(self):
        assert from_base_units(1_500_000, 6) == Decimal("1.5")
        assert from_base_units(0, 18) == 0
