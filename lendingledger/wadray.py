"""
wadray.py - Fixed-Point Arithmetic for Rates, Indices and Amounts

Reserve math runs on Python integers in three fixed-point scales:

    RAY  = 10**27   rates, indices, utilization
    WAD  = 10**18   risk values (collateral, debt, health factor)
    PERCENTAGE_FACTOR = 10**4   basis points (ltv, thresholds)

Multiplication and division round half-up on the truncated remainder:

    ray_mul(a, b) = (a * b + RAY / 2) / RAY
    ray_div(a, b) = (a * RAY + b / 2) / b

Every intermediate value must stay inside the uint256 range; anything larger
(or any negative operand) raises FixedPointOverflow, and a zero divisor raises
DivisionByZero. Both are MathError and abort the enclosing operation.

Token amounts cross into this integer world only through to_base_units()
and from_base_units(), which convert between Decimal amounts in an asset's
own units and integer base units (amount * 10**decimals).
"""

from __future__ import annotations
from decimal import Decimal

from .core import FixedPointOverflow, DivisionByZero, InvalidAmount


RAY = 10**27
WAD = 10**18
HALF_RAY = RAY // 2
HALF_WAD = WAD // 2
WAD_RAY_RATIO = 10**9
HALF_WAD_RAY_RATIO = WAD_RAY_RATIO // 2

PERCENTAGE_FACTOR = 10**4
HALF_PERCENTAGE_FACTOR = PERCENTAGE_FACTOR // 2

MAX_UINT256 = 2**256 - 1

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


def _check_operands(*values: int) -> None:
    for v in values:
        if v < 0:
            raise FixedPointOverflow(f"negative operand {v}")
        if v > MAX_UINT256:
            raise FixedPointOverflow(f"operand {v} exceeds uint256")


def _check_range(value: int) -> int:
    if value > MAX_UINT256:
        raise FixedPointOverflow("intermediate value exceeds uint256")
    return value


def ray_mul(a: int, b: int) -> int:
    """Multiply two ray values, rounding half up."""
    _check_operands(a, b)
    if a == 0 or b == 0:
        return 0
    return _check_range(a * b + HALF_RAY) // RAY


def ray_div(a: int, b: int) -> int:
    """Divide two ray values, rounding half up."""
    _check_operands(a, b)
    if b == 0:
        raise DivisionByZero("ray_div by zero")
    return _check_range(a * RAY + b // 2) // b


def wad_mul(a: int, b: int) -> int:
    """Multiply two wad values, rounding half up."""
    _check_operands(a, b)
    if a == 0 or b == 0:
        return 0
    return _check_range(a * b + HALF_WAD) // WAD


def wad_div(a: int, b: int) -> int:
    """Divide two wad values, rounding half up."""
    _check_operands(a, b)
    if b == 0:
        raise DivisionByZero("wad_div by zero")
    return _check_range(a * WAD + b // 2) // b


def percent_mul(value: int, percentage: int) -> int:
    """Apply a basis-point percentage to value (8500 = 85%), rounding half up."""
    _check_operands(value, percentage)
    if value == 0 or percentage == 0:
        return 0
    return _check_range(value * percentage + HALF_PERCENTAGE_FACTOR) // PERCENTAGE_FACTOR


def percent_div(value: int, percentage: int) -> int:
    """Divide value by a basis-point percentage, rounding half up."""
    _check_operands(value, percentage)
    if percentage == 0:
        raise DivisionByZero("percent_div by zero")
    return _check_range(value * PERCENTAGE_FACTOR + percentage // 2) // percentage


def ray_to_wad(a: int) -> int:
    """Convert a ray to a wad, rounding half up."""
    _check_operands(a)
    return (a + HALF_WAD_RAY_RATIO) // WAD_RAY_RATIO


def wad_to_ray(a: int) -> int:
    """Convert a wad to a ray."""
    _check_operands(a)
    return _check_range(a * WAD_RAY_RATIO)


# ============================================================================
# DECIMAL BOUNDARY
# ============================================================================

def ray(value) -> int:
    """
    Convert a human-readable ratio to ray.

    Example:
        ray("0.8") == 800_000_000_000_000_000_000_000_000
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    scaled = value * RAY
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value} has more than 27 decimal places")
    return int(scaled)


def ray_to_decimal(value: int) -> Decimal:
    """Convert a ray integer back to a Decimal ratio."""
    return Decimal(value) / Decimal(RAY)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """
    Convert an amount in asset units to integer base units.

    The amount must be exactly representable with the asset's decimals:
    Decimal("1.5") with 6 decimals is 1_500_000, while Decimal("0.0000001")
    with 6 decimals is rejected rather than rounded away.

    Raises:
        InvalidAmount: If the amount is not finite or has too many decimals.
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    if amount.is_nan() or amount.is_infinite():
        raise InvalidAmount(f"amount must be finite, got {amount}")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(f"{amount} is not representable with {decimals} decimals")
    return int(scaled)


def from_base_units(value: int, decimals: int) -> Decimal:
    """Convert integer base units to a Decimal amount in asset units."""
    return Decimal(value).scaleb(-decimals)
