"""
interest_rate.py - Utilization-Driven Interest Rate Model

Piecewise linear (kinked) borrow curve:

    u <= optimal:  borrow = base + slope1 * (u / optimal)
    u >  optimal:  borrow = base + slope1 + slope2 * (u - optimal) / (1 - optimal)

    liquidity = borrow * u

All parameters and results are ray integers. The strategy is immutable and
pure: the reserve stores the strategy instance and asks it for new rates on
every accrual step.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

import numpy as np

from .wadray import RAY, ray_mul, ray_div


@dataclass(frozen=True, slots=True)
class InterestRates:
    """Rates produced for one utilization reading (ray, per annum)."""
    liquidity_rate: int
    variable_borrow_rate: int


@dataclass(frozen=True, slots=True)
class InterestRateStrategy:
    """
    Immutable parameters of the kinked rate curve, all in ray.

    Example:
        strategy = InterestRateStrategy(
            optimal_utilization=ray("0.8"),
            base_variable_borrow_rate=ray("0.01"),
            variable_rate_slope1=ray("0.04"),
            variable_rate_slope2=ray("0.75"),
        )
        strategy.calculate_rates(ray("0.5"))
        # InterestRates(liquidity_rate=0.0175 ray, variable_borrow_rate=0.035 ray)
    """
    optimal_utilization: int
    base_variable_borrow_rate: int
    variable_rate_slope1: int
    variable_rate_slope2: int

    def __post_init__(self):
        for name in ('optimal_utilization', 'base_variable_borrow_rate',
                     'variable_rate_slope1', 'variable_rate_slope2'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be a ray integer, got {type(value)}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if not 0 < self.optimal_utilization <= RAY:
            raise ValueError(
                f"optimal_utilization must be in (0, RAY], got {self.optimal_utilization}"
            )

    @property
    def max_variable_borrow_rate(self) -> int:
        """Borrow rate at full utilization."""
        return self.base_variable_borrow_rate + self.variable_rate_slope1 + self.variable_rate_slope2

    def calculate_rates(self, utilization: int) -> InterestRates:
        """
        Compute the liquidity and variable borrow rates at a utilization.

        Utilization above RAY is clamped to RAY; any value in [0, RAY] succeeds.
        """
        utilization = min(max(utilization, 0), RAY)

        if utilization <= self.optimal_utilization:
            ratio = ray_div(utilization, self.optimal_utilization)
            borrow_rate = self.base_variable_borrow_rate + ray_mul(self.variable_rate_slope1, ratio)
        else:
            excess = ray_div(
                utilization - self.optimal_utilization,
                RAY - self.optimal_utilization,
            )
            borrow_rate = (
                self.base_variable_borrow_rate
                + self.variable_rate_slope1
                + ray_mul(self.variable_rate_slope2, excess)
            )

        return InterestRates(
            liquidity_rate=ray_mul(borrow_rate, utilization),
            variable_borrow_rate=borrow_rate,
        )

    def rate_curve(self, n_points: int = 200) -> Dict[str, np.ndarray]:
        """
        Sample the curve for plotting.

        Returns:
            Dict with float arrays 'utilization', 'borrow_rate', 'liquidity_rate'.
        """
        if n_points < 2:
            raise ValueError(f"n_points must be at least 2, got {n_points}")
        utilizations = np.linspace(0.0, 1.0, n_points)
        borrow_rates = np.empty(n_points)
        liquidity_rates = np.empty(n_points)
        for i, u in enumerate(utilizations):
            rates = self.calculate_rates(int(Decimal(float(u)) * RAY))
            borrow_rates[i] = rates.variable_borrow_rate / RAY
            liquidity_rates[i] = rates.liquidity_rate / RAY
        return {
            'utilization': utilizations,
            'borrow_rate': borrow_rates,
            'liquidity_rate': liquidity_rates,
        }


def calculate_utilization(total_debt: int, available_liquidity: int) -> int:
    """
    Fraction of a reserve's liquidity that is borrowed, in ray.

    Returns 0 when the reserve holds neither debt nor liquidity.
    """
    total = total_debt + available_liquidity
    if total == 0:
        return 0
    return min(ray_div(total_debt, total), RAY)
