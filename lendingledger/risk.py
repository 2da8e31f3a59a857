"""
risk.py - Account Risk Aggregation

Aggregates an account's claim and debt balances across every initialized
reserve into one risk snapshot:

    total_collateral   sum of real claim balances
    total_debt         sum of real debt balances
    ltv                collateral-weighted average ltv (bps)
    liquidation thr.   collateral-weighted average threshold (bps)
    available_borrows  collateral * ltv - debt, floored at zero
    health_factor      collateral * threshold / debt  (WAD; MAX_UINT256 without debt)

Assets are valued unit-for-unit (no price oracle). To make reserves with
different decimals add up, every amount is normalized to WAD (18 decimals)
before aggregation.

The module follows the load / calculate / compute split: load_account_positions
is the only reader of ledger state, calculate_account_data is pure, and
compute_account_data chains the two. Nothing here mutates the ledger, so it is
safe to call in the middle of a pool operation.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .core import LedgerView
from .units.reserve import compute_accrual
from .units.tokens import balance_of
from .wadray import WAD, MAX_UINT256, ray_mul, wad_div, percent_mul


HEALTH_FACTOR_LIQUIDATION_THRESHOLD = WAD

RISK_DECIMALS = 18


def from_asset_units(amount: int, decimals: int) -> int:
    """Normalize base units of an asset with `decimals` to WAD."""
    if decimals <= RISK_DECIMALS:
        return amount * 10 ** (RISK_DECIMALS - decimals)
    return amount // 10 ** (decimals - RISK_DECIMALS)


def to_asset_units(wad_value: int, decimals: int, round_up: bool = False) -> int:
    """Convert a WAD value back to base units of an asset (rounding down unless round_up)."""
    if decimals <= RISK_DECIMALS:
        scale = 10 ** (RISK_DECIMALS - decimals)
        if round_up:
            return -(-wad_value // scale)
        return wad_value // scale
    return wad_value * 10 ** (decimals - RISK_DECIMALS)


@dataclass(frozen=True, slots=True)
class ReservePosition:
    """One account's real balances in one reserve, normalized to WAD."""
    asset: str
    collateral: int
    debt: int
    ltv: int
    liquidation_threshold: int


@dataclass(frozen=True, slots=True)
class AccountData:
    """
    Aggregate risk snapshot of an account.

    Amounts are WAD, ltv and threshold are basis points, health_factor is
    WAD (1e18 == 1.0).
    """
    total_collateral: int
    total_debt: int
    available_borrows: int
    current_liquidation_threshold: int
    ltv: int
    health_factor: int

    @property
    def is_healthy(self) -> bool:
        return self.health_factor > HEALTH_FACTOR_LIQUIDATION_THRESHOLD


def calculate_account_data(positions: Sequence[ReservePosition]) -> AccountData:
    """
    Aggregate per-reserve positions into an AccountData.

    PURE FUNCTION - All inputs explicit.

    Example:
        data = calculate_account_data([
            ReservePosition("USDC", collateral=100 * WAD, debt=85 * WAD,
                            ltv=8500, liquidation_threshold=9000),
        ])
        # data.health_factor == wad_div(90 * WAD, 85 * WAD)
    """
    total_collateral = 0
    total_debt = 0
    weighted_ltv = 0
    weighted_threshold = 0

    for position in positions:
        if position.collateral:
            total_collateral += position.collateral
            weighted_ltv += position.collateral * position.ltv
            weighted_threshold += position.collateral * position.liquidation_threshold
        if position.debt:
            total_debt += position.debt

    if total_collateral:
        avg_ltv = weighted_ltv // total_collateral
        avg_threshold = weighted_threshold // total_collateral
    else:
        avg_ltv = 0
        avg_threshold = 0

    borrowing_power = percent_mul(total_collateral, avg_ltv)
    available_borrows = max(0, borrowing_power - total_debt)

    if total_debt == 0:
        health_factor = MAX_UINT256
    else:
        health_factor = wad_div(percent_mul(total_collateral, avg_threshold), total_debt)

    return AccountData(
        total_collateral=total_collateral,
        total_debt=total_debt,
        available_borrows=available_borrows,
        current_liquidation_threshold=avg_threshold,
        ltv=avg_ltv,
        health_factor=health_factor,
    )


def load_account_positions(
    view: LedgerView,
    reserves: Iterable[str],
    account: str,
) -> List[ReservePosition]:
    """
    Read an account's real balances in each reserve.

    Balances are resolved against the reserve indices projected to the
    view's current time, so a reserve that has not been touched lately
    still reports interest earned and owed up to now.
    """
    positions = []
    for asset in reserves:
        _, reserve = compute_accrual(view, asset)
        decimals = reserve.configuration.decimals
        scaled_claim = balance_of(view, reserve.claim_token, account)
        scaled_debt = balance_of(view, reserve.debt_token, account)
        if not scaled_claim and not scaled_debt:
            continue
        claim = ray_mul(scaled_claim, reserve.liquidity_index)
        debt = ray_mul(scaled_debt, reserve.variable_borrow_index)
        positions.append(ReservePosition(
            asset=asset,
            collateral=from_asset_units(claim, decimals),
            debt=from_asset_units(debt, decimals),
            ltv=reserve.configuration.ltv,
            liquidation_threshold=reserve.configuration.liquidation_threshold,
        ))
    return positions


def compute_account_data(view: LedgerView, reserves: Iterable[str], account: str) -> AccountData:
    """Load an account's positions across `reserves` and aggregate them."""
    return calculate_account_data(load_account_positions(view, reserves, account))
