"""
reserve.py - Reserve Units for Per-Asset Lending Pools

A reserve is a ledger unit named "<ASSET>-RESERVE" whose state holds the
pool's configuration, accrual indices and current rates. Balances are never
stored on the reserve itself: suppliers hold claim tokens, borrowers hold
debt tokens, and the underlying liquidity sits in a wallet named after the
claim token.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES (explicit inputs):
   - ReserveConfiguration: risk parameters and flags (packable to a bitmap)
   - ReserveData: immutable snapshot of a reserve's state

2. PURE CALCULATION FUNCTIONS (calculate_*):
   - calculate_linear_interest: growth factor for an elapsed period
   - calculate_accrual: rates + indices after one accrual step

3. ADAPTER FUNCTIONS (load_reserve / to_state_dict):
   - The only place that reads reserve state from a LedgerView

4. CONVENIENCE FUNCTIONS (compute_*):
   - compute_accrual: load + totals + pure calculation

Key Formulas:
    utilization   = total_debt / (available_liquidity + total_debt)
    index_new     = index * (1 + rate * elapsed / SECONDS_PER_YEAR)
    real_balance  = scaled_balance * index
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Tuple

from ..core import (
    LedgerView, Unit, UnitStateChange,
    UNIT_TYPE_RESERVE,
    _freeze_state,
)
from ..interest_rate import InterestRateStrategy, calculate_utilization
from ..wadray import RAY, SECONDS_PER_YEAR, ray_mul
from .tokens import balance_of, total_supply_of


# Packed configuration layout (bit offsets)
LTV_START_BIT = 0
LIQUIDATION_THRESHOLD_START_BIT = 16
LIQUIDATION_BONUS_START_BIT = 32
DECIMALS_START_BIT = 48
ACTIVE_BIT = 56
FROZEN_BIT = 57
BORROWING_ENABLED_BIT = 58
RESERVE_FACTOR_START_BIT = 64

MAX_VALID_BPS = 2**16 - 1
MAX_VALID_DECIMALS = 2**8 - 1

RESERVE_SUFFIX = "-RESERVE"


def reserve_symbol(asset: str) -> str:
    """Unit symbol of the reserve for an asset ("USDC" -> "USDC-RESERVE")."""
    return f"{asset}{RESERVE_SUFFIX}"


# ============================================================================
# FROZEN DATACLASSES
# ============================================================================

@dataclass(frozen=True, slots=True)
class ReserveConfiguration:
    """
    Risk parameters and flags of a reserve.

    Percentages are basis points: ltv=8500 means 85%.

    The configuration round-trips through the packed integer layout used
    by deployment tooling:

        bits  0-15  ltv
        bits 16-31  liquidation threshold
        bits 32-47  liquidation bonus
        bits 48-55  decimals
        bit     56  active
        bit     57  frozen
        bit     58  borrowing enabled
        bits 64-79  reserve factor
    """
    ltv: int
    liquidation_threshold: int
    liquidation_bonus: int
    decimals: int
    active: bool = True
    frozen: bool = False
    borrowing_enabled: bool = True
    reserve_factor: int = 0

    def __post_init__(self):
        for name in ('ltv', 'liquidation_threshold', 'liquidation_bonus', 'reserve_factor'):
            value = getattr(self, name)
            if not 0 <= value <= MAX_VALID_BPS:
                raise ValueError(f"{name} must fit in 16 bits, got {value}")
        if not 0 <= self.decimals <= MAX_VALID_DECIMALS:
            raise ValueError(f"decimals must fit in 8 bits, got {self.decimals}")
        if self.ltv > self.liquidation_threshold:
            raise ValueError(
                f"ltv ({self.ltv}) cannot exceed liquidation_threshold ({self.liquidation_threshold})"
            )

    def to_bitmap(self) -> int:
        """Pack into a single integer."""
        return (
            self.ltv << LTV_START_BIT
            | self.liquidation_threshold << LIQUIDATION_THRESHOLD_START_BIT
            | self.liquidation_bonus << LIQUIDATION_BONUS_START_BIT
            | self.decimals << DECIMALS_START_BIT
            | int(self.active) << ACTIVE_BIT
            | int(self.frozen) << FROZEN_BIT
            | int(self.borrowing_enabled) << BORROWING_ENABLED_BIT
            | self.reserve_factor << RESERVE_FACTOR_START_BIT
        )

    @classmethod
    def from_bitmap(cls, data: int) -> ReserveConfiguration:
        """Unpack a configuration produced by to_bitmap()."""
        if data < 0:
            raise ValueError(f"configuration bitmap must be non-negative, got {data}")
        return cls(
            ltv=(data >> LTV_START_BIT) & MAX_VALID_BPS,
            liquidation_threshold=(data >> LIQUIDATION_THRESHOLD_START_BIT) & MAX_VALID_BPS,
            liquidation_bonus=(data >> LIQUIDATION_BONUS_START_BIT) & MAX_VALID_BPS,
            decimals=(data >> DECIMALS_START_BIT) & MAX_VALID_DECIMALS,
            active=bool((data >> ACTIVE_BIT) & 1),
            frozen=bool((data >> FROZEN_BIT) & 1),
            borrowing_enabled=bool((data >> BORROWING_ENABLED_BIT) & 1),
            reserve_factor=(data >> RESERVE_FACTOR_START_BIT) & MAX_VALID_BPS,
        )

    def with_active(self, active: bool) -> ReserveConfiguration:
        return replace(self, active=active)

    def with_frozen(self, frozen: bool) -> ReserveConfiguration:
        return replace(self, frozen=frozen)

    def with_borrowing_enabled(self, enabled: bool) -> ReserveConfiguration:
        return replace(self, borrowing_enabled=enabled)


@dataclass(frozen=True, slots=True)
class ReserveData:
    """
    Immutable snapshot of a reserve.

    Indices and rates are ray integers. Each state change creates a new
    instance (value semantics); the pool writes it back with to_state_dict().
    """
    asset: str
    id: int
    configuration: ReserveConfiguration
    liquidity_index: int
    variable_borrow_index: int
    current_liquidity_rate: int
    current_variable_borrow_rate: int
    last_update_timestamp: datetime
    claim_token: str
    debt_token: str
    interest_rate_strategy: InterestRateStrategy

    @property
    def symbol(self) -> str:
        return reserve_symbol(self.asset)

    @property
    def liquidity_wallet(self) -> str:
        """Wallet holding the reserve's underlying liquidity."""
        return self.claim_token


# ============================================================================
# ADAPTER FUNCTIONS
# ============================================================================

def load_reserve(view: LedgerView, asset: str) -> ReserveData:
    """
    Load a reserve from ledger state as a frozen ReserveData.

    Raises:
        UnitNotRegistered: If the asset has no reserve unit.
    """
    raw = view.get_unit_state(reserve_symbol(asset))
    return ReserveData(
        asset=raw['asset'],
        id=raw['id'],
        configuration=raw['configuration'],
        liquidity_index=raw['liquidity_index'],
        variable_borrow_index=raw['variable_borrow_index'],
        current_liquidity_rate=raw['current_liquidity_rate'],
        current_variable_borrow_rate=raw['current_variable_borrow_rate'],
        last_update_timestamp=raw['last_update_timestamp'],
        claim_token=raw['claim_token'],
        debt_token=raw['debt_token'],
        interest_rate_strategy=raw['interest_rate_strategy'],
    )


def to_state_dict(reserve: ReserveData) -> Dict[str, Any]:
    """Inverse of load_reserve(): the unit state stored for a reserve."""
    return {
        'asset': reserve.asset,
        'id': reserve.id,
        'configuration': reserve.configuration,
        'liquidity_index': reserve.liquidity_index,
        'variable_borrow_index': reserve.variable_borrow_index,
        'current_liquidity_rate': reserve.current_liquidity_rate,
        'current_variable_borrow_rate': reserve.current_variable_borrow_rate,
        'last_update_timestamp': reserve.last_update_timestamp,
        'claim_token': reserve.claim_token,
        'debt_token': reserve.debt_token,
        'interest_rate_strategy': reserve.interest_rate_strategy,
    }


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_linear_interest(rate: int, elapsed_seconds: int) -> int:
    """
    Growth factor (ray) for simple interest over elapsed_seconds.

    Returns RAY + rate * elapsed / SECONDS_PER_YEAR.
    """
    if elapsed_seconds <= 0:
        return RAY
    return RAY + rate * elapsed_seconds // SECONDS_PER_YEAR


def calculate_accrual(
    reserve: ReserveData,
    total_debt: int,
    available_liquidity: int,
    now: datetime,
) -> ReserveData:
    """
    Run one accrual step.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Args:
        reserve: Reserve snapshot before the step
        total_debt: Real outstanding debt in base units (before any mutation)
        available_liquidity: Underlying held by the reserve in base units
        now: Current ledger time

    Returns:
        New snapshot with refreshed rates, grown indices and timestamp.
        With zero elapsed time only the rates change.
    """
    utilization = calculate_utilization(total_debt, available_liquidity)
    rates = reserve.interest_rate_strategy.calculate_rates(utilization)

    elapsed = int((now - reserve.last_update_timestamp).total_seconds())
    liquidity_index = reserve.liquidity_index
    variable_borrow_index = reserve.variable_borrow_index
    if elapsed > 0:
        liquidity_index = ray_mul(
            liquidity_index, calculate_linear_interest(rates.liquidity_rate, elapsed)
        )
        variable_borrow_index = ray_mul(
            variable_borrow_index, calculate_linear_interest(rates.variable_borrow_rate, elapsed)
        )

    return replace(
        reserve,
        current_liquidity_rate=rates.liquidity_rate,
        current_variable_borrow_rate=rates.variable_borrow_rate,
        liquidity_index=liquidity_index,
        variable_borrow_index=variable_borrow_index,
        last_update_timestamp=max(now, reserve.last_update_timestamp),
    )


# ============================================================================
# UNIT CREATION AND STATE CHANGES
# ============================================================================

def create_reserve_unit(
    asset: str,
    reserve_id: int,
    claim_token: str,
    debt_token: str,
    strategy: InterestRateStrategy,
    configuration: ReserveConfiguration,
    timestamp: datetime,
) -> Unit:
    """
    Create the reserve unit for an asset with both indices at 1.0 (RAY).

    The reserve unit carries state only; no wallet ever holds it.
    """
    reserve = ReserveData(
        asset=asset,
        id=reserve_id,
        configuration=configuration.with_active(True),
        liquidity_index=RAY,
        variable_borrow_index=RAY,
        current_liquidity_rate=0,
        current_variable_borrow_rate=0,
        last_update_timestamp=timestamp,
        claim_token=claim_token,
        debt_token=debt_token,
        interest_rate_strategy=strategy,
    )
    return Unit(
        symbol=reserve_symbol(asset),
        name=f"{asset} Reserve",
        unit_type=UNIT_TYPE_RESERVE,
        min_balance=Decimal("0"),
        max_balance=Decimal("0"),
        decimal_places=configuration.decimals,
        transfer_rule=None,
        _frozen_state=_freeze_state(to_state_dict(reserve)),
    )


def reserve_state_change(old: ReserveData, new: ReserveData) -> UnitStateChange:
    """State change record moving a reserve from old to new."""
    return UnitStateChange(
        unit=old.symbol,
        old_state=to_state_dict(old),
        new_state=to_state_dict(new),
    )


def compute_total_debt(view: LedgerView, reserve: ReserveData) -> int:
    """Real outstanding variable debt of a reserve in base units."""
    return ray_mul(total_supply_of(view, reserve.debt_token), reserve.variable_borrow_index)


def compute_available_liquidity(view: LedgerView, reserve: ReserveData) -> int:
    """Underlying held by the reserve's liquidity wallet, in base units."""
    return balance_of(view, reserve.asset, reserve.liquidity_wallet)


def compute_accrual(view: LedgerView, asset: str) -> Tuple[ReserveData, ReserveData]:
    """
    Load a reserve and accrue it to the view's current time.

    Utilization is measured on the state before the caller's mutation.

    Returns:
        (before, after) snapshots; the caller writes `after` back with
        reserve_state_change(before, after) inside its own transaction.
    """
    before = load_reserve(view, asset)
    after = calculate_accrual(
        before,
        compute_total_debt(view, before),
        compute_available_liquidity(view, before),
        view.current_time,
    )
    return before, after
