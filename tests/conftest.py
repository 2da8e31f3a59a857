"""
conftest.py - Shared pytest fixtures for lending ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Token ledgers (USDC/USDT with 6 decimals, funded accounts)
- Pools with both reserves initialized and seeded
- Leveraged vaults over the seeded pool
- Comparison utilities
- Random pool-operation strategy for property-based tests
"""

import pytest
from hypothesis import strategies as st
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Tuple

from lendingledger import (
    Ledger, Pool, LeveragedVault, MAX_AMOUNT,
    InterestRateStrategy, ReserveConfiguration, InterestRateMode,
    token, compute_issuance, ray,
    LendingError, InsufficientFunds,
)


T0 = datetime(2025, 1, 1)

ADMIN = "admin"
ASSETS = ("USDC", "USDT")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def default_strategy() -> InterestRateStrategy:
    """optimal 80%, base 1%, slope1 4%, slope2 75%."""
    return InterestRateStrategy(
        optimal_utilization=ray("0.8"),
        base_variable_borrow_rate=ray("0.01"),
        variable_rate_slope1=ray("0.04"),
        variable_rate_slope2=ray("0.75"),
    )


def default_configuration(decimals: int = 6, **overrides) -> ReserveConfiguration:
    """ltv 85%, liquidation threshold 90%, bonus 5%, reserve factor 10%."""
    params = dict(
        ltv=8500,
        liquidation_threshold=9000,
        liquidation_bonus=500,
        decimals=decimals,
        reserve_factor=1000,
    )
    params.update(overrides)
    return ReserveConfiguration(**params)


def issue(ledger: Ledger, symbol: str, wallet: str, amount) -> None:
    """Mint underlying tokens to a wallet through SYSTEM_WALLET."""
    if not ledger.is_registered(wallet):
        ledger.register_wallet(wallet)
    ledger.execute(compute_issuance(ledger, symbol, wallet, Decimal(str(amount))))


def make_ledger(decimals: int = 6) -> Ledger:
    ledger = Ledger("lending", T0, verbose=False)
    ledger.register_unit(token("USDC", "USD Coin", decimals=decimals))
    ledger.register_unit(token("USDT", "Tether USD", decimals=decimals))
    ledger.register_wallet(ADMIN)
    return ledger


def make_pool(ledger: Ledger, seed: Decimal = Decimal("500000")) -> Pool:
    """Pool with USDC and USDT reserves; 'lp' seeds `seed` of each."""
    pool = Pool(ledger, admin=ADMIN)
    decimals = ledger.get_unit_state("USDC")['decimals']
    for asset in ASSETS:
        pool.init_reserve(ADMIN, asset, f"a{asset}", f"vd{asset}",
                          default_strategy(), default_configuration(decimals))
    if seed:
        for asset in ASSETS:
            issue(ledger, asset, "lp", seed)
            pool.supply("lp", asset, seed, "lp")
    return pool


def fund(ledger: Ledger, wallets=("alice", "bob"), amount: str = "1000000") -> Ledger:
    for wallet in wallets:
        for asset in ASSETS:
            issue(ledger, asset, wallet, amount)
    return ledger


def advance(ledger: Ledger, **delta) -> None:
    """Move the ledger clock forward by a timedelta."""
    ledger.advance_time(ledger.current_time + timedelta(**delta))


# =============================================================================
# RANDOM POOL OPERATIONS (conformance tests)
# =============================================================================

OPERATIONS = ("supply", "withdraw", "borrow", "repay")


@st.composite
def pool_operation(draw):
    """
    One pool call as (kind, wallet, asset, amount, days_before).

    amount is None for the MAX_AMOUNT sentinel on withdraw/repay.
    """
    kind = draw(st.sampled_from(OPERATIONS))
    wallet = draw(st.sampled_from(["alice", "bob"]))
    asset = draw(st.sampled_from(ASSETS))
    if kind in ("withdraw", "repay") and draw(st.booleans()):
        amount = None
    else:
        amount = draw(st.decimals(
            min_value=Decimal("0.01"),
            max_value=Decimal("600000"),
            places=2,
            allow_nan=False,
            allow_infinity=False,
        ))
    days = draw(st.integers(min_value=0, max_value=120))
    return kind, wallet, asset, amount, days


def apply_operation(pool: Pool, operation) -> bool:
    """Run one drawn operation; False when the pool rejected it."""
    kind, wallet, asset, amount, days = operation
    if days:
        advance(pool.ledger, days=days)
    if amount is None:
        amount = MAX_AMOUNT
    try:
        if kind == "supply":
            pool.supply(wallet, asset, amount, wallet)
        elif kind == "withdraw":
            pool.withdraw(wallet, asset, amount, wallet)
        elif kind == "borrow":
            pool.borrow(wallet, asset, amount, InterestRateMode.VARIABLE, wallet)
        else:
            pool.repay(wallet, asset, amount, InterestRateMode.VARIABLE, wallet)
    except (LendingError, InsufficientFunds):
        return False
    return True


def balances_snapshot(ledger: Ledger) -> dict:
    """Every non-zero balance plus every unit state, for before/after comparisons."""
    balances = {
        (wallet, unit): qty
        for wallet, bals in ledger.balances.items()
        for unit, qty in bals.items()
        if qty != 0
    }
    states = {symbol: ledger.get_unit_state(symbol) for symbol in ledger.units}
    return {'balances': balances, 'states': states}


def net_supply(ledger: Ledger, unit_symbol: str) -> Decimal:
    """Sum over all wallets including SYSTEM_WALLET; zero when double entry holds."""
    return sum(
        (bals.get(unit_symbol, Decimal("0")) for bals in ledger.balances.values()),
        Decimal("0"),
    )


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Ledger with USDC and USDT (6 decimals) and the admin wallet."""
    return make_ledger()


@pytest.fixture
def funded_ledger(ledger):
    """Ledger where alice and bob each hold 1,000,000 USDC and USDT."""
    return fund(ledger)


@pytest.fixture
def empty_pool(funded_ledger):
    """Pool with both reserves initialized and no liquidity."""
    return make_pool(funded_ledger, seed=Decimal("0"))


@pytest.fixture
def pool(funded_ledger):
    """Pool with both reserves seeded with 500,000 by 'lp'."""
    return make_pool(funded_ledger)


@pytest.fixture
def vault(pool):
    """Leveraged USDC vault borrowing USDT over the seeded pool."""
    return LeveragedVault(pool, "USDC", "Leveraged USDC Vault", "lvUSDC",
                          borrow_asset="USDT", owner=ADMIN)


@pytest.fixture
def borrowed_pool(pool) -> Tuple[Pool, str]:
    """alice supplies 10,000 USDC and borrows 5,000 USDT."""
    pool.supply("alice", "USDC", Decimal("10000"), "alice")
    pool.borrow("alice", "USDT", Decimal("5000"), InterestRateMode.VARIABLE, "alice")
    return pool, "alice"
