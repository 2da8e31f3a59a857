#!/usr/bin/env python3
"""
leveraged_vault_demo.py - Walkthrough: Lending Pool and Leveraged Vault

Deploys a two-asset lending pool, seeds it with liquidity, opens a
leverage-looping vault over USDC and walks through deposit, looping and
rebalancing while printing the vault's position after each step.

WHAT YOU'LL SEE:
  1-3:   Setup     - Tokens, pool, reserves and the address registry
  4-5:   Liquidity - Seeding both reserves, creating the vault
  6-8:   Leverage  - Deposit, execute_looping, position summary
  9:     Unwind    - Rebalance when the vault's LTV is above 80%

Run:
    python leveraged_vault_demo.py           # Interactive mode (press Enter for each step)
    python leveraged_vault_demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import sys

from lendingledger import (
    Ledger, Pool, LeveragedVault, PoolAddressesProvider,
    InterestRateStrategy, ReserveConfiguration,
    WAD, MAX_UINT256, REBALANCE_LTV,
    token, compute_issuance, ray,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the walkthrough. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    admin: str = "admin"
    user: str = "user"
    decimals: int = 6

    # Funding
    initial_mint: Decimal = Decimal("1000000")
    seed_liquidity: Decimal = Decimal("500000")
    user_deposit: Decimal = Decimal("10000")

    # Rate curve (ratios)
    optimal_utilization: str = "0.8"
    base_rate: str = "0.01"
    slope1: str = "0.04"
    slope2: str = "0.75"

    # Reserve risk parameters (bps)
    ltv: int = 8500
    liquidation_threshold: int = 9000
    liquidation_bonus: int = 500
    reserve_factor: int = 1000


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter(interactive: bool = True):
    """Pause for user input unless in quick mode."""
    if interactive and not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}\n")


def format_wad(value: int) -> str:
    return f"{Decimal(value).scaleb(-18):,.6f}"


def format_health_factor(value: int) -> str:
    if value == MAX_UINT256:
        return "inf"
    return f"{Decimal(value) / WAD:.4f}"


def print_position(vault: LeveragedVault) -> None:
    details = vault.get_position_details()
    print(f"  Collateral:    {format_wad(details.collateral)}")
    print(f"  Debt:          {format_wad(details.debt)}")
    print(f"  LTV:           {Decimal(details.ltv) / 100:.2f}% ({details.ltv} bps)")
    print(f"  Health Factor: {format_health_factor(details.health_factor)}")
    print(f"  Total Assets:  {vault.total_assets()} {vault.asset}")


# ============================================================================
# SCENARIO
# ============================================================================

def run_demo(verbose: bool = True, interactive: bool = False, config: DemoConfig = CONFIG) -> dict:
    """
    Run the full scenario and return a summary of the final vault position.

    Returns:
        Dict with 'shares', 'loop', 'rebalance', 'position' and the objects
        ('ledger', 'pool', 'vault') for further inspection.
    """
    say = print if verbose else (lambda *args, **kwargs: None)

    if verbose:
        step_header(1, "Tokens")
    ledger = Ledger("lending", initial_time=config.start_time, verbose=verbose)
    for symbol, name in (("USDC", "USD Coin"), ("USDT", "Tether USD")):
        ledger.register_unit(token(symbol, name, decimals=config.decimals))
    for wallet in (config.admin, config.user):
        ledger.register_wallet(wallet)
    for symbol in ("USDC", "USDT"):
        ledger.execute(compute_issuance(ledger, symbol, config.user, config.initial_mint))
    say(f"  Minted {config.initial_mint:,} USDC and USDT to {config.user}")
    wait_for_enter(interactive)

    if verbose:
        step_header(2, "Pool and Registry")
    provider = PoolAddressesProvider(config.admin)
    pool = Pool(ledger, admin=config.admin)
    provider.set_pool_impl(config.admin, pool)
    wait_for_enter(interactive)

    if verbose:
        step_header(3, "Reserves")
    strategy = InterestRateStrategy(
        optimal_utilization=ray(config.optimal_utilization),
        base_variable_borrow_rate=ray(config.base_rate),
        variable_rate_slope1=ray(config.slope1),
        variable_rate_slope2=ray(config.slope2),
    )
    configuration = ReserveConfiguration(
        ltv=config.ltv,
        liquidation_threshold=config.liquidation_threshold,
        liquidation_bonus=config.liquidation_bonus,
        decimals=config.decimals,
        reserve_factor=config.reserve_factor,
    )
    for asset in ("USDC", "USDT"):
        pool.init_reserve(config.admin, asset, f"a{asset}", f"vd{asset}", strategy, configuration)
    say(f"  Reserves: {pool.get_reserves_list()}")
    wait_for_enter(interactive)

    if verbose:
        step_header(4, "Seed Liquidity")
    for asset in ("USDC", "USDT"):
        pool.supply(config.user, asset, config.seed_liquidity, config.user)
        say(f"  {asset} available liquidity: {pool.get_available_liquidity(asset):,}")
    wait_for_enter(interactive)

    if verbose:
        step_header(5, "Vault")
    vault = LeveragedVault(
        provider.get_pool(), "USDC", "Leveraged USDC Vault", "lvUSDC",
        borrow_asset="USDT", owner=config.admin,
    )
    say(f"  Looping enabled: {vault.looping_enabled}, max iterations: {vault.max_loop_iterations}")
    wait_for_enter(interactive)

    if verbose:
        step_header(6, "Deposit")
    shares = vault.deposit(config.user, config.user_deposit, config.user)
    say(f"  {config.user} received {shares} {vault.symbol}")
    wait_for_enter(interactive)

    if verbose:
        step_header(7, "Execute Looping")
    loop = vault.execute_looping()
    if loop is not None:
        say(f"  Iterations: {loop.iterations}")
        say(f"  Borrowed:   {loop.borrowed} {vault.borrow_asset}")
        say(f"  Collateral: {loop.collateral_supplied} {vault.asset}")
    wait_for_enter(interactive)

    if verbose:
        step_header(8, "Position")
        print_position(vault)
    wait_for_enter(interactive)

    if verbose:
        step_header(9, "Rebalance")
    rebalance = None
    if vault.get_current_ltv() > REBALANCE_LTV:
        say("  LTV is above 80%, triggering rebalance...")
        rebalance = vault.rebalance()
        if rebalance is not None:
            say(f"  Repaid: {rebalance.repaid} {vault.borrow_asset}")
        if verbose:
            print_position(vault)
    else:
        say("  LTV is below 80%, no rebalance needed")

    return {
        'shares': shares,
        'loop': loop,
        'rebalance': rebalance,
        'position': vault.get_position_details(),
        'ledger': ledger,
        'pool': pool,
        'vault': vault,
    }


def main():
    """Run the walkthrough."""
    print("=" * 70)
    print("       LEVERAGED VAULT WALKTHROUGH")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    result = run_demo(verbose=True, interactive=True)

    ledger = result['ledger']
    check = ledger.verify_double_entry()
    print("\n" + "=" * 70)
    print("       SUMMARY")
    print("=" * 70)
    for wallet in ("aUSDC", "aUSDT", "lvUSDC"):
        balances = {k: v for k, v in ledger.get_wallet_balances(wallet).items() if v}
        print(f"  {wallet:8s} {balances}")
    print(f"  Double entry holds: {check['valid']}")
    print(f"  Transactions:       {len(ledger.transaction_log)}")
    pool = result['pool']
    print(f"  Vault debt:         {pool.debt_balance_of('USDT', result['vault'].wallet)} USDT")


if __name__ == "__main__":
    main()
