"""
tokens.py - Claim, Debt and Share Token Units

Every balance in the lending system is a ledger unit:

    underlying  (USDC)        plain token, transferable
    claim       (aUSDC)       scaled supply balance, mint/burn only
    debt        (vdUSDC)      scaled debt balance, mint/burn only
    vault share (lvUSDC)      vault shares, transferable

Claim and debt balances are stored SCALED: the ledger balance is the
scaled amount (in the asset's decimals) and the real balance is derived on
demand as scaled * index. Only SYSTEM_WALLET can mint or burn them, so the
pool is the sole writer.

Helpers in this module convert ledger Decimal balances to integer base
units (the unit of all reserve math) and build the mint/burn/transfer moves
the pool assembles into transactions.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Optional

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, TransactionOrigin, OriginType,
    SYSTEM_WALLET,
    UNIT_TYPE_CLAIM_TOKEN, UNIT_TYPE_DEBT_TOKEN, UNIT_TYPE_VAULT_SHARE,
    MAX_TOKEN_DECIMALS,
    mint_burn_only_transfer_rule, build_transaction, empty_pending_transaction,
    _freeze_state,
)
from ..wadray import to_base_units, from_base_units


def _check_decimals(decimals: int) -> None:
    if not 0 <= decimals <= MAX_TOKEN_DECIMALS:
        raise ValueError(f"decimals must be in [0, {MAX_TOKEN_DECIMALS}], got {decimals}")


# ============================================================================
# UNIT FACTORIES
# ============================================================================

def create_claim_token(symbol: str, name: str, underlying_asset: str, decimals: int) -> Unit:
    """
    Create an interest-bearing claim token for a reserve.

    Args:
        symbol: Claim token symbol (e.g., "aUSDC"). Also names the reserve's
            liquidity wallet.
        name: Human-readable name.
        underlying_asset: Symbol of the asset the claim is redeemable for.
        decimals: Same decimals as the underlying asset.
    """
    _check_decimals(decimals)
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_CLAIM_TOKEN,
        min_balance=Decimal("0"),
        decimal_places=decimals,
        transfer_rule=mint_burn_only_transfer_rule,
        _frozen_state=_freeze_state({
            'decimals': decimals,
            'underlying_asset': underlying_asset,
        }),
    )


def create_debt_token(symbol: str, name: str, underlying_asset: str, decimals: int) -> Unit:
    """Create a variable-rate debt token for a reserve (mint/burn only)."""
    _check_decimals(decimals)
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_DEBT_TOKEN,
        min_balance=Decimal("0"),
        decimal_places=decimals,
        transfer_rule=mint_burn_only_transfer_rule,
        _frozen_state=_freeze_state({
            'decimals': decimals,
            'underlying_asset': underlying_asset,
        }),
    )


def create_vault_share(symbol: str, name: str, asset: str, decimals: int) -> Unit:
    """Create the share unit of a tokenized vault over `asset`."""
    _check_decimals(decimals)
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_VAULT_SHARE,
        min_balance=Decimal("0"),
        decimal_places=decimals,
        _frozen_state=_freeze_state({
            'decimals': decimals,
            'asset': asset,
        }),
    )


# ============================================================================
# BALANCE READS (base units)
# ============================================================================

def token_decimals(view: LedgerView, symbol: str) -> int:
    """Decimals recorded in a token unit's state."""
    return view.get_unit_state(symbol)['decimals']


def balance_of(view: LedgerView, symbol: str, wallet: str) -> int:
    """
    Ledger balance of `wallet` in `symbol`, as integer base units.

    Reads through get_positions(), so unknown wallets simply hold zero.
    For claim and debt tokens this is the SCALED balance.
    """
    quantity = view.get_positions(symbol).get(wallet, Decimal("0"))
    return to_base_units(quantity, token_decimals(view, symbol))


def total_supply_of(view: LedgerView, symbol: str) -> int:
    """Sum of all holder balances (SYSTEM_WALLET excluded), in base units."""
    positions = view.get_positions(symbol)
    total = sum(
        (positions[w] for w in sorted(positions) if w != SYSTEM_WALLET),
        Decimal("0"),
    )
    return to_base_units(total, token_decimals(view, symbol))


# ============================================================================
# MOVE BUILDERS
# ============================================================================

def mint_move(symbol: str, decimals: int, wallet: str, amount: int, contract_id: str) -> Move:
    """Move that mints `amount` base units of `symbol` to `wallet`."""
    return Move(
        quantity=from_base_units(amount, decimals),
        unit_symbol=symbol,
        source=SYSTEM_WALLET,
        dest=wallet,
        contract_id=contract_id,
    )


def burn_move(symbol: str, decimals: int, wallet: str, amount: int, contract_id: str) -> Move:
    """Move that burns `amount` base units of `symbol` held by `wallet`."""
    return Move(
        quantity=from_base_units(amount, decimals),
        unit_symbol=symbol,
        source=wallet,
        dest=SYSTEM_WALLET,
        contract_id=contract_id,
    )


def transfer_move(
    symbol: str, decimals: int, source: str, dest: str, amount: int, contract_id: str
) -> Move:
    """Move of `amount` base units of `symbol` from source to dest."""
    return Move(
        quantity=from_base_units(amount, decimals),
        unit_symbol=symbol,
        source=source,
        dest=dest,
        contract_id=contract_id,
    )


# ============================================================================
# ISSUANCE
# ============================================================================

def compute_issuance(
    view: LedgerView,
    symbol: str,
    wallet: str,
    amount: Decimal,
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Mint `amount` of an underlying token to `wallet` out of SYSTEM_WALLET.

    Used to fund accounts in setups and scenarios. Returns an empty pending
    transaction for a zero amount.

    Example:
        ledger.execute(compute_issuance(ledger, "USDC", "alice", Decimal("1000000")))
    """
    if amount == 0:
        return empty_pending_transaction(view)
    decimals = token_decimals(view, symbol)
    base = to_base_units(amount, decimals)
    if base < 0:
        raise ValueError(f"issuance amount must be positive, got {amount}")
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.SYSTEM,
            source_id=f"issue:{symbol}:{wallet}:{total_supply_of(view, symbol)}",
            unit_symbol=symbol,
            event_type="ISSUE",
        )
    return build_transaction(
        view,
        [mint_move(symbol, decimals, wallet, base, f"issue_{symbol}")],
        origin=origin,
    )
