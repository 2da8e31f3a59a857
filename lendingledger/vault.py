"""
vault.py - Leveraged Tokenized Vault

A share-issuing vault over one collateral asset that builds leverage in the
pool by looping supply -> borrow -> supply, and unwinds it when the loan-to-
value ratio drifts above a rebalance threshold.

Position accounting (vault wallet = the share symbol):

    total_assets = idle collateral asset
                 + collateral held in the pool
                 - debt owed to the pool              (floored at zero)

Shares follow the tokenized-vault convention with a virtual offset of one
share and one asset unit, so the first depositor cannot be diluted by
donations:

    shares = assets * (total_supply + 1) / (total_assets + 1)
    assets = shares * (total_assets + 1) / (total_supply + 1)

Deposits round shares down, mints round assets up, withdrawals round shares
up, redemptions round assets down; every rounding favours the vault.

Withdrawals that release pool collateral first repay the leaving shares'
part of the debt out of borrow-asset funds, so the remaining holders keep
their leverage and health factor.

Loop steps that may fail (borrow, re-supply) are wrapped as StepResult
values. A failed step ends the loop but keeps everything the earlier
iterations achieved; every other failure aborts the whole call and the
ledger rolls back.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
import functools
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .core import (
    ExecuteResult, InterestRateMode, LedgerError, MathError, Move, OriginType,
    TransactionOrigin,
    CallerNotAdmin, ExceededAllowance, ExceededMaxRedeem, ExceededMaxWithdraw,
    HealthFactorLowerThanLiquidationThreshold, InsufficientFunds,
    InsufficientVaultLiquidity, InvalidAddress, InvalidAmount, InvalidLoopIterations,
    InvalidMintAmount, ReentrantCall, ReserveNotInitialized, TransactionRejected,
    build_transaction,
)
from .pool import Pool, MAX_AMOUNT
from .risk import AccountData, HEALTH_FACTOR_LIQUIDATION_THRESHOLD, from_asset_units, to_asset_units
from .units.reserve import reserve_symbol
from .units.tokens import (
    create_vault_share, balance_of, total_supply_of, token_decimals,
    mint_move, burn_move, transfer_move,
)
from .wadray import MAX_UINT256, PERCENTAGE_FACTOR, percent_mul, to_base_units, from_base_units


MAX_LTV = 9000                 # 90%: looping never borrows beyond this
REBALANCE_LTV = 8000           # 80%: above this, rebalance() repays debt
MAX_LOOP_ITERATIONS_CAP = 10
DEFAULT_MAX_LOOP_ITERATIONS = 5


# ============================================================================
# EVENTS AND RESULTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoopExecuted:
    """Summary of one execute_looping() run with at least one iteration."""
    collateral_supplied: Decimal   # vault collateral in the pool after the loop
    borrowed: Decimal              # borrow asset borrowed during the loop
    iterations: int


@dataclass(frozen=True, slots=True)
class Rebalanced:
    repaid: Decimal


@dataclass(frozen=True, slots=True)
class Deposit:
    sender: str
    owner: str
    assets: Decimal
    shares: Decimal


@dataclass(frozen=True, slots=True)
class Withdraw:
    sender: str
    receiver: str
    owner: str
    assets: Decimal
    shares: Decimal


@dataclass(frozen=True, slots=True)
class PositionDetails:
    """Vault position in pool terms (WAD amounts, ltv in bps, health factor in WAD)."""
    collateral: int
    debt: int
    ltv: int
    health_factor: int


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of a loop step that is allowed to fail."""
    ok: bool
    amount: Decimal = Decimal("0")
    error: Optional[LedgerError] = None


def calculate_ltv(collateral: int, debt: int) -> int:
    """
    Loan-to-value in basis points.

    Zero without debt; MAX_UINT256 for debt without collateral.
    """
    if debt == 0:
        return 0
    if collateral == 0:
        return MAX_UINT256
    return debt * PERCENTAGE_FACTOR // collateral


def _mul_div(x: int, y: int, denominator: int, round_up: bool) -> int:
    quotient, remainder = divmod(x * y, denominator)
    if round_up and remainder:
        quotient += 1
    return quotient


def non_reentrant(method: Callable) -> Callable:
    """Reject a call into the vault while another guarded call is running."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._entered:
            raise ReentrantCall(f"{method.__name__} re-entered")
        self._entered = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._entered = False
    return wrapper


# ============================================================================
# VAULT
# ============================================================================

class LeveragedVault:
    """
    Leverage-looping vault over `asset`, borrowing `borrow_asset`.

    Example:
        vault = LeveragedVault(pool, "USDC", "Leveraged USDC Vault", "lvUSDC",
                               borrow_asset="USDT", owner="admin")
        vault.deposit("alice", Decimal("10000"), "alice")
        vault.execute_looping()
        vault.get_position_details()
    """

    def __init__(
        self,
        pool: Pool,
        asset: str,
        name: str,
        symbol: str,
        borrow_asset: str,
        owner: str,
        looping_enabled: bool = True,
        max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS,
    ):
        if not owner or not symbol:
            raise InvalidAddress("vault owner and symbol are required")
        for reserve_asset in (asset, borrow_asset):
            if reserve_symbol(reserve_asset) not in pool.ledger.units:
                raise ReserveNotInitialized(f"no reserve for {reserve_asset}")
        if not 1 <= max_loop_iterations <= MAX_LOOP_ITERATIONS_CAP:
            raise InvalidLoopIterations(f"max_loop_iterations must be 1..{MAX_LOOP_ITERATIONS_CAP}")

        self.pool = pool
        self.ledger = pool.ledger
        self.asset = asset
        self.borrow_asset = borrow_asset
        self.name = name
        self.symbol = symbol
        self.owner = owner
        self.looping_enabled = looping_enabled
        self.max_loop_iterations = max_loop_iterations

        # The vault's pool account and share unit share one identifier
        self.wallet = symbol
        self.decimals = token_decimals(self.ledger, asset)
        self.borrow_decimals = token_decimals(self.ledger, borrow_asset)

        self.events: List[object] = []
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._entered = False
        self._nonce = 0

        self.ledger.register_unit(create_vault_share(symbol, name, asset, self.decimals))
        if not self.ledger.is_registered(self.wallet):
            self.ledger.register_wallet(self.wallet)

    @property
    def verbose(self) -> bool:
        return self.ledger.verbose

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _operation(self) -> Iterator[None]:
        """Ledger scope that also rolls back events and allowances."""
        events_mark = len(self.events)
        allowances = dict(self._allowances)
        try:
            with self.ledger.atomic():
                yield
        except BaseException:
            del self.events[events_mark:]
            self._allowances = allowances
            raise

    def _next_origin(self, caller: str, operation: str) -> TransactionOrigin:
        self._nonce += 1
        return TransactionOrigin(
            origin_type=OriginType.VAULT,
            source_id=f"{self.symbol}:{caller}:{operation.lower()}:{self._nonce}",
            unit_symbol=self.symbol,
            event_type=operation,
        )

    def _execute(self, moves: List[Move], origin: TransactionOrigin) -> None:
        result = self.ledger.execute(build_transaction(self.ledger, moves, origin=origin))
        if result != ExecuteResult.APPLIED:
            raise TransactionRejected(f"{origin.event_type} {origin.source_id}: {result.value}")

    def _account(self) -> AccountData:
        return self.pool.get_user_account_data(self.wallet)

    def _idle(self, asset: str) -> int:
        return balance_of(self.ledger, asset, self.wallet)

    def _claim_base(self, asset: str) -> int:
        return to_base_units(self.pool.claim_balance_of(asset, self.wallet), token_decimals(self.ledger, asset))

    def _liquidity_base(self, asset: str) -> int:
        return to_base_units(self.pool.get_available_liquidity(asset), token_decimals(self.ledger, asset))

    def _debt_base(self) -> int:
        return to_base_units(self.pool.debt_balance_of(self.borrow_asset, self.wallet), self.borrow_decimals)

    def _borrow_funds(self) -> int:
        """Borrow asset the vault can put toward its debt: idle plus withdrawable claim."""
        claim = min(self._claim_base(self.borrow_asset), self._liquidity_base(self.borrow_asset))
        return self._idle(self.borrow_asset) + claim

    def _to_base(self, amount: Decimal) -> int:
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        base = to_base_units(amount, self.decimals)
        if base <= 0:
            raise InvalidAmount(f"amount must be positive, got {amount}")
        return base

    def _total_assets_base(self) -> int:
        account = self._account()
        net = from_asset_units(self._idle(self.asset), self.decimals) + account.total_collateral - account.total_debt
        return to_asset_units(max(net, 0), self.decimals)

    def _total_supply_base(self) -> int:
        return total_supply_of(self.ledger, self.symbol)

    def _shares_for(self, assets: int, round_up: bool) -> int:
        return _mul_div(assets, self._total_supply_base() + 1, self._total_assets_base() + 1, round_up)

    def _assets_for(self, shares: int, round_up: bool) -> int:
        return _mul_div(shares, self._total_assets_base() + 1, self._total_supply_base() + 1, round_up)

    def _amount(self, base: int) -> Decimal:
        return from_base_units(base, self.decimals)

    # ========================================================================
    # SHARE TOKEN
    # ========================================================================

    def total_supply(self) -> Decimal:
        return self._amount(self._total_supply_base())

    def balance_of(self, account: str) -> Decimal:
        return self._amount(balance_of(self.ledger, self.symbol, account))

    def allowance(self, owner: str, spender: str) -> Decimal:
        return self._amount(self._allowances.get((owner, spender), 0))

    def approve(self, owner: str, spender: str, shares: Decimal) -> None:
        """Let `spender` withdraw/redeem up to `shares` of owner's shares. MAX_AMOUNT is unlimited."""
        if not spender:
            raise InvalidAddress("spender cannot be empty")
        if shares == MAX_AMOUNT:
            self._allowances[(owner, spender)] = MAX_UINT256
        else:
            self._allowances[(owner, spender)] = to_base_units(shares, self.decimals)

    def _spend_allowance(self, owner: str, spender: str, shares: int) -> None:
        current = self._allowances.get((owner, spender), 0)
        if current == MAX_UINT256:
            return
        if current < shares:
            raise ExceededAllowance(f"{spender} may spend {self._amount(current)} {self.symbol} of {owner}")
        self._allowances[(owner, spender)] = current - shares

    def transfer(self, caller: str, to: str, shares: Decimal) -> None:
        """Move vault shares between holders."""
        base = self._to_base(shares)
        if balance_of(self.ledger, self.symbol, caller) < base:
            raise InsufficientFunds(f"{caller} holds less than {shares} {self.symbol}")
        with self._operation():
            if not self.ledger.is_registered(to):
                self.ledger.register_wallet(to)
            origin = self._next_origin(caller, "TRANSFER")
            self._execute([transfer_move(self.symbol, self.decimals, caller, to, base, origin.source_id)], origin)

    # ========================================================================
    # ACCOUNTING
    # ========================================================================

    def total_assets(self) -> Decimal:
        """Idle collateral asset plus pool collateral minus pool debt, never negative."""
        return self._amount(self._total_assets_base())

    def convert_to_shares(self, assets: Decimal) -> Decimal:
        return self._amount(self._shares_for(to_base_units(assets, self.decimals), round_up=False))

    def convert_to_assets(self, shares: Decimal) -> Decimal:
        return self._amount(self._assets_for(to_base_units(shares, self.decimals), round_up=False))

    def max_deposit(self, receiver: str) -> Decimal:
        return MAX_AMOUNT

    def max_mint(self, receiver: str) -> Decimal:
        return MAX_AMOUNT

    def max_withdraw(self, owner: str) -> Decimal:
        owned = self._assets_for(balance_of(self.ledger, self.symbol, owner), round_up=False)
        return self._amount(min(owned, self._max_payable()))

    def max_redeem(self, owner: str) -> Decimal:
        owned = balance_of(self.ledger, self.symbol, owner)
        return self._amount(min(owned, self._shares_for(self._max_payable(), round_up=False)))

    def _max_payable(self) -> int:
        """
        Largest amount of the collateral asset one withdrawal can pay out.

        Releasing collateral first repays the withdrawn shares' part of the
        debt from borrow-asset funds, which bounds the share count; a vault
        at or below health factor 1.0 can only pay from idle funds.
        """
        idle = self._idle(self.asset)
        cash = idle + min(self._claim_base(self.asset), self._liquidity_base(self.asset))
        debt = self._debt_base()
        if debt == 0:
            return cash
        if self._account().health_factor <= HEALTH_FACTOR_LIQUIDATION_THRESHOLD:
            return idle
        share_cap = _mul_div(self._borrow_funds(), self._total_supply_base(), debt, round_up=False)
        return min(cash, max(self._assets_for(share_cap, round_up=False), idle))

    def preview_deposit(self, assets: Decimal) -> Decimal:
        return self._amount(self._shares_for(to_base_units(assets, self.decimals), round_up=False))

    def preview_mint(self, shares: Decimal) -> Decimal:
        return self._amount(self._assets_for(to_base_units(shares, self.decimals), round_up=True))

    def preview_withdraw(self, assets: Decimal) -> Decimal:
        return self._amount(self._shares_for(to_base_units(assets, self.decimals), round_up=True))

    def preview_redeem(self, shares: Decimal) -> Decimal:
        return self._amount(self._assets_for(to_base_units(shares, self.decimals), round_up=False))

    # ========================================================================
    # DEPOSIT / MINT
    # ========================================================================

    @non_reentrant
    def deposit(self, caller: str, assets: Decimal, receiver: str) -> Decimal:
        """
        Deposit `assets` of the collateral asset, minting shares to receiver.

        Every deposit after the first runs the leverage loop while looping
        is enabled.
        """
        base = self._to_base(assets)
        with self._operation():
            shares = self._shares_for(base, round_up=False)
            self._deposit(caller, receiver, base, shares)
        return self._amount(shares)

    @non_reentrant
    def mint(self, caller: str, shares: Decimal, receiver: str) -> Decimal:
        """Mint exactly `shares` to receiver, pulling the required assets (rounded up)."""
        share_base = self._to_base(shares)
        with self._operation():
            base = self._assets_for(share_base, round_up=True)
            self._deposit(caller, receiver, base, share_base)
        return self._amount(base)

    def _deposit(self, caller: str, receiver: str, assets: int, shares: int) -> None:
        if shares == 0:
            raise InvalidMintAmount(f"{self._amount(assets)} {self.asset} buys zero shares")
        if assets == 0:
            raise InvalidAmount("deposit of zero assets")
        if not receiver:
            raise InvalidAddress("receiver cannot be empty")
        if self._idle_of(caller) < assets:
            raise InsufficientFunds(f"{caller} holds less than {self._amount(assets)} {self.asset}")
        first_deposit = self._total_supply_base() == 0
        if not self.ledger.is_registered(receiver):
            self.ledger.register_wallet(receiver)

        origin = self._next_origin(caller, "DEPOSIT")
        self._execute([
            transfer_move(self.asset, self.decimals, caller, self.wallet, assets, origin.source_id),
            mint_move(self.symbol, self.decimals, receiver, shares, origin.source_id),
        ], origin)
        self.events.append(Deposit(caller, receiver, self._amount(assets), self._amount(shares)))
        if self.verbose:
            print(f"📥 {caller} deposited {self._amount(assets)} {self.asset} → {self._amount(shares)} {self.symbol}")

        if not first_deposit and self.looping_enabled:
            self._execute_looping()

    def _idle_of(self, wallet: str) -> int:
        return balance_of(self.ledger, self.asset, wallet)

    # ========================================================================
    # WITHDRAW / REDEEM
    # ========================================================================

    @non_reentrant
    def withdraw(self, caller: str, assets: Decimal, receiver: str, owner: str) -> Decimal:
        """
        Withdraw exactly `assets` to receiver, burning owner's shares (rounded up).

        Runs rebalance() first.
        """
        base = self._to_base(assets)
        with self._operation():
            self._rebalance()
            max_assets = self._assets_for(balance_of(self.ledger, self.symbol, owner), round_up=False)
            if base > max_assets:
                raise ExceededMaxWithdraw(
                    f"{owner} can withdraw at most {self._amount(max_assets)} {self.asset}"
                )
            shares = self._shares_for(base, round_up=True)
            self._withdraw(caller, receiver, owner, base, shares)
        return self._amount(shares)

    @non_reentrant
    def redeem(self, caller: str, shares: Decimal, receiver: str, owner: str) -> Decimal:
        """Burn exactly `shares` of owner, paying the assets (rounded down) to receiver."""
        share_base = self._to_base(shares)
        with self._operation():
            self._rebalance()
            owned = balance_of(self.ledger, self.symbol, owner)
            if share_base > owned:
                raise ExceededMaxRedeem(f"{owner} holds {self._amount(owned)} {self.symbol}")
            assets = self._assets_for(share_base, round_up=False)
            if assets == 0:
                raise InvalidAmount(f"{shares} {self.symbol} redeem for zero assets")
            self._withdraw(caller, receiver, owner, assets, share_base)
        return self._amount(assets)

    def _withdraw(self, caller: str, receiver: str, owner: str, assets: int, shares: int) -> None:
        if not receiver:
            raise InvalidAddress("receiver cannot be empty")
        if caller != owner:
            self._spend_allowance(owner, caller, shares)

        idle = self._idle(self.asset)
        if idle < assets:
            self._unwind_debt(shares)
            from_pool = min(assets - idle, self._claim_base(self.asset), self._liquidity_base(self.asset))
            if from_pool > 0:
                self.pool.withdraw(self.wallet, self.asset, self._amount(from_pool), self.wallet)
            if self._idle(self.asset) < assets:
                raise InsufficientVaultLiquidity(
                    f"vault can pay {self._amount(self._idle(self.asset))} of {self._amount(assets)} {self.asset}"
                )
            account = self._account()
            if account.total_debt and account.health_factor <= HEALTH_FACTOR_LIQUIDATION_THRESHOLD:
                raise HealthFactorLowerThanLiquidationThreshold(
                    f"withdrawal would leave vault health factor at {account.health_factor}"
                )

        if not self.ledger.is_registered(receiver):
            self.ledger.register_wallet(receiver)
        origin = self._next_origin(caller, "WITHDRAW")
        self._execute([
            burn_move(self.symbol, self.decimals, owner, shares, origin.source_id),
            transfer_move(self.asset, self.decimals, self.wallet, receiver, assets, origin.source_id),
        ], origin)
        self.events.append(Withdraw(caller, receiver, owner, self._amount(assets), self._amount(shares)))
        if self.verbose:
            print(f"📤 {owner} redeemed {self._amount(shares)} {self.symbol} → {self._amount(assets)} {self.asset}")

    def _unwind_debt(self, shares: int) -> None:
        # Repay the leaving shares' part of the debt so the rest keep their LTV
        debt = self._debt_base()
        if debt == 0:
            return
        owed = min(_mul_div(debt, shares, self._total_supply_base(), round_up=True), debt)
        held = self._idle(self.borrow_asset)
        if held < owed:
            drain = min(owed - held, self._claim_base(self.borrow_asset), self._liquidity_base(self.borrow_asset))
            if drain > 0:
                self.pool.withdraw(self.wallet, self.borrow_asset,
                                   from_base_units(drain, self.borrow_decimals), self.wallet)
        repay = min(owed, self._idle(self.borrow_asset))
        if repay > 0:
            self.pool.repay(
                self.wallet, self.borrow_asset, from_base_units(repay, self.borrow_decimals),
                InterestRateMode.VARIABLE, self.wallet,
            )

    # ========================================================================
    # LEVERAGE LOOP
    # ========================================================================

    @non_reentrant
    def execute_looping(self) -> Optional[LoopExecuted]:
        """Supply idle collateral, then loop borrow -> re-supply up to max_loop_iterations times."""
        with self._operation():
            return self._execute_looping()

    def _try_borrow(self, amount: int) -> StepResult:
        value = from_base_units(amount, self.borrow_decimals)
        try:
            self.pool.borrow(self.wallet, self.borrow_asset, value, InterestRateMode.VARIABLE, self.wallet)
        except MathError:
            raise
        except LedgerError as e:
            return StepResult(ok=False, error=e)
        return StepResult(ok=True, amount=value)

    def _try_supply(self, asset: str, amount: int) -> StepResult:
        value = from_base_units(amount, token_decimals(self.ledger, asset))
        try:
            self.pool.supply(self.wallet, asset, value, self.wallet)
        except MathError:
            raise
        except LedgerError as e:
            return StepResult(ok=False, error=e)
        return StepResult(ok=True, amount=value)

    def _execute_looping(self) -> Optional[LoopExecuted]:
        idle = self._idle(self.asset)
        if idle > 0:
            self.pool.supply(self.wallet, self.asset, self._amount(idle), self.wallet)

        account = self._account()
        if calculate_ltv(account.total_collateral, account.total_debt) >= MAX_LTV:
            return None

        iterations = 0
        total_borrowed = Decimal("0")
        for _ in range(self.max_loop_iterations):
            account = self._account()
            if calculate_ltv(account.total_collateral, account.total_debt) >= MAX_LTV:
                break

            max_borrowable = percent_mul(account.total_collateral, MAX_LTV) - account.total_debt
            amount = to_asset_units(max(max_borrowable, 0), self.borrow_decimals)
            if amount <= 0:
                break

            amount = min(amount, self._liquidity_base(self.borrow_asset))
            if amount <= 0:
                break

            borrowed = self._try_borrow(amount)
            if not borrowed.ok:
                if self.verbose:
                    print(f"⚠️  Loop stopped: borrow failed ({borrowed.error})")
                break
            iterations += 1
            total_borrowed += borrowed.amount

            held = self._idle(self.borrow_asset)
            if held > 0:
                supplied = self._try_supply(self.borrow_asset, held)
                if not supplied.ok:
                    if self.verbose:
                        print(f"⚠️  Loop stopped: re-supply failed ({supplied.error})")
                    break

        if iterations == 0:
            return None

        account = self._account()
        event = LoopExecuted(
            collateral_supplied=self._amount(to_asset_units(account.total_collateral, self.decimals)),
            borrowed=total_borrowed,
            iterations=iterations,
        )
        self.events.append(event)
        if self.verbose:
            print(f"🔄 Loop executed: {iterations} iterations, borrowed {total_borrowed} {self.borrow_asset}, "
                  f"LTV {calculate_ltv(account.total_collateral, account.total_debt)} bps")
        return event

    # ========================================================================
    # REBALANCE
    # ========================================================================

    @non_reentrant
    def rebalance(self) -> Optional[Rebalanced]:
        """Repay debt toward REBALANCE_LTV when the vault's LTV is above it."""
        with self._operation():
            return self._rebalance()

    def _rebalance(self) -> Optional[Rebalanced]:
        """
        Repay the debt above REBALANCE_LTV of collateral, rounded up.

        Funds come from idle borrow asset, then the borrow-asset claim, then
        the collateral reserve. Nothing converts the collateral asset into
        the borrow asset, so collateral pulled by the last stage stays idle
        and repays nothing: with the borrow-asset funds exhausted, a call
        moves collateral out of the pool, raises LTV and returns None.
        """
        account = self._account()
        if calculate_ltv(account.total_collateral, account.total_debt) <= REBALANCE_LTV:
            return None

        target_debt = percent_mul(account.total_collateral, REBALANCE_LTV)
        delta_wad = account.total_debt - target_debt
        if delta_wad <= 0:
            return None
        debt_base = self._debt_base()
        delta = min(to_asset_units(delta_wad, self.borrow_decimals, round_up=True), debt_base)
        if delta <= 0:
            return None

        # Raise funds: borrow-asset claims first, then the collateral reserve
        if self._idle(self.borrow_asset) < delta:
            shortfall = delta - self._idle(self.borrow_asset)
            drain = min(shortfall, self._claim_base(self.borrow_asset), self._liquidity_base(self.borrow_asset))
            if drain > 0:
                self.pool.withdraw(self.wallet, self.borrow_asset,
                                   from_base_units(drain, self.borrow_decimals), self.wallet)

        if self._idle(self.borrow_asset) < delta:
            shortfall = delta - self._idle(self.borrow_asset)
            # Unit-equivalent assets: shortfall in borrow-asset units maps 1:1
            needed = to_asset_units(from_asset_units(shortfall, self.borrow_decimals), self.decimals, round_up=True)
            drain = min(needed, self._claim_base(self.asset), self._liquidity_base(self.asset))
            if drain > 0:
                self.pool.withdraw(self.wallet, self.asset, self._amount(drain), self.wallet)

        repay = min(delta, self._idle(self.borrow_asset))
        if repay <= 0:
            return None
        repaid = self.pool.repay(
            self.wallet, self.borrow_asset, from_base_units(repay, self.borrow_decimals),
            InterestRateMode.VARIABLE, self.wallet,
        )
        event = Rebalanced(repaid=repaid)
        self.events.append(event)
        if self.verbose:
            print(f"⚖️  Rebalanced: repaid {repaid} {self.borrow_asset}")
        return event

    # ========================================================================
    # READS AND ADMIN
    # ========================================================================

    def get_current_ltv(self) -> int:
        """Vault loan-to-value in basis points."""
        account = self._account()
        return calculate_ltv(account.total_collateral, account.total_debt)

    def get_position_details(self) -> PositionDetails:
        account = self._account()
        return PositionDetails(
            collateral=account.total_collateral,
            debt=account.total_debt,
            ltv=calculate_ltv(account.total_collateral, account.total_debt),
            health_factor=account.health_factor,
        )

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise CallerNotAdmin(f"{caller} is not the vault owner")

    def set_looping_enabled(self, caller: str, enabled: bool) -> None:
        self._require_owner(caller)
        self.looping_enabled = enabled

    def set_max_loop_iterations(self, caller: str, iterations: int) -> None:
        self._require_owner(caller)
        if not 1 <= iterations <= MAX_LOOP_ITERATIONS_CAP:
            raise InvalidLoopIterations(
                f"max_loop_iterations must be in [1, {MAX_LOOP_ITERATIONS_CAP}], got {iterations}"
            )
        self.max_loop_iterations = iterations
