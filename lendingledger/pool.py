"""
pool.py - Multi-Reserve Lending Pool

The Pool is the only writer of reserve state. Every operation:

    1. opens an atomic scope on the ledger
    2. accrues the reserve (rates from the strategy, then indices)
    3. validates the request against the accrued reserve
    4. executes ONE transaction holding the balance moves and the
       reserve state change

Any exception inside the scope restores the ledger, so a failed call leaves
balances and reserve state exactly as they were.

Amounts are Decimal in the asset's own units. Internally everything is
integer base units and ray math (see wadray.py).

Example:
    pool = Pool(ledger, admin="admin")
    pool.init_reserve("admin", "USDC", "aUSDC", "vdUSDC", strategy, config)
    pool.supply("alice", "USDC", Decimal("1000"), "alice")
    pool.borrow("alice", "USDC", Decimal("500"), InterestRateMode.VARIABLE, "alice")
    pool.repay("alice", "USDC", MAX_AMOUNT, InterestRateMode.VARIABLE, "alice")
    pool.withdraw("alice", "USDC", MAX_AMOUNT, "alice")
"""

from __future__ import annotations
from decimal import Decimal
from dataclasses import replace
from typing import List, Union

from .core import (
    UnitStateChange, TransactionOrigin, OriginType, InterestRateMode, ExecuteResult,
    UNIT_TYPE_RESERVE,
    # Exceptions
    InsufficientFunds, TransactionRejected, UnitNotRegistered,
    CallerNotAdmin, InvalidAddress, ReserveAlreadyInitialized, ReserveNotInitialized,
    MaxReservesReached, ReserveInactive, ReserveFrozen, BorrowingNotEnabled,
    InvalidAmount, InvalidMintAmount, InvalidBurnAmount, NotEnoughAvailableUserBalance,
    AmountExceedsDebt, InsufficientLiquidity, CollateralBalanceIsZero,
    HealthFactorLowerThanLiquidationThreshold, InvalidInterestRateMode,
    build_transaction,
)
from .ledger import Ledger
from .interest_rate import InterestRateStrategy
from .risk import AccountData, compute_account_data, HEALTH_FACTOR_LIQUIDATION_THRESHOLD
from .units.reserve import (
    ReserveConfiguration, ReserveData,
    reserve_symbol, load_reserve, create_reserve_unit, reserve_state_change,
    compute_accrual, compute_available_liquidity, compute_total_debt,
)
from .units.tokens import (
    create_claim_token, create_debt_token,
    balance_of, total_supply_of, token_decimals, mint_move, burn_move, transfer_move,
)
from .wadray import MAX_UINT256, ray_mul, ray_div, to_base_units, from_base_units


MAX_RESERVES = 128

# Sentinel accepted by withdraw() and repay(): "the full balance / debt"
MAX_AMOUNT = Decimal(MAX_UINT256)


class Pool:
    """
    Lending pool over a Ledger.

    Reserves live in the ledger as "<ASSET>-RESERVE" units; the pool object
    itself only remembers the ledger and the administrator, so rolling the
    ledger back also rolls back everything the pool knows.
    """

    def __init__(self, ledger: Ledger, admin: str):
        if not admin:
            raise InvalidAddress("admin cannot be empty")
        self.ledger = ledger
        self.admin = admin
        self._nonce = 0

    @property
    def verbose(self) -> bool:
        return self.ledger.verbose

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise CallerNotAdmin(f"{caller} is not the pool admin")

    def _ensure_wallet(self, wallet: str) -> None:
        if not wallet:
            raise InvalidAddress("wallet cannot be empty")
        if not self.ledger.is_registered(wallet):
            self.ledger.register_wallet(wallet)

    def _require_reserve(self, asset: str) -> None:
        if not asset or reserve_symbol(asset) not in self.ledger.units:
            raise ReserveNotInitialized(f"no reserve for {asset}")

    def _next_origin(self, caller: str, operation: str, asset: str) -> TransactionOrigin:
        # Identical requests must not collapse into one intent_id
        self._nonce += 1
        return TransactionOrigin(
            origin_type=OriginType.ADMIN if operation.startswith("SET_") else OriginType.USER_ACTION,
            source_id=f"{caller}:{operation.lower()}:{self._nonce}",
            unit_symbol=asset,
            event_type=operation,
        )

    def _execute(self, moves, state_changes: List[UnitStateChange], origin: TransactionOrigin,
                 units_to_create=None) -> None:
        pending = build_transaction(self.ledger, moves, state_changes, origin, units_to_create)
        result = self.ledger.execute(pending)
        if result != ExecuteResult.APPLIED:
            raise TransactionRejected(f"{origin.event_type} {origin.source_id}: {result.value}")

    @staticmethod
    def _to_base(amount: Union[Decimal, int, str], decimals: int) -> int:
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        if amount == MAX_AMOUNT:
            raise InvalidAmount("MAX_AMOUNT is only accepted by withdraw and repay")
        base = to_base_units(amount, decimals)
        if base <= 0:
            raise InvalidAmount(f"amount must be positive, got {amount}")
        return base

    @staticmethod
    def _parse_rate_mode(interest_rate_mode) -> InterestRateMode:
        try:
            mode = InterestRateMode(interest_rate_mode)
        except ValueError:
            raise InvalidInterestRateMode(f"unknown rate mode {interest_rate_mode!r}")
        if mode != InterestRateMode.VARIABLE:
            raise InvalidInterestRateMode(f"only variable rate is supported, got {mode.name}")
        return mode

    # ========================================================================
    # ADMIN
    # ========================================================================

    def init_reserve(
        self,
        caller: str,
        asset: str,
        claim_token: str,
        debt_token: str,
        rate_strategy: InterestRateStrategy,
        configuration: Union[ReserveConfiguration, int],
    ) -> ReserveData:
        """
        Create the reserve for `asset`.

        Registers the reserve unit, the claim and debt token units (unless
        already registered) and the liquidity wallet named after the claim
        token. Both indices start at RAY and the reserve is marked active.

        Args:
            configuration: A ReserveConfiguration or its packed integer form.

        Raises:
            CallerNotAdmin, InvalidAddress, ReserveAlreadyInitialized,
            MaxReservesReached, UnitNotRegistered (unknown asset)
        """
        self._require_admin(caller)
        if not asset or not claim_token or not debt_token or rate_strategy is None:
            raise InvalidAddress("asset, claim token, debt token and rate strategy are required")
        if isinstance(configuration, int):
            configuration = ReserveConfiguration.from_bitmap(configuration)
        if reserve_symbol(asset) in self.ledger.units:
            raise ReserveAlreadyInitialized(f"{asset} already has a reserve")
        reserve_id = len(self.get_reserves_list())
        if reserve_id >= MAX_RESERVES:
            raise MaxReservesReached(f"cannot exceed {MAX_RESERVES} reserves")
        if asset not in self.ledger.units:
            raise UnitNotRegistered(f"Unit {asset} not registered")

        decimals = token_decimals(self.ledger, asset)
        if configuration.decimals != decimals:
            raise ValueError(
                f"configuration decimals {configuration.decimals} do not match {asset} ({decimals})"
            )

        with self.ledger.atomic():
            units = [create_reserve_unit(
                asset, reserve_id, claim_token, debt_token, rate_strategy,
                configuration, self.ledger.current_time,
            )]
            if claim_token not in self.ledger.units:
                units.append(create_claim_token(claim_token, f"{asset} Claim", asset, decimals))
            if debt_token not in self.ledger.units:
                units.append(create_debt_token(debt_token, f"{asset} Variable Debt", asset, decimals))
            self._ensure_wallet(claim_token)
            origin = TransactionOrigin(OriginType.ADMIN, f"{caller}:init_reserve:{asset}",
                                       unit_symbol=asset, event_type="INIT_RESERVE")
            self._execute([], [], origin, units_to_create=tuple(units))

        if self.verbose:
            print(f"🏦 Reserve {asset} initialized (id={reserve_id}, claim={claim_token}, debt={debt_token})")
        return load_reserve(self.ledger, asset)

    def _set_configuration(self, caller: str, asset: str, operation: str, update) -> ReserveConfiguration:
        self._require_admin(caller)
        self._require_reserve(asset)
        with self.ledger.atomic():
            before, reserve = compute_accrual(self.ledger, asset)
            after = replace(reserve, configuration=update(reserve.configuration))
            self._execute([], [reserve_state_change(before, after)],
                          self._next_origin(caller, operation, asset))
        return after.configuration

    def set_reserve_active(self, caller: str, asset: str, active: bool) -> ReserveConfiguration:
        """Activate or deactivate a reserve (admin only)."""
        return self._set_configuration(caller, asset, "SET_ACTIVE", lambda c: c.with_active(active))

    def set_reserve_freeze(self, caller: str, asset: str, frozen: bool) -> ReserveConfiguration:
        """Freeze or unfreeze a reserve (admin only). Frozen reserves refuse supply and borrow."""
        return self._set_configuration(caller, asset, "SET_FROZEN", lambda c: c.with_frozen(frozen))

    def set_reserve_borrowing(self, caller: str, asset: str, enabled: bool) -> ReserveConfiguration:
        """Enable or disable borrowing on a reserve (admin only)."""
        return self._set_configuration(
            caller, asset, "SET_BORROWING", lambda c: c.with_borrowing_enabled(enabled)
        )

    # ========================================================================
    # USER OPERATIONS
    # ========================================================================

    def supply(self, caller: str, asset: str, amount: Decimal, on_behalf_of: str) -> Decimal:
        """
        Deposit `amount` of `asset` from caller; on_behalf_of receives the claim.

        Raises:
            ReserveInactive, ReserveFrozen, InvalidAmount, InvalidMintAmount,
            InsufficientFunds (caller lacks the underlying)
        """
        self._require_reserve(asset)
        with self.ledger.atomic():
            self._ensure_wallet(caller)
            self._ensure_wallet(on_behalf_of)
            before, reserve = compute_accrual(self.ledger, asset)
            config = reserve.configuration
            if not config.active:
                raise ReserveInactive(asset)
            if config.frozen:
                raise ReserveFrozen(asset)
            decimals = config.decimals
            base = self._to_base(amount, decimals)

            scaled = ray_div(base, reserve.liquidity_index)
            if scaled == 0:
                raise InvalidMintAmount(f"{amount} {asset} rounds to zero claim")
            if balance_of(self.ledger, asset, caller) < base:
                raise InsufficientFunds(f"{caller} holds less than {amount} {asset}")

            origin = self._next_origin(caller, "SUPPLY", asset)
            self._execute([
                mint_move(reserve.claim_token, decimals, on_behalf_of, scaled, origin.source_id),
                transfer_move(asset, decimals, caller, reserve.liquidity_wallet, base, origin.source_id),
            ], [reserve_state_change(before, reserve)], origin)

        return from_base_units(base, decimals)

    def withdraw(self, caller: str, asset: str, amount: Decimal, to: str) -> Decimal:
        """
        Redeem caller's claim for underlying paid to `to`.

        MAX_AMOUNT withdraws the full real balance. When the caller holds
        every claim of a reserve with no outstanding debt, the reserve's
        cash is theirs alone: MAX_AMOUNT then pays at most that cash and
        burns the whole claim, so index rounding cannot strand the last
        supplier.

        Returns:
            The amount actually withdrawn.

        Raises:
            ReserveInactive, InvalidAmount, NotEnoughAvailableUserBalance,
            InsufficientLiquidity, InvalidBurnAmount
        """
        self._require_reserve(asset)
        with self.ledger.atomic():
            self._ensure_wallet(to)
            before, reserve = compute_accrual(self.ledger, asset)
            config = reserve.configuration
            if not config.active:
                raise ReserveInactive(asset)
            decimals = config.decimals

            scaled_balance = balance_of(self.ledger, reserve.claim_token, caller)
            user_balance = ray_mul(scaled_balance, reserve.liquidity_index)
            liquidity = compute_available_liquidity(self.ledger, reserve)
            full = amount == MAX_AMOUNT
            if full:
                base = user_balance
                if base <= 0:
                    raise InvalidAmount(f"{caller} has no {asset} to withdraw")
                if base > liquidity and self._is_sole_claimant(reserve, scaled_balance):
                    base = liquidity
            else:
                base = self._to_base(amount, decimals)
            if base > user_balance:
                raise NotEnoughAvailableUserBalance(
                    f"{caller} requested {from_base_units(base, decimals)} {asset}, "
                    f"holds {from_base_units(user_balance, decimals)}"
                )
            if base > liquidity:
                raise InsufficientLiquidity(f"{asset} reserve cannot pay {from_base_units(base, decimals)}")

            if full or base == user_balance:
                scaled = scaled_balance
            else:
                scaled = min(ray_div(base, reserve.liquidity_index), scaled_balance)
            if scaled == 0:
                raise InvalidBurnAmount(f"{asset} withdrawal rounds to zero claim")

            origin = self._next_origin(caller, "WITHDRAW", asset)
            moves = [burn_move(reserve.claim_token, decimals, caller, scaled, origin.source_id)]
            if base > 0:
                moves.append(
                    transfer_move(asset, decimals, reserve.liquidity_wallet, to, base, origin.source_id)
                )
            self._execute(moves, [reserve_state_change(before, reserve)], origin)

        return from_base_units(base, decimals)

    def _is_sole_claimant(self, reserve: ReserveData, scaled_balance: int) -> bool:
        return (
            scaled_balance == total_supply_of(self.ledger, reserve.claim_token)
            and compute_total_debt(self.ledger, reserve) == 0
        )

    def borrow(
        self,
        caller: str,
        asset: str,
        amount: Decimal,
        interest_rate_mode: Union[InterestRateMode, int],
        on_behalf_of: str,
    ) -> Decimal:
        """
        Borrow `amount` of `asset`; debt is recorded against on_behalf_of,
        the underlying is paid to caller.

        Admission uses the borrower-of-record's health factor on the state
        BEFORE this borrow: it must be strictly above 1.0.

        Raises:
            InvalidInterestRateMode, ReserveInactive, ReserveFrozen,
            BorrowingNotEnabled, InvalidAmount, InsufficientLiquidity,
            CollateralBalanceIsZero, HealthFactorLowerThanLiquidationThreshold,
            InvalidMintAmount
        """
        self._parse_rate_mode(interest_rate_mode)
        self._require_reserve(asset)
        with self.ledger.atomic():
            self._ensure_wallet(caller)
            self._ensure_wallet(on_behalf_of)
            before, reserve = compute_accrual(self.ledger, asset)
            config = reserve.configuration
            if not config.active:
                raise ReserveInactive(asset)
            if config.frozen:
                raise ReserveFrozen(asset)
            if not config.borrowing_enabled:
                raise BorrowingNotEnabled(asset)
            decimals = config.decimals
            base = self._to_base(amount, decimals)

            if compute_available_liquidity(self.ledger, reserve) < base:
                raise InsufficientLiquidity(f"{asset} reserve cannot lend {amount}")

            account = self.get_user_account_data(on_behalf_of)
            if account.total_collateral == 0:
                raise CollateralBalanceIsZero(on_behalf_of)
            if account.health_factor <= HEALTH_FACTOR_LIQUIDATION_THRESHOLD:
                raise HealthFactorLowerThanLiquidationThreshold(
                    f"{on_behalf_of} health factor {account.health_factor} <= 1.0"
                )

            scaled = ray_div(base, reserve.variable_borrow_index)
            if scaled == 0:
                raise InvalidMintAmount(f"{amount} {asset} rounds to zero debt")

            origin = self._next_origin(caller, "BORROW", asset)
            self._execute([
                mint_move(reserve.debt_token, decimals, on_behalf_of, scaled, origin.source_id),
                transfer_move(asset, decimals, reserve.liquidity_wallet, caller, base, origin.source_id),
            ], [reserve_state_change(before, reserve)], origin)

        return from_base_units(base, decimals)

    def repay(
        self,
        caller: str,
        asset: str,
        amount: Decimal,
        interest_rate_mode: Union[InterestRateMode, int],
        on_behalf_of: str,
    ) -> Decimal:
        """
        Repay on_behalf_of's debt with caller's underlying.

        MAX_AMOUNT repays the full real debt.

        Returns:
            The amount actually repaid.

        Raises:
            InvalidInterestRateMode, ReserveInactive, InvalidAmount,
            AmountExceedsDebt, InvalidBurnAmount, InsufficientFunds
        """
        self._parse_rate_mode(interest_rate_mode)
        self._require_reserve(asset)
        with self.ledger.atomic():
            self._ensure_wallet(caller)
            before, reserve = compute_accrual(self.ledger, asset)
            config = reserve.configuration
            if not config.active:
                raise ReserveInactive(asset)
            decimals = config.decimals

            scaled_debt = balance_of(self.ledger, reserve.debt_token, on_behalf_of)
            debt = ray_mul(scaled_debt, reserve.variable_borrow_index)
            if amount == MAX_AMOUNT:
                base = debt
                if base <= 0:
                    raise InvalidAmount(f"{on_behalf_of} has no {asset} debt")
            else:
                base = self._to_base(amount, decimals)
            if base > debt:
                raise AmountExceedsDebt(
                    f"repay {from_base_units(base, decimals)} > debt {from_base_units(debt, decimals)} {asset}"
                )

            if base == debt:
                scaled = scaled_debt
            else:
                scaled = min(ray_div(base, reserve.variable_borrow_index), scaled_debt)
            if scaled == 0:
                raise InvalidBurnAmount(f"{asset} repayment rounds to zero debt")
            if balance_of(self.ledger, asset, caller) < base:
                raise InsufficientFunds(f"{caller} holds less than {from_base_units(base, decimals)} {asset}")

            origin = self._next_origin(caller, "REPAY", asset)
            self._execute([
                burn_move(reserve.debt_token, decimals, on_behalf_of, scaled, origin.source_id),
                transfer_move(asset, decimals, caller, reserve.liquidity_wallet, base, origin.source_id),
            ], [reserve_state_change(before, reserve)], origin)

        return from_base_units(base, decimals)

    # ========================================================================
    # READS
    # ========================================================================

    def get_reserves_list(self) -> List[str]:
        """Assets with an initialized reserve, in reserve-id order."""
        reserves = [
            unit.state for unit in self.ledger.units.values()
            if unit.unit_type == UNIT_TYPE_RESERVE
        ]
        return [state['asset'] for state in sorted(reserves, key=lambda s: s['id'])]

    def get_reserve_data(self, asset: str) -> ReserveData:
        """Stored reserve snapshot (indices as of the last accrual)."""
        self._require_reserve(asset)
        return load_reserve(self.ledger, asset)

    def get_configuration(self, asset: str) -> ReserveConfiguration:
        return self.get_reserve_data(asset).configuration

    def _projected_reserve(self, asset: str) -> ReserveData:
        # What the next operation on this reserve would see after accrual
        self._require_reserve(asset)
        _, reserve = compute_accrual(self.ledger, asset)
        return reserve

    def get_reserve_normalized_income(self, asset: str) -> int:
        """Liquidity index accrued to the current time (ray)."""
        return self._projected_reserve(asset).liquidity_index

    def get_reserve_normalized_variable_debt(self, asset: str) -> int:
        """Variable borrow index accrued to the current time (ray)."""
        return self._projected_reserve(asset).variable_borrow_index

    def get_user_account_data(self, account: str) -> AccountData:
        """Aggregate risk snapshot of `account` across all reserves."""
        return compute_account_data(self.ledger, self.get_reserves_list(), account)

    def scaled_claim_balance_of(self, asset: str, account: str) -> Decimal:
        reserve = self.get_reserve_data(asset)
        return from_base_units(
            balance_of(self.ledger, reserve.claim_token, account), reserve.configuration.decimals
        )

    def scaled_debt_balance_of(self, asset: str, account: str) -> Decimal:
        reserve = self.get_reserve_data(asset)
        return from_base_units(
            balance_of(self.ledger, reserve.debt_token, account), reserve.configuration.decimals
        )

    def claim_balance_of(self, asset: str, account: str) -> Decimal:
        """Real claim balance: scaled balance times the current liquidity index."""
        reserve = self._projected_reserve(asset)
        scaled = balance_of(self.ledger, reserve.claim_token, account)
        return from_base_units(ray_mul(scaled, reserve.liquidity_index), reserve.configuration.decimals)

    def debt_balance_of(self, asset: str, account: str) -> Decimal:
        """Real debt: scaled debt times the current variable borrow index."""
        reserve = self._projected_reserve(asset)
        scaled = balance_of(self.ledger, reserve.debt_token, account)
        return from_base_units(ray_mul(scaled, reserve.variable_borrow_index), reserve.configuration.decimals)

    def get_available_liquidity(self, asset: str) -> Decimal:
        """Underlying currently lendable from the reserve."""
        reserve = self.get_reserve_data(asset)
        return from_base_units(
            compute_available_liquidity(self.ledger, reserve), reserve.configuration.decimals
        )

    def get_total_debt(self, asset: str) -> Decimal:
        """Outstanding variable debt of the reserve at the current time."""
        reserve = self._projected_reserve(asset)
        return from_base_units(compute_total_debt(self.ledger, reserve), reserve.configuration.decimals)
