"""
lendingledger - Collateralized Lending Ledger

A lending pool and a leverage-looping tokenized vault built on a
double-entry ledger. Reserve state, claim balances, debt balances and vault
shares are all ledger units, so every operation is one auditable transaction.

Usage:
    from decimal import Decimal
    from lendingledger import (
        Ledger, Pool, LeveragedVault, InterestRateStrategy, ReserveConfiguration,
        InterestRateMode, token, compute_issuance, ray,
    )

    ledger = Ledger("main")
    ledger.register_unit(token("USDC", "USD Coin", decimals=6))
    ledger.register_wallet("alice")
    ledger.execute(compute_issuance(ledger, "USDC", "alice", Decimal("1000000")))

    pool = Pool(ledger, admin="admin")
    strategy = InterestRateStrategy(ray("0.8"), ray("0.01"), ray("0.04"), ray("0.75"))
    config = ReserveConfiguration(ltv=8500, liquidation_threshold=9000,
                                  liquidation_bonus=500, decimals=6)
    pool.init_reserve("admin", "USDC", "aUSDC", "vdUSDC", strategy, config)

    pool.supply("alice", "USDC", Decimal("1000"), "alice")
    pool.borrow("alice", "USDC", Decimal("500"), InterestRateMode.VARIABLE, "alice")
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    InterestRateMode,
    build_transaction,
    empty_pending_transaction,
    Unit,
    UnitStateChange,
    ExecuteResult,
    mint_burn_only_transfer_rule,
    token,
    SYSTEM_WALLET,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_CLAIM_TOKEN,
    UNIT_TYPE_DEBT_TOKEN,
    UNIT_TYPE_RESERVE,
    UNIT_TYPE_VAULT_SHARE,
    # Errors
    LedgerError,
    InsufficientFunds,
    TransferRuleViolation,
    UnitNotRegistered,
    WalletNotRegistered,
    TransactionRejected,
    MathError,
    FixedPointOverflow,
    DivisionByZero,
    LendingError,
    CallerNotAdmin,
    InvalidAddress,
    ReserveAlreadyInitialized,
    ReserveNotInitialized,
    MaxReservesReached,
    ReserveInactive,
    ReserveFrozen,
    BorrowingNotEnabled,
    InvalidAmount,
    InvalidMintAmount,
    InvalidBurnAmount,
    NotEnoughAvailableUserBalance,
    AmountExceedsDebt,
    InsufficientLiquidity,
    CollateralBalanceIsZero,
    HealthFactorLowerThanLiquidationThreshold,
    InvalidInterestRateMode,
    InvalidLoopIterations,
    InsufficientVaultLiquidity,
    ExceededAllowance,
    ExceededMaxWithdraw,
    ExceededMaxRedeem,
    ReentrantCall,
)

# Ledger
from .ledger import Ledger

# Fixed-point math
from .wadray import (
    RAY, WAD, PERCENTAGE_FACTOR, SECONDS_PER_YEAR, MAX_UINT256,
    ray_mul, ray_div, wad_mul, wad_div, percent_mul, percent_div,
    ray_to_wad, wad_to_ray, ray, ray_to_decimal,
    to_base_units, from_base_units,
)

# Interest rates
from .interest_rate import InterestRates, InterestRateStrategy, calculate_utilization

# Reserves and tokens
from .units import (
    ReserveConfiguration,
    ReserveData,
    reserve_symbol,
    load_reserve,
    calculate_linear_interest,
    calculate_accrual,
    compute_accrual,
    create_claim_token,
    create_debt_token,
    create_vault_share,
    balance_of,
    total_supply_of,
    compute_issuance,
)

# Risk
from .risk import (
    AccountData,
    ReservePosition,
    HEALTH_FACTOR_LIQUIDATION_THRESHOLD,
    calculate_account_data,
    compute_account_data,
)

# Pool, vault, registry
from .pool import Pool, MAX_AMOUNT, MAX_RESERVES
from .vault import (
    LeveragedVault,
    LoopExecuted,
    Rebalanced,
    Deposit,
    Withdraw,
    PositionDetails,
    StepResult,
    calculate_ltv,
    MAX_LTV,
    REBALANCE_LTV,
    MAX_LOOP_ITERATIONS_CAP,
)
from .registry import PoolAddressesProvider

__all__ = [
    # Core
    'LedgerView', 'Move', 'Transaction', 'PendingTransaction', 'TransactionOrigin', 'OriginType',
    'InterestRateMode', 'build_transaction', 'empty_pending_transaction',
    'Unit', 'UnitStateChange', 'ExecuteResult', 'mint_burn_only_transfer_rule', 'token',
    'SYSTEM_WALLET',
    'UNIT_TYPE_TOKEN', 'UNIT_TYPE_CLAIM_TOKEN', 'UNIT_TYPE_DEBT_TOKEN',
    'UNIT_TYPE_RESERVE', 'UNIT_TYPE_VAULT_SHARE',
    # Errors
    'LedgerError', 'InsufficientFunds', 'TransferRuleViolation',
    'UnitNotRegistered', 'WalletNotRegistered', 'TransactionRejected',
    'MathError', 'FixedPointOverflow', 'DivisionByZero',
    'LendingError', 'CallerNotAdmin', 'InvalidAddress', 'ReserveAlreadyInitialized',
    'ReserveNotInitialized', 'MaxReservesReached', 'ReserveInactive', 'ReserveFrozen',
    'BorrowingNotEnabled', 'InvalidAmount', 'InvalidMintAmount', 'InvalidBurnAmount',
    'NotEnoughAvailableUserBalance', 'AmountExceedsDebt', 'InsufficientLiquidity',
    'CollateralBalanceIsZero', 'HealthFactorLowerThanLiquidationThreshold',
    'InvalidInterestRateMode', 'InvalidLoopIterations', 'InsufficientVaultLiquidity',
    'ExceededAllowance', 'ExceededMaxWithdraw', 'ExceededMaxRedeem', 'ReentrantCall',
    # Ledger
    'Ledger',
    # Fixed-point math
    'RAY', 'WAD', 'PERCENTAGE_FACTOR', 'SECONDS_PER_YEAR', 'MAX_UINT256',
    'ray_mul', 'ray_div', 'wad_mul', 'wad_div', 'percent_mul', 'percent_div',
    'ray_to_wad', 'wad_to_ray', 'ray', 'ray_to_decimal', 'to_base_units', 'from_base_units',
    # Interest rates
    'InterestRates', 'InterestRateStrategy', 'calculate_utilization',
    # Reserves and tokens
    'ReserveConfiguration', 'ReserveData', 'reserve_symbol', 'load_reserve',
    'calculate_linear_interest', 'calculate_accrual', 'compute_accrual',
    'create_claim_token', 'create_debt_token', 'create_vault_share',
    'balance_of', 'total_supply_of', 'compute_issuance',
    # Risk
    'AccountData', 'ReservePosition', 'HEALTH_FACTOR_LIQUIDATION_THRESHOLD',
    'calculate_account_data', 'compute_account_data',
    # Pool, vault, registry
    'Pool', 'MAX_AMOUNT', 'MAX_RESERVES',
    'LeveragedVault', 'LoopExecuted', 'Rebalanced', 'Deposit', 'Withdraw',
    'PositionDetails', 'StepResult', 'calculate_ltv',
    'MAX_LTV', 'REBALANCE_LTV', 'MAX_LOOP_ITERATIONS_CAP',
    'PoolAddressesProvider',
]

__version__ = '1.0.0'
