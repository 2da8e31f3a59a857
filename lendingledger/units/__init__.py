"""
Units module - Reserve and token units of the lending system.

- Reserves: configuration, per-reserve state and interest accrual
- Tokens: claim, debt and vault-share units plus balance helpers

All unit factories and related functions are re-exported here for convenience.
"""

# Reserves
from .reserve import (
    ReserveConfiguration,
    ReserveData,
    reserve_symbol,
    load_reserve,
    to_state_dict,
    calculate_linear_interest,
    calculate_accrual,
    create_reserve_unit,
    reserve_state_change,
    compute_total_debt,
    compute_available_liquidity,
    compute_accrual,
)

# Tokens
from .tokens import (
    create_claim_token,
    create_debt_token,
    create_vault_share,
    token_decimals,
    balance_of,
    total_supply_of,
    mint_move,
    burn_move,
    transfer_move,
    compute_issuance,
)

__all__ = [
    # Reserves
    'ReserveConfiguration', 'ReserveData', 'reserve_symbol', 'load_reserve', 'to_state_dict',
    'calculate_linear_interest', 'calculate_accrual', 'create_reserve_unit',
    'reserve_state_change', 'compute_total_debt', 'compute_available_liquidity',
    'compute_accrual',
    # Tokens
    'create_claim_token', 'create_debt_token', 'create_vault_share', 'token_decimals',
    'balance_of', 'total_supply_of', 'mint_move', 'burn_move', 'transfer_move',
    'compute_issuance',
]
