"""
Temporal Conformance Tests

INVARIANT: liquidity_index and variable_borrow_index never decrease.

INVARIANT: a reserve's last_update_timestamp never moves backwards and
equals the ledger time after any successful operation on that reserve.

INVARIANT: reads project accrual to the current time without writing it;
the next operation stores exactly the projected indices.
"""

import pytest
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st
from decimal import Decimal

from lendingledger import InterestRateMode
from tests.conftest import (
    ASSETS, make_ledger, make_pool, fund, advance, pool_operation, apply_operation,
)


class TestIndexMonotonicity:

    @given(st.lists(pool_operation(), min_size=1, max_size=15))
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_indices_never_decrease(self, operations):
        pool = make_pool(fund(make_ledger()))
        previous = {
            asset: (pool.get_reserve_data(asset).liquidity_index,
                    pool.get_reserve_data(asset).variable_borrow_index)
            for asset in ASSETS
        }
        for op in operations:
            apply_operation(pool, op)
            for asset in ASSETS:
                reserve = pool.get_reserve_data(asset)
                liquidity, borrow = previous[asset]
                assert reserve.liquidity_index >= liquidity
                assert reserve.variable_borrow_index >= borrow
                assert pool.get_reserve_normalized_income(asset) >= reserve.liquidity_index
                assert pool.get_reserve_normalized_variable_debt(asset) >= reserve.variable_borrow_index
                previous[asset] = (reserve.liquidity_index, reserve.variable_borrow_index)

    @given(st.lists(pool_operation(), min_size=1, max_size=15))
    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_successful_operation_stamps_current_time(self, operations):
        pool = make_pool(fund(make_ledger()))
        for op in operations:
            before = pool.get_reserve_data(op[2]).last_update_timestamp
            applied = apply_operation(pool, op)
            after = pool.get_reserve_data(op[2]).last_update_timestamp
            assert after >= before
            if applied:
                assert after == pool.ledger.current_time


class TestProjection:

    @pytest.mark.parametrize("days", [1, 30, 365, 1000])
    def test_projection_matches_stored_accrual(self, days):
        pool = make_pool(fund(make_ledger()))
        pool.supply("alice", "USDC", Decimal("100000"), "alice")
        pool.borrow("alice", "USDT", Decimal("60000"), InterestRateMode.VARIABLE, "alice")
        advance(pool.ledger, days=days)
        income = pool.get_reserve_normalized_income("USDT")
        debt = pool.get_reserve_normalized_variable_debt("USDT")
        pool.supply("bob", "USDT", Decimal("1"), "bob")
        reserve = pool.get_reserve_data("USDT")
        assert reserve.liquidity_index == income
        assert reserve.variable_borrow_index == debt

    def test_reads_do_not_write(self):
        pool = make_pool(fund(make_ledger()))
        pool.supply("alice", "USDC", Decimal("100000"), "alice")
        pool.borrow("alice", "USDT", Decimal("60000"), InterestRateMode.VARIABLE, "alice")
        log_length = len(pool.ledger.transaction_log)
        stored = pool.get_reserve_data("USDT")
        advance(pool.ledger, days=90)
        pool.get_user_account_data("alice")
        pool.debt_balance_of("USDT", "alice")
        assert pool.get_reserve_data("USDT") == stored
        assert len(pool.ledger.transaction_log) == log_length
