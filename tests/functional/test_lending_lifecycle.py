"""
test_lending_lifecycle.py - End-to-end lending pool lifecycle tests

Tests complete borrower and supplier lifecycles:
- Supply, borrow, accrue a year, repay in full, withdraw in full
- Kinked rate curve observed through pool utilization
- Several suppliers sharing interest pro rata
- Reserves frozen mid-life
"""

import pytest
from decimal import Decimal

from lendingledger import (
    InterestRateMode, MAX_AMOUNT, RAY, WAD, ray, ray_mul,
    ReserveFrozen, HealthFactorLowerThanLiquidationThreshold,
)
from tests.conftest import ADMIN, make_ledger, make_pool, fund, advance, issue

VARIABLE = InterestRateMode.VARIABLE


@pytest.fixture
def market():
    """Both reserves, no seed; alice and bob funded with 1,000,000 of each."""
    return make_pool(fund(make_ledger()), seed=Decimal("0"))


class TestFullCycle:

    def test_supply_borrow_repay_withdraw(self, market):
        pool = market
        pool.supply("bob", "USDT", Decimal("100000"), "bob")
        pool.supply("alice", "USDC", Decimal("50000"), "alice")
        pool.borrow("alice", "USDT", Decimal("40000"), VARIABLE, "alice")

        advance(pool.ledger, days=365)
        owed = pool.debt_balance_of("USDT", "alice")
        earned = pool.claim_balance_of("USDT", "bob")
        assert owed > Decimal("40000")
        assert earned > Decimal("100000")

        repaid = pool.repay("alice", "USDT", MAX_AMOUNT, VARIABLE, "alice")
        assert repaid == owed
        assert pool.debt_balance_of("USDT", "alice") == 0
        assert pool.withdraw("alice", "USDC", MAX_AMOUNT, "alice") == Decimal("50000")

        withdrawn = pool.withdraw("bob", "USDT", MAX_AMOUNT, "bob")
        assert withdrawn == earned
        assert pool.claim_balance_of("USDT", "bob") == 0
        # Interest paid by alice ended up with bob, within rounding
        assert abs((withdrawn - Decimal("100000")) - (repaid - Decimal("40000"))) <= Decimal("0.000002")

    def test_year_of_interest_matches_rate_curve(self, market):
        pool = market
        pool.supply("bob", "USDT", Decimal("100000"), "bob")
        pool.supply("alice", "USDC", Decimal("100000"), "alice")
        pool.borrow("alice", "USDT", Decimal("50000"), VARIABLE, "alice")
        # Store the rates for 50% utilization
        pool.supply("bob", "USDT", Decimal("0.000001"), "bob")
        reserve = pool.get_reserve_data("USDT")
        assert abs(reserve.current_variable_borrow_rate - ray("0.035")) < ray("0.000001")

        advance(pool.ledger, days=365)
        debt_index = pool.get_reserve_normalized_variable_debt("USDT")
        assert abs(debt_index - ray("1.035")) < ray("0.000001")
        assert pool.debt_balance_of("USDT", "alice") == Decimal(
            ray_mul(50_000_000_000, debt_index)
        ) / 10**6

    def test_steep_slope_above_optimal(self, market):
        pool = market
        pool.supply("bob", "USDT", Decimal("100000"), "bob")
        pool.supply("alice", "USDC", Decimal("200000"), "alice")
        pool.borrow("alice", "USDT", Decimal("90000"), VARIABLE, "alice")
        pool.supply("bob", "USDT", Decimal("0.000001"), "bob")
        reserve = pool.get_reserve_data("USDT")
        assert abs(reserve.current_variable_borrow_rate - ray("0.425")) < ray("0.00001")
        assert abs(reserve.current_liquidity_rate - ray("0.3825")) < ray("0.00001")


class TestSharedInterest:

    def test_suppliers_earn_pro_rata(self, market):
        pool = market
        issue(pool.ledger, "USDT", "carol", "300000")
        pool.supply("bob", "USDT", Decimal("100000"), "bob")
        pool.supply("carol", "USDT", Decimal("300000"), "carol")
        pool.supply("alice", "USDC", Decimal("500000"), "alice")
        pool.borrow("alice", "USDT", Decimal("200000"), VARIABLE, "alice")

        advance(pool.ledger, days=180)
        bob_interest = pool.claim_balance_of("USDT", "bob") - Decimal("100000")
        carol_interest = pool.claim_balance_of("USDT", "carol") - Decimal("300000")
        assert bob_interest > 0
        assert abs(carol_interest - 3 * bob_interest) <= Decimal("0.000003")

    def test_late_supplier_does_not_share_past_interest(self, market):
        pool = market
        pool.supply("bob", "USDT", Decimal("100000"), "bob")
        pool.supply("alice", "USDC", Decimal("500000"), "alice")
        pool.borrow("alice", "USDT", Decimal("50000"), VARIABLE, "alice")
        advance(pool.ledger, days=365)

        issue(pool.ledger, "USDT", "carol", "100000")
        pool.supply("carol", "USDT", Decimal("100000"), "carol")
        assert abs(pool.claim_balance_of("USDT", "carol") - Decimal("100000")) <= Decimal("0.000001")
        assert pool.scaled_claim_balance_of("USDT", "carol") < Decimal("100000")
        assert pool.get_reserve_data("USDT").liquidity_index > RAY


class TestReserveControls:

    def test_frozen_reserve_lets_users_leave(self, market):
        pool = market
        pool.supply("bob", "USDT", Decimal("100000"), "bob")
        pool.supply("alice", "USDC", Decimal("100000"), "alice")
        pool.borrow("alice", "USDT", Decimal("10000"), VARIABLE, "alice")
        pool.set_reserve_freeze(ADMIN, "USDT", True)

        with pytest.raises(ReserveFrozen):
            pool.borrow("alice", "USDT", Decimal("1"), VARIABLE, "alice")
        pool.repay("alice", "USDT", MAX_AMOUNT, VARIABLE, "alice")
        assert pool.withdraw("bob", "USDT", MAX_AMOUNT, "bob") == Decimal("100000")

    def test_interest_erodes_health_until_borrowing_stops(self, market):
        pool = market
        pool.supply("bob", "USDT", Decimal("100000"), "bob")
        pool.supply("alice", "USDC", Decimal("10000"), "alice")
        pool.borrow("alice", "USDT", Decimal("8900"), VARIABLE, "alice")
        assert pool.get_user_account_data("alice").health_factor > WAD

        advance(pool.ledger, days=3 * 365)
        assert pool.get_user_account_data("alice").health_factor <= WAD
        with pytest.raises(HealthFactorLowerThanLiquidationThreshold):
            pool.borrow("alice", "USDT", Decimal("1"), VARIABLE, "alice")
