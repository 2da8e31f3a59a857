"""
test_ledger_operations.py - Unit tests for Ledger class operations

Tests:
- Ledger creation and registration
- Balance reads and time management
- Transaction execution, idempotency and rejection
- Stale unit state detection
- atomic() rollback scopes (including nesting)
- clone() independence and double-entry verification
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from lendingledger import (
    Ledger, Move, ExecuteResult, SYSTEM_WALLET,
    UnitStateChange, build_transaction, token,
    WalletNotRegistered, UnitNotRegistered,
)
from lendingledger.core import Unit, _freeze_state


def _ledger() -> Ledger:
    ledger = Ledger("test", datetime(2025, 1, 1), verbose=False)
    ledger.register_unit(token("USDC", "USD Coin", decimals=6))
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    ledger.execute(build_transaction(ledger, [
        Move(Decimal("1000"), "USDC", SYSTEM_WALLET, "alice", "fund")
    ]))
    return ledger


def _pay(ledger: Ledger, amount: str, ref: str) -> ExecuteResult:
    return ledger.execute(build_transaction(ledger, [
        Move(Decimal(amount), "USDC", "alice", "bob", ref)
    ]))


class TestLedgerCreation:

    def test_system_wallet_is_registered(self):
        ledger = Ledger("test", verbose=False)
        assert ledger.is_registered(SYSTEM_WALLET)

    def test_register_duplicate_wallet_raises(self):
        ledger = _ledger()
        with pytest.raises(ValueError):
            ledger.register_wallet("alice")

    def test_register_duplicate_unit_raises(self):
        ledger = _ledger()
        with pytest.raises(ValueError):
            ledger.register_unit(token("USDC", "again", decimals=6))

    def test_get_balance_unregistered_wallet_raises(self):
        with pytest.raises(WalletNotRegistered):
            _ledger().get_balance("carol", "USDC")

    def test_get_unit_state_unregistered_raises(self):
        with pytest.raises(UnitNotRegistered):
            _ledger().get_unit_state("DAI")


class TestTime:

    def test_advance_time(self):
        ledger = _ledger()
        ledger.advance_time(datetime(2025, 2, 1))
        assert ledger.current_time == datetime(2025, 2, 1)

    def test_advance_time_backwards_raises(self):
        ledger = _ledger()
        with pytest.raises(ValueError):
            ledger.advance_time(datetime(2024, 12, 31))


class TestExecute:

    def test_simple_transfer(self):
        ledger = _ledger()
        assert _pay(ledger, "100", "p1") == ExecuteResult.APPLIED
        assert ledger.get_balance("alice", "USDC") == Decimal("900")
        assert ledger.get_balance("bob", "USDC") == Decimal("100")

    def test_idempotency(self):
        ledger = _ledger()
        tx = build_transaction(ledger, [Move(Decimal("100"), "USDC", "alice", "bob", "p1")])
        assert ledger.execute(tx) == ExecuteResult.APPLIED
        assert ledger.execute(tx) == ExecuteResult.ALREADY_APPLIED
        assert ledger.get_balance("bob", "USDC") == Decimal("100")

    def test_overdraft_rejected(self):
        ledger = _ledger()
        assert _pay(ledger, "1000.000001", "p1") == ExecuteResult.REJECTED
        assert ledger.get_balance("alice", "USDC") == Decimal("1000")

    def test_unregistered_wallet_rejected(self):
        ledger = _ledger()
        result = ledger.execute(build_transaction(ledger, [
            Move(Decimal("1"), "USDC", "alice", "carol", "p1")
        ]))
        assert result == ExecuteResult.REJECTED

    def test_positions_and_supply(self):
        ledger = _ledger()
        _pay(ledger, "250", "p1")
        assert ledger.get_positions("USDC") == {
            "alice": Decimal("750"), "bob": Decimal("250"), SYSTEM_WALLET: Decimal("-1000"),
        }
        assert ledger.total_supply("USDC") == Decimal("1000")

    def test_transaction_log(self):
        ledger = _ledger()
        _pay(ledger, "1", "p1")
        assert len(ledger.transaction_log) == 2
        assert ledger.transaction_log[-1].sequence_number == 1


class TestStateChanges:

    def _stateful(self, ledger: Ledger) -> None:
        ledger.register_unit(Unit(
            symbol="CFG", name="Config", unit_type="RESERVE",
            _frozen_state=_freeze_state({'index': 1}),
        ))

    def test_state_change_applied(self):
        ledger = _ledger()
        self._stateful(ledger)
        result = ledger.execute(build_transaction(ledger, [], [
            UnitStateChange("CFG", {'index': 1}, {'index': 2})
        ]))
        assert result == ExecuteResult.APPLIED
        assert ledger.get_unit_state("CFG") == {'index': 2}

    def test_stale_state_rejected(self):
        ledger = _ledger()
        self._stateful(ledger)
        stale = build_transaction(ledger, [], [UnitStateChange("CFG", {'index': 1}, {'index': 3})])
        ledger.execute(build_transaction(ledger, [], [
            UnitStateChange("CFG", {'index': 1}, {'index': 2})
        ]))
        assert ledger.execute(stale) == ExecuteResult.REJECTED
        assert ledger.get_unit_state("CFG") == {'index': 2}


class TestAtomic:

    def test_commit(self):
        ledger = _ledger()
        with ledger.atomic():
            _pay(ledger, "10", "p1")
            _pay(ledger, "20", "p2")
        assert ledger.get_balance("bob", "USDC") == Decimal("30")

    def test_rollback_on_exception(self):
        ledger = _ledger()
        log_length = len(ledger.transaction_log)
        with pytest.raises(RuntimeError):
            with ledger.atomic():
                _pay(ledger, "10", "p1")
                ledger.register_wallet("carol")
                raise RuntimeError("boom")
        assert ledger.get_balance("bob", "USDC") == Decimal("0")
        assert not ledger.is_registered("carol")
        assert len(ledger.transaction_log) == log_length

    def test_rolled_back_intent_can_be_retried(self):
        ledger = _ledger()
        tx = build_transaction(ledger, [Move(Decimal("10"), "USDC", "alice", "bob", "p1")])
        with pytest.raises(RuntimeError):
            with ledger.atomic():
                ledger.execute(tx)
                raise RuntimeError("boom")
        assert ledger.execute(tx) == ExecuteResult.APPLIED

    def test_nested_scope_restores_only_itself(self):
        ledger = _ledger()
        with ledger.atomic():
            _pay(ledger, "10", "outer")
            with pytest.raises(RuntimeError):
                with ledger.atomic():
                    _pay(ledger, "20", "inner")
                    raise RuntimeError("inner failure")
        assert ledger.get_balance("bob", "USDC") == Decimal("10")
        assert ledger.get_positions("USDC")["bob"] == Decimal("10")


class TestCloneAndConservation:

    def test_clone_is_independent(self):
        ledger = _ledger()
        cloned = ledger.clone()
        _pay(cloned, "100", "p1")
        assert ledger.get_balance("bob", "USDC") == Decimal("0")
        assert cloned.get_balance("bob", "USDC") == Decimal("100")

    def test_verify_double_entry(self):
        ledger = _ledger()
        _pay(ledger, "100", "p1")
        check = ledger.verify_double_entry({"USDC": Decimal("1000")})
        assert check['valid']
        assert check['supplies']["USDC"] == Decimal("1000")

    def test_verify_double_entry_reports_wrong_supply(self):
        check = _ledger().verify_double_entry({"USDC": Decimal("5")})
        assert not check['valid']
        assert check['discrepancies'][0]['unit'] == "USDC"
