"""
Conservation Law Conformance Tests

INVARIANT: For every unit u, at all times:
    Σ_{w ∈ wallets ∪ {SYSTEM}} balance(w, u) = 0

Pool operations only move underlying between holders and the reserve
liquidity wallets; claim and debt tokens are minted from and burned into
SYSTEM_WALLET. Circulating underlying therefore never changes.

INVARIANT (no drift): with zero elapsed time, the real value of all scaled
claims equals net supplied underlying up to one base unit per operation.
"""

from hypothesis import given, settings, note, HealthCheck
from hypothesis import strategies as st
from decimal import Decimal, ROUND_DOWN

from lendingledger import InterestRateMode, MAX_AMOUNT, RAY, ray_mul, to_base_units
from tests.conftest import (
    ASSETS, make_ledger, make_pool, fund, advance, net_supply,
    pool_operation, apply_operation,
)


ISSUED = Decimal("1000000") * 2 + Decimal("500000")    # alice + bob + lp seed


class TestConservationProperties:

    @given(st.lists(pool_operation(), min_size=1, max_size=12))
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_double_entry_holds_for_arbitrary_operations(self, operations):
        """
        PROPERTY: every unit nets to zero across all wallets, and the
        circulating underlying equals what was issued.
        """
        pool = make_pool(fund(make_ledger()))
        applied = sum(apply_operation(pool, op) for op in operations)
        note(f"applied {applied} of {len(operations)} operations")

        ledger = pool.ledger
        check = ledger.verify_double_entry({asset: ISSUED for asset in ASSETS})
        assert check['valid'], check['discrepancies']
        for symbol in ledger.units:
            assert net_supply(ledger, symbol) == 0

    @given(st.lists(pool_operation(), min_size=1, max_size=12))
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_reserve_liquidity_matches_flows(self, operations):
        """
        PROPERTY: underlying held by a reserve's liquidity wallet equals
        everything issued minus what holders keep in their own wallets.
        """
        pool = make_pool(fund(make_ledger()))
        for op in operations:
            apply_operation(pool, op)

        ledger = pool.ledger
        for asset in ASSETS:
            held = sum(
                (ledger.get_balance(w, asset) for w in ("alice", "bob", "lp")),
                Decimal("0"),
            )
            assert pool.get_available_liquidity(asset) == ISSUED - held


class TestNoDrift:

    @given(st.lists(
        st.tuples(
            st.sampled_from(["alice", "bob"]),
            st.booleans(),
            st.decimals(min_value=Decimal("0.000001"), max_value=Decimal("50000"),
                        places=6, allow_nan=False, allow_infinity=False),
        ),
        min_size=1,
        max_size=20,
    ))
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_scaled_claims_track_net_supply(self, steps):
        """
        PROPERTY: Σ scaled × liquidity_index = supplied - withdrawn,
        within one base unit per operation, when no time passes.
        """
        pool = make_pool(fund(make_ledger()))
        # Grow the index above 1.0 first, then freeze the clock
        pool.borrow("lp", "USDC", Decimal("250000"), InterestRateMode.VARIABLE, "lp")
        advance(pool.ledger, days=200)
        pool.supply("lp", "USDC", Decimal("1"), "lp")
        index = pool.get_reserve_data("USDC").liquidity_index
        assert index > RAY

        net = 0
        operations = 0
        for wallet, is_supply, amount in steps:
            if is_supply:
                pool.supply(wallet, "USDC", amount, wallet)
                net += to_base_units(amount, 6)
            else:
                balance = pool.claim_balance_of("USDC", wallet)
                if balance == 0:
                    continue
                wanted = min(amount, balance).quantize(Decimal("0.000001"), rounding=ROUND_DOWN)
                if wanted == balance:
                    wanted = MAX_AMOUNT
                net -= to_base_units(pool.withdraw(wallet, "USDC", wanted, wallet), 6)
            operations += 1

        assert pool.get_reserve_data("USDC").liquidity_index == index
        scaled = sum(
            to_base_units(pool.scaled_claim_balance_of("USDC", w), 6) for w in ("alice", "bob")
        )
        assert abs(ray_mul(scaled, index) - net) <= operations + 1


class TestFullExit:

    @given(
        st.decimals(min_value=Decimal("1"), max_value=Decimal("500000"),
                    places=6, allow_nan=False, allow_infinity=False),
        st.integers(min_value=1, max_value=95),
        st.integers(min_value=1, max_value=1000),
    )
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_sole_supplier_exits_after_full_repay(self, supplied, percent, days):
        """
        PROPERTY: once every debt is repaid, the only supplier of a reserve
        withdraws with MAX_AMOUNT and ends with no claim, whatever rounding
        the indices picked up on the way.
        """
        pool = make_pool(fund(make_ledger()), seed=Decimal("0"))
        pool.supply("bob", "USDT", supplied, "bob")
        pool.supply("alice", "USDC", Decimal("1000000"), "alice")
        borrowed = (supplied * percent / 100).quantize(Decimal("0.000001"), rounding=ROUND_DOWN)
        pool.borrow("alice", "USDT", borrowed, InterestRateMode.VARIABLE, "alice")
        advance(pool.ledger, days=days)
        pool.repay("alice", "USDT", MAX_AMOUNT, InterestRateMode.VARIABLE, "alice")

        claim = pool.claim_balance_of("USDT", "bob")
        withdrawn = pool.withdraw("bob", "USDT", MAX_AMOUNT, "bob")
        note(f"claim {claim}, withdrawn {withdrawn}")

        assert Decimal("0") <= claim - withdrawn <= Decimal("0.00001")
        assert pool.scaled_claim_balance_of("USDT", "bob") == 0
        assert pool.get_total_debt("USDT") == 0
