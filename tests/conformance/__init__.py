"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending ledger.

The tests are organized by invariant:
1. conservation.py - Double-entry accounting and no-drift scaled balances
2. atomicity.py - All-or-nothing pool and vault calls
3. idempotency.py - Duplicate execution handling
4. determinism.py - Reproducible behavior
5. temporal.py - Index monotonicity and accrual projection
6. leverage.py - Loop bounds and vault share accounting

These tests use hypothesis for property-based testing.
"""
