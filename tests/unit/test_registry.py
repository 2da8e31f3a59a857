"""
test_registry.py - Unit tests for PoolAddressesProvider
"""

import pytest
from decimal import Decimal

from lendingledger import PoolAddressesProvider, CallerNotAdmin, InvalidAddress
from tests.conftest import ADMIN


class TestPoolAddressesProvider:

    def test_starts_empty(self):
        assert PoolAddressesProvider(ADMIN).get_pool() is None

    def test_owner_sets_pool(self, pool):
        provider = PoolAddressesProvider(ADMIN)
        provider.set_pool_impl(ADMIN, pool)
        assert provider.get_pool() is pool
        provider.get_pool().supply("alice", "USDC", Decimal("10"), "alice")
        assert pool.claim_balance_of("USDC", "alice") == Decimal("10")

    def test_non_owner_rejected(self, pool):
        provider = PoolAddressesProvider(ADMIN)
        with pytest.raises(CallerNotAdmin):
            provider.set_pool_impl("mallory", pool)
        assert provider.get_pool() is None

    def test_none_pool_rejected(self):
        with pytest.raises(InvalidAddress):
            PoolAddressesProvider(ADMIN).set_pool_impl(ADMIN, None)

    def test_empty_owner_rejected(self):
        with pytest.raises(InvalidAddress):
            PoolAddressesProvider("")

    def test_transfer_ownership(self, pool):
        provider = PoolAddressesProvider(ADMIN)
        provider.transfer_ownership(ADMIN, "dao")
        with pytest.raises(CallerNotAdmin):
            provider.set_pool_impl(ADMIN, pool)
        provider.set_pool_impl("dao", pool)
        assert provider.get_pool() is pool
        with pytest.raises(InvalidAddress):
            provider.transfer_ownership("dao", "")
