"""
registry.py - Pool Address Registry

Holds the current Pool so callers can look it up instead of keeping their
own reference. Only the owner may point it at a different pool.
"""

from __future__ import annotations
from typing import Optional

from .core import CallerNotAdmin, InvalidAddress
from .pool import Pool


class PoolAddressesProvider:
    """
    Owner-controlled pointer to the active Pool.

    Example:
        provider = PoolAddressesProvider("admin")
        provider.set_pool_impl("admin", pool)
        provider.get_pool().supply(...)
    """

    def __init__(self, owner: str):
        if not owner:
            raise InvalidAddress("owner cannot be empty")
        self.owner = owner
        self._pool: Optional[Pool] = None

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise CallerNotAdmin(f"{caller} is not the registry owner")

    def get_pool(self) -> Optional[Pool]:
        return self._pool

    def set_pool_impl(self, caller: str, pool: Pool) -> None:
        self._require_owner(caller)
        if pool is None:
            raise InvalidAddress("pool cannot be None")
        self._pool = pool
        if pool.verbose:
            print(f"📍 Pool registered with {self.owner}'s address provider")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._require_owner(caller)
        if not new_owner:
            raise InvalidAddress("new owner cannot be empty")
        self.owner = new_owner
