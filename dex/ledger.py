"""Asset ledger interface and an in-memory reference implementation.

The exchange core never stores asset balances itself. It moves assets
through an AssetLedger: pool custody is simply the ledger balance held by a
pair's address.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Protocol, runtime_checkable

import structlog

from dex.errors import InsufficientAllowance, InsufficientBalance
from dex.models.types import normalize_address
from dex.safe_int import S, require_uint256

logger = structlog.get_logger()


@runtime_checkable
class AssetLedger(Protocol):
    """Fungible-asset ledger the exchange depends on.

    Amounts are unsigned integers in the asset's smallest unit. Mutating
    calls return True on success; a ledger may also raise. Implementations
    may run arbitrary code during a transfer (hooks), which is why the
    router finishes all pool state changes before paying out.
    """

    def balance_of(self, asset: str, holder: str) -> int: ...

    def allowance(self, asset: str, owner: str, spender: str) -> int: ...

    def transfer(self, asset: str, sender: str, to: str, amount: int) -> bool: ...

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> bool: ...

    def transfer_from(
        self,
        asset: str,
        spender: str,
        owner: str,
        to: str,
        amount: int,
    ) -> bool: ...


class InMemoryLedger:
    """Thread-safe in-memory AssetLedger.

    Backs the HTTP service and the test-suite. Failed transfers raise typed
    errors and leave balances untouched.
    """

    def __init__(self) -> None:
        self._balances: dict[str, defaultdict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._allowances: dict[tuple[str, str, str], int] = {}
        self._mutex = threading.RLock()

    def balance_of(self, asset: str, holder: str) -> int:
        asset_norm = normalize_address(asset)
        holder_norm = normalize_address(holder)
        with self._mutex:
            return self._balances[asset_norm].get(holder_norm, 0)

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        key = (normalize_address(asset), normalize_address(owner), normalize_address(spender))
        with self._mutex:
            return self._allowances.get(key, 0)

    def credit(self, asset: str, holder: str, amount: int) -> None:
        """Create `amount` of `asset` in `holder`'s account."""
        require_uint256("amount", amount)
        asset_norm = normalize_address(asset)
        holder_norm = normalize_address(holder)
        with self._mutex:
            balances = self._balances[asset_norm]
            balances[holder_norm] = (S(balances.get(holder_norm, 0)) + amount).to_uint256()
        logger.debug("ledger_credit", asset=asset_norm[-8:], holder=holder_norm[-8:], amount=amount)

    def transfer(self, asset: str, sender: str, to: str, amount: int) -> bool:
        require_uint256("amount", amount)
        asset_norm = normalize_address(asset)
        with self._mutex:
            self._move(asset_norm, normalize_address(sender), normalize_address(to), amount)
        return True

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> bool:
        require_uint256("amount", amount)
        key = (normalize_address(asset), normalize_address(owner), normalize_address(spender))
        with self._mutex:
            self._allowances[key] = amount
        return True

    def transfer_from(
        self,
        asset: str,
        spender: str,
        owner: str,
        to: str,
        amount: int,
    ) -> bool:
        require_uint256("amount", amount)
        asset_norm = normalize_address(asset)
        owner_norm = normalize_address(owner)
        key = (asset_norm, owner_norm, normalize_address(spender))
        with self._mutex:
            allowed = self._allowances.get(key, 0)
            if allowed < amount:
                raise InsufficientAllowance(
                    f"Allowance {allowed} < {amount} for {spender} on {asset_norm}"
                )
            self._move(asset_norm, owner_norm, normalize_address(to), amount)
            self._allowances[key] = allowed - amount
        return True

    def _move(self, asset: str, sender: str, to: str, amount: int) -> None:
        balances = self._balances[asset]
        available = balances.get(sender, 0)
        if available < amount:
            raise InsufficientBalance(f"Balance {available} < {amount} for {sender} on {asset}")
        balances[sender] = available - amount
        balances[to] = balances.get(to, 0) + amount
