"""Constant-product pair: reserve ledger and liquidity share token.

A Pair owns the accounting for one unordered asset pair. Pricing follows the
constant product formula x * y = k with a proportional fee on the input:

    amount_out = (amount_in * fee_num * reserve_out)
                 / (reserve_in * fee_den + amount_in * fee_num)

All divisions round down, so every rounding remainder stays in the pool.

The Pair never touches the asset ledger. The router moves assets into the
pair's custody address before calling mint/swap, and pays out after
burn/swap returned.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from dex.errors import (
    InsufficientAllowance,
    InsufficientInitialLiquidity,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InsufficientShareBalance,
    InvariantViolation,
    Locked,
    UnknownAsset,
)
from dex.models.types import normalize_address
from dex.safe_int import S, require_uint256

logger = structlog.get_logger()


def get_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_numerator: int = 997,
    fee_denominator: int = 1000,
) -> int:
    """Calculate swap output using the constant product formula.

    Formula: amount_out = (in * fee_num * res_out) / (res_in * fee_den + in * fee_num)

    Args:
        amount_in: Input asset amount
        reserve_in: Reserve of input asset in pool
        reserve_out: Reserve of output asset in pool
        fee_numerator: Share of input kept after the fee (997 for 0.3%)
        fee_denominator: Fee scale (1000)

    Returns:
        Output asset amount, rounded down

    Raises:
        InsufficientInputAmount: If amount_in is zero
        InsufficientLiquidity: If either reserve is zero
    """
    require_uint256("amount_in", amount_in)
    if amount_in == 0:
        raise InsufficientInputAmount("Swap input amount is zero")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserve: in={reserve_in}, out={reserve_out}")

    amount_in_with_fee = S(amount_in) * fee_numerator
    numerator = amount_in_with_fee * reserve_out
    denominator = S(reserve_in) * fee_denominator + amount_in_with_fee

    return (numerator // denominator).to_uint256()


@dataclass(frozen=True)
class PairState:
    """Point-in-time snapshot of a pair's public state."""

    address: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    total_supply: int
    fee_numerator: int
    fee_denominator: int


@dataclass(frozen=True)
class PairCheckpoint:
    """Mutable pair state captured before a router operation, for rollback."""

    reserve0: int
    reserve1: int
    total_supply: int
    shares: dict[str, int]
    allowances: dict[tuple[str, str], int]


class Pair:
    """Reserve ledger and liquidity share issuer for one asset pair.

    Mutating operations (mint, burn, swap, share transfers) are serialized
    by a per-pair re-entrant mutex. lock() additionally marks the pair as
    inside an exclusive multi-step operation; entering it again before it
    is released raises Locked.

    Args:
        token0: Lower asset address in canonical order
        token1: Higher asset address in canonical order
        address: Custody address holding the pool's assets on the ledger
        fee_numerator: Share of input kept after the fee
        fee_denominator: Fee scale
    """

    def __init__(
        self,
        token0: str,
        token1: str,
        address: str,
        fee_numerator: int = 997,
        fee_denominator: int = 1000,
    ) -> None:
        token0 = normalize_address(token0)
        token1 = normalize_address(token1)
        if not token0 < token1:
            raise ValueError(f"Tokens not in canonical order: {token0} >= {token1}")
        if not 0 < fee_numerator < fee_denominator:
            raise ValueError(f"Invalid fee: {fee_numerator}/{fee_denominator}")

        self._token0 = token0
        self._token1 = token1
        self._address = normalize_address(address)
        self._fee_numerator = fee_numerator
        self._fee_denominator = fee_denominator

        self._reserve0 = 0
        self._reserve1 = 0
        self._total_supply = 0
        self._shares: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}

        self._mutex = threading.RLock()
        self._locked = False

    def __repr__(self) -> str:
        return (
            f"Pair(address={self._address}, token0={self._token0}, token1={self._token1}, "
            f"reserves=({self._reserve0}, {self._reserve1}), supply={self._total_supply})"
        )

    @property
    def token0(self) -> str:
        return self._token0

    @property
    def token1(self) -> str:
        return self._token1

    @property
    def address(self) -> str:
        return self._address

    @property
    def fee_numerator(self) -> int:
        return self._fee_numerator

    @property
    def fee_denominator(self) -> int:
        return self._fee_denominator

    @property
    def reserve0(self) -> int:
        return self._reserve0

    @property
    def reserve1(self) -> int:
        return self._reserve1

    @property
    def total_supply(self) -> int:
        """Total outstanding liquidity shares."""
        return self._total_supply

    # The accounting name used throughout the docs
    total_liquidity_shares = total_supply

    def get_reserves(self) -> tuple[int, int]:
        """Return (reserve0, reserve1)."""
        with self._mutex:
            return self._reserve0, self._reserve1

    def snapshot(self) -> PairState:
        with self._mutex:
            return PairState(
                address=self._address,
                token0=self._token0,
                token1=self._token1,
                reserve0=self._reserve0,
                reserve1=self._reserve1,
                total_supply=self._total_supply,
                fee_numerator=self._fee_numerator,
                fee_denominator=self._fee_denominator,
            )

    def is_token0(self, asset: str) -> bool:
        """True if asset is token0, False if token1.

        Raises:
            UnknownAsset: If asset is not in the pair
        """
        asset_norm = normalize_address(asset)
        if asset_norm == self._token0:
            return True
        if asset_norm == self._token1:
            return False
        raise UnknownAsset(f"Asset {asset} not in pair {self._address}")

    def other_token(self, asset: str) -> str:
        """Get the opposite asset of the pair."""
        return self._token1 if self.is_token0(asset) else self._token0

    def reserves_for(self, asset_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        input_is_token0 = self.is_token0(asset_in)
        with self._mutex:
            if input_is_token0:
                return self._reserve0, self._reserve1
            return self._reserve1, self._reserve0

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Price preview with this pair's fee. Never mutates state."""
        return get_amount_out(
            amount_in, reserve_in, reserve_out, self._fee_numerator, self._fee_denominator
        )

    # --- Share token ---

    def balance_of(self, holder: str) -> int:
        with self._mutex:
            return self._shares.get(normalize_address(holder), 0)

    def allowance(self, owner: str, spender: str) -> int:
        with self._mutex:
            return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Allow spender to move up to `amount` of owner's shares."""
        require_uint256("amount", amount)
        with self._mutex:
            self._allowances[(normalize_address(owner), normalize_address(spender))] = amount
        return True

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        """Move liquidity shares between holders.

        Raises:
            InsufficientShareBalance: If sender owns fewer than `amount` shares
        """
        require_uint256("amount", amount)
        with self._mutex:
            self._move_shares(normalize_address(sender), normalize_address(to), amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        """Move owner's shares on their behalf, consuming allowance.

        Raises:
            InsufficientAllowance: If spender is approved for less than `amount`
            InsufficientShareBalance: If owner owns fewer than `amount` shares
        """
        require_uint256("amount", amount)
        key = (normalize_address(owner), normalize_address(spender))
        with self._mutex:
            allowed = self._allowances.get(key, 0)
            if allowed < amount:
                raise InsufficientAllowance(
                    f"Share allowance {allowed} < {amount} for spender {spender}"
                )
            self._move_shares(key[0], normalize_address(to), amount)
            self._allowances[key] = allowed - amount
        return True

    def _move_shares(self, sender: str, to: str, amount: int) -> None:
        held = self._shares.get(sender, 0)
        if held < amount:
            raise InsufficientShareBalance(f"Share balance {held} < {amount} for {sender}")
        if sender == to:
            return
        self._commit_shares(
            {sender: held - amount, to: self._shares.get(to, 0) + amount},
            self._total_supply,
        )

    def _commit_shares(self, updates: dict[str, int], new_total: int) -> None:
        """Apply share balance updates after checking supply conservation."""
        candidate = dict(self._shares)
        for holder, balance in updates.items():
            if balance:
                candidate[holder] = S(balance).to_uint256()
            else:
                candidate.pop(holder, None)
        if sum(candidate.values()) != new_total:
            raise InvariantViolation(
                f"Share supply {new_total} != sum of balances {sum(candidate.values())}"
            )
        self._shares = candidate
        self._total_supply = S(new_total).to_uint256()

    # --- Previews ---

    def quote_mint(self, amount0: int, amount1: int) -> int:
        """Shares that mint(amount0, amount1) would issue.

        Raises:
            InsufficientInitialLiquidity: First deposit rounds to zero shares
            InsufficientLiquidityMinted: Deposit rounds to zero shares
        """
        require_uint256("amount0", amount0)
        require_uint256("amount1", amount1)
        with self._mutex:
            if self._total_supply == 0:
                shares = (S(amount0) * amount1).isqrt()
                if not shares:
                    raise InsufficientInitialLiquidity(
                        f"sqrt({amount0} * {amount1}) rounds to zero shares"
                    )
                return shares.to_uint256()

            if self._reserve0 == 0 or self._reserve1 == 0:
                raise InvariantViolation(
                    f"Pair {self._address} has supply {self._total_supply} but empty reserves"
                )
            shares0 = S(amount0) * self._total_supply // self._reserve0
            shares1 = S(amount1) * self._total_supply // self._reserve1
            shares = shares0.min(shares1)
            if not shares:
                raise InsufficientLiquidityMinted(
                    f"Deposit ({amount0}, {amount1}) rounds to zero shares"
                )
            return shares.to_uint256()

    def quote_burn(self, shares: int) -> tuple[int, int]:
        """Amounts that burning `shares` would pay out.

        Raises:
            InsufficientShareBalance: If shares exceed the total supply
            InsufficientLiquidityBurned: If either output rounds to zero
        """
        require_uint256("shares", shares)
        with self._mutex:
            if shares > self._total_supply:
                raise InsufficientShareBalance(
                    f"Cannot burn {shares} shares, total supply is {self._total_supply}"
                )
            if self._total_supply == 0:
                raise InsufficientLiquidityBurned("Pair has no liquidity")
            amount0 = (S(shares) * self._reserve0 // self._total_supply).to_uint256()
            amount1 = (S(shares) * self._reserve1 // self._total_supply).to_uint256()
            if amount0 == 0 or amount1 == 0:
                raise InsufficientLiquidityBurned(
                    f"Burning {shares} shares pays ({amount0}, {amount1})"
                )
            return amount0, amount1

    def quote_swap(self, amount_in: int, input_is_token0: bool) -> int:
        """Output that swap(amount_in, input_is_token0) would pay.

        Raises:
            InsufficientInputAmount: If amount_in is zero
            InsufficientLiquidity: If either reserve is zero
            InsufficientOutputAmount: If the output rounds to zero
        """
        with self._mutex:
            if input_is_token0:
                reserve_in, reserve_out = self._reserve0, self._reserve1
            else:
                reserve_in, reserve_out = self._reserve1, self._reserve0
            amount_out = self.get_amount_out(amount_in, reserve_in, reserve_out)
            if amount_out == 0:
                raise InsufficientOutputAmount(f"Swap of {amount_in} pays nothing")
            return amount_out

    # --- Primitives ---

    def mint(self, amount0: int, amount1: int, recipient: str) -> int:
        """Add reserves already in custody and issue liquidity shares.

        Args:
            amount0: token0 amount transferred into custody
            amount1: token1 amount transferred into custody
            recipient: Holder credited with the new shares

        Returns:
            Number of shares minted
        """
        recipient_norm = normalize_address(recipient)
        with self._mutex:
            shares = self.quote_mint(amount0, amount1)
            new_reserve0 = (S(self._reserve0) + amount0).to_uint256()
            new_reserve1 = (S(self._reserve1) + amount1).to_uint256()

            self._commit_shares(
                {recipient_norm: self._shares.get(recipient_norm, 0) + shares},
                self._total_supply + shares,
            )
            self._reserve0 = new_reserve0
            self._reserve1 = new_reserve1

        logger.debug(
            "pair_mint",
            pair=self._address[-8:],
            amount0=amount0,
            amount1=amount1,
            shares=shares,
            recipient=recipient_norm[-8:],
        )
        return shares

    def burn(self, shares: int, holder: str) -> tuple[int, int]:
        """Burn a holder's shares and release the proportional reserves.

        The released amounts leave the reserves immediately; paying them
        out of custody is the caller's job.

        Args:
            shares: Number of shares to burn
            holder: Holder whose shares are burned

        Returns:
            (amount0_out, amount1_out)
        """
        holder_norm = normalize_address(holder)
        with self._mutex:
            held = self._shares.get(holder_norm, 0)
            if shares > held:
                raise InsufficientShareBalance(
                    f"Share balance {held} < {shares} for {holder_norm}"
                )
            amount0, amount1 = self.quote_burn(shares)
            new_reserve0 = (S(self._reserve0) - amount0).to_uint256()
            new_reserve1 = (S(self._reserve1) - amount1).to_uint256()

            self._commit_shares({holder_norm: held - shares}, self._total_supply - shares)
            self._reserve0 = new_reserve0
            self._reserve1 = new_reserve1

        logger.debug(
            "pair_burn",
            pair=self._address[-8:],
            shares=shares,
            amount0=amount0,
            amount1=amount1,
            holder=holder_norm[-8:],
        )
        return amount0, amount1

    def swap(self, amount_in: int, input_is_token0: bool, recipient: str) -> int:
        """Account for an input already in custody and release the output.

        Args:
            amount_in: Input amount transferred into custody
            input_is_token0: True if the input asset is token0
            recipient: Account that will be paid the output

        Returns:
            Output amount released from the reserves

        Raises:
            InvariantViolation: If the constant product would decrease
        """
        recipient_norm = normalize_address(recipient)
        with self._mutex:
            amount_out = self.quote_swap(amount_in, input_is_token0)

            if input_is_token0:
                old_in, old_out = self._reserve0, self._reserve1
            else:
                old_in, old_out = self._reserve1, self._reserve0
            new_in = (S(old_in) + amount_in).to_uint256()
            new_out = (S(old_out) - amount_out).to_uint256()

            if S(new_in) * new_out < S(old_in) * old_out:
                raise InvariantViolation(
                    f"k decreased on {self._address}: {old_in}*{old_out} -> {new_in}*{new_out}"
                )

            if input_is_token0:
                self._reserve0, self._reserve1 = new_in, new_out
            else:
                self._reserve1, self._reserve0 = new_in, new_out

        logger.debug(
            "pair_swap",
            pair=self._address[-8:],
            amount_in=amount_in,
            amount_out=amount_out,
            zero_for_one=input_is_token0,
            recipient=recipient_norm[-8:],
        )
        return amount_out

    @contextmanager
    def lock(self) -> Iterator[Pair]:
        """Hold the pair exclusively for a multi-step operation.

        Other threads block until the section ends. Re-entering from the
        same thread (e.g. a ledger hook calling back into the router)
        raises Locked.
        """
        with self._mutex:
            if self._locked:
                raise Locked(f"Pair {self._address} is locked")
            self._locked = True
            try:
                yield self
            finally:
                self._locked = False

    def checkpoint(self) -> PairCheckpoint:
        """Capture reserves, supply, share balances and share allowances."""
        with self._mutex:
            return PairCheckpoint(
                reserve0=self._reserve0,
                reserve1=self._reserve1,
                total_supply=self._total_supply,
                shares=dict(self._shares),
                allowances=dict(self._allowances),
            )

    def restore(self, checkpoint: PairCheckpoint) -> None:
        """Roll the pair back to a checkpoint taken in the current lock() section.

        Raises:
            InvariantViolation: If called outside lock()
        """
        with self._mutex:
            if not self._locked:
                raise InvariantViolation(f"Pair {self._address} restored outside lock()")
            self._reserve0 = checkpoint.reserve0
            self._reserve1 = checkpoint.reserve1
            self._total_supply = checkpoint.total_supply
            self._shares = dict(checkpoint.shares)
            self._allowances = dict(checkpoint.allowances)

        logger.warning(
            "pair_restored",
            pair=self._address[-8:],
            reserve0=checkpoint.reserve0,
            reserve1=checkpoint.reserve1,
            total_supply=checkpoint.total_supply,
        )
