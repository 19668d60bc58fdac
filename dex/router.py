"""User-facing orchestration of pair primitives and ledger transfers.

The Router is the only component callers are expected to use directly. Each
operation is one linear sequence:

1. Validate everything that can be validated without side effects
   (deadline, path, slippage bounds against a preview, caller balances and
   allowances, pool custody for payouts).
2. Pull the caller's assets into the pair's custody.
3. Run the pair primitive, which mutates reserves and checks invariants.
4. Pay out of custody.

The whole sequence runs inside the pair's exclusive section, so a ledger
hook that calls back into the router for the same pair is rejected. If any
step after the first pull fails, payouts already made are reclaimed, the
pair is restored to its state before the operation and the pulled assets
are refunded, then the error propagates.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

import structlog

from dex.constants import DEFAULT_ROUTER_ADDRESS
from dex.errors import (
    Expired,
    InsufficientAllowance,
    InsufficientAmount,
    InsufficientBalance,
    InsufficientLiquidity,
    InsufficientShareBalance,
    InvalidPath,
    InvariantViolation,
    PairNotFound,
    SlippageExceeded,
    TransferFailed,
)
from dex.factory import Factory
from dex.ledger import AssetLedger
from dex.models.types import normalize_address
from dex.pair import Pair, PairCheckpoint, get_amount_out
from dex.safe_int import S, require_uint256

logger = structlog.get_logger()


def _system_clock() -> int:
    return int(time.time())


class Router:
    """Deadline- and slippage-protected entry points for the exchange.

    The router keeps no references to pairs; every call resolves the pair
    through the factory by its canonical key.

    Args:
        factory: Pair registry
        ledger: Asset ledger holding balances and pool custody
        address: Router account used as the spender for pulls. Callers must
            approve this address on the ledger (and on a pair's share token
            before removing liquidity).
        clock: Returns the current unix time in seconds. Defaults to the
            system clock.
    """

    def __init__(
        self,
        factory: Factory,
        ledger: AssetLedger,
        address: str = DEFAULT_ROUTER_ADDRESS,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.factory = factory
        self.ledger = ledger
        self.address = normalize_address(address)
        self._clock = clock if clock is not None else _system_clock

    # --- Pure queries ---

    def get_reserves(self, asset_a: str, asset_b: str) -> tuple[int, int]:
        """Reserves ordered as the arguments. (0, 0) when no pair exists."""
        pair = self.factory.get_pair(asset_a, asset_b)
        if pair is None:
            return 0, 0
        return pair.reserves_for(asset_a)

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Price preview with the exchange fee. Never mutates state."""
        config = self.factory.config
        return get_amount_out(
            amount_in, reserve_in, reserve_out, config.fee_numerator, config.fee_denominator
        )

    def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> list[int]:
        """Amounts along a swap path: [amount_in, amount_out].

        Raises:
            InvalidPath: If the path is not a single hop
            PairNotFound: If the assets have no pair
        """
        token_in, token_out = self._single_hop(path)
        pair = self._existing_pair(token_in, token_out)
        reserve_in, reserve_out = pair.reserves_for(token_in)
        return [amount_in, pair.get_amount_out(amount_in, reserve_in, reserve_out)]

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        """Amount of B worth `amount_a` of A at the reserve ratio (rounded down).

        Raises:
            InsufficientAmount: If amount_a is zero
            InsufficientLiquidity: If either reserve is zero
        """
        require_uint256("amount_a", amount_a)
        if amount_a == 0:
            raise InsufficientAmount("Quoted amount is zero")
        if reserve_a <= 0 or reserve_b <= 0:
            raise InsufficientLiquidity(f"Empty reserve: a={reserve_a}, b={reserve_b}")
        return (S(amount_a) * reserve_b // reserve_a).to_uint256()

    # --- Liquidity ---

    def add_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        desired_a: int,
        desired_b: int,
        min_a: int,
        min_b: int,
        recipient: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int, int]:
        """Deposit both assets at the pool ratio and mint liquidity shares.

        On an empty pool the desired amounts set the initial price. Otherwise
        one side is held fixed and the other reduced to match the current
        reserve ratio, so the depositor never overpays on either side.

        Args:
            asset_a: First asset (any order)
            asset_b: Second asset
            desired_a: Maximum amount of asset_a to deposit
            desired_b: Maximum amount of asset_b to deposit
            min_a: Minimum acceptable amount of asset_a actually used
            min_b: Minimum acceptable amount of asset_b actually used
            recipient: Holder credited with the shares
            deadline: Unix time after which the call is rejected
            sender: Account the assets are pulled from

        Returns:
            (used_a, used_b, shares)

        Raises:
            Expired: If the deadline has passed
            SlippageExceeded: If a used amount falls below its minimum
        """
        for name, value in (
            ("desired_a", desired_a),
            ("desired_b", desired_b),
            ("min_a", min_a),
            ("min_b", min_b),
        ):
            require_uint256(name, value)
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)
        self._ensure_deadline(deadline, "add_liquidity")

        pair = self.factory.get_or_create_pair(asset_a, asset_b)
        with pair.lock():
            used_a, used_b = self._liquidity_amounts(
                pair, asset_a, desired_a, desired_b, min_a, min_b
            )
            a_is_token0 = pair.is_token0(asset_a)
            amount0, amount1 = (used_a, used_b) if a_is_token0 else (used_b, used_a)
            # Fails here, before any transfer, if the deposit mints nothing
            pair.quote_mint(amount0, amount1)

            pulls = [(pair.token0, amount0), (pair.token1, amount1)]
            for asset, amount in pulls:
                self._check_can_pull(asset, sender_norm, amount)

            checkpoint = pair.checkpoint()
            self._pull_all(pulls, sender_norm, pair)
            try:
                shares = pair.mint(amount0, amount1, recipient_norm)
            except Exception:
                self._unwind(pair, checkpoint, [], recipient_norm, pulls, sender_norm)
                raise

        logger.info(
            "liquidity_added",
            pair=pair.address[-8:],
            used_a=used_a,
            used_b=used_b,
            shares=shares,
            sender=sender_norm[-8:],
            recipient=recipient_norm[-8:],
        )
        return used_a, used_b, shares

    def remove_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        shares: int,
        min_a: int,
        min_b: int,
        recipient: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Burn liquidity shares and withdraw the proportional reserves.

        The sender must have approved the router on the pair's share token.

        Args:
            asset_a: First asset (any order)
            asset_b: Second asset
            shares: Number of shares to burn
            min_a: Minimum acceptable amount of asset_a received
            min_b: Minimum acceptable amount of asset_b received
            recipient: Account paid the withdrawn assets
            deadline: Unix time after which the call is rejected
            sender: Holder of the shares

        Returns:
            (amount_a, amount_b)

        Raises:
            Expired: If the deadline has passed
            SlippageExceeded: If an output falls below its minimum
            InsufficientShareBalance: If sender holds fewer shares
        """
        require_uint256("shares", shares)
        require_uint256("min_a", min_a)
        require_uint256("min_b", min_b)
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)
        self._ensure_deadline(deadline, "remove_liquidity")

        pair = self._existing_pair(asset_a, asset_b)
        with pair.lock():
            held = pair.balance_of(sender_norm)
            if held < shares:
                raise InsufficientShareBalance(f"Share balance {held} < {shares} for {sender_norm}")
            allowed = pair.allowance(sender_norm, self.address)
            if allowed < shares:
                raise InsufficientAllowance(
                    f"Router share allowance {allowed} < {shares} for {sender_norm}"
                )

            amount0, amount1 = pair.quote_burn(shares)
            a_is_token0 = pair.is_token0(asset_a)
            amount_a, amount_b = (amount0, amount1) if a_is_token0 else (amount1, amount0)
            if amount_a < min_a or amount_b < min_b:
                logger.warning(
                    "slippage_exceeded",
                    operation="remove_liquidity",
                    amount_a=amount_a,
                    amount_b=amount_b,
                    min_a=min_a,
                    min_b=min_b,
                )
                raise SlippageExceeded(
                    f"Withdrawal ({amount_a}, {amount_b}) below minimum ({min_a}, {min_b})"
                )

            payouts = [(pair.token0, amount0), (pair.token1, amount1)]
            for asset, amount in payouts:
                self._check_custody(pair, asset, amount)

            checkpoint = pair.checkpoint()
            paid: list[tuple[str, int]] = []
            try:
                pair.transfer_from(self.address, sender_norm, pair.address, shares)
                burned = pair.burn(shares, pair.address)
                if burned != (amount0, amount1):
                    raise InvariantViolation(
                        f"Burn paid {burned}, preview was {(amount0, amount1)} on {pair.address}"
                    )
                for asset, amount in payouts:
                    self._pay(asset, pair, recipient_norm, amount)
                    paid.append((asset, amount))
            except Exception:
                # Shares go back to the sender with the rest of the pair state
                self._unwind(pair, checkpoint, paid, recipient_norm, [], sender_norm)
                raise

        logger.info(
            "liquidity_removed",
            pair=pair.address[-8:],
            shares=shares,
            amount_a=amount_a,
            amount_b=amount_b,
            sender=sender_norm[-8:],
            recipient=recipient_norm[-8:],
        )
        return amount_a, amount_b

    # --- Swaps ---

    def swap_exact_in(
        self,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        recipient: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Swap an exact input amount along a single-hop path.

        Args:
            amount_in: Exact amount of path[0] to sell
            amount_out_min: Minimum acceptable amount of path[-1]
            path: [token_in, token_out]
            recipient: Account paid the output
            deadline: Unix time after which the call is rejected
            sender: Account the input is pulled from

        Returns:
            Output amount paid to recipient

        Raises:
            Expired: If the deadline has passed
            InvalidPath: If path is not [token_in, token_out]
            SlippageExceeded: If the output falls below amount_out_min
            InsufficientLiquidity: If the pool is empty or missing
        """
        require_uint256("amount_in", amount_in)
        require_uint256("amount_out_min", amount_out_min)
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)
        self._ensure_deadline(deadline, "swap_exact_in")

        token_in, token_out = self._single_hop(path)
        pair = self._existing_pair(token_in, token_out)
        with pair.lock():
            zero_for_one = pair.is_token0(token_in)
            expected_out = pair.quote_swap(amount_in, zero_for_one)
            if expected_out < amount_out_min:
                logger.warning(
                    "slippage_exceeded",
                    operation="swap_exact_in",
                    amount_in=amount_in,
                    amount_out=expected_out,
                    amount_out_min=amount_out_min,
                )
                raise SlippageExceeded(f"Output {expected_out} below minimum {amount_out_min}")

            self._check_can_pull(token_in, sender_norm, amount_in)
            self._check_custody(pair, token_out, expected_out)

            pulls = [(token_in, amount_in)]
            checkpoint = pair.checkpoint()
            self._pull_all(pulls, sender_norm, pair)
            try:
                amount_out = pair.swap(amount_in, zero_for_one, recipient_norm)
                self._pay(token_out, pair, recipient_norm, amount_out)
            except Exception:
                self._unwind(pair, checkpoint, [], recipient_norm, pulls, sender_norm)
                raise

        logger.info(
            "swap_executed",
            pair=pair.address[-8:],
            token_in=token_in[-8:],
            token_out=token_out[-8:],
            amount_in=amount_in,
            amount_out=amount_out,
            sender=sender_norm[-8:],
            recipient=recipient_norm[-8:],
        )
        return amount_out

    # --- Helpers ---

    def _ensure_deadline(self, deadline: int, operation: str) -> None:
        now = self._clock()
        if now > deadline:
            logger.warning("deadline_expired", operation=operation, deadline=deadline, now=now)
            raise Expired(f"{operation}: deadline {deadline} is before current time {now}")

    def _single_hop(self, path: Sequence[str]) -> tuple[str, str]:
        if len(path) != 2:
            raise InvalidPath(f"Only single-hop paths are supported, got {len(path)} assets")
        token_in = normalize_address(path[0])
        token_out = normalize_address(path[1])
        if token_in == token_out:
            raise InvalidPath(f"Path swaps {token_in} for itself")
        return token_in, token_out

    def _existing_pair(self, asset_a: str, asset_b: str) -> Pair:
        pair = self.factory.get_pair(asset_a, asset_b)
        if pair is None:
            raise PairNotFound(f"No pair for {asset_a} / {asset_b}")
        return pair

    def _liquidity_amounts(
        self,
        pair: Pair,
        asset_a: str,
        desired_a: int,
        desired_b: int,
        min_a: int,
        min_b: int,
    ) -> tuple[int, int]:
        reserve_a, reserve_b = pair.reserves_for(asset_a)
        if reserve_a == 0 and reserve_b == 0:
            used_a, used_b = desired_a, desired_b
        else:
            optimal_b = self.quote(desired_a, reserve_a, reserve_b)
            if optimal_b <= desired_b:
                used_a, used_b = desired_a, optimal_b
            else:
                optimal_a = self.quote(desired_b, reserve_b, reserve_a)
                # optimal_b > desired_b implies optimal_a <= desired_a
                if optimal_a > desired_a:
                    raise InvariantViolation(
                        f"Optimal amount {optimal_a} exceeds desired {desired_a}"
                    )
                used_a, used_b = optimal_a, desired_b

        if used_a < min_a or used_b < min_b:
            logger.warning(
                "slippage_exceeded",
                operation="add_liquidity",
                used_a=used_a,
                used_b=used_b,
                min_a=min_a,
                min_b=min_b,
            )
            raise SlippageExceeded(
                f"Deposit ({used_a}, {used_b}) below minimum ({min_a}, {min_b})"
            )
        return used_a, used_b

    def _check_can_pull(self, asset: str, owner: str, amount: int) -> None:
        balance = self.ledger.balance_of(asset, owner)
        if balance < amount:
            raise InsufficientBalance(f"Balance {balance} < {amount} for {owner} on {asset}")
        allowed = self.ledger.allowance(asset, owner, self.address)
        if allowed < amount:
            raise InsufficientAllowance(
                f"Router allowance {allowed} < {amount} for {owner} on {asset}"
            )

    def _check_custody(self, pair: Pair, asset: str, amount: int) -> None:
        held = self.ledger.balance_of(asset, pair.address)
        if held < amount:
            raise InvariantViolation(
                f"Pair {pair.address} custody {held} < {amount} of {asset}"
            )

    def _pull_all(self, pulls: list[tuple[str, int]], owner: str, pair: Pair) -> None:
        """Pull every (asset, amount) into custody, undoing earlier pulls on failure."""
        done: list[tuple[str, int]] = []
        for asset, amount in pulls:
            try:
                ok = self.ledger.transfer_from(asset, self.address, owner, pair.address, amount)
            except Exception:
                self._return_all(done, pair.address, owner, "pull_refunded")
                raise
            if not ok:
                self._return_all(done, pair.address, owner, "pull_refunded")
                raise TransferFailed(f"Ledger rejected pull of {amount} {asset} from {owner}")
            done.append((asset, amount))

    def _unwind(
        self,
        pair: Pair,
        checkpoint: PairCheckpoint,
        paid: list[tuple[str, int]],
        recipient: str,
        pulls: list[tuple[str, int]],
        owner: str,
    ) -> None:
        """Undo a failed operation: reclaim payouts, restore the pair, refund pulls.

        Runs while the caller's error is in flight, so ledger failures here
        are logged and skipped rather than raised over it.
        """
        self._return_all(paid, recipient, pair.address, "payout_reclaimed")
        pair.restore(checkpoint)
        self._return_all(pulls, pair.address, owner, "pull_refunded")

    def _return_all(
        self, moves: list[tuple[str, int]], source: str, dest: str, event: str
    ) -> None:
        for asset, amount in reversed(moves):
            if not amount:
                continue
            try:
                ok = self.ledger.transfer(asset, source, dest, amount)
            except Exception as exc:
                logger.error(
                    "unwind_transfer_failed",
                    asset=asset[-8:],
                    amount=amount,
                    source=source[-8:],
                    dest=dest[-8:],
                    error=f"{type(exc).__name__}: {exc}",
                )
                continue
            if not ok:
                logger.error(
                    "unwind_transfer_failed",
                    asset=asset[-8:],
                    amount=amount,
                    source=source[-8:],
                    dest=dest[-8:],
                    error="rejected",
                )
                continue
            logger.warning(event, asset=asset[-8:], amount=amount, dest=dest[-8:])

    def _pay(self, asset: str, pair: Pair, recipient: str, amount: int) -> None:
        if not self.ledger.transfer(asset, pair.address, recipient, amount):
            raise TransferFailed(f"Ledger rejected payout of {amount} {asset} to {recipient}")
