"""Exchange error classes.

Every user-facing failure is a DexError subclass named after the
precondition it reports. InvariantViolation is kept outside that hierarchy:
it signals a defect in the engine, not bad input, and must not be swallowed
by handlers that catch DexError.
"""


class DexError(Exception):
    """Base error for exchange operations."""

    pass


class Expired(DexError):
    """Current time is past the caller-supplied deadline."""

    pass


class SlippageExceeded(DexError):
    """A computed amount fell outside the caller's declared bound."""

    pass


class IdenticalAssets(DexError):
    """A pair was requested with the same asset on both sides."""

    pass


class InvalidAsset(DexError):
    """Asset identifier is not a 20-byte hex address."""

    pass


class InvalidPath(DexError):
    """Swap path is not a single hop of two distinct assets."""

    pass


class UnknownAsset(DexError):
    """Asset does not belong to the pair."""

    pass


class InsufficientLiquidity(DexError):
    """A reserve involved in the operation is zero."""

    pass


class PairNotFound(InsufficientLiquidity):
    """No pair is registered for the requested assets."""

    pass


class InsufficientInputAmount(DexError):
    """Swap input amount is zero."""

    pass


class InsufficientOutputAmount(DexError):
    """Swap would pay out nothing."""

    pass


class InsufficientAmount(DexError):
    """Quoted amount is zero."""

    pass


class InsufficientInitialLiquidity(DexError):
    """First deposit is too small to mint any shares."""

    pass


class InsufficientLiquidityMinted(DexError):
    """Deposit is too small to mint any shares."""

    pass


class InsufficientLiquidityBurned(DexError):
    """Burn would pay out nothing on at least one side."""

    pass


class InsufficientShareBalance(DexError):
    """Holder owns fewer liquidity shares than requested."""

    pass


class InsufficientAllowance(DexError):
    """Spender is not approved for the requested amount."""

    pass


class InsufficientBalance(DexError):
    """Ledger balance is lower than the amount to move."""

    pass


class TransferFailed(DexError):
    """The asset ledger rejected a transfer."""

    pass


class Locked(DexError):
    """Pair is already inside an exclusive operation (re-entrant call)."""

    pass


class InvariantViolation(RuntimeError):
    """A core accounting invariant would be broken.

    Raised before the offending state becomes visible. Indicates a logic
    defect and should propagate to the top level.
    """

    pass
