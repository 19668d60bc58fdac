"""Constant-product AMM exchange engine."""

__version__ = "0.1.0"

from dex.exchange import Exchange, build_exchange  # noqa: E402
from dex.factory import Factory  # noqa: E402
from dex.ledger import AssetLedger, InMemoryLedger  # noqa: E402
from dex.pair import Pair, get_amount_out  # noqa: E402
from dex.router import Router  # noqa: E402

__all__ = [
    "AssetLedger",
    "Exchange",
    "Factory",
    "InMemoryLedger",
    "Pair",
    "Router",
    "build_exchange",
    "get_amount_out",
    "__version__",
]
