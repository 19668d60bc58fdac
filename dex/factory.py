"""Pair registry.

The Factory maps every unordered asset pair to exactly one Pair. Lookups are
order independent: (x, y) and (y, x) resolve to the same canonical
(token0, token1) key.
"""

from __future__ import annotations

import hashlib
import threading

import structlog
from eth_abi import encode  # type: ignore[attr-defined]

from dex.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig
from dex.models.types import normalize_address, sort_assets
from dex.pair import Pair

logger = structlog.get_logger()


def compute_pair_address(token0: str, token1: str) -> str:
    """Derive the deterministic custody address of a pair.

    The address is the last 20 bytes of sha256 over the ABI encoding of the
    canonical (token0, token1) tuple, so it depends only on the assets.

    Args:
        token0: Lower asset address in canonical order
        token1: Higher asset address in canonical order

    Returns:
        Lowercase 0x-prefixed address
    """
    encoded = encode(
        ["address", "address"],
        [bytes.fromhex(token0[2:]), bytes.fromhex(token1[2:])],
    )
    return "0x" + hashlib.sha256(encoded).digest()[-20:].hex()


class Factory:
    """Registry of pairs keyed by canonical asset order.

    Pair creation is serialized so concurrent callers asking for the same
    pair always receive the same instance.

    Args:
        config: Exchange config; new pairs take its fee
    """

    def __init__(self, config: ExchangeConfig | None = None) -> None:
        self.config = config if config is not None else DEFAULT_EXCHANGE_CONFIG
        self._pairs: dict[tuple[str, str], Pair] = {}
        self._pairs_by_address: dict[str, Pair] = {}
        # Creation order
        self._all_pairs: list[Pair] = []
        self._mutex = threading.Lock()

    def get_pair(self, asset_x: str, asset_y: str) -> Pair | None:
        """Look up the pair for two assets (order independent). Never creates."""
        return self._pairs.get(sort_assets(asset_x, asset_y))

    def get_or_create_pair(self, asset_x: str, asset_y: str) -> Pair:
        """Return the pair for two assets, creating it if needed.

        Raises:
            IdenticalAssets: If asset_x == asset_y
            InvalidAsset: If either identifier is malformed
        """
        key = sort_assets(asset_x, asset_y)
        pair = self._pairs.get(key)
        if pair is not None:
            return pair

        with self._mutex:
            # Another thread may have created it while we waited
            pair = self._pairs.get(key)
            if pair is not None:
                return pair

            token0, token1 = key
            pair = Pair(
                token0=token0,
                token1=token1,
                address=compute_pair_address(token0, token1),
                fee_numerator=self.config.fee_numerator,
                fee_denominator=self.config.fee_denominator,
            )
            self._pairs[key] = pair
            self._pairs_by_address[pair.address] = pair
            self._all_pairs.append(pair)

        logger.info(
            "pair_created",
            pair=pair.address[-8:],
            token0=token0[-8:],
            token1=token1[-8:],
            fee_bps=self.config.fee_bps,
            total_pairs=len(self._all_pairs),
        )
        return pair

    # Name used by deployment scripts; idempotent like get_or_create_pair
    create_pair = get_or_create_pair

    def pair_by_address(self, address: str) -> Pair | None:
        return self._pairs_by_address.get(normalize_address(address))

    def all_pairs(self) -> list[Pair]:
        """All pairs in creation order."""
        return list(self._all_pairs)

    @property
    def all_pairs_length(self) -> int:
        return len(self._all_pairs)

    def __len__(self) -> int:
        return len(self._all_pairs)
