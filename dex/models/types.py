"""Shared type definitions for asset identifiers and amounts.

Asset identifiers are 20-byte addresses written as 0x-prefixed hex. They are
normalized to lowercase, which makes string order identical to byte order
and gives every unordered pair a single canonical (token0, token1) form.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from dex.errors import IdenticalAssets, InvalidAsset
from dex.safe_int import UINT256_MAX


def validate_uint256(value: Any) -> str:
    """Coerce an int or decimal string to a canonical uint256 string.

    Raises:
        ValueError: If value is not an integer in [0, 2^256 - 1]
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"Uint256 must be a decimal string or int, got {type(value).__name__}")
    if isinstance(value, str):
        try:
            value = int(value, 10)
        except ValueError as err:
            raise ValueError(f"Uint256 is not a decimal integer: {value!r}") from err
    if not 0 <= value <= UINT256_MAX:
        raise ValueError(f"Uint256 out of range: {value}")
    return str(value)


# Asset or account address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# 256-bit unsigned integer as decimal string (validated)
Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]


def is_valid_address(address: str) -> bool:
    """Check if a string is a 0x-prefixed 20-byte hex address."""
    if not isinstance(address, str):
        return False
    if not address.startswith(("0x", "0X")):
        return False
    if len(address) != 42:
        return False
    try:
        int(address[2:], 16)
        return True
    except ValueError:
        return False


def normalize_address(address: str) -> str:
    """Lowercase and validate an address.

    Args:
        address: Address with or without 0x prefix, any case

    Returns:
        Lowercase address with 0x prefix

    Raises:
        InvalidAsset: If the result is not a valid address
    """
    if not isinstance(address, str):
        raise InvalidAsset(f"Address must be a string, got {type(address).__name__}")
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr
    if not is_valid_address(addr):
        raise InvalidAsset(f"Invalid address: {address}")
    return addr


def sort_assets(asset_a: str, asset_b: str) -> tuple[str, str]:
    """Return the canonical (token0, token1) ordering of two assets.

    Raises:
        IdenticalAssets: If both sides name the same asset
        InvalidAsset: If either identifier is malformed
    """
    a = normalize_address(asset_a)
    b = normalize_address(asset_b)
    if a == b:
        raise IdenticalAssets(f"Pair requested with identical assets: {a}")
    return (a, b) if a < b else (b, a)
