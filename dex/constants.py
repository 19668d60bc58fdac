"""Exchange constants.

Well-known addresses.
"""

from dex.models.types import is_valid_address


def _validate_address(name: str, address: str) -> str:
    """Validate and return an address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Account the router pulls assets as; callers approve this spender
DEFAULT_ROUTER_ADDRESS = _validate_address(
    "router", "0x00000000000000000000000000000000000a0001"
)
