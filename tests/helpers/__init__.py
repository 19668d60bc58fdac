"""Test helpers module for shared test utilities.

- constants: Asset and account addresses, times, amounts
- factories: Exchange construction and account funding
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    CAROL,
    FUTURE,
    INITIAL_BALANCE,
    NOW,
    PAST,
    TOKEN_A,
    TOKEN_B,
    TOKEN_C,
)
from tests.helpers.factories import FakeClock, fund_account, make_exchange, seed_pool

__all__ = [
    # Constants
    "TOKEN_A",
    "TOKEN_B",
    "TOKEN_C",
    "ALICE",
    "BOB",
    "CAROL",
    "NOW",
    "FUTURE",
    "PAST",
    "INITIAL_BALANCE",
    # Factories
    "FakeClock",
    "make_exchange",
    "fund_account",
    "seed_pool",
]
