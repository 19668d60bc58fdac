"""Pytest configuration and fixtures."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from dex.api.endpoints import get_exchange
from dex.api.main import app
from dex.config import ExchangeConfig
from dex.exchange import Exchange
from dex.pair import Pair
from tests.helpers import TOKEN_A, TOKEN_B, FakeClock, make_exchange


@pytest.fixture
def clock() -> FakeClock:
    """Settable clock shared by the exchange under test."""
    return FakeClock()


@pytest.fixture
def exchange(clock: FakeClock) -> Exchange:
    """Fresh exchange on an in-memory ledger with the default 0.3% fee."""
    return make_exchange(clock=clock)


@pytest.fixture
def faucet_exchange(clock: FakeClock) -> Exchange:
    """Fresh exchange with the ledger faucet enabled."""
    return make_exchange(config=ExchangeConfig(enable_faucet=True), clock=clock)


@pytest.fixture
def pair() -> Pair:
    """Standalone empty TOKEN_A/TOKEN_B pair with the default fee."""
    return Pair(token0=TOKEN_A, token1=TOKEN_B, address="0x" + "99" * 20)


@pytest.fixture
def client(faucet_exchange: Exchange) -> Iterator[TestClient]:
    """Test client serving a fresh exchange."""
    app.dependency_overrides[get_exchange] = lambda: faucet_exchange
    yield TestClient(app)
    app.dependency_overrides.clear()
