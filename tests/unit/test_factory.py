"""Tests for the pair Factory."""

import threading

import pytest

from dex.config import ExchangeConfig
from dex.errors import IdenticalAssets, InvalidAsset
from dex.factory import Factory, compute_pair_address
from tests.helpers import TOKEN_A, TOKEN_B, TOKEN_C


@pytest.fixture
def factory() -> Factory:
    return Factory()


class TestGetOrCreatePair:
    """Tests for pair creation and lookup."""

    def test_creates_canonical_pair(self, factory):
        pair = factory.get_or_create_pair(TOKEN_B, TOKEN_A)
        assert pair.token0 == TOKEN_A
        assert pair.token1 == TOKEN_B
        assert pair.get_reserves() == (0, 0)

    def test_order_independent(self, factory):
        """(x, y) and (y, x) resolve to the same instance."""
        first = factory.get_or_create_pair(TOKEN_A, TOKEN_B)
        second = factory.get_or_create_pair(TOKEN_B, TOKEN_A)
        third = factory.get_or_create_pair(TOKEN_A, TOKEN_B)

        assert first is second
        assert first is third
        assert len(factory) == 1

    def test_case_insensitive(self, factory):
        pair = factory.get_or_create_pair("0x" + "AB" * 20, TOKEN_B)
        assert factory.get_or_create_pair(TOKEN_B, "0x" + "ab" * 20) is pair

    def test_identical_assets(self, factory):
        with pytest.raises(IdenticalAssets):
            factory.get_or_create_pair(TOKEN_A, TOKEN_A)
        with pytest.raises(IdenticalAssets):
            factory.get_or_create_pair("0x" + "ab" * 20, "0x" + "AB" * 20)
        assert len(factory) == 0

    @pytest.mark.parametrize("bad", ["", "0x1234", "not-an-address", "0x" + "zz" * 20])
    def test_invalid_asset(self, factory, bad):
        with pytest.raises(InvalidAsset):
            factory.get_or_create_pair(bad, TOKEN_B)

    def test_create_pair_alias(self, factory):
        pair = factory.create_pair(TOKEN_A, TOKEN_B)
        assert factory.get_or_create_pair(TOKEN_B, TOKEN_A) is pair

    def test_pairs_take_config_fee(self):
        factory = Factory(ExchangeConfig(fee_numerator=9975, fee_denominator=10000))
        pair = factory.create_pair(TOKEN_A, TOKEN_B)
        assert (pair.fee_numerator, pair.fee_denominator) == (9975, 10000)

    def test_concurrent_creation_yields_one_pair(self, factory):
        barrier = threading.Barrier(8)
        results = []

        def create(x, y):
            barrier.wait()
            results.append(factory.get_or_create_pair(x, y))

        orders = [(TOKEN_A, TOKEN_B), (TOKEN_B, TOKEN_A)]
        threads = [threading.Thread(target=create, args=orders[i % 2]) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(pair is results[0] for pair in results)
        assert factory.all_pairs_length == 1


class TestLookups:
    """Tests for read-only registry queries."""

    def test_get_pair_never_creates(self, factory):
        assert factory.get_pair(TOKEN_A, TOKEN_B) is None
        assert len(factory) == 0

    def test_get_pair_after_creation(self, factory):
        pair = factory.create_pair(TOKEN_A, TOKEN_B)
        assert factory.get_pair(TOKEN_B, TOKEN_A) is pair

    def test_all_pairs_in_creation_order(self, factory):
        ab = factory.create_pair(TOKEN_A, TOKEN_B)
        bc = factory.create_pair(TOKEN_C, TOKEN_B)
        ac = factory.create_pair(TOKEN_A, TOKEN_C)

        assert factory.all_pairs() == [ab, bc, ac]
        assert factory.all_pairs_length == 3

    def test_all_pairs_is_a_copy(self, factory):
        factory.create_pair(TOKEN_A, TOKEN_B)
        factory.all_pairs().clear()
        assert len(factory) == 1

    def test_pair_by_address(self, factory):
        pair = factory.create_pair(TOKEN_A, TOKEN_B)
        assert factory.pair_by_address(pair.address) is pair
        assert factory.pair_by_address("0x" + pair.address[2:].upper()) is pair
        assert factory.pair_by_address("0x" + "00" * 20) is None


class TestPairAddress:
    """Tests for deterministic custody addresses."""

    def test_deterministic(self, factory):
        pair = factory.create_pair(TOKEN_A, TOKEN_B)
        assert pair.address == compute_pair_address(TOKEN_A, TOKEN_B)
        assert Factory().create_pair(TOKEN_B, TOKEN_A).address == pair.address

    def test_distinct_per_pair(self):
        addresses = {
            compute_pair_address(TOKEN_A, TOKEN_B),
            compute_pair_address(TOKEN_A, TOKEN_C),
            compute_pair_address(TOKEN_B, TOKEN_C),
        }
        assert len(addresses) == 3

    def test_shape(self):
        address = compute_pair_address(TOKEN_A, TOKEN_B)
        assert address.startswith("0x")
        assert len(address) == 42
        assert address == address.lower()
