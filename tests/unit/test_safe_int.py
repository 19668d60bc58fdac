"""Tests for SafeInt checked arithmetic."""

import pytest

from dex.safe_int import (
    UINT256_MAX,
    DivisionByZero,
    S,
    SafeInt,
    SafeIntError,
    Uint256Overflow,
    Underflow,
    require_uint256,
)


class TestSafeIntConstruction:
    """Tests for SafeInt construction."""

    def test_from_int(self):
        assert SafeInt(42).value == 42

    def test_from_safeint(self):
        assert SafeInt(SafeInt(42)).value == 42

    def test_negative_held_until_conversion(self):
        """Negative values are allowed inside; to_uint256 rejects them."""
        s = SafeInt(-10)
        assert s.value == -10
        with pytest.raises(Uint256Overflow):
            s.to_uint256()

    def test_invalid_types_raise(self):
        with pytest.raises(TypeError):
            SafeInt("42")  # type: ignore
        with pytest.raises(TypeError):
            SafeInt(3.14)  # type: ignore
        with pytest.raises(TypeError):
            SafeInt(True)

    def test_alias_s(self):
        assert S is SafeInt


class TestSafeIntArithmetic:
    """Tests for checked operators."""

    def test_add_and_mul(self):
        assert (S(2) + 3) * 4 == 20
        assert S(2) * S(5) + S(1) == 11

    def test_sub(self):
        assert S(10) - 3 == 7
        assert S(10) - S(10) == 0

    def test_sub_underflow(self):
        with pytest.raises(Underflow):
            S(3) - 10
        with pytest.raises(Underflow):
            S(3) - S(4)

    def test_floordiv_rounds_down(self):
        assert S(7) // 2 == 3
        assert S(997_000_000) // 10_099_700 == 98

    def test_floordiv_by_zero(self):
        with pytest.raises(DivisionByZero):
            S(7) // 0

    def test_errors_share_base(self):
        assert issubclass(Underflow, SafeIntError)
        assert issubclass(DivisionByZero, SafeIntError)
        assert issubclass(Uint256Overflow, ArithmeticError)

    def test_comparisons(self):
        assert S(1) < 2
        assert S(2) <= S(2)
        assert S(3) > S(2)
        assert S(3) >= 3
        assert S(3) != 4
        assert S(3) == S(3)

    def test_bool(self):
        assert not S(0)
        assert S(1)

    def test_min(self):
        assert S(5).min(3) == 3
        assert S(2).min(S(9)) == 2

    @pytest.mark.parametrize(
        "value,expected",
        [(0, 0), (1, 1), (3, 1), (4, 2), (10, 3), (1_000_000, 1000), (10**36, 10**18)],
    )
    def test_isqrt(self, value, expected):
        assert S(value).isqrt() == expected

    def test_isqrt_negative(self):
        with pytest.raises(Underflow):
            S(-1).isqrt()


class TestUint256Bounds:
    """Tests for the uint256 boundary."""

    def test_max_is_valid(self):
        assert S(UINT256_MAX).to_uint256() == UINT256_MAX

    def test_overflow(self):
        with pytest.raises(Uint256Overflow):
            (S(UINT256_MAX) + 1).to_uint256()

    def test_intermediate_products_may_exceed(self):
        """Only the final value has to fit."""
        product = S(UINT256_MAX) * 4
        assert (product // 8).to_uint256() == UINT256_MAX // 2


class TestRequireUint256:
    """Tests for caller-supplied amount validation."""

    def test_accepts_range(self):
        assert require_uint256("amount", 0) == 0
        assert require_uint256("amount", UINT256_MAX) == UINT256_MAX

    def test_rejects_out_of_range(self):
        with pytest.raises(Uint256Overflow, match="amount"):
            require_uint256("amount", -1)
        with pytest.raises(Uint256Overflow):
            require_uint256("amount", UINT256_MAX + 1)

    @pytest.mark.parametrize("value", ["100", 1.0, True, None])
    def test_rejects_non_int(self, value):
        with pytest.raises(TypeError):
            require_uint256("amount", value)
