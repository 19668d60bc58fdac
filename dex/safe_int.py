"""Checked integer wrapper for reserve and share arithmetic.

Pool accounting must fail rather than wrap. SafeInt makes the failure
modes explicit:
- Division by zero raises DivisionByZero
- Subtraction underflow raises Underflow
- Values outside uint256 raise Uint256Overflow on to_uint256()

Usage pattern:
    from dex.safe_int import S

    def amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
        with_fee = S(amount_in) * 997
        numerator = with_fee * reserve_out
        denominator = S(reserve_in) * 1000 + with_fee
        return (numerator // denominator).to_uint256()
"""

from __future__ import annotations

import math

UINT256_MAX = 2**256 - 1


class SafeIntError(ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    pass


class DivisionByZero(SafeIntError):
    """Division by zero."""

    pass


class Underflow(SafeIntError):
    """Subtraction would produce a negative result."""

    pass


class Uint256Overflow(SafeIntError):
    """Value is negative or exceeds the uint256 maximum."""

    pass


class SafeInt:
    """Integer with checked arithmetic.

    Addition and multiplication are exact (Python integers do not wrap);
    the range is validated when the value leaves the wrapper through
    to_uint256(). Subtraction and division are checked eagerly.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            value = value._value
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"SafeInt wraps int values only, not {type(value).__name__}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"S({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _raw(other))

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Checked subtraction.

        Raises:
            Underflow: If other is larger than self
        """
        rhs = _raw(other)
        if rhs > self._value:
            raise Underflow(f"{self._value} - {rhs} is negative")
        return SafeInt(self._value - rhs)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _raw(other))

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Floor division.

        Raises:
            DivisionByZero: If other is zero
        """
        rhs = _raw(other)
        if rhs == 0:
            raise DivisionByZero(f"{self._value} // 0")
        return SafeInt(self._value // rhs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (SafeInt, int)):
            return self._value == _raw(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _raw(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _raw(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _raw(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _raw(other)

    def __bool__(self) -> bool:
        return self._value != 0

    def min(self, other: SafeInt | int) -> SafeInt:
        rhs = _raw(other)
        return SafeInt(rhs if rhs < self._value else self._value)

    def isqrt(self) -> SafeInt:
        """Floor square root.

        Raises:
            Underflow: If the value is negative
        """
        if self._value < 0:
            raise Underflow(f"isqrt of negative value {self._value}")
        return SafeInt(math.isqrt(self._value))

    def to_uint256(self) -> int:
        """Unwrap, checking that the result is a valid uint256.

        Raises:
            Uint256Overflow: If the value is negative or above UINT256_MAX
        """
        if not 0 <= self._value <= UINT256_MAX:
            raise Uint256Overflow(f"{self._value} is outside the uint256 range")
        return self._value


def _raw(x: SafeInt | int) -> int:
    return x._value if isinstance(x, SafeInt) else x


def require_uint256(name: str, value: int) -> int:
    """Validate a caller-supplied amount.

    Raises:
        TypeError: If value is not an int
        Uint256Overflow: If value is negative or exceeds 2^256-1
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if not 0 <= value <= UINT256_MAX:
        raise Uint256Overflow(f"{name} out of uint256 range: {value}")
    return value


S = SafeInt
