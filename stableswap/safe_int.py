"""Bounded integers for the stableswap solvers.

The invariant and reserve solvers multiply reserves together n+1 times, so
their intermediates need far more room than a stored balance. ``SafeInt``
(alias ``S``) gives them 512 bits and turns every step that leaves the
range [0, 2^512) into a typed error:

    Overflow        sum or product wider than 512 bits
    Underflow       difference below zero
    DivisionByZero  // or % by zero

Results that are written back to the ledger pass through ``to_balance()``,
which enforces the 128-bit balance width.

    d = S(reserve_a) * reserve_b // total
    amount = (S(reserve) - y).to_balance()
"""

from __future__ import annotations

import functools

from stableswap.errors import DivisionByZero, Overflow, Underflow

UINT128_MAX = 2**128 - 1
UINT512_MAX = 2**512 - 1


@functools.total_ordering
class SafeInt:
    """Non-negative integer below 2^512 whose operators fail loudly.

    Plain ints are accepted on either side of every operator.
    """

    __slots__ = ("_n",)
    _n: int

    def __init__(self, value: int | SafeInt) -> None:
        """Wrap value.

        Raises:
            TypeError: value is neither int nor SafeInt (bools are refused)
            Underflow: value is negative
            Overflow: value needs more than 512 bits
        """
        if isinstance(value, SafeInt):
            self._n = value._n
            return
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        self._n = _in_range(value, repr(value))

    @classmethod
    def zero(cls) -> SafeInt:
        return cls(0)

    @property
    def value(self) -> int:
        return self._n

    def __repr__(self) -> str:
        return f"S({self._n})"

    def __str__(self) -> str:
        return str(self._n)

    def __int__(self) -> int:
        return self._n

    __index__ = __int__

    def __bool__(self) -> bool:
        return self._n != 0

    def __hash__(self) -> int:
        return hash(self._n)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt | int):
            return self._n == _raw(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._n < _raw(other)

    # Operators. The reflected forms let ``2 * S(x)`` and ``n - S(x)`` work.

    def __add__(self, other: SafeInt | int) -> SafeInt:
        rhs = _raw(other)
        return _wrap(self._n + rhs, f"{self._n} + {rhs}")

    def __radd__(self, other: int) -> SafeInt:
        return self + other

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        rhs = _raw(other)
        return _wrap(self._n * rhs, f"{self._n} * {rhs}")

    def __rmul__(self, other: int) -> SafeInt:
        return self * other

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        rhs = _raw(other)
        return _wrap(self._n - rhs, f"{self._n} - {rhs}")

    def __rsub__(self, other: int) -> SafeInt:
        return _wrap(other - self._n, f"{other} - {self._n}")

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        rhs = _nonzero(other, f"{self._n} // 0")
        return SafeInt(self._n // rhs)

    def __rfloordiv__(self, other: int) -> SafeInt:
        rhs = _nonzero(self, f"{other} // 0")
        return SafeInt(other // rhs)

    def __mod__(self, other: SafeInt | int) -> SafeInt:
        rhs = _nonzero(other, f"{self._n} % 0")
        return SafeInt(self._n % rhs)

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Division rounding up.

        Raises:
            DivisionByZero: other is zero
        """
        rhs = _nonzero(other, f"ceil({self._n} / 0)")
        return SafeInt(-(-self._n // rhs))

    def abs_diff(self, other: SafeInt | int) -> SafeInt:
        """|self - other|. Used by the solvers' convergence test."""
        return SafeInt(abs(self._n - _raw(other)))

    def min(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(min(self._n, _raw(other)))

    def max(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(max(self._n, _raw(other)))

    # Option-style variants: None instead of an exception

    def checked_sub(self, other: SafeInt | int) -> SafeInt | None:
        rhs = _raw(other)
        return SafeInt(self._n - rhs) if rhs <= self._n else None

    def checked_div(self, other: SafeInt | int) -> SafeInt | None:
        rhs = _raw(other)
        return SafeInt(self._n // rhs) if rhs else None

    # Balance width

    def is_balance(self) -> bool:
        return self._n <= UINT128_MAX

    def to_balance(self) -> int:
        """Unwrap as a 128-bit balance.

        Raises:
            Overflow: value needs more than 128 bits
        """
        if not self.is_balance():
            raise Overflow(f"{self._n} does not fit in a 128-bit balance")
        return self._n


def _raw(operand: SafeInt | int) -> int:
    return operand._n if isinstance(operand, SafeInt) else operand


def _in_range(n: int, expression: str) -> int:
    if n < 0:
        raise Underflow(f"{expression} is negative ({n})")
    if n > UINT512_MAX:
        raise Overflow(f"{expression} exceeds 512 bits")
    return n


def _wrap(n: int, expression: str) -> SafeInt:
    result = SafeInt.__new__(SafeInt)
    result._n = _in_range(n, expression)
    return result


def _nonzero(divisor: SafeInt | int, expression: str) -> int:
    raw = _raw(divisor)
    if raw == 0:
        raise DivisionByZero(f"Division by zero: {expression}")
    return raw


S = SafeInt
