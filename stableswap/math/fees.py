"""Parts-per-million fee fractions and directional fee rounding."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from stableswap.errors import InvalidFee
from stableswap.safe_int import S

PERMILL_DENOMINATOR = 1_000_000


class Rounding(Enum):
    """Direction in which a fee amount is rounded."""

    DOWN = "down"
    UP = "up"


@dataclass(frozen=True)
class Permill:
    """Fraction expressed in parts per million, restricted to [0, 1).

    Attributes:
        parts: Numerator over PERMILL_DENOMINATOR (e.g. 3_000 for 0.3%)
    """

    parts: int

    def __post_init__(self) -> None:
        if isinstance(self.parts, bool) or not isinstance(self.parts, int):
            raise InvalidFee(f"Permill parts must be int, got {type(self.parts).__name__}")
        if self.parts < 0 or self.parts >= PERMILL_DENOMINATOR:
            raise InvalidFee(f"Fee must be in range [0, 1), got {self.parts}/{PERMILL_DENOMINATOR}")

    @classmethod
    def zero(cls) -> Permill:
        return cls(0)

    @classmethod
    def from_percent(cls, percent: int) -> Permill:
        """Create from a whole percentage (e.g. 3 -> 3%)."""
        return cls(percent * (PERMILL_DENOMINATOR // 100))

    @classmethod
    def from_decimal(cls, value: Decimal | str) -> Permill:
        """Create from a decimal fraction (e.g. Decimal("0.003") -> 0.3%).

        Raises:
            InvalidFee: If value is not representable in parts per million
                or lies outside [0, 1)
        """
        scaled = Decimal(value) * PERMILL_DENOMINATOR
        if scaled != scaled.to_integral_value():
            raise InvalidFee(f"Fee {value} is not a whole number of parts per million")
        return cls(int(scaled))

    @property
    def is_zero(self) -> bool:
        return self.parts == 0

    def as_decimal(self) -> Decimal:
        return Decimal(self.parts) / PERMILL_DENOMINATOR

    def mul_floor(self, amount: int) -> int:
        """Fee share of amount, rounded down."""
        return ((S(amount) * self.parts) // PERMILL_DENOMINATOR).value

    def mul_ceil(self, amount: int) -> int:
        """Fee share of amount, rounded up."""
        return (S(amount) * self.parts).ceiling_div(PERMILL_DENOMINATOR).value

    def __str__(self) -> str:
        return f"{self.as_decimal().normalize()}"


def fee_amount(amount: int, fee: Permill, rounding: Rounding) -> int:
    """Fee charged on amount, rounded in the requested direction.

    Sell trades round down (the fee leaves the amount paid out); buy trades
    round up (the fee is added to the amount paid in). Both directions keep
    the rounding remainder in the pool.
    """
    if rounding is Rounding.DOWN:
        return fee.mul_floor(amount)
    return fee.mul_ceil(amount)
