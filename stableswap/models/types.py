"""Shared type definitions for the HTTP request/response models."""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field, PlainSerializer

from stableswap.safe_int import UINT128_MAX


def validate_uint128(value: Any) -> int:
    """Validate that a value is a valid 128-bit unsigned balance.

    Accepts ints and decimal strings (large balances do not survive JSON
    number parsing in every client, so strings are the canonical form).

    Args:
        value: Value to validate (string or int)

    Returns:
        The balance as int

    Raises:
        ValueError: If value is not a non-negative integer within 128 bits
    """
    if isinstance(value, bool):
        raise ValueError("Uint128 must be string or int, got bool")

    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"Uint128 must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"Uint128 must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Uint128 cannot be negative: {value}")
    if int_value > UINT128_MAX:
        raise ValueError(f"Uint128 overflow: {value} > 2^128-1")
    return int_value


# 128-bit unsigned balance, serialized as a decimal string
Uint128 = Annotated[
    int,
    BeforeValidator(validate_uint128),
    PlainSerializer(str, return_type=str),
    Field(description="128-bit unsigned integer as decimal string"),
]

# Asset id (the share asset id doubles as the pool id)
AssetIdField = Annotated[int, Field(ge=0, le=2**32 - 1)]

# Fee as a decimal fraction string in [0, 1), e.g. "0.003"
FeeFraction = Annotated[str, Field(pattern=r"^(0(\.\d{1,6})?|\.\d{1,6})$")]

# Non-negative integer of any width, serialized as a decimal string. Used for
# derived values such as the invariant, which may exceed the balance width.
BigUint = Annotated[
    int,
    Field(ge=0),
    PlainSerializer(str, return_type=str),
]
