"""Mathematical core of the stableswap engine.

This package provides the pure, integer-only math of a stableswap pool:
- invariant: Newton solvers for the invariant D and a single reserve y
- swap: given-in / given-out trade amounts and fee-aware quotes
- liquidity: share minting and burning
- fees: parts-per-million fees with directional rounding

Every function raises an ArithmeticFailure subclass when a checked
operation fails. Wrap a call in checked() to get None instead.
"""

from collections.abc import Callable
from typing import ParamSpec, TypeVar

import structlog

from stableswap.errors import ArithmeticFailure

from .fees import PERMILL_DENOMINATOR, Permill, Rounding, fee_amount
from .invariant import (
    MAX_D_ITERATIONS,
    MAX_Y_ITERATIONS,
    ROUNDING_BIAS,
    calculate_ann,
    calculate_d,
    calculate_y,
)
from .liquidity import (
    add_liquidity_shares,
    calculate_withdraw_one_asset,
    remove_liquidity_amounts,
)
from .swap import (
    SwapQuote,
    calculate_in_given_out,
    calculate_out_given_in,
    calculate_y_given_in,
    calculate_y_given_out,
    quote_in_given_out,
    quote_out_given_in,
)

logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")


def checked(fn: Callable[P, R], *args: P.args, **kwargs: P.kwargs) -> R | None:
    """Call a math function, returning None on arithmetic failure.

    Policy rejections and other errors still propagate.

    Example:
        d = checked(calculate_d, [1000, 1000], 4, 1)
        if d is None:
            ...
    """
    try:
        return fn(*args, **kwargs)
    except ArithmeticFailure as err:
        logger.debug(
            "math_call_failed",
            function=getattr(fn, "__name__", repr(fn)),
            error=err.code,
            detail=str(err),
        )
        return None


__all__ = [
    # Option-style wrapper
    "checked",
    # Invariant
    "calculate_ann",
    "calculate_d",
    "calculate_y",
    "MAX_D_ITERATIONS",
    "MAX_Y_ITERATIONS",
    "ROUNDING_BIAS",
    # Swap
    "SwapQuote",
    "calculate_y_given_in",
    "calculate_y_given_out",
    "calculate_out_given_in",
    "calculate_in_given_out",
    "quote_out_given_in",
    "quote_in_given_out",
    # Liquidity
    "add_liquidity_shares",
    "remove_liquidity_amounts",
    "calculate_withdraw_one_asset",
    # Fees
    "Permill",
    "Rounding",
    "fee_amount",
    "PERMILL_DENOMINATOR",
]
