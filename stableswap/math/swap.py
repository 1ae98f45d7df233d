"""Stableswap trade math and quoting.

Given-in (sell): the input reserve grows by amount_in, the output reserve
is re-solved at constant D, and the difference is paid out.
Given-out (buy): the output reserve shrinks by amount_out, the input
reserve is re-solved at constant D, and the difference is paid in.

The quote functions add the trade fee on top of the raw curve amounts:
- Sell: fee is taken from the outgoing amount, rounded down
- Buy: fee is added to the incoming amount, rounded up
"""

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from stableswap.errors import (
    BelowMinimumTradingAmount,
    InsufficientLiquidity,
    InvalidAssetAmount,
    SameAssets,
)
from stableswap.safe_int import S

from .fees import Permill, Rounding, fee_amount
from .invariant import (
    MAX_D_ITERATIONS,
    MAX_Y_ITERATIONS,
    calculate_ann,
    calculate_d,
    calculate_y,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class SwapQuote:
    """Result of quoting a trade.

    Attributes:
        amount_in: Amount paid into the pool (fee included for buys)
        amount_out: Amount paid out of the pool (fee excluded for sells)
        fee: Fee amount, denominated in the outgoing asset for sells and
            in the incoming asset for buys
    """

    amount_in: int
    amount_out: int
    fee: int


# =============================================================================
# Two-asset reduction
# =============================================================================


def calculate_y_given_in(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    ann: int,
    precision: int,
    max_d_iterations: int = MAX_D_ITERATIONS,
    max_y_iterations: int = MAX_Y_ITERATIONS,
) -> int:
    """New output reserve after selling amount_in into a two-asset pool.

    Raises:
        ArithmeticFailure: If the invariant or reserve cannot be solved
    """
    d = calculate_d([reserve_in, reserve_out], ann, precision, max_d_iterations)
    new_reserve_in = S(reserve_in) + amount_in
    return calculate_y([new_reserve_in.value], d, ann, precision, max_y_iterations)


def calculate_y_given_out(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    ann: int,
    precision: int,
    max_d_iterations: int = MAX_D_ITERATIONS,
    max_y_iterations: int = MAX_Y_ITERATIONS,
) -> int:
    """New input reserve after buying amount_out from a two-asset pool.

    Raises:
        InsufficientLiquidity: If amount_out >= reserve_out
        ArithmeticFailure: If the invariant or reserve cannot be solved
    """
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"amount_out {amount_out} must be less than reserve_out {reserve_out}")
    d = calculate_d([reserve_in, reserve_out], ann, precision, max_d_iterations)
    new_reserve_out = S(reserve_out) - amount_out
    return calculate_y([new_reserve_out.value], d, ann, precision, max_y_iterations)


# =============================================================================
# N-asset pools
# =============================================================================


def _validate_indices(reserves: Sequence[int], index_in: int, index_out: int) -> None:
    n_coins = len(reserves)
    if index_in < 0 or index_in >= n_coins:
        raise IndexError(f"index_in {index_in} out of range for {n_coins} assets")
    if index_out < 0 or index_out >= n_coins:
        raise IndexError(f"index_out {index_out} out of range for {n_coins} assets")
    if index_in == index_out:
        raise SameAssets("Cannot swap asset with itself")


def calculate_out_given_in(
    reserves: Sequence[int],
    index_in: int,
    index_out: int,
    amount_in: int,
    amplification: int,
    precision: int,
    max_d_iterations: int = MAX_D_ITERATIONS,
    max_y_iterations: int = MAX_Y_ITERATIONS,
) -> int:
    """Gross amount paid out for selling amount_in (before fee).

    Args:
        reserves: Pool reserves, one per asset
        index_in: Index of the asset sold to the pool
        index_out: Index of the asset bought from the pool
        amount_in: Amount sold
        amplification: Pool amplification A (Ann is derived from it)
        precision: Convergence tolerance
        max_d_iterations: Iteration cap for the invariant solve
        max_y_iterations: Iteration cap for the reserve solve

    Returns:
        Amount of the output asset leaving the pool

    Raises:
        SameAssets: If index_in == index_out
        IndexError: If an index is out of range
        Underflow: If the solved output reserve exceeds the current one
        ArithmeticFailure: If the invariant or reserve cannot be solved
    """
    _validate_indices(reserves, index_in, index_out)
    ann = calculate_ann(amplification, len(reserves))
    d = calculate_d(reserves, ann, precision, max_d_iterations)

    others = [
        (S(r) + amount_in).value if idx == index_in else r
        for idx, r in enumerate(reserves)
        if idx != index_out
    ]
    new_reserve_out = calculate_y(others, d, ann, precision, max_y_iterations)
    return (S(reserves[index_out]) - new_reserve_out).value


def calculate_in_given_out(
    reserves: Sequence[int],
    index_in: int,
    index_out: int,
    amount_out: int,
    amplification: int,
    precision: int,
    max_d_iterations: int = MAX_D_ITERATIONS,
    max_y_iterations: int = MAX_Y_ITERATIONS,
) -> int:
    """Net amount that must be paid in to buy amount_out (before fee).

    Raises:
        SameAssets: If index_in == index_out
        IndexError: If an index is out of range
        InsufficientLiquidity: If amount_out >= reserves[index_out]
        Underflow: If the solved input reserve is below the current one
        ArithmeticFailure: If the invariant or reserve cannot be solved
    """
    _validate_indices(reserves, index_in, index_out)
    if amount_out >= reserves[index_out]:
        raise InsufficientLiquidity(
            f"amount_out {amount_out} must be less than reserve {reserves[index_out]}"
        )
    ann = calculate_ann(amplification, len(reserves))
    d = calculate_d(reserves, ann, precision, max_d_iterations)

    others = [
        (S(r) - amount_out).value if idx == index_out else r
        for idx, r in enumerate(reserves)
        if idx != index_in
    ]
    new_reserve_in = calculate_y(others, d, ann, precision, max_y_iterations)
    return (S(new_reserve_in) - reserves[index_in]).value


# =============================================================================
# Quoting
# =============================================================================


def quote_out_given_in(
    reserves: Sequence[int],
    index_in: int,
    index_out: int,
    amount_in: int,
    amplification: int,
    precision: int,
    fee: Permill,
    min_trading_limit: int = 0,
    max_d_iterations: int = MAX_D_ITERATIONS,
    max_y_iterations: int = MAX_Y_ITERATIONS,
) -> SwapQuote:
    """Quote a sell: amount paid out for amount_in, net of the trade fee.

    Raises:
        BelowMinimumTradingAmount: If amount_in or the resulting amount_out
            is below min_trading_limit
        InsufficientLiquidity: If the pool would pay out its whole reserve
        InvalidAssetAmount: If amount_in is zero
        ArithmeticFailure: If the curve cannot be solved
    """
    if amount_in == 0:
        raise InvalidAssetAmount("amount_in must be greater than zero")
    if amount_in < min_trading_limit:
        raise BelowMinimumTradingAmount(f"amount_in {amount_in} is below minimum {min_trading_limit}")

    gross = calculate_out_given_in(
        reserves,
        index_in,
        index_out,
        amount_in,
        amplification,
        precision,
        max_d_iterations,
        max_y_iterations,
    )
    fee_out = fee_amount(gross, fee, Rounding.DOWN)
    amount_out = (S(gross) - fee_out).value

    if gross >= reserves[index_out]:
        raise InsufficientLiquidity(f"Pool cannot pay out {gross} of reserve {reserves[index_out]}")
    if amount_out < min_trading_limit or amount_out == 0:
        raise BelowMinimumTradingAmount(f"amount_out {amount_out} is below minimum {min_trading_limit}")

    logger.debug(
        "quoted_out_given_in",
        amount_in=amount_in,
        amount_out=amount_out,
        fee=fee_out,
    )
    return SwapQuote(amount_in=amount_in, amount_out=amount_out, fee=fee_out)


def quote_in_given_out(
    reserves: Sequence[int],
    index_in: int,
    index_out: int,
    amount_out: int,
    amplification: int,
    precision: int,
    fee: Permill,
    min_trading_limit: int = 0,
    max_d_iterations: int = MAX_D_ITERATIONS,
    max_y_iterations: int = MAX_Y_ITERATIONS,
) -> SwapQuote:
    """Quote a buy: amount that must be paid in for amount_out, fee included.

    Raises:
        BelowMinimumTradingAmount: If amount_out or the resulting amount_in
            is below min_trading_limit
        InsufficientLiquidity: If amount_out would drain the output reserve
        InvalidAssetAmount: If amount_out is zero
        ArithmeticFailure: If the curve cannot be solved
    """
    if amount_out == 0:
        raise InvalidAssetAmount("amount_out must be greater than zero")
    if amount_out < min_trading_limit:
        raise BelowMinimumTradingAmount(f"amount_out {amount_out} is below minimum {min_trading_limit}")

    net = calculate_in_given_out(
        reserves,
        index_in,
        index_out,
        amount_out,
        amplification,
        precision,
        max_d_iterations,
        max_y_iterations,
    )
    fee_in = fee_amount(net, fee, Rounding.UP)
    amount_in = (S(net) + fee_in).to_balance()

    if amount_in < min_trading_limit or amount_in == 0:
        raise BelowMinimumTradingAmount(f"amount_in {amount_in} is below minimum {min_trading_limit}")

    logger.debug(
        "quoted_in_given_out",
        amount_out=amount_out,
        amount_in=amount_in,
        fee=fee_in,
    )
    return SwapQuote(amount_in=amount_in, amount_out=amount_out, fee=fee_in)
