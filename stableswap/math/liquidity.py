"""Liquidity share accounting for stableswap pools.

Shares are minted in proportion to the growth of the invariant D and burned
in proportion to the reserves they represent. Every division rounds so the
remainder stays with the pool:
- minting uses D1 - 2 (the solver's upward bias removed) and rounds down
- proportional withdrawal rounds each asset amount down
- single-asset withdrawal re-solves the reserve at a D that is rounded up
"""

from collections.abc import Sequence

import structlog

from stableswap.errors import InsufficientShares, InvalidAssetAmount
from stableswap.safe_int import S

from .fees import Permill, Rounding, fee_amount
from .invariant import (
    MAX_D_ITERATIONS,
    MAX_Y_ITERATIONS,
    ROUNDING_BIAS,
    calculate_ann,
    calculate_d,
    calculate_y,
)

logger = structlog.get_logger()


def add_liquidity_shares(
    initial_reserves: Sequence[int],
    updated_reserves: Sequence[int],
    precision: int,
    amplification: int,
    share_issuance: int,
    max_d_iterations: int = MAX_D_ITERATIONS,
) -> int:
    """Shares to mint for moving the pool from initial to updated reserves.

    Algorithm:
        1. D1 = D(updated_reserves) - 2
        2. First deposit (issuance == 0): shares = D1
        3. Otherwise D0 = D(initial_reserves) and
           shares = issuance * (D1 - D0) / D0

    Args:
        initial_reserves: Reserves before the deposit
        updated_reserves: Reserves after the deposit
        precision: Convergence tolerance
        amplification: Pool amplification A
        share_issuance: Current total share issuance
        max_d_iterations: Iteration cap for both invariant solves

    Returns:
        Amount of shares to mint

    Raises:
        Underflow: If the deposit would decrease the invariant
        ArithmeticFailure: If either invariant cannot be solved
    """
    ann = calculate_ann(amplification, len(initial_reserves))
    d1 = S(calculate_d(updated_reserves, ann, precision, max_d_iterations)) - ROUNDING_BIAS
    if share_issuance == 0:
        return d1.to_balance()

    d0 = S(calculate_d(initial_reserves, ann, precision, max_d_iterations))
    # Raises Underflow when the invariant would shrink
    d_diff = d1 - d0

    shares = (S(share_issuance) * d_diff) // d0
    return shares.to_balance()


def remove_liquidity_amounts(
    reserves: Sequence[int],
    shares: int,
    share_issuance: int,
) -> list[int]:
    """Per-asset amounts released by burning shares, rounded down.

    Proportional withdrawal keeps every reserve ratio, so no invariant solve
    is needed.

    Raises:
        InvalidAssetAmount: If shares is zero
        InsufficientShares: If shares exceeds share_issuance
        DivisionByZero: If share_issuance is zero
    """
    if shares == 0:
        raise InvalidAssetAmount("shares must be greater than zero")
    if shares > share_issuance:
        raise InsufficientShares(f"Cannot burn {shares} of {share_issuance} issued shares")

    return [((S(reserve) * shares) // share_issuance).to_balance() for reserve in reserves]


def calculate_withdraw_one_asset(
    reserves: Sequence[int],
    shares: int,
    asset_index: int,
    share_issuance: int,
    amplification: int,
    precision: int,
    withdraw_fee: Permill,
    max_d_iterations: int = MAX_D_ITERATIONS,
    max_y_iterations: int = MAX_Y_ITERATIONS,
) -> tuple[int, int]:
    """Amount of a single asset released by burning shares.

    Algorithm:
        1. D0 = D(reserves)
        2. D1 = D0 - shares * D0 / issuance (the subtracted part rounds down)
        3. y = new reserve of the asset at D1, all other reserves unchanged
        4. gross = reserve - y; fee = withdraw_fee * gross rounded up
        5. amount = gross - fee

    Args:
        reserves: Pool reserves, one per asset
        shares: Shares to burn
        asset_index: Index of the asset withdrawn
        share_issuance: Current total share issuance
        amplification: Pool amplification A
        precision: Convergence tolerance
        withdraw_fee: Fee kept by the pool
        max_d_iterations: Iteration cap for the invariant solve
        max_y_iterations: Iteration cap for the reserve solve

    Returns:
        Tuple of (amount, fee)

    Raises:
        IndexError: If asset_index is out of range
        InvalidAssetAmount: If shares is zero
        InsufficientShares: If shares exceeds share_issuance
        Underflow: If the solved reserve exceeds the current one
        ArithmeticFailure: If the curve cannot be solved
    """
    n_coins = len(reserves)
    if asset_index < 0 or asset_index >= n_coins:
        raise IndexError(f"asset_index {asset_index} out of range for {n_coins} assets")
    if shares == 0:
        raise InvalidAssetAmount("shares must be greater than zero")
    if shares > share_issuance:
        raise InsufficientShares(f"Cannot burn {shares} of {share_issuance} issued shares")

    ann = calculate_ann(amplification, n_coins)
    d0 = S(calculate_d(reserves, ann, precision, max_d_iterations))
    d1 = d0 - (S(shares) * d0) // share_issuance

    others = [r for idx, r in enumerate(reserves) if idx != asset_index]
    y = calculate_y(others, d1.value, ann, precision, max_y_iterations)

    gross = S(reserves[asset_index]) - y
    fee = fee_amount(gross.value, withdraw_fee, Rounding.UP)
    amount = gross - fee

    logger.debug(
        "withdraw_one_asset_calculated",
        asset_index=asset_index,
        shares=shares,
        amount=amount.value,
        fee=fee,
    )
    return amount.to_balance(), fee
