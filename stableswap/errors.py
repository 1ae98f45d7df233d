"""Stableswap error classes.

Every failure carries a stable ``code`` so callers (and the HTTP layer) can
report a named reason instead of a free-form message.

Taxonomy:
- ArithmeticFailure: a checked operation overflowed, underflowed, divided
  by zero, or a Newton iteration hit its cap
- PolicyRejection: an explicit precondition check failed (limits, minimums)
- PoolStateError: the request is inconsistent with the pool registry
- BalanceError: the caller does not hold enough assets or shares
"""


class StableswapError(Exception):
    """Base error for stableswap operations."""

    code = "stableswap_error"


# =============================================================================
# Arithmetic failures
# =============================================================================


class ArithmeticFailure(StableswapError, ArithmeticError):
    """A checked computation could not produce a valid result."""

    code = "arithmetic_failure"


class Overflow(ArithmeticFailure):
    """Value exceeds the width allowed for it."""

    code = "overflow"


class Underflow(ArithmeticFailure):
    """Subtraction would produce a negative result."""

    code = "underflow"


class DivisionByZero(ArithmeticFailure):
    """Division or modulo by zero."""

    code = "division_by_zero"


class NonConvergence(ArithmeticFailure):
    """Newton iteration did not converge within its iteration cap."""

    code = "non_convergence"


# =============================================================================
# Policy rejections
# =============================================================================


class PolicyRejection(StableswapError):
    """An explicit precondition was not met."""

    code = "policy_rejection"


class BelowMinimumTradingAmount(PolicyRejection):
    """Amount is less than the configured minimum trading amount."""

    code = "below_minimum_trading_amount"


class BelowMinimumPoolLiquidity(PolicyRejection):
    """Share balance or issuance would be left below the minimum pool liquidity."""

    code = "below_minimum_pool_liquidity"


class SlippageLimitExceeded(PolicyRejection):
    """Trade result does not satisfy the caller's limit."""

    code = "slippage_limit_exceeded"


class BuyLimitNotReached(SlippageLimitExceeded):
    """Sell trade would pay out less than the minimum requested."""

    code = "buy_limit_not_reached"


class SellLimitExceeded(SlippageLimitExceeded):
    """Buy trade would cost more than the maximum allowed."""

    code = "sell_limit_exceeded"


class InsufficientLiquidity(PolicyRejection):
    """Pool cannot cover the request without draining a reserve."""

    code = "insufficient_liquidity"


class InvalidAssetAmount(PolicyRejection):
    """Amount must be greater than zero."""

    code = "invalid_asset_amount"


class InvalidInitialLiquidity(PolicyRejection):
    """Initial liquidity must include every pool asset."""

    code = "invalid_initial_liquidity"


# =============================================================================
# State errors
# =============================================================================


class PoolStateError(StableswapError):
    """Request is inconsistent with the registered pools."""

    code = "pool_state_error"


class PoolNotFound(PoolStateError):
    """No pool is registered under the given id."""

    code = "pool_not_found"


class PoolAlreadyExists(PoolStateError):
    """A pool with the given assets already exists."""

    code = "pool_already_exists"


class AssetNotInPool(PoolStateError):
    """Asset is not one of the pool's assets."""

    code = "asset_not_in_pool"


class AssetNotRegistered(PoolStateError):
    """Asset is not known to the asset registry."""

    code = "asset_not_registered"


class DuplicateOrTooFewAssets(PoolStateError):
    """Pool asset list has duplicates or fewer than two entries."""

    code = "duplicate_or_too_few_assets"


class MaxAssetsExceeded(DuplicateOrTooFewAssets):
    """Pool asset list is longer than the configured maximum."""

    code = "max_assets_exceeded"


class SameAssets(PoolStateError):
    """Trade must involve two different assets."""

    code = "same_assets"


class InvalidAmplification(PoolStateError):
    """Amplification is outside the configured range."""

    code = "invalid_amplification"


class InvalidFee(PoolStateError):
    """Fee must be a fraction in [0, 1)."""

    code = "invalid_fee"


class PoolNotActive(PoolStateError):
    """Pool has not received liquidity for every asset."""

    code = "pool_not_active"


# =============================================================================
# Caller balance errors
# =============================================================================


class BalanceError(StableswapError):
    """Caller does not hold enough of an asset."""

    code = "balance_error"


class InsufficientBalance(BalanceError):
    """Balance of an asset is not sufficient for the operation."""

    code = "insufficient_balance"


class InsufficientShares(BalanceError):
    """Share balance is not sufficient to withdraw liquidity."""

    code = "insufficient_shares"
