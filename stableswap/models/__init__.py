"""Domain and API models for the stableswap engine."""

from stableswap.models.events import (
    BuyExecuted,
    Event,
    LiquidityAdded,
    LiquidityRemoved,
    PoolCreated,
    SellExecuted,
)
from stableswap.models.pool import (
    AssetAmount,
    AssetId,
    PoolInfo,
    PoolSnapshot,
    PoolState,
    pool_state,
)

__all__ = [
    # Pool
    "AssetId",
    "AssetAmount",
    "PoolInfo",
    "PoolSnapshot",
    "PoolState",
    "pool_state",
    # Events
    "Event",
    "PoolCreated",
    "LiquidityAdded",
    "LiquidityRemoved",
    "SellExecuted",
    "BuyExecuted",
]
