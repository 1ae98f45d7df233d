"""Events returned by pool engine operations.

Each successful operation returns exactly one event describing what was
applied. The caller decides how to log or publish it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, TypeAlias

from stableswap.math.fees import Permill

from .pool import AssetAmount, AssetId


@dataclass(frozen=True)
class _EventBase:
    kind: ClassVar[str] = "event"

    def as_dict(self) -> dict[str, Any]:
        """Flatten into JSON-friendly primitives (fees as decimal strings)."""
        data = asdict(self)
        for key, value in list(data.items()):
            if isinstance(value, dict) and "parts" in value:
                data[key] = str(Permill(value["parts"]))
        data["kind"] = self.kind
        return data


@dataclass(frozen=True)
class PoolCreated(_EventBase):
    """A pool was created."""

    kind: ClassVar[str] = "pool_created"

    pool_id: AssetId
    assets: tuple[AssetId, ...]
    amplification: int
    trade_fee: Permill
    withdraw_fee: Permill


@dataclass(frozen=True)
class LiquidityAdded(_EventBase):
    """Liquidity was added to a pool."""

    kind: ClassVar[str] = "liquidity_added"

    pool_id: AssetId
    who: str
    shares: int
    assets: tuple[AssetAmount, ...]


@dataclass(frozen=True)
class LiquidityRemoved(_EventBase):
    """Liquidity was removed from a pool.

    ``fee`` is non-zero only for single-asset withdrawals and is denominated
    in the withdrawn asset.
    """

    kind: ClassVar[str] = "liquidity_removed"

    pool_id: AssetId
    who: str
    shares: int
    amounts: tuple[AssetAmount, ...]
    fee: int = field(default=0)


@dataclass(frozen=True)
class SellExecuted(_EventBase):
    """Sell trade executed. Fee is paid in asset_out (already subtracted from amount_out)."""

    kind: ClassVar[str] = "sell_executed"

    who: str
    pool_id: AssetId
    asset_in: AssetId
    asset_out: AssetId
    amount_in: int
    amount_out: int
    fee: int


@dataclass(frozen=True)
class BuyExecuted(_EventBase):
    """Buy trade executed. Fee is paid in asset_in (already included in amount_in)."""

    kind: ClassVar[str] = "buy_executed"

    who: str
    pool_id: AssetId
    asset_in: AssetId
    asset_out: AssetId
    amount_in: int
    amount_out: int
    fee: int


Event: TypeAlias = PoolCreated | LiquidityAdded | LiquidityRemoved | SellExecuted | BuyExecuted
