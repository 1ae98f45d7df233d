"""Pool dataclasses.

Data structures describing a pool's configuration and a read-only view of
its current reserves.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from stableswap.math.fees import Permill
from stableswap.math.invariant import calculate_ann

# Asset identifiers (the share asset id doubles as the pool id)
AssetId = int


class PoolState(str, Enum):
    """Lifecycle state of a pool, derived from reserves and share issuance."""

    UNINITIALIZED = "uninitialized"
    SEEDING = "seeding"
    ACTIVE = "active"


def pool_state(reserves: Sequence[int], share_issuance: int) -> PoolState:
    """Derive the lifecycle state from reserves and issuance.

    - UNINITIALIZED: no reserve funded and no shares issued
    - ACTIVE: every reserve funded and shares outstanding
    - SEEDING: anything in between
    """
    funded = sum(1 for r in reserves if r > 0)
    if funded == 0 and share_issuance == 0:
        return PoolState.UNINITIALIZED
    if funded == len(reserves) and share_issuance > 0:
        return PoolState.ACTIVE
    return PoolState.SEEDING


@dataclass(frozen=True)
class AssetAmount:
    """An amount of one asset (deposit entry or withdrawal result)."""

    asset_id: AssetId
    amount: int


@dataclass(frozen=True)
class PoolInfo:
    """Stableswap pool configuration.

    Attributes:
        assets: Pool assets, sorted ascending, no duplicates
        amplification: Amplification parameter A
        trade_fee: Fee applied to sell/buy trades
        withdraw_fee: Fee applied to single-asset withdrawals
    """

    assets: tuple[AssetId, ...]
    amplification: int
    trade_fee: Permill
    withdraw_fee: Permill

    @property
    def asset_count(self) -> int:
        return len(self.assets)

    @property
    def ann(self) -> int:
        """Amplification coefficient A * n^n."""
        return calculate_ann(self.amplification, self.asset_count)

    def find_asset(self, asset: AssetId) -> int | None:
        """Index of asset in the pool, or None."""
        try:
            return self.assets.index(asset)
        except ValueError:
            return None

    def is_valid(self) -> bool:
        """True if the asset list has at least two entries and no duplicates."""
        return len(self.assets) >= 2 and len(set(self.assets)) == len(self.assets)


@dataclass(frozen=True)
class PoolSnapshot:
    """Read-only view of a pool at a point in time.

    Attributes:
        pool_id: Pool (and share asset) id
        info: Pool configuration
        reserves: Reserve per asset, in the order of info.assets
        share_issuance: Total shares outstanding
        invariant: Invariant D of the reserves, None while only some
            reserves are funded
        state: Lifecycle state
    """

    pool_id: AssetId
    info: PoolInfo
    reserves: tuple[int, ...]
    share_issuance: int
    invariant: int | None
    state: PoolState

    def reserve_of(self, asset: AssetId) -> int | None:
        index = self.info.find_asset(asset)
        if index is None:
            return None
        return self.reserves[index]
