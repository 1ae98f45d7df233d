"""Pool registry keyed by pool id.

Holds the configuration record of every pool the engine created. Reserves
and share issuance are not stored here; they live in the ledger.
"""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from stableswap.errors import PoolAlreadyExists, PoolNotFound
from stableswap.models.pool import AssetId, PoolInfo

logger = structlog.get_logger()


class PoolRegistry:
    """Registry of stableswap pool configurations.

    Pools are indexed by id and, for duplicate detection, by their sorted
    asset tuple.
    """

    def __init__(self, pools: dict[AssetId, PoolInfo] | None = None) -> None:
        """Initialize the registry with optional pools.

        Args:
            pools: Initial pools keyed by pool id. If None, starts empty.
        """
        self._pools: dict[AssetId, PoolInfo] = {}
        # Secondary index: sorted asset tuple -> pool id
        self._by_assets: dict[tuple[AssetId, ...], AssetId] = {}

        if pools:
            for pool_id, info in pools.items():
                self.add(pool_id, info)

    def add(self, pool_id: AssetId, info: PoolInfo) -> None:
        """Register a pool.

        Raises:
            PoolAlreadyExists: If pool_id or the same asset set is already registered
        """
        if pool_id in self._pools:
            raise PoolAlreadyExists(f"Pool {pool_id} already exists")
        existing = self._by_assets.get(info.assets)
        if existing is not None:
            raise PoolAlreadyExists(f"Pool {existing} already covers assets {list(info.assets)}")

        self._pools[pool_id] = info
        self._by_assets[info.assets] = pool_id
        logger.debug("pool_registered", pool_id=pool_id, assets=list(info.assets))

    def get(self, pool_id: AssetId) -> PoolInfo:
        """Look up a pool.

        Raises:
            PoolNotFound: If no pool has this id
        """
        info = self._pools.get(pool_id)
        if info is None:
            raise PoolNotFound(f"Pool {pool_id} not found")
        return info

    def find_by_assets(self, assets: tuple[AssetId, ...]) -> AssetId | None:
        return self._by_assets.get(tuple(sorted(assets)))

    def __contains__(self, pool_id: object) -> bool:
        return pool_id in self._pools

    def __iter__(self) -> Iterator[AssetId]:
        return iter(sorted(self._pools))

    def __len__(self) -> int:
        return len(self._pools)
