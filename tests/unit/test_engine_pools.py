"""Tests for PoolEngine pool creation and read-only views."""

import pytest

from stableswap.errors import (
    AssetNotRegistered,
    DuplicateOrTooFewAssets,
    InvalidAmplification,
    InvalidFee,
    MaxAssetsExceeded,
    PoolAlreadyExists,
    PoolNotFound,
)
from stableswap.ledger import pool_account
from stableswap.math import Permill
from stableswap.models import AssetAmount, PoolCreated, PoolState
from tests.helpers import ALICE, FIRST_POOL_ID, USDA, USDB, USDC, USDD, USDE, USDF, endow


class TestCreatePool:
    """Tests for PoolEngine.create_pool."""

    def test_creates_pool_with_sorted_assets(self, engine):
        """Assets are stored sorted and the pool id is a fresh share asset."""
        event = engine.create_pool([USDB, USDA], 100, Permill(3_000), Permill(1_000))

        assert event == PoolCreated(
            pool_id=FIRST_POOL_ID,
            assets=(USDA, USDB),
            amplification=100,
            trade_fee=Permill(3_000),
            withdraw_fee=Permill(1_000),
        )
        info = engine.get_pool(FIRST_POOL_ID)
        assert info.assets == (USDA, USDB)
        assert info.amplification == 100
        assert info.trade_fee == Permill(3_000)

    def test_share_asset_is_registered(self, engine):
        """The pool id is itself a registered asset."""
        event = engine.create_pool([USDA, USDB], 100)
        assert engine.asset_registry.exists(event.pool_id)

    def test_fees_default_to_zero(self, engine):
        event = engine.create_pool([USDA, USDB], 100)
        assert event.trade_fee.is_zero
        assert event.withdraw_fee.is_zero

    def test_distinct_pools_get_distinct_ids(self, engine):
        first = engine.create_pool([USDA, USDB], 100)
        second = engine.create_pool([USDA, USDC], 100)
        assert first.pool_id != second.pool_id
        assert engine.pools() == sorted([first.pool_id, second.pool_id])

    def test_five_assets(self, engine):
        event = engine.create_pool([USDF, USDE, USDD, USDC, USDB], 100)
        assert event.assets == (USDB, USDC, USDD, USDE, USDF)

    def test_duplicate_pool_rejected(self, engine):
        """A second pool over the same assets, in any order, is rejected."""
        engine.create_pool([USDA, USDB], 100)
        with pytest.raises(PoolAlreadyExists):
            engine.create_pool([USDB, USDA], 50)

    def test_single_asset_rejected(self, engine):
        with pytest.raises(DuplicateOrTooFewAssets):
            engine.create_pool([USDA], 100)

    def test_duplicate_assets_rejected(self, engine):
        with pytest.raises(DuplicateOrTooFewAssets):
            engine.create_pool([USDA, USDA], 100)

    def test_too_many_assets_rejected(self, engine):
        """Six assets exceed the default maximum of five."""
        with pytest.raises(MaxAssetsExceeded):
            engine.create_pool([USDA, USDB, USDC, USDD, USDE, USDF], 100)

    @pytest.mark.parametrize("amplification", [0, 10_001])
    def test_amplification_out_of_range(self, engine, amplification):
        with pytest.raises(InvalidAmplification):
            engine.create_pool([USDA, USDB], amplification)

    def test_amplification_bounds_inclusive(self, engine):
        engine.create_pool([USDA, USDB], 1)
        engine.create_pool([USDA, USDC], 10_000)

    def test_unregistered_asset_rejected(self, engine):
        """Unknown assets are rejected and no pool is stored."""
        with pytest.raises(AssetNotRegistered):
            engine.create_pool([USDA, 99], 100)
        assert engine.pools() == []

    def test_full_fee_rejected(self):
        """A 100% fee cannot even be constructed."""
        with pytest.raises(InvalidFee):
            Permill(1_000_000)


class TestPoolViews:
    """Tests for get_pool and get_pool_snapshot."""

    def test_unknown_pool(self, engine):
        with pytest.raises(PoolNotFound):
            engine.get_pool(12345)
        with pytest.raises(PoolNotFound):
            engine.get_pool_snapshot(12345)

    def test_snapshot_of_empty_pool(self, engine):
        pool_id = engine.create_pool([USDA, USDB], 1).pool_id
        snapshot = engine.get_pool_snapshot(pool_id)

        assert snapshot.reserves == (0, 0)
        assert snapshot.share_issuance == 0
        assert snapshot.invariant == 0
        assert snapshot.state is PoolState.UNINITIALIZED

    def test_snapshot_of_seeded_pool(self, seeded_engine):
        engine, pool_id = seeded_engine
        snapshot = engine.get_pool_snapshot(pool_id)

        assert snapshot.reserves == (1000, 2000)
        assert snapshot.share_issuance == 2940
        assert snapshot.invariant == 2942
        assert snapshot.state is PoolState.ACTIVE
        assert snapshot.reserve_of(USDB) == 2000
        assert snapshot.reserve_of(USDC) is None

    def test_snapshot_of_partially_funded_pool(self, engine):
        """A pool holding only one of its assets has no invariant to report."""
        pool_id = engine.create_pool([USDA, USDB], 1).pool_id
        engine.ledger.deposit(USDB, pool_account(pool_id), 1000)

        snapshot = engine.get_pool_snapshot(pool_id)

        assert snapshot.reserves == (0, 1000)
        assert snapshot.invariant is None
        assert snapshot.state is PoolState.SEEDING

    def test_first_deposit_into_partially_funded_pool(self, engine):
        """Units already sitting in the pool join the first depositor's reserves."""
        pool_id = engine.create_pool([USDA, USDB], 1).pool_id
        engine.ledger.deposit(USDB, pool_account(pool_id), 1000)
        endow(engine, ALICE, {USDA: 1000, USDB: 1000})

        event = engine.add_liquidity(ALICE, pool_id, [AssetAmount(USDA, 1000), AssetAmount(USDB, 1000)])

        assert event.shares == 2940
        assert engine.get_pool_snapshot(pool_id).invariant == 2942

    def test_reserves(self, seeded_engine):
        engine, pool_id = seeded_engine
        assert engine.reserves(pool_id) == [1000, 2000]
