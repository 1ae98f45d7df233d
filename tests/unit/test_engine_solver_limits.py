"""Tests for the solver iteration caps carried by EngineConfig.

Reference pool: [1000 USDA, 2000 USDB], amplification 1. Neither the
invariant (3000 -> 2943 -> 2942) nor any reserve solved from it settles in
a single Newton step.
"""

from dataclasses import replace

import pytest

from stableswap.engine import PoolEngine
from stableswap.errors import NonConvergence
from stableswap.models import AssetAmount
from tests.helpers import ALICE, BOB, SMALL_LIMITS, USDA, USDB, endow


def capped(engine: PoolEngine, **caps: int) -> PoolEngine:
    """Engine sharing engine's ledger and pools, with lowered iteration caps."""
    return PoolEngine(
        engine.ledger,
        engine.asset_registry,
        replace(SMALL_LIMITS, **caps),
        engine.pool_registry,
    )


@pytest.fixture
def funded(seeded_engine):
    """Seeded engine where bob holds 1000 USDA and alice another 1000/2000."""
    engine, pool_id = seeded_engine
    endow(engine, BOB, {USDA: 1000})
    endow(engine, ALICE, {USDA: 1000, USDB: 2000})
    return engine, pool_id


class TestInvariantCap:
    """max_d_iterations reaches every operation that solves for D."""

    @pytest.fixture
    def engine(self, funded):
        engine, pool_id = funded
        return capped(engine, max_d_iterations=1), pool_id

    def test_sell(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.sell(BOB, pool_id, USDA, USDB, 100, 0)
        assert engine.ledger.free_balance(USDA, BOB) == 1000
        assert engine.ledger.free_balance(USDB, BOB) == 0

    def test_buy(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.buy(BOB, pool_id, USDB, USDA, 121, 1000)

    def test_quotes(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.quote_sell(pool_id, USDA, USDB, 100)
        with pytest.raises(NonConvergence):
            engine.quote_buy(pool_id, USDB, USDA, 121)

    def test_add_liquidity(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.add_liquidity(ALICE, pool_id, [AssetAmount(USDA, 1000), AssetAmount(USDB, 2000)])
        assert engine.ledger.free_balance(pool_id, ALICE) == 2940

    def test_remove_liquidity_one_asset(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.remove_liquidity_one_asset(ALICE, pool_id, USDA, 940)

    def test_snapshot(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.get_pool_snapshot(pool_id)

    def test_proportional_removal_needs_no_solver(self, engine):
        engine, pool_id = engine
        event = engine.remove_liquidity(ALICE, pool_id, 940)
        assert [a.amount for a in event.amounts] == [319, 639]


class TestReserveCap:
    """max_y_iterations reaches every operation that solves for a reserve."""

    @pytest.fixture
    def engine(self, funded):
        engine, pool_id = funded
        return capped(engine, max_y_iterations=1), pool_id

    def test_sell(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.sell(BOB, pool_id, USDA, USDB, 100, 0)

    def test_buy(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.buy(BOB, pool_id, USDB, USDA, 121, 1000)

    def test_remove_liquidity_one_asset(self, engine):
        engine, pool_id = engine
        with pytest.raises(NonConvergence):
            engine.remove_liquidity_one_asset(ALICE, pool_id, USDA, 940)
        assert engine.ledger.free_balance(pool_id, ALICE) == 2940

    def test_invariant_unaffected(self, engine):
        engine, pool_id = engine
        assert engine.get_pool_snapshot(pool_id).invariant == 2942
