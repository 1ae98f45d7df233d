"""Pytest configuration and fixtures."""

import pytest

from stableswap.engine import PoolEngine
from tests.helpers import make_engine, seed_pool


@pytest.fixture
def engine() -> PoolEngine:
    """Engine with small limits and every test asset registered."""
    return make_engine()


@pytest.fixture
def seeded_engine() -> tuple[PoolEngine, int]:
    """Engine with one USDA/USDB pool holding reserves [1000, 2000].

    Amplification 1 (Ann = 4), zero fees, 2940 shares held by alice.
    """
    engine = make_engine()
    pool_id = seed_pool(engine)
    return engine, pool_id
