"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Asset ids, accounts and common amounts
- factories: Engine and pool factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    CHARLIE,
    FIRST_POOL_ID,
    HDX,
    ONE,
    USDA,
    USDB,
    USDC,
    USDD,
    USDE,
    USDF,
)
from tests.helpers.factories import (
    ALL_ASSETS,
    SMALL_LIMITS,
    create_pool,
    endow,
    make_engine,
    seed_pool,
)

__all__ = [
    # Constants
    "HDX",
    "USDA",
    "USDB",
    "USDC",
    "USDD",
    "USDE",
    "USDF",
    "FIRST_POOL_ID",
    "ALICE",
    "BOB",
    "CHARLIE",
    "ONE",
    # Factories
    "ALL_ASSETS",
    "SMALL_LIMITS",
    "make_engine",
    "endow",
    "create_pool",
    "seed_pool",
]
