"""Stableswap AMM engine - Python Implementation."""

from stableswap.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from stableswap.engine import PoolEngine, get_default_engine
from stableswap.ledger import InMemoryAssetRegistry, InMemoryLedger

__version__ = "0.1.0"
__all__ = [
    "PoolEngine",
    "get_default_engine",
    "EngineConfig",
    "DEFAULT_ENGINE_CONFIG",
    "InMemoryLedger",
    "InMemoryAssetRegistry",
    "__version__",
]
