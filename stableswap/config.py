"""Engine configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from stableswap.math.invariant import MAX_D_ITERATIONS, MAX_Y_ITERATIONS

ENV_PREFIX = "STABLESWAP_"


@dataclass(frozen=True)
class EngineConfig:
    """Centralized configuration for the pool engine.

    Attributes:
        precision: Newton convergence tolerance (iterates may differ by at most this)
        min_pool_liquidity: Smallest non-zero share balance an account or the
            pool's total issuance may be left with
        min_trading_limit: Smallest amount accepted for a trade or deposit
        amplification_range: Inclusive (low, high) bounds for pool amplification
        max_assets: Maximum number of assets in a pool
        max_d_iterations: Iteration cap for the invariant solver
        max_y_iterations: Iteration cap for the reserve solver
    """

    precision: int = 1
    min_pool_liquidity: int = 1_000
    min_trading_limit: int = 1_000
    amplification_range: tuple[int, int] = (2, 10_000)
    max_assets: int = 5
    max_d_iterations: int = MAX_D_ITERATIONS
    max_y_iterations: int = MAX_Y_ITERATIONS

    def __post_init__(self) -> None:
        low, high = self.amplification_range
        if low < 1 or low > high or high > 2**16 - 1:
            raise ValueError(f"Invalid amplification range: {self.amplification_range}")
        if self.precision < 0:
            raise ValueError(f"Precision must be non-negative, got {self.precision}")
        if self.min_pool_liquidity < 0 or self.min_trading_limit < 0:
            raise ValueError("Liquidity and trading minimums must be non-negative")
        if self.max_assets < 2:
            raise ValueError(f"max_assets must be at least 2, got {self.max_assets}")
        if self.max_d_iterations < 1 or self.max_y_iterations < 1:
            raise ValueError("Solver iteration caps must be at least 1")

    def amplification_in_range(self, amplification: int) -> bool:
        low, high = self.amplification_range
        return low <= amplification <= high

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a configuration from STABLESWAP_* environment variables.

        Recognized variables: STABLESWAP_PRECISION, STABLESWAP_MIN_POOL_LIQUIDITY,
        STABLESWAP_MIN_TRADING_LIMIT, STABLESWAP_AMPLIFICATION_RANGE (as "low,high"),
        STABLESWAP_MAX_ASSETS, STABLESWAP_MAX_D_ITERATIONS,
        STABLESWAP_MAX_Y_ITERATIONS. Missing variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def _int(name: str, default: int) -> int:
            raw = env.get(ENV_PREFIX + name)
            return default if raw is None else int(raw)

        amp_raw = env.get(ENV_PREFIX + "AMPLIFICATION_RANGE")
        if amp_raw is None:
            amplification_range = defaults.amplification_range
        else:
            low, high = (int(part) for part in amp_raw.split(","))
            amplification_range = (low, high)

        return cls(
            precision=_int("PRECISION", defaults.precision),
            min_pool_liquidity=_int("MIN_POOL_LIQUIDITY", defaults.min_pool_liquidity),
            min_trading_limit=_int("MIN_TRADING_LIMIT", defaults.min_trading_limit),
            amplification_range=amplification_range,
            max_assets=_int("MAX_ASSETS", defaults.max_assets),
            max_d_iterations=_int("MAX_D_ITERATIONS", defaults.max_d_iterations),
            max_y_iterations=_int("MAX_Y_ITERATIONS", defaults.max_y_iterations),
        )


# Default configuration instance
DEFAULT_ENGINE_CONFIG = EngineConfig()
