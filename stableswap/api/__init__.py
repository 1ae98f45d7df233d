"""HTTP service exposing the stableswap engine."""
