"""Stableswap invariant math.

Newton-Raphson solvers for the StableSwap curve

    Ann * S + D = Ann * D + D^(n+1) / (n^n * prod(reserves))

where S is the sum of the reserves, n the number of assets and
Ann = amplification * n^n.

- calculate_d: solve for the invariant D given all reserves
- calculate_y: solve for one reserve given D and every other reserve

Both solvers add 2 to every iterate. The bias keeps D above the exact
root (shares are derived from it) and keeps a solved reserve above its
exact value (amounts paid out are derived from it), so rounding never
favours the caller.

IMPORTANT: All intermediate products use SafeInt, which bounds them at
512 bits and raises instead of producing an out-of-range value.
"""

from collections.abc import Sequence

import structlog

from stableswap.errors import InvalidAmplification, NonConvergence
from stableswap.safe_int import S, SafeInt

logger = structlog.get_logger()

# Maximum iterations for Newton-Raphson convergence
MAX_D_ITERATIONS = 255
MAX_Y_ITERATIONS = 255

# Upward bias added to every Newton iterate
ROUNDING_BIAS = 2


def calculate_ann(amplification: int, n_coins: int) -> int:
    """Amplification coefficient Ann = A * n^n.

    Raises:
        InvalidAmplification: If amplification is zero or negative
    """
    if amplification <= 0:
        raise InvalidAmplification(f"Amplification must be positive, got {amplification}")
    return amplification * n_coins**n_coins


def _has_converged(current: SafeInt, previous: SafeInt, precision: int) -> bool:
    return current.abs_diff(previous) <= precision


def calculate_d(
    reserves: Sequence[int],
    ann: int,
    precision: int,
    max_iterations: int = MAX_D_ITERATIONS,
) -> int:
    """Calculate the StableSwap invariant D using Newton-Raphson iteration.

    Algorithm:
        1. If the reserves sum to zero the pool is empty: D = 0
        2. Initial guess: D = sum(reserves)
        3. D_P = D^(n+1) / (n^n * prod(reserves)), built one reserve at a time
        4. D = (Ann*S + n*D_P) * D / ((Ann-1)*D + (n+1)*D_P) + 2
        5. Stop once |D - D_prev| <= precision

    Reserves are sorted ascending so the smallest divisors are applied first.
    The curve is undefined while some but not all reserves are zero, so such
    a pool fails with DivisionByZero rather than reporting a made-up D.

    Args:
        reserves: Pool reserves, one per asset
        ann: Amplification coefficient (amplification * n^n)
        precision: Convergence tolerance
        max_iterations: Newton iteration cap

    Returns:
        The invariant D

    Raises:
        NonConvergence: If iteration does not converge within max_iterations
        Overflow: If an intermediate product exceeds 512 bits
        Underflow: If ann is zero
        DivisionByZero: If some reserves are zero and others are not
    """
    n_coins = len(reserves)
    sorted_reserves = sorted(S(r) for r in reserves)
    sum_reserves = S(0)
    for reserve in sorted_reserves:
        sum_reserves = sum_reserves + reserve

    if sum_reserves == 0:
        return 0

    ann_s = S(ann)
    n_s = S(n_coins)

    d = sum_reserves
    for _ in range(max_iterations):
        d_p = d
        for reserve in sorted_reserves:
            d_p = (d_p * d) // (reserve * n_s)

        d_prev = d
        numerator = (ann_s * sum_reserves + d_p * n_s) * d_prev
        denominator = (ann_s - 1) * d_prev + (n_s + 1) * d_p
        d = numerator // denominator + ROUNDING_BIAS

        if _has_converged(d, d_prev, precision):
            return d.value

    logger.debug(
        "invariant_did_not_converge",
        reserves=list(reserves),
        ann=ann,
        precision=precision,
    )
    raise NonConvergence(f"Invariant did not converge after {max_iterations} iterations")


def calculate_y(
    other_reserves: Sequence[int],
    d: int,
    ann: int,
    precision: int,
    max_iterations: int = MAX_Y_ITERATIONS,
) -> int:
    """Solve for the reserve of one asset given D and all other reserves.

    With S' and P' the sum and product of the other reserves, the unknown
    reserve y satisfies

        y^2 + (S' + D/Ann - D) * y = D^(n+1) / (n^n * P' * Ann)

    which is iterated as y = (y^2 + c) / (2y + b - D) + 2 with
    c = D^(n+1) / (n^n * P' * Ann) and b = S' + D/Ann, starting from y = D.
    For two assets this reduces to c = D^3 / (4 * Ann * x).

    Args:
        other_reserves: Reserves of every asset except the one solved for
        d: Invariant to preserve
        ann: Amplification coefficient (amplification * n^n)
        precision: Convergence tolerance
        max_iterations: Newton iteration cap

    Returns:
        The reserve y

    Raises:
        NonConvergence: If iteration does not converge within max_iterations
        Underflow: If the Newton denominator would go negative
        DivisionByZero: If an other reserve or ann is zero
        Overflow: If an intermediate product exceeds 512 bits
    """
    n_coins = S(len(other_reserves) + 1)
    d_s = S(d)
    ann_s = S(ann)

    c = d_s
    sum_others = S(0)
    for reserve in sorted(S(r) for r in other_reserves):
        c = (c * d_s) // (reserve * n_coins)
        sum_others = sum_others + reserve
    c = (c * d_s) // (ann_s * n_coins)
    b = sum_others + d_s // ann_s

    y = d_s
    for _ in range(max_iterations):
        y_prev = y
        y = (y * y + c) // (y * 2 + b - d_s) + ROUNDING_BIAS

        if _has_converged(y, y_prev, precision):
            return y.value

    logger.debug(
        "reserve_did_not_converge",
        other_reserves=list(other_reserves),
        d=d,
        ann=ann,
        precision=precision,
    )
    raise NonConvergence(f"Reserve did not converge after {max_iterations} iterations")
