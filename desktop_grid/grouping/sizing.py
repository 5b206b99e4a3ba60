"""
Minimal group size for a given fraction of colluders.

A group certifies by majority, so it is safe when colluders are a strict
minority of it. With colluders drawn independently at the population
fraction f, the number of colluders in a group of n workers follows a
Binomial(n, f). min_size(f) is the smallest n for which

    P(colluders < n / 2) = sum(C(n, i) f^i (1 - f)^(n - i) for 2i < n)

reaches MIN_MAJORITY.
"""

import sys
from functools import lru_cache

import numpy as np

from ..estimation import OutOfRangeError

MIN_MAJORITY = 0.9
"""Required probability that colluders are a strict minority."""

MAX_FRACTION = 0.48
"""From this fraction on, no reasonable group size reaches MIN_MAJORITY."""

UNBOUNDED_GROUP_SIZE = sys.maxsize
"""Size returned when no group size is enough."""


def non_colluders_majority(size: int, fraction: float) -> float:
    """
    Probability that colluders are a strict minority of a group.

    Args:
        size: Number of workers in the group
        fraction: Fraction of colluders in the population (0.0-1.0)

    Returns:
        Probability in [0, 1]. 0.0 for an empty group.
    """
    if not 0.0 <= fraction <= 1.0:
        raise OutOfRangeError(fraction, 0.0, 1.0)
    if size <= 0:
        return 0.0
    if fraction == 0.0:
        return 1.0
    if fraction == 1.0:
        return 0.0

    # Log space, binomial coefficients overflow for large groups
    log_factorials = np.concatenate(([0.0], np.cumsum(np.log(np.arange(1, size + 1)))))
    colluders = np.arange((size + 1) // 2)
    log_terms = (
        log_factorials[size]
        - log_factorials[colluders]
        - log_factorials[size - colluders]
        + colluders * np.log(fraction)
        + (size - colluders) * np.log1p(-fraction)
    )
    return float(min(1.0, np.exp(log_terms).sum()))


@lru_cache(maxsize=1024)
def min_size(fraction: float) -> int:
    """
    Smallest group size keeping colluders a minority with high probability.

    Pure and non-decreasing in fraction. min_size(0.0) == 1.

    Args:
        fraction: Estimated fraction of colluders (0.0-1.0)

    Returns:
        Group size, or UNBOUNDED_GROUP_SIZE from MAX_FRACTION on

    Example:
        min_size(0.0)   # 1
        min_size(0.2)   # 5
        min_size(0.31)  # 11
    """
    if not 0.0 <= fraction <= 1.0:
        raise OutOfRangeError(fraction, 0.0, 1.0)
    if fraction >= MAX_FRACTION:
        return UNBOUNDED_GROUP_SIZE

    size = 1
    while non_colluders_majority(size, fraction) < MIN_MAJORITY:
        size += 1
    return size
