"""
Triangular Sampling
===================
Bounded (low, mode, high) draws used by volatility mapping and mass synthesis.
"""

import math
from typing import Optional

import numpy as np

from .config import ConfigurationError, Distribution


def triangular(low: float, mode: float, high: float, rng: np.random.Generator) -> float:
    """
    One draw from a triangular distribution by inverse-CDF on a single
    uniform ``u`` in [0, 1).

    Degenerate ``low == mode == high`` returns that constant.
    """
    if not low <= mode <= high:
        raise ConfigurationError(
            f"Triangular sampling requires low <= mode <= high, got ({low}, {mode}, {high})"
        )
    u = rng.random()
    span = high - low
    if span == 0:
        return float(low)

    c = (mode - low) / span
    if u < c:
        return low + math.sqrt(u * span * (mode - low))
    return high - math.sqrt((1 - u) * span * (high - mode))


def sample(dist: Distribution, rng: Optional[np.random.Generator] = None) -> float:
    """Draw from a ``Distribution``; unseeded generator if none given"""
    if rng is None:
        rng = np.random.default_rng()
    return triangular(dist.low, dist.mode, dist.high, rng)
