"""
Numba-accelerated core functions for the legacy Elo path.

Key formulas:
- expected = 1 / (1 + 10^((rating_b - rating_a) / scale))
- weighted(d) = d                                      if |d| <= m
              = sign(d) * (m + ln(|d| - m + 1) * c)    otherwise
- actual = clamp(0.5 + weighted(d) / denominator, 0, 1)
- delta = K * season_decay^season_order * multiplier * (actual - expected)
"""

import math

from numba import njit


@njit(cache=True, fastmath=True, inline="always")
def expected_score(rating_a: float, rating_b: float, scale: float) -> float:
    """Expected score for side A against side B."""
    return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / scale))


@njit(cache=True, fastmath=True, inline="always")
def weighted_point_differential(
    differential: float,
    max_full_weight: float,
    log_compression: float,
) -> float:
    """Compress point differentials beyond ``max_full_weight`` logarithmically."""
    magnitude = abs(differential)
    if magnitude <= max_full_weight:
        return differential
    compressed = max_full_weight + math.log(magnitude - max_full_weight + 1.0) * log_compression
    if differential < 0:
        return -compressed
    return compressed


@njit(cache=True, fastmath=True, inline="always")
def actual_score(
    differential: float,
    max_full_weight: float,
    log_compression: float,
    denominator: float,
) -> float:
    """Point differential mapped into [0, 1] around 0.5."""
    score = 0.5 + weighted_point_differential(differential, max_full_weight, log_compression) / denominator
    if score < 0.0:
        return 0.0
    if score > 1.0:
        return 1.0
    return score


@njit(cache=True, fastmath=True, inline="always")
def rating_delta(
    k_factor: float,
    season_decay: float,
    season_order: int,
    multiplier: float,
    actual: float,
    expected: float,
) -> float:
    """Rating change for one side of a game."""
    return k_factor * season_decay ** season_order * multiplier * (actual - expected)
