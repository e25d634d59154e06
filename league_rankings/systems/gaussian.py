"""
Numba-accelerated Gaussian primitives for the TrueSkill update.

Key formulas:
- pdf(x) = exp(-x^2 / 2) / sqrt(2*pi)
- cdf(x) = 0.5 * (1 + erf(x / sqrt(2)))
- v(t, eps) = pdf(t - eps) / cdf(t - eps)   # mean shift of truncated Gaussian
- w(t, eps) = v * (v + t - eps)             # variance shrink of truncated Gaussian

cdf is evaluated through libm's erf (exposed via math.erf, which Numba
lowers to the same C routine). Its absolute error is below 1e-15 over the
whole real line.

When cdf(t - eps) < 1e-10 the ratio pdf/cdf is numerically meaningless.
In that tail v(t, eps) is asymptotically -(t - eps), and w tends to 1,
so those values are returned directly.
"""

import math

from numba import njit


SQRT_2 = math.sqrt(2.0)
INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)
CDF_FLOOR = 1e-10


@njit(cache=True, fastmath=True, inline="always")
def norm_pdf(x: float) -> float:
    """Standard normal PDF."""
    return INV_SQRT_2PI * math.exp(-0.5 * x * x)


@njit(cache=True, fastmath=True, inline="always")
def norm_cdf(x: float) -> float:
    """Standard normal CDF, absolute error < 1e-15."""
    return 0.5 * (1.0 + math.erf(x / SQRT_2))


@njit(cache=True, fastmath=True, inline="always")
def v_win(t: float, epsilon: float) -> float:
    """
    Mean update factor for the winning side.

    Never negative for finite input.
    """
    x = t - epsilon
    denom = norm_cdf(x)
    if denom < CDF_FLOOR:
        return -x
    return norm_pdf(x) / denom


@njit(cache=True, fastmath=True, inline="always")
def w_win(t: float, epsilon: float) -> float:
    """
    Variance update factor for the winning side, clamped to [0, 1].
    """
    x = t - epsilon
    denom = norm_cdf(x)
    if denom < CDF_FLOOR:
        return 1.0
    v = norm_pdf(x) / denom
    w = v * (v + x)
    if w < 0.0:
        return 0.0
    if w > 1.0:
        return 1.0
    return w
