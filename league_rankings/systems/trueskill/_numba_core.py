"""
Numba-accelerated core functions for team TrueSkill.

TrueSkill models player skill as a Gaussian distribution N(mu, sigma^2).
A team performs at the sum of its members' skills.

Key formulas:
- team_mu = sum(mu_i)
- team_sigma^2 = sum(sigma_i^2) + n * beta^2
- c^2 = winner_sigma^2 + loser_sigma^2 + 2 * tau^2   # total uncertainty
- t = (winner_mu - loser_mu) / c
- mu_i += +/- sigma_i^2 / c * v(t, eps) * multiplier
- sigma_i *= sqrt(1 - w(t, eps) * sigma_i^2 / c^2)
"""

import math

import numpy as np
from numba import njit

from ..gaussian import v_win, w_win


@njit(cache=True, fastmath=True, inline="always")
def _team_moments(mu: np.ndarray, sigma: np.ndarray, beta: float) -> tuple:
    """Team performance mean and variance."""
    team_mu = 0.0
    team_var = 0.0
    for i in range(mu.shape[0]):
        team_mu += mu[i]
        team_var += sigma[i] * sigma[i] + beta * beta
    return team_mu, team_var


@njit(cache=True, fastmath=True, inline="always")
def _shrink_sigma(sigma: float, w: float, c_squared: float, min_sigma: float) -> float:
    """Apply the variance update, floored at min_sigma (never raises sigma)."""
    factor = 1.0 - w * sigma * sigma / c_squared
    if factor < 0.0:
        factor = 0.0
    new_sigma = sigma * math.sqrt(factor)
    floor = min_sigma if min_sigma < sigma else sigma
    if new_sigma < floor:
        return floor
    return new_sigma


@njit(cache=True, fastmath=True)
def rate_match(
    winner_mu: np.ndarray,
    winner_sigma: np.ndarray,
    loser_mu: np.ndarray,
    loser_sigma: np.ndarray,
    beta: float,
    tau: float,
    draw_margin: float,
    multiplier: float,
    min_sigma: float,
) -> tuple:
    """
    Rate one team-vs-team game.

    Both team aggregates are computed from the pre-game state before any
    member is updated, so each member's update is independent.

    Args:
        winner_mu, winner_sigma: Winning roster's skill estimates
        loser_mu, loser_sigma: Losing roster's skill estimates
        beta: Per-player performance variability
        tau: Dynamics term (added once per team)
        draw_margin: Draw margin on the performance scale
        multiplier: Mean-update multiplier (e.g. 2.0 for playoffs)
        min_sigma: Lower bound on sigma

    Returns:
        (new_winner_mu, new_winner_sigma, new_loser_mu, new_loser_sigma)
    """
    w_team_mu, w_team_var = _team_moments(winner_mu, winner_sigma, beta)
    l_team_mu, l_team_var = _team_moments(loser_mu, loser_sigma, beta)

    c_squared = w_team_var + l_team_var + 2.0 * tau * tau
    c = math.sqrt(c_squared)

    t = (w_team_mu - l_team_mu) / c
    epsilon = draw_margin / c

    v = v_win(t, epsilon)
    w = w_win(t, epsilon)

    n_w = winner_mu.shape[0]
    n_l = loser_mu.shape[0]
    new_w_mu = np.empty(n_w, dtype=np.float64)
    new_w_sigma = np.empty(n_w, dtype=np.float64)
    new_l_mu = np.empty(n_l, dtype=np.float64)
    new_l_sigma = np.empty(n_l, dtype=np.float64)

    for i in range(n_w):
        s = winner_sigma[i]
        new_w_mu[i] = winner_mu[i] + (s * s / c) * v * multiplier
        new_w_sigma[i] = _shrink_sigma(s, w, c_squared, min_sigma)

    for i in range(n_l):
        s = loser_sigma[i]
        new_l_mu[i] = loser_mu[i] - (s * s / c) * v * multiplier
        new_l_sigma[i] = _shrink_sigma(s, w, c_squared, min_sigma)

    return new_w_mu, new_w_sigma, new_l_mu, new_l_sigma


@njit(cache=True, fastmath=True)
def win_probability(
    a_mu: np.ndarray,
    a_sigma: np.ndarray,
    b_mu: np.ndarray,
    b_sigma: np.ndarray,
    beta: float,
    tau: float,
) -> float:
    """P(team a beats team b) = Phi((mu_a - mu_b) / c)."""
    a_team_mu, a_team_var = _team_moments(a_mu, a_sigma, beta)
    b_team_mu, b_team_var = _team_moments(b_mu, b_sigma, beta)
    c = math.sqrt(a_team_var + b_team_var + 2.0 * tau * tau)
    return 0.5 * (1.0 + math.erf((a_team_mu - b_team_mu) / c / math.sqrt(2.0)))
