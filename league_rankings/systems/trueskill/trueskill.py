"""
TrueSkill rating system for team games - Numba implementation.

TrueSkill models player skill as a Gaussian distribution N(mu, sigma^2),
where mu is the estimated skill and sigma represents uncertainty. A team's
performance is the sum of its members' skills, so every member of the
winning roster moves up and every member of the losing roster moves down,
each in proportion to their own variance.

Reference:
Herbrich, Minka, Graepel (2006). "TrueSkill: A Bayesian Skill Rating System"
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from ...base import PlayerTable, RatingSystem
from ...data.types import ResolvedGame
from ._numba_core import rate_match, win_probability


@dataclass
class TrueSkillConfig:
    """Configuration for TrueSkill rating system.

    Default values follow the original TrueSkill paper:
    - mu = 25 (initial skill estimate)
    - sigma = mu/3 ≈ 8.333 (initial uncertainty)
    - beta = sigma/2 ≈ 4.167 (performance variability)
    - tau = sigma/100 ≈ 0.083 (dynamics)
    """

    initial_mu: float = 25.0
    initial_sigma: float = 25.0 / 3.0
    beta: float = 25.0 / 6.0
    tau: float = 25.0 / 300.0
    draw_margin: float = 0.0  # Performance-scale draw margin (ties are never rated)
    min_sigma: float = 0.01
    playoff_multiplier: float = 2.0


class TrueSkill(RatingSystem):
    """
    Team TrueSkill rating system with Numba acceleration.

    Parameters:
        initial_mu: Starting skill estimate (default: 25)
        initial_sigma: Starting uncertainty (default: initial_mu/3)
        beta: Performance variability per player (default: 25/6)
        tau: Dynamics term added once per team (default: 25/300)
        draw_margin: Draw margin on the performance scale (default: 0)
        min_sigma: Floor on uncertainty (default: 0.01)
        playoff_multiplier: Mean-update boost for playoff games (default: 2)

    Example:
        >>> ts = TrueSkill()
        >>> table = ts.new_table()
        >>> ts.apply_round(resolved_games, table)
    """

    name = "trueskill"

    def __init__(
        self,
        initial_mu: float = 25.0,
        initial_sigma: Optional[float] = None,
        beta: float = 25.0 / 6.0,
        tau: float = 25.0 / 300.0,
        draw_margin: float = 0.0,
        min_sigma: float = 0.01,
        playoff_multiplier: float = 2.0,
    ):
        if initial_sigma is None:
            initial_sigma = initial_mu / 3.0
        if initial_sigma <= 0 or beta <= 0:
            raise ValueError("initial_sigma and beta must be positive")
        if min_sigma < 0 or tau < 0 or draw_margin < 0:
            raise ValueError("min_sigma, tau and draw_margin must be non-negative")
        self.config = TrueSkillConfig(
            initial_mu=initial_mu,
            initial_sigma=initial_sigma,
            beta=beta,
            tau=tau,
            draw_margin=draw_margin,
            min_sigma=min_sigma,
            playoff_multiplier=playoff_multiplier,
        )

    @classmethod
    def from_config(cls, config: TrueSkillConfig) -> "TrueSkill":
        return cls(
            initial_mu=config.initial_mu,
            initial_sigma=config.initial_sigma,
            beta=config.beta,
            tau=config.tau,
            draw_margin=config.draw_margin,
            min_sigma=config.min_sigma,
            playoff_multiplier=config.playoff_multiplier,
        )

    @property
    def initial_mu(self) -> float:
        return self.config.initial_mu

    @property
    def initial_sigma(self) -> float:
        return self.config.initial_sigma

    def multiplier(self, game: ResolvedGame) -> float:
        return self.config.playoff_multiplier if game.is_playoff else 1.0

    def _apply_game(self, game: ResolvedGame, table: PlayerTable) -> None:
        """Update TrueSkill ratings for one game."""
        winners = table.indices(game.winner_ids)
        losers = table.indices(game.loser_ids)

        mu = table.mu
        sigma = table.sigma
        new_w_mu, new_w_sigma, new_l_mu, new_l_sigma = rate_match(
            mu[winners],
            sigma[winners],
            mu[losers],
            sigma[losers],
            self.config.beta,
            self.config.tau,
            self.config.draw_margin,
            self.multiplier(game),
            self.config.min_sigma,
        )
        mu[winners] = new_w_mu
        sigma[winners] = new_w_sigma
        mu[losers] = new_l_mu
        sigma[losers] = new_l_sigma
        table.rated[winners] = True
        table.rated[losers] = True

    def win_probability(
        self,
        team_a: Sequence[str],
        team_b: Sequence[str],
        table: PlayerTable,
    ) -> float:
        """
        Probability that roster ``team_a`` beats roster ``team_b``.

        Both rosters must already be in the table.
        """
        a = table.indices(team_a)
        b = table.indices(team_b)
        return float(
            win_probability(
                table.mu[a], table.sigma[a], table.mu[b], table.sigma[b],
                self.config.beta, self.config.tau,
            )
        )

    def __repr__(self) -> str:
        return (
            f"TrueSkill(mu={self.config.initial_mu}, sigma={self.config.initial_sigma:.2f}, "
            f"beta={self.config.beta:.2f}, tau={self.config.tau:.3f})"
        )
