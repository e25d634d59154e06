"""
Legacy Elo-style rating path for team games.

Kept for comparison with the TrueSkill path. Every member of a roster
receives the same delta, computed from the two teams' roster-average
strengths and the (compressed) point differential. sigma is not used.
"""

from dataclasses import dataclass
from typing import Optional

from ...base import PlayerTable, RatingSystem
from ...data.types import ResolvedGame
from ..team_strength import TeamStrength, calculate_team_strength
from ._numba_core import actual_score, expected_score, rating_delta, weighted_point_differential


@dataclass
class EloConfig:
    """Configuration for the legacy Elo path."""

    initial_rating: float = 1200.0
    k_factor: float = 36.0
    scale: float = 400.0
    playoff_multiplier: float = 1.8
    season_decay_factor: float = 0.82  # Applied to the delta per season of age
    rating_decay_factor: float = 0.95  # Applied to roster ratings per season of age
    max_full_weight_differential: float = 5.0
    log_compression: float = 2.2
    score_denominator: float = 80.0
    min_team_confidence: float = 0.5
    default_team_strength: float = 1200.0


class Elo(RatingSystem):
    """
    Elo-style team rating with point-differential scoring.

    Parameters:
        config: EloConfig (defaults match the league's historical constants)

    Example:
        >>> elo = Elo()
        >>> table = elo.new_table()
        >>> elo.apply_round(resolved_games, table)
    """

    name = "elo"

    def __init__(self, config: Optional[EloConfig] = None):
        self.config = config or EloConfig()
        if self.config.score_denominator <= 0 or self.config.scale <= 0:
            raise ValueError("score_denominator and scale must be positive")

    @property
    def initial_mu(self) -> float:
        return self.config.initial_rating

    @property
    def initial_sigma(self) -> float:
        return 0.0

    def expected_score(self, rating_a: float, rating_b: float) -> float:
        return float(expected_score(rating_a, rating_b, self.config.scale))

    def weighted_point_differential(self, differential: float) -> float:
        c = self.config
        return float(
            weighted_point_differential(
                float(differential), c.max_full_weight_differential, c.log_compression
            )
        )

    def actual_score(self, differential: float) -> float:
        c = self.config
        return float(
            actual_score(
                float(differential),
                c.max_full_weight_differential,
                c.log_compression,
                c.score_denominator,
            )
        )

    def rating_delta(
        self,
        team: float,
        opponent: float,
        differential: float,
        season_order: int = 0,
        playoff: bool = False,
    ) -> float:
        """Rating change for a side rated ``team`` facing ``opponent``."""
        c = self.config
        multiplier = c.playoff_multiplier if playoff else 1.0
        return float(
            rating_delta(
                c.k_factor,
                c.season_decay_factor,
                season_order,
                multiplier,
                self.actual_score(differential),
                self.expected_score(team, opponent),
            )
        )

    def team_strength(self, indices, table: PlayerTable, season_order: int) -> TeamStrength:
        c = self.config
        return calculate_team_strength(
            indices,
            table,
            baseline=c.initial_rating,
            seasonal_decay=c.rating_decay_factor,
            season_order=season_order,
            default_rating=c.default_team_strength,
            min_confidence=c.min_team_confidence,
        )

    def _apply_game(self, game: ResolvedGame, table: PlayerTable) -> None:
        """Update Elo ratings for one game."""
        winners = table.indices(game.winner_ids)
        losers = table.indices(game.loser_ids)

        # Both strengths come from the pre-game state
        winner_strength = self.team_strength(winners, table, game.season_order)
        loser_strength = self.team_strength(losers, table, game.season_order)

        margin = game.point_differential
        winner_delta = self.rating_delta(
            winner_strength.strength, loser_strength.strength, margin,
            game.season_order, game.is_playoff,
        )
        loser_delta = self.rating_delta(
            loser_strength.strength, winner_strength.strength, -margin,
            game.season_order, game.is_playoff,
        )

        table.mu[winners] += winner_delta
        table.mu[losers] += loser_delta
        table.rated[winners] = True
        table.rated[losers] = True

    def __repr__(self) -> str:
        return f"Elo(initial={self.config.initial_rating}, k={self.config.k_factor})"
