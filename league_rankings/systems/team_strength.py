"""Team strength aggregated from roster ratings."""

from dataclasses import dataclass

import numpy as np

from ..base import PlayerTable


@dataclass(frozen=True)
class TeamStrength:
    """Roster-average rating and the share of the roster it is based on."""

    strength: float
    confidence: float
    rated_players: int
    total_players: int


def calculate_team_strength(
    indices: np.ndarray,
    table: PlayerTable,
    baseline: float,
    seasonal_decay: float,
    season_order: int,
    default_rating: float,
    min_confidence: float,
) -> TeamStrength:
    """
    Roster-average of each member's season-decayed rating.

    A rated player counts at ``baseline + (mu - baseline) * seasonal_decay**season_order``,
    an unrated one at ``default_rating``. Confidence is the rated share of
    the roster; below ``min_confidence`` the team falls back to
    ``default_rating``.

    Args:
        indices: Table rows of the roster
        table: Player state
        baseline: Rating the decay pulls toward
        seasonal_decay: Per-season decay factor
        season_order: Seasons back from the most recent (0 = current)
        default_rating: Rating for unrated players and low-confidence teams
        min_confidence: Minimum rated share to trust the average
    """
    total = len(indices)
    if total == 0:
        return TeamStrength(float(default_rating), 0.0, 0, 0)

    rated = table.rated[indices]
    decay = seasonal_decay ** season_order
    decayed = baseline + (table.mu[indices] - baseline) * decay
    values = np.where(rated, decayed, default_rating)

    n_rated = int(rated.sum())
    confidence = n_rated / total
    if confidence < min_confidence:
        strength = float(default_rating)
    else:
        strength = float(values.mean())
    return TeamStrength(strength, confidence, n_rated, total)
