"""Base classes for rating systems and player state."""

from .player_table import PlayerRatingState, PlayerTable
from .rating_system import RatingSystem

__all__ = ["RatingSystem", "PlayerTable", "PlayerRatingState"]
