"""Data loading and types for league games."""

from .dataset import GameDataset
from .types import Game, GameRound, GameType, ResolvedGame, RosterEntry, Season, Team

__all__ = [
    "GameDataset",
    "Game",
    "GameRound",
    "GameType",
    "ResolvedGame",
    "RosterEntry",
    "Season",
    "Team",
]
