"""Legacy Elo-style rating path."""

from .elo import Elo, EloConfig

__all__ = ["Elo", "EloConfig"]
