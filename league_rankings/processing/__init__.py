"""Replay pipeline: loading, chronological processing, round tracking, runs."""

from .engine import RankingEngine, RunMode
from .loader import GameLoader, week_of_season
from .processor import ChronologicalProcessor, ProcessingStats, ProcessorState, RosterResolver, SkippedGame, SkipReason
from .progress import ProgressReporter
from .tracker import RoundTracker, should_count_game

__all__ = [
    "RankingEngine",
    "RunMode",
    "GameLoader",
    "week_of_season",
    "ChronologicalProcessor",
    "ProcessingStats",
    "ProcessorState",
    "RosterResolver",
    "SkippedGame",
    "SkipReason",
    "ProgressReporter",
    "RoundTracker",
    "should_count_game",
]
