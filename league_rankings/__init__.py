"""
League Rankings - skill ratings and rankings for multi-season leagues.

This package replays a league's completed games in chronological order,
rates every player with a team TrueSkill model (or the legacy Elo path),
and persists tie-aware rankings, weekly snapshots and round tracking so
later runs can resume incrementally.

Quick Start:
    from league_rankings import MemoryDocumentStore, RankingEngine

    store = MemoryDocumentStore()
    store.add_seasons(seasons)
    store.add_teams(teams)
    store.add_games(games)

    engine = RankingEngine.from_store(store)
    result = engine.run_full()
    print(result)
    print(result.rankings.top(10))

    # Later, after new games are recorded
    result = engine.run_incremental()

    # Swiss standings for an in-progress season
    standings = calculate_swiss_rankings(season_games, team_ids)

Command-line interface:
    python -m league_rankings full league_data/ --top 20
    python -m league_rankings incremental league_data/
    python -m league_rankings swiss league_data/ --season 2024-fall
"""

from .base import PlayerRatingState, PlayerTable, RatingSystem
from .config import EngineConfig
from .data import Game, GameDataset, GameRound, GameType, ResolvedGame, RosterEntry, Season, Team
from .exceptions import (
    ConcurrentRunError,
    CorruptGameError,
    MissingSeasonError,
    PersistenceError,
    RankingEngineError,
)
from .persistence import (
    MemoryDocumentStore,
    ParquetDocumentStore,
    compute_competition_ranks,
    save_rankings,
)
from .processing import RankingEngine, RunMode, SkipReason
from .results import RankingTable, RunResult, RunStatus
from .swiss import SwissRanking, calculate_swiss_rankings
from .systems import Elo, EloConfig, TrueSkill, TrueSkillConfig

__version__ = "0.1.0"

__all__ = [
    # Data
    "Game",
    "GameDataset",
    "GameRound",
    "GameType",
    "ResolvedGame",
    "RosterEntry",
    "Season",
    "Team",
    # Base
    "RatingSystem",
    "PlayerTable",
    "PlayerRatingState",
    # Systems
    "TrueSkill",
    "TrueSkillConfig",
    "Elo",
    "EloConfig",
    # Engine
    "EngineConfig",
    "RankingEngine",
    "RunMode",
    "SkipReason",
    # Persistence
    "MemoryDocumentStore",
    "ParquetDocumentStore",
    "compute_competition_ranks",
    "save_rankings",
    # Results
    "RankingTable",
    "RunResult",
    "RunStatus",
    # Swiss
    "SwissRanking",
    "calculate_swiss_rankings",
    # Errors
    "RankingEngineError",
    "MissingSeasonError",
    "CorruptGameError",
    "ConcurrentRunError",
    "PersistenceError",
]
