"""Synthetic league generators shared by the test modules."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import numpy as np

from league_rankings import Game, GameType, MemoryDocumentStore, RosterEntry, Season, Team

EPOCH = datetime(2023, 1, 2, 19, 0, tzinfo=timezone.utc)  # a Monday


def make_game(
    game_id: str,
    home: Optional[str],
    away: Optional[str],
    home_score: Optional[int],
    away_score: Optional[int],
    start: datetime = EPOCH,
    season_id: str = "s1",
    game_type: GameType = GameType.REGULAR,
    week: Optional[int] = None,
) -> Game:
    return Game(
        game_id=game_id,
        season_id=season_id,
        home_team_id=home,
        away_team_id=away,
        home_score=home_score,
        away_score=away_score,
        start_time=start,
        game_type=game_type,
        week=week,
    )


def make_team(team_id: str, player_ids, season_id: str = "s1") -> Team:
    return Team(
        team_id=team_id,
        name=team_id.upper(),
        roster=tuple(RosterEntry(p, f"Player {p}") for p in player_ids),
        season_id=season_id,
    )


def generate_league(
    num_seasons: int = 3,
    teams_per_season: int = 4,
    players_per_team: int = 3,
    pool_size: int = 16,
    weeks: int = 3,
    seed: int = 42,
) -> Tuple[List[Season], List[Team], List[Game]]:
    """
    Generate a multi-season league with skill-based outcomes.

    Each week has two rounds (19:00 and 20:00 on Monday) of two games.
    Rosters are re-drawn from the player pool every season, so some
    players sit out whole seasons. The last week of each season is
    playoffs. No game is tied.
    """
    rng = np.random.RandomState(seed)
    true_skill = np.linspace(-1.0, 1.0, pool_size)
    player_ids = [f"p{i:02d}" for i in range(pool_size)]

    seasons, teams, games = [], [], []
    for s in range(num_seasons):
        season_id = f"s{s + 1}"
        season_start = EPOCH + timedelta(days=120 * s)
        seasons.append(Season(season_id, f"Season {s + 1}", season_start))

        drawn = rng.permutation(pool_size)[: teams_per_season * players_per_team]
        team_ids = []
        team_skill = {}
        for t in range(teams_per_season):
            members = drawn[t * players_per_team:(t + 1) * players_per_team]
            team_id = f"{season_id}-t{t}"
            team_ids.append(team_id)
            team_skill[team_id] = float(true_skill[members].sum())
            teams.append(make_team(team_id, [player_ids[m] for m in members], season_id))

        n = 0
        for w in range(weeks):
            game_type = GameType.PLAYOFF if w == weeks - 1 else GameType.REGULAR
            for hour in (0, 1):
                start = season_start + timedelta(days=7 * w, hours=hour)
                order = rng.permutation(teams_per_season)
                for g in range(teams_per_season // 2):
                    home = team_ids[order[2 * g]]
                    away = team_ids[order[2 * g + 1]]
                    edge = team_skill[home] - team_skill[away]
                    home_score = max(0, int(10 + round(edge * 3) + rng.randint(0, 8)))
                    away_score = int(10 + rng.randint(0, 8))
                    if home_score == away_score:
                        home_score += 1
                    n += 1
                    games.append(
                        make_game(
                            f"{season_id}-g{n:03d}", home, away, home_score, away_score,
                            start, season_id, game_type,
                        )
                    )
    return seasons, teams, games


def league_store(seasons, teams, games) -> MemoryDocumentStore:
    store = MemoryDocumentStore()
    store.add_seasons(seasons)
    store.add_teams(teams)
    store.add_games(games)
    return store
