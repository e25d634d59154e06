"""
Swiss-system standings for an in-progress season.

Stateless and single pass: every call recomputes standings from the
full set of completed games.

- Buchholz = sum of opponents' final win totals (opponents repeat once
  per meeting)
- Swiss score = 2 * wins + Buchholz
- Order: Swiss score desc, then point differential desc. Teams equal on
  both share a rank (competition ranking).
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import polars as pl

from ..data.types import Game


@dataclass
class SwissRanking:
    """Standing of one team."""

    team_id: str
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    opponent_ids: List[str] = field(default_factory=list)
    buchholz_score: int = 0
    swiss_score: int = 0
    rank: int = 0

    @property
    def point_differential(self) -> int:
        return self.points_for - self.points_against

    @property
    def games_played(self) -> int:
        return self.wins + self.losses


def calculate_swiss_rankings(games: Iterable[Game], team_ids: Sequence[str]) -> List[SwissRanking]:
    """
    Compute Swiss standings.

    Args:
        games: Games of one season. Incomplete and tied games are ignored.
        team_ids: Participating teams, so teams without games appear. Teams
            seen only in games are ranked as well.

    Returns:
        SwissRankings sorted by rank (ties ordered by team id)
    """
    standings: Dict[str, SwissRanking] = {tid: SwissRanking(tid) for tid in dict.fromkeys(team_ids)}

    def record(team_id: str, opponent_id: str, scored: int, conceded: int) -> None:
        row = standings.setdefault(team_id, SwissRanking(team_id))
        if scored > conceded:
            row.wins += 1
        else:
            row.losses += 1
        row.points_for += scored
        row.points_against += conceded
        row.opponent_ids.append(opponent_id)

    for game in games:
        if game.home_team_id is None or game.away_team_id is None:
            continue
        if not game.is_completed or game.is_tie:
            continue
        record(game.home_team_id, game.away_team_id, game.home_score, game.away_score)
        record(game.away_team_id, game.home_team_id, game.away_score, game.home_score)

    rows = list(standings.values())

    for row in rows:
        row.buchholz_score = sum(standings[opp].wins for opp in row.opponent_ids)
        row.swiss_score = 2 * row.wins + row.buchholz_score

    rows.sort(key=lambda r: (-r.swiss_score, -r.point_differential, r.team_id))

    previous_key = None
    for position, row in enumerate(rows, start=1):
        key = (row.swiss_score, row.point_differential)
        row.rank = rows[position - 2].rank if key == previous_key else position
        previous_key = key
    return rows


def initial_seeding_rank(team_id: str, seeding: Sequence[str]) -> Optional[int]:
    """1-based position of a team in an initial seeding list, or None."""
    try:
        return list(seeding).index(team_id) + 1
    except ValueError:
        return None


def swiss_rankings_to_dataframe(rankings: Sequence[SwissRanking]) -> pl.DataFrame:
    """Standings as a Polars DataFrame."""
    return pl.DataFrame(
        {
            "rank": [r.rank for r in rankings],
            "team_id": [r.team_id for r in rankings],
            "wins": [r.wins for r in rankings],
            "losses": [r.losses for r in rankings],
            "points_for": [r.points_for for r in rankings],
            "points_against": [r.points_against for r in rankings],
            "point_differential": [r.point_differential for r in rankings],
            "buchholz": [r.buchholz_score for r in rankings],
            "swiss_score": [r.swiss_score for r in rankings],
        },
        schema_overrides={"team_id": pl.Utf8},
    )
