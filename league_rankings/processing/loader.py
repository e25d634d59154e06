"""Load completed games for a season scope in chronological order."""

import logging
from dataclasses import replace
from datetime import timedelta
from typing import List, Optional, Sequence

from ..data.dataset import GameDataset
from ..data.types import Game, Season
from ..exceptions import MissingSeasonError
from ..persistence.protocols import GameRepository
from ..utils.timestamps import to_epoch_ms

logger = logging.getLogger(__name__)

WEEK_MS = int(timedelta(days=7).total_seconds() * 1000)


def week_of_season(game: Game, season: Season) -> int:
    """Season-relative week (1-based), counted in 7-day blocks from the season start."""
    if game.week is not None:
        return game.week
    elapsed = game.start_ms - to_epoch_ms(season.date_start)
    return max(1, 1 + elapsed // WEEK_MS)


class GameLoader:
    """
    Fetches seasons and their completed games from a GameRepository.

    Seasons are ordered oldest first by start date. Each game is stamped
    with its season order counted back from the newest season in scope
    (0 = most recent) and with its season-relative week.
    """

    def __init__(self, repository: GameRepository, start_season_index: int = 0):
        self.repository = repository
        self.start_season_index = start_season_index

    def resolve_seasons(self, season_ids: Optional[Sequence[str]] = None) -> List[Season]:
        """
        Resolve the season scope, oldest first.

        Args:
            season_ids: Explicit scope. If None, every known season from
                ``start_season_index`` onward.

        Raises:
            MissingSeasonError: If an explicitly requested season has no document.
        """
        if season_ids is None:
            seasons = sorted(self.repository.list_seasons(), key=lambda s: s.date_start)
            return seasons[self.start_season_index:]

        seasons = []
        for season_id in dict.fromkeys(season_ids):
            season = self.repository.get_season(season_id)
            if season is None:
                raise MissingSeasonError(season_id)
            seasons.append(season)
        return sorted(seasons, key=lambda s: s.date_start)

    def load(self, seasons: Sequence[Season]) -> GameDataset:
        """Load completed games for the given seasons (oldest first)."""
        games: List[Game] = []
        n_seasons = len(seasons)
        for i, season in enumerate(seasons):
            season_order = n_seasons - 1 - i
            season_games = self.repository.games_for_season(season.season_id)
            completed = [g for g in season_games if g.is_completed]
            dropped = len(season_games) - len(completed)
            if dropped:
                logger.info(
                    "Season %s: ignoring %d games without a final score",
                    season.season_id, dropped,
                )
            for game in completed:
                games.append(
                    replace(
                        game,
                        season_order=season_order,
                        week=week_of_season(game, season),
                    )
                )
            logger.debug(
                "Loaded %d completed games for season %s (order %d)",
                len(completed), season.season_id, season_order,
            )

        return GameDataset(games, season_ids=[s.season_id for s in seasons])
