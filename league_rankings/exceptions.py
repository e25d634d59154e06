"""Exception hierarchy for the ranking engine.

Data errors on individual games (missing team reference, null score, tie)
are not exceptions: the processor skips those games and reports them in
the run result. The classes below cover the errors that end a run or
reject it before it starts.
"""

from typing import Iterable, Optional


class RankingEngineError(Exception):
    """Base class for all ranking engine errors."""


class MissingSeasonError(RankingEngineError):
    """A season in the run's scope has no season document."""

    def __init__(self, season_id: str):
        self.season_id = season_id
        super().__init__(f"Season '{season_id}' not found")


class CorruptGameError(RankingEngineError):
    """A game document cannot be interpreted at all (e.g. bad timestamp)."""

    def __init__(self, game_id: Optional[str], detail: str):
        self.game_id = game_id
        self.detail = detail
        super().__init__(f"Corrupt game record '{game_id}': {detail}")


class ConcurrentRunError(RankingEngineError):
    """Another run already holds the lock for one of the requested seasons."""

    def __init__(self, season_ids: Iterable[str], holder: Optional[str] = None):
        self.season_ids = sorted(season_ids)
        self.holder = holder
        message = f"Seasons {', '.join(self.season_ids)} are locked"
        if holder:
            message += f" by run '{holder}'"
        super().__init__(message)


class PersistenceError(RankingEngineError):
    """A write to the document store failed.

    ``committed`` is the number of batches that were committed before the
    failure. Those batches are not rolled back.
    """

    def __init__(self, message: str, committed: int = 0, total: int = 0):
        self.committed = committed
        self.total = total
        if total:
            message = f"{message} ({committed}/{total} batches committed)"
        super().__init__(message)
