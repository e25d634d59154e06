"""Round tracking for idempotent incremental runs."""

import logging
from typing import Iterable, List, Optional, Sequence, Set

from ..data.types import GameRound
from ..persistence.documents import CalculatedRoundRecord
from ..persistence.protocols import RoundRecordStore
from ..utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def should_count_game(start_ms: int, resume_after_ms: Optional[int]) -> bool:
    """
    Whether a game counts toward lifetime totals.

    With no resume point (full run) every game counts. Otherwise only
    games strictly after the resume point count: a game at exactly the
    resume timestamp was already counted by the run that wrote the
    snapshot being resumed from.
    """
    return resume_after_ms is None or start_ms > resume_after_ms


class RoundTracker:
    """
    Reads and writes CalculatedRoundRecords for a season scope.

    A round id is its exact start timestamp, so a round marked calculated
    is never reprocessed by an incremental run.
    """

    def __init__(self, store: RoundRecordStore):
        self.store = store

    def calculated_round_ids(self, season_ids: Optional[Iterable[str]] = None) -> Set[str]:
        return {r.round_id for r in self.store.get_round_records(season_ids)}

    def is_round_calculated(self, round_id: str, season_ids: Optional[Iterable[str]] = None) -> bool:
        return round_id in self.calculated_round_ids(season_ids)

    def filter_uncalculated(
        self,
        rounds: Sequence[GameRound],
        season_ids: Optional[Iterable[str]] = None,
    ) -> List[GameRound]:
        """Rounds (in their given order) that have no tracking record."""
        done = self.calculated_round_ids(season_ids)
        return [r for r in rounds if r.round_id not in done]

    def last_calculated_round_time(self, season_ids: Optional[Iterable[str]] = None) -> Optional[int]:
        """Start time (epoch ms) of the latest calculated round, or None."""
        records = self.store.get_round_records(season_ids)
        if not records:
            return None
        return max(r.round_start_ms for r in records)

    def rounds_for_season(self, season_id: str) -> List[CalculatedRoundRecord]:
        """Calculated rounds of one season, oldest first."""
        records = self.store.get_round_records([season_id])
        return sorted(records, key=lambda r: (r.round_start_ms, r.round_id))

    @staticmethod
    def make_record(game_round: GameRound, run_id: str) -> CalculatedRoundRecord:
        return CalculatedRoundRecord(
            round_id=game_round.round_id,
            round_start_ms=game_round.start_ms,
            season_id=game_round.season_id,
            game_count=len(game_round),
            calculation_id=run_id,
            calculated_at=utcnow(),
            game_ids=game_round.game_ids,
        )

    def mark_rounds_calculated(self, records: Sequence[CalculatedRoundRecord]) -> None:
        if records:
            self.store.put_round_records(records)
            logger.debug("Marked %d rounds calculated", len(records))

    def reset(self, season_ids: Iterable[str]) -> int:
        """Delete tracking records for the given seasons (full runs)."""
        season_ids = list(season_ids)
        removed = self.store.delete_round_records(season_ids)
        if removed:
            logger.info("Cleared %d round records for %d seasons", removed, len(season_ids))
        return removed
