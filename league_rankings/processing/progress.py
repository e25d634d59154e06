"""Best-effort progress reporting."""

import logging
from typing import Any, Optional

from ..persistence.protocols import ProgressSink
from ..utils.timestamps import utcnow

logger = logging.getLogger(__name__)

# Replay covers 0-90%, the ranking save the rest.
REPLAY_SHARE = 90


class ProgressReporter:
    """
    Writes a run's progress record to a ProgressSink.

    Reporting never affects the computation: sink failures are logged and
    dropped, and a missing sink turns every call into a no-op.
    """

    def __init__(self, sink: Optional[ProgressSink], run_id: str):
        self.sink = sink
        self.run_id = run_id
        self.failures = 0

    def update(self, **fields: Any) -> None:
        if self.sink is None:
            return
        fields["updated_at"] = utcnow()
        try:
            self.sink.update_progress(self.run_id, fields)
        except Exception:
            self.failures += 1
            logger.warning("Progress update for run %s failed", self.run_id, exc_info=True)

    def replay(self, games_done: int, total_games: int, step: str, **fields: Any) -> None:
        percent = round(games_done / total_games * REPLAY_SHARE) if total_games else 0
        self.update(
            current_step=step,
            percent_complete=percent,
            games_processed=games_done,
            total_games=total_games,
            **fields,
        )
