"""Structured outcome of a computation run."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .ranking_table import RankingTable


class RunStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RunResult:
    """
    What a full or incremental run did.

    Attributes:
        rounds_processed: Rounds folded into ratings by this run
        rounds_already_calculated: Rounds an incremental run skipped
            because they carry a tracking record
        rounds_stale: Untracked rounds at or before the snapshot resume
            point, which only a full run can apply
        games_processed: Games folded into the table
        games_skipped: Games left out (see skip_reasons / skipped_games)
        fell_back_to_full: Incremental run found no snapshot and replayed
            from the beginning
        error: Message of the error that failed the run
    """

    run_id: str
    mode: str
    status: RunStatus = RunStatus.RUNNING
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    season_ids: List[str] = field(default_factory=list)
    rounds_processed: int = 0
    rounds_already_calculated: int = 0
    rounds_stale: int = 0
    games_processed: int = 0
    games_rated: int = 0
    games_counted: int = 0
    games_skipped: int = 0
    skip_reasons: Dict[str, int] = field(default_factory=dict)
    skipped_games: List[Tuple[str, str]] = field(default_factory=list)
    snapshots_written: int = 0
    players_ranked: int = 0
    fell_back_to_full: bool = False
    error: Optional[str] = None
    rankings: Optional[RankingTable] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.COMPLETED

    def summary(self) -> Dict[str, object]:
        """Plain-dict view suitable for logging or a progress record."""
        return {
            "run_id": self.run_id,
            "mode": self.mode,
            "status": self.status.value,
            "rounds_processed": self.rounds_processed,
            "rounds_already_calculated": self.rounds_already_calculated,
            "rounds_stale": self.rounds_stale,
            "games_processed": self.games_processed,
            "games_skipped": self.games_skipped,
            "skip_reasons": dict(self.skip_reasons),
            "snapshots_written": self.snapshots_written,
            "players_ranked": self.players_ranked,
            "error": self.error,
        }

    def __str__(self) -> str:
        lines = [
            f"Run {self.run_id} ({self.mode}): {self.status.value}",
            f"  Rounds processed: {self.rounds_processed:,}",
            f"  Games processed: {self.games_processed:,}",
            f"  Games skipped: {self.games_skipped:,}",
        ]
        if self.rounds_already_calculated:
            lines.append(f"  Rounds already calculated: {self.rounds_already_calculated:,}")
        if self.rounds_stale:
            lines.append(f"  Stale rounds (need full run): {self.rounds_stale:,}")
        for reason, count in sorted(self.skip_reasons.items()):
            lines.append(f"    {reason}: {count}")
        lines.append(f"  Snapshots written: {self.snapshots_written}")
        lines.append(f"  Players ranked: {self.players_ranked:,}")
        if self.error:
            lines.append(f"  Error: {self.error}")
        return "\n".join(lines)
