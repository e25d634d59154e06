"""Repository interfaces injected into the engine.

The engine never talks to a database client directly. Every read and
write goes through one of these protocols, so the rating pipeline can be
exercised against an in-memory store in tests and a parquet directory
from the CLI.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..data.types import Game, Season, Team
from .documents import CalculatedRoundRecord, WeeklySnapshot


@runtime_checkable
class GameRepository(Protocol):
    """Read-only access to seasons and their games."""

    def list_seasons(self) -> List[Season]:
        """All season documents."""
        ...

    def get_season(self, season_id: str) -> Optional[Season]:
        """Season document, or None if missing."""
        ...

    def games_for_season(self, season_id: str) -> List[Game]:
        """Every game of a season in document order (completed or not)."""
        ...


@runtime_checkable
class RosterRepository(Protocol):
    """Team lookup. A missing team document is reported as None."""

    def get_team(self, team_id: str) -> Optional[Team]:
        ...


@runtime_checkable
class RankingWriter(Protocol):
    """Batched document writes and the previously persisted rankings."""

    def commit_batch(self, collection: str, documents: Sequence[Tuple[str, Mapping[str, Any]]]) -> None:
        """Write a batch of (doc_id, document) pairs atomically (all or none)."""
        ...

    def load_rankings(self) -> Dict[str, Dict[str, Any]]:
        """Persisted ranking documents keyed by player_id."""
        ...


@runtime_checkable
class SnapshotStore(Protocol):
    """Append-only weekly snapshot history."""

    def append_snapshot(self, snapshot: WeeklySnapshot) -> int:
        """Persist a new snapshot and return its assigned sequence number.

        Raises PersistenceError if a snapshot with the same id exists.
        """
        ...

    def latest_snapshot(self) -> Optional[WeeklySnapshot]:
        """Snapshot with the highest sequence number, or None."""
        ...


@runtime_checkable
class RoundRecordStore(Protocol):
    """Persisted CalculatedRoundRecords."""

    def get_round_records(self, season_ids: Optional[Iterable[str]] = None) -> List[CalculatedRoundRecord]:
        ...

    def put_round_records(self, records: Sequence[CalculatedRoundRecord]) -> None:
        ...

    def delete_round_records(self, season_ids: Iterable[str]) -> int:
        ...


@runtime_checkable
class RunLock(Protocol):
    """Per-season mutual exclusion between computation runs."""

    def acquire_run_lock(self, run_id: str, season_ids: Iterable[str]) -> None:
        """Lock every season or none. Raises ConcurrentRunError on conflict."""
        ...

    def release_run_lock(self, run_id: str, season_ids: Iterable[str]) -> None:
        ...


@runtime_checkable
class ProgressSink(Protocol):
    """Small key-value progress record per run."""

    def update_progress(self, run_id: str, fields: Mapping[str, Any]) -> None:
        ...
