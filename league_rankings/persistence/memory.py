"""In-process document store implementing every repository protocol."""

import copy
import logging
import threading
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..data.types import Game, Season, Team
from ..exceptions import ConcurrentRunError, PersistenceError
from .documents import CalculatedRoundRecord, WeeklySnapshot

logger = logging.getLogger(__name__)


class Collections:
    """Collection names used by the engine."""

    SEASONS = "seasons"
    TEAMS = "teams"
    GAMES = "games"
    RANKINGS = "rankings"
    SNAPSHOTS = "ranking_history"
    ROUNDS = "calculated_rounds"
    CALCULATIONS = "calculations"


ID_FIELDS = {
    Collections.SEASONS: "season_id",
    Collections.TEAMS: "team_id",
    Collections.GAMES: "game_id",
    Collections.RANKINGS: "player_id",
    Collections.SNAPSHOTS: "snapshot_id",
    Collections.ROUNDS: "round_id",
    Collections.CALCULATIONS: "run_id",
}


class MemoryDocumentStore:
    """
    Dictionary-backed document store.

    Collections map document id -> document and keep insertion order, which
    stands in for document order when games are listed. All access is
    guarded by one re-entrant lock, so a batch commit is atomic with
    respect to readers and other writers.

    Attributes:
        fail_after_batches: Test hook. When set, ``commit_batch`` raises
            PersistenceError once this many batches have been committed.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._run_locks: Dict[str, str] = {}
        self._snapshot_sequence = 0
        self._batches_committed = 0
        self.fail_after_batches: Optional[int] = None

    # Generic document access

    def put(self, collection: str, doc_id: str, document: Mapping[str, Any]) -> None:
        with self._lock:
            self._collections[collection][doc_id] = copy.deepcopy(dict(document))

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._collections[collection].get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def documents(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(list(self._collections[collection].values()))

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections[collection])

    def add_seasons(self, seasons: Iterable[Season]) -> None:
        for season in seasons:
            self.put(Collections.SEASONS, season.season_id, season.to_document())

    def add_teams(self, teams: Iterable[Team]) -> None:
        for team in teams:
            self.put(Collections.TEAMS, team.team_id, team.to_document())

    def add_games(self, games: Iterable[Game]) -> None:
        for game in games:
            self.put(Collections.GAMES, game.game_id, game.to_document())

    def _on_commit(self, collection: str) -> None:
        """Hook for subclasses that mirror collections to durable storage."""

    # GameRepository

    def list_seasons(self) -> List[Season]:
        return [Season.from_document(d) for d in self.documents(Collections.SEASONS)]

    def get_season(self, season_id: str) -> Optional[Season]:
        doc = self.get(Collections.SEASONS, season_id)
        return Season.from_document(doc) if doc is not None else None

    def games_for_season(self, season_id: str) -> List[Game]:
        with self._lock:
            docs = [
                d for d in self._collections[Collections.GAMES].values()
                if str(d.get("season_id")) == season_id
            ]
            return [Game.from_document(d) for d in docs]

    # RosterRepository

    def get_team(self, team_id: str) -> Optional[Team]:
        doc = self.get(Collections.TEAMS, team_id)
        return Team.from_document(doc) if doc is not None else None

    def list_teams(self) -> List[Team]:
        return [Team.from_document(d) for d in self.documents(Collections.TEAMS)]

    # RankingWriter

    def commit_batch(self, collection: str, documents: Sequence[Tuple[str, Mapping[str, Any]]]) -> None:
        with self._lock:
            if self.fail_after_batches is not None and self._batches_committed >= self.fail_after_batches:
                raise PersistenceError(f"Simulated commit failure on '{collection}'")
            staged = {doc_id: copy.deepcopy(dict(doc)) for doc_id, doc in documents}
            self._collections[collection].update(staged)
            self._batches_committed += 1
            self._on_commit(collection)

    def load_rankings(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(dict(self._collections[Collections.RANKINGS]))

    # SnapshotStore

    def append_snapshot(self, snapshot: WeeklySnapshot) -> int:
        with self._lock:
            snapshots = self._collections[Collections.SNAPSHOTS]
            if snapshot.snapshot_id in snapshots:
                raise PersistenceError(f"Snapshot '{snapshot.snapshot_id}' already exists")
            self._snapshot_sequence += 1
            snapshot.sequence = self._snapshot_sequence
            snapshots[snapshot.snapshot_id] = snapshot.to_document()
            self._on_commit(Collections.SNAPSHOTS)
            return snapshot.sequence

    def latest_snapshot(self) -> Optional[WeeklySnapshot]:
        with self._lock:
            docs = self._collections[Collections.SNAPSHOTS].values()
            if not docs:
                return None
            latest = max(docs, key=lambda d: int(d.get("sequence") or 0))
            return WeeklySnapshot.from_document(copy.deepcopy(latest))

    def snapshots(self) -> List[WeeklySnapshot]:
        """All snapshots in sequence order."""
        docs = sorted(self.documents(Collections.SNAPSHOTS), key=lambda d: int(d.get("sequence") or 0))
        return [WeeklySnapshot.from_document(d) for d in docs]

    # RoundRecordStore

    def get_round_records(self, season_ids: Optional[Iterable[str]] = None) -> List[CalculatedRoundRecord]:
        scope = set(season_ids) if season_ids is not None else None
        return [
            CalculatedRoundRecord.from_document(d)
            for d in self.documents(Collections.ROUNDS)
            if scope is None or d.get("season_id") in scope
        ]

    def put_round_records(self, records: Sequence[CalculatedRoundRecord]) -> None:
        if not records:
            return
        with self._lock:
            rounds = self._collections[Collections.ROUNDS]
            for record in records:
                rounds[record.round_id] = record.to_document()
            self._on_commit(Collections.ROUNDS)

    def delete_round_records(self, season_ids: Iterable[str]) -> int:
        scope = set(season_ids)
        with self._lock:
            rounds = self._collections[Collections.ROUNDS]
            doomed = [rid for rid, d in rounds.items() if d.get("season_id") in scope]
            for rid in doomed:
                del rounds[rid]
            if doomed:
                self._on_commit(Collections.ROUNDS)
            return len(doomed)

    # RunLock

    def acquire_run_lock(self, run_id: str, season_ids: Iterable[str]) -> None:
        season_ids = list(season_ids)
        with self._lock:
            held = {sid: self._run_locks[sid] for sid in season_ids if sid in self._run_locks}
            if held:
                holders = sorted(set(held.values()))
                raise ConcurrentRunError(held.keys(), holder=", ".join(holders))
            for sid in season_ids:
                self._run_locks[sid] = run_id
        logger.debug("Run %s locked seasons %s", run_id, season_ids)

    def release_run_lock(self, run_id: str, season_ids: Iterable[str]) -> None:
        with self._lock:
            for sid in season_ids:
                if self._run_locks.get(sid) == run_id:
                    del self._run_locks[sid]

    # ProgressSink

    def update_progress(self, run_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            doc = self._collections[Collections.CALCULATIONS].setdefault(run_id, {"run_id": run_id})
            doc.update(copy.deepcopy(dict(fields)))
            self._on_commit(Collections.CALCULATIONS)

    def get_progress(self, run_id: str) -> Optional[Dict[str, Any]]:
        return self.get(Collections.CALCULATIONS, run_id)

    def __repr__(self) -> str:
        with self._lock:
            sizes = ", ".join(f"{name}={len(docs)}" for name, docs in self._collections.items())
        return f"{self.__class__.__name__}({sizes})"
