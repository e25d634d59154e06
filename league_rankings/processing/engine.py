"""
Full and incremental ranking runs.

A run resolves its season scope, takes the per-season run lock, loads
and groups games, replays rounds through the chronological processor,
and saves the final rankings in batches.

- Full: clears the scope's round tracking and replays every round from
  an empty table.
- Incremental: rebuilds the table from the most recent weekly snapshot
  and replays only rounds without a tracking record.

Both modes converge to the same ratings on the same complete game log.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from ..base import PlayerTable, RatingSystem
from ..config import EngineConfig
from ..data.dataset import GameDataset
from ..data.types import GameRound
from ..exceptions import CorruptGameError, MissingSeasonError, PersistenceError, RankingEngineError
from ..persistence.documents import WeeklySnapshot
from ..persistence.protocols import (
    GameRepository,
    ProgressSink,
    RankingWriter,
    RosterRepository,
    RoundRecordStore,
    RunLock,
    SnapshotStore,
)
from ..persistence.rankings import save_rankings
from ..results import RankingTable, RunResult, RunStatus
from ..systems.trueskill import TrueSkill
from ..utils.timestamps import utcnow
from .loader import GameLoader
from .processor import ChronologicalProcessor
from .progress import ProgressReporter
from .tracker import RoundTracker

logger = logging.getLogger(__name__)


class RunMode(Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass
class _ReplayPlan:
    table: PlayerTable
    rounds: List[GameRound]
    resume_after_ms: Optional[int] = None
    resume_from: Optional[WeeklySnapshot] = None


class RankingEngine:
    """
    Entry point for ranking computation runs.

    Parameters:
        games: Season and game documents
        rosters: Team documents
        writer: Ranking batch writes
        snapshots: Weekly snapshot history
        rounds: Calculated-round records
        lock: Per-season run lock
        progress: Optional progress sink
        system: Rating strategy (default: TrueSkill)
        config: Engine settings

    Example:
        >>> store = MemoryDocumentStore()
        >>> engine = RankingEngine.from_store(store)
        >>> result = engine.run_full()
        >>> print(result.rankings.top(10))
    """

    def __init__(
        self,
        games: GameRepository,
        rosters: RosterRepository,
        writer: RankingWriter,
        snapshots: SnapshotStore,
        rounds: RoundRecordStore,
        lock: RunLock,
        progress: Optional[ProgressSink] = None,
        system: Optional[RatingSystem] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        self.system = system or TrueSkill()
        self.rosters = rosters
        self.writer = writer
        self.snapshots = snapshots
        self.lock = lock
        self.progress = progress
        self.tracker = RoundTracker(rounds)
        self.loader = GameLoader(games, start_season_index=self.config.start_season_index)

    @classmethod
    def from_store(
        cls,
        store,
        system: Optional[RatingSystem] = None,
        config: Optional[EngineConfig] = None,
    ) -> "RankingEngine":
        """Build an engine whose every repository is one document store."""
        return cls(store, store, store, store, store, store, store, system=system, config=config)

    def run_full(
        self,
        season_ids: Optional[Sequence[str]] = None,
        apply_decay: Optional[bool] = None,
        rating_excluded: Iterable[str] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> RunResult:
        """Reprocess every round in scope, resetting round tracking."""
        return self.run(RunMode.FULL, season_ids, apply_decay, rating_excluded, cancel_event)

    def run_incremental(
        self,
        season_ids: Optional[Sequence[str]] = None,
        apply_decay: Optional[bool] = None,
        rating_excluded: Iterable[str] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> RunResult:
        """Apply only rounds not yet calculated, resuming from the latest snapshot."""
        return self.run(RunMode.INCREMENTAL, season_ids, apply_decay, rating_excluded, cancel_event)

    def run(
        self,
        mode: RunMode,
        season_ids: Optional[Sequence[str]] = None,
        apply_decay: Optional[bool] = None,
        rating_excluded: Iterable[str] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> RunResult:
        """
        Execute one run.

        Args:
            mode: FULL or INCREMENTAL
            season_ids: Season scope (default: every season from
                ``config.start_season_index``)
            apply_decay: Inactivity decay toggle (default: ``config.apply_decay``)
            rating_excluded: Game ids that count for totals but not ratings
            cancel_event: Set to stop the run at the next round boundary

        Returns:
            RunResult. Fatal data errors (missing season, corrupt game
            record) and persistence errors produce status FAILED.

        Raises:
            ConcurrentRunError: Another run holds a season in scope.
        """
        mode = RunMode(mode)
        run_id = f"{mode.value}-{uuid.uuid4().hex[:12]}"
        result = RunResult(run_id=run_id, mode=mode.value, started_at=utcnow())
        reporter = ProgressReporter(self.progress, run_id)
        if apply_decay is None:
            apply_decay = self.config.apply_decay
        excluded = frozenset(rating_excluded)

        try:
            seasons = self.loader.resolve_seasons(season_ids)
        except MissingSeasonError as exc:
            return self._fail(result, reporter, exc)
        scope = [s.season_id for s in seasons]
        result.season_ids = scope

        self.lock.acquire_run_lock(run_id, scope)
        logger.info("Run %s started: %s over %d seasons", run_id, mode.value, len(scope))
        try:
            reporter.update(
                type=mode.value,
                status=RunStatus.RUNNING.value,
                started_at=result.started_at,
                current_step="Loading games",
                percent_complete=0,
                total_seasons=len(scope),
                seasons_processed=0,
                system=self.system.name,
                apply_decay=apply_decay,
            )
            dataset = self.loader.load(seasons)
            plan = self._plan(mode, dataset, scope, result)

            processor = ChronologicalProcessor(
                self.system, self.rosters, self.tracker, self.snapshots,
                reporter, self.config, run_id,
            )
            stats = processor.run(
                plan.rounds,
                plan.table,
                dataset.season_positions(),
                resume_after_ms=plan.resume_after_ms,
                rating_excluded=excluded,
                apply_decay=apply_decay,
                cancel_event=cancel_event,
                resume_from=plan.resume_from,
            )
            result.rounds_processed = stats.rounds_processed
            result.games_processed = stats.games_processed
            result.games_rated = stats.games_rated
            result.games_counted = stats.games_counted
            result.games_skipped = stats.games_skipped
            result.skip_reasons = stats.skip_reasons()
            result.skipped_games = [(s.game_id, s.reason.value) for s in stats.skipped]
            result.snapshots_written = stats.snapshots_written

            if stats.cancelled:
                result.status = RunStatus.CANCELLED
                reporter.update(status=RunStatus.CANCELLED.value, current_step="Cancelled")
                return result

            reporter.update(current_step="Saving rankings", percent_complete=90)
            documents = save_rankings(
                self.writer,
                plan.table,
                batch_limit=self.config.batch_limit,
                precision=self.config.rank_precision,
            )
            result.players_ranked = len(documents)
            result.rankings = RankingTable.from_documents(documents)
            result.status = RunStatus.COMPLETED
            reporter.update(
                status=RunStatus.COMPLETED.value,
                current_step="Complete",
                percent_complete=100,
                seasons_processed=len(scope),
                last_completed_season=scope[-1] if scope else None,
            )
            logger.info(
                "Run %s completed: %d rounds, %d games, %d skipped, %d players",
                run_id, result.rounds_processed, result.games_processed,
                result.games_skipped, result.players_ranked,
            )
            return result
        except (CorruptGameError, PersistenceError) as exc:
            return self._fail(result, reporter, exc)
        except Exception:
            reporter.update(status=RunStatus.FAILED.value, current_step="Failed")
            raise
        finally:
            self.lock.release_run_lock(run_id, scope)
            result.finished_at = utcnow()

    def _plan(
        self,
        mode: RunMode,
        dataset: GameDataset,
        scope: List[str],
        result: RunResult,
    ) -> _ReplayPlan:
        if mode is RunMode.INCREMENTAL:
            snapshot = self.snapshots.latest_snapshot()
            if snapshot is not None:
                return self._plan_incremental(snapshot, dataset, scope, result)
            logger.warning("No snapshot to resume from; running a full replay instead")
            result.fell_back_to_full = True

        self.tracker.reset(scope)
        return _ReplayPlan(table=self.system.new_table(), rounds=dataset.rounds)

    def _plan_incremental(
        self,
        snapshot: WeeklySnapshot,
        dataset: GameDataset,
        scope: List[str],
        result: RunResult,
    ) -> _ReplayPlan:
        table = PlayerTable.from_snapshot(snapshot, self.system.initial_mu, self.system.initial_sigma)
        calculated = self.tracker.calculated_round_ids(scope)
        resume_after_ms = snapshot.last_round_ms

        rounds = []
        for game_round in dataset.rounds:
            if game_round.round_id in calculated:
                result.rounds_already_calculated += 1
            elif game_round.start_ms <= resume_after_ms:
                # Untracked but older than the snapshot: cannot be applied in order
                result.rounds_stale += 1
                logger.warning(
                    "Round %s (season %s) predates snapshot %s; run a full calculation to include it",
                    game_round.round_id, game_round.season_id, snapshot.snapshot_id,
                )
            else:
                rounds.append(game_round)

        logger.info(
            "Resuming from snapshot %s: %d players, %d new rounds",
            snapshot.snapshot_id, len(table), len(rounds),
        )
        return _ReplayPlan(
            table=table,
            rounds=rounds,
            resume_after_ms=resume_after_ms,
            resume_from=snapshot,
        )

    def _fail(self, result: RunResult, reporter: ProgressReporter, exc: RankingEngineError) -> RunResult:
        logger.error("Run %s failed: %s", result.run_id, exc)
        result.status = RunStatus.FAILED
        result.error = str(exc)
        result.finished_at = utcnow()
        reporter.update(status=RunStatus.FAILED.value, current_step="Failed", error=str(exc))
        return result
