"""
Chronological replay of game rounds through a rating system.

The processor is a small state machine:

    AWAITING_ROUND -> PROCESSING_ROUND -> AWAITING_ROUND ...
                   -> SNAPSHOT_PENDING (season/week boundary) -> AWAITING_ROUND
    ... -> DONE | CANCELLED | FAILED

Rounds are applied strictly in order; only roster lookups inside one
round run concurrently, and they complete before that round's update.
"""

import logging
import threading
from collections import Counter
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np

from ..base import PlayerTable, RatingSystem
from ..config import EngineConfig
from ..data.types import GameRound, ResolvedGame, Team
from ..persistence.documents import CalculatedRoundRecord, SnapshotEntry, WeeklySnapshot
from ..persistence.protocols import RosterRepository, SnapshotStore
from ..persistence.rankings import compute_competition_ranks
from ..systems.decay import apply_inactivity_decay
from ..utils.timestamps import utcnow
from .progress import ProgressReporter
from .tracker import RoundTracker, should_count_game

logger = logging.getLogger(__name__)


class ProcessorState(Enum):
    AWAITING_ROUND = "awaiting_round"
    PROCESSING_ROUND = "processing_round"
    SNAPSHOT_PENDING = "snapshot_pending"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class SkipReason(Enum):
    """Why a game was left out of rating computation."""

    MISSING_TEAM_REFERENCE = "missing_team_reference"
    INCOMPLETE_SCORE = "incomplete_score"
    TIED_SCORE = "tied_score"
    MISSING_TEAM_DOCUMENT = "missing_team_document"
    EMPTY_ROSTER = "empty_roster"


@dataclass(frozen=True)
class SkippedGame:
    game_id: str
    round_id: str
    reason: SkipReason


@dataclass
class ProcessingStats:
    """Counters collected while replaying rounds."""

    rounds_processed: int = 0
    games_processed: int = 0  # Resolved games folded into the table
    games_rated: int = 0  # Of those, games that changed ratings
    games_counted: int = 0  # Of those, games counted toward lifetime totals
    snapshots_written: int = 0
    seasons_processed: int = 0
    last_round_ms: Optional[int] = None
    cancelled: bool = False
    skipped: List[SkippedGame] = field(default_factory=list)

    @property
    def games_skipped(self) -> int:
        return len(self.skipped)

    def skip_reasons(self) -> Dict[str, int]:
        return dict(Counter(s.reason.value for s in self.skipped))


def _unique(player_ids) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(player_ids))


class RosterResolver:
    """
    Turns a round's games into ResolvedGames with winner/loser rosters.

    Team documents are fetched concurrently for the whole round and cached
    for the rest of the run.
    """

    def __init__(self, rosters: RosterRepository, executor: Executor):
        self.rosters = rosters
        self.executor = executor
        self._teams: Dict[str, Optional[Team]] = {}

    def _fetch(self, team_ids: Sequence[str]) -> None:
        missing = [t for t in dict.fromkeys(team_ids) if t not in self._teams]
        if not missing:
            return
        # Suspension point: every lookup finishes before the round is rated
        for team_id, team in zip(missing, self.executor.map(self.rosters.get_team, missing)):
            self._teams[team_id] = team

    def resolve(
        self, game_round: GameRound
    ) -> Tuple[List[ResolvedGame], List[SkippedGame], Dict[str, str]]:
        """
        Returns:
            (resolved games in load order, skipped games, player_id -> name)
        """
        skipped: List[SkippedGame] = []
        candidates = []
        for game in game_round.games:
            reason = None
            if game.home_team_id is None or game.away_team_id is None:
                reason = SkipReason.MISSING_TEAM_REFERENCE
            elif not game.is_completed:
                reason = SkipReason.INCOMPLETE_SCORE
            elif game.is_tie:
                reason = SkipReason.TIED_SCORE
            if reason is not None:
                skipped.append(SkippedGame(game.game_id, game_round.round_id, reason))
            else:
                candidates.append(game)

        self._fetch([t for g in candidates for t in (g.home_team_id, g.away_team_id)])

        resolved: List[ResolvedGame] = []
        names: Dict[str, str] = {}
        for game in candidates:
            home = self._teams.get(game.home_team_id)
            away = self._teams.get(game.away_team_id)
            if home is None or away is None:
                skipped.append(SkippedGame(game.game_id, game_round.round_id, SkipReason.MISSING_TEAM_DOCUMENT))
                continue
            if not home.roster or not away.roster:
                skipped.append(SkippedGame(game.game_id, game_round.round_id, SkipReason.EMPTY_ROSTER))
                continue
            for entry in home.roster + away.roster:
                if entry.player_name:
                    names.setdefault(entry.player_id, entry.player_name)
            home_ids = _unique(e.player_id for e in home.roster)
            away_ids = _unique(e.player_id for e in away.roster)
            if game.winner_is_home:
                resolved.append(ResolvedGame(game, home_ids, away_ids))
            else:
                resolved.append(ResolvedGame(game, away_ids, home_ids))
        return resolved, skipped, names


class ChronologicalProcessor:
    """
    Folds rounds through a rating system, writing weekly snapshots and
    round tracking records as it goes.

    Tracking records for a week's rounds are buffered and written only
    after that week's snapshot is written, so an interrupted run never
    leaves a round marked calculated without a snapshot containing it.

    Parameters:
        system: Live rating strategy
        rosters: Team lookup
        tracker: Round tracking
        snapshots: Weekly snapshot store
        progress: Best-effort progress reporter
        config: Engine settings
        run_id: Identifier of the current run
    """

    def __init__(
        self,
        system: RatingSystem,
        rosters: RosterRepository,
        tracker: RoundTracker,
        snapshots: SnapshotStore,
        progress: ProgressReporter,
        config: EngineConfig,
        run_id: str,
    ):
        self.system = system
        self.rosters = rosters
        self.tracker = tracker
        self.snapshots = snapshots
        self.progress = progress
        self.config = config
        self.run_id = run_id
        self._state = ProcessorState.AWAITING_ROUND
        self._reset_week()
        self._week_key: Optional[Tuple[str, int]] = None
        self._week_start_mu = np.empty(0, dtype=np.float64)
        self._snapshot_ids: Set[str] = set()

    @property
    def state(self) -> ProcessorState:
        return self._state

    def _reset_week(self) -> None:
        self._pending_records: List[CalculatedRoundRecord] = []
        self._week_game_ids: List[str] = []
        self._week_games: Counter = Counter()
        self._week_point_diff: Counter = Counter()

    def run(
        self,
        rounds: Sequence[GameRound],
        table: PlayerTable,
        season_positions: Mapping[str, int],
        resume_after_ms: Optional[int] = None,
        rating_excluded: AbstractSet[str] = frozenset(),
        apply_decay: bool = True,
        cancel_event: Optional[threading.Event] = None,
        resume_from: Optional[WeeklySnapshot] = None,
    ) -> ProcessingStats:
        """
        Replay rounds in order.

        Args:
            rounds: Rounds to apply, chronologically ordered
            table: Player state (modified in-place)
            season_positions: Season id -> position in scope (0 = oldest)
            resume_after_ms: Resume point of an incremental run
            rating_excluded: Game ids that count for totals but not ratings
            apply_decay: Run inactivity decay at season transitions
            cancel_event: Checked between rounds
            resume_from: Snapshot the table was rebuilt from. Rounds in its
                week extend that week instead of starting a new one.

        Returns:
            ProcessingStats
        """
        stats = ProcessingStats()
        total_games = sum(len(r) for r in rounds)
        games_seen = 0
        self._week_key = None
        self._reset_week()
        self._begin_week(table)
        if resume_from is not None:
            self._resume_week(resume_from, table)

        try:
            with ThreadPoolExecutor(
                max_workers=self.config.roster_workers, thread_name_prefix="roster"
            ) as pool:
                resolver = RosterResolver(self.rosters, pool)
                for game_round in rounds:
                    if cancel_event is not None and cancel_event.is_set():
                        self._flush_week(table, stats)
                        stats.cancelled = True
                        self._state = ProcessorState.CANCELLED
                        logger.warning(
                            "Run %s cancelled after %d rounds", self.run_id, stats.rounds_processed
                        )
                        return stats

                    key = (game_round.season_id, game_round.week)
                    if key != self._week_key:
                        self._flush_week(table, stats)
                        previous_season = self._week_key[0] if self._week_key else None
                        if previous_season is not None and previous_season != game_round.season_id:
                            self._season_transition(
                                table, previous_season, game_round.season_id,
                                season_positions, apply_decay, stats,
                                games_seen, total_games,
                            )
                        self._week_key = key
                        self._reset_week()
                        self._begin_week(table)

                    self._process_round(
                        game_round, table, resolver, resume_after_ms, rating_excluded, stats
                    )

                    before = games_seen // self.config.progress_every
                    games_seen += len(game_round)
                    if games_seen // self.config.progress_every > before:
                        self.progress.replay(
                            games_seen, total_games, f"Processing season {game_round.season_id}",
                            seasons_processed=stats.seasons_processed,
                        )

                self._flush_week(table, stats)
        except Exception:
            self._state = ProcessorState.FAILED
            raise

        self._state = ProcessorState.DONE
        self.progress.replay(games_seen, total_games, "Replay complete")
        return stats

    def _begin_week(self, table: PlayerTable) -> None:
        self._week_start_mu = table.mu.copy()

    def _resume_week(self, snapshot: WeeklySnapshot, table: PlayerTable) -> None:
        """Reopen the snapshot's week so later rounds in it extend the same totals."""
        self._week_key = (snapshot.season_id, snapshot.week)
        self._week_game_ids = list(snapshot.game_ids)
        for entry in snapshot.entries:
            idx = table.index(entry.player_id)
            self._week_start_mu[idx] = entry.start_of_week_mu
            if entry.games_this_week:
                self._week_games[idx] = entry.games_this_week
            if entry.point_differential_this_week:
                self._week_point_diff[idx] = entry.point_differential_this_week

    def _season_transition(
        self,
        table: PlayerTable,
        previous_season: str,
        season_id: str,
        season_positions: Mapping[str, int],
        apply_decay: bool,
        stats: ProcessingStats,
        games_seen: int,
        total_games: int,
    ) -> None:
        stats.seasons_processed += 1
        logger.info("Season %s complete, starting %s", previous_season, season_id)
        self.progress.replay(
            games_seen, total_games, f"Starting season {season_id}",
            seasons_processed=stats.seasons_processed,
            last_completed_season=previous_season,
        )
        if apply_decay and season_id in season_positions:
            apply_inactivity_decay(
                table,
                season_id,
                season_positions,
                baseline=self.system.initial_mu,
                factor=self.config.decay_factor,
                inactive_after=self.config.inactive_after_seasons,
            )

    def _process_round(
        self,
        game_round: GameRound,
        table: PlayerTable,
        resolver: RosterResolver,
        resume_after_ms: Optional[int],
        rating_excluded: AbstractSet[str],
        stats: ProcessingStats,
    ) -> None:
        self._state = ProcessorState.PROCESSING_ROUND
        resolved, skipped, names = resolver.resolve(game_round)

        for skip in skipped:
            logger.warning(
                "Skipping game %s in round %s: %s", skip.game_id, skip.round_id, skip.reason.value
            )
        stats.skipped.extend(skipped)

        for game in resolved:
            for player_id in game.winner_ids + game.loser_ids:
                table.ensure(player_id, names.get(player_id, ""))

        stats.games_rated += self.system.apply_round(resolved, table, rating_excluded)

        for game in resolved:
            counts = should_count_game(game.game.start_ms, resume_after_ms)
            winners = table.indices(game.winner_ids)
            losers = table.indices(game.loser_ids)
            table.record_appearance(winners, game.game.season_id, game.game.start_ms, counts)
            table.record_appearance(losers, game.game.season_id, game.game.start_ms, counts)
            margin = game.point_differential
            for idx in winners:
                self._week_games[int(idx)] += 1
                self._week_point_diff[int(idx)] += margin
            for idx in losers:
                self._week_games[int(idx)] += 1
                self._week_point_diff[int(idx)] -= margin
            self._week_game_ids.append(game.game.game_id)
            stats.games_counted += int(counts)

        stats.games_processed += len(resolved)
        stats.rounds_processed += 1
        stats.last_round_ms = game_round.start_ms
        self._pending_records.append(RoundTracker.make_record(game_round, self.run_id))
        logger.debug(
            "Round %s: %d games rated, %d skipped", game_round.round_id, len(resolved), len(skipped)
        )
        self._state = ProcessorState.AWAITING_ROUND

    def _snapshot_id(self, season_id: str, week: int) -> str:
        snapshot_id = WeeklySnapshot.make_id(season_id, week, self.run_id)
        n = 1
        candidate = snapshot_id
        while candidate in self._snapshot_ids:
            n += 1
            candidate = f"{snapshot_id}_{n}"
        self._snapshot_ids.add(candidate)
        return candidate

    def _flush_week(self, table: PlayerTable, stats: ProcessingStats) -> None:
        """Write the open week's snapshot, then its rounds' tracking records."""
        if not self._pending_records:
            return
        self._state = ProcessorState.SNAPSHOT_PENDING
        season_id, week = self._week_key

        ranks = compute_competition_ranks(table.mu, self.config.rank_precision)
        n_start = len(self._week_start_mu)
        entries = []
        for idx, state in enumerate(table.states()):
            start_mu = float(self._week_start_mu[idx]) if idx < n_start else table.initial_mu
            last_ms = int(table.last_game_ms[idx])
            entries.append(
                SnapshotEntry(
                    player_id=state.player_id,
                    player_name=state.name,
                    mu=state.mu,
                    sigma=state.sigma,
                    rank=int(ranks[idx]),
                    total_games=state.total_games,
                    total_seasons=state.total_seasons,
                    last_season_id=state.last_season_id,
                    last_game_ms=last_ms if last_ms >= 0 else None,
                    is_active=state.is_active,
                    decay_seasons_applied=state.decay_seasons_applied,
                    start_of_week_mu=start_mu,
                    change=state.mu - start_mu,
                    games_this_week=self._week_games.get(idx, 0),
                    point_differential_this_week=self._week_point_diff.get(idx, 0),
                    rated=bool(table.rated[idx]),
                )
            )

        snapshot = WeeklySnapshot(
            snapshot_id=self._snapshot_id(season_id, week),
            season_id=season_id,
            week=week,
            run_id=self.run_id,
            created_at=utcnow(),
            last_round_ms=self._pending_records[-1].round_start_ms,
            game_ids=list(self._week_game_ids),
            entries=entries,
        )
        self.snapshots.append_snapshot(snapshot)
        stats.snapshots_written += 1
        self.tracker.mark_rounds_calculated(self._pending_records)
        logger.info(
            "Snapshot %s: %d players, %d rounds", snapshot.snapshot_id, len(entries), len(self._pending_records)
        )
        self._reset_week()
        self._state = ProcessorState.AWAITING_ROUND
