"""End-to-end tests for full and incremental ranking runs."""

import threading
from datetime import timedelta

import pytest

from league_rankings import (
    ConcurrentRunError,
    Elo,
    EloConfig,
    EngineConfig,
    MemoryDocumentStore,
    PersistenceError,
    RankingEngine,
    RunStatus,
    Season,
)
from league_rankings.base import PlayerTable
from league_rankings.persistence.documents import RankingDocument
from league_rankings.persistence.memory import Collections
from league_rankings.processing.tracker import RoundTracker, should_count_game

from helpers import EPOCH, generate_league, league_store, make_game, make_team


def stored_ratings(store):
    return {
        pid: RankingDocument.from_document(doc)
        for pid, doc in store.load_rankings().items()
    }


def assert_same_ratings(left, right):
    assert set(left) == set(right), "Different player sets"
    for pid in left:
        a, b = left[pid], right[pid]
        assert a.mu == pytest.approx(b.mu, abs=1e-9), f"mu differs for {pid}: {a.mu} vs {b.mu}"
        assert a.sigma == pytest.approx(b.sigma, abs=1e-9), f"sigma differs for {pid}"
        assert a.rank == b.rank, f"rank differs for {pid}"
        assert a.total_games == b.total_games, f"total_games differs for {pid}"
        assert a.total_seasons == b.total_seasons, f"total_seasons differs for {pid}"
        assert a.is_active == b.is_active, f"active flag differs for {pid}"


def test_full_run_completes():
    seasons, teams, games = generate_league()
    store = league_store(seasons, teams, games)
    result = RankingEngine.from_store(store).run_full()

    assert result.status is RunStatus.COMPLETED, result.error
    assert result.ok
    assert result.season_ids == ["s1", "s2", "s3"]
    assert result.rounds_processed == 18
    assert result.games_processed == 36
    assert result.games_rated == 36
    assert result.games_counted == 36
    assert result.games_skipped == 0
    assert result.snapshots_written == 9
    assert result.players_ranked == store.count(Collections.RANKINGS)
    assert result.finished_at is not None

    total_appearances = sum(d.total_games for d in stored_ratings(store).values())
    assert total_appearances == 36 * 6

    assert result.rankings.get_rank(result.rankings.player_ids[0]) == 1
    assert result.rankings.top(5).height == 5
    assert "completed" in str(result)

    progress = store.get_progress(result.run_id)
    assert progress["status"] == "completed"
    assert progress["percent_complete"] == 100
    assert progress["system"] == "trueskill"


def test_snapshots_and_tracking_after_full_run():
    seasons, teams, games = generate_league()
    store = league_store(seasons, teams, games)
    result = RankingEngine.from_store(store).run_full()

    snapshots = store.snapshots()
    assert len(snapshots) == 9
    assert [s.sequence for s in snapshots] == list(range(1, 10))
    assert [(s.season_id, s.week) for s in snapshots[:3]] == [("s1", 1), ("s1", 2), ("s1", 3)]
    assert all(s.run_id == result.run_id for s in snapshots)
    assert all(len(s.game_ids) == 4 for s in snapshots)

    latest = store.latest_snapshot()
    assert latest.snapshot_id == snapshots[-1].snapshot_id
    assert latest.last_round_ms == max(g.start_ms for g in games)
    week_games = {e.player_id: e.games_this_week for e in latest.entries}
    assert sum(week_games.values()) == 4 * 6
    for entry in latest.entries:
        assert entry.change == pytest.approx(entry.mu - entry.start_of_week_mu)

    tracker = RoundTracker(store)
    assert len(tracker.calculated_round_ids()) == 18
    assert tracker.last_calculated_round_time() == latest.last_round_ms
    s1_rounds = tracker.rounds_for_season("s1")
    assert len(s1_rounds) == 6
    assert [r.round_start_ms for r in s1_rounds] == sorted(r.round_start_ms for r in s1_rounds)
    assert tracker.is_round_calculated(s1_rounds[0].round_id)
    assert tracker.reset(["s1"]) == 6
    assert len(tracker.calculated_round_ids(["s1", "s2", "s3"])) == 12


def test_full_run_is_repeatable():
    seasons, teams, games = generate_league()
    store = league_store(seasons, teams, games)
    engine = RankingEngine.from_store(store)

    engine.run_full()
    first = stored_ratings(store)
    second_result = engine.run_full()
    second = stored_ratings(store)

    assert second_result.rounds_processed == 18
    assert_same_ratings(first, second)
    assert all(d.last_rating_change == pytest.approx(0.0) for d in second.values())


def test_incremental_without_new_games_is_a_no_op():
    seasons, teams, games = generate_league()
    store = league_store(seasons, teams, games)
    engine = RankingEngine.from_store(store)
    engine.run_full()
    before = stored_ratings(store)

    result = engine.run_incremental()
    assert result.ok
    assert result.rounds_processed == 0
    assert result.rounds_already_calculated == 18
    assert result.snapshots_written == 0
    assert_same_ratings(before, stored_ratings(store))


def test_incremental_converges_with_full_run():
    seasons, teams, games = generate_league()
    # Cut between the two rounds of week 2 in season 2
    cut = seasons[1].date_start + timedelta(days=7, minutes=30)
    early = [g for g in games if g.start_time < cut]
    late = [g for g in games if g.start_time >= cut]
    assert early and late

    incremental_store = league_store(seasons, teams, early)
    engine = RankingEngine.from_store(incremental_store)
    assert engine.run_full().ok
    incremental_store.add_games(late)
    result = engine.run_incremental()

    assert result.ok
    assert not result.fell_back_to_full
    assert result.rounds_already_calculated == len({g.start_ms for g in early})
    assert result.rounds_processed == len({g.start_ms for g in late})
    assert result.games_counted == len(late)

    full_store = league_store(seasons, teams, games)
    assert RankingEngine.from_store(full_store).run_full().ok

    assert_same_ratings(stored_ratings(incremental_store), stored_ratings(full_store))


def test_mid_week_resume_extends_the_week_snapshot():
    seasons, teams, games = generate_league()
    cut = seasons[1].date_start + timedelta(days=7, minutes=30)

    incremental_store = league_store(seasons, teams, [g for g in games if g.start_time < cut])
    engine = RankingEngine.from_store(incremental_store)
    engine.run_full()
    incremental_store.add_games([g for g in games if g.start_time >= cut])
    assert engine.run_incremental().ok

    full_store = league_store(seasons, teams, games)
    RankingEngine.from_store(full_store).run_full()

    def week_snapshot(store):
        matching = [s for s in store.snapshots() if (s.season_id, s.week) == ("s2", 2)]
        return matching[-1]

    resumed, full = week_snapshot(incremental_store), week_snapshot(full_store)
    assert resumed.game_ids == full.game_ids, f"{resumed.game_ids} vs {full.game_ids}"
    assert len(resumed.game_ids) == 4

    full_entries = {e.player_id: e for e in full.entries}
    assert {e.player_id for e in resumed.entries} == set(full_entries)
    for entry in resumed.entries:
        other = full_entries[entry.player_id]
        pid = entry.player_id
        assert entry.start_of_week_mu == pytest.approx(other.start_of_week_mu, abs=1e-9), pid
        assert entry.change == pytest.approx(other.change, abs=1e-9), pid
        assert entry.games_this_week == other.games_this_week, pid
        assert entry.point_differential_this_week == other.point_differential_this_week, pid
        assert entry.rank == other.rank, pid


def test_rated_flag_survives_resume():
    seasons, teams, games = generate_league(num_seasons=2)
    excluded = [g.game_id for g in games if g.season_id == "s1"]
    system = Elo(EloConfig(default_team_strength=1100.0))

    store = league_store(seasons, teams, [g for g in games if g.season_id == "s1"])
    engine = RankingEngine.from_store(store, system=system)
    engine.run_full(rating_excluded=excluded)
    snapshot = store.latest_snapshot()
    assert snapshot.entries and not any(e.rated for e in snapshot.entries)
    table = PlayerTable.from_snapshot(snapshot, system.initial_mu, system.initial_sigma)
    assert not table.rated.any()

    store.add_games([g for g in games if g.season_id == "s2"])
    assert engine.run_incremental(rating_excluded=excluded).ok

    full_store = league_store(seasons, teams, games)
    RankingEngine.from_store(full_store, system=system).run_full(rating_excluded=excluded)
    assert_same_ratings(stored_ratings(store), stored_ratings(full_store))


def test_incremental_converges_across_season_boundaries():
    """Resume points at the end of a season and at the end of a week."""
    seasons, teams, games = generate_league(num_seasons=4, seed=11)
    full_store = league_store(seasons, teams, games)
    RankingEngine.from_store(full_store).run_full()
    expected = stored_ratings(full_store)

    cuts = [
        seasons[1].date_start,
        seasons[2].date_start,
        seasons[2].date_start + timedelta(days=7),
    ]
    for cut in cuts:
        store = league_store(seasons, teams, [g for g in games if g.start_time < cut])
        engine = RankingEngine.from_store(store)
        engine.run_full()
        store.add_games([g for g in games if g.start_time >= cut])
        result = engine.run_incremental()
        assert result.ok, f"Resume at {cut} failed: {result.error}"
        assert_same_ratings(stored_ratings(store), expected)


def test_incremental_without_snapshot_falls_back_to_full():
    seasons, teams, games = generate_league(num_seasons=2)
    store = league_store(seasons, teams, games)
    result = RankingEngine.from_store(store).run_incremental()

    assert result.ok
    assert result.fell_back_to_full
    assert result.rounds_processed == 12


def test_untracked_round_before_snapshot_is_stale():
    seasons, teams, games = generate_league(num_seasons=1)
    store = league_store(seasons, teams, games)
    engine = RankingEngine.from_store(store)
    engine.run_full()

    late_entry = make_game(
        "late-entry", "s1-t0", "s1-t1", 10, 2,
        start=EPOCH + timedelta(hours=3), season_id="s1",
    )
    store.add_games([late_entry])
    result = engine.run_incremental()

    assert result.ok
    assert result.rounds_stale == 1
    assert result.rounds_processed == 0

    # A full run picks it up
    result = engine.run_full()
    assert result.games_processed == len(games) + 1


def test_cancel_then_resume():
    seasons, teams, games = generate_league()
    cancel = threading.Event()

    class CancellingStore(MemoryDocumentStore):
        armed = True

        def get_team(self, team_id):
            if self.armed and team_id.startswith("s2-"):
                cancel.set()
            return super().get_team(team_id)

    store = CancellingStore()
    store.add_seasons(seasons)
    store.add_teams(teams)
    store.add_games(games)
    engine = RankingEngine.from_store(store)

    result = engine.run_full(cancel_event=cancel)
    assert result.status is RunStatus.CANCELLED
    assert result.rounds_processed == 7
    assert store.count(Collections.RANKINGS) == 0
    assert store.latest_snapshot().season_id == "s2"
    assert store.get_progress(result.run_id)["status"] == "cancelled"

    cancel.clear()
    store.armed = False
    resumed = engine.run_incremental()
    assert resumed.ok
    assert resumed.rounds_already_calculated == 7
    assert resumed.rounds_processed == 11

    full_store = league_store(seasons, teams, games)
    RankingEngine.from_store(full_store).run_full()
    assert_same_ratings(stored_ratings(store), stored_ratings(full_store))


def test_unusable_games_are_skipped():
    store = MemoryDocumentStore()
    store.add_seasons([Season("s1", "Season 1", EPOCH)])
    store.add_teams([
        make_team("a", ["p1", "p2"]),
        make_team("b", ["p3", "p4"]),
        make_team("empty", []),
    ])
    store.add_games([
        make_game("ok", "a", "b", 10, 4),
        make_game("no-away", "a", None, 10, 4),
        make_game("tie", "a", "b", 5, 5),
        make_game("ghost", "a", "ghost-team", 10, 4),
        make_game("empty", "empty", "b", 10, 4),
        make_game("unplayed", "a", "b", None, None),
    ])
    result = RankingEngine.from_store(store).run_full()

    assert result.ok
    assert result.games_processed == 1
    assert result.games_skipped == 4
    assert result.skip_reasons == {
        "missing_team_reference": 1,
        "tied_score": 1,
        "missing_team_document": 1,
        "empty_roster": 1,
    }
    assert ("ghost", "missing_team_document") in result.skipped_games
    assert result.rankings.get_rank("p1") == 1
    assert result.rankings.get_rank("p2") == 1
    assert result.rankings.get_rank("p3") == 3


def test_rating_excluded_games_still_count():
    seasons, teams, games = generate_league(num_seasons=1)
    store = league_store(seasons, teams, games)
    result = RankingEngine.from_store(store).run_full(rating_excluded=[g.game_id for g in games])

    assert result.games_rated == 0
    assert result.games_counted == len(games)
    docs = stored_ratings(store).values()
    assert all(d.mu == 25.0 for d in docs)
    assert all(d.rank == 1 for d in docs)
    assert sum(d.total_games for d in docs) == len(games) * 6


def test_missing_season_fails_before_locking():
    seasons, teams, games = generate_league(num_seasons=1)
    store = league_store(seasons, teams, games)
    engine = RankingEngine.from_store(store)

    result = engine.run_full(season_ids=["s1", "nope"])
    assert result.status is RunStatus.FAILED
    assert "nope" in result.error
    assert store.count(Collections.RANKINGS) == 0
    assert engine.run_full(season_ids=["s1"]).ok


def test_concurrent_run_is_rejected():
    seasons, teams, games = generate_league(num_seasons=2)
    store = league_store(seasons, teams, games)
    engine = RankingEngine.from_store(store)

    store.acquire_run_lock("other-run", ["s2"])
    with pytest.raises(ConcurrentRunError) as info:
        engine.run_full()
    assert info.value.season_ids == ["s2"]
    assert info.value.holder == "other-run"

    store.release_run_lock("other-run", ["s2"])
    assert engine.run_full().ok


def test_lock_is_released_after_failed_save():
    seasons, teams, games = generate_league(num_seasons=1)
    store = league_store(seasons, teams, games)
    engine = RankingEngine.from_store(store)

    store.fail_after_batches = 0
    result = engine.run_full()
    assert result.status is RunStatus.FAILED
    assert "batches committed" in result.error
    assert result.snapshots_written == 3

    store.fail_after_batches = None
    assert engine.run_full().ok


def test_failing_progress_sink_does_not_affect_run():
    class BrokenSink:
        def update_progress(self, run_id, fields):
            raise RuntimeError("progress backend down")

    seasons, teams, games = generate_league(num_seasons=1)
    store = league_store(seasons, teams, games)
    engine = RankingEngine(
        store, store, store, store, store, store,
        progress=BrokenSink(), config=EngineConfig(progress_every=1),
    )
    result = engine.run_full()
    assert result.ok
    assert result.games_processed == len(games)


def test_duplicate_snapshot_is_rejected():
    seasons, teams, games = generate_league(num_seasons=1)
    store = league_store(seasons, teams, games)
    RankingEngine.from_store(store).run_full()

    latest = store.latest_snapshot()
    with pytest.raises(PersistenceError):
        store.append_snapshot(latest)


def test_elo_run():
    seasons, teams, games = generate_league()
    store = league_store(seasons, teams, games)
    result = RankingEngine.from_store(store, system=Elo()).run_full()

    assert result.ok
    docs = stored_ratings(store).values()
    assert all(d.sigma == 0.0 for d in docs)
    assert any(abs(d.mu - 1200.0) > 1e-6 for d in docs)
    assert store.get_progress(result.run_id)["system"] == "elo"


def test_should_count_game():
    assert should_count_game(100, None)
    assert not should_count_game(100, 100)
    assert should_count_game(101, 100)
    assert not should_count_game(99, 100)
