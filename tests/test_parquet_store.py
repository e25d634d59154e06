"""Tests for the parquet-directory store and the command line interface."""

import sys

import polars as pl
import pytest

from league_rankings import ConcurrentRunError, ParquetDocumentStore, RankingEngine
from league_rankings.cli.main import main
from league_rankings.persistence.documents import RankingDocument

from helpers import generate_league


def write_league(directory, seasons, teams, games):
    pl.DataFrame([s.to_document() for s in seasons]).write_parquet(directory / "seasons.parquet")
    pl.DataFrame([t.to_document() for t in teams]).write_parquet(directory / "teams.parquet")
    pl.DataFrame([g.to_document() for g in games], infer_schema_length=None).write_parquet(
        directory / "games.parquet"
    )


@pytest.fixture
def league_dir(tmp_path):
    seasons, teams, games = generate_league()
    write_league(tmp_path, seasons, teams, games)
    return tmp_path


def test_store_reads_input_collections(league_dir):
    store = ParquetDocumentStore(league_dir)
    assert [s.season_id for s in store.list_seasons()] == ["s1", "s2", "s3"]
    assert len(store.games_for_season("s2")) == 12
    team = store.get_team("s1-t0")
    assert len(team.roster) == 3
    assert team.season_id == "s1"


def test_state_survives_reopening(league_dir):
    store = ParquetDocumentStore(league_dir)
    result = RankingEngine.from_store(store).run_full()
    assert result.ok, result.error
    for name in ("rankings", "ranking_history", "calculated_rounds", "calculations"):
        assert (league_dir / f"{name}.parquet").exists(), f"{name}.parquet not written"

    reopened = ParquetDocumentStore(league_dir)
    assert len(reopened.load_rankings()) == result.players_ranked
    latest = reopened.latest_snapshot()
    assert latest.sequence == 9
    assert latest.snapshot_id == store.latest_snapshot().snapshot_id

    resumed = RankingEngine.from_store(reopened).run_incremental()
    assert resumed.ok, resumed.error
    assert resumed.rounds_already_calculated == 18
    assert resumed.rounds_processed == 0
    for player_id, doc in store.load_rankings().items():
        again = RankingDocument.from_document(reopened.load_rankings()[player_id])
        assert again.mu == pytest.approx(doc["mu"])
        assert again.rank == doc["rank"]


def test_run_lock_spans_store_instances(league_dir):
    first = ParquetDocumentStore(league_dir)
    second = ParquetDocumentStore(league_dir)

    first.acquire_run_lock("run-1", ["s1", "s2"])
    with pytest.raises(ConcurrentRunError) as info:
        second.acquire_run_lock("run-2", ["s2"])
    assert info.value.holder == "run-1"

    first.release_run_lock("run-1", ["s1", "s2"])
    second.acquire_run_lock("run-2", ["s2"])
    second.release_run_lock("run-2", ["s2"])
    assert not list((league_dir / ".locks").iterdir())


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["league-rankings", *argv])
    return main()


def test_cli_full_then_top(league_dir, monkeypatch, capsys):
    output = league_dir / "out.parquet"
    assert run_cli(monkeypatch, "full", str(league_dir), "--top", "5", "-o", str(output)) == 0
    printed = capsys.readouterr().out
    assert "completed" in printed
    assert output.exists()
    assert pl.read_parquet(output).height > 0

    assert run_cli(monkeypatch, "incremental", str(league_dir)) == 0
    assert "Rounds already calculated: 18" in capsys.readouterr().out

    assert run_cli(monkeypatch, "top", str(league_dir), "-n", "3") == 0
    assert "Top 3 players" in capsys.readouterr().out


def test_cli_top_without_rankings(league_dir, monkeypatch, capsys):
    assert run_cli(monkeypatch, "top", str(league_dir)) == 1
    assert "No rankings found" in capsys.readouterr().out


def test_cli_swiss(league_dir, monkeypatch, capsys):
    output = league_dir / "standings.parquet"
    assert run_cli(monkeypatch, "swiss", str(league_dir), "--season", "s1", "-o", str(output)) == 0
    standings = pl.read_parquet(output)
    assert standings.height == 4
    assert standings["rank"][0] == 1
    assert set(standings["team_id"]) == {"s1-t0", "s1-t1", "s1-t2", "s1-t3"}

    assert run_cli(monkeypatch, "swiss", str(league_dir), "--season", "nope") == 1


def test_cli_concurrent_run_exit_code(league_dir, monkeypatch, capsys):
    holder = ParquetDocumentStore(league_dir)
    holder.acquire_run_lock("other", ["s1"])
    assert run_cli(monkeypatch, "full", str(league_dir)) == 2
    assert "locked" in capsys.readouterr().err
    holder.release_run_lock("other", ["s1"])


def test_cli_without_command(monkeypatch):
    assert run_cli(monkeypatch, "--log-level", "INFO") == 1
