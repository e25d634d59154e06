"""
Command-line interface for league rankings.

A data directory holds one parquet file per collection. Inputs are
``seasons.parquet``, ``teams.parquet`` and ``games.parquet``. Runs write
``rankings.parquet``, ``ranking_history.parquet``,
``calculated_rounds.parquet`` and ``calculations.parquet`` next to them.

Usage:
    python -m league_rankings full <data_dir> [options]
    python -m league_rankings incremental <data_dir> [options]
    python -m league_rankings top <data_dir> [-n N]
    python -m league_rankings swiss <data_dir> --season ID [options]
"""

import argparse
import sys

import polars as pl

from ..exceptions import ConcurrentRunError


def build_engine(args):
    """Create a store-backed engine from parsed arguments."""
    from ..config import EngineConfig
    from ..persistence import ParquetDocumentStore
    from ..processing import RankingEngine
    from ..systems import get_system

    store = ParquetDocumentStore(args.data)
    config = EngineConfig(
        start_season_index=args.start_season_index,
        apply_decay=not args.no_decay,
        decay_factor=args.decay_factor,
        batch_limit=args.batch_limit,
        progress_every=args.progress_every,
    )
    return RankingEngine.from_store(store, system=get_system(args.system), config=config)


def _run(args, mode) -> int:
    from ..processing import RunMode

    engine = build_engine(args)
    print(f"Running {mode} calculation with {engine.system!r}...")

    try:
        result = engine.run(
            RunMode(mode),
            season_ids=args.seasons,
            rating_excluded=args.exclude or (),
        )
    except ConcurrentRunError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(f"\n{result}")
    if not result.ok:
        return 1

    if result.rankings is not None:
        print(f"\nTop {args.top} players:")
        print(result.rankings.top(args.top))
        if args.output:
            result.rankings.save(args.output)
            print(f"\nSaved rankings to {args.output}")
    return 0


def cmd_full(args):
    """Reprocess every round and rewrite rankings."""
    return _run(args, "full")


def cmd_incremental(args):
    """Apply only new rounds, resuming from the latest snapshot."""
    return _run(args, "incremental")


def cmd_top(args):
    """Show persisted rankings."""
    from ..persistence import ParquetDocumentStore, RankingDocument
    from ..results import RankingTable

    store = ParquetDocumentStore(args.data)
    docs = [RankingDocument.from_document(d) for d in store.load_rankings().values()]
    if not docs:
        print("No rankings found. Run 'full' first.")
        return 1
    rankings = RankingTable.from_documents(docs)
    print(rankings)
    print(f"\nTop {args.n} players:")
    print(rankings.top(args.n, active_only=args.active))
    return 0


def cmd_swiss(args):
    """Compute Swiss standings for one season."""
    from ..persistence import ParquetDocumentStore
    from ..swiss import calculate_swiss_rankings, swiss_rankings_to_dataframe

    store = ParquetDocumentStore(args.data)
    if store.get_season(args.season) is None:
        print(f"Season not found: {args.season}", file=sys.stderr)
        return 1

    games = store.games_for_season(args.season)
    team_ids = args.teams
    if not team_ids:
        team_ids = [t.team_id for t in store.list_teams() if t.season_id == args.season]

    standings = swiss_rankings_to_dataframe(calculate_swiss_rankings(games, team_ids))
    with pl.Config(tbl_rows=max(len(standings), 10)):
        print(standings)
    if args.output:
        standings.write_parquet(args.output)
        print(f"\nSaved standings to {args.output}")
    return 0


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="League rankings CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default="WARNING",
                        help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Common arguments for rating runs
    def add_run_args(p):
        p.add_argument("data", help="Data directory with seasons/teams/games parquet files")
        p.add_argument("--seasons", nargs="+", help="Season ids in scope (default: all)")
        p.add_argument("--start-season-index", type=int, default=0,
                       help="First season (0 = earliest) when --seasons is not given")
        p.add_argument("--system", "-s", default="trueskill",
                       choices=["trueskill", "elo"],
                       help="Rating system to use (default: trueskill)")
        p.add_argument("--no-decay", action="store_true",
                       help="Disable inactivity decay at season transitions")
        p.add_argument("--decay-factor", type=float, default=0.95,
                       help="Inactivity decay per skipped season (default: 0.95)")
        p.add_argument("--exclude", nargs="+", metavar="GAME_ID",
                       help="Games that count for totals but not ratings")
        p.add_argument("--batch-limit", type=int, default=500,
                       help="Max writes per batch commit (default: 500)")
        p.add_argument("--progress-every", type=int, default=100,
                       help="Games between progress updates (default: 100)")
        p.add_argument("--top", "-t", type=int, default=10,
                       help="Show top N players (default: 10)")
        p.add_argument("--output", "-o", help="Save rankings to a parquet file")

    full_parser = subparsers.add_parser("full", help="Full recalculation")
    add_run_args(full_parser)

    incremental_parser = subparsers.add_parser("incremental", help="Incremental calculation")
    add_run_args(incremental_parser)

    top_parser = subparsers.add_parser("top", help="Show persisted rankings")
    top_parser.add_argument("data", help="Data directory")
    top_parser.add_argument("-n", type=int, default=10, help="Number of players")
    top_parser.add_argument("--active", action="store_true", help="Only active players")

    swiss_parser = subparsers.add_parser("swiss", help="Swiss standings for a season")
    swiss_parser.add_argument("data", help="Data directory")
    swiss_parser.add_argument("--season", required=True, help="Season id")
    swiss_parser.add_argument("--teams", nargs="+",
                              help="Participating team ids (default: the season's teams)")
    swiss_parser.add_argument("--output", "-o", help="Save standings to a parquet file")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    from ..utils import setup_logging

    setup_logging(args.log_level)

    commands = {
        "full": cmd_full,
        "incremental": cmd_incremental,
        "top": cmd_top,
        "swiss": cmd_swiss,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
