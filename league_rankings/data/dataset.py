"""Chronological game dataset and round grouping.

Uses Polars for the stable sort and the group-by that buckets games
sharing an exact start time into rounds.
"""

from typing import Dict, Iterator, List, Optional, Sequence

import numpy as np
import polars as pl

from .types import Game, GameRound


class GameDataset:
    """
    Completed games in deterministic chronological order, grouped into rounds.

    Ordering is a stable sort on start time (epoch milliseconds); games that
    share a timestamp keep the order in which they were loaded. A round is
    every game sharing one exact timestamp within one season, so its id is
    the epoch-ms timestamp. Only when two seasons have games at the very
    same instant is the id suffixed with ``:<season_id>`` to stay unique.

    Example:
        >>> dataset = GameDataset(games)
        >>> for game_round in dataset.iter_rounds():
        ...     print(game_round.round_id, len(game_round))
    """

    def __init__(self, games: Sequence[Game] = (), season_ids: Optional[Sequence[str]] = None):
        """
        Initialize dataset.

        Args:
            games: Games in load order
            season_ids: Season scope, oldest first. Defaults to the seasons
                present in ``games`` in order of first appearance.
        """
        self._games: List[Game] = list(games)
        self._rounds: List[GameRound] = []
        if season_ids is None:
            season_ids = list(dict.fromkeys(g.season_id for g in self._games))
        self._season_ids: List[str] = list(season_ids)
        self._df = self._build_frame()
        self._group_rounds()

    def _build_frame(self) -> pl.DataFrame:
        return pl.DataFrame(
            {
                "idx": np.arange(len(self._games), dtype=np.int64),
                "game_id": [g.game_id for g in self._games],
                "season_id": [g.season_id for g in self._games],
                "start_ms": np.array([g.start_ms for g in self._games], dtype=np.int64),
            },
            schema={
                "idx": pl.Int64,
                "game_id": pl.Utf8,
                "season_id": pl.Utf8,
                "start_ms": pl.Int64,
            },
        ).sort(["start_ms", "idx"])

    def _group_rounds(self) -> None:
        if self._df.height == 0:
            return

        groups = self._df.group_by(["start_ms", "season_id"], maintain_order=True).agg(
            pl.col("idx")
        )

        # Timestamps shared by more than one season need a disambiguated id
        seasons_per_ts = groups.group_by("start_ms").agg(pl.len().alias("n"))
        shared = set(seasons_per_ts.filter(pl.col("n") > 1)["start_ms"].to_list())

        for start_ms, season_id, indices in groups.iter_rows():
            games = tuple(self._games[i] for i in indices)
            round_id = str(start_ms)
            if start_ms in shared:
                round_id = f"{start_ms}:{season_id}"
            week = games[0].week if games[0].week is not None else 1
            self._rounds.append(
                GameRound(
                    round_id=round_id,
                    start_ms=int(start_ms),
                    season_id=season_id,
                    week=int(week),
                    games=games,
                )
            )

    @property
    def num_games(self) -> int:
        return len(self._games)

    @property
    def num_rounds(self) -> int:
        return len(self._rounds)

    @property
    def rounds(self) -> List[GameRound]:
        """Rounds in chronological order."""
        return list(self._rounds)

    @property
    def season_ids(self) -> List[str]:
        """Season scope, oldest first."""
        return list(self._season_ids)

    def season_positions(self) -> Dict[str, int]:
        """Map season id -> position in the scope (0 = oldest)."""
        return {sid: i for i, sid in enumerate(self._season_ids)}

    def iter_rounds(self) -> Iterator[GameRound]:
        """Iterate over rounds in chronological order."""
        return iter(self._rounds)

    def to_dataframe(self) -> pl.DataFrame:
        """Games in replay order with their round assignment."""
        round_of = {}
        for game_round in self._rounds:
            for game in game_round.games:
                round_of[game.game_id] = game_round.round_id
        return self._df.with_columns(
            pl.col("game_id").replace_strict(round_of, default=None).alias("round_id")
        ).drop("idx")

    def __len__(self) -> int:
        return len(self._games)

    def __repr__(self) -> str:
        return (
            f"GameDataset(games={self.num_games}, rounds={self.num_rounds}, "
            f"seasons={len(self._season_ids)})"
        )
