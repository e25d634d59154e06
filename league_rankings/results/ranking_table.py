"""
Queryable ranking results.

Wraps the ranking documents produced by a run (or read back from a
store) and provides lookup and export helpers.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

import numpy as np
import polars as pl

from ..persistence.documents import RankingDocument


@dataclass
class RankingTable:
    """
    Final rankings for all known players, ordered by rank.

    Attributes:
        player_ids: Player identifiers in rank order
        names: Display names
        mu, sigma: Skill estimates
        ranks: Competition ranks (1 = best, ties share a rank)
        total_games, total_seasons: Lifetime counts
        last_rating_change: mu delta against the previous persisted ranking
        is_active: Active flag
    """

    player_ids: List[str]
    names: List[str]
    mu: np.ndarray
    sigma: np.ndarray
    ranks: np.ndarray
    total_games: np.ndarray
    total_seasons: np.ndarray
    last_rating_change: np.ndarray
    is_active: np.ndarray
    _index: Dict[str, int] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.mu = np.ascontiguousarray(self.mu, dtype=np.float64)
        self.sigma = np.ascontiguousarray(self.sigma, dtype=np.float64)
        self.ranks = np.ascontiguousarray(self.ranks, dtype=np.int64)
        self._index = {pid: i for i, pid in enumerate(self.player_ids)}

    @classmethod
    def from_documents(cls, documents: Iterable[RankingDocument]) -> "RankingTable":
        docs = sorted(documents, key=lambda d: (d.rank, d.player_id))
        return cls(
            player_ids=[d.player_id for d in docs],
            names=[d.player_name for d in docs],
            mu=np.array([d.mu for d in docs], dtype=np.float64),
            sigma=np.array([d.sigma for d in docs], dtype=np.float64),
            ranks=np.array([d.rank for d in docs], dtype=np.int64),
            total_games=np.array([d.total_games for d in docs], dtype=np.int64),
            total_seasons=np.array([d.total_seasons for d in docs], dtype=np.int64),
            last_rating_change=np.array([d.last_rating_change for d in docs], dtype=np.float64),
            is_active=np.array([d.is_active for d in docs], dtype=np.bool_),
        )

    @property
    def num_players(self) -> int:
        return len(self.player_ids)

    def __len__(self) -> int:
        return len(self.player_ids)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._index

    def get_rank(self, player_id: str) -> int:
        """Get rank of a specific player (1 = highest rated)."""
        return int(self.ranks[self._index[player_id]])

    def get_rating(self, player_id: str) -> Tuple[float, float]:
        """Get (mu, sigma) for a player."""
        i = self._index[player_id]
        return float(self.mu[i]), float(self.sigma[i])

    def top(self, n: int = 10, active_only: bool = False) -> pl.DataFrame:
        """
        Get top N ranked players.

        Returns DataFrame with columns: rank, player_id, name, mu, sigma,
        total_games, change
        """
        df = self.to_dataframe()
        if active_only:
            df = df.filter(pl.col("is_active"))
        return df.head(n).select(
            "rank", "player_id", "name", "mu", "sigma", "total_games",
            pl.col("last_rating_change").alias("change"),
        )

    def to_dataframe(self) -> pl.DataFrame:
        """All players in rank order."""
        return pl.DataFrame(
            {
                "rank": self.ranks,
                "player_id": self.player_ids,
                "name": self.names,
                "mu": self.mu,
                "sigma": self.sigma,
                "total_games": self.total_games,
                "total_seasons": self.total_seasons,
                "last_rating_change": self.last_rating_change,
                "is_active": self.is_active,
            },
            schema_overrides={"player_id": pl.Utf8, "name": pl.Utf8},
        )

    def save(self, path: str) -> None:
        """Save rankings to a parquet file."""
        self.to_dataframe().write_parquet(path)

    def __repr__(self) -> str:
        return f"RankingTable(players={self.num_players})"

    def __str__(self) -> str:
        """Pretty string representation."""
        if self.num_players == 0:
            return "Rankings\n  Players: 0"
        lines = [
            "Rankings",
            f"  Players: {self.num_players:,}",
            f"  Active: {int(self.is_active.sum()):,}",
            f"  mu range: {self.mu.min():.2f} - {self.mu.max():.2f}",
            f"  Mean mu: {self.mu.mean():.2f}",
        ]
        return "\n".join(lines)
