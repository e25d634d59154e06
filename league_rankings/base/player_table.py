"""Player rating state for one computation run (numpy-backed arena)."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, TYPE_CHECKING

import numpy as np
import polars as pl

from ..utils.timestamps import from_epoch_ms

if TYPE_CHECKING:
    from ..persistence.documents import WeeklySnapshot


@dataclass(frozen=True)
class PlayerRatingState:
    """Read-only view of one player's rating state."""

    player_id: str
    name: str
    mu: float
    sigma: float
    total_games: int
    total_seasons: int
    seasons_played: FrozenSet[str]
    last_season_id: Optional[str]
    last_game_time: Optional[datetime]
    is_active: bool
    decay_seasons_applied: int = 0


class PlayerTable:
    """
    Arena of player rating state keyed by player identifier.

    Numeric state lives in contiguous numpy columns so rating kernels can
    gather and scatter by row index. Rows are created lazily on a player's
    first appearance and never removed during a run. Capacity doubles on
    growth, so row indices stay valid but array views taken before a
    growth do not.

    Columns:
        mu, sigma: Gaussian skill estimate (float64)
        rated: Whether the player has taken part in a rated game
        total_games, total_seasons: Lifetime counts (int64)
        last_game_ms: Start time of last game played, -1 if none
        decay_applied: Seasons of inactivity decay already applied
        active: Active/inactive flag
    """

    def __init__(self, initial_mu: float, initial_sigma: float, capacity: int = 64):
        self.initial_mu = float(initial_mu)
        self.initial_sigma = float(initial_sigma)
        capacity = max(1, capacity)
        self._size = 0
        self._index: Dict[str, int] = {}
        self._ids: List[str] = []
        self._names: List[str] = []
        self._seasons_played: List[Set[str]] = []
        self._last_season_id: List[Optional[str]] = []

        self._mu = np.empty(capacity, dtype=np.float64)
        self._sigma = np.empty(capacity, dtype=np.float64)
        self._rated = np.zeros(capacity, dtype=np.bool_)
        self._total_games = np.zeros(capacity, dtype=np.int64)
        self._total_seasons = np.zeros(capacity, dtype=np.int64)
        self._last_game_ms = np.full(capacity, -1, dtype=np.int64)
        self._decay_applied = np.zeros(capacity, dtype=np.int64)
        self._active = np.ones(capacity, dtype=np.bool_)

    # Column views (length = number of players)

    @property
    def mu(self) -> np.ndarray:
        return self._mu[: self._size]

    @property
    def sigma(self) -> np.ndarray:
        return self._sigma[: self._size]

    @property
    def rated(self) -> np.ndarray:
        return self._rated[: self._size]

    @property
    def total_games(self) -> np.ndarray:
        return self._total_games[: self._size]

    @property
    def total_seasons(self) -> np.ndarray:
        return self._total_seasons[: self._size]

    @property
    def last_game_ms(self) -> np.ndarray:
        return self._last_game_ms[: self._size]

    @property
    def decay_applied(self) -> np.ndarray:
        return self._decay_applied[: self._size]

    @property
    def active(self) -> np.ndarray:
        return self._active[: self._size]

    @property
    def player_ids(self) -> List[str]:
        return list(self._ids)

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def last_season_id(self, idx: int) -> Optional[str]:
        return self._last_season_id[idx]

    def __len__(self) -> int:
        return self._size

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._index

    def _grow(self, needed: int) -> None:
        capacity = len(self._mu)
        if needed <= capacity:
            return
        while capacity < needed:
            capacity *= 2
        for name in (
            "_mu", "_sigma", "_rated", "_total_games", "_total_seasons",
            "_last_game_ms", "_decay_applied", "_active",
        ):
            old = getattr(self, name)
            new = np.empty(capacity, dtype=old.dtype)
            new[: self._size] = old[: self._size]
            setattr(self, name, new)

    def ensure(self, player_id: str, name: str = "") -> int:
        """Return the row index for a player, creating it at the initial rating if new."""
        idx = self._index.get(player_id)
        if idx is not None:
            if name and not self._names[idx]:
                self._names[idx] = name
            return idx

        self._grow(self._size + 1)
        idx = self._size
        self._size += 1
        self._index[player_id] = idx
        self._ids.append(player_id)
        self._names.append(name)
        self._seasons_played.append(set())
        self._last_season_id.append(None)
        self._mu[idx] = self.initial_mu
        self._sigma[idx] = self.initial_sigma
        self._rated[idx] = False
        self._total_games[idx] = 0
        self._total_seasons[idx] = 0
        self._last_game_ms[idx] = -1
        self._decay_applied[idx] = 0
        self._active[idx] = True
        return idx

    def index(self, player_id: str) -> int:
        """Row index of a known player (KeyError if unknown)."""
        return self._index[player_id]

    def indices(self, player_ids: Iterable[str]) -> np.ndarray:
        """Row indices of known players as a contiguous int64 array."""
        return np.array([self._index[p] for p in player_ids], dtype=np.int64)

    def record_appearance(
        self,
        indices: np.ndarray,
        season_id: str,
        start_ms: int,
        counts_for_totals: bool,
    ) -> None:
        """
        Update bookkeeping for players who appeared in a game.

        Lifetime totals only move when the game counts toward totals. The
        season count goes up when the game's season differs from the
        player's last season.
        """
        for idx in indices:
            idx = int(idx)
            if counts_for_totals:
                self._total_games[idx] += 1
                if self._last_season_id[idx] != season_id:
                    self._total_seasons[idx] += 1
            self._seasons_played[idx].add(season_id)
            self._last_season_id[idx] = season_id
            if start_ms > self._last_game_ms[idx]:
                self._last_game_ms[idx] = start_ms
            self._active[idx] = True
            self._decay_applied[idx] = 0

    def get(self, player_id: str) -> PlayerRatingState:
        idx = self._index[player_id]
        last_ms = int(self._last_game_ms[idx])
        return PlayerRatingState(
            player_id=player_id,
            name=self._names[idx],
            mu=float(self._mu[idx]),
            sigma=float(self._sigma[idx]),
            total_games=int(self._total_games[idx]),
            total_seasons=int(self._total_seasons[idx]),
            seasons_played=frozenset(self._seasons_played[idx]),
            last_season_id=self._last_season_id[idx],
            last_game_time=from_epoch_ms(last_ms) if last_ms >= 0 else None,
            is_active=bool(self._active[idx]),
            decay_seasons_applied=int(self._decay_applied[idx]),
        )

    def states(self) -> Iterator[PlayerRatingState]:
        for player_id in self._ids:
            yield self.get(player_id)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: "WeeklySnapshot",
        initial_mu: float,
        initial_sigma: float,
    ) -> "PlayerTable":
        """
        Rebuild live state from a persisted weekly snapshot.

        Durable fields (rating, rated flag, lifetime totals, last season,
        last game time, active flag, decay counter) are restored. The
        per-run season-participation set starts empty.
        """
        table = cls(initial_mu, initial_sigma, capacity=max(64, len(snapshot.entries)))
        for entry in snapshot.entries:
            idx = table.ensure(entry.player_id, entry.player_name)
            table._mu[idx] = entry.mu
            table._sigma[idx] = entry.sigma
            table._rated[idx] = entry.rated
            table._total_games[idx] = entry.total_games
            table._total_seasons[idx] = entry.total_seasons
            table._last_season_id[idx] = entry.last_season_id
            table._last_game_ms[idx] = entry.last_game_ms if entry.last_game_ms is not None else -1
            table._active[idx] = entry.is_active
            table._decay_applied[idx] = entry.decay_seasons_applied
        return table

    def to_dataframe(self) -> pl.DataFrame:
        """Convert table to a Polars DataFrame."""
        return pl.DataFrame(
            {
                "player_id": self._ids,
                "name": self._names,
                "mu": self.mu.copy(),
                "sigma": self.sigma.copy(),
                "total_games": self.total_games.copy(),
                "total_seasons": self.total_seasons.copy(),
                "last_season_id": self._last_season_id,
                "is_active": self.active.copy(),
            },
            schema_overrides={"last_season_id": pl.Utf8},
        )

    def __repr__(self) -> str:
        return f"PlayerTable(players={self._size}, initial_mu={self.initial_mu})"
