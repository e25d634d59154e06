"""Persisted document shapes: rankings, weekly snapshots, round records, progress."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..utils.timestamps import from_epoch_ms


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return from_epoch_ms(int(value))


@dataclass
class RankingDocument:
    """Final per-player ranking record, keyed by player_id."""

    player_id: str
    player_name: str
    mu: float
    sigma: float
    rank: int
    total_games: int
    total_seasons: int
    last_season_id: Optional[str]
    last_rating_change: float
    is_active: bool
    last_updated: datetime

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "RankingDocument":
        return cls(
            player_id=str(doc["player_id"]),
            player_name=str(doc.get("player_name") or ""),
            mu=float(doc["mu"]),
            sigma=float(doc["sigma"]),
            rank=int(doc["rank"]),
            total_games=int(doc.get("total_games") or 0),
            total_seasons=int(doc.get("total_seasons") or 0),
            last_season_id=doc.get("last_season_id"),
            last_rating_change=float(doc.get("last_rating_change") or 0.0),
            is_active=bool(doc.get("is_active", True)),
            last_updated=_as_datetime(doc.get("last_updated")),
        )


@dataclass
class SnapshotEntry:
    """One player's state inside a weekly snapshot."""

    player_id: str
    player_name: str
    mu: float
    sigma: float
    rank: int
    total_games: int
    total_seasons: int
    last_season_id: Optional[str]
    last_game_ms: Optional[int]
    is_active: bool
    decay_seasons_applied: int
    start_of_week_mu: float
    change: float
    games_this_week: int
    point_differential_this_week: int
    rated: bool = True

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "SnapshotEntry":
        last_game_ms = doc.get("last_game_ms")
        return cls(
            player_id=str(doc["player_id"]),
            player_name=str(doc.get("player_name") or ""),
            mu=float(doc["mu"]),
            sigma=float(doc["sigma"]),
            rank=int(doc["rank"]),
            total_games=int(doc.get("total_games") or 0),
            total_seasons=int(doc.get("total_seasons") or 0),
            last_season_id=doc.get("last_season_id"),
            last_game_ms=int(last_game_ms) if last_game_ms is not None else None,
            is_active=bool(doc.get("is_active", True)),
            decay_seasons_applied=int(doc.get("decay_seasons_applied") or 0),
            start_of_week_mu=float(doc.get("start_of_week_mu", doc["mu"])),
            change=float(doc.get("change") or 0.0),
            games_this_week=int(doc.get("games_this_week") or 0),
            point_differential_this_week=int(doc.get("point_differential_this_week") or 0),
            rated=bool(doc.get("rated", True)),
        )


@dataclass
class WeeklySnapshot:
    """
    Ratings of all known players at the end of one season week.

    Append-only: a snapshot is never rewritten, only superseded by one
    with a higher ``sequence``. ``last_round_ms`` is the start time of
    the last round folded into it, which is the resume point for an
    incremental run.
    """

    snapshot_id: str
    season_id: str
    week: int
    run_id: str
    created_at: datetime
    last_round_ms: int
    game_ids: List[str]
    entries: List[SnapshotEntry]
    sequence: int = 0

    @staticmethod
    def make_id(season_id: str, week: int, run_id: str) -> str:
        return f"{season_id}_week_{week}_{run_id}"

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "WeeklySnapshot":
        return cls(
            snapshot_id=str(doc["snapshot_id"]),
            season_id=str(doc["season_id"]),
            week=int(doc["week"]),
            run_id=str(doc["run_id"]),
            created_at=_as_datetime(doc["created_at"]),
            last_round_ms=int(doc["last_round_ms"]),
            game_ids=[str(g) for g in (doc.get("game_ids") or [])],
            entries=[SnapshotEntry.from_document(e) for e in (doc.get("entries") or [])],
            sequence=int(doc.get("sequence") or 0),
        )


@dataclass
class CalculatedRoundRecord:
    """Marker that a round has been folded into ratings by a run."""

    round_id: str
    round_start_ms: int
    season_id: str
    game_count: int
    calculation_id: str
    calculated_at: datetime
    game_ids: Tuple[str, ...] = field(default_factory=tuple)

    def to_document(self) -> Dict[str, Any]:
        doc = asdict(self)
        doc["game_ids"] = list(self.game_ids)
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "CalculatedRoundRecord":
        return cls(
            round_id=str(doc["round_id"]),
            round_start_ms=int(doc["round_start_ms"]),
            season_id=str(doc["season_id"]),
            game_count=int(doc.get("game_count") or 0),
            calculation_id=str(doc.get("calculation_id") or ""),
            calculated_at=_as_datetime(doc.get("calculated_at")),
            game_ids=tuple(str(g) for g in (doc.get("game_ids") or ())),
        )

    @property
    def round_start_time(self) -> datetime:
        return from_epoch_ms(self.round_start_ms)
