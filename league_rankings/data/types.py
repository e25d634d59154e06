"""Data types for league games, teams and rounds."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import CorruptGameError
from ..utils.timestamps import from_epoch_ms, to_epoch_ms


class GameType(Enum):
    """Match type. Playoff games carry a rating multiplier."""

    REGULAR = "regular"
    PLAYOFF = "playoff"

    @classmethod
    def parse(cls, value: Any) -> "GameType":
        if isinstance(value, GameType):
            return value
        if value is None:
            return cls.REGULAR
        text = str(value).strip().lower()
        if text in ("playoff", "playoffs", "post", "postseason"):
            return cls.PLAYOFF
        return cls.REGULAR


def _parse_timestamp(value: Any, game_id: Optional[str]) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else from_epoch_ms(to_epoch_ms(value))
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return from_epoch_ms(int(value))
    if isinstance(value, str):
        try:
            return _parse_timestamp(datetime.fromisoformat(value), game_id)
        except ValueError:
            pass
    raise CorruptGameError(game_id, f"unreadable start time {value!r}")


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, float) and value != value:  # NaN from columnar stores
        return None
    return int(value)


@dataclass(frozen=True)
class Season:
    """A league season. Seasons are ordered by start date."""

    season_id: str
    name: str
    date_start: datetime

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Season":
        return cls(
            season_id=str(doc["season_id"]),
            name=str(doc.get("name") or doc["season_id"]),
            date_start=_parse_timestamp(doc["date_start"], None),
        )

    def to_document(self) -> Dict[str, Any]:
        return {"season_id": self.season_id, "name": self.name, "date_start": self.date_start}


@dataclass(frozen=True)
class RosterEntry:
    player_id: str
    player_name: str = ""


@dataclass(frozen=True)
class Team:
    """A team document with its roster as of query time."""

    team_id: str
    name: str = ""
    roster: Tuple[RosterEntry, ...] = ()
    season_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Team":
        roster = tuple(
            RosterEntry(str(entry["player_id"]), str(entry.get("player_name") or ""))
            for entry in (doc.get("roster") or ())
            if entry.get("player_id") is not None
        )
        season_id = doc.get("season_id")
        return cls(
            team_id=str(doc["team_id"]),
            name=str(doc.get("name") or ""),
            roster=roster,
            season_id=str(season_id) if season_id is not None else None,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "name": self.name,
            "season_id": self.season_id,
            "roster": [
                {"player_id": e.player_id, "player_name": e.player_name}
                for e in self.roster
            ],
        }


@dataclass(frozen=True)
class Game:
    """
    Immutable historical game record.

    Team references and scores may be missing; only completed games
    (both scores present) take part in rating computation.

    Attributes:
        season_order: Position of the game's season counted back from the
            most recent season in the run's scope (0 = most recent).
            Set by the loader.
        week: Season-relative week number (1-based). Derived from the
            season start date by the loader when the record has none.
    """

    game_id: str
    season_id: str
    home_team_id: Optional[str]
    away_team_id: Optional[str]
    home_score: Optional[int]
    away_score: Optional[int]
    start_time: datetime
    game_type: GameType = GameType.REGULAR
    week: Optional[int] = None
    season_order: int = 0

    @property
    def start_ms(self) -> int:
        return to_epoch_ms(self.start_time)

    @property
    def is_completed(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    @property
    def is_tie(self) -> bool:
        return self.is_completed and self.home_score == self.away_score

    @property
    def is_playoff(self) -> bool:
        return self.game_type is GameType.PLAYOFF

    @property
    def winner_is_home(self) -> bool:
        if not self.is_completed:
            raise ValueError(f"Game {self.game_id} has no final score")
        return self.home_score > self.away_score

    @property
    def point_differential(self) -> int:
        """Winner's margin of victory (0 for ties)."""
        if not self.is_completed:
            raise ValueError(f"Game {self.game_id} has no final score")
        return abs(self.home_score - self.away_score)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Game":
        game_id = doc.get("game_id")
        if game_id is None:
            raise CorruptGameError(None, "missing game_id")
        if doc.get("season_id") is None:
            raise CorruptGameError(str(game_id), "missing season_id")
        home = doc.get("home_team_id")
        away = doc.get("away_team_id")
        return cls(
            game_id=str(game_id),
            season_id=str(doc["season_id"]),
            home_team_id=str(home) if home is not None else None,
            away_team_id=str(away) if away is not None else None,
            home_score=_optional_int(doc.get("home_score")),
            away_score=_optional_int(doc.get("away_score")),
            start_time=_parse_timestamp(doc.get("start_time"), str(game_id)),
            game_type=GameType.parse(doc.get("game_type")),
            week=_optional_int(doc.get("week")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "game_id": self.game_id,
            "season_id": self.season_id,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "start_time": self.start_time,
            "game_type": self.game_type.value,
            "week": self.week,
        }


@dataclass(frozen=True)
class GameRound:
    """All games sharing one exact start time within one season."""

    round_id: str
    start_ms: int
    season_id: str
    week: int
    games: Tuple[Game, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.games)

    @property
    def start_time(self) -> datetime:
        return from_epoch_ms(self.start_ms)

    @property
    def game_ids(self) -> Tuple[str, ...]:
        return tuple(g.game_id for g in self.games)


@dataclass(frozen=True)
class ResolvedGame:
    """A completed, non-tied game with both rosters attached, winner first."""

    game: Game
    winner_ids: Tuple[str, ...]
    loser_ids: Tuple[str, ...]

    @property
    def point_differential(self) -> int:
        return self.game.point_differential

    @property
    def season_order(self) -> int:
        return self.game.season_order

    @property
    def is_playoff(self) -> bool:
        return self.game.is_playoff
