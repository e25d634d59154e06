"""Abstract base class for rating systems."""

from abc import ABC, abstractmethod
from typing import AbstractSet, Sequence

from ..data.types import ResolvedGame
from .player_table import PlayerTable


class RatingSystem(ABC):
    """
    Abstract base class for a selectable rating strategy.

    Exactly one strategy is live per computation run. A strategy is
    stateless apart from its configuration: all player state lives in
    the PlayerTable it is handed.

    Subclasses must implement:
    - initial_mu / initial_sigma: Starting estimate for new players
    - _apply_game(): Fold one resolved game into the table

    The base class provides:
    - apply_round(): Fold a round's games in load order
    - new_table(): Empty PlayerTable at this system's starting values
    """

    name: str = "base"

    @property
    @abstractmethod
    def initial_mu(self) -> float:
        """Rating assigned to a player on first appearance (decay baseline)."""

    @property
    @abstractmethod
    def initial_sigma(self) -> float:
        """Uncertainty assigned to a player on first appearance."""

    @abstractmethod
    def _apply_game(self, game: ResolvedGame, table: PlayerTable) -> None:
        """
        Update ratings for one game in-place.

        Every player on both rosters is already present in ``table``.
        """

    def apply_round(
        self,
        games: Sequence[ResolvedGame],
        table: PlayerTable,
        rating_excluded: AbstractSet[str] = frozenset(),
    ) -> int:
        """
        Fold a round's games into player ratings, in the order given.

        Args:
            games: Resolved games of one round, in load order
            table: Player state (modified in-place)
            rating_excluded: Game ids that must not change ratings

        Returns:
            Number of games that updated ratings
        """
        applied = 0
        for game in games:
            if game.game.game_id in rating_excluded:
                continue
            self._apply_game(game, table)
            applied += 1
        return applied

    def new_table(self, capacity: int = 64) -> PlayerTable:
        return PlayerTable(self.initial_mu, self.initial_sigma, capacity=capacity)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(mu={self.initial_mu}, sigma={self.initial_sigma:.2f})"
