"""Engine configuration."""

from dataclasses import dataclass


@dataclass
class EngineConfig:
    """Run-level settings shared by full and incremental runs.

    Rating-algorithm settings live on TrueSkillConfig / EloConfig.
    """

    # Replay
    start_season_index: int = 0  # First season (0 = earliest) when no explicit scope
    apply_decay: bool = True

    # Inactivity decay
    decay_factor: float = 0.95
    inactive_after_seasons: int = 3

    # I/O
    roster_workers: int = 4  # Concurrent roster lookups per round
    batch_limit: int = 500  # Max writes per batch commit
    progress_every: int = 100  # Games between progress updates

    # Ranking
    rank_precision: int = 6  # Decimal digits compared when ranking

    def __post_init__(self):
        if self.batch_limit <= 0:
            raise ValueError("batch_limit must be positive")
        if self.progress_every <= 0:
            raise ValueError("progress_every must be positive")
        if self.roster_workers <= 0:
            raise ValueError("roster_workers must be positive")
        if not 0.0 < self.decay_factor <= 1.0:
            raise ValueError("decay_factor must be in (0, 1]")
