"""Swiss-system standings calculator."""

from .calculator import (
    SwissRanking,
    calculate_swiss_rankings,
    initial_seeding_rank,
    swiss_rankings_to_dataframe,
)

__all__ = [
    "SwissRanking",
    "calculate_swiss_rankings",
    "initial_seeding_rank",
    "swiss_rankings_to_dataframe",
]
