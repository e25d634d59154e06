"""Run results and queryable rankings."""

from .ranking_table import RankingTable
from .run_result import RunResult, RunStatus

__all__ = ["RankingTable", "RunResult", "RunStatus"]
