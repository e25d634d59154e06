"""Tie-aware rank assignment and ranking persistence."""

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional

import numpy as np

from ..base.player_table import PlayerTable
from ..utils.timestamps import utcnow
from .batching import DEFAULT_BATCH_LIMIT, commit_in_batches
from .documents import RankingDocument
from .memory import Collections
from .protocols import RankingWriter

logger = logging.getLogger(__name__)

DEFAULT_RANK_PRECISION = 6


def compute_competition_ranks(values: np.ndarray, precision: int = DEFAULT_RANK_PRECISION) -> np.ndarray:
    """
    Competition ranks for values sorted descending (1 = highest).

    Values are rounded to ``precision`` decimals before comparing, so
    floating noise does not split ties. Tied values share a rank and the
    next distinct value is ranked 1 + the number of values above it,
    e.g. [10, 10, 8] -> [1, 1, 3].

    Runs in O(n log n).
    """
    rounded = np.round(np.asarray(values, dtype=np.float64), precision)
    n = len(rounded)
    if n == 0:
        return np.empty(0, dtype=np.int64)
    ascending = np.sort(rounded)
    # number of values strictly greater than v = n - (values <= v)
    greater = n - np.searchsorted(ascending, rounded, side="right")
    return (greater + 1).astype(np.int64)


def build_ranking_documents(
    table: PlayerTable,
    existing: Optional[Mapping[str, Mapping[str, Any]]] = None,
    precision: int = DEFAULT_RANK_PRECISION,
    now: Optional[datetime] = None,
) -> List[RankingDocument]:
    """
    One full-overwrite ranking document per player, ordered by rank.

    ``last_rating_change`` is measured against the previously persisted
    ranking document of the same player (0 for players not ranked before).
    """
    existing = existing or {}
    now = now or utcnow()
    ranks = compute_competition_ranks(table.mu, precision)

    documents = []
    for idx, state in enumerate(table.states()):
        previous = existing.get(state.player_id)
        change = state.mu - float(previous["mu"]) if previous is not None else 0.0
        documents.append(
            RankingDocument(
                player_id=state.player_id,
                player_name=state.name,
                mu=state.mu,
                sigma=state.sigma,
                rank=int(ranks[idx]),
                total_games=state.total_games,
                total_seasons=state.total_seasons,
                last_season_id=state.last_season_id,
                last_rating_change=change,
                is_active=state.is_active,
                last_updated=now,
            )
        )
    documents.sort(key=lambda d: (d.rank, d.player_id))
    return documents


def save_rankings(
    writer: RankingWriter,
    table: PlayerTable,
    batch_limit: int = DEFAULT_BATCH_LIMIT,
    precision: int = DEFAULT_RANK_PRECISION,
    existing: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> List[RankingDocument]:
    """
    Recompute ranks and persist every player's ranking document.

    Safe to retry after a PersistenceError: every document is a full
    overwrite keyed by player id. Pass the ``existing`` rankings read
    before the first attempt so a retry reports the same deltas.
    """
    if existing is None:
        existing = writer.load_rankings()
    documents = build_ranking_documents(table, existing, precision)
    n_batches = commit_in_batches(
        writer,
        Collections.RANKINGS,
        [(d.player_id, d.to_document()) for d in documents],
        batch_limit,
    )
    logger.info("Saved %d rankings in %d batches", len(documents), n_batches)
    return documents
