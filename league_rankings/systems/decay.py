"""Inactivity decay applied at season transitions."""

import logging
from typing import Mapping

import numpy as np

from ..base import PlayerTable

logger = logging.getLogger(__name__)


def decay_rating(mu: float, baseline: float, factor: float, seasons: int) -> float:
    """Pull a rating toward ``baseline`` by ``factor ** seasons``."""
    if seasons <= 0:
        return mu
    return baseline + (mu - baseline) * factor ** seasons


def apply_inactivity_decay(
    table: PlayerTable,
    season_id: str,
    season_positions: Mapping[str, int],
    baseline: float,
    factor: float,
    inactive_after: int = 3,
) -> int:
    """
    Decay players who skipped seasons before ``season_id``.

    A player whose last season sits N positions before the current one
    (N seasons skipped) ends up at ``baseline + (mu - baseline) * factor**N``
    relative to their rating when they last played. The number of seasons
    already applied is tracked per player, so calling this again for the
    same transition changes nothing. Players with N >= ``inactive_after``
    are marked inactive.

    Returns:
        Number of players whose rating changed
    """
    current = season_positions.get(season_id)
    if current is None:
        raise ValueError(f"Season '{season_id}' is not in the run's scope")

    decayed = 0
    mu = table.mu
    for idx in range(len(table)):
        last_season = table.last_season_id(idx)
        last = season_positions.get(last_season) if last_season is not None else None
        if last is None:
            continue
        skipped = current - last - 1
        if skipped <= 0:
            continue
        pending = skipped - int(table.decay_applied[idx])
        if pending > 0:
            mu[idx] = decay_rating(float(mu[idx]), baseline, factor, pending)
            table.decay_applied[idx] = skipped
            decayed += 1
        if skipped >= inactive_after and table.active[idx]:
            table.active[idx] = False

    if decayed:
        logger.info(
            "Season %s: decayed %d inactive players (%d marked inactive overall)",
            season_id, decayed, int(np.count_nonzero(~table.active)),
        )
    return decayed
