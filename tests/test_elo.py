"""Tests for the legacy Elo path and team strength."""

import math

import numpy as np
import pytest

from league_rankings import Elo, EloConfig, GameType, ResolvedGame
from league_rankings.systems.team_strength import calculate_team_strength

from helpers import make_game


def test_expected_score():
    elo = Elo()
    assert elo.expected_score(1200, 1200) == pytest.approx(0.5)
    assert elo.expected_score(1600, 1200) == pytest.approx(1 / (1 + 10 ** -1))
    assert elo.expected_score(1300, 1200) + elo.expected_score(1200, 1300) == pytest.approx(1.0)


def test_weighted_point_differential():
    elo = Elo()
    assert elo.weighted_point_differential(0) == 0.0
    assert elo.weighted_point_differential(5) == 5.0
    assert elo.weighted_point_differential(-3) == -3.0
    assert elo.weighted_point_differential(6) == pytest.approx(5 + math.log(2) * 2.2)
    assert elo.weighted_point_differential(-6) == pytest.approx(-(5 + math.log(2) * 2.2))


def test_actual_score_is_clamped():
    elo = Elo()
    assert elo.actual_score(0) == pytest.approx(0.5)
    assert elo.actual_score(4) == pytest.approx(0.55)
    assert 0.5 < elo.actual_score(1000) < 1.0

    steep = Elo(EloConfig(score_denominator=10.0))
    assert steep.actual_score(100) == 1.0
    assert steep.actual_score(-100) == 0.0


def test_rating_delta():
    elo = Elo()
    expected_delta = 36 * (elo.actual_score(8) - 0.5)
    assert elo.rating_delta(1200, 1200, 8) == pytest.approx(expected_delta)
    assert elo.rating_delta(1200, 1200, 8, season_order=2) == pytest.approx(expected_delta * 0.82 ** 2)
    assert elo.rating_delta(1200, 1200, 8, playoff=True) == pytest.approx(expected_delta * 1.8)
    assert elo.rating_delta(1200, 1200, -8) == pytest.approx(-expected_delta)


def test_team_strength_confidence_fallback():
    elo = Elo()
    table = elo.new_table()
    idx = np.array([table.ensure(p) for p in ("a", "b", "c", "d")], dtype=np.int64)
    table.mu[:] = [1300.0, 1100.0, 1250.0, 1250.0]

    # Nobody rated yet: default strength
    strength = elo.team_strength(idx, table, season_order=0)
    assert strength.strength == 1200.0
    assert strength.confidence == 0.0

    # Half the roster rated meets the 0.5 threshold
    table.rated[idx[:2]] = True
    strength = elo.team_strength(idx, table, season_order=0)
    assert strength.confidence == 0.5
    assert strength.rated_players == 2
    assert strength.strength == pytest.approx((1300 + 1100 + 1200 + 1200) / 4)

    # Season-decayed contribution
    strength = elo.team_strength(idx, table, season_order=1)
    decayed = (1200 + 100 * 0.95) + (1200 - 100 * 0.95)
    assert strength.strength == pytest.approx((decayed + 2400) / 4)


def test_team_strength_low_confidence():
    table = Elo().new_table()
    idx = np.array([table.ensure(p) for p in ("a", "b", "c")], dtype=np.int64)
    table.mu[0] = 1500.0
    table.rated[0] = True
    strength = calculate_team_strength(
        idx, table, baseline=1200, seasonal_decay=0.95, season_order=0,
        default_rating=1200, min_confidence=0.5,
    )
    assert strength.strength == 1200.0
    assert strength.confidence == pytest.approx(1 / 3)

    empty = calculate_team_strength(
        np.array([], dtype=np.int64), table, 1200, 0.95, 0, 1200, 0.5,
    )
    assert empty.total_players == 0
    assert empty.strength == 1200.0


def test_apply_game_uses_pre_game_strengths():
    elo = Elo()
    table = elo.new_table()
    for p in ("a1", "a2", "b1", "b2"):
        table.ensure(p)
    game = make_game("g1", "home", "away", 20, 12, game_type=GameType.REGULAR)
    elo.apply_round([ResolvedGame(game, ("a1", "a2"), ("b1", "b2"))], table)

    expected_delta = 36 * (elo.actual_score(8) - 0.5)
    assert table.get("a1").mu == pytest.approx(1200 + expected_delta)
    assert table.get("b2").mu == pytest.approx(1200 - expected_delta)
    assert table.get("a1").sigma == 0.0
    assert table.rated.all()


def test_initial_rating():
    elo = Elo(EloConfig(initial_rating=1500.0))
    assert elo.initial_mu == 1500.0
    assert elo.initial_sigma == 0.0
    with pytest.raises(ValueError):
        Elo(EloConfig(scale=0.0))
