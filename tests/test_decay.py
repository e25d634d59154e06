"""Tests for inactivity decay at season transitions."""

import pytest

from league_rankings import TrueSkill
from league_rankings.systems.decay import apply_inactivity_decay, decay_rating

POSITIONS = {"s1": 0, "s2": 1, "s3": 2, "s4": 3, "s5": 4}


def make_table(mu=35.0):
    table = TrueSkill().new_table()
    idx = table.ensure("p1")
    table.mu[idx] = mu
    table.record_appearance([idx], "s1", 0, counts_for_totals=True)
    return table


def test_two_skipped_seasons_example():
    table = TrueSkill().new_table()
    idx = table.ensure("p1")
    table.mu[idx] = 30.0
    table.record_appearance([idx], "s1", 0, counts_for_totals=True)

    apply_inactivity_decay(table, "s4", POSITIONS, baseline=25.0, factor=0.9)
    assert table.get("p1").mu == pytest.approx(29.05)


def test_decay_rating():
    assert decay_rating(35.0, 25.0, 0.95, 0) == 35.0
    assert decay_rating(35.0, 25.0, 0.95, 1) == pytest.approx(34.5)
    assert decay_rating(35.0, 25.0, 0.95, 2) == pytest.approx(25 + 10 * 0.95 ** 2)
    assert decay_rating(15.0, 25.0, 0.95, 1) == pytest.approx(15.5)


def test_no_decay_for_consecutive_season():
    table = make_table()
    assert apply_inactivity_decay(table, "s2", POSITIONS, 25.0, 0.95) == 0
    assert table.get("p1").mu == 35.0


def test_decay_after_skipped_season():
    table = make_table()
    changed = apply_inactivity_decay(table, "s3", POSITIONS, 25.0, 0.95)
    assert changed == 1
    assert table.get("p1").mu == pytest.approx(34.5)
    assert table.get("p1").is_active


def test_decay_is_idempotent():
    table = make_table()
    apply_inactivity_decay(table, "s3", POSITIONS, 25.0, 0.95)
    assert apply_inactivity_decay(table, "s3", POSITIONS, 25.0, 0.95) == 0
    assert table.get("p1").mu == pytest.approx(34.5)


def test_stepwise_decay_matches_direct_decay():
    stepwise = make_table()
    for season in ("s3", "s4", "s5"):
        apply_inactivity_decay(stepwise, season, POSITIONS, 25.0, 0.95)

    direct = make_table()
    apply_inactivity_decay(direct, "s5", POSITIONS, 25.0, 0.95)

    assert stepwise.get("p1").mu == pytest.approx(25 + 10 * 0.95 ** 3)
    assert stepwise.get("p1").mu == pytest.approx(direct.get("p1").mu)
    assert stepwise.get("p1").decay_seasons_applied == 3


def test_long_absence_marks_inactive():
    table = make_table()
    apply_inactivity_decay(table, "s4", POSITIONS, 25.0, 0.95, inactive_after=3)
    assert table.get("p1").is_active
    apply_inactivity_decay(table, "s5", POSITIONS, 25.0, 0.95, inactive_after=3)
    assert not table.get("p1").is_active

    # Playing again reactivates and resets the decay counter
    table.record_appearance([table.index("p1")], "s5", 1, counts_for_totals=True)
    state = table.get("p1")
    assert state.is_active
    assert state.decay_seasons_applied == 0


def test_unknown_season_raises():
    with pytest.raises(ValueError):
        apply_inactivity_decay(make_table(), "s9", POSITIONS, 25.0, 0.95)
