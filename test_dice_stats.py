"""
Tests for dice notation parsing, outcome tables and damage adjustment
"""

import pytest

from dice_stats import (
    FALLBACK_STATS, adjust_damage, dice_distribution, parse_dice, reduce_damage,
    reroll_distribution, stats_from_distribution
)


def test_d6_plus_one():
    stats = parse_dice("D6+1")
    assert stats.mean == pytest.approx(4.5)
    assert stats.variance == pytest.approx(35 / 12)
    assert (stats.min, stats.max) == (2, 7)
    assert not stats.is_fixed


def test_two_d6():
    stats = parse_dice("2D6")
    assert stats.mean == pytest.approx(7)
    assert stats.variance == pytest.approx(35 / 6)
    assert (stats.min, stats.max) == (2, 12)


def test_fixed_values():
    assert parse_dice("3") == parse_dice(3)
    stats = parse_dice(2)
    assert stats.mean == 2 and stats.variance == 0
    assert stats.is_fixed


def test_multiple_dice_of_any_size():
    stats = parse_dice("2D3")
    assert stats.mean == pytest.approx(4)
    assert stats.variance == pytest.approx(4 / 3)
    assert (stats.min, stats.max) == (2, 6)
    assert parse_dice("3D8").max == 24


def test_notation_is_case_and_space_insensitive():
    assert parse_dice(" d3 ").mean == pytest.approx(2)
    assert parse_dice("d6 + 2").max == 8


@pytest.mark.parametrize("spec", ["abc", "", None, 2.5, True, "D", "0D6", "D0", "2D6+1", "D8", "D4+1", "D6+1+1"])
def test_unrecognised_notation_falls_back_to_one(spec):
    assert parse_dice(spec) == FALLBACK_STATS
    assert dice_distribution(spec) == {1: 1.0}


def test_distribution_matches_closed_form():
    pmf = dice_distribution("2D6")
    assert sum(pmf.values()) == pytest.approx(1.0)
    assert pmf[7] == pytest.approx(6 / 36)
    assert min(pmf) == 2 and max(pmf) == 12

    from_table = stats_from_distribution(dice_distribution("D6+1"))
    closed = parse_dice("D6+1")
    assert from_table.mean == pytest.approx(closed.mean)
    assert from_table.variance == pytest.approx(closed.variance)


def test_huge_dice_collapse_to_mean():
    assert dice_distribution("400D6") == {1400: 1.0}


def test_reroll_ones():
    pmf = reroll_distribution(dice_distribution("D6"), 'ones')
    assert sum(pmf.values()) == pytest.approx(1.0)
    assert stats_from_distribution(pmf).mean == pytest.approx(23.5 / 6)


def test_reroll_all_below_mean():
    pmf = reroll_distribution(dice_distribution("D6"), 'all')
    assert stats_from_distribution(pmf).mean == pytest.approx(4.25)


@pytest.mark.parametrize("spec", ["D3", "D6", "2D6", "D6+1", "3"])
@pytest.mark.parametrize("mode", ["ones", "all"])
def test_rerolls_never_lower_the_mean(spec, mode):
    base = parse_dice(spec).mean
    rerolled = stats_from_distribution(reroll_distribution(dice_distribution(spec), mode)).mean
    assert rerolled >= base - 1e-12


def test_reduce_damage():
    assert reduce_damage(3, 1) == 2
    assert reduce_damage(1, 1) == 0
    assert reduce_damage(3, 0) == 3


def test_halving_rounds_up():
    assert reduce_damage(3, -1) == 2
    assert reduce_damage(1, -1) == 1
    assert reduce_damage(6, -1) == 3


def test_adjust_damage_applies_cap_after_reduction():
    pmf = adjust_damage({1: 0.5, 4: 0.5}, reduction=1, cap=2)
    assert pmf == {0: 0.5, 2: 0.5}
