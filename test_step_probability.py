"""
Tests for hit, wound and save probabilities
"""

import pytest

from step_probability import (
    best_fail_save_probability, fail_save_probability, hit_probability,
    reroll_critical_probability, reroll_probability, wound_probability, wound_roll_label
)


@pytest.mark.parametrize("strength,toughness,expected", [
    (8, 4, 5 / 6),
    (10, 4, 5 / 6),
    (5, 4, 4 / 6),
    (4, 4, 3 / 6),
    (3, 4, 2 / 6),
    (2, 4, 1 / 6),
    (3, 8, 1 / 6),
])
def test_wound_ladder(strength, toughness, expected):
    assert wound_probability(strength, toughness) == pytest.approx(expected)


def test_wound_roll_label():
    assert wound_roll_label(8, 4) == "2+"
    assert wound_roll_label(4, 4) == "4+"
    assert wound_roll_label(2, 4) == "6+"


def test_hit_probability():
    assert hit_probability(3) == pytest.approx(4 / 6)
    assert hit_probability(4, hit_mod=-2) == pytest.approx(1 / 6)
    assert hit_probability(2, hit_mod=1) == pytest.approx(5 / 6)


def test_torrent_always_hits():
    for skill in range(2, 8):
        assert hit_probability(skill, torrent=True) == 1.0


def test_fail_save_probability():
    assert fail_save_probability(3, 2) == pytest.approx(4 / 6)
    assert fail_save_probability(3, 5) == 1.0
    assert fail_save_probability(2, 0) == pytest.approx(1 / 6)
    assert fail_save_probability(7, 0) == 1.0


def test_invulnerable_save_ignores_ap():
    assert best_fail_save_probability(2, 3, invuln=4) == pytest.approx(3 / 6)
    assert best_fail_save_probability(2, 3, invuln=4, ignore_invuln=True) == pytest.approx(4 / 6)
    assert best_fail_save_probability(2, 0, invuln=4) == pytest.approx(1 / 6)
    assert best_fail_save_probability(3, 1, invuln=7) == pytest.approx(3 / 6)


def test_reroll_probability():
    assert reroll_probability(0.5, 'none') == 0.5
    assert reroll_probability(0.5, 'all') == pytest.approx(0.75)
    assert reroll_probability(0.5, 'ones') == pytest.approx(0.5 + 0.5 / 6)


def test_reroll_critical_probability():
    assert reroll_critical_probability(1 / 6, 0.5, 'all') == pytest.approx(0.25)
    assert reroll_critical_probability(1 / 6, 0.5, 'none') == pytest.approx(1 / 6)
