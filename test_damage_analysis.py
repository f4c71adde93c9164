"""
Tests for presets, heatmaps, breakdown tables and display helpers
"""

import pytest

from damage_analysis import (
    TARGET_PRESETS, damage_heatmap, efficiency_rating, get_target_preset, list_target_presets,
    model_states, save_label, summarize_attack, unit_breakdown, weapon_breakdown
)
from damage_calculator import combine_profiles
from weapon_profiles import TargetProfile, WeaponProfile

BOLTER = WeaponProfile(name="Bolter", attacks=2, skill=3, strength=4)
MELTA = WeaponProfile(name="Melta", attacks=1, skill=3, strength=9, armor_pen=4, damage='D6', melta=2)


def test_target_presets():
    intercessors = get_target_preset('intercessors')
    assert (intercessors.toughness, intercessors.save) == (4, 3)
    assert (intercessors.wounds_per_model, intercessors.model_count) == (2, 5)
    assert get_target_preset('Knight').has_keyword('Titanic')
    assert len(list_target_presets()) == len(TARGET_PRESETS)


def test_unknown_preset_raises():
    with pytest.raises(ValueError):
        get_target_preset('Necron Warriors')


def test_heatmap_shape_and_ordering():
    frame = damage_heatmap([BOLTER], wounds_per_model=2, toughness_range=[3, 4, 5], save_range=[2, 3, 7])
    assert frame.shape == (3, 3)
    assert list(frame.index) == [3, 4, 5]
    assert list(frame.columns) == [2, 3, 7]
    assert frame.loc[4, 7] > frame.loc[4, 2]
    assert frame.loc[3, 3] > frame.loc[5, 3]


def test_heatmap_kills_mode():
    damage = damage_heatmap([BOLTER], wounds_per_model=1, toughness_range=[4], save_range=[3])
    kills = damage_heatmap([BOLTER], wounds_per_model=1, toughness_range=[4], save_range=[3], mode='kills')
    assert kills.loc[4, 3] == pytest.approx(damage.loc[4, 3])


def test_heatmap_rejects_unknown_mode():
    with pytest.raises(ValueError):
        damage_heatmap([BOLTER], mode='wounds')


def test_weapon_breakdown_rates():
    target = TargetProfile(toughness=4, save=3, wounds_per_model=2, model_count=5)
    frame = weapon_breakdown(combine_profiles([BOLTER, MELTA], target))
    assert list(frame['weapon']) == ["Bolter", "Melta"]
    bolter = frame.iloc[0]
    assert bolter['hit_rate'] == pytest.approx(4 / 6)
    assert bolter['wound_rate'] == pytest.approx(3 / 6)
    assert bolter['save_fail_rate'] == pytest.approx(2 / 6)
    assert frame['damage_share'].sum() == pytest.approx(1.0)


def test_weapon_breakdown_empty():
    frame = weapon_breakdown(combine_profiles([], TargetProfile()))
    assert frame.empty
    assert 'hit_rate' in frame.columns


def test_unit_breakdown():
    target = get_target_preset('Intercessors')
    frame = unit_breakdown({'Tactical Squad': [BOLTER] * 5, 'Melta Squad': [MELTA, MELTA]}, target)
    assert list(frame['unit']) == ['Tactical Squad', 'Melta Squad']
    assert list(frame['weapons']) == [5, 2]
    assert frame['damage_share'].sum() == pytest.approx(1.0)


@pytest.mark.parametrize("kills,expected", [
    (8, 'Excellent'), (5, 'Good'), (3, 'Fair'), (1, 'Poor'),
])
def test_efficiency_rating(kills, expected):
    assert efficiency_rating(kills, 10) == expected


def test_efficiency_rating_without_kills():
    assert efficiency_rating(0, 0) == '-'


def test_model_states():
    states = model_states(2.5, 5, 2, max_display=20)
    assert states['dead'] == 2
    assert states['partial'] == 1
    assert states['partial_wounds'] == 1
    assert states['alive'] == 2
    assert states['scaled'] is False


def test_model_states_scaled_for_large_units():
    states = model_states(15, 30, 1, max_display=20)
    assert states['scaled'] is True
    assert states['dead'] == 10
    assert states['dead'] + states['partial'] + states['alive'] == 20


def test_save_label():
    assert save_label(3) == "3+"
    assert save_label(7) == "-"


def test_summarize_attack():
    summary = summarize_attack(combine_profiles([BOLTER] * 10, get_target_preset('Guardsmen')))
    assert summary['band_95_low'] <= summary['band_68_low'] <= summary['expected_damage']
    assert summary['expected_damage'] <= summary['band_68_high'] <= summary['band_95_high']
    assert 0 <= summary['p_at_least_one_kill'] <= 1
    assert summary['max_kills'] == 10
