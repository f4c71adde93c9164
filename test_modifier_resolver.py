"""
Tests for modifier composition: attack bonuses, criticals, re-rolls and damage adjustment
"""

import pytest

from modifier_resolver import (
    critical_wound_threshold, feel_no_pain_pass, resolve_attacks, resolve_damage,
    resolve_hit, resolve_modifiers, resolve_wound
)
from weapon_profiles import AntiKeyword, TargetProfile, WeaponProfile


def test_attack_bonuses_added_once_per_profile():
    profile = WeaponProfile(attacks='D6', model_count=2, blast=True, melta=2)
    mean, variance, bonus = resolve_attacks(profile, TargetProfile(model_count=10))
    assert bonus == 4
    assert mean == pytest.approx(2 * 3.5 + 4)
    assert variance == pytest.approx(2 * 35 / 12)


def test_shot_rerolls_raise_attacks():
    plain, _, _ = resolve_attacks(WeaponProfile(attacks='D6'), TargetProfile())
    rerolled, _, _ = resolve_attacks(WeaponProfile(attacks='D6', reroll_shots='all'), TargetProfile())
    assert rerolled > plain


def test_torrent_skips_hit_roll():
    assert resolve_hit(WeaponProfile(torrent=True, skill=6)) == (1.0, 0.0)


def test_heavy_adds_one_to_hit():
    hit, crit = resolve_hit(WeaponProfile(skill=4, heavy=True))
    assert hit == pytest.approx(4 / 6)
    assert crit == pytest.approx(1 / 6)


def test_critical_hits_always_hit():
    hit, crit = resolve_hit(WeaponProfile(skill=6, crit_hit_on=5))
    assert hit == pytest.approx(2 / 6)
    assert crit == pytest.approx(2 / 6)


def test_anti_keyword_lowers_critical_wound_threshold():
    profile = WeaponProfile(anti_keyword=AntiKeyword('INFANTRY', 4))
    assert critical_wound_threshold(profile, TargetProfile(keywords=frozenset({'Infantry'}))) == 4
    assert critical_wound_threshold(profile, TargetProfile(keywords=frozenset({'Vehicle'}))) == 6


def test_lance_only_for_non_ranged_weapons():
    target = TargetProfile()
    assert critical_wound_threshold(WeaponProfile(lance=True, weapon_type='melee'), target) == 5
    assert critical_wound_threshold(WeaponProfile(lance=True), target) == 5
    assert critical_wound_threshold(WeaponProfile(lance=True, weapon_type='ranged'), target) == 6


def test_twin_linked_is_reroll_all_wounds():
    target = TargetProfile(toughness=4)
    wound, crit, threshold = resolve_wound(WeaponProfile(strength=4, twin_linked=True), target)
    assert wound == pytest.approx(0.75)
    assert crit == pytest.approx(0.25)
    assert threshold == 6

    both, _, _ = resolve_wound(WeaponProfile(strength=4, twin_linked=True, reroll_wounds='ones'), target)
    assert both == pytest.approx(0.75)


def test_wound_modifier_shifts_roll_needed():
    wound, _, _ = resolve_wound(WeaponProfile(strength=4, wound_mod=1), TargetProfile(toughness=4))
    assert wound == pytest.approx(4 / 6)


def test_damage_halving_and_cap():
    assert resolve_damage(WeaponProfile(damage=6), TargetProfile(damage_reduction=-1)).mean == 3
    assert resolve_damage(WeaponProfile(damage='D3'), TargetProfile(damage_cap=1)).mean == pytest.approx(1)
    assert resolve_damage(WeaponProfile(damage=1), TargetProfile(damage_reduction=1)).mean == 0


def test_feel_no_pain_pass():
    assert feel_no_pain_pass(7) == 1.0
    assert feel_no_pain_pass(5) == pytest.approx(4 / 6)
    assert feel_no_pain_pass(6) == pytest.approx(5 / 6)


def test_resolve_modifiers_lists_applied_abilities():
    target = TargetProfile(keywords=frozenset({'Infantry'}))
    profile = WeaponProfile(lethal_hits=True, sustained_hits=1, anti_keyword=AntiKeyword('INFANTRY', 4))
    resolved = resolve_modifiers(profile, target)
    assert "Lethal Hits" in resolved.applied
    assert "Sustained Hits 1" in resolved.applied
    assert "Anti-Infantry 4+" in resolved.applied
    assert resolved.crit_wound_on == 4


def test_instance_damage_with_feel_no_pain():
    resolved = resolve_modifiers(WeaponProfile(damage=3), TargetProfile(feel_no_pain=5))
    assert resolved.instance_damage_mean == pytest.approx(3 * 4 / 6)
    assert resolved.instance_damage_variance == pytest.approx((4 / 6) * (2 / 6) * 3)
