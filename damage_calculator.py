"""
Warhammer 40k Damage Calculator
Expected damage, variance and model kills for weapon profiles against a target.

Hit -> Wound -> Save -> Damage -> Models Destroyed, as an analytic
expected-value model (no dice are rolled):

- Sustained Hits (critical hits generate extra hits)
- Lethal Hits (critical hits auto-wound)
- Devastating Wounds (critical wounds skip the save)
- Anti-X, Lance, Twin-Linked, Torrent, Heavy, re-rolls
- Invulnerable saves, Feel No Pain, damage reduction and caps
- Overkill: damage wasted on models that are already dead
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from dice_stats import DiceStats
from modifier_resolver import ResolvedModifiers, resolve_modifiers
from weapon_profiles import TargetProfile, WeaponProfile

logger = logging.getLogger(__name__)

# Share of the excess damage counted as wasted by the variable-damage heuristics
OVERKILL_WASTE_FACTOR = 0.5


@dataclass(frozen=True)
class StepResult:
    """Expected outcome of one weapon profile against one target"""
    attacks: float
    hit_prob: float
    wound_prob: float
    fail_save_prob: float
    crit_hit_prob: float
    crit_wound_prob: float
    p_success: float  # unsaved wounds per attack

    expected_hits: float
    expected_wounds: float
    expected_unsaved: float
    expected_mortal_wounds: float  # devastating wounds, already part of expected_unsaved

    expected: float  # damage
    variance: float
    std_dev: float
    expected_kills: float
    overkill_efficiency: float
    damage_per_wound: float
    modifiers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CombinedTotal:
    expected: float = 0.0
    variance: float = 0.0
    std_dev: float = 0.0
    expected_kills: float = 0.0  # capped at max_kills
    max_kills: int = 0
    overkill_waste: float = 0.0
    raw_kills: float = 0.0
    wounds_per_model: int = 1


@dataclass(frozen=True)
class ProfileResult:
    profile: WeaponProfile
    result: StepResult


@dataclass(frozen=True)
class CombinedResult:
    """Army-level totals plus the per-profile breakdown"""
    total: CombinedTotal
    breakdown: List[ProfileResult] = field(default_factory=list)


def calculate_overkill_factor(damage: DiceStats, wounds_per_model: int) -> float:
    """
    Efficiency factor in (0, 1] accounting for damage wasted on dead models.

    Fixed damage is exact; variable damage uses closed-form heuristics that
    count half of the expected excess as wasted. No damage means no waste.
    """
    mean = damage.mean
    if mean <= 0:
        return 1.0

    if damage.is_fixed:
        if mean >= wounds_per_model:
            return wounds_per_model / mean
        hits_to_kill = math.ceil(wounds_per_model / mean)
        return wounds_per_model / (hits_to_kill * mean)

    if mean >= wounds_per_model:
        expected_waste = max(0.0, mean - wounds_per_model) * OVERKILL_WASTE_FACTOR
        return wounds_per_model / (wounds_per_model + expected_waste)

    avg_hits_to_kill = wounds_per_model / mean
    fractional_part = avg_hits_to_kill - math.floor(avg_hits_to_kill)
    expected_overkill = fractional_part * mean * OVERKILL_WASTE_FACTOR
    return wounds_per_model / (wounds_per_model + expected_overkill)


def unsaved_per_attack(mods: ResolvedModifiers) -> Tuple[float, float]:
    """
    Mean and variance of the unsaved wounds produced by a single attack.

    An attack misses, scores a normal hit, or scores a critical hit. A normal
    hit makes one wound roll. A critical hit makes one wound roll (none with
    Lethal Hits, which auto-wounds instead) plus one per Sustained Hit. Each
    wound roll and each auto-wound ends in at most one unsaved wound.
    """
    fail_save = mods.fail_save_prob
    mortal = mods.crit_wound_prob if mods.devastating_wounds else 0.0
    q = max(0.0, mods.wound_prob - mortal) * fail_save + mortal  # per wound roll

    crit = mods.crit_hit_prob
    normal = max(0.0, mods.hit_prob - crit)
    lethal = 1 if mods.lethal_hits else 0
    rolls_on_crit = (1 - lethal) + mods.sustained_hits

    crit_mean = rolls_on_crit * q + lethal * fail_save
    crit_variance = rolls_on_crit * q * (1 - q) + lethal * fail_save * (1 - fail_save)

    mean = normal * q + crit * crit_mean
    second_moment = normal * q + crit * (crit_variance + crit_mean * crit_mean)
    return mean, max(0.0, second_moment - mean * mean)


def _compose(profile: WeaponProfile, target: TargetProfile, mods: ResolvedModifiers) -> StepResult:
    attacks = mods.attacks_mean

    crit_hits = attacks * mods.crit_hit_prob
    expected_hits = attacks * mods.hit_prob + crit_hits * mods.sustained_hits
    auto_wounds = crit_hits if mods.lethal_hits else 0.0

    # Lethal hits skip the wound roll; sustained extra hits roll normally
    wound_rolls = max(0.0, expected_hits - auto_wounds)
    rolled_wounds = wound_rolls * mods.wound_prob
    crit_wounds = wound_rolls * mods.crit_wound_prob
    expected_wounds = auto_wounds + rolled_wounds

    mortal_wounds = crit_wounds if mods.devastating_wounds else 0.0
    saveable = max(0.0, expected_wounds - mortal_wounds)
    expected_unsaved = saveable * mods.fail_save_prob + mortal_wounds

    damage_mean = mods.instance_damage_mean
    damage_variance = mods.instance_damage_variance
    expected_damage = expected_unsaved * damage_mean

    # Law of total variance for a compound sum of N damage instances,
    # N itself a sum over A attacks
    p_success, per_attack_variance = unsaved_per_attack(mods)
    var_n = attacks * per_attack_variance + mods.attacks_variance * p_success * p_success
    variance = expected_unsaved * damage_variance + var_n * damage_mean * damage_mean

    # Wounds/model <= 0 violate the caller contract; clamp rather than divide by zero
    wounds_per_model = max(1, target.wounds_per_model)
    efficiency = calculate_overkill_factor(mods.damage, wounds_per_model)
    expected_kills = expected_damage * efficiency / wounds_per_model

    return StepResult(
        attacks=attacks,
        hit_prob=mods.hit_prob,
        wound_prob=mods.wound_prob,
        fail_save_prob=mods.fail_save_prob,
        crit_hit_prob=mods.crit_hit_prob,
        crit_wound_prob=mods.crit_wound_prob,
        p_success=p_success,
        expected_hits=expected_hits,
        expected_wounds=expected_wounds,
        expected_unsaved=expected_unsaved,
        expected_mortal_wounds=mortal_wounds,
        expected=expected_damage,
        variance=variance,
        std_dev=math.sqrt(max(0.0, variance)),
        expected_kills=expected_kills,
        overkill_efficiency=efficiency,
        damage_per_wound=damage_mean,
        modifiers=mods.applied,
    )


def resolve_profile(profile: WeaponProfile, target: TargetProfile) -> StepResult:
    """Calculate expected damage for a single weapon profile against a target"""
    return _compose(profile, target, resolve_modifiers(profile, target))


def safe_value(value: float) -> float:
    """NaN and infinite values count as 0 when accumulating"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        logger.debug("Treating non-finite value %r as 0", value)
        return 0.0
    return number


def combine_profiles(profiles: Iterable[WeaponProfile], target: TargetProfile) -> CombinedResult:
    """
    Calculate combined damage from multiple weapon profiles.

    Profiles are independent (no covariance). Inactive profiles are skipped.
    Kills are capped at the target's model count; the excess is reported as
    wasted wounds.
    """
    breakdown = [
        ProfileResult(profile=profile, result=resolve_profile(profile, target))
        for profile in profiles
        if profile.active
    ]

    total_expected = sum(safe_value(r.result.expected) for r in breakdown)
    total_variance = sum(safe_value(r.result.variance) for r in breakdown)
    raw_kills = sum(safe_value(r.result.expected_kills) for r in breakdown)

    model_count = max(0, target.model_count)
    actual_kills = min(raw_kills, model_count)
    overkill_waste = (raw_kills - model_count) * target.wounds_per_model if raw_kills > model_count else 0.0

    total = CombinedTotal(
        expected=total_expected,
        variance=total_variance,
        std_dev=math.sqrt(max(0.0, total_variance)),
        expected_kills=actual_kills,
        max_kills=model_count,
        overkill_waste=overkill_waste,
        raw_kills=raw_kills,
        wounds_per_model=target.wounds_per_model,
    )
    return CombinedResult(total=total, breakdown=breakdown)
