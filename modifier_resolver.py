"""
Modifier Resolver
Composes weapon abilities and defender context into per-step probabilities:
attack count -> hit (torrent, heavy, re-rolls, criticals) -> sustained/lethal
hits -> wound (anti-X, lance, twin-linked) -> devastating wounds -> save ->
damage (reduction, cap, Feel No Pain)
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from dice_stats import (
    DiceStats, adjust_damage, dice_distribution, parse_dice, reroll_distribution,
    stats_from_distribution
)
from step_probability import (
    best_fail_save_probability, clamp, hit_probability, reroll_critical_probability,
    reroll_probability, success_on, wound_probability
)
from weapon_profiles import TargetProfile, WeaponProfile

logger = logging.getLogger(__name__)

# Blast: one extra attack per this many models in the target unit
BLAST_MODELS_PER_ATTACK = 5


@dataclass(frozen=True)
class ResolvedModifiers:
    """Adjusted probabilities and bonus terms for one profile against one target"""
    attacks_mean: float
    attacks_variance: float
    bonus_attacks: int

    hit_prob: float
    crit_hit_prob: float
    sustained_hits: int
    lethal_hits: bool

    wound_prob: float
    crit_wound_prob: float
    crit_wound_on: int
    devastating_wounds: bool

    fail_save_prob: float

    damage: DiceStats  # per unsaved wound, after re-rolls, reduction and cap
    fnp_pass_prob: float  # share of damage points that get through Feel No Pain

    applied: Tuple[str, ...] = ()

    @property
    def instance_damage_mean(self) -> float:
        """Expected damage from one unsaved wound, after Feel No Pain"""
        return self.fnp_pass_prob * self.damage.mean

    @property
    def instance_damage_variance(self) -> float:
        # Each damage point independently passes FNP with probability q
        q = self.fnp_pass_prob
        return q * (1 - q) * self.damage.mean + q * q * self.damage.variance


def resolve_attacks(profile: WeaponProfile, target: TargetProfile) -> Tuple[float, float, int]:
    """
    Total attacks for the profile: per-model dice times model count, plus the
    flat Melta / Rapid Fire / Blast bonus added once per profile.

    Returns (mean, variance, bonus).
    """
    if profile.reroll_shots != 'none':
        per_model = stats_from_distribution(
            reroll_distribution(dice_distribution(profile.attacks), profile.reroll_shots)
        )
    else:
        per_model = parse_dice(profile.attacks)

    bonus = profile.melta + profile.rapid_fire
    if profile.blast:
        bonus += target.model_count // BLAST_MODELS_PER_ATTACK

    mean = per_model.mean * profile.model_count + bonus
    variance = per_model.variance * profile.model_count
    return mean, variance, bonus


def resolve_hit(profile: WeaponProfile) -> Tuple[float, float]:
    """
    Hit and critical-hit probability per attack.

    Torrent skips the roll entirely, so it never scores critical hits.
    Critical hits always succeed, whatever the modified skill.
    """
    if profile.torrent:
        return 1.0, 0.0

    hit_mod = profile.hit_mod + (1 if profile.heavy else 0)
    p_hit = hit_probability(profile.skill, hit_mod)
    p_crit = success_on(int(clamp(profile.crit_hit_on, 2, 6)))
    p_hit = max(p_hit, p_crit)

    mode = profile.reroll_hits
    return reroll_probability(p_hit, mode), reroll_critical_probability(p_crit, p_hit, mode)


def critical_wound_threshold(profile: WeaponProfile, target: TargetProfile) -> int:
    """Roll needed for a critical wound after Anti-X and Lance"""
    threshold = int(clamp(profile.crit_wound_on, 2, 6))

    anti = profile.anti_keyword
    if anti is not None and anti.matches(target.keywords):
        threshold = min(threshold, int(clamp(anti.value, 2, 6)))

    if profile.lance and profile.weapon_type != 'ranged':
        threshold = max(2, threshold - 1)

    return threshold


def wound_reroll_mode(profile: WeaponProfile) -> str:
    """Twin-linked is a re-roll of all failed wounds; never stacked twice"""
    if profile.twin_linked:
        return 'all'
    return profile.reroll_wounds


def resolve_wound(profile: WeaponProfile, target: TargetProfile) -> Tuple[float, float, int]:
    """Wound and critical-wound probability per wound roll, plus the crit threshold"""
    p_wound = wound_probability(profile.strength, target.toughness)
    if profile.wound_mod:
        roll_needed = 7 - round(p_wound * 6)
        p_wound = success_on(int(clamp(roll_needed - profile.wound_mod, 2, 6)))

    threshold = critical_wound_threshold(profile, target)
    p_crit = success_on(threshold)
    p_wound = max(p_wound, p_crit)

    mode = wound_reroll_mode(profile)
    return (reroll_probability(p_wound, mode),
            reroll_critical_probability(p_crit, p_wound, mode),
            threshold)


def resolve_damage(profile: WeaponProfile, target: TargetProfile) -> DiceStats:
    """
    Damage per unsaved wound: damage re-rolls, then per-instance reduction
    (floored at 0), then the per-instance cap.
    """
    adjusted = (profile.reroll_damage != 'none' or target.damage_reduction != 0
                or target.damage_cap > 0)
    if not adjusted:
        return parse_dice(profile.damage)

    pmf = reroll_distribution(dice_distribution(profile.damage), profile.reroll_damage)
    pmf = adjust_damage(pmf, target.damage_reduction, target.damage_cap)
    return stats_from_distribution(pmf)


def feel_no_pain_pass(feel_no_pain: int) -> float:
    """Share of damage points that are not ignored by a Feel No Pain roll"""
    if not feel_no_pain or feel_no_pain >= 7:
        return 1.0
    # A point is ignored on fnp+, so (fnp - 1)/6 of points get through: 5+ keeps 4/6, 6+ keeps 5/6
    return clamp((feel_no_pain - 1) / 6, 0.0, 1.0)


def describe_modifiers(profile: WeaponProfile, target: TargetProfile) -> Tuple[str, ...]:
    """Human-readable list of the modifiers in effect"""
    active = []
    if profile.torrent:
        active.append("Torrent")
    if profile.heavy:
        active.append("Heavy")
    if profile.hit_mod:
        active.append(f"{profile.hit_mod:+d} to hit")
    if profile.reroll_hits != 'none':
        active.append(f"Re-roll {profile.reroll_hits} hits")
    if profile.crit_hit_on < 6:
        active.append(f"Critical hits on {profile.crit_hit_on}+")
    if profile.sustained_hits > 0:
        active.append(f"Sustained Hits {profile.sustained_hits}")
    if profile.lethal_hits:
        active.append("Lethal Hits")
    if profile.lance:
        active.append("Lance")
    if profile.wound_mod:
        active.append(f"{profile.wound_mod:+d} to wound")
    if profile.twin_linked:
        active.append("Twin-Linked")
    elif profile.reroll_wounds != 'none':
        active.append(f"Re-roll {profile.reroll_wounds} wounds")
    if profile.crit_wound_on < 6:
        active.append(f"Critical wounds on {profile.crit_wound_on}+")
    if profile.anti_keyword is not None and profile.anti_keyword.matches(target.keywords):
        active.append(str(profile.anti_keyword))
    if profile.devastating_wounds:
        active.append("Devastating Wounds")
    if profile.melta:
        active.append(f"Melta {profile.melta}")
    if profile.rapid_fire:
        active.append(f"Rapid Fire {profile.rapid_fire}")
    if profile.blast:
        active.append("Blast")
    if profile.ignores_invuln:
        active.append("Ignores invulnerable saves")
    if profile.reroll_shots != 'none':
        active.append(f"Re-roll {profile.reroll_shots} shots")
    if profile.reroll_damage != 'none':
        active.append(f"Re-roll {profile.reroll_damage} damage")
    return tuple(active)


def resolve_modifiers(profile: WeaponProfile, target: TargetProfile) -> ResolvedModifiers:
    """Resolve every modifier of one profile against one target"""
    attacks_mean, attacks_variance, bonus = resolve_attacks(profile, target)
    hit_prob, crit_hit_prob = resolve_hit(profile)
    wound_prob, crit_wound_prob, crit_wound_on = resolve_wound(profile, target)

    fail_save_prob = best_fail_save_probability(
        target.save, profile.armor_pen, target.invuln, ignore_invuln=profile.ignores_invuln
    )

    resolved = ResolvedModifiers(
        attacks_mean=attacks_mean,
        attacks_variance=attacks_variance,
        bonus_attacks=bonus,
        hit_prob=hit_prob,
        crit_hit_prob=crit_hit_prob,
        sustained_hits=max(0, profile.sustained_hits),
        lethal_hits=profile.lethal_hits,
        wound_prob=wound_prob,
        crit_wound_prob=crit_wound_prob,
        crit_wound_on=crit_wound_on,
        devastating_wounds=profile.devastating_wounds,
        fail_save_prob=fail_save_prob,
        damage=resolve_damage(profile, target),
        fnp_pass_prob=feel_no_pain_pass(target.feel_no_pain),
        applied=describe_modifiers(profile, target),
    )
    logger.debug("Resolved %s vs %s: %s", profile.name, target.name or "target", resolved)
    return resolved
