"""
Attack Step Probabilities
Hit, wound and save probabilities for the 10th edition attack sequence
"""

from typing import Optional


REROLL_MODES = ('none', 'ones', 'all')


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def success_on(roll_needed: int) -> float:
    """Probability that a D6 rolls roll_needed or higher"""
    return clamp((7 - roll_needed) / 6, 0.0, 1.0)


def hit_probability(skill: int, hit_mod: int = 0, torrent: bool = False) -> float:
    """
    Probability of a successful hit roll.

    Torrent weapons hit automatically. Otherwise the skill is shifted by the
    hit modifier and clamped to 2..7 (7 = cannot hit) before conversion.
    """
    if torrent:
        return 1.0
    effective_skill = clamp(skill - hit_mod, 2, 7)
    return (7 - effective_skill) / 6


def wound_roll_needed(strength: int, toughness: int) -> int:
    """Calculate the dice roll required to wound based on S vs T"""
    if strength >= toughness * 2:
        return 2
    elif strength > toughness:
        return 3
    elif strength == toughness:
        return 4
    elif strength * 2 <= toughness:
        return 6
    else:
        return 5


def wound_roll_label(strength: int, toughness: int) -> str:
    return f"{wound_roll_needed(strength, toughness)}+"


def wound_probability(strength: int, toughness: int) -> float:
    """Wound probability from the S vs T ladder"""
    if strength >= toughness * 2:
        return 5 / 6
    if strength > toughness:
        return 4 / 6
    if strength == toughness:
        return 3 / 6
    if strength * 2 <= toughness:
        return 1 / 6
    return 2 / 6


def fail_save_probability(save: int, ap: int) -> float:
    """Probability of failing a save after AP is applied"""
    modified_save = save + ap
    if modified_save > 6:
        return 1.0
    return clamp((modified_save - 1) / 6, 0.0, 1.0)


def best_fail_save_probability(save: int, ap: int, invuln: Optional[int] = 7,
                               ignore_invuln: bool = False) -> float:
    """
    Defender uses whichever of armour or invulnerable save fails less often.

    AP never modifies the invulnerable save.
    """
    armour_fail = fail_save_probability(save, ap)
    if ignore_invuln or not invuln or invuln >= 7:
        return armour_fail
    return min(armour_fail, fail_save_probability(invuln, 0))


def reroll_probability(p: float, mode: str) -> float:
    """Success probability after a re-roll policy ('none', 'ones', 'all')"""
    if mode == 'all':
        return p + (1 - p) * p
    if mode == 'ones':
        return p + (1 / 6) * p
    return p


def reroll_critical_probability(p_crit: float, p_success: float, mode: str) -> float:
    """
    Probability that the kept roll is a critical, given a re-roll policy.

    p_success is the success chance before re-rolling, used to know how often
    'all' re-rolls trigger.
    """
    if mode == 'all':
        return p_crit + (1 - p_success) * p_crit
    if mode == 'ones':
        return p_crit + (1 / 6) * p_crit
    return p_crit
