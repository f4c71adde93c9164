"""
Dice Expression Parser
Turns damage/attacks notation ('D6+1', '2D6', '3') into distribution statistics
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

DiceSpec = Union[str, int]

# A single D3 or D6 with an optional +K, or a bare MDN
DICE_PATTERN = re.compile(r'^(?:D([36])(?:\+(\d+))?|(\d+)D(\d+))$')

# Outcome tables larger than this are not enumerated
MAX_OUTCOMES = 2000


@dataclass(frozen=True)
class DiceStats:
    """Discrete distribution summary of a dice quantity"""
    mean: float
    variance: float
    min: int
    max: int

    @property
    def std_dev(self) -> float:
        return math.sqrt(self.variance)

    @property
    def is_fixed(self) -> bool:
        return self.min == self.max


FALLBACK_STATS = DiceStats(mean=1, variance=0, min=1, max=1)


def _read_notation(spec) -> Optional[Tuple[int, int, int]]:
    """
    Split dice notation into (dice, sides, bonus).

    A fixed value N is returned as (0, 0, N). Returns None for anything
    that is not recognised.
    """
    if isinstance(spec, bool):
        return None
    if isinstance(spec, int):
        return 0, 0, spec
    if not isinstance(spec, str):
        return None

    value = spec.replace(' ', '').upper()
    if value.isdigit():
        return 0, 0, int(value)

    match = DICE_PATTERN.match(value)
    if not match:
        return None

    if match.group(1):
        num_dice, sides = 1, int(match.group(1))
        bonus = int(match.group(2)) if match.group(2) else 0
    else:
        num_dice, sides, bonus = int(match.group(3)), int(match.group(4)), 0
    if num_dice < 1 or sides < 1:
        return None
    return num_dice, sides, bonus


def parse_dice(spec: DiceSpec) -> DiceStats:
    """
    Parse dice notation like 'D6', '2D6', 'D3+1' or a fixed '2'.

    Uniform die moments are closed form: mean M(N+1)/2, variance M(N^2-1)/12.
    Unrecognised input resolves to a fixed 1 and never raises.
    """
    parts = _read_notation(spec)
    if parts is None:
        logger.debug("Unrecognised dice notation %r, using fixed 1", spec)
        return FALLBACK_STATS

    num_dice, sides, bonus = parts
    if num_dice == 0:
        return DiceStats(mean=bonus, variance=0, min=bonus, max=bonus)

    return DiceStats(
        mean=num_dice * (sides + 1) / 2 + bonus,
        variance=num_dice * (sides * sides - 1) / 12,
        min=num_dice + bonus,
        max=num_dice * sides + bonus
    )


def dice_distribution(spec: DiceSpec) -> Dict[int, float]:
    """
    Exact outcome table {value: probability} for the same notation parse_dice reads.

    Tables with more than MAX_OUTCOMES entries collapse to the mean, rounded.
    """
    parts = _read_notation(spec)
    if parts is None:
        return {1: 1.0}

    num_dice, sides, bonus = parts
    if num_dice == 0:
        return {bonus: 1.0}

    if num_dice * sides > MAX_OUTCOMES:
        logger.debug("Dice notation %r too large to enumerate", spec)
        return {int(round(parse_dice(spec).mean)): 1.0}

    die = np.full(sides, 1.0 / sides)
    probs = np.array([1.0])
    for _ in range(num_dice):
        probs = np.convolve(probs, die)

    low = num_dice + bonus
    return {low + i: float(p) for i, p in enumerate(probs) if p > 0}


def stats_from_distribution(pmf: Dict[int, float]) -> DiceStats:
    """Summarise an outcome table as DiceStats"""
    if not pmf:
        return FALLBACK_STATS

    values = np.array(list(pmf.keys()), dtype=float)
    probs = np.array(list(pmf.values()), dtype=float)
    probs = probs / probs.sum()

    mean = float(np.dot(values, probs))
    variance = float(np.dot((values - mean) ** 2, probs))
    return DiceStats(
        mean=mean,
        variance=max(0.0, variance),
        min=int(values.min()),
        max=int(values.max())
    )


def reroll_distribution(pmf: Dict[int, float], mode: str) -> Dict[int, float]:
    """
    Apply a single re-roll to a dice quantity.

    'ones' re-rolls the lowest result, 'all' re-rolls every result below the
    mean. Any other mode leaves the table unchanged.
    """
    if mode not in ('ones', 'all') or len(pmf) < 2:
        return dict(pmf)

    if mode == 'ones':
        lowest = min(pmf)
        rerolled = {lowest}
    else:
        mean = sum(v * p for v, p in pmf.items())
        rerolled = {v for v in pmf if v < mean}

    p_reroll = sum(pmf[v] for v in rerolled)
    result = {}
    for value, prob in pmf.items():
        kept = 0.0 if value in rerolled else prob
        result[value] = kept + p_reroll * prob
    return result


def reduce_damage(value: int, reduction: int) -> int:
    """Reduce one instance of damage; -1 halves it (rounding up)"""
    if reduction == -1:
        return int(math.ceil(value / 2))
    return max(0, value - reduction)


def adjust_damage(pmf: Dict[int, float], reduction: int = 0, cap: int = 0) -> Dict[int, float]:
    """Apply per-instance damage reduction, then the per-instance cap"""
    result: Dict[int, float] = {}
    for value, prob in pmf.items():
        adjusted = reduce_damage(value, reduction)
        if cap > 0:
            adjusted = min(adjusted, cap)
        result[adjusted] = result.get(adjusted, 0.0) + prob
    return result
