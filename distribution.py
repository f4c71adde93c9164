"""
Distribution Estimator
Normal approximation of damage/kill totals for "at least N" style questions
"""

import math
from dataclasses import dataclass
from typing import Tuple

from damage_calculator import CombinedResult

# Abramowitz & Stegun 26.2.17, |error| < 7.5e-8
_P = 0.2316419
_B = (0.319381530, -0.356563782, 1.781477937, -1.821255978, 1.330274429)
_INV_SQRT_2PI = 1 / math.sqrt(2 * math.pi)


def normal_cdf(z: float) -> float:
    """Standard normal CDF via a closed-form rational approximation"""
    if z < 0:
        return 1.0 - normal_cdf(-z)
    t = 1.0 / (1.0 + _P * z)
    poly = t * (_B[0] + t * (_B[1] + t * (_B[2] + t * (_B[3] + t * _B[4]))))
    return 1.0 - _INV_SQRT_2PI * math.exp(-z * z / 2) * poly


def probability_at_least(threshold: float, mean: float, std_dev: float) -> float:
    """
    P(X >= threshold) for X ~ Normal(mean, std_dev).

    With no spread this is a step: 1 if the mean reaches the threshold, else 0.
    """
    if std_dev <= 0:
        return 1.0 if mean >= threshold else 0.0
    return 1.0 - normal_cdf((threshold - mean) / std_dev)


def confidence_band(mean: float, std_dev: float, k: float = 1.0) -> Tuple[float, float]:
    """mean +/- k standard deviations, floored at 0"""
    return max(0.0, mean - k * std_dev), mean + k * std_dev


@dataclass(frozen=True)
class KillProbabilities:
    kill_mean: float
    kill_std_dev: float
    at_least_one: float
    unit_wipe: float


def kill_probabilities(combined: CombinedResult) -> KillProbabilities:
    """
    Chance of at least one kill and of wiping the target unit.

    Kill spread is the damage spread scaled by kills per point of damage.
    """
    total = combined.total
    kills_per_damage = total.raw_kills / total.expected if total.expected > 0 else 0.0
    kill_std = total.std_dev * kills_per_damage

    wipe = probability_at_least(total.max_kills, total.raw_kills, kill_std) if total.max_kills > 0 else 0.0
    return KillProbabilities(
        kill_mean=total.expected_kills,
        kill_std_dev=kill_std,
        at_least_one=probability_at_least(1, total.raw_kills, kill_std),
        unit_wipe=wipe,
    )
