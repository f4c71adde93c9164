"""
Damage Analysis
Tabular views over the damage calculator: toughness x save heatmaps,
per-weapon and per-unit breakdowns, target presets and kill summaries
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from calculator_config import get_settings
from damage_calculator import CombinedResult, combine_profiles, safe_value
from distribution import confidence_band, kill_probabilities
from weapon_profiles import TargetProfile, WeaponProfile

logger = logging.getLogger(__name__)

TARGET_PRESETS = [
    {'name': 'Guardsmen', 't': 3, 'sv': 5, 'w': 1, 'm': 10},
    {'name': 'Intercessors', 't': 4, 'sv': 3, 'w': 2, 'm': 5},
    {'name': 'Terminators', 't': 5, 'sv': 2, 'inv': 4, 'w': 3, 'm': 5},
    {'name': 'Gravis', 't': 6, 'sv': 3, 'w': 3, 'm': 3},
    {'name': 'Ork Boyz', 't': 5, 'sv': 6, 'w': 1, 'm': 10},
    {'name': 'Custodes', 't': 6, 'sv': 2, 'inv': 4, 'w': 3, 'm': 5},
    {'name': 'Rhino', 't': 9, 'sv': 3, 'w': 10, 'm': 1, 'keywords': ['VEHICLE']},
    {'name': 'Leman Russ', 't': 11, 'sv': 2, 'w': 13, 'm': 1, 'keywords': ['VEHICLE']},
    {'name': 'Knight', 't': 12, 'sv': 3, 'inv': 5, 'w': 22, 'm': 1, 'keywords': ['VEHICLE', 'TITANIC']},
]

DAMAGE_PRESETS = ['1', '2', '3', 'D3', 'D6', 'D6+1']


def list_target_presets() -> List[str]:
    return [preset['name'] for preset in TARGET_PRESETS]


def get_target_preset(name: str) -> TargetProfile:
    """
    Get a preset target by name (case-insensitive)

    Raises:
        ValueError: if no preset has that name
    """
    for preset in TARGET_PRESETS:
        if preset['name'].lower() == name.strip().lower():
            return TargetProfile.from_record(preset)
    raise ValueError(f"Unknown target preset: {name}")


def damage_heatmap(profiles: Sequence[WeaponProfile],
                   wounds_per_model: Optional[int] = None,
                   toughness_range: Optional[Sequence[int]] = None,
                   save_range: Optional[Sequence[int]] = None,
                   mode: str = 'damage') -> pd.DataFrame:
    """
    Expected damage (mode='damage') or overkill-aware kills (mode='kills')
    for every toughness/save combination.

    Rows are toughness values, columns are save values (7 = no save).
    """
    settings = get_settings()
    wounds_per_model = wounds_per_model or settings.default_wounds_per_model
    toughness_range = list(toughness_range or settings.toughness_range)
    save_range = list(save_range or settings.save_range)

    if mode not in ('damage', 'kills'):
        raise ValueError(f"Unknown heatmap mode: {mode}")

    grid = np.zeros((len(toughness_range), len(save_range)))
    for row, toughness in enumerate(toughness_range):
        for col, save in enumerate(save_range):
            target = TargetProfile(
                toughness=toughness,
                save=save,
                wounds_per_model=wounds_per_model,
                model_count=settings.heatmap_model_count,
            )
            total = combine_profiles(profiles, target).total
            grid[row, col] = total.raw_kills if mode == 'kills' else total.expected

    frame = pd.DataFrame(
        grid,
        index=pd.Index(toughness_range, name='toughness'),
        columns=pd.Index(save_range, name='save'),
    )
    return frame


def save_label(save: int) -> str:
    return f"{save}+" if save <= 6 else '-'


def _rate(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def weapon_breakdown(combined: CombinedResult) -> pd.DataFrame:
    """Per-weapon funnel (attacks -> hits -> wounds -> unsaved -> damage) with rates"""
    total_damage = combined.total.expected
    rows = []
    for index, entry in enumerate(combined.breakdown):
        result = entry.result
        attacks = safe_value(result.attacks)
        hits = safe_value(result.expected_hits)
        wounds = safe_value(result.expected_wounds)
        unsaved = safe_value(result.expected_unsaved)
        damage = safe_value(result.expected)
        rows.append({
            'weapon': entry.profile.name,
            'profile_id': entry.profile.profile_id or str(index),
            'attacks': attacks,
            'hits': hits,
            'wounds': wounds,
            'unsaved': unsaved,
            'damage': damage,
            'std_dev': safe_value(result.std_dev),
            'kills': safe_value(result.expected_kills),
            'hit_rate': _rate(hits, attacks),
            'wound_rate': _rate(wounds, hits),
            'save_fail_rate': _rate(unsaved, wounds),
            'damage_share': _rate(damage, total_damage),
            'modifiers': ', '.join(result.modifiers),
        })

    columns = ['weapon', 'profile_id', 'attacks', 'hits', 'wounds', 'unsaved', 'damage',
               'std_dev', 'kills', 'hit_rate', 'wound_rate', 'save_fail_rate',
               'damage_share', 'modifiers']
    return pd.DataFrame(rows, columns=columns)


def unit_breakdown(units: Mapping[str, Sequence[WeaponProfile]], target: TargetProfile) -> pd.DataFrame:
    """Sum the weapon funnel per unit (unit name -> its weapon profiles)"""
    rows = []
    for unit_name, profiles in units.items():
        weapons = weapon_breakdown(combine_profiles(profiles, target))
        sums = weapons[['attacks', 'hits', 'wounds', 'unsaved', 'damage', 'kills']].sum()
        rows.append({
            'unit': unit_name,
            'weapons': len(weapons),
            **{key: float(value) for key, value in sums.items()},
            'hit_rate': _rate(sums['hits'], sums['attacks']),
            'wound_rate': _rate(sums['wounds'], sums['hits']),
            'save_fail_rate': _rate(sums['unsaved'], sums['wounds']),
        })

    frame = pd.DataFrame(rows, columns=['unit', 'weapons', 'attacks', 'hits', 'wounds', 'unsaved',
                                        'damage', 'kills', 'hit_rate', 'wound_rate', 'save_fail_rate'])
    total_damage = frame['damage'].sum()
    frame['damage_share'] = frame['damage'] / total_damage if total_damage > 0 else 0.0
    return frame


def efficiency_rating(kills: float, max_kills: float) -> str:
    """Rate a heatmap cell against the best cell of the grid"""
    if max_kills <= 0:
        return '-'
    ratio = kills / max_kills
    if ratio >= 0.8:
        return 'Excellent'
    elif ratio >= 0.5:
        return 'Good'
    elif ratio >= 0.25:
        return 'Fair'
    return 'Poor'


def model_states(kills: float, model_count: int, wounds_per_model: int,
                 max_display: Optional[int] = None) -> Dict[str, int]:
    """
    Split a unit into dead, partially wounded and untouched models for display.

    Units above max_display models are scaled down proportionally.
    """
    max_display = max_display or get_settings().max_display_models
    model_count = max(1, model_count)
    kills = min(max(0.0, safe_value(kills)), model_count)

    dead = int(math.floor(kills))
    partial_wounds = int(round((kills - dead) * wounds_per_model))

    display_total = min(model_count, max_display)
    display_dead = dead * display_total // model_count
    display_partial = 1 if partial_wounds > 0 and display_dead < display_total else 0

    return {
        'dead': display_dead,
        'partial': display_partial,
        'partial_wounds': partial_wounds,
        'alive': max(0, display_total - display_dead - display_partial),
        'scaled': model_count > max_display,
    }


def summarize_attack(combined: CombinedResult) -> Dict[str, float]:
    """Headline numbers for one target: damage, spread, kills and kill odds"""
    total = combined.total
    odds = kill_probabilities(combined)
    low_1, high_1 = confidence_band(total.expected, total.std_dev, 1)
    low_2, high_2 = confidence_band(total.expected, total.std_dev, 2)
    summary = {
        'expected_damage': total.expected,
        'std_dev': total.std_dev,
        'band_68_low': low_1,
        'band_68_high': high_1,
        'band_95_low': low_2,
        'band_95_high': high_2,
        'expected_kills': total.expected_kills,
        'max_kills': total.max_kills,
        'overkill_waste': total.overkill_waste,
        'p_at_least_one_kill': odds.at_least_one,
        'p_unit_wipe': odds.unit_wipe,
    }
    logger.debug("Attack summary: %s", summary)
    return summary
