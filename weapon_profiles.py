"""
Weapon and Target Profiles
Immutable attacker/defender records and the army -> unit -> weapon override cascade
"""

import logging
import math
import re
from dataclasses import MISSING, dataclass, field, fields, replace
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from dice_stats import DiceSpec
from step_probability import REROLL_MODES

logger = logging.getLogger(__name__)

WEAPON_TYPES = ('ranged', 'melee')


@dataclass(frozen=True)
class AntiKeyword:
    """Anti-X Y+: critical wounds on Y+ against targets with keyword X"""
    keyword: str
    value: int = 4

    def matches(self, keywords: FrozenSet[str]) -> bool:
        wanted = self.keyword.strip().lower()
        return any(kw.strip().lower() == wanted for kw in keywords)

    def __str__(self) -> str:
        return f"Anti-{self.keyword.title()} {self.value}+"


@dataclass(frozen=True)
class WeaponProfile:
    """One attacking weapon's stat line plus modifier flags"""
    name: str = "Weapon"
    attacks: DiceSpec = 1
    skill: int = 4  # BS or WS, the N+ needed to hit
    strength: int = 4
    armor_pen: int = 0
    damage: DiceSpec = "1"
    model_count: int = 1

    # Hit modifiers
    torrent: bool = False
    heavy: bool = False
    hit_mod: int = 0
    reroll_hits: str = 'none'
    crit_hit_on: int = 6

    # Wound modifiers
    lance: bool = False
    wound_mod: int = 0
    twin_linked: bool = False
    reroll_wounds: str = 'none'
    crit_wound_on: int = 6

    # Critical abilities
    sustained_hits: int = 0
    lethal_hits: bool = False
    devastating_wounds: bool = False
    anti_keyword: Optional[AntiKeyword] = None

    # Attack count / other
    melta: int = 0
    rapid_fire: int = 0
    ignores_cover: bool = False
    blast: bool = False
    ignores_invuln: bool = False

    # Dice re-rolls
    reroll_shots: str = 'none'
    reroll_damage: str = 'none'

    weapon_type: Optional[str] = None  # 'ranged', 'melee' or untyped
    profile_id: Optional[str] = None
    active: bool = True

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'WeaponProfile':
        """Build a profile from a boundary record (camelCase or snake_case keys)"""
        return cls(**coerce_fields(cls, normalize_keys(record)))


@dataclass(frozen=True)
class TargetProfile:
    """Defender stat line"""
    toughness: int = 4
    save: int = 3
    invuln: int = 7  # 7 = no invulnerable save
    feel_no_pain: int = 7  # 7 = no Feel No Pain
    wounds_per_model: int = 1
    model_count: int = 1
    damage_reduction: int = 0  # -1 = halve damage
    damage_cap: int = 0  # 0 = no cap
    keywords: FrozenSet[str] = field(default_factory=frozenset)
    name: str = ""

    def has_keyword(self, keyword: str) -> bool:
        wanted = keyword.strip().lower()
        return any(kw.strip().lower() == wanted for kw in self.keywords)

    @property
    def total_wounds(self) -> int:
        return self.wounds_per_model * self.model_count

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'TargetProfile':
        """
        Build a target from a boundary record.

        Wounds per model and model count are clamped to at least 1; missing or
        zero save/invuln/FNP values mean "none" (7).
        """
        values = coerce_fields(cls, normalize_keys(record))
        for key in ('wounds_per_model', 'model_count'):
            if values.get(key, 1) < 1:
                logger.debug("Clamping target %s=%s to 1", key, values[key])
                values[key] = 1
        for key in ('save', 'invuln', 'feel_no_pain'):
            if key in values and not 2 <= values[key] <= 7:
                values[key] = 7
        return cls(**values)


# ============================================================================
# RECORD COERCION
# ============================================================================

KEY_ALIASES = {
    'a': 'attacks',
    's': 'strength',
    'd': 'damage',
    'bs': 'skill',
    'ws': 'skill',
    'bs_ws': 'skill',
    'ap': 'armor_pen',
    'id': 'profile_id',
    'type': 'weapon_type',
    't': 'toughness',
    'sv': 'save',
    'inv': 'invuln',
    'invuln_save': 'invuln',
    'fnp': 'feel_no_pain',
    'w': 'wounds_per_model',
    'wounds': 'wounds_per_model',
    'm': 'model_count',
    'models': 'model_count',
}


def snake_case(key: str) -> str:
    if key.isupper():
        return key.lower()  # stat-line headers: 'AP', 'BS', 'W'
    return re.sub(r'(?<!^)([A-Z])', r'_\1', key).lower()


def normalize_keys(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert camelCase keys to snake_case and resolve stat-line aliases"""
    normalized = {}
    for key, value in record.items():
        name = snake_case(str(key))
        normalized[KEY_ALIASES.get(name, name)] = value
    return normalized


def parse_stat_value(value: Any, default: int = 0) -> int:
    """Parse stat value (handles '3+', '-', 'N/A', numbers)"""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return default
        return int(value)
    if value is None:
        return default

    value = str(value).strip().upper()
    if value in ['-', 'N/A', '']:
        return default

    # Handle values like "3+", "4++", '24"'
    value = value.replace('+', '').replace('"', '')

    try:
        return int(value)
    except ValueError:
        return default


def parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1', 'y')
    return bool(value)


def parse_reroll_mode(value: Any) -> str:
    """Normalise a re-roll setting; 'failed' is the same policy as 'all'"""
    mode = str(value or 'none').strip().lower()
    if mode == 'failed':
        return 'all'
    return mode if mode in REROLL_MODES else 'none'


def parse_dice_spec(value: Any) -> DiceSpec:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        return value
    return "1"


def parse_anti_keyword(value: Any) -> Optional[AntiKeyword]:
    if isinstance(value, AntiKeyword):
        return value
    if isinstance(value, Mapping) and value.get('keyword'):
        return AntiKeyword(keyword=str(value['keyword']),
                           value=parse_stat_value(value.get('value'), default=4) or 4)
    return None


def parse_weapon_type(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    for weapon_type in WEAPON_TYPES:
        if text.startswith(weapon_type):
            return weapon_type
    return None


def coerce_value(name: str, value: Any, default: Any) -> Any:
    """Coerce one record value to the type of the matching dataclass field"""
    if name in ('attacks', 'damage'):
        return parse_dice_spec(value)
    if name == 'armor_pen':
        return abs(parse_stat_value(value, default=default))
    if name in ('reroll_hits', 'reroll_wounds', 'reroll_shots', 'reroll_damage'):
        return parse_reroll_mode(value)
    if name == 'anti_keyword':
        return parse_anti_keyword(value)
    if name == 'weapon_type':
        return parse_weapon_type(value)
    if name == 'keywords':
        if isinstance(value, str):
            value = re.split(r"[,;]", value)
        return frozenset(str(kw).strip() for kw in (value or []) if str(kw).strip())
    if name in ('name', 'profile_id'):
        return default if value is None else str(value)
    if isinstance(default, bool):
        return parse_flag(value)
    if isinstance(default, int):
        return parse_stat_value(value, default=default)
    return value


def coerce_fields(cls, record: Dict[str, Any]) -> Dict[str, Any]:
    """Keep the record keys that name dataclass fields, coerced to their types"""
    values = {}
    for f in fields(cls):
        if f.name not in record:
            continue
        default = f.default if f.default_factory is MISSING else f.default_factory()
        values[f.name] = coerce_value(f.name, record[f.name], default)
    return values


# ============================================================================
# OVERRIDE CASCADE
# ============================================================================

# Overrides equal to these values leave the lower level untouched
NEUTRAL_VALUES = {
    'crit_hit_on': 6,
    'crit_wound_on': 6,
}

IDENTITY_FIELDS = ('name', 'profile_id', 'weapon_type', 'active')

OverridePredicate = Callable[[str, Mapping[str, Any], WeaponProfile], bool]


def is_neutral(name: str, value: Any) -> bool:
    if name in NEUTRAL_VALUES:
        return value == NEUTRAL_VALUES[name]
    return value in (None, False, 0, 'none', '')


def override_applies(name: str, overrides: Mapping[str, Any], profile: WeaponProfile) -> bool:
    """
    Default type filter: an override with '<field>_filter' set to 'melee' or
    'ranged' only applies to weapons of that type.
    """
    type_filter = overrides.get(f"{name}_filter")
    if not type_filter or type_filter == 'all':
        return True
    return profile.weapon_type == type_filter


def resolve_effective_profile(base: WeaponProfile,
                              army_overrides: Optional[Mapping[str, Any]] = None,
                              unit_overrides: Optional[Mapping[str, Any]] = None,
                              weapon_overrides: Optional[Mapping[str, Any]] = None,
                              applies: OverridePredicate = override_applies) -> WeaponProfile:
    """
    Merge modifier overrides onto a base profile.

    Field-level precedence is weapon > unit > army > base. An override only
    counts when it holds a non-neutral value and `applies` accepts it for the
    base profile. The base profile is never modified.
    """
    field_defaults = {f.name: f.default for f in fields(WeaponProfile)}
    updates: Dict[str, Any] = {}

    for overrides in (army_overrides, unit_overrides, weapon_overrides):
        if not overrides:
            continue
        level = normalize_keys(overrides)
        for name, raw in level.items():
            if name.endswith('_filter') or name in IDENTITY_FIELDS or name not in field_defaults:
                continue
            value = coerce_value(name, raw, field_defaults[name])
            if is_neutral(name, value):
                continue
            if not applies(name, level, base):
                continue
            updates[name] = value

    if not updates:
        return base
    return replace(base, **updates)
