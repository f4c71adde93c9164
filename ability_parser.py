"""
Weapon and Unit Ability Parser
Decomposes datasheet keyword/ability text into calculator modifier fields
"""

import re
from typing import Any, Dict, Iterable, Mapping, Optional

from weapon_profiles import AntiKeyword, WeaponProfile, parse_stat_value


def parse_weapon_keywords(abilities_text: Optional[str]) -> Dict[str, Any]:
    """
    Parse a weapon keyword string such as
    'Sustained Hits 1, Anti-Infantry 4+, Twin-linked' into WeaponProfile fields.

    Only the fields that the text actually sets are returned.
    """
    abilities: Dict[str, Any] = {}
    if not abilities_text:
        return abilities

    lower_text = abilities_text.lower()

    # Hit modifiers
    if 'torrent' in lower_text:
        abilities['torrent'] = True
    if 'heavy' in lower_text:
        abilities['heavy'] = True

    # Wound modifiers
    if 'lance' in lower_text:
        abilities['lance'] = True
    if 'twin-linked' in lower_text or 'twin linked' in lower_text:
        abilities['twin_linked'] = True

    # Critical abilities
    if 'lethal hits' in lower_text:
        abilities['lethal_hits'] = True
    if 'devastating wounds' in lower_text:
        abilities['devastating_wounds'] = True

    # Sustained Hits (with number)
    match = re.search(r'sustained hits\s*(\d+)?', lower_text)
    if match:
        abilities['sustained_hits'] = int(match.group(1)) if match.group(1) else 1

    # Anti-X Y+ (the first one listed)
    match = re.search(r'anti-([\w-]+?)\s*(\d)\+', lower_text)
    if match:
        abilities['anti_keyword'] = AntiKeyword(keyword=match.group(1).upper(), value=int(match.group(2)))

    # Melta X
    match = re.search(r'melta\s*(\d+)?', lower_text)
    if match:
        abilities['melta'] = int(match.group(1)) if match.group(1) else 2

    # Rapid Fire X
    match = re.search(r'rapid fire\s*(\d+)?', lower_text)
    if match:
        abilities['rapid_fire'] = int(match.group(1)) if match.group(1) else 1

    # Re-roll hits
    if 're-roll hit' in lower_text or 'reroll hit' in lower_text:
        if 'hit rolls of 1' in lower_text or 'hit roll of 1' in lower_text:
            abilities['reroll_hits'] = 'ones'
        else:
            abilities['reroll_hits'] = 'all'

    # Re-roll wounds
    if 're-roll wound' in lower_text or 'reroll wound' in lower_text:
        if 'wound rolls of 1' in lower_text or 'wound roll of 1' in lower_text:
            abilities['reroll_wounds'] = 'ones'
        else:
            abilities['reroll_wounds'] = 'all'

    # Re-roll damage
    if 're-roll damage' in lower_text or 'reroll damage' in lower_text:
        abilities['reroll_damage'] = 'all'

    # +1 / -1 to hit and wound
    if '+1 to hit' in lower_text or 'add 1 to hit' in lower_text:
        abilities['hit_mod'] = 1
    elif '-1 to hit' in lower_text or 'subtract 1 from hit' in lower_text:
        abilities['hit_mod'] = -1

    if '+1 to wound' in lower_text or 'add 1 to wound' in lower_text:
        abilities['wound_mod'] = 1
    elif '-1 to wound' in lower_text or 'subtract 1 from wound' in lower_text:
        abilities['wound_mod'] = -1

    # Other
    if 'ignores cover' in lower_text:
        abilities['ignores_cover'] = True
    if 'blast' in lower_text:
        abilities['blast'] = True

    return abilities


def parse_defensive_abilities(abilities: Iterable[Mapping[str, str]]) -> Dict[str, int]:
    """
    Parse unit abilities ({'name': ..., 'description': ...}) for the defensive
    rules that change incoming damage: Feel No Pain, damage reduction
    (-1 = halve damage), damage cap and invulnerable save.
    """
    defenses: Dict[str, int] = {}

    for ability in abilities:
        name = (ability.get('name') or '').lower()
        desc = (ability.get('description') or '').lower()

        # Feel No Pain
        if 'feel_no_pain' not in defenses:
            match = (re.search(r'feel\s*no\s*pain\s*(\d)\+', desc)
                     or re.search(r'(\d)\+[^.]*feel\s*no\s*pain', desc))
            if not match and ('feel no pain' in name or 'fnp' in name):
                match = re.search(r'(\d)\+', name)
            if match:
                defenses['feel_no_pain'] = int(match.group(1))

        # Damage reduction
        if ('halve' in desc or 'half' in desc) and 'damage' in desc:
            defenses['damage_reduction'] = -1
        match = re.search(r'reduce[sd]?\s*(?:the\s*)?damage[^.]*by\s*(\d+)', desc)
        if match and 'damage_reduction' not in defenses:
            defenses['damage_reduction'] = int(match.group(1))

        # Damage cap
        match = (re.search(r'cannot\s*(?:ever\s*)?lose\s*more\s*than\s*(\d+)\s*wounds?', desc)
                 or re.search(r'maximum\s*of\s*(\d+)\s*wounds?\s*(?:can\s*be\s*)?lost', desc))
        if match and 'damage_cap' not in defenses:
            defenses['damage_cap'] = int(match.group(1))

        # Invulnerable save
        match = re.search(r'(\d)\+\+', name) or re.search(r'(\d)\+\s*invulnerable save', desc)
        if match:
            value = int(match.group(1))
            defenses['invuln'] = min(value, defenses.get('invuln', 7))

    return defenses


def build_weapon_profile(stat_line: Mapping[str, Any], model_count: int = 1, **overrides) -> WeaponProfile:
    """
    Build a WeaponProfile from a reference stat line
    ({'name', 'range', 'A', 'BS'/'WS', 'S', 'AP', 'D', 'keywords'}).

    Keyword text is decomposed into modifier fields; `overrides` win over both.
    """
    range_text = str(stat_line.get('range', stat_line.get('Range', '')) or '')
    weapon_type = 'melee' if range_text.strip().lower() == 'melee' else ('ranged' if range_text else None)

    keywords = stat_line.get('keywords', stat_line.get('Abilities', ''))
    if isinstance(keywords, (list, tuple)):
        keywords = ', '.join(str(kw) for kw in keywords)

    skill = stat_line.get('BS', stat_line.get('WS', stat_line.get('skill')))
    record: Dict[str, Any] = {
        'name': stat_line.get('name', 'Weapon'),
        'attacks': stat_line.get('A', stat_line.get('attacks', 1)),
        'skill': parse_stat_value(skill, default=4),
        'strength': parse_stat_value(stat_line.get('S', stat_line.get('strength')), default=4),
        'armor_pen': parse_stat_value(stat_line.get('AP', stat_line.get('ap')), default=0),
        'damage': stat_line.get('D', stat_line.get('damage', '1')),
        'model_count': max(1, model_count),
        'weapon_type': weapon_type,
    }
    record.update(parse_weapon_keywords(keywords))
    record.update(overrides)
    return WeaponProfile.from_record(record)
