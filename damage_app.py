"""
Warhammer 40k Damage Calculator - Streamlit App
Weapon profiles vs a target: expected damage, kills, heatmaps and breakdowns
"""

import logging
from typing import List

import pandas as pd
import streamlit as st

from ability_parser import parse_weapon_keywords
from calculator_config import configure_logging, get_settings
from damage_analysis import (
    DAMAGE_PRESETS, damage_heatmap, efficiency_rating, get_target_preset,
    list_target_presets, model_states, summarize_attack, weapon_breakdown
)
from damage_calculator import combine_profiles
from damage_charts import (
    attack_flow_figure, distribution_figure, heatmap_figure, weapon_damage_figure
)
from step_probability import REROLL_MODES, wound_roll_label
from weapon_profiles import TargetProfile, WeaponProfile, resolve_effective_profile

logger = logging.getLogger(__name__)


# Page config
st.set_page_config(
    page_title="40k Damage Calculator",
    page_icon="🎲",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_data
def cached_heatmap(profiles: List[WeaponProfile], wounds_per_model: int, mode: str) -> pd.DataFrame:
    """Heatmaps re-run every profile for each grid cell, so keep them between reruns"""
    return damage_heatmap(profiles, wounds_per_model=wounds_per_model, mode=mode)


def weapon_inputs(index: int) -> WeaponProfile:
    """Sidebar widgets for one weapon profile"""
    with st.expander(f"Weapon {index + 1}", expanded=index == 0):
        name = st.text_input("Name", f"Weapon {index + 1}", key=f"name_{index}")
        weapon_type = st.radio("Type", ["ranged", "melee"], horizontal=True, key=f"type_{index}")

        col1, col2 = st.columns(2)
        with col1:
            attacks = st.text_input("Attacks", "2", key=f"attacks_{index}",
                                    help="Fixed number or dice, e.g. D6+1")
            strength = st.number_input("Strength", 1, 30, 4, key=f"s_{index}")
            damage = st.selectbox("Damage", DAMAGE_PRESETS, index=0, key=f"d_{index}")
        with col2:
            skill = st.number_input("BS/WS (N+)", 2, 6, 3, key=f"skill_{index}")
            armor_pen = st.number_input("AP", 0, 6, 0, key=f"ap_{index}")
            model_count = st.number_input("Models", 1, 30, 1, key=f"models_{index}")

        keywords = st.text_input("Keywords", "", key=f"kw_{index}",
                                 help="e.g. 'Sustained Hits 1, Lethal Hits, Anti-Infantry 4+'")
        active = st.checkbox("Active", True, key=f"active_{index}")

    record = {
        'name': name,
        'weapon_type': weapon_type,
        'attacks': attacks,
        'skill': skill,
        'strength': strength,
        'armor_pen': armor_pen,
        'damage': damage,
        'model_count': model_count,
        'active': active,
        'profile_id': str(index),
    }
    record.update(parse_weapon_keywords(keywords))
    return WeaponProfile.from_record(record)


def army_overrides_inputs() -> dict:
    """Army-wide modifiers applied on top of every weapon"""
    with st.expander("Army-wide modifiers"):
        overrides = {
            'reroll_hits': st.selectbox("Re-roll hits", REROLL_MODES, key="army_rr_hits"),
            'reroll_wounds': st.selectbox("Re-roll wounds", REROLL_MODES, key="army_rr_wounds"),
            'sustained_hits': st.number_input("Sustained Hits", 0, 3, 0, key="army_sustained"),
            'sustained_hits_filter': st.selectbox("Sustained Hits applies to", ["all", "melee", "ranged"],
                                                  key="army_sustained_filter"),
            'lethal_hits': st.checkbox("Lethal Hits", key="army_lethal"),
            'lethal_hits_filter': st.selectbox("Lethal Hits applies to", ["all", "melee", "ranged"],
                                               key="army_lethal_filter"),
            'crit_hit_on': st.number_input("Critical hits on", 2, 6, 6, key="army_crit_hit"),
        }
    return overrides


def target_inputs() -> TargetProfile:
    """Sidebar widgets for the defending unit"""
    st.header("🛡️ Target")
    preset_name = st.selectbox("Preset", ["Custom"] + list_target_presets())
    base = get_target_preset(preset_name) if preset_name != "Custom" else TargetProfile(wounds_per_model=2, model_count=5)

    col1, col2 = st.columns(2)
    with col1:
        toughness = st.number_input("Toughness", 1, 20, base.toughness)
        save = st.number_input("Save (7 = none)", 2, 7, base.save)
        invuln = st.number_input("Invulnerable (7 = none)", 2, 7, base.invuln)
        feel_no_pain = st.number_input("Feel No Pain (7 = none)", 2, 7, base.feel_no_pain)
    with col2:
        wounds = st.number_input("Wounds per model", 1, 40, base.wounds_per_model)
        models = st.number_input("Models", 1, 40, base.model_count)
        reduction = st.selectbox("Damage reduction", ["None", "-1", "Halve"])
        keywords = st.text_input("Keywords", ', '.join(sorted(base.keywords)) or "INFANTRY")

    return TargetProfile.from_record({
        'name': preset_name,
        'toughness': toughness,
        'save': save,
        'invuln': invuln,
        'feel_no_pain': feel_no_pain,
        'wounds_per_model': wounds,
        'model_count': models,
        'damage_reduction': {'None': 0, '-1': 1, 'Halve': -1}[reduction],
        'keywords': keywords,
    })


def show_summary(summary: dict, target: TargetProfile):
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Expected Damage", f"{summary['expected_damage']:.2f}", f"± {summary['std_dev']:.2f}")
    with col2:
        st.metric("Models Killed", f"{summary['expected_kills']:.2f} / {summary['max_kills']}")
    with col3:
        st.metric("P(at least 1 kill)", f"{100 * summary['p_at_least_one_kill']:.0f}%")
    with col4:
        st.metric("P(unit wiped)", f"{100 * summary['p_unit_wipe']:.0f}%")

    if summary['overkill_waste'] > 0:
        st.caption(f"{summary['overkill_waste']:.1f} wounds wasted beyond the last model")

    states = model_states(summary['expected_kills'], target.model_count, target.wounds_per_model)
    icons = "💀" * states['dead'] + "🩸" * states['partial'] + "🧍" * states['alive']
    st.markdown(f"### {icons}")
    if states['scaled']:
        st.caption(f"Showing {get_settings().max_display_models} of {target.model_count} models")

    st.plotly_chart(distribution_figure(summary), use_container_width=True)


def main():
    configure_logging()
    settings = get_settings()

    st.title("🎲 40k Damage Calculator")
    st.markdown("*Expected damage and kills for 10th edition weapon profiles*")

    with st.sidebar:
        st.header("⚔️ Attackers")
        weapon_count = st.number_input("Weapon profiles", 1, 8, 1)
        base_profiles = [weapon_inputs(i) for i in range(int(weapon_count))]
        army = army_overrides_inputs()
        st.divider()
        target = target_inputs()

    profiles = [resolve_effective_profile(profile, army_overrides=army) for profile in base_profiles]
    logger.info("Calculating %d profiles against %s", len(profiles), target.name or "custom target")

    combined = combine_profiles(profiles, target)
    summary = summarize_attack(combined)

    tab_summary, tab_weapons, tab_heatmap = st.tabs(["Summary", "Weapons", "Heatmap"])

    with tab_summary:
        show_summary(summary, target)

    with tab_weapons:
        weapons = weapon_breakdown(combined)
        if weapons.empty:
            st.info("No active weapon profiles")
        else:
            weapons['wound_roll'] = [wound_roll_label(entry.profile.strength, target.toughness)
                                     for entry in combined.breakdown]
            st.dataframe(weapons, use_container_width=True)
            col1, col2 = st.columns(2)
            with col1:
                st.plotly_chart(attack_flow_figure(weapons), use_container_width=True)
            with col2:
                st.plotly_chart(weapon_damage_figure(weapons), use_container_width=True)

    with tab_heatmap:
        mode = st.radio("Show", ["damage", "kills"], horizontal=True)
        st.caption(f"Against {settings.heatmap_model_count} models with "
                   f"{target.wounds_per_model} wounds each")
        frame = cached_heatmap(profiles, target.wounds_per_model, mode)
        label = "Damage" if mode == 'damage' else "Kills"
        st.plotly_chart(heatmap_figure(frame, title=f"Expected {label}", value_label=label),
                        use_container_width=True)

        if mode == 'kills':
            best = float(frame.values.max())
            ratings = frame.apply(lambda column: column.map(lambda kills: efficiency_rating(kills, best)))
            st.dataframe(ratings, use_container_width=True)


if __name__ == "__main__":
    main()
