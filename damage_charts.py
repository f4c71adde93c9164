"""
Damage Charts
Plotly figures for the damage calculator UI
"""

from typing import Dict

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from damage_analysis import save_label

FUNNEL_STAGES = [
    ('attacks', 'Attacks'),
    ('hits', 'Hits'),
    ('wounds', 'Wounds'),
    ('unsaved', 'Unsaved'),
]


def heatmap_figure(frame: pd.DataFrame, title: str = "Expected Damage",
                   value_label: str = "Damage") -> go.Figure:
    """Toughness (rows) x save (columns) heatmap with the value printed in each cell"""
    x_labels = [save_label(int(sv)) for sv in frame.columns]
    y_labels = [f"T{int(t)}" for t in frame.index]

    fig = go.Figure(data=go.Heatmap(
        z=frame.values,
        x=x_labels,
        y=y_labels,
        text=frame.round(1).values,
        texttemplate="%{text}",
        colorscale='RdYlGn',
        colorbar=dict(title=value_label),
        hovertemplate="Toughness %{y}, Save %{x}<br>" + value_label + ": %{z:.2f}<extra></extra>",
    ))
    fig.update_layout(
        title=title,
        xaxis_title="Save",
        yaxis_title="Toughness",
        yaxis=dict(autorange='reversed'),
        height=500,
    )
    return fig


def distribution_figure(summary: Dict[str, float]) -> go.Figure:
    """Expected damage with its 68% and 95% bands"""
    mean = summary['expected_damage']
    fig = go.Figure()

    fig.add_trace(go.Bar(
        y=["Damage"],
        x=[summary['band_95_high'] - summary['band_95_low']],
        base=[summary['band_95_low']],
        orientation='h',
        name="95% range",
        marker_color='rgba(99, 110, 250, 0.25)',
    ))
    fig.add_trace(go.Bar(
        y=["Damage"],
        x=[summary['band_68_high'] - summary['band_68_low']],
        base=[summary['band_68_low']],
        orientation='h',
        name="68% range",
        marker_color='rgba(99, 110, 250, 0.6)',
    ))
    fig.add_trace(go.Scatter(
        y=["Damage"],
        x=[mean],
        mode='markers',
        name="Expected",
        marker=dict(color='black', size=14, symbol='line-ns-open', line=dict(width=3)),
    ))

    fig.update_layout(
        title=f"Damage Distribution ({mean:.1f} ± {summary['std_dev']:.1f})",
        xaxis_title="Damage",
        barmode='overlay',
        height=250,
        showlegend=True,
    )
    return fig


def attack_flow_figure(weapons: pd.DataFrame) -> go.Figure:
    """Funnel of attacks -> hits -> wounds -> unsaved wounds summed over all weapons"""
    totals = weapons[[key for key, _ in FUNNEL_STAGES]].sum() if len(weapons) else None
    values = [float(totals[key]) if totals is not None else 0.0 for key, _ in FUNNEL_STAGES]

    fig = go.Figure(go.Funnel(
        y=[label for _, label in FUNNEL_STAGES],
        x=values,
        texttemplate="%{value:.1f}",
        textinfo="value+percent initial",
    ))
    fig.update_layout(title="Attack Flow", height=400)
    return fig


def weapon_damage_figure(weapons: pd.DataFrame) -> go.Figure:
    """Expected damage per weapon profile"""
    fig = px.bar(
        weapons,
        x='weapon',
        y='damage',
        error_y='std_dev',
        hover_data=['kills', 'hit_rate', 'wound_rate', 'save_fail_rate'],
        labels={'weapon': 'Weapon', 'damage': 'Expected Damage'},
    )
    fig.update_layout(title="Damage by Weapon", height=400)
    return fig
