"""
Marginal Gain Chart Component

Horizontal Plotly bar chart of the % output gain each stat step gives, best
stat on top. Hover shows the stat's category and description, the step,
the before/after stat value and the new output.
"""

import plotly.graph_objects as go
from typing import List

from zzz_calc.constants import fmt0, fmt_smart
from zzz_calc.marginal import MarginalRow
from zzz_calc.stat_names import format_stat_value, get_stat_definition

POSITIVE_COLOR = 'rgba(76, 175, 80, 0.8)'
ZERO_COLOR = 'rgba(128, 128, 128, 0.5)'
NEGATIVE_COLOR = 'rgba(255, 107, 107, 0.8)'


def _bar_color(pct_gain: float) -> str:
    if pct_gain > 0:
        return POSITIVE_COLOR
    if pct_gain < 0:
        return NEGATIVE_COLOR
    return ZERO_COLOR


def create_marginal_chart(
    rows: List[MarginalRow],
    base_output: float,
    height: int = None,
) -> go.Figure:
    """
    Create the marginal gain bar chart.

    Args:
        rows: Rows from compute_marginals(), already sorted best first
        base_output: Baseline output, shown in the title
        height: Figure height; defaults to a size that fits every row

    Returns:
        Plotly Figure object ready for display with st.plotly_chart()
    """
    # Plotly draws the first category at the bottom
    ordered = list(reversed(rows))

    labels = [r.label for r in ordered]
    gains = [r.pct_gain for r in ordered]

    hover_texts = []
    for r in ordered:
        step = f"+{fmt_smart(r.applied.value)}" if r.applied.is_flat else f"+{fmt_smart(r.applied.value)}%"
        defn = get_stat_definition(r.key)
        about = f"<i>{defn.category.value.title()}: {defn.description}</i><br>" if defn else ""
        hover_texts.append(
            f"<b>{r.label}</b><br>"
            f"{about}"
            f"Step: {step}<br>"
            f"{format_stat_value(r.key, r.orig_val)} → {format_stat_value(r.key, r.total_val)}<br>"
            f"Output: {fmt0(r.out2)} ({r.gain:+,.0f})"
        )

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=gains,
        y=labels,
        orientation='h',
        marker_color=[_bar_color(g) for g in gains],
        text=[f"{g:+.2f}%" for g in gains],
        textposition='auto',
        hovertemplate='%{customdata}<extra></extra>',
        customdata=hover_texts,
        showlegend=False,
    ))

    if height is None:
        height = max(200, 32 * len(rows) + 80)

    fig.update_layout(
        title=dict(
            text=f"Marginal Gain per Step | Base Output {fmt0(base_output)}",
            font=dict(size=14),
        ),
        xaxis=dict(
            title="Output Gain %",
            gridcolor='rgba(128, 128, 128, 0.2)',
            zeroline=True,
        ),
        yaxis=dict(
            gridcolor='rgba(128, 128, 128, 0.2)',
        ),
        height=height,
        margin=dict(l=50, r=30, t=40, b=40),
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
        showlegend=False,
    )

    return fig
