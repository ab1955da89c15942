"""View components for the rankings dashboard.

Renders rank cards, the ranking history chart and statistics cards.
Every render derives its output from a DashboardView; no chart state is kept
between reruns.
"""

import plotly.graph_objects as go
import polars as pl
import streamlit as st

from crypto_rankings.app.logic.dashboard import (
    DEFAULT_WINDOW,
    TIME_AXIS_FORMATS,
    DashboardView,
    RankCard,
    change_caption,
    format_last_updated,
    format_rank,
    y_axis_tick_step,
)
from crypto_rankings.app.views.colors import Colors
from crypto_rankings.app.views.common import (
    GLOBAL_FONT,
    GLOBAL_MARGINS,
    render_color_dot,
    render_empty_state,
)
from crypto_rankings.config.models import ChartCategory
from crypto_rankings.core.domain_models import AppStatistics, TimeWindow


def render_header(view: DashboardView | None) -> None:
    col1, col2 = st.columns([4, 1])
    with col1:
        st.title("App Store Rankings")
        st.caption("Crypto exchange performance tracker")
    with col2:
        st.metric(
            label="🕒 Last Updated",
            value=format_last_updated(view.last_updated if view else None),
        )


def category_selection(categories: list[ChartCategory]) -> ChartCategory:
    """Render the category tabs as a horizontal radio."""
    options = {f"{c.icon} {c.label}": c for c in categories}
    selected = st.radio(
        "Category",
        options=list(options.keys()),
        horizontal=True,
        label_visibility="collapsed",
        key="category_select",
    )
    return options.get(selected, categories[0])


def window_selection(key: str = "window_select") -> TimeWindow:
    """Render the time window pills; falls back to 7D when deselected."""
    labels = {w.label: w for w in TimeWindow}
    selected = st.pills(
        "Time Range",
        options=list(labels.keys()),
        default=DEFAULT_WINDOW.label,
        key=key,
        label_visibility="collapsed",
    )
    return labels.get(selected, DEFAULT_WINDOW)


def _render_rank_card(card: RankCard) -> None:
    with st.container(border=True):
        render_color_dot(card.app, card.color)
        delta = None
        if card.change is not None and card.change != 0:
            delta = f"{card.change:+d}"
        # Moving up means a lower number: a positive change is good
        st.metric(label="Current Rank", value=format_rank(card.rank), delta=delta)
        st.caption(change_caption(card.change))


def render_rank_cards(cards: list[RankCard]) -> None:
    if not cards:
        return
    cols = st.columns(len(cards))
    for col, card in zip(cols, cards, strict=True):
        with col:
            _render_rank_card(card)


def make_ranking_chart(view: DashboardView, colors: dict[str, str]) -> go.Figure:
    """Line chart of ranks over time with a reversed y-axis (rank 1 on top).

    Gaps (unranked snapshots) are spanned so a single missed cycle does not
    break the line.
    """
    tick_format, hover_format = TIME_AXIS_FORMATS[view.window]
    fig = go.Figure()

    for app, color in colors.items():
        df_app = view.chart_series.filter(pl.col("app") == app)
        if df_app.is_empty():
            continue
        fig.add_trace(
            go.Scatter(
                x=df_app.get_column("timestamp").to_list(),
                y=df_app.get_column("rank").to_list(),
                name=app,
                mode="lines",
                line=dict(color=color, width=2.5, shape="spline", smoothing=0.6),
                connectgaps=True,
                hovertemplate=f"{app}: #%{{y}}<extra></extra>",
            )
        )

    fig.update_layout(
        height=380,
        margin=GLOBAL_MARGINS,
        font=GLOBAL_FONT,
        template="plotly_white",
        hovermode="x unified",
        showlegend=False,
    )
    fig.update_yaxes(
        range=[view.y_bounds.max, view.y_bounds.min],
        dtick=y_axis_tick_step(view.y_bounds),
        tickfont=dict(color=Colors.light_gray, size=11),
        gridcolor=Colors.grid,
        zeroline=False,
    )
    fig.update_xaxes(
        tickformat=tick_format,
        hoverformat=hover_format,
        tickfont=dict(color=Colors.light_gray, size=11),
        showgrid=False,
    )
    return fig


def render_ranking_chart(view: DashboardView, colors: dict[str, str]) -> None:
    legend_cols = st.columns(len(colors) + 3)
    for col, (app, color) in zip(legend_cols, colors.items(), strict=False):
        with col:
            render_color_dot(app, color)

    if view.chart_series.is_empty():
        render_empty_state("No data available")
        return

    st.plotly_chart(make_ranking_chart(view, colors), use_container_width=True)


def _render_stats_card(app: str, stats: AppStatistics, color: str) -> None:
    with st.container(border=True):
        render_color_dot(app, color, bold=True)
        col1, col2 = st.columns(2)
        with col1:
            st.metric(label="Average", value=f"{stats.average:.1f}")
            st.markdown(
                f"Best<br><span style='color:{Colors.green};font-weight:600;'>"
                f"#{stats.best}</span>",
                unsafe_allow_html=True,
            )
        with col2:
            st.metric(label="Volatility", value=f"{stats.volatility:.2f}")
            st.markdown(
                f"Worst<br><span style='color:{Colors.red};font-weight:600;'>"
                f"#{stats.worst}</span>",
                unsafe_allow_html=True,
            )


def render_stats_cards(stats: dict[str, AppStatistics], colors: dict[str, str]) -> None:
    """One card per app; apps without ranked samples get no card."""
    apps = [app for app in colors if app in stats]
    if not apps:
        return
    cols = st.columns(len(colors))
    for col, app in zip(cols, apps, strict=False):
        with col:
            _render_stats_card(app, stats[app], colors[app])


def render_footer() -> None:
    st.divider()
    st.caption("Data sourced from App Store Top Charts. Updated hourly.")
