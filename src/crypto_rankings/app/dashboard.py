"""Crypto App Rankings Dashboard - Main Entry Point.

Run with: streamlit run src/crypto_rankings/app/dashboard.py
"""

import streamlit as st
from loguru import logger

from crypto_rankings.app.logic.dashboard import build_dashboard_view
from crypto_rankings.app.logic.data_loader import RankingDataLoader
from crypto_rankings.app.views.common import render_empty_state
from crypto_rankings.app.views.dashboard import (
    category_selection,
    render_footer,
    render_header,
    render_rank_cards,
    render_ranking_chart,
    render_stats_cards,
    window_selection,
)
from crypto_rankings.config.settings import load_config

st.set_page_config(
    page_title="App Store Rankings",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="collapsed",
)

config = load_config()
loader = RankingDataLoader(config)
app_colors = config.app_colors

col_category, col_refresh = st.columns([5, 1])
with col_category:
    category = category_selection(config.categories)
with col_refresh:
    if st.button("🔄 Refresh", help="Reload rankings from disk"):
        loader.clear_cache()


@st.fragment(run_every=config.settings.refresh_seconds)
def render_dashboard(category_key: str) -> None:
    """Reload and redraw everything for the selected category."""
    try:
        data = loader.load_category(category_key)
    except Exception as e:
        st.error("Ranking data is currently unavailable. Please try again later.")
        logger.error(f"[{category_key}] Data loading error: {e}")
        return

    if data.is_empty:
        render_header(None)
        render_empty_state("No rankings recorded yet for this category")
        return

    # Header and cards sit above the window pills but depend on their value
    header_area = st.container()
    cards_area = st.container()
    st.divider()

    st.subheader("Ranking History")
    st.caption("Track position changes over time")
    window = window_selection()
    view = build_dashboard_view(data, window, config)

    with header_area:
        render_header(view)
    with cards_area:
        render_rank_cards(view.rank_cards)

    render_ranking_chart(view, app_colors)

    render_stats_cards(view.stats, app_colors)


render_dashboard(category.key)
render_footer()
