"""Logic layer for the rankings dashboard.

Derives everything a render cycle needs from aggregator output.
Pure Python/Polars - no Streamlit UI calls.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone

import polars as pl

from crypto_rankings.analysis.aggregator import (
    compute_24h_change,
    compute_statistics,
    compute_y_axis_bounds,
    to_chart_series,
)
from crypto_rankings.app.logic.data_loader import CategoryData
from crypto_rankings.config.settings import Config
from crypto_rankings.core.domain_models import AppStatistics, TimeWindow, YAxisBounds

DEFAULT_WINDOW = TimeWindow.LAST_7_DAYS

# (tick format, hover format) in d3-time-format, per window
TIME_AXIS_FORMATS: dict[TimeWindow, tuple[str, str]] = {
    TimeWindow.LAST_24_HOURS: ("%-I%p", "%-I:%M:%S %p"),
    TimeWindow.LAST_7_DAYS: ("%b %-d", "%b %-d, %-I:%M %p"),
    TimeWindow.LAST_30_DAYS: ("%b %-d", "%b %-d"),
    TimeWindow.ALL_TIME: ("%b %Y", "%b %-d"),
}


@dataclass(frozen=True)
class RankCard:
    app: str
    rank: int | None
    change: int | None
    color: str


@dataclass(frozen=True)
class DashboardView:
    """Everything one render cycle displays, computed from a single `now`."""

    window: TimeWindow
    rank_cards: list[RankCard]
    chart_series: pl.DataFrame
    y_bounds: YAxisBounds
    stats: dict[str, AppStatistics]
    last_updated: datetime | None


def build_dashboard_view(
    data: CategoryData,
    window: TimeWindow,
    config: Config,
    now: datetime | None = None,
) -> DashboardView:
    """Compute rank cards, chart series, axis bounds and statistics."""
    now = now or datetime.now(timezone.utc)
    latest = data.latest

    rank_cards = []
    for app in config.apps:
        rank = latest.rank_of(app.name) if latest else None
        rank_cards.append(
            RankCard(
                app=app.name,
                rank=rank,
                change=compute_24h_change(data.history, app.name, rank, now=now),
                color=app.color,
            )
        )

    return DashboardView(
        window=window,
        rank_cards=rank_cards,
        chart_series=to_chart_series(data.history, window, now=now),
        y_bounds=compute_y_axis_bounds(
            data.history, window, padding=config.settings.y_axis_padding, now=now
        ),
        stats=compute_statistics(data.history, window, now=now),
        last_updated=latest.timestamp if latest else None,
    )


def format_rank(rank: int | None) -> str:
    """Ordinal chart position, e.g. 1st, 22nd, 113th; a dash when unranked."""
    if rank is None:
        return "—"
    if 10 <= rank % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix}"


def change_caption(change: int | None) -> str:
    if change is None:
        return "No change data"
    if change > 0:
        return "Moved up in 24h"
    if change < 0:
        return "Moved down in 24h"
    return "No movement in 24h"


def format_last_updated(timestamp: datetime | None) -> str:
    if timestamp is None:
        return "—"
    return timestamp.strftime("%b %d, %I:%M %p UTC")


def y_axis_tick_step(bounds: YAxisBounds) -> int:
    """Roughly eight ticks across the axis."""
    return max(1, math.ceil((bounds.max - bounds.min) / 8))
