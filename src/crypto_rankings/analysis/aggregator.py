"""Ranking series aggregation using Polars.

Turns a raw historical ranking series into window-filtered views, per-app
statistics, 24-hour deltas and chart-ready series.

All functions are pure: they never mutate their input, hold no state and are
total over their inputs. Missing columns, null ranks and ranks beyond the
leaderboard cutoff are treated as "no sample" rather than as errors.
"""

import math
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

import polars as pl

from crypto_rankings.core.domain_models import (
    CHART_SERIES_SCHEMA,
    LEADERBOARD_CUTOFF,
    RANK_DTYPE,
    TIMESTAMP_COLUMN,
    TIMESTAMP_DTYPE,
    AppStatistics,
    RankingSnapshot,
    TimeWindow,
    YAxisBounds,
)
from crypto_rankings.core.mapper import snapshots_to_df

RankingSeries = pl.DataFrame | Sequence[RankingSnapshot] | None

DEFAULT_Y_AXIS_BOUNDS = YAxisBounds(min=1, max=LEADERBOARD_CUTOFF)
CHANGE_LOOKBACK = timedelta(hours=24)


def _resolve_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _as_frame(series: RankingSeries) -> pl.DataFrame:
    """Normalize the accepted series representations to the wide layout."""
    if isinstance(series, pl.DataFrame):
        df = series
    elif isinstance(series, Sequence) and not isinstance(series, str):
        df = snapshots_to_df([s for s in series if isinstance(s, RankingSnapshot)])
    else:
        df = pl.DataFrame()

    ts_dtype = df.schema.get(TIMESTAMP_COLUMN)
    if not isinstance(ts_dtype, pl.Datetime):
        return pl.DataFrame(schema={TIMESTAMP_COLUMN: TIMESTAMP_DTYPE})
    if ts_dtype.time_zone is None:
        df = df.with_columns(pl.col(TIMESTAMP_COLUMN).dt.replace_time_zone("UTC"))
    elif ts_dtype.time_zone != "UTC":
        df = df.with_columns(pl.col(TIMESTAMP_COLUMN).dt.convert_time_zone("UTC"))

    apps = _app_columns(df)
    return df.with_columns([_rank_column(app, df.schema[app]) for app in apps])


def _app_columns(df: pl.DataFrame) -> list[str]:
    return [c for c in df.columns if c != TIMESTAMP_COLUMN]


def _rank_column(app: str, dtype: pl.DataType) -> pl.Expr:
    """Cast a raw column to ranks, mirroring mapper.coerce_rank.

    Booleans and non-numeric columns carry no samples; fractional floats are
    nulled instead of truncated.
    """
    rank = pl.col(app)
    if dtype == pl.Boolean or not (dtype.is_numeric() or dtype == pl.String):
        return pl.lit(None, dtype=RANK_DTYPE).alias(app)
    if dtype.is_float():
        rank = pl.when(rank == rank.floor()).then(rank).otherwise(None)
    return rank.cast(RANK_DTYPE, strict=False).alias(app)


def _valid_rank(app: str) -> pl.Expr:
    """Rank expression with absent and over-cutoff values mapped to null."""
    rank = pl.col(app)
    return pl.when(rank.is_between(1, LEADERBOARD_CUTOFF)).then(rank).otherwise(None)


def filter_by_window(
    series: RankingSeries,
    window: TimeWindow | str,
    now: datetime | None = None,
) -> pl.DataFrame:
    """Keep the snapshots whose timestamp lies within the window.

    The window's lower bound is computed once from ``now``. Original row order
    is preserved, so unsorted input yields an equally unsorted (but correctly
    filtered) result.

    Args:
        series: Wide ranking series or a sequence of snapshots
        window: Time window (or its string value, e.g. "7d")
        now: Reference instant, defaults to the current UTC time

    Returns:
        Filtered series; empty (never None) when nothing qualifies
    """
    window = TimeWindow(window)
    df = _as_frame(series)

    duration = window.duration
    if df.is_empty() or duration is None:
        return df

    lower_bound = _resolve_now(now) - duration
    return df.filter(pl.col(TIMESTAMP_COLUMN) >= lower_bound)


def compute_24h_change(
    series: RankingSeries,
    app_id: str,
    latest_rank: int | None,
    now: datetime | None = None,
) -> int | None:
    """Rank change of an app over the last 24 hours.

    Compares ``latest_rank`` with the app's rank in the most recent snapshot
    taken at or before ``now - 24h``. Later snapshots are never used, even when
    they are closer to the boundary. Works on the unfiltered series since the
    reference snapshot may lie arbitrarily far back.

    Returns:
        ``old_rank - latest_rank`` (positive means the app moved up), or None
        when either endpoint is unavailable
    """
    if latest_rank is None or latest_rank < 1:
        return None

    df = _as_frame(series)
    if df.is_empty() or app_id not in df.columns:
        return None

    boundary = _resolve_now(now) - CHANGE_LOOKBACK
    day_old = (
        df.filter(pl.col(TIMESTAMP_COLUMN) <= boundary)
        # stable sort: among equal timestamps the last inserted one wins
        .sort(TIMESTAMP_COLUMN, maintain_order=True)
        .tail(1)
    )
    if day_old.is_empty():
        return None

    old_rank = day_old.select(_valid_rank(app_id)).item()
    if old_rank is None:
        return None

    return int(old_rank) - int(latest_rank)


def compute_statistics(
    series: RankingSeries,
    window: TimeWindow | str,
    latest: RankingSnapshot | None = None,
    now: datetime | None = None,
) -> dict[str, AppStatistics]:
    """Per-app descriptive statistics over the window.

    Only ranks within the leaderboard cutoff are considered. Apps without a
    single qualifying sample in the window are left out of the result.

    Args:
        series: Full (unfiltered) ranking series
        window: Time window for the statistics
        latest: Optional latest snapshot; when given, ``change_24h`` is filled
            from the full series for every reported app
        now: Reference instant shared by all computations of this call

    Returns:
        Mapping app -> AppStatistics
    """
    now = _resolve_now(now)
    full = _as_frame(series)
    windowed = filter_by_window(full, window, now=now)

    stats: dict[str, AppStatistics] = {}
    for app in _app_columns(windowed):
        rank = _valid_rank(app)
        row = windowed.select(
            rank.count().alias("samples"),
            rank.mean().alias("average"),
            rank.std(ddof=0).alias("volatility"),
            rank.min().alias("best"),
            rank.max().alias("worst"),
        ).row(0, named=True)

        if not row["samples"]:
            continue

        change = None
        if latest is not None:
            change = compute_24h_change(full, app, latest.rank_of(app), now=now)

        stats[app] = AppStatistics(
            average=round(row["average"], 1),
            volatility=round(row["volatility"] or 0.0, 2),
            best=row["best"],
            worst=row["worst"],
            change_24h=change,
        )

    return stats


def compute_y_axis_bounds(
    series: RankingSeries,
    window: TimeWindow | str = TimeWindow.ALL_TIME,
    padding: int = 5,
    now: datetime | None = None,
) -> YAxisBounds:
    """Stable y-axis range for the ranking chart.

    Snaps the observed rank range outwards to multiples of 10 and pads it, so
    the axis does not jitter with every refresh. Clamped to [1, cutoff].
    """
    df = filter_by_window(series, window, now=now)
    apps = _app_columns(df)
    if df.is_empty() or not apps:
        return DEFAULT_Y_AXIS_BOUNDS

    valid = [_valid_rank(app) for app in apps]
    best, worst = df.select(
        pl.min_horizontal(valid).min().alias("best"),
        pl.max_horizontal(valid).max().alias("worst"),
    ).row(0)
    if best is None or worst is None:
        return DEFAULT_Y_AXIS_BOUNDS

    padding = max(0, padding)
    lower = max(1, math.floor(best / 10) * 10 - padding)
    upper = min(LEADERBOARD_CUTOFF, math.ceil(worst / 10) * 10 + padding)

    # Zero padding on a decade boundary collapses the range
    if lower >= upper:
        upper = min(LEADERBOARD_CUTOFF, lower + 10)
        lower = max(1, upper - 10)

    return YAxisBounds(min=lower, max=upper)


def to_chart_series(
    series: RankingSeries,
    window: TimeWindow | str,
    now: datetime | None = None,
) -> pl.DataFrame:
    """Long-format series (timestamp, app, rank) ready for plotting.

    Absent and over-cutoff ranks become nulls, which the chart renders as gaps
    instead of plotting values outside the tracked leaderboard.
    """
    df = filter_by_window(series, window, now=now)
    apps = _app_columns(df)
    if df.is_empty() or not apps:
        return pl.DataFrame(schema=CHART_SERIES_SCHEMA)

    return (
        df.with_columns([_valid_rank(app).alias(app) for app in apps])
        .unpivot(index=TIMESTAMP_COLUMN, on=apps, variable_name="app", value_name="rank")
        .sort(TIMESTAMP_COLUMN, maintain_order=True)
        .cast(CHART_SERIES_SCHEMA)
    )
