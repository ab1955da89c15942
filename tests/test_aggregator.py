"""Tests for the ranking series aggregator."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import polars as pl
import pytest

from crypto_rankings.analysis.aggregator import (
    compute_24h_change,
    compute_statistics,
    compute_y_axis_bounds,
    filter_by_window,
    to_chart_series,
)
from crypto_rankings.core.domain_models import RankingSnapshot, TimeWindow, YAxisBounds


# --- filter_by_window ---


@pytest.mark.parametrize("window", list(TimeWindow))
def test_filter_empty_series_returns_empty_frame(window, now) -> None:
    for series in ([], None, pl.DataFrame()):
        result = filter_by_window(series, window, now=now)
        assert isinstance(result, pl.DataFrame)
        assert result.is_empty()


def test_filter_keeps_relative_order_of_unsorted_input(make_snapshot, now) -> None:
    hours_ago = [30, 2, 200, 10, 0.5]
    series = [make_snapshot(h, {"Coinbase": 5}) for h in hours_ago]

    result = filter_by_window(series, TimeWindow.LAST_24_HOURS, now=now)

    expected = [now - timedelta(hours=h) for h in (2, 10, 0.5)]
    assert result.get_column("timestamp").to_list() == expected


@pytest.mark.parametrize(
    "window, expected_count",
    [
        (TimeWindow.LAST_24_HOURS, 2),
        (TimeWindow.LAST_7_DAYS, 3),
        (TimeWindow.LAST_30_DAYS, 4),
        (TimeWindow.ALL_TIME, 5),
    ],
)
def test_filter_respects_window_lower_bound(make_snapshot, now, window, expected_count) -> None:
    hours_ago = [1, 20, 24 * 5, 24 * 20, 24 * 90]
    series = [make_snapshot(h, {"Coinbase": 1}) for h in hours_ago]

    result = filter_by_window(series, window, now=now)

    assert result.height == expected_count
    if window.duration is not None:
        assert all(ts >= now - window.duration for ts in result.get_column("timestamp"))


def test_filter_boundary_is_inclusive(make_snapshot, now) -> None:
    series = [make_snapshot(24, {"Coinbase": 3})]
    assert filter_by_window(series, TimeWindow.LAST_24_HOURS, now=now).height == 1


def test_filter_accepts_window_value_and_naive_frame(now) -> None:
    naive_now = now.replace(tzinfo=None)
    df = pl.DataFrame(
        {
            "timestamp": [naive_now - timedelta(days=10), naive_now - timedelta(days=1)],
            "Coinbase": [4, 6],
        }
    )

    result = filter_by_window(df, "7d", now=now)

    assert result.get_column("Coinbase").to_list() == [6]


# --- compute_statistics ---


def test_statistics_basic_values(make_snapshot, now) -> None:
    series = [make_snapshot(h, {"Coinbase": r}) for h, r in [(3, 5), (2, 10), (1, 15)]]

    stats = compute_statistics(series, TimeWindow.LAST_24_HOURS, now=now)

    coinbase = stats["Coinbase"]
    assert coinbase.average == 10.0
    assert coinbase.best == 5
    assert coinbase.worst == 15
    assert coinbase.volatility == 4.08
    assert coinbase.change_24h is None


def test_statistics_omit_apps_without_qualifying_samples(make_snapshot, now) -> None:
    series = [
        make_snapshot(2, {"Coinbase": 12, "Crypto.com": None, "Binance": 101}),
        make_snapshot(1, {"Coinbase": 14, "Crypto.com": None, "Binance": None}),
    ]

    stats = compute_statistics(series, TimeWindow.ALL_TIME, now=now)

    assert set(stats) == {"Coinbase"}


def test_statistics_treat_over_cutoff_rank_as_absent(make_snapshot, now) -> None:
    series = [make_snapshot(2, {"Coinbase": 5}), make_snapshot(1, {"Coinbase": 101})]

    stats = compute_statistics(series, TimeWindow.ALL_TIME, now=now)["Coinbase"]

    assert stats.average == 5.0
    assert stats.worst == 5
    assert stats.volatility == 0.0


def test_statistics_only_use_samples_inside_window(make_snapshot, now) -> None:
    series = [make_snapshot(48, {"Coinbase": 90}), make_snapshot(1, {"Coinbase": 20})]

    day = compute_statistics(series, TimeWindow.LAST_24_HOURS, now=now)["Coinbase"]
    week = compute_statistics(series, TimeWindow.LAST_7_DAYS, now=now)["Coinbase"]

    assert (day.best, day.worst) == (20, 20)
    assert (week.best, week.worst) == (20, 90)
    assert week.average == 55.0


def test_statistics_fill_change_from_full_series(make_snapshot, now) -> None:
    series = [
        make_snapshot(24 * 3, {"Coinbase": 30}),
        make_snapshot(1, {"Coinbase": 18}),
    ]
    latest = make_snapshot(0, {"Coinbase": 18})

    # The day-old reference lies outside the 24h window but still counts
    stats = compute_statistics(series, TimeWindow.LAST_24_HOURS, latest=latest, now=now)

    assert stats["Coinbase"].change_24h == 12


def test_statistics_empty_input(now) -> None:
    assert compute_statistics([], TimeWindow.LAST_7_DAYS, now=now) == {}
    assert compute_statistics(None, TimeWindow.ALL_TIME, now=now) == {}


# --- compute_24h_change ---


def test_change_uses_snapshot_exactly_at_boundary(make_snapshot, now) -> None:
    series = [make_snapshot(24, {"Coinbase": 10})]
    assert compute_24h_change(series, "Coinbase", 5, now=now) == 5


def test_change_is_none_without_snapshot_before_boundary(make_snapshot, now) -> None:
    series = [make_snapshot(23.9, {"Coinbase": 10}), make_snapshot(1, {"Coinbase": 8})]
    assert compute_24h_change(series, "Coinbase", 5, now=now) is None


def test_change_uses_nearest_preceding_snapshot(make_snapshot, now) -> None:
    series = [
        make_snapshot(25, {"Coinbase": 20}),
        # two minutes after the boundary: closer, but must not be used
        make_snapshot(24 - 2 / 60, {"Coinbase": 8}),
    ]
    assert compute_24h_change(series, "Coinbase", 10, now=now) == 10


def test_change_handles_unsorted_series(make_snapshot, now) -> None:
    series = [
        make_snapshot(26, {"Coinbase": 30}),
        make_snapshot(1, {"Coinbase": 11}),
        make_snapshot(25, {"Coinbase": 20}),
        make_snapshot(48, {"Coinbase": 40}),
    ]
    assert compute_24h_change(series, "Coinbase", 10, now=now) == 10


def test_change_negative_when_rank_dropped(make_snapshot, now) -> None:
    series = [make_snapshot(30, {"Binance": 4})]
    assert compute_24h_change(series, "Binance", 9, now=now) == -5


def test_change_tie_break_is_deterministic(make_snapshot, now) -> None:
    series = [
        make_snapshot(24, {"Coinbase": 12}),
        make_snapshot(24, {"Coinbase": 14}),
    ]
    results = {compute_24h_change(series, "Coinbase", 10, now=now) for _ in range(5)}
    assert results == {4}


@pytest.mark.parametrize(
    "old_ranks, app, latest_rank",
    [
        ({"Coinbase": 101}, "Coinbase", 5),
        ({"Coinbase": None}, "Coinbase", 5),
        ({"Coinbase": 10}, "Coinbase", None),
        ({"Coinbase": 10}, "Binance", 5),
    ],
)
def test_change_is_none_for_missing_endpoints(
    make_snapshot, now, old_ranks, app, latest_rank
) -> None:
    series = [make_snapshot(30, old_ranks)]
    assert compute_24h_change(series, app, latest_rank, now=now) is None


def test_change_on_empty_series(now) -> None:
    assert compute_24h_change([], "Coinbase", 5, now=now) is None


# --- compute_y_axis_bounds ---


def test_bounds_default_without_data(make_snapshot, now) -> None:
    assert compute_y_axis_bounds([], now=now) == YAxisBounds(min=1, max=100)
    only_absent = [make_snapshot(1, {"Coinbase": None, "Binance": 150})]
    assert compute_y_axis_bounds(only_absent, now=now) == YAxisBounds(min=1, max=100)


def test_bounds_snap_to_decades_and_pad(make_snapshot, now) -> None:
    series = [
        make_snapshot(2, {"Coinbase": 23, "Binance": 47}),
        make_snapshot(1, {"Coinbase": 31, "Binance": 120}),
    ]

    assert compute_y_axis_bounds(series, now=now) == YAxisBounds(min=15, max=55)
    assert compute_y_axis_bounds(series, padding=10, now=now) == YAxisBounds(min=10, max=60)


def test_bounds_clamped_to_domain(make_snapshot, now) -> None:
    series = [make_snapshot(1, {"Coinbase": 2, "Binance": 98})]
    assert compute_y_axis_bounds(series, now=now) == YAxisBounds(min=1, max=100)


def test_bounds_only_consider_window(make_snapshot, now) -> None:
    series = [make_snapshot(24 * 10, {"Coinbase": 90}), make_snapshot(1, {"Coinbase": 44})]

    bounds = compute_y_axis_bounds(series, TimeWindow.LAST_7_DAYS, now=now)

    assert bounds == YAxisBounds(min=35, max=55)


@pytest.mark.parametrize("padding", [0, 5, 10])
@pytest.mark.parametrize("ranks", [[1], [10], [100], [1, 100], [50], [9, 11], [99]])
def test_bounds_always_form_valid_range(make_snapshot, now, ranks, padding) -> None:
    series = [make_snapshot(i + 1, {"Coinbase": r}) for i, r in enumerate(ranks)]

    bounds = compute_y_axis_bounds(series, padding=padding, now=now)

    assert 1 <= bounds.min < bounds.max <= 100
    assert bounds.min <= min(ranks) and max(ranks) <= bounds.max


# --- to_chart_series ---


def test_chart_series_long_format_with_gaps(make_snapshot, now) -> None:
    series = [
        make_snapshot(1, {"Coinbase": 3, "Binance": 101}),
        make_snapshot(2, {"Coinbase": None, "Binance": 7}),
    ]

    chart = to_chart_series(series, TimeWindow.ALL_TIME, now=now)

    assert chart.columns == ["timestamp", "app", "rank"]
    assert chart.get_column("timestamp").is_sorted()
    rows = {(r["timestamp"], r["app"]): r["rank"] for r in chart.iter_rows(named=True)}
    assert rows[(now - timedelta(hours=2), "Coinbase")] is None
    assert rows[(now - timedelta(hours=2), "Binance")] == 7
    assert rows[(now - timedelta(hours=1), "Coinbase")] == 3
    assert rows[(now - timedelta(hours=1), "Binance")] is None


def test_chart_series_empty(now) -> None:
    chart = to_chart_series([], TimeWindow.LAST_24_HOURS, now=now)
    assert chart.is_empty()
    assert chart.columns == ["timestamp", "app", "rank"]


def test_aggregator_does_not_mutate_input(now) -> None:
    df = pl.DataFrame(
        {
            "timestamp": [now - timedelta(hours=2), now - timedelta(hours=30)],
            "Coinbase": [5, 101],
        }
    )
    before = df.clone()

    filter_by_window(df, TimeWindow.LAST_24_HOURS, now=now)
    compute_statistics(df, TimeWindow.ALL_TIME, now=now)
    compute_24h_change(df, "Coinbase", 5, now=now)
    compute_y_axis_bounds(df, now=now)
    to_chart_series(df, TimeWindow.ALL_TIME, now=now)

    assert df.equals(before)


def test_now_defaults_to_current_time() -> None:
    current = datetime.now(timezone.utc)
    series = [
        RankingSnapshot(timestamp=current - timedelta(hours=48), ranks={"Coinbase": 9}),
        RankingSnapshot(timestamp=current - timedelta(hours=1), ranks={"Coinbase": 7}),
    ]

    result = filter_by_window(series, TimeWindow.LAST_24_HOURS)

    assert result.get_column("Coinbase").to_list() == [7]


def test_bounds_from_plain_frame_with_several_apps(now) -> None:
    df = pl.DataFrame(
        {
            "timestamp": [now - timedelta(hours=2), now - timedelta(hours=1)],
            "Coinbase": [23, 31],
            "Crypto.com": [None, 47],
            "Binance": [120, None],
        }
    )

    assert compute_y_axis_bounds(df, TimeWindow.LAST_24_HOURS, now=now) == YAxisBounds(
        min=15, max=55
    )


def test_non_utc_now_is_converted(make_snapshot, now) -> None:
    series = [make_snapshot(30, {"Coinbase": 20}), make_snapshot(1, {"Coinbase": 7})]
    berlin_now = now.astimezone(ZoneInfo("Europe/Berlin"))

    windowed = filter_by_window(series, "24h", now=berlin_now)
    assert windowed.get_column("Coinbase").to_list() == [7]
    assert compute_24h_change(series, "Coinbase", 7, now=berlin_now) == 13
    stats = compute_statistics(series, TimeWindow.LAST_24_HOURS, now=berlin_now)
    assert stats["Coinbase"].best == 7


def test_fractional_and_boolean_columns_carry_no_samples(now) -> None:
    df = pl.DataFrame(
        {
            "timestamp": [now - timedelta(hours=2), now - timedelta(hours=1)],
            "Coinbase": [5.7, 8.0],
            "flag": [True, True],
            "label": ["top", "#3"],
        }
    )

    stats = compute_statistics(df, TimeWindow.ALL_TIME, now=now)

    assert set(stats) == {"Coinbase"}
    assert (stats["Coinbase"].best, stats["Coinbase"].worst) == (8, 8)
