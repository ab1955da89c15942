from datetime import datetime, timedelta, timezone
from enum import Enum

import polars as pl
from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Constants & Schemas ---

# Leaderboard depth. Ranks beyond it count as "not on the chart".
LEADERBOARD_CUTOFF = 100

TIMESTAMP_COLUMN = "timestamp"
TIMESTAMP_DTYPE = pl.Datetime(time_unit="us", time_zone="UTC")
RANK_DTYPE = pl.Int64

# Long layout used for charting (one row per snapshot and app)
CHART_SERIES_SCHEMA = {
    TIMESTAMP_COLUMN: TIMESTAMP_DTYPE,
    "app": pl.Utf8,
    "rank": RANK_DTYPE,
}


def ranking_schema(apps: list[str]) -> dict[str, pl.DataType]:
    """Wide series schema: one row per snapshot, one rank column per app."""
    schema: dict[str, pl.DataType] = {TIMESTAMP_COLUMN: TIMESTAMP_DTYPE}
    schema.update({app: RANK_DTYPE for app in apps})
    return schema


# --- Enums ---


class TimeWindow(str, Enum):
    """Relative time range used to bound which snapshots are considered."""

    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    ALL_TIME = "all"

    @property
    def duration(self) -> timedelta | None:
        """Window length, None for all-time."""
        return _WINDOW_DURATIONS[self]

    @property
    def label(self) -> str:
        return "All" if self is TimeWindow.ALL_TIME else self.value.upper()


_WINDOW_DURATIONS: dict[TimeWindow, timedelta | None] = {
    TimeWindow.LAST_24_HOURS: timedelta(hours=24),
    TimeWindow.LAST_7_DAYS: timedelta(days=7),
    TimeWindow.LAST_30_DAYS: timedelta(days=30),
    TimeWindow.ALL_TIME: None,
}


# --- Domain Models ---


class RankingSnapshot(BaseModel):
    """
    One timestamped observation of all tracked apps' chart positions.

    A rank of None means the app was not found in the tracked leaderboard
    during that cycle.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    ranks: dict[str, int | None] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are interpreted as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def rank_of(self, app: str) -> int | None:
        return self.ranks.get(app)

    def to_record(self) -> dict[str, object]:
        """Flat record in the exchange format: timestamp plus one key per app."""
        return {TIMESTAMP_COLUMN: self.timestamp.isoformat(), **self.ranks}


class AppStatistics(BaseModel):
    """
    Descriptive statistics of one app's in-window ranks.

    Design Choice:
    - Values are rounded for display (average: 1 decimal, volatility: 2 decimals)
      after being computed with full precision.
    - change_24h is only set when the caller supplied a latest snapshot.
    """

    model_config = ConfigDict(frozen=True)

    average: float
    volatility: float
    best: int
    worst: int
    change_24h: int | None = None


class YAxisBounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: int
    max: int
