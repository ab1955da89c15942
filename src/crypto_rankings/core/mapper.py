"""Mapping between raw ranking records and the domain layer.

This is the I/O boundary: JSON-ish records coming from the store, an export
file or the scraper are validated and coerced into RankingSnapshot objects here,
so the aggregator never has to deal with malformed shapes.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

import polars as pl
from loguru import logger

from crypto_rankings.core.domain_models import (
    RANK_DTYPE,
    TIMESTAMP_COLUMN,
    TIMESTAMP_DTYPE,
    RankingSnapshot,
    ranking_schema,
)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601 strings or datetimes into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def coerce_rank(value: Any) -> int | None:
    """Coerce a raw rank into a positive int, anything else means "no sample"."""
    # bool is an int subclass, never a rank
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        rank = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        rank = int(value)
    elif isinstance(value, str):
        text = value.strip().lstrip("#")
        if not text.isdigit():
            return None
        rank = int(text)
    else:
        return None
    return rank if rank > 0 else None


def snapshot_from_record(
    record: Any,
    apps: Sequence[str] | None = None,
) -> RankingSnapshot | None:
    """Build a snapshot from a flat record ``{"timestamp": ..., "<app>": rank}``.

    Args:
        record: Raw record (usually a decoded JSON object)
        apps: Restrict/complete the rank mapping to these app identifiers.
            Apps missing from the record are stored as None.

    Returns:
        RankingSnapshot, or None when the record has no usable timestamp
    """
    if not isinstance(record, Mapping):
        logger.warning(f"Skipping non-object ranking record: {record!r}")
        return None

    timestamp = parse_timestamp(record.get(TIMESTAMP_COLUMN))
    if timestamp is None:
        logger.warning(f"Skipping ranking record with invalid timestamp: {record!r}")
        return None

    keys = list(apps) if apps is not None else [k for k in record if k != TIMESTAMP_COLUMN]
    ranks = {app: coerce_rank(record.get(app)) for app in keys}
    return RankingSnapshot(timestamp=timestamp, ranks=ranks)


def records_to_snapshots(
    records: Any,
    apps: Sequence[str] | None = None,
) -> list[RankingSnapshot]:
    """Validate a list of raw records, dropping the unusable ones."""
    if not isinstance(records, list):
        logger.warning(f"Expected a list of ranking records, got {type(records).__name__}")
        return []

    snapshots = []
    for record in records:
        snapshot = snapshot_from_record(record, apps)
        if snapshot is not None:
            snapshots.append(snapshot)

    dropped = len(records) - len(snapshots)
    if dropped:
        logger.warning(f"Dropped {dropped} malformed ranking records")
    return snapshots


def _collect_apps(snapshots: Iterable[RankingSnapshot]) -> list[str]:
    """App identifiers in order of first appearance."""
    seen: dict[str, None] = {}
    for snapshot in snapshots:
        for app in snapshot.ranks:
            seen.setdefault(app, None)
    return list(seen)


def snapshots_to_df(
    snapshots: Sequence[RankingSnapshot],
    apps: Sequence[str] | None = None,
) -> pl.DataFrame:
    """Convert snapshots into the wide series layout, keeping their order."""
    app_list = list(apps) if apps is not None else _collect_apps(snapshots)
    schema = ranking_schema(app_list)

    if not snapshots:
        return pl.DataFrame(schema=schema)

    rows = [
        {TIMESTAMP_COLUMN: s.timestamp, **{app: s.rank_of(app) for app in app_list}}
        for s in snapshots
    ]
    return pl.from_dicts(rows, schema=schema)


def df_to_snapshots(df: pl.DataFrame) -> list[RankingSnapshot]:
    """Convert a wide series back into snapshot objects."""
    if df.is_empty():
        return []
    apps = [c for c in df.columns if c != TIMESTAMP_COLUMN]
    return [
        RankingSnapshot(
            timestamp=row[TIMESTAMP_COLUMN],
            ranks={app: row[app] for app in apps},
        )
        for row in df.iter_rows(named=True)
    ]


def align_to_apps(df: pl.DataFrame, apps: Sequence[str]) -> pl.DataFrame:
    """Ensure the series carries exactly the given app columns.

    Apps missing from stored data (e.g. added to the config later) are filled
    with nulls; unknown columns are dropped.
    """
    missing = [app for app in apps if app not in df.columns]
    if missing:
        logger.debug(f"Adding empty rank columns for {missing}")
        df = df.with_columns([pl.lit(None, dtype=RANK_DTYPE).alias(app) for app in missing])

    if TIMESTAMP_COLUMN not in df.columns:
        df = df.with_columns(pl.lit(None, dtype=TIMESTAMP_DTYPE).alias(TIMESTAMP_COLUMN))

    return df.select(
        pl.col(TIMESTAMP_COLUMN).cast(TIMESTAMP_DTYPE),
        *[pl.col(app).cast(RANK_DTYPE, strict=False) for app in apps],
    )
