"""Timestamp-keyed persistence of ranking snapshots.

One historical file per category holds every snapshot (keyed by timestamp,
append-only apart from same-key overwrites) and a separate single-row file
holds the most recent snapshot, so the "latest" read never has to scan history.
"""

from collections.abc import Sequence
from datetime import datetime

import polars as pl
from loguru import logger

from crypto_rankings.core.domain_models import TIMESTAMP_COLUMN, RankingSnapshot
from crypto_rankings.core.file_manager import ParquetStorage
from crypto_rankings.core.mapper import (
    align_to_apps,
    df_to_snapshots,
    parse_timestamp,
    snapshots_to_df,
)


class RankingStore:
    """Read/write access to the snapshots of one chart category."""

    def __init__(self, storage: ParquetStorage, category: str, apps: Sequence[str]) -> None:
        """
        Args:
            storage: ParquetStorage rooted at the rankings data directory
            category: Category key (e.g. "finance"), used in file names
            apps: Tracked app identifiers; defines the columns of every read
        """
        self.storage = storage
        self.category = category
        self.apps = list(apps)

    @property
    def historical_file(self) -> str:
        return f"historical_{self.category}"

    @property
    def latest_file(self) -> str:
        return f"latest_{self.category}"

    def append(self, snapshot: RankingSnapshot) -> None:
        """Store one snapshot and make it the latest one."""
        self.append_many([snapshot])

    def append_many(self, snapshots: Sequence[RankingSnapshot]) -> int:
        """Store several snapshots at once.

        A snapshot with an already stored timestamp replaces the stored one.
        The latest record only moves forward in time.

        Returns:
            Number of snapshots written
        """
        if not snapshots:
            logger.info(f"[{self.category}] Nothing to store")
            return 0

        new_df = snapshots_to_df(snapshots, self.apps)
        self.storage.atomic_update(new_df, self.historical_file, unique_keys=[TIMESTAMP_COLUMN])

        newest = max(snapshots, key=lambda s: s.timestamp)
        current = self.read_latest()
        if current is None or newest.timestamp >= current.timestamp:
            self.storage.atomic_write(snapshots_to_df([newest], self.apps), self.latest_file)

        logger.success(f"[{self.category}] Stored {len(snapshots)} snapshot(s)")
        return len(snapshots)

    def read_historical(self, since: datetime | None = None) -> pl.DataFrame:
        """Full or lower-bounded history, ascending by timestamp.

        Returns an empty series when nothing has been stored yet.
        """
        try:
            df = self.storage.read(self.historical_file)
        except FileNotFoundError:
            logger.info(f"[{self.category}] No historical rankings stored yet")
            return snapshots_to_df([], self.apps)

        df = align_to_apps(df, self.apps).sort(TIMESTAMP_COLUMN, maintain_order=True)
        if since is not None:
            df = df.filter(pl.col(TIMESTAMP_COLUMN) >= parse_timestamp(since))
        return df

    def read_latest(self) -> RankingSnapshot | None:
        try:
            df = self.storage.read(self.latest_file)
        except FileNotFoundError:
            return None

        snapshots = df_to_snapshots(align_to_apps(df, self.apps))
        return snapshots[-1] if snapshots else None
