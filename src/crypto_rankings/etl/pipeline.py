"""Scrape pipeline orchestration.

Coordinates chart extraction, snapshot creation and storage per category.
A failing category is logged and skipped so the others still get stored.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from crypto_rankings.config.settings import Config
from crypto_rankings.core.domain_models import RankingSnapshot
from crypto_rankings.core.file_manager import ParquetStorage
from crypto_rankings.core.mapper import df_to_snapshots, records_to_snapshots
from crypto_rankings.core.ranking_store import RankingStore
from crypto_rankings.etl.extract import ChartExtractor


class RankingPipeline:
    """Orchestrates scrape runs with dependency injection for testability."""

    def __init__(self, config: Config, storage: ParquetStorage, extractor: ChartExtractor) -> None:
        """
        Args:
            config: Loaded configuration (apps and categories)
            storage: ParquetStorage for the rankings data directory
            extractor: ChartExtractor used to fetch the charts
        """
        self.config = config
        self.storage = storage
        self.extractor = extractor

    @classmethod
    def from_config(cls, config: Config) -> "RankingPipeline":
        settings = config.settings
        extractor = ChartExtractor(
            country=settings.country,
            limit=settings.chart_limit,
            timeout=settings.request_timeout,
        )
        return cls(config, ParquetStorage(settings.base_dir), extractor)

    def store_for(self, category_key: str) -> RankingStore:
        category = self.config.get_category(category_key)
        return RankingStore(self.storage, category.key, self.config.app_names)

    def run(
        self,
        category_keys: list[str] | None = None,
        now: datetime | None = None,
    ) -> dict[str, RankingSnapshot]:
        """
        Run one scrape cycle.

        All categories of a cycle share the same timestamp.

        Args:
            category_keys: Categories to scrape, defaults to all configured ones
            now: Snapshot timestamp, defaults to the current UTC time

        Returns:
            Stored snapshots by category key (failed categories are missing)
        """
        timestamp = now or datetime.now(timezone.utc)
        keys = category_keys or [c.key for c in self.config.categories]
        logger.info(f"Starting scrape cycle for {len(keys)} categories at {timestamp.isoformat()}")

        stored: dict[str, RankingSnapshot] = {}
        for key in keys:
            try:
                category = self.config.get_category(key)
                ranks = self.extractor.get_ranks(category, self.config.apps)
                snapshot = RankingSnapshot(timestamp=timestamp, ranks=ranks)

                self.store_for(key).append(snapshot)
                stored[key] = snapshot

                logger.success(f"[{key}] Ranks: {ranks}")

            except KeyError as e:
                logger.warning(f"[{key}] Skipped: {e}")
                continue

            except Exception as e:
                # Network or feed error - log but keep scraping other categories
                logger.error(f"[{key}] Scrape failed: {e}")
                continue

        return stored

    def import_json(self, path: Path, category_key: str) -> int:
        """Load a JSON array of snapshot records into a category's store.

        Returns:
            Number of snapshots stored
        """
        with Path(path).open("r", encoding="utf-8") as f:
            records = json.load(f)

        snapshots = records_to_snapshots(records, self.config.app_names)
        logger.info(f"[{category_key}] Importing {len(snapshots)} snapshots from {path}")
        return self.store_for(category_key).append_many(snapshots)

    def export_json(self, path: Path, category_key: str) -> int:
        """Write a category's history as a JSON array of snapshot records."""
        snapshots = df_to_snapshots(self.store_for(category_key).read_historical())

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump([s.to_record() for s in snapshots], f, indent=2)

        logger.success(f"[{category_key}] Exported {len(snapshots)} snapshots to {path}")
        return len(snapshots)
