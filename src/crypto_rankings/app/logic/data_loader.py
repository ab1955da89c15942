"""Data loader with caching for the Streamlit dashboard.

Reads the stored ranking history and latest snapshot of a category.
Uses Streamlit caching so reruns within the TTL do not hit the disk.
"""

from dataclasses import dataclass
from pathlib import Path

import polars as pl
import streamlit as st
from loguru import logger

from crypto_rankings.config.settings import Config
from crypto_rankings.core.domain_models import RankingSnapshot
from crypto_rankings.core.file_manager import ParquetStorage
from crypto_rankings.core.ranking_store import RankingStore

# Data is scraped hourly; five minutes keeps reruns cheap without going stale
CACHE_TTL_SECONDS = 300


@dataclass
class CategoryData:
    """Container for one category's ranking data."""

    history: pl.DataFrame
    latest: RankingSnapshot | None

    @property
    def is_empty(self) -> bool:
        return self.history.is_empty() and self.latest is None


class RankingDataLoader:
    """Loads ranking data for the configured categories."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def load_category(self, category_key: str) -> CategoryData:
        """Load history and latest snapshot of a category.

        Raises:
            KeyError: If the category is not configured
        """
        category = self.config.get_category(category_key)
        return _load_cached_category(
            self.config.settings.base_dir,
            category.key,
            tuple(self.config.app_names),
        )

    @staticmethod
    def clear_cache() -> None:
        _load_cached_category.clear()


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner="Loading rankings...")  # type: ignore[misc]
def _load_cached_category(base_dir: Path, category_key: str, apps: tuple[str, ...]) -> CategoryData:
    """Cached helper to read one category from disk.

    Separated from the class to work cleanly with Streamlit's caching decorator.
    """
    logger.info(f"[{category_key}] Loading rankings from {base_dir}")
    store = RankingStore(ParquetStorage(base_dir), category_key, list(apps))

    history = store.read_historical()
    latest = store.read_latest()
    logger.info(f"[{category_key}] Loaded {history.height:,} snapshots")

    return CategoryData(history=history, latest=latest)
