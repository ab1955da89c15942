from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from crypto_rankings.config.settings import AppSettings, Config
from crypto_rankings.core.domain_models import RankingSnapshot

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
APPS = ["Coinbase", "Crypto.com", "Binance"]

SnapshotFactory = Callable[..., RankingSnapshot]


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    """Build a snapshot taken ``hours_ago`` hours before NOW."""

    def _make(hours_ago: float, ranks: dict[str, int | None] | None = None) -> RankingSnapshot:
        return RankingSnapshot(
            timestamp=NOW - timedelta(hours=hours_ago),
            ranks=ranks if ranks is not None else {},
        )

    return _make


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(settings=AppSettings(base_dir=tmp_path / "rankings"))
