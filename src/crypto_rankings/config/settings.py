"""Configuration management for Crypto App Rankings.

Centralizes tracked apps, chart categories and application settings.
"""

from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, Field, model_validator

from crypto_rankings.config.models import (
    DEFAULT_APPS,
    DEFAULT_CATEGORIES,
    ChartCategory,
    TrackedApp,
)
from crypto_rankings.core.config import env_settings


class AppSettings(BaseModel):
    """Application-level settings."""

    base_dir: Path = Field(default=Path("data/rankings"))
    country: str = Field(default="us", description="App Store storefront")
    chart_limit: int = Field(default=100, ge=1, le=200, description="Entries fetched per chart")
    request_timeout: float = Field(default=20.0, gt=0)
    scrape_interval_minutes: int = Field(default=60, ge=1)
    refresh_seconds: int = Field(default=60, ge=5, description="Dashboard auto refresh")
    y_axis_padding: int = Field(default=5, ge=0)


class Config(BaseModel):
    """Root configuration model."""

    apps: list[TrackedApp] = Field(default_factory=lambda: list(DEFAULT_APPS))
    categories: list[ChartCategory] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    settings: AppSettings = Field(default_factory=AppSettings)

    @model_validator(mode="after")
    def check_unique_names(self) -> "Config":
        app_names = [app.name for app in self.apps]
        if len(set(app_names)) != len(app_names):
            raise ValueError(f"Duplicate app names in config: {app_names}")
        category_keys = [c.key for c in self.categories]
        if len(set(category_keys)) != len(category_keys):
            raise ValueError(f"Duplicate category keys in config: {category_keys}")
        return self

    @property
    def app_names(self) -> list[str]:
        return [app.name for app in self.apps]

    @property
    def app_colors(self) -> dict[str, str]:
        return {app.name: app.color for app in self.apps}

    def get_category(self, key: str) -> ChartCategory:
        """Look up a category by key.

        Raises:
            KeyError: If the category is not configured
        """
        for category in self.categories:
            if category.key == key:
                return category
        raise KeyError(f"Unknown category '{key}'. Known: {[c.key for c in self.categories]}")


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file.

    Falls back to the built-in defaults (Coinbase, Crypto.com and Binance on
    the finance and overall charts) when the file does not exist.

    Args:
        config_path: Path to config.yaml, defaults to the CONFIG_PATH env setting

    Returns:
        Parsed configuration object

    Raises:
        yaml.YAMLError: If config file is malformed
        pydantic.ValidationError: If values are invalid
    """
    config_path = Path(config_path or env_settings.config_path)

    if not config_path.exists():
        logger.warning(f"Config not found at {config_path}. Using defaults.")
        return Config()

    logger.info(f"Loading configuration from {config_path}")

    with config_path.open("r", encoding="utf-8") as f:
        raw_config: dict[str, Any] = yaml.safe_load(f) or {}

    config = Config(**raw_config)
    logger.debug(
        f"Tracking {len(config.apps)} apps in {len(config.categories)} categories: "
        f"{config.app_names}"
    )
    return config
