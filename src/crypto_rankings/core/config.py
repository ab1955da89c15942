"""Environment configuration using Pydantic V2."""

import sys
from pathlib import Path

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvSettings(BaseSettings):
    """Process-level settings read from the environment or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = Field(default=False, description="Debug mode")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Main YAML configuration
    config_path: Path = Field(default=Path("config/config.yaml"))


def configure_logging(level: str | None = None) -> None:
    """Route loguru output to stderr with the configured level."""
    level = (level or ("DEBUG" if env_settings.debug else env_settings.log_level)).upper()
    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.debug(f"Logging configured at level {level}")


# Singleton instance
env_settings = EnvSettings()
