"""Pydantic models for tracked apps and chart categories."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrackedApp(BaseModel):
    """An App Store app whose chart position is tracked."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Display name, also the column name in stored series")
    app_id: str = Field(description="Numeric App Store id (as string)")
    color: str = Field(default="#4b5563", description="Brand color used in charts")

    @field_validator("app_id", mode="before")
    @classmethod
    def validate_app_id(cls, v: object) -> str:
        """Accept ints from YAML, require digits."""
        text = str(v).strip()
        if not text.isdigit():
            raise ValueError(f"App Store id must be numeric, got {v!r}")
        return text


class ChartCategory(BaseModel):
    """An upstream top chart (e.g. the finance genre or the overall chart)."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Identifier used in file names and the CLI")
    label: str = Field(description="Label shown in the dashboard")
    genre_id: int | None = Field(default=None, description="App Store genre, None for all apps")
    icon: str = Field(default="📊")


DEFAULT_APPS = [
    TrackedApp(name="Coinbase", app_id="886427730", color="#0052FF"),
    TrackedApp(name="Crypto.com", app_id="1262148500", color="#002D74"),
    TrackedApp(name="Binance", app_id="1436799971", color="#F0B90B"),
]

DEFAULT_CATEGORIES = [
    ChartCategory(key="finance", label="Finance", genre_id=6015, icon="💰"),
    ChartCategory(key="global", label="All Apps", genre_id=None, icon="📱"),
]
