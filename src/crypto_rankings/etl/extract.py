"""Chart extraction from the App Store top-free RSS feed.

Uses the structured JSON feed instead of parsing chart HTML. Responses are
validated before ranks are derived from them.
"""

from collections.abc import Sequence
from typing import Any

import requests
from loguru import logger

from crypto_rankings.config.models import ChartCategory, TrackedApp

ITUNES_RSS_URL = (
    "https://itunes.apple.com/{country}/rss/topfreeapplications/limit={limit}{genre}/json"
)


def parse_chart_feed(payload: Any) -> list[str]:
    """Extract the ordered list of App Store ids from a feed payload.

    Args:
        payload: Decoded JSON of the RSS feed

    Returns:
        App ids in chart order (index 0 is rank 1)

    Raises:
        ValueError: If the payload does not have the expected feed structure
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("feed"), dict):
        raise ValueError("Chart payload has no 'feed' object")

    entries = payload["feed"].get("entry", [])
    # The feed collapses a single-entry list into an object
    if isinstance(entries, dict):
        entries = [entries]
    if not isinstance(entries, list):
        raise ValueError("Chart feed 'entry' is neither a list nor an object")

    app_ids = []
    for position, entry in enumerate(entries, start=1):
        try:
            app_ids.append(str(entry["id"]["attributes"]["im:id"]))
        except (KeyError, TypeError):
            logger.warning(f"Chart entry at position {position} has no app id, skipping")
            # keep the slot so later positions stay aligned with their rank
            app_ids.append("")
    return app_ids


def ranks_for_apps(chart: Sequence[str], apps: Sequence[TrackedApp]) -> dict[str, int | None]:
    """Map tracked apps to their 1-based chart position, None when not listed."""
    positions: dict[str, int] = {}
    for rank, app_id in enumerate(chart, start=1):
        if app_id:
            positions.setdefault(app_id, rank)
    return {app.name: positions.get(app.app_id) for app in apps}


class ChartExtractor:
    """Fetches top-free charts from the App Store."""

    def __init__(
        self,
        country: str = "us",
        limit: int = 100,
        timeout: float = 20.0,
        session: requests.Session | None = None,
    ) -> None:
        self.country = country
        self.limit = limit
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_url(self, category: ChartCategory) -> str:
        genre = f"/genre={category.genre_id}" if category.genre_id is not None else ""
        return ITUNES_RSS_URL.format(country=self.country, limit=self.limit, genre=genre)

    def get_chart(self, category: ChartCategory) -> list[str]:
        """
        Fetch the current chart of a category.

        Returns:
            App ids in chart order

        Raises:
            requests.RequestException: Network or HTTP errors
            ValueError: If the response is not a valid chart feed
        """
        url = self.build_url(category)
        logger.info(f"[{category.key}] Fetching chart from {url}")

        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()

        chart = parse_chart_feed(response.json())
        if not chart:
            raise ValueError(f"Chart for category '{category.key}' is empty")

        logger.success(f"[{category.key}] Fetched {len(chart)} chart entries")
        return chart

    def get_ranks(
        self, category: ChartCategory, apps: Sequence[TrackedApp]
    ) -> dict[str, int | None]:
        """Current chart positions of the tracked apps in one category."""
        return ranks_for_apps(self.get_chart(category), apps)
