"""Crypto App Rankings.

App Store chart tracking for crypto exchange apps: scraper, ranking store,
series aggregation and a Streamlit dashboard.
"""

__version__ = "0.1.0"
