"""Ranking series analysis.

Pure Polars functions - no I/O.
"""

__all__ = ["aggregator"]
