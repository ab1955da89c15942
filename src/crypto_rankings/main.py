"""Crypto App Rankings - Main Entry Point with CLI Commands.

Supports:
- scrape: Fetch the current charts once and store snapshots
- schedule: Scrape on a fixed interval until interrupted
- stats: Print window statistics and 24h changes from stored data
- import / export: Exchange snapshot history as JSON arrays
"""

import argparse
import sys
from pathlib import Path

from loguru import logger

from crypto_rankings.analysis.aggregator import (
    compute_statistics,
    compute_y_axis_bounds,
    filter_by_window,
)
from crypto_rankings.config.settings import Config, load_config
from crypto_rankings.core.config import configure_logging
from crypto_rankings.core.domain_models import TimeWindow
from crypto_rankings.etl.pipeline import RankingPipeline
from crypto_rankings.etl.scheduler import run_scheduler


def _load(args: argparse.Namespace) -> tuple[Config, RankingPipeline]:
    config = load_config(Path(args.config) if args.config else None)
    return config, RankingPipeline.from_config(config)


def cmd_scrape(args: argparse.Namespace) -> None:
    """Run a single scrape cycle."""
    logger.info("=== Scraping App Store Charts ===")
    config, pipeline = _load(args)

    stored = pipeline.run(args.category)
    expected = args.category or [c.key for c in config.categories]
    if len(stored) < len(expected):
        logger.error(f"Scraped {len(stored)} of {len(expected)} categories")
        sys.exit(1)
    logger.success("✅ Scrape completed successfully")


def cmd_schedule(args: argparse.Namespace) -> None:
    """Scrape periodically."""
    config, pipeline = _load(args)
    interval = args.interval or config.settings.scrape_interval_minutes
    run_scheduler(pipeline, interval)


def cmd_stats(args: argparse.Namespace) -> None:
    """Print statistics for one category and window."""
    config, pipeline = _load(args)
    window = TimeWindow(args.window)

    try:
        store = pipeline.store_for(args.category)
    except KeyError as e:
        logger.error(str(e))
        sys.exit(1)

    history = store.read_historical()
    latest = store.read_latest()
    windowed = filter_by_window(history, window)
    stats = compute_statistics(history, window, latest=latest)
    bounds = compute_y_axis_bounds(history, window, padding=config.settings.y_axis_padding)

    logger.info(
        f"[{args.category}] {windowed.height} of {history.height} snapshots "
        f"in window {window.label}"
    )
    if latest is not None:
        logger.info(f"Latest snapshot: {latest.timestamp.isoformat()}")

    for app in config.app_names:
        rank = latest.rank_of(app) if latest else None
        app_stats = stats.get(app)
        if app_stats is None:
            logger.info(f"  • {app}: rank {rank or '—'}, no ranked samples in window")
            continue
        change = "n/a" if app_stats.change_24h is None else f"{app_stats.change_24h:+d}"
        logger.info(
            f"  • {app}: rank {rank or '—'} (24h {change}) | avg {app_stats.average:.1f}, "
            f"volatility {app_stats.volatility:.2f}, best #{app_stats.best}, "
            f"worst #{app_stats.worst}"
        )
    logger.info(f"Chart axis: {bounds.min}–{bounds.max}")


def cmd_import(args: argparse.Namespace) -> None:
    """Import a JSON snapshot history into a category."""
    _, pipeline = _load(args)
    try:
        pipeline.import_json(Path(args.file), args.category)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Import failed: {e}")
        sys.exit(1)


def cmd_export(args: argparse.Namespace) -> None:
    """Export a category's history as JSON."""
    _, pipeline = _load(args)
    try:
        pipeline.export_json(Path(args.file), args.category)
    except (OSError, KeyError) as e:
        logger.error(f"Export failed: {e}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crypto App Rankings - App Store chart tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, help="Path to config.yaml")
    parser.add_argument("--log-level", type=str, help="Override the log level")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    # Scrape command
    parser_scrape = subparsers.add_parser("scrape", help="Scrape charts once and store ranks")
    parser_scrape.add_argument(
        "--category",
        nargs="+",
        help="Category key(s) to scrape (default: all configured)",
    )
    parser_scrape.set_defaults(func=cmd_scrape)

    # Schedule command
    parser_schedule = subparsers.add_parser("schedule", help="Scrape periodically")
    parser_schedule.add_argument(
        "--interval",
        type=int,
        help="Minutes between scrapes (default: scrape_interval_minutes from config)",
    )
    parser_schedule.set_defaults(func=cmd_schedule)

    # Stats command
    parser_stats = subparsers.add_parser("stats", help="Show ranking statistics")
    parser_stats.add_argument("--category", default="finance", help="Category key")
    parser_stats.add_argument(
        "--window",
        choices=[w.value for w in TimeWindow],
        default=TimeWindow.LAST_7_DAYS.value,
        help="Time window",
    )
    parser_stats.set_defaults(func=cmd_stats)

    # Import / export commands
    parser_import = subparsers.add_parser("import", help="Import JSON snapshot history")
    parser_import.add_argument("file", help="JSON file with an array of snapshot records")
    parser_import.add_argument("--category", required=True, help="Category key")
    parser_import.set_defaults(func=cmd_import)

    parser_export = subparsers.add_parser("export", help="Export snapshot history as JSON")
    parser_export.add_argument("file", help="Target JSON file")
    parser_export.add_argument("--category", required=True, help="Category key")
    parser_export.set_defaults(func=cmd_export)

    return parser


def main() -> None:
    """Main entry point with CLI argument parsing."""
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
