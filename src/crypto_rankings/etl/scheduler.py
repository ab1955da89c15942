"""Periodic scrape scheduling with APScheduler."""

from datetime import datetime, timezone

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from crypto_rankings.etl.pipeline import RankingPipeline

SCRAPE_JOB_ID = "scrape_rankings_job"


def scheduled_scrape(pipeline: RankingPipeline) -> None:
    """Job body: one scrape cycle, never lets an error kill the scheduler."""
    try:
        stored = pipeline.run()
        logger.info(f"Scheduled scrape stored {len(stored)} categories")
    except Exception as e:
        logger.error(f"Error in scheduled scrape: {e}")


def build_scheduler(pipeline: RankingPipeline, interval_minutes: int) -> BlockingScheduler:
    """Create a scheduler running the scrape every ``interval_minutes``.

    The first run fires immediately so a fresh deployment has data right away.
    """
    scheduler = BlockingScheduler(timezone=timezone.utc)
    scheduler.add_job(
        func=scheduled_scrape,
        args=[pipeline],
        trigger=IntervalTrigger(minutes=interval_minutes, timezone=timezone.utc),
        id=SCRAPE_JOB_ID,
        name=f"Scrape App Store charts every {interval_minutes} minutes",
        next_run_time=datetime.now(timezone.utc),
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def run_scheduler(pipeline: RankingPipeline, interval_minutes: int) -> None:
    """Block and scrape on an interval until interrupted."""
    scheduler = build_scheduler(pipeline, interval_minutes)
    logger.info(f"Scheduler started, scraping every {interval_minutes} minutes")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")
