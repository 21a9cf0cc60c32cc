"""Cron registration of the sync entry points.

The orchestrator itself is trigger-agnostic; this module only binds its
entry points to APScheduler cron triggers in the IST reporting timezone.
"""
import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..metrics.day_buckets import IST
from .orchestrator import (
    TRAFFIC_WEEKLY_DAYS,
    TRAFFIC_WEEKLY_LIMIT,
)
from .service import MetricsSyncService


logger = logging.getLogger(__name__)


def configure_scheduler(
    scheduler: AsyncIOScheduler,
    service: MetricsSyncService,
) -> AsyncIOScheduler:
    """Register all sync cadences on the scheduler.

    Args:
        scheduler: APScheduler instance (not yet started)
        service: Sync service whose entry points are scheduled

    Returns:
        The same scheduler, for chaining
    """
    # Daily orders + spend for yesterday
    scheduler.add_job(
        service.run_daily_metrics,
        trigger=CronTrigger(hour=2, minute=0, timezone=IST),
        id="daily_metrics_sync",
        name="Daily Metrics Sync",
        replace_existing=True,
    )

    # Product sales, trailing 30 days
    scheduler.add_job(
        service.run_product_sync,
        trigger=CronTrigger(hour=3, minute=0, timezone=IST),
        id="daily_product_sync",
        name="Daily Product Sales Resync",
        replace_existing=True,
    )

    # Product sales, all-time
    scheduler.add_job(
        service.run_product_sync,
        trigger=CronTrigger(day=1, hour=0, minute=0, timezone=IST),
        kwargs={"days": None},
        id="monthly_product_full_sync",
        name="Monthly All-Time Product Resync",
        replace_existing=True,
    )

    # Landing page traffic, trailing 7 days
    scheduler.add_job(
        service.run_traffic_sync,
        trigger=CronTrigger(hour=4, minute=0, timezone=IST),
        id="daily_traffic_sync",
        name="Daily Traffic Resync",
        replace_existing=True,
    )

    # Landing page traffic, trailing 30 days
    scheduler.add_job(
        service.run_traffic_sync,
        trigger=CronTrigger(day_of_week="sun", hour=0, minute=0, timezone=IST),
        kwargs={"days": TRAFFIC_WEEKLY_DAYS, "limit": TRAFFIC_WEEKLY_LIMIT},
        id="weekly_traffic_sync",
        name="Weekly Extended Traffic Resync",
        replace_existing=True,
    )

    logger.info("Registered %s sync jobs", len(scheduler.get_jobs()))
    return scheduler


async def run_scheduler(service: MetricsSyncService) -> None:
    """Start the scheduler and block until cancelled."""
    scheduler = configure_scheduler(AsyncIOScheduler(timezone=IST), service)
    scheduler.start()
    logger.info("Sync scheduler started")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
