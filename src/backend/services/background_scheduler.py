"""
Background Scheduler Service

Manages scheduled background tasks using APScheduler:
- Issue feed refresh (every ISSUE_FEED_REFRESH_SECONDS)

Mutations made through this process republish right away. The refresh job
picks up changes written by other instances sharing the same Cosmos
container, so live subscribers never stay stale for long.

This runs in-process with the FastAPI application.
"""

import logging
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from repositories.issue_repository import IssueRepository
from repositories.provider import remote_backend_if_open

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def refresh_issue_feed_job() -> int:
    """
    Background job to republish the shared issue snapshot.

    Skipped while nobody is listening. Returns the number of issues
    published (0 when skipped or the read failed).
    """
    backend = remote_backend_if_open()
    if backend is None or backend.feed.subscriber_count == 0:
        return 0

    snapshot = await IssueRepository(backend).refresh()
    if snapshot is None:
        logger.warning("Issue feed refresh failed; subscribers keep the previous snapshot")
        return 0

    logger.debug(f"Issue feed refreshed: {len(snapshot)} issues to {backend.feed.subscriber_count} subscribers")
    return len(snapshot)


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=timezone.utc)
    return _scheduler


async def start_scheduler() -> None:
    """Start the background scheduler with all jobs."""
    scheduler = get_scheduler()

    if scheduler.running:
        logger.info("Scheduler already running")
        return

    logger.info("Configuring background scheduler...")

    scheduler.add_job(
        refresh_issue_feed_job,
        trigger=IntervalTrigger(seconds=settings.ISSUE_FEED_REFRESH_SECONDS),
        id="issue_feed_refresh",
        name="Issue Feed Refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Added issue feed refresh job (every {settings.ISSUE_FEED_REFRESH_SECONDS} seconds)")

    scheduler.start()
    logger.info("Background scheduler started")


async def stop_scheduler() -> None:
    """Stop the background scheduler gracefully."""
    global _scheduler

    if _scheduler and _scheduler.running:
        logger.info("Stopping background scheduler...")
        _scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")

    _scheduler = None
