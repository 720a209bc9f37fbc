"""Background job scheduler.

APScheduler-based background task scheduler for housekeeping jobs.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from otpguard.config import settings
from otpguard.core.verification.store import VerificationStore
from otpguard.logging_config import get_logger
from otpguard.services.code_sweep import sweep_stale_codes

logger = get_logger(__name__)

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


def start_scheduler(store: VerificationStore) -> AsyncIOScheduler:
    """Start the background job scheduler.

    Args:
        store: Store handle the sweep job deletes from.

    Returns:
        The started scheduler instance
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return scheduler

    scheduler = AsyncIOScheduler()

    if settings.code_sweep_enabled:
        scheduler.add_job(
            sweep_stale_codes,
            trigger=IntervalTrigger(minutes=settings.code_sweep_interval_minutes),
            args=[store],
            kwargs={"retention_hours": settings.code_retention_hours},
            id="code_sweep",
            name="Stale Verification Code Sweep",
            replace_existing=True,
            max_instances=1,
        )
        logger.info(
            "Scheduled stale code sweep job",
            interval_minutes=settings.code_sweep_interval_minutes,
            retention_hours=settings.code_retention_hours,
        )

    scheduler.start()
    logger.info("Background scheduler started")

    return scheduler


def stop_scheduler() -> None:
    """Stop the background job scheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Background scheduler stopped")


def get_scheduler() -> AsyncIOScheduler | None:
    """Get the current scheduler instance, or None if not started."""
    return scheduler
