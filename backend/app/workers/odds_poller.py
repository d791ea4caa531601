import logging
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.config import settings
from app.services.odds_cache_service import refresh_odds_cache
from app.workers._state import recently_synced

logger = logging.getLogger("parlay.odds_poller")

JOB_ID = "odds_poller"


async def poll_odds() -> None:
    """Interval job: refresh the odds cache unless a refresh ran recently."""
    min_gap = timedelta(minutes=max(1, settings.ODDS_POLL_MINUTES // 2))
    if await recently_synced("odds_cache", min_gap):
        logger.debug("Odds cache refreshed recently, skipping poll")
        return
    try:
        await refresh_odds_cache()
    except Exception:
        # Keep the scheduler alive; the next interval tries again
        logger.exception("Odds poll failed")


def register_odds_poller(scheduler: AsyncIOScheduler) -> None:
    scheduler.add_job(
        poll_odds,
        "interval",
        minutes=settings.ODDS_POLL_MINUTES,
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Odds poller scheduled every %d minutes", settings.ODDS_POLL_MINUTES)
