from __future__ import annotations

import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from pulse_recs.config import settings
from pulse_recs.errors import UPSTREAM_ERRORS
from pulse_recs.log import get_logger
from pulse_recs.notify.alerts import send_alert
from pulse_recs.recommend.cache import RecommendationCache
from pulse_recs.recommend.taste_builder import recompute_taste_profiles

logger = get_logger("scheduler")


async def job_cache_sweep(cache: RecommendationCache) -> None:
    """Drop expired recommendation lists (hourly)."""
    removed = cache.cleanup()
    logger.info("job_cache_sweep_done", removed=removed, remaining=len(cache))


async def job_recompute_taste() -> None:
    """Rebuild taste snapshots of recently active users (nightly)."""
    logger.info("job_recompute_taste_start")
    try:
        processed, succeeded, failed = await asyncio.to_thread(recompute_taste_profiles)
    except UPSTREAM_ERRORS as e:
        logger.error("job_recompute_taste_failed", error=str(e))
        await send_alert("taste_recompute", f"Taste profile recompute failed: {e}")
        return
    logger.info(
        "job_recompute_taste_done",
        processed=processed,
        succeeded=succeeded,
        failed=failed,
    )
    if failed:
        await send_alert(
            "taste_recompute", f"{failed} of {processed} taste profiles failed to rebuild"
        )


def create_scheduler(cache: RecommendationCache) -> AsyncIOScheduler:
    """Create and configure the APScheduler."""
    scheduler = AsyncIOScheduler(job_defaults={
        'misfire_grace_time': 300,  # 5 min grace for missed windows
        'coalesce': True,           # collapse queued runs into one
        'max_instances': 1,         # never run same job concurrently
    })

    scheduler.add_job(
        job_cache_sweep,
        "interval",
        minutes=settings.cache_sweep_minutes,
        args=[cache],
        id="cache_sweep",
    )

    # Nightly, local time
    scheduler.add_job(
        job_recompute_taste,
        "cron",
        hour=settings.taste_recompute_hour,
        minute=0,
        timezone=settings.timezone,
        id="recompute_taste",
    )

    return scheduler
