"""Interval job that reconciles every published ad."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from adpublish.async_db import AsyncSessionLocal
from adpublish.credentials import ConnectionCredentialProvider
from adpublish.platforms.factory import default_platform_adapter
from adpublish.services.publishing.reconciler import ReconciliationService
from adpublish.settings import settings
from adpublish.store import AdStore

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def reconcile_sweep_job() -> None:
    logger.info("Scheduled reconciliation sweep starting")
    try:
        async with AsyncSessionLocal() as db:
            store = AdStore(db)
            service = ReconciliationService(
                store,
                default_platform_adapter(),
                ConnectionCredentialProvider(store),
                timeout=settings.RECONCILE_TIMEOUT_SECONDS,
            )
            await service.reconcile_published()
    except Exception:
        # The next tick retries; never let the job kill the scheduler
        logger.exception("Scheduled reconciliation sweep failed")


def start_scheduler() -> None:
    if not settings.RECONCILE_SCHEDULER_ENABLED:
        logger.info("Reconciliation scheduler disabled via config")
        return

    scheduler.add_job(
        reconcile_sweep_job,
        "interval",
        seconds=settings.RECONCILE_INTERVAL_SECONDS,
        id="reconcile_published_ads",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        "Reconciliation scheduler started, every %ss", settings.RECONCILE_INTERVAL_SECONDS
    )


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Reconciliation scheduler stopped")
