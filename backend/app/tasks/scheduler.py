"""Background task scheduler for periodic NFT sync batches."""

import logging
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import get_settings
from app.database import async_session_maker
from app.services.ledger import LedgerReader
from app.services.nft_sync import NftSyncService

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def sync_nfts_job() -> None:
    """Background job running one auto-resuming sync batch."""
    logger.info("Starting scheduled NFT sync batch")
    try:
        async with async_session_maker() as db:
            service = NftSyncService(db, LedgerReader())
            # No cool-down: the interval already spaces batches out
            async for event in service.run(batch_delay_ms=0):
                if event.type == "complete":
                    logger.info(
                        f"NFT sync batch complete: {event.message} "
                        f"({len(event.data.errors)} errors)"
                    )
                elif event.type == "error":
                    logger.error(f"NFT sync batch failed: {event.message}")
                else:
                    logger.debug(event.message)
    except Exception as e:
        logger.error(f"NFT sync job failed: {e}", exc_info=True)


def setup_scheduler() -> AsyncIOScheduler:
    """Set up and start the background task scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        sync_nfts_job,
        trigger=IntervalTrigger(minutes=settings.sync_poll_interval_minutes),
        next_run_time=datetime.now(UTC),
        id="sync_nfts",
        name="Sync NFTs from contract",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info("Scheduler started")

    return scheduler


def shutdown_scheduler() -> None:
    """Shut down the scheduler gracefully."""
    global scheduler

    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")
        scheduler = None
