import asyncio

from celery import shared_task
from loguru import logger

from agrohaat.core.database import init_db, close_db
from agrohaat.services.bidding.auction_resolver import auction_resolver
from agrohaat.services.bidding.sweeper import deadline_sweeper


@shared_task(
    name="agrohaat.tasks.bids.sweep_expired_bids",
    soft_time_limit=240,
    time_limit=270
)
def sweep_expired_bids():
    """
    Scheduled deadline sweep. Not auto-retried: the next beat run picks up
    whatever this one missed.
    """
    async def run():
        await init_db()
        try:
            summary = await deadline_sweeper.run()
            return summary.to_dict()
        finally:
            await close_db()

    logger.debug("Deadline sweep task started")
    return asyncio.run(run())


@shared_task(
    name="agrohaat.tasks.bids.process_expired_auctions",
    soft_time_limit=240,
    time_limit=270
)
def process_expired_auctions():
    """Scheduled resolution of products whose bidding window closed"""
    async def run():
        await init_db()
        try:
            results = await auction_resolver.process_expired_auctions()
            return {
                "processed_auctions": len(results),
                "auctions": [result.to_dict() for result in results],
            }
        finally:
            await close_db()

    logger.debug("Auction processing task started")
    return asyncio.run(run())
