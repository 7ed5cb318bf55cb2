"""
Deadline sweeper.

Finds accepted bids whose confirmation deadline has passed and forces them
into ``abandoned``. Each bid is abandoned with its own conditional update, so
two overlapping runs split the work instead of doubling it: the run that
loses the race for a bid skips it without notifying or counting anything.
One bad row is logged and skipped; it never stops the pass.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from loguru import logger

from agrohaat.enums.notification_type import NotificationType
from agrohaat.models.bid import Bid
from agrohaat.services.bidding.bid_service import BidService, bid_service
from agrohaat.services.bidding.exceptions import StaleBidStateError
from agrohaat.services.communication.notification_service import NotificationService


@dataclass
class SweepSummary:
    abandoned_bids: int = 0
    suspended_users: int = 0
    failed_bids: int = 0
    abandoned_bid_ids: List[UUID] = field(default_factory=list)
    suspended_user_ids: List[UUID] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "abandoned_bids": self.abandoned_bids,
            "suspended_users": self.suspended_users,
            "failed_bids": self.failed_bids,
            "abandoned_bid_ids": [str(bid_id) for bid_id in self.abandoned_bid_ids],
            "suspended_user_ids": [str(user_id) for user_id in self.suspended_user_ids],
        }


class DeadlineSweeper:
    def __init__(self, service: Optional[BidService] = None):
        self.service = service or bid_service

    @staticmethod
    async def find_expired(now: datetime) -> list[Bid]:
        return await BidService.find_expired_bids(now)

    async def run(self, now: Optional[datetime] = None) -> SweepSummary:
        now = now or datetime.now(timezone.utc)
        summary = SweepSummary()

        expired = await self.find_expired(now)
        logger.info(f"Deadline sweep started: {len(expired)} expired bids")

        for bid in expired:
            try:
                bid, outcome = await self.service.expire_bid(bid, now)
            except StaleBidStateError:
                logger.debug(f"Bid {bid.id} already handled by another actor, skipping")
                continue
            except Exception as e:
                summary.failed_bids += 1
                logger.exception(f"Failed to abandon expired bid {bid.id}: {e}")
                continue

            summary.abandoned_bids += 1
            summary.abandoned_bid_ids.append(bid.id)
            if outcome is not None and outcome.suspended:
                summary.suspended_users += 1
                summary.suspended_user_ids.append(outcome.user_id)

            await self._notify_expired(bid)

        try:
            caught_up = await self.service.policy.catch_up(now)
        except Exception as e:
            logger.exception(f"Suspension catch-up pass failed: {e}")
            caught_up = []
        for user_id in caught_up:
            if user_id not in summary.suspended_user_ids:
                summary.suspended_users += 1
                summary.suspended_user_ids.append(user_id)

        logger.info(
            f"Deadline sweep finished: abandoned={summary.abandoned_bids} "
            f"suspended={summary.suspended_users} failed={summary.failed_bids}"
        )
        return summary

    @staticmethod
    async def _notify_expired(bid: Bid):
        product_title = bid.product.title if bid.product else "পণ্য"
        await NotificationService.notify(
            user=bid.buyer_id,
            notification_type=NotificationType.bid,
            title="আপনার বিড সময়সীমা শেষ",
            message=f"\"{product_title}\" এর জন্য আপনার বিড সময়সীমা শেষ হয়ে গেছে এবং এটি বাতিল করা হয়েছে।",
            metadata={
                "bid_id": str(bid.id),
                "product_id": str(bid.product_id),
                "action": "bid_expired",
            }
        )


deadline_sweeper = DeadlineSweeper()
