"""
Closes products whose bidding window ended.

Per product: the highest pending bid wins (earliest bid on equal amounts,
then lowest id), moves to ``accepted`` with a fresh confirmation deadline,
and every other pending bid is rejected. A product that already has a live
winner (accepted, confirmed or completed bid, e.g. accepted by the seller by
hand) keeps it and only its leftover pending bids are rejected.

Each product is claimed by a conditional update on ``auction_closed_at IS
NULL`` before anything else is touched, so concurrent runs never resolve the
same product twice.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from loguru import logger

from agrohaat.enums.bid_status import BidStatus
from agrohaat.enums.notification_type import NotificationType
from agrohaat.models.bid import Bid
from agrohaat.models.product import Product
from agrohaat.services.bidding.bid_service import BidService, bid_service
from agrohaat.services.bidding.exceptions import StaleBidStateError
from agrohaat.services.bidding.transitions import confirmation_deadline_for
from agrohaat.services.communication.notification_service import NotificationService

LIVE_WINNER_STATES = (BidStatus.accepted, BidStatus.confirmed, BidStatus.completed)


@dataclass
class AuctionResult:
    product_id: UUID
    winner_user_id: Optional[UUID]
    winning_amount: Optional[Decimal]
    rejected_bids: int = 0

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "winner_user_id": str(self.winner_user_id) if self.winner_user_id else None,
            "winning_amount": float(self.winning_amount) if self.winning_amount is not None else None,
            "rejected_bids": self.rejected_bids,
        }


def pick_winner(bids: List[Bid]) -> Optional[Bid]:
    """Highest amount, then earliest, then lowest id"""
    pending = [bid for bid in bids if bid.status == BidStatus.pending]
    if not pending:
        return None
    return sorted(pending, key=lambda bid: (-bid.amount, bid.created_at, str(bid.id)))[0]


class AuctionResolver:
    def __init__(self, service: Optional[BidService] = None):
        self.service = service or bid_service

    async def process_expired_auctions(self, now: Optional[datetime] = None) -> List[AuctionResult]:
        now = now or datetime.now(timezone.utc)
        products = await Product.filter(
            bidding_deadline__lte=now,
            auction_closed_at__isnull=True,
        )
        logger.info(f"Auction processing started: {len(products)} products past their bidding deadline")

        results = []
        for product in products:
            try:
                result = await self.resolve_product(product, now)
            except Exception as e:
                logger.exception(f"Failed to resolve auction for product {product.id}: {e}")
                continue
            if result is not None:
                results.append(result)

        logger.info(f"Auction processing finished: {len(results)} products resolved")
        return results

    async def resolve_product(self, product: Product, now: datetime) -> Optional[AuctionResult]:
        claimed = await Product.filter(id=product.id, auction_closed_at__isnull=True).update(auction_closed_at=now)
        if not claimed:
            logger.debug(f"Product {product.id} already resolved by another run")
            return None

        bids = await Bid.filter(product_id=product.id).prefetch_related("product")
        existing_winner = next((bid for bid in bids if bid.status in LIVE_WINNER_STATES), None)
        winner = None if existing_winner else pick_winner(bids)

        if winner is not None:
            winner = await self._award(winner, now)

        rejected = 0
        for bid in bids:
            if bid.status != BidStatus.pending or (winner is not None and bid.id == winner.id):
                continue
            if await self._reject_loser(bid, now):
                rejected += 1

        decided = winner or existing_winner
        if decided is not None:
            logger.info(f"Auction for product {product.id} won by {decided.buyer_id} with {decided.amount}")
        return AuctionResult(
            product_id=product.id,
            winner_user_id=decided.buyer_id if decided else None,
            winning_amount=decided.amount if decided else None,
            rejected_bids=rejected,
        )

    async def _award(self, bid: Bid, now: datetime) -> Optional[Bid]:
        deadline = confirmation_deadline_for(now)
        try:
            bid = await self.service.apply_transition(bid, BidStatus.accepted, now, confirmation_deadline=deadline)
        except StaleBidStateError:
            logger.warning(f"Winning bid {bid.id} changed before it could be awarded")
            return None

        await NotificationService.notify(
            user=bid.buyer_id,
            notification_type=NotificationType.bid,
            title="অভিনন্দন! আপনি নিলাম জিতেছেন",
            message=(
                f"\"{bid.product.title}\" এর নিলামে আপনার ৳{bid.amount} বিড সর্বোচ্চ হয়েছে। "
                f"সময়সীমার মধ্যে বিডটি নিশ্চিত করুন।"
            ),
            metadata={
                "bid_id": str(bid.id),
                "product_id": str(bid.product_id),
                "action": "auction_won",
                "confirmation_deadline": deadline.isoformat(),
            }
        )
        return bid

    async def _reject_loser(self, bid: Bid, now: datetime) -> bool:
        try:
            await self.service.apply_transition(bid, BidStatus.rejected, now)
        except StaleBidStateError:
            return False

        await NotificationService.notify(
            user=bid.buyer_id,
            notification_type=NotificationType.bid,
            title="নিলাম শেষ",
            message=f"\"{bid.product.title}\" এর নিলাম শেষ হয়েছে। আপনার ৳{bid.amount} বিডটি জয়ী হয়নি।",
            metadata={
                "bid_id": str(bid.id),
                "product_id": str(bid.product_id),
                "action": "auction_lost",
            }
        )
        return True


auction_resolver = AuctionResolver()
