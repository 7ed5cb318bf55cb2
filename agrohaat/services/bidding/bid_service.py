"""
Bid lifecycle engine.

Every operation takes the acting profile explicitly plus an optional ``now``
and validates ownership, current status and deadlines before writing. Writes
are compare-and-swap: ``UPDATE bids SET ... WHERE id = ? AND status = ?``.
If another actor moved the bid first, zero rows match and the caller gets a
``StaleBidStateError`` instead of silently overwriting the other change.

Notifications and change feed events are side effects only; their failures
never roll back a transition.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple, Union
from uuid import UUID

from loguru import logger

from agrohaat.enums.bid_status import BidStatus
from agrohaat.enums.change_event import ChangeEvent
from agrohaat.enums.notification_type import NotificationType
from agrohaat.enums.user_role import UserRole
from agrohaat.models.bid import Bid
from agrohaat.models.product import Product
from agrohaat.models.profile import Profile
from agrohaat.services.bidding.exceptions import (
    BidValidationError,
    BidNotFoundError,
    NotOwnerError,
    RoleNotAllowedError,
    InvalidTransitionError,
    StaleBidStateError,
    ConfirmationExpiredError,
    BiddingSuspendedError,
    BiddingWindowClosedError,
)
from agrohaat.services.bidding.suspension_policy import SuspensionPolicy, SuspensionOutcome
from agrohaat.services.bidding.transitions import (
    Party,
    STATUS_LABELS_BN,
    validate_transition,
    ensure_confirmable,
    confirmation_deadline_for,
    is_confirmation_expired,
    can_force,
    is_sweepable,
)
from agrohaat.services.communication.notification_service import NotificationService
from agrohaat.services.realtime.change_feed import change_feed, serialize_row


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_amount(amount: Union[Decimal, float, int, str]) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise BidValidationError("বিডের পরিমাণ সঠিক নয়। Amount is not a number", {"amount": str(amount)})
    if not value.is_finite() or value <= 0:
        raise BidValidationError("বিডের পরিমাণ শূন্যের বেশি হতে হবে। Amount must be greater than 0", {"amount": str(amount)})
    return value.quantize(Decimal("0.01"))


class BidService:
    def __init__(self, policy: Optional[SuspensionPolicy] = None):
        self.policy = policy or SuspensionPolicy()

    # ------------------------------------------------------------------ helpers

    @staticmethod
    async def _load(bid_id: UUID) -> Bid:
        bid = await Bid.get_or_none(id=bid_id).prefetch_related("product")
        if bid is None:
            raise BidNotFoundError("বিড পাওয়া যায়নি। Bid not found", {"bid_id": str(bid_id)})
        return bid

    @staticmethod
    def _ensure_seller_owns(bid: Bid, seller: Profile):
        if bid.product.seller_id != seller.id:
            logger.warning(f"User {seller.id} tried to act on bid {bid.id} of a product they do not own")
            raise NotOwnerError(
                "এই পণ্যটি আপনার নয়। Only the product's seller can do this",
                {"bid_id": str(bid.id)},
            )

    @staticmethod
    def _ensure_buyer_owns(bid: Bid, buyer: Profile):
        if bid.buyer_id != buyer.id:
            logger.warning(f"User {buyer.id} tried to act on bid {bid.id} placed by someone else")
            raise NotOwnerError(
                "এই বিডটি আপনার নয়। Only the bidder can do this",
                {"bid_id": str(bid.id)},
            )

    async def apply_transition(
        self,
        bid: Bid,
        target: BidStatus,
        now: datetime,
        extra_filters: Optional[dict] = None,
        **changes
    ) -> Bid:
        source = bid.status
        old = serialize_row(bid)

        updated = await Bid.filter(id=bid.id, status=source, **(extra_filters or {})).update(
            status=target,
            updated_at=now,
            **changes
        )
        if not updated:
            current = await Bid.get_or_none(id=bid.id)
            current_status = current.status.value if current else None
            logger.warning(
                f"Stale transition on bid {bid.id}: expected {source.value}, found {current_status}, wanted {target.value}"
            )
            raise StaleBidStateError(
                "বিডের অবস্থা ইতিমধ্যে পরিবর্তিত হয়েছে, পৃষ্ঠা রিফ্রেশ করুন। Bid was changed by someone else",
                {"expected_status": source.value, "current_status": current_status},
            )

        bid.status = target
        bid.updated_at = now
        for key, value in changes.items():
            setattr(bid, key, value)

        logger.info(f"Bid {bid.id}: {source.value} -> {target.value}")
        await change_feed.publish_instance(bid, ChangeEvent.update, old)
        return bid

    async def _after_abandonment(self, bid: Bid, now: datetime) -> Optional[SuspensionOutcome]:
        try:
            return await self.policy.on_abandonment(bid.buyer_id, now)
        except Exception as e:
            logger.exception(f"Suspension policy failed for user {bid.buyer_id} after abandoning bid {bid.id}: {e}")
            return None

    @staticmethod
    def _bid_metadata(bid: Bid, action: str, **extra) -> dict:
        return {"bid_id": str(bid.id), "product_id": str(bid.product_id), "action": action, **extra}

    # --------------------------------------------------------------- operations

    @staticmethod
    async def can_user_bid(user: Profile, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        profile = await Profile.get_or_none(id=user.id)
        return (
            profile is not None
            and profile.is_active
            and profile.role == UserRole.buyer
            and not profile.is_suspended(now)
        )

    async def place_bid(
        self,
        product_id: UUID,
        buyer: Profile,
        amount: Union[Decimal, float, int, str],
        now: Optional[datetime] = None
    ) -> Bid:
        now = now or utcnow()
        value = parse_amount(amount)

        profile = await Profile.get_or_none(id=buyer.id)
        if profile is None:
            raise BidNotFoundError("ব্যবহারকারী পাওয়া যায়নি। User not found", {"user_id": str(buyer.id)})
        if profile.role != UserRole.buyer:
            raise RoleNotAllowedError(
                "শুধুমাত্র ক্রেতারা বিড করতে পারবেন। Only buyers can place bids",
                {"role": profile.role.value},
            )
        if not profile.is_active:
            raise RoleNotAllowedError(
                "আপনার অ্যাকাউন্ট নিষ্ক্রিয়। Account is inactive",
                {"user_id": str(profile.id)},
            )
        if profile.is_suspended(now):
            raise BiddingSuspendedError(
                "একাধিকবার বিড পরিত্যাগ করার কারণে আপনি সাময়িকভাবে বিডিং থেকে বন্ধ। Bidding is suspended",
                {"suspended_until": profile.bid_suspension_until.isoformat()},
            )

        product = await Product.get_or_none(id=product_id)
        if product is None:
            raise BidNotFoundError("পণ্য পাওয়া যায়নি। Product not found", {"product_id": str(product_id)})
        if product.seller_id == profile.id:
            raise NotOwnerError("নিজের পণ্যে বিড করা যাবে না। You cannot bid on your own product")
        if not product.is_bidding_open(now):
            raise BiddingWindowClosedError(
                "এই পণ্যের বিডিং এখন বন্ধ। Bidding window is closed",
                {
                    "bidding_start_time": product.bidding_start_time.isoformat() if product.bidding_start_time else None,
                    "bidding_deadline": product.bidding_deadline.isoformat() if product.bidding_deadline else None,
                },
            )

        bid = await Bid.create(
            product=product,
            buyer_id=profile.id,
            amount=value,
            status=BidStatus.pending
        )
        logger.info(f"Bid {bid.id} placed by {profile.id} on product {product.id} for {value}")
        await change_feed.publish_instance(bid, ChangeEvent.insert)
        return bid

    async def accept_bid(self, bid_id: UUID, seller: Profile, now: Optional[datetime] = None) -> Bid:
        now = now or utcnow()
        bid = await self._load(bid_id)
        self._ensure_seller_owns(bid, seller)
        validate_transition(bid.status, BidStatus.accepted, Party.seller)

        if bid.confirmation_deadline is not None:
            raise InvalidTransitionError(
                "এই বিডটি আগে একবার গৃহীত হয়েছিল। Bid already had a confirmation deadline",
                {"bid_id": str(bid.id), "confirmation_deadline": bid.confirmation_deadline.isoformat()},
            )

        deadline = confirmation_deadline_for(now)
        bid = await self.apply_transition(bid, BidStatus.accepted, now, confirmation_deadline=deadline)

        await NotificationService.notify(
            user=bid.buyer_id,
            notification_type=NotificationType.bid,
            title="আপনার বিড গৃহীত হয়েছে",
            message=(
                f"\"{bid.product.title}\" এর জন্য আপনার ৳{bid.amount} বিড গৃহীত হয়েছে। "
                f"সময়সীমার মধ্যে নিশ্চিত না করলে বিডটি স্বয়ংক্রিয়ভাবে বাতিল হবে।"
            ),
            metadata=self._bid_metadata(bid, "bid_accepted", confirmation_deadline=deadline.isoformat())
        )
        return bid

    async def reject_bid(self, bid_id: UUID, seller: Profile, now: Optional[datetime] = None) -> Bid:
        now = now or utcnow()
        bid = await self._load(bid_id)
        self._ensure_seller_owns(bid, seller)
        validate_transition(bid.status, BidStatus.rejected, Party.seller)

        bid = await self.apply_transition(bid, BidStatus.rejected, now)

        await NotificationService.notify(
            user=bid.buyer_id,
            notification_type=NotificationType.bid,
            title="আপনার বিড প্রত্যাখ্যাত হয়েছে",
            message=f"\"{bid.product.title}\" এর জন্য আপনার ৳{bid.amount} বিড বিক্রেতা প্রত্যাখ্যান করেছেন।",
            metadata=self._bid_metadata(bid, "bid_rejected")
        )
        return bid

    async def confirm_bid(self, bid_id: UUID, buyer: Profile, now: Optional[datetime] = None) -> Bid:
        now = now or utcnow()
        bid = await self._load(bid_id)
        self._ensure_buyer_owns(bid, buyer)
        ensure_confirmable(bid.status, bid.confirmation_deadline, now)

        try:
            bid = await self.apply_transition(
                bid,
                BidStatus.confirmed,
                now,
                extra_filters={"confirmation_deadline__gte": now},
                confirmed_at=now
            )
        except StaleBidStateError:
            # The deadline can pass between the check above and the update
            current = await Bid.get_or_none(id=bid.id)
            if (
                current is not None
                and current.status == BidStatus.accepted
                and is_confirmation_expired(current.confirmation_deadline, now)
            ):
                raise ConfirmationExpiredError(
                    "নিশ্চিতকরণের সময়সীমা শেষ হয়ে গেছে। Confirmation deadline has passed",
                    {"confirmation_deadline": current.confirmation_deadline.isoformat()
                     if current.confirmation_deadline else None},
                )
            raise

        await NotificationService.notify(
            user=bid.product.seller_id,
            notification_type=NotificationType.order,
            title="ক্রেতা বিড নিশ্চিত করেছেন",
            message=f"\"{bid.product.title}\" এর ৳{bid.amount} বিডটি ক্রেতা নিশ্চিত করেছেন।",
            metadata=self._bid_metadata(bid, "bid_confirmed")
        )
        return bid

    async def abandon_bid(self, bid_id: UUID, buyer: Profile, now: Optional[datetime] = None) -> Bid:
        """Buyer walks away from an accepted bid"""
        now = now or utcnow()
        bid = await self._load(bid_id)
        self._ensure_buyer_owns(bid, buyer)
        validate_transition(bid.status, BidStatus.abandoned, Party.buyer)

        bid = await self.apply_transition(bid, BidStatus.abandoned, now, abandoned_at=now)
        await self._after_abandonment(bid, now)

        await NotificationService.notify(
            user=bid.product.seller_id,
            notification_type=NotificationType.bid,
            title="ক্রেতা বিড পরিত্যাগ করেছেন",
            message=f"\"{bid.product.title}\" এর ৳{bid.amount} বিডটি ক্রেতা পরিত্যাগ করেছেন।",
            metadata=self._bid_metadata(bid, "bid_abandoned")
        )
        return bid

    async def withdraw_bid(self, bid_id: UUID, buyer: Profile, now: Optional[datetime] = None) -> Bid:
        now = now or utcnow()
        bid = await self._load(bid_id)
        self._ensure_buyer_owns(bid, buyer)
        validate_transition(bid.status, BidStatus.withdrawn, Party.buyer)

        return await self.apply_transition(bid, BidStatus.withdrawn, now)

    async def complete_bid(self, bid_id: UUID, seller: Profile, now: Optional[datetime] = None) -> Bid:
        now = now or utcnow()
        bid = await self._load(bid_id)
        self._ensure_seller_owns(bid, seller)
        validate_transition(bid.status, BidStatus.completed, Party.seller)

        bid = await self.apply_transition(bid, BidStatus.completed, now)

        await NotificationService.notify(
            user=bid.buyer_id,
            notification_type=NotificationType.order,
            title="লেনদেন সম্পন্ন",
            message=f"\"{bid.product.title}\" এর লেনদেন সম্পন্ন হয়েছে।",
            metadata=self._bid_metadata(bid, "bid_completed")
        )
        return bid

    async def expire_bid(self, bid: Bid, now: Optional[datetime] = None) -> Tuple[Bid, Optional[SuspensionOutcome]]:
        """
        Deadline sweeper edge: accepted -> abandoned once the deadline passed.
        Raises StaleBidStateError if a concurrent actor got there first.
        """
        now = now or utcnow()
        if not is_sweepable(bid.status, bid.confirmation_deadline, now):
            validate_transition(bid.status, BidStatus.abandoned, Party.system)
            raise InvalidTransitionError(
                "নিশ্চিতকরণের সময়সীমা এখনো শেষ হয়নি। Confirmation deadline has not passed",
                {"bid_id": str(bid.id)},
            )

        bid = await self.apply_transition(
            bid,
            BidStatus.abandoned,
            now,
            extra_filters={"confirmation_deadline__lt": now},
            abandoned_at=now
        )
        outcome = await self._after_abandonment(bid, now)
        return bid, outcome

    async def force_status(
        self,
        bid_id: UUID,
        admin: Profile,
        status: BidStatus,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Bid:
        """
        Administrative override, bypasses the edge table but not CAS.

        Only forward moves along pending -> accepted -> confirmed or moves into
        a terminal state are allowed, so a bid can never be accepted twice.
        """
        now = now or utcnow()
        if admin.role != UserRole.admin:
            raise RoleNotAllowedError("শুধুমাত্র অ্যাডমিন এটি করতে পারবেন। Admin privileges required")

        bid = await self._load(bid_id)
        if not can_force(bid.status, status):
            raise InvalidTransitionError(
                f"'{STATUS_LABELS_BN[bid.status]}' অবস্থার বিড পরিবর্তন করা যাবে না। "
                f"Cannot override a bid in status {bid.status.value} to {status.value}",
                {"current_status": bid.status.value, "requested_status": status.value},
            )

        changes = {}
        if status == BidStatus.accepted:
            changes["confirmation_deadline"] = confirmation_deadline_for(now)
        elif status == BidStatus.confirmed and bid.confirmed_at is None:
            changes["confirmed_at"] = now
        elif status == BidStatus.abandoned:
            changes["abandoned_at"] = now

        source = bid.status
        bid = await self.apply_transition(bid, status, now, **changes)
        logger.warning(f"Admin {admin.id} forced bid {bid.id} from {source.value} to {status.value}: {reason or '-'}")

        if status == BidStatus.abandoned:
            await self._after_abandonment(bid, now)

        await NotificationService.notify(
            user=bid.buyer_id,
            notification_type=NotificationType.system,
            title="বিডের অবস্থা পরিবর্তিত",
            message=(
                f"\"{bid.product.title}\" এর জন্য আপনার বিডের অবস্থা অ্যাডমিন "
                f"'{STATUS_LABELS_BN[status]}' করেছেন। {reason or ''}"
            ).strip(),
            metadata=self._bid_metadata(bid, "admin_override", previous_status=source.value, reason=reason)
        )
        return bid

    # ------------------------------------------------------------------ queries

    @staticmethod
    async def get_bid(bid_id: UUID, user: Profile) -> Bid:
        """Visible to the bidder, the product's seller and admins"""
        bid = await BidService._load(bid_id)
        if user.role != UserRole.admin and user.id not in (bid.buyer_id, bid.product.seller_id):
            raise NotOwnerError("এই বিডটি দেখার অনুমতি নেই। Not allowed to view this bid")
        return bid

    @staticmethod
    async def get_buyer_bids(
        buyer_id: UUID,
        page: int = 1,
        page_size: int = 20,
        status: Optional[BidStatus] = None
    ) -> tuple[list[Bid], int]:
        """Bids placed by a buyer"""
        query = Bid.filter(buyer_id=buyer_id)

        if status:
            query = query.filter(status=status)

        total = await query.count()
        bids = await query.order_by("-created_at").offset((page - 1) * page_size).limit(page_size)

        return bids, total

    @staticmethod
    async def get_seller_received_bids(
        seller_id: UUID,
        page: int = 1,
        page_size: int = 20,
        status: Optional[BidStatus] = None
    ) -> tuple[list[Bid], int]:
        """Bids on any of the seller's products"""
        query = Bid.filter(product__seller_id=seller_id)

        if status:
            query = query.filter(status=status)

        total = await query.count()
        bids = await query.order_by("-created_at").offset((page - 1) * page_size).limit(page_size)

        return bids, total

    @staticmethod
    async def get_product_bids(product_id: UUID) -> list[Bid]:
        """Highest amount first, earliest first among equal amounts"""
        bids = await Bid.filter(product_id=product_id)
        # sorted here, some backends store decimals as text
        return sorted(bids, key=lambda bid: (-bid.amount, bid.created_at))

    @staticmethod
    async def get_pending_confirmations(buyer_id: UUID) -> list[Bid]:
        """Accepted bids still waiting for the buyer, soonest deadline first"""
        return await Bid.filter(buyer_id=buyer_id, status=BidStatus.accepted).order_by("confirmation_deadline")

    @staticmethod
    async def find_expired_bids(now: datetime) -> List[Bid]:
        """Accepted bids whose confirmation deadline has passed"""
        return await Bid.filter(
            status=BidStatus.accepted,
            confirmation_deadline__lt=now,
        ).order_by("confirmation_deadline").prefetch_related("product")

    @staticmethod
    async def get_expired_bids(now: Optional[datetime] = None) -> List[Tuple[Bid, float]]:
        """Expired bids still waiting for the sweeper, with hours overdue"""
        now = now or utcnow()
        bids = await BidService.find_expired_bids(now)
        return [
            (bid, round((now - bid.confirmation_deadline).total_seconds() / 3600, 2))
            for bid in bids
        ]

    @staticmethod
    async def get_bid_statistics() -> Dict[str, int]:
        """Number of bids in each status"""
        statistics = {status.value: await Bid.filter(status=status).count() for status in BidStatus}
        statistics["total"] = sum(statistics.values())
        return statistics


bid_service = BidService()
