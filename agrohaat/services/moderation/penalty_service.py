from uuid import UUID
from decimal import Decimal
from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from agrohaat.enums.notification_type import NotificationType
from agrohaat.enums.penalty_status import PenaltyStatus
from agrohaat.enums.penalty_type import PenaltyType
from agrohaat.enums.user_role import UserRole
from agrohaat.models.bid import Bid
from agrohaat.models.penalty import Penalty
from agrohaat.models.profile import Profile
from agrohaat.services.bidding.exceptions import (
    BidValidationError,
    BidNotFoundError,
    RoleNotAllowedError,
    InvalidTransitionError,
    StaleBidStateError,
)
from agrohaat.services.communication.notification_service import NotificationService

PENALTY_TYPE_LABELS_BN = {
    PenaltyType.deal_refusal: "চুক্তি প্রত্যাখ্যান",
    PenaltyType.fake_listing: "ভুয়া তালিকা",
    PenaltyType.quality_issue: "মানের সমস্যা",
}


class PenaltyService:
    @staticmethod
    def _ensure_admin(admin: Profile):
        if admin.role != UserRole.admin:
            logger.warning(f"Penalty action denied for non-admin user {admin.id}")
            raise RoleNotAllowedError("শুধুমাত্র অ্যাডমিন এটি করতে পারবেন। Admin privileges required")

    @staticmethod
    async def apply_penalty(
        admin: Profile,
        user_id: UUID,
        bid_id: UUID,
        product_id: UUID,
        penalty_type: PenaltyType,
        penalty_amount: Decimal = Decimal("0"),
        description: Optional[str] = None
    ) -> Penalty:
        """Record a sanction against a user for a specific bid/product dispute"""
        PenaltyService._ensure_admin(admin)

        if penalty_amount < 0:
            raise BidValidationError("পেনাল্টির পরিমাণ ঋণাত্মক হতে পারে না। Penalty amount cannot be negative")

        bid = await Bid.get_or_none(id=bid_id).prefetch_related("product")
        if bid is None:
            raise BidNotFoundError("বিড পাওয়া যায়নি। Bid not found", {"bid_id": str(bid_id)})
        if bid.product_id != product_id:
            raise BidValidationError(
                "বিডটি এই পণ্যের নয়। Bid does not belong to this product",
                {"bid_id": str(bid_id), "product_id": str(product_id)},
            )
        if user_id not in (bid.buyer_id, bid.product.seller_id):
            raise BidValidationError(
                "ব্যবহারকারী এই লেনদেনের পক্ষ নন। User is not a party to this bid",
                {"user_id": str(user_id)},
            )

        penalty = await Penalty.create(
            user_id=user_id,
            bid_id=bid_id,
            product_id=product_id,
            applied_by=admin,
            penalty_type=penalty_type,
            penalty_amount=penalty_amount,
            description=description,
            status=PenaltyStatus.active
        )
        logger.warning(
            f"Admin {admin.id} applied {penalty_type.value} penalty {penalty.id} "
            f"of {penalty_amount} to user {user_id} for bid {bid_id}"
        )

        amount_text = f"৳{penalty_amount} জরিমানা" if penalty_amount > 0 else "সতর্কতা"
        await NotificationService.notify(
            user=user_id,
            notification_type=NotificationType.system,
            title="আপনার বিরুদ্ধে পেনাল্টি প্রয়োগ করা হয়েছে",
            message=(
                f"\"{bid.product.title}\" সংক্রান্ত {PENALTY_TYPE_LABELS_BN[penalty_type]} এর জন্য "
                f"{amount_text} প্রয়োগ করা হয়েছে। {description or ''}"
            ).strip(),
            metadata={
                "penalty_id": str(penalty.id),
                "bid_id": str(bid_id),
                "product_id": str(product_id),
                "action": "penalty_applied",
            }
        )
        return penalty

    @staticmethod
    async def resolve_penalty(
        admin: Profile,
        penalty_id: UUID,
        status: PenaltyStatus,
        now: Optional[datetime] = None
    ) -> Penalty:
        """Mark an active penalty as paid or waived"""
        PenaltyService._ensure_admin(admin)
        now = now or datetime.now(timezone.utc)

        if status == PenaltyStatus.active:
            raise InvalidTransitionError("পেনাল্টি শুধুমাত্র পরিশোধিত বা মওকুফ করা যায়। Resolve as paid or waived")

        penalty = await Penalty.get_or_none(id=penalty_id)
        if penalty is None:
            raise BidNotFoundError("পেনাল্টি পাওয়া যায়নি। Penalty not found", {"penalty_id": str(penalty_id)})
        if penalty.status != PenaltyStatus.active:
            raise InvalidTransitionError(
                f"Penalty is already {penalty.status.value}",
                {"current_status": penalty.status.value},
            )

        updated = await Penalty.filter(id=penalty_id, status=PenaltyStatus.active).update(
            status=status,
            resolved_at=now
        )
        if not updated:
            raise StaleBidStateError("পেনাল্টি ইতিমধ্যে নিষ্পত্তি হয়েছে। Penalty was resolved by someone else")

        penalty.status = status
        penalty.resolved_at = now
        logger.info(f"Admin {admin.id} resolved penalty {penalty_id} as {status.value}")
        return penalty

    @staticmethod
    async def get_penalties(
        page: int = 1,
        page_size: int = 20,
        status: Optional[PenaltyStatus] = None,
        user_id: Optional[UUID] = None
    ) -> tuple[list[Penalty], int]:
        """Get penalties with pagination, newest first"""
        query = Penalty.all()

        if status:
            query = query.filter(status=status)

        if user_id:
            query = query.filter(user_id=user_id)

        total = await query.count()
        penalties = await query.order_by("-applied_at").offset((page - 1) * page_size).limit(page_size)

        return penalties, total
