"""
Abandonment counter and temporary bidding suspension.

Runs after a bid enters ``abandoned``. Counter and suspension are written
with single conditional UPDATE statements, so several abandonments of the
same buyer processed in one sweep cannot lose increments or stack
suspensions. The caller's abandonment is already committed when this runs;
a failure here leaves the two momentarily out of step and the sweeper's
catch-up pass repairs it.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from loguru import logger
from tortoise.expressions import F, Q

from agrohaat.core.config import settings, CounterPolicy
from agrohaat.enums.notification_type import NotificationType
from agrohaat.models.profile import Profile
from agrohaat.services.communication.notification_service import NotificationService


@dataclass
class SuspensionOutcome:
    user_id: UUID
    abandonment_count: int
    suspended: bool
    suspended_until: Optional[datetime]


def not_currently_suspended(now: datetime) -> Q:
    return Q(bid_suspension_until__isnull=True) | Q(bid_suspension_until__lte=now)


def needs_catch_up(profile: Profile, now: datetime) -> bool:
    """Over the threshold with an abandonment that no suspension has covered yet"""
    if profile.is_suspended(now):
        return False
    if profile.bid_suspension_until is None:
        return True
    return (
        profile.last_abandonment_at is not None
        and profile.last_abandonment_at > profile.bid_suspension_until
    )


class SuspensionPolicy:
    def __init__(
        self,
        threshold: Optional[int] = None,
        suspension_days: Optional[int] = None,
        counter_policy: Optional[CounterPolicy] = None,
    ):
        self.threshold = threshold or settings.SUSPENSION_THRESHOLD
        self.suspension_period = timedelta(days=suspension_days or settings.SUSPENSION_DAYS)
        self.counter_policy = counter_policy or settings.ABANDONMENT_COUNTER_POLICY

    async def on_abandonment(self, user_id: UUID, now: Optional[datetime] = None) -> SuspensionOutcome:
        now = now or datetime.now(timezone.utc)

        if self.counter_policy == CounterPolicy.reset_on_expiry:
            reset = await Profile.filter(id=user_id, bid_suspension_until__lte=now).update(
                bid_abandonment_count=0,
                bid_suspension_until=None,
            )
            if reset:
                logger.info(f"Abandonment counter reset for user {user_id} after suspension expiry")

        await Profile.filter(id=user_id).update(
            bid_abandonment_count=F("bid_abandonment_count") + 1,
            last_abandonment_at=now,
        )

        suspended_until = await self._suspend_if_due(user_id, now)
        profile = await Profile.get(id=user_id)

        if suspended_until is not None:
            logger.warning(
                f"User {user_id} suspended from bidding until {suspended_until.isoformat()} "
                f"after {profile.bid_abandonment_count} abandonments"
            )
            await self._notify_suspension(user_id, profile.bid_abandonment_count)

        return SuspensionOutcome(
            user_id=user_id,
            abandonment_count=profile.bid_abandonment_count,
            suspended=suspended_until is not None,
            suspended_until=suspended_until,
        )

    async def catch_up(self, now: Optional[datetime] = None) -> List[UUID]:
        """Suspend users whose earlier suspension write never happened"""
        now = now or datetime.now(timezone.utc)
        candidates = await Profile.filter(
            not_currently_suspended(now),
            bid_abandonment_count__gte=self.threshold,
        )

        suspended = []
        for profile in candidates:
            if not needs_catch_up(profile, now):
                continue
            try:
                if await self._suspend_if_due(profile.id, now) is not None:
                    suspended.append(profile.id)
                    logger.warning(f"Catch-up suspension applied to user {profile.id}")
                    await self._notify_suspension(profile.id, profile.bid_abandonment_count)
            except Exception as e:
                logger.exception(f"Catch-up suspension failed for user {profile.id}: {e}")
        return suspended

    async def _suspend_if_due(self, user_id: UUID, now: datetime) -> Optional[datetime]:
        until = now + self.suspension_period
        updated = await Profile.filter(
            not_currently_suspended(now),
            id=user_id,
            bid_abandonment_count__gte=self.threshold,
        ).update(bid_suspension_until=until)
        return until if updated else None

    async def _notify_suspension(self, user_id: UUID, abandonment_count: int):
        days = self.suspension_period.days
        await NotificationService.notify(
            user=user_id,
            notification_type=NotificationType.system,
            title="বিডিং থেকে সাময়িক বন্ধ",
            message=f"একাধিকবার বিড পরিত্যাগ করার কারণে আপনি {days} দিনের জন্য বিডিং থেকে বন্ধ করা হয়েছে।",
            metadata={
                "action": "user_suspended",
                "reason": "multiple_bid_abandonments",
                "abandonment_count": abandonment_count,
            }
        )
