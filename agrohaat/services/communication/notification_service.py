from uuid import UUID
from typing import Optional, Union
from datetime import datetime, timezone

from loguru import logger

from agrohaat.core.config import settings
from agrohaat.enums.change_event import ChangeEvent
from agrohaat.models.profile import Profile
from agrohaat.models.notification import Notification, NotificationType
from agrohaat.services.communication.push_dispatcher import push_dispatcher
from agrohaat.services.realtime.change_feed import change_feed


class NotificationService:
    @staticmethod
    async def create_notification(
        user: Union[Profile, UUID],
        notification_type: NotificationType,
        title: str,
        message: str,
        metadata: Optional[dict] = None
    ) -> Notification:
        """Create a new notification"""
        user_id = user.id if isinstance(user, Profile) else user
        notification = await Notification.create(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            metadata=metadata
        )

        await change_feed.publish_instance(notification, ChangeEvent.insert)
        NotificationService._send_to_channels(notification)

        return notification

    @staticmethod
    async def notify(
        user: Union[Profile, UUID],
        notification_type: NotificationType,
        title: str,
        message: str,
        metadata: Optional[dict] = None
    ) -> Optional[Notification]:
        """
        Best-effort variant used as a side effect of state changes.
        A failure is logged and swallowed so the triggering change stands.
        """
        try:
            return await NotificationService.create_notification(
                user=user,
                notification_type=notification_type,
                title=title,
                message=message,
                metadata=metadata
            )
        except Exception as e:
            user_id = user.id if isinstance(user, Profile) else user
            logger.error(f"Error creating {notification_type.value} notification for user {user_id}: {e}")
            return None

    @staticmethod
    def _send_to_channels(notification: Notification):
        """Send notification to the push channel"""
        if not settings.PUSH_ENABLED:
            return
        try:
            push_dispatcher.dispatch(notification)
        except Exception as e:
            # Log error but don't fail notification creation
            logger.error(f"Error sending notification {notification.id} to push channel: {e}")

    @staticmethod
    async def get_user_notifications(
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False
    ) -> tuple[list[Notification], int, int]:
        """Get user notifications with pagination"""
        query = Notification.filter(user_id=user_id)

        if unread_only:
            query = query.filter(is_read=False)

        total = await query.count()
        unread_count = await Notification.filter(user_id=user_id, is_read=False).count()

        notifications = await query.order_by("-created_at").offset((page - 1) * page_size).limit(page_size)

        return notifications, total, unread_count

    @staticmethod
    async def get_unread_count(user_id: UUID) -> int:
        return await Notification.filter(user_id=user_id, is_read=False).count()

    @staticmethod
    async def mark_as_read(notification_id: UUID, user_id: UUID) -> Notification:
        """Mark a notification as read; only the recipient can"""
        notification = await Notification.get(id=notification_id, user_id=user_id)

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await notification.save(update_fields=["is_read", "read_at"])
            await change_feed.publish_instance(notification, ChangeEvent.update)

        return notification

    @staticmethod
    async def mark_all_as_read(user_id: UUID) -> int:
        """Mark all notifications as read for a user"""
        count = await Notification.filter(user_id=user_id, is_read=False).update(
            is_read=True,
            read_at=datetime.now(timezone.utc)
        )
        return count
