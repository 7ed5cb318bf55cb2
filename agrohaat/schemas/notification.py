from uuid import UUID
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_serializer

from agrohaat.enums.notification_type import NotificationType


class NotificationResponse(BaseModel):
    """Schema for notification response"""
    id: UUID
    notification_type: NotificationType
    title: str
    message: str
    is_read: bool
    read_at: Optional[datetime]
    metadata: Optional[dict]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("id")
    def serialize_id(self, v: UUID, _info):
        return str(v)


class NotificationListResponse(BaseModel):
    """Schema for paginated notification list"""
    total: int
    unread_count: int
    page: int
    page_size: int
    notifications: list[NotificationResponse]
