from fastapi import APIRouter, Depends, HTTPException, status, Query
from uuid import UUID
from tortoise.exceptions import DoesNotExist

from agrohaat.models.profile import Profile
from agrohaat.api.dependencies import get_current_user
from agrohaat.schemas.notification import NotificationListResponse, NotificationResponse
from agrohaat.services.communication.notification_service import NotificationService

router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
async def get_my_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    current_user: Profile = Depends(get_current_user)
):
    """Get current user's notifications"""
    notifications, total, unread_count = await NotificationService.get_user_notifications(
        user_id=current_user.id,
        page=page,
        page_size=page_size,
        unread_only=unread_only
    )

    return NotificationListResponse(
        total=total,
        unread_count=unread_count,
        page=page,
        page_size=page_size,
        notifications=notifications
    )


@router.get("/unread-count")
async def get_unread_count(
    current_user: Profile = Depends(get_current_user)
):
    """Get count of unread notifications"""
    count = await NotificationService.get_unread_count(current_user.id)
    return {"unread_count": count}


@router.put("/read-all")
async def mark_all_as_read(
    current_user: Profile = Depends(get_current_user)
):
    """Mark all notifications as read"""
    count = await NotificationService.mark_all_as_read(current_user.id)
    return {"message": f"{count} notifications marked as read", "count": count}


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_as_read(
    notification_id: UUID,
    current_user: Profile = Depends(get_current_user)
):
    """Mark a notification as read (recipient only)"""
    try:
        return await NotificationService.mark_as_read(notification_id, current_user.id)
    except DoesNotExist:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
