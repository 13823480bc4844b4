from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Union

from app.core.database import get_db
from app.models.user import User, Admin
from app.modules.auth.dependencies import get_current_account
from app.schemas.notification import NotificationResponse, NotificationListResponse, ReadAllResponse
from app.services.notification_service import notification_service

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_account: Union[User, Admin] = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """Latest notifications for the caller, newest first"""
    notifications, unread = await notification_service.list_for_user(db, current_account.id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread,
    )


@router.post("/read-all", response_model=ReadAllResponse)
async def mark_all_read(
    current_account: Union[User, Admin] = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    updated = await notification_service.mark_all_read(db, current_account.id)
    return ReadAllResponse(message="All notifications marked as read", updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    current_account: Union[User, Admin] = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    notification = await notification_service.mark_read(db, current_account.id, notification_id)
    return NotificationResponse.model_validate(notification)
