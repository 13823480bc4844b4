from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.modules.auth.dependencies import get_current_admin
from app.schemas.admin import DashboardStats
from app.schemas.notification import NotificationResponse, NotificationListResponse
from app.services.admin_service import admin_service
from app.services.notification_service import notification_service

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """User, project, application and request counts for the dashboard"""
    return await admin_service.dashboard_stats(db)


@router.get("/notifications", response_model=NotificationListResponse)
async def list_admin_notifications(
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """Admin feed: applications and requests, without collaboration traffic"""
    notifications, unread = await notification_service.list_for_user(
        db,
        current_admin.id,
        limit=settings.ADMIN_LIST_LIMIT,
        exclude_collaboration=True,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread,
    )
