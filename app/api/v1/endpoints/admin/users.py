"""
Admin user management: suspension, account deletion and admin accounts.
"""
from fastapi import APIRouter, Depends, Body, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.core.logging_config import logger
from app.modules.auth.dependencies import get_current_admin, get_current_superadmin
from app.schemas.admin import SuspendUserRequest, UserDeletionResponse, AdminCreate
from app.schemas.auth import AccountResponse
from app.schemas.base import MessageResponse
from app.services.account_service import account_service
from app.services.admin_service import admin_service

router = APIRouter()


@router.post("/users/{user_id}/suspend", response_model=MessageResponse)
async def suspend_user(
    user_id: str,
    body: Optional[SuspendUserRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """Suspend a user; they lose verified status"""
    user = await admin_service.suspend_user(
        db, user_id, body.reason if body else None, current_admin.id
    )
    logger.log_workflow_event(
        "users", "suspended",
        entity_id=user.id,
        actor_id=current_admin.id,
        reason=user.suspension_reason,
    )
    return MessageResponse(message="User suspended")


@router.delete("/users/{user_id}", response_model=UserDeletionResponse)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """Delete a user together with their projects, comments, requests and notifications"""
    counts = await admin_service.delete_user_cascade(db, user_id, current_admin.id)
    logger.log_workflow_event("users", "deleted", entity_id=user_id, actor_id=current_admin.id)
    return UserDeletionResponse(message="User deleted", deleted=counts)


@router.post("/admins", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_superadmin)
):
    """Create an admin or superadmin account (superadmin only)"""
    admin = await account_service.create_admin(db, data)
    logger.log_auth_event("admin_created", True, user_email=admin.email, actor_id=current_admin.id)
    return AccountResponse.model_validate(admin)
