"""
Admin review of verification applications.
"""
from fastapi import APIRouter, Depends, Query, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import logger
from app.modules.auth.dependencies import get_current_admin
from app.schemas.base import MessageResponse
from app.schemas.verification import ApplicationListResponse, ApplicationReject
from app.services.verification_service import verification_service

router = APIRouter()


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    status: str = Query("pending", description="pending | under_review | approved | rejected | all"),
    limit: int = Query(settings.ADMIN_LIST_LIMIT, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """Applications in the review queue, joined with applicant details"""
    applications = await verification_service.list_applications(db, status=status, limit=limit)
    return ApplicationListResponse(applications=applications)


@router.post("/{application_id}/approve", response_model=MessageResponse)
async def approve_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """Approve an application and mark the applicant verified (idempotent)"""
    admin_id = current_admin.id
    application, changed = await verification_service.approve_application(db, application_id, admin_id)
    logger.log_workflow_event(
        "verification", "approved" if changed else "approve_noop",
        entity_id=application.id,
        actor_id=admin_id,
    )
    return MessageResponse(message="Application approved successfully")


@router.post("/{application_id}/reject", response_model=MessageResponse)
async def reject_application(
    application_id: str,
    body: Optional[ApplicationReject] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """Reject an application; the applicant loses verified status and may resubmit"""
    reason = body.reason if body else None
    admin_id = current_admin.id
    application = await verification_service.reject_application(db, application_id, reason, admin_id)
    logger.log_workflow_event(
        "verification", "rejected",
        entity_id=application.id,
        actor_id=admin_id,
        reason=application.rejection_reason,
    )
    return MessageResponse(message="Application rejected")
