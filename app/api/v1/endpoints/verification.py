from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging_config import logger
from app.schemas.base import MessageResponse
from app.schemas.verification import ApplicationSubmit, VerificationCheckResponse
from app.services.verification_service import verification_service

router = APIRouter()


@router.get("/check/{user_id}", response_model=VerificationCheckResponse)
async def check_verification(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Whether the user is verified, has an application in review, and may apply"""
    return VerificationCheckResponse(**await verification_service.check_eligibility(db, user_id))


@router.post("", response_model=MessageResponse)
async def submit_application(
    payload: ApplicationSubmit,
    db: AsyncSession = Depends(get_db)
):
    """Submit a verification application for the user named in the body"""
    application = await verification_service.submit_application(db, payload.user_id, payload.info)
    logger.log_workflow_event(
        "verification", "submitted",
        entity_id=application.id,
        actor_id=application.user_id,
        sector=application.sector.value,
    )
    return MessageResponse(message="Application submitted successfully.")
