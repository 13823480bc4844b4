"""
Admin handling of funding and certificate requests.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import logger
from app.modules.auth.dependencies import get_current_admin
from app.schemas.request import (
    AdminRequestListResponse,
    RequestStatusUpdate,
    RequestStatusResponse,
    BulkSubmitRequest,
    BulkSubmitResponse,
)
from app.services.request_service import request_service

router = APIRouter()


@router.get("", response_model=AdminRequestListResponse)
async def list_requests(
    type: Optional[str] = Query(None, description="funding | certificate"),
    limit: int = Query(settings.ADMIN_LIST_LIMIT, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    requests = await request_service.list_all(db, request_type=type, limit=limit)
    return AdminRequestListResponse(requests=requests)


@router.post("/bulk-submit", response_model=BulkSubmitResponse)
async def bulk_submit(
    body: BulkSubmitRequest,
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """Mark every listed request as submitted; already-submitted ones are skipped"""
    updated = await request_service.bulk_submit(db, body.request_ids)
    logger.log_workflow_event(
        "requests", "bulk_submitted",
        actor_id=current_admin.id,
        requested=len(body.request_ids),
        updated=updated,
    )
    if not updated:
        return BulkSubmitResponse(message="No pending items to submit", updated=0)
    return BulkSubmitResponse(message="Requests marked as submitted", updated=updated)


@router.put("/{request_id}/status", response_model=RequestStatusResponse)
async def update_request_status(
    request_id: str,
    body: RequestStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin=Depends(get_current_admin)
):
    """pending -> submitted only; submitted requests cannot go back"""
    admin_id = current_admin.id
    request, changed = await request_service.update_status(db, request_id, body.status)
    logger.log_workflow_event(
        "requests", f"status_{request.status.value}" if changed else "status_noop",
        entity_id=request.id,
        actor_id=admin_id,
    )
    return RequestStatusResponse(message="Status updated", status=request.status)
