from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.request import RequestCreate, RequestResponse, RequestListResponse
from app.services.request_service import request_service

router = APIRouter()


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: RequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """File a funding or certificate request"""
    request = await request_service.create_request(db, current_user, data)
    return RequestResponse.model_validate(request)


@router.get("", response_model=RequestListResponse)
async def list_my_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's funding and certificate requests, newest first"""
    requests = await request_service.list_user_requests(db, current_user.id)
    return RequestListResponse(requests=[RequestResponse.model_validate(r) for r in requests])
