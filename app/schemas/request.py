"""Pydantic schemas for funding and certificate requests"""
from pydantic import Field
from typing import Optional, List
from datetime import datetime

from app.models.request import RequestStatus
from app.schemas.base import CamelModel


class RequestCreate(CamelModel):
    # funding | certificate; checked by the workflow so the message names both
    type: str

    # funding
    title: Optional[str] = None
    amount: Optional[float] = None
    proposal_url: Optional[str] = None

    # certificate
    certificate_type: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None


class RequestResponse(CamelModel):
    id: str
    type: str
    user_id: str
    status: RequestStatus
    title: Optional[str] = None
    amount: Optional[float] = None
    proposal_url: Optional[str] = None
    certificate_type: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AdminRequestResponse(RequestResponse):
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class RequestListResponse(CamelModel):
    requests: List[RequestResponse]


class AdminRequestListResponse(CamelModel):
    requests: List[AdminRequestResponse]


class RequestStatusUpdate(CamelModel):
    status: str


class RequestStatusResponse(CamelModel):
    message: str
    status: RequestStatus


class BulkSubmitRequest(CamelModel):
    request_ids: List[str] = Field(default_factory=list)


class BulkSubmitResponse(CamelModel):
    message: str
    updated: int
