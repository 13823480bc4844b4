"""Pydantic schemas for verification applications"""
from pydantic import Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime

from app.models.verification import ApplicationType, ApplicationStatus, Sector
from app.schemas.base import CamelModel


class ApplicationInfo(CamelModel):
    """What the applicant fills in"""
    type: ApplicationType = ApplicationType.INDIVIDUAL
    # Checked against the Sector enum by the workflow so the error carries the allowed values
    sector: str = Field(..., min_length=1)
    project_title: str = Field(..., min_length=1, max_length=255)
    project_description: Optional[str] = None
    github_url: Optional[str] = None
    github_username: Optional[str] = None
    team_members: List[Any] = Field(default_factory=list)
    duration: Optional[str] = None
    team_size: Optional[Union[int, str]] = None


class ApplicationSubmit(CamelModel):
    user_id: str = Field(..., min_length=1)
    info: ApplicationInfo


class VerificationCheckResponse(CamelModel):
    is_verified: bool
    has_pending: bool
    can_apply: bool


class ApplicationResponse(CamelModel):
    id: str
    user_id: str
    type: ApplicationType
    sector: Sector
    project_title: Optional[str] = None
    project_description: Optional[str] = None
    github_url: Optional[str] = None
    github_username: Optional[str] = None
    team_members: List[Any] = Field(default_factory=list)
    duration: Optional[str] = None
    status: ApplicationStatus
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    github_stats: Optional[Dict[str, Any]] = None

    # Joined from the applicant's current account
    user_first_name: Optional[str] = None
    user_avatar: Optional[str] = None


class ApplicationListResponse(CamelModel):
    applications: List[ApplicationResponse]


class ApplicationReject(CamelModel):
    reason: Optional[str] = None
