"""Pydantic schemas for projects, comments and collaboration requests"""
from pydantic import Field
from typing import Optional, List
from datetime import datetime

from app.models.request import RequestStatus
from app.schemas.base import CamelModel


# ==================== Project Schemas ====================

class ProjectCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sector: Optional[str] = Field(None, max_length=50)


class ProjectResponse(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    sector: Optional[str] = None
    author_id: str
    author_name: Optional[str] = None
    collaborator_ids: List[str] = Field(default_factory=list)
    collaborator_count: int = 0
    likes: List[str] = Field(default_factory=list)
    follows: List[str] = Field(default_factory=list)
    created_at: datetime


# ==================== Comment Schemas ====================

class CommentCreate(CamelModel):
    content: str = Field(..., max_length=5000)


class CommentResponse(CamelModel):
    """A comment, or a collaboration request shown in the comment thread"""
    comment_id: str
    user_id: str
    user_name: Optional[str] = None
    content: str
    created_at: datetime
    is_collab_request: bool = False
    status: Optional[RequestStatus] = None


class CommentCreatedResponse(CamelModel):
    message: str
    comment: CommentResponse


class CommentListResponse(CamelModel):
    comments: List[CommentResponse]


# ==================== Collaboration Schemas ====================

class CollaborationStatusResponse(CamelModel):
    exists: bool
    status: Optional[RequestStatus] = None
    project_title: Optional[str] = None


class CollaborationDecisionResponse(CamelModel):
    message: str
    status: RequestStatus
    collaborator_count: Optional[int] = None


class RequesterSummary(CamelModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    avatar: Optional[str] = None


class RequesterStats(CamelModel):
    projects_count: int = 0
    followers_count: int = 0
    collab_history_count: int = 0
    github_username: Optional[str] = None


class CollaborationRequestItem(CamelModel):
    id: str
    project_id: str
    project_title: Optional[str] = None
    comment_id: Optional[str] = None
    message: str = ""
    status: RequestStatus
    created_at: datetime
    time_ago: str
    requester: Optional[RequesterSummary] = None
    requester_stats: RequesterStats


class CollaborationRequestListResponse(CamelModel):
    requests: List[CollaborationRequestItem]
