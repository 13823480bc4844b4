"""
Project endpoints: showcase projects, their comment thread, and
collaboration requests (request / status / accept / reject / owner inbox).
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import AuthorizationError
from app.core.logging_config import logger
from app.models.project import Project
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.project import (
    ProjectCreate,
    ProjectResponse,
    CommentCreate,
    CommentCreatedResponse,
    CommentListResponse,
    CollaborationStatusResponse,
    CollaborationDecisionResponse,
    CollaborationRequestListResponse,
)
from app.services.collaboration_service import collaboration_service

router = APIRouter()


# ==================== Collaboration inbox ====================
# Declared before /{project_id} so "collaboration" is not read as a project id

@router.get("/collaboration/requests", response_model=CollaborationRequestListResponse)
async def list_collaboration_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Collaboration requests on the caller's projects, newest first"""
    requests = await collaboration_service.list_for_owner(db, current_user.id)
    return CollaborationRequestListResponse(requests=requests)


# ==================== Projects ====================

@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Post a project (verified innovators only)"""
    if not current_user.verified:
        raise AuthorizationError("Only verified innovators can post projects")

    project = Project(
        title=data.title.strip(),
        description=data.description,
        sector=data.sector,
        author_id=current_user.id,
        author_name=current_user.full_name,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.info(f"Project {project.id} created by {current_user.id}")
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    project = await collaboration_service.get_project(db, project_id)
    return ProjectResponse.model_validate(project)


# ==================== Comments ====================

@router.get("/{project_id}/comments", response_model=CommentListResponse)
async def list_comments(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Comment thread, including collaboration requests shown inline"""
    comments = await collaboration_service.list_comments(db, project_id)
    return CommentListResponse(comments=comments)


@router.post(
    "/{project_id}/comments",
    response_model=CommentCreatedResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_comment(
    project_id: str,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a comment. Content starting with "[COLLAB REQUEST" files a
    collaboration request with the project owner instead (409 if one exists).
    """
    comment = await collaboration_service.add_comment(db, project_id, current_user, data.content)
    if comment.is_collab_request:
        logger.log_workflow_event(
            "collaboration", "requested",
            entity_id=comment.comment_id,
            actor_id=current_user.id,
        )
    return CommentCreatedResponse(message="Comment added successfully", comment=comment)


# ==================== Collaboration ====================

@router.get("/{project_id}/collaboration/status", response_model=CollaborationStatusResponse)
async def get_collaboration_status(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Whether the caller already asked to collaborate on this project"""
    result = await collaboration_service.get_status(db, project_id, current_user.id)
    return CollaborationStatusResponse(**result)


@router.post(
    "/{project_id}/collaboration/{comment_id}/accept",
    response_model=CollaborationDecisionResponse
)
async def accept_collaboration(
    project_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner accepts a pending request; the requester becomes a collaborator"""
    owner_id = current_user.id
    request, collaborator_count = await collaboration_service.accept(db, project_id, comment_id, owner_id)
    logger.log_workflow_event(
        "collaboration", "accepted",
        entity_id=request.id,
        actor_id=owner_id,
        collaborator_count=collaborator_count,
    )
    return CollaborationDecisionResponse(
        message="Collaboration accepted",
        status=request.status,
        collaborator_count=collaborator_count,
    )


@router.post(
    "/{project_id}/collaboration/{comment_id}/reject",
    response_model=CollaborationDecisionResponse,
    response_model_exclude_none=True
)
async def reject_collaboration(
    project_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner rejects a pending request"""
    owner_id = current_user.id
    request = await collaboration_service.reject(db, project_id, comment_id, owner_id)
    logger.log_workflow_event("collaboration", "rejected", entity_id=request.id, actor_id=owner_id)
    return CollaborationDecisionResponse(message="Collaboration rejected", status=request.status)
