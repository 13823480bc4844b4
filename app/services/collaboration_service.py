"""
Collaboration Service - project comments and collaboration requests

A collaboration request is a structured `requests` row (type=collaboration).
Older data only has a project comment starting with "[COLLAB REQUEST"; such
comments are imported into structured rows the first time they are needed
(owner listing, accept/reject), keyed by (project_id, requester_id), so the
import can run any number of times without creating duplicates.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, update, func
from datetime import datetime
from typing import Optional, List, Tuple, Dict
from urllib.parse import urlparse
import logging
import re

from app.core.exceptions import (
    ValidationError,
    InvalidIdentifierError,
    InvalidActorError,
    NotResourceOwnerError,
    ProjectNotFoundError,
    CollaborationRequestNotFoundError,
    DuplicateRequestError,
    AlreadyProcessedError,
)
from app.core.types import is_valid_uuid, generate_uuid
from app.models.notification import NotificationKind
from app.models.project import Project, ProjectComment, COLLAB_REQUEST_MARKER, is_collab_marker
from app.models.request import UserRequest, CollaborationRequest, RequestStatus
from app.models.user import User
from app.schemas.notification import build_notification
from app.schemas.project import (
    CommentResponse,
    CollaborationRequestItem,
    RequesterSummary,
    RequesterStats,
)
from app.services.notification_service import notification_service

logger = logging.getLogger(__name__)

_MARKER_PREFIX = re.compile(r"^\[COLLAB REQUEST[^\]]*\]\s*(.*)$", re.IGNORECASE | re.DOTALL)


def strip_marker(content: str) -> str:
    """Message text without the leading [COLLAB REQUEST ...] tag"""
    content = (content or "").strip()
    match = _MARKER_PREFIX.match(content)
    return match.group(1).strip() if match else content


def time_ago(then: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    seconds = max(int((now - then).total_seconds()), 0)
    minutes = seconds // 60
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"


def github_username_from_url(url: Optional[str]) -> Optional[str]:
    """'https://github.com/octocat/' -> 'octocat'"""
    if not url:
        return None
    parsed = urlparse(url if "://" in url else f"https://{url}")
    segments = [part for part in parsed.path.split("/") if part]
    return segments[0] if segments else None


def _marker_condition():
    return func.upper(func.trim(ProjectComment.content)).like(f"{COLLAB_REQUEST_MARKER}%")


class CollaborationService:
    """Service for comments and collaboration requests on projects"""

    # ==================== LOOKUPS ====================

    async def get_project(self, db: AsyncSession, project_id: str) -> Project:
        if not is_valid_uuid(project_id):
            raise InvalidIdentifierError("project")
        project = await db.get(Project, project_id)
        if not project:
            raise ProjectNotFoundError(project_id)
        return project

    async def find_request(
        self,
        db: AsyncSession,
        project_id: str,
        requester_id: str
    ) -> Optional[CollaborationRequest]:
        result = await db.execute(
            select(CollaborationRequest).where(
                CollaborationRequest.project_id == project_id,
                CollaborationRequest.user_id == requester_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_legacy_comment(
        self,
        db: AsyncSession,
        project_id: str,
        requester_id: str
    ) -> Optional[ProjectComment]:
        """Earliest marker comment left by requester on the project"""
        result = await db.execute(
            select(ProjectComment)
            .where(
                ProjectComment.project_id == project_id,
                ProjectComment.user_id == requester_id,
                _marker_condition(),
            )
            .order_by(ProjectComment.created_at)
        )
        for comment in result.scalars():
            if comment.is_collab_request:
                return comment
        return None

    # ==================== COMMENTS ====================

    async def add_comment(
        self,
        db: AsyncSession,
        project_id: str,
        author: User,
        content: str
    ) -> CommentResponse:
        """
        Add a comment to a project.

        Content starting with the collaboration marker becomes a collaboration
        request instead of a plain comment; it is returned comment-shaped.
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("Content is required", field="content")

        project = await self.get_project(db, project_id)

        if is_collab_marker(content):
            request = await self.request_collaboration(db, project, author, content)
            return self._request_as_comment(request, author.full_name)

        comment = ProjectComment(
            project_id=project.id,
            user_id=author.id,
            user_name=author.full_name,
            content=content,
        )
        db.add(comment)
        await db.commit()
        await db.refresh(comment)
        return CommentResponse.model_validate(comment)

    async def list_comments(self, db: AsyncSession, project_id: str) -> List[CommentResponse]:
        """Project thread: plain comments plus collaboration requests, oldest first"""
        project = await self.get_project(db, project_id)

        comments = (await db.execute(
            select(ProjectComment).where(ProjectComment.project_id == project.id)
        )).scalars().all()
        requests = (await db.execute(
            select(CollaborationRequest).where(CollaborationRequest.project_id == project.id)
        )).scalars().all()
        # One request per requester, so repeated marker comments share its status
        status_by_requester = {r.user_id: r.status for r in requests}

        thread = []
        for comment in comments:
            item = CommentResponse.model_validate(comment)
            if comment.is_collab_request:
                item = item.model_copy(update={
                    "is_collab_request": True,
                    "status": status_by_requester.get(comment.user_id, RequestStatus.PENDING),
                })
            thread.append(item)

        seen = {c.comment_id for c in comments}
        new_requests = [r for r in requests if r.comment_id not in seen]
        names = await self._names(db, [r.user_id for r in new_requests])
        for request in new_requests:
            thread.append(self._request_as_comment(request, names.get(request.user_id)))

        thread.sort(key=lambda c: c.created_at)
        return thread

    def _request_as_comment(self, request: CollaborationRequest, user_name: Optional[str]) -> CommentResponse:
        return CommentResponse(
            comment_id=request.comment_id,
            user_id=request.user_id,
            user_name=user_name,
            content=request.message or "",
            created_at=request.created_at,
            is_collab_request=True,
            status=request.status,
        )

    async def _names(self, db: AsyncSession, user_ids: List[str]) -> Dict[str, str]:
        if not user_ids:
            return {}
        result = await db.execute(select(User).where(User.id.in_(set(user_ids))))
        return {user.id: user.full_name for user in result.scalars()}

    # ==================== REQUEST ====================

    async def request_collaboration(
        self,
        db: AsyncSession,
        project: Project,
        requester: User,
        message: str
    ) -> CollaborationRequest:
        """
        Create a pending collaboration request and notify the project owner.

        Raises:
            InvalidActorError: requester owns the project
            DuplicateRequestError: a request (structured or legacy) already exists
        """
        project_id, owner_id, project_title = project.id, project.author_id, project.title
        requester_id, requester_name = requester.id, requester.full_name or requester.email

        if requester_id == owner_id:
            raise InvalidActorError("You cannot request to collaborate on your own project.")

        existing = await self.find_request(db, project_id, requester_id)
        if existing:
            raise DuplicateRequestError(existing.status.value, project_title)
        if await self.find_legacy_comment(db, project_id, requester_id):
            raise DuplicateRequestError(RequestStatus.PENDING.value, project_title)

        request = CollaborationRequest(
            user_id=requester_id,
            owner_id=owner_id,
            project_id=project_id,
            comment_id=generate_uuid(),
            message=message.strip(),
            status=RequestStatus.PENDING,
        )
        db.add(request)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await self.find_request(db, project_id, requester_id)
            raise DuplicateRequestError(
                existing.status.value if existing else RequestStatus.PENDING.value,
                project_title,
            )
        await db.refresh(request)

        logger.info(f"Collaboration request {request.id}: {requester_id} -> project {project_id}")

        await notification_service.emit(db, owner_id, build_notification(
            NotificationKind.COLLAB_REQUEST,
            title="New collaboration request",
            message=f"{requester_name} requested to collaborate on '{project_title}'.",
            project_id=project_id,
            comment_id=request.comment_id,
            from_user_id=requester_id,
        ))
        return request

    async def get_status(self, db: AsyncSession, project_id: str, requester_id: str) -> dict:
        """{exists, status, project_title} for the requester's own request on a project"""
        if not is_valid_uuid(project_id):
            raise InvalidIdentifierError("project")

        project = await db.get(Project, project_id)
        title = project.title if project else None

        request = await self.find_request(db, project_id, requester_id)
        if request:
            return {"exists": True, "status": request.status, "project_title": title}
        if await self.find_legacy_comment(db, project_id, requester_id):
            return {"exists": True, "status": RequestStatus.PENDING, "project_title": title}
        return {"exists": False}

    # ==================== DECISIONS ====================

    async def _pending_request_for_owner(
        self,
        db: AsyncSession,
        project_id: str,
        comment_id: str,
        owner_id: str
    ) -> Tuple[Project, CollaborationRequest]:
        project = await self.get_project(db, project_id)
        if project.author_id != owner_id:
            raise NotResourceOwnerError("Only the project owner can respond to collaboration requests")

        result = await db.execute(
            select(CollaborationRequest).where(
                CollaborationRequest.project_id == project.id,
                CollaborationRequest.comment_id == comment_id,
            )
        )
        request = result.scalar_one_or_none()
        if request is None:
            request = await self._import_legacy_comment(db, project, comment_id)
        if request is None:
            raise CollaborationRequestNotFoundError(comment_id)

        if request.status != RequestStatus.PENDING:
            raise AlreadyProcessedError(request.status.value)
        return project, request

    async def _close_request(self, db: AsyncSession, request: CollaborationRequest, status: RequestStatus) -> None:
        """
        Move a pending request to `status` with a single conditional UPDATE.

        Of two decisions racing on the same request only one matches
        status='pending'; the other is rolled back with AlreadyProcessedError.
        """
        request_id = request.id
        result = await db.execute(
            update(UserRequest)
            .where(UserRequest.id == request_id, UserRequest.status == RequestStatus.PENDING)
            .values(status=status, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            current = await db.scalar(select(UserRequest.status).where(UserRequest.id == request_id))
            if current is None:
                raise CollaborationRequestNotFoundError(request_id)
            raise AlreadyProcessedError(current.value)

    async def accept(
        self,
        db: AsyncSession,
        project_id: str,
        comment_id: str,
        owner_id: str
    ) -> Tuple[CollaborationRequest, int]:
        """Accept a pending request; returns (request, collaborator_count)"""
        project, request = await self._pending_request_for_owner(db, project_id, comment_id, owner_id)
        await self._close_request(db, request, RequestStatus.ACCEPTED)

        # Re-read the project row under lock so the add-to-set and recount see the same list
        project = (await db.execute(
            select(Project)
            .where(Project.id == project.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )).scalar_one()

        collaborators = list(project.collaborator_ids or [])
        if request.user_id not in collaborators:
            collaborators.append(request.user_id)
        project.collaborator_ids = collaborators
        project.collaborator_count = len(set(collaborators))

        count, title = project.collaborator_count, project.title
        await db.commit()
        await db.refresh(request)

        logger.info(f"Collaboration request {request.id} accepted; project {project.id} has {count} collaborators")

        await notification_service.emit(db, request.user_id, build_notification(
            NotificationKind.COLLAB_RESPONSE,
            title="Collaboration request accepted",
            message=(
                f"Your collaboration request for '{title}' was accepted by the owner. "
                "We will contact you soon through your email address."
            ),
            project_id=project.id,
            comment_id=request.comment_id,
            status=RequestStatus.ACCEPTED.value,
        ))
        return request, count

    async def reject(
        self,
        db: AsyncSession,
        project_id: str,
        comment_id: str,
        owner_id: str
    ) -> CollaborationRequest:
        """Reject a pending request; collaborators are left untouched"""
        project, request = await self._pending_request_for_owner(db, project_id, comment_id, owner_id)

        title = project.title
        await self._close_request(db, request, RequestStatus.REJECTED)
        await db.commit()
        await db.refresh(request)

        logger.info(f"Collaboration request {request.id} rejected")

        await notification_service.emit(db, request.user_id, build_notification(
            NotificationKind.COLLAB_RESPONSE,
            title="Collaboration request rejected",
            message=f"Your collaboration request was rejected for '{title}'.",
            project_id=project.id,
            comment_id=request.comment_id,
            status=RequestStatus.REJECTED.value,
        ))
        return request

    # ==================== LEGACY IMPORT ====================

    def _request_from_comment(self, project: Project, comment: ProjectComment) -> CollaborationRequest:
        return CollaborationRequest(
            user_id=comment.user_id,
            owner_id=project.author_id,
            project_id=project.id,
            comment_id=comment.comment_id,
            message=comment.content,
            status=RequestStatus.PENDING,
            created_at=comment.created_at,
        )

    async def _import_legacy_comment(
        self,
        db: AsyncSession,
        project: Project,
        comment_id: str
    ) -> Optional[CollaborationRequest]:
        """Materialize one marker comment, or return the request that already covers its requester"""
        result = await db.execute(
            select(ProjectComment).where(
                ProjectComment.project_id == project.id,
                ProjectComment.comment_id == comment_id,
            )
        )
        comment = result.scalar_one_or_none()
        if comment is None or not comment.is_collab_request or comment.user_id == project.author_id:
            return None

        existing = await self.find_request(db, project.id, comment.user_id)
        if existing:
            return existing

        project_id, requester_id = project.id, comment.user_id
        db.add(self._request_from_comment(project, comment))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            await db.refresh(project)
        return await self.find_request(db, project_id, requester_id)

    async def _existing_pairs(self, db: AsyncSession, project_ids: List[str]) -> set:
        """(project_id, requester_id) pairs that already have a structured request"""
        result = await db.execute(
            select(CollaborationRequest.project_id, CollaborationRequest.user_id)
            .where(CollaborationRequest.project_id.in_(project_ids))
        )
        return {tuple(row) for row in result.all()}

    async def import_legacy_requests(self, db: AsyncSession, owner_id: str) -> int:
        """
        Upsert a structured request for every marker comment on the owner's projects.

        Idempotent: pairs that already have a structured request are skipped.
        Each row is committed on its own, so a pair written meanwhile by a
        concurrent import only skips that pair. Returns the number of rows created.
        """
        projects = {
            p.id: p for p in (await db.execute(
                select(Project).where(Project.author_id == owner_id)
            )).scalars()
        }
        if not projects:
            return 0

        comments = (await db.execute(
            select(ProjectComment)
            .where(ProjectComment.project_id.in_(list(projects)), _marker_condition())
            .order_by(ProjectComment.created_at)
        )).scalars().all()
        if not comments:
            return 0

        pairs = await self._existing_pairs(db, list(projects))

        # Built up front: a rollback below expires the loaded projects and comments
        pending = []
        for comment in comments:
            key = (comment.project_id, comment.user_id)
            if key in pairs or not comment.is_collab_request or comment.user_id == owner_id:
                continue
            pairs.add(key)
            pending.append(self._request_from_comment(projects[comment.project_id], comment))

        created = 0
        for request in pending:
            db.add(request)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.info(
                    f"Legacy collaboration request for project {request.project_id} "
                    f"by {request.user_id} already imported"
                )
                continue
            created += 1

        if created:
            logger.info(f"Imported {created} legacy collaboration request(s) for owner {owner_id}")
        return created

    # ==================== OWNER LISTING ====================

    async def list_for_owner(self, db: AsyncSession, owner_id: str) -> List[CollaborationRequestItem]:
        """Every request on the owner's projects, newest first, with requester summaries"""
        await self.import_legacy_requests(db, owner_id)

        requests = (await db.execute(
            select(CollaborationRequest)
            .where(CollaborationRequest.owner_id == owner_id)
            .order_by(CollaborationRequest.created_at.desc())
        )).scalars().all()
        if not requests:
            return []

        project_ids = {r.project_id for r in requests}
        requester_ids = {r.user_id for r in requests}

        titles = dict((await db.execute(
            select(Project.id, Project.title).where(Project.id.in_(project_ids))
        )).all())
        requesters = {
            u.id: u for u in (await db.execute(
                select(User).where(User.id.in_(requester_ids))
            )).scalars()
        }
        project_counts = dict((await db.execute(
            select(Project.author_id, func.count(Project.id))
            .where(Project.author_id.in_(requester_ids))
            .group_by(Project.author_id)
        )).all())
        collab_counts = dict((await db.execute(
            select(CollaborationRequest.user_id, func.count(CollaborationRequest.id))
            .where(
                CollaborationRequest.user_id.in_(requester_ids),
                CollaborationRequest.status == RequestStatus.ACCEPTED,
            )
            .group_by(CollaborationRequest.user_id)
        )).all())

        now = datetime.utcnow()
        items = []
        for request in requests:
            user = requesters.get(request.user_id)
            summary = None
            github_username = None
            followers = 0
            if user:
                summary = RequesterSummary(
                    id=user.id,
                    first_name=user.first_name or "",
                    last_name=user.last_name or "",
                    email=user.email,
                    avatar=user.avatar_url,
                )
                github_username = (
                    user.github_username
                    or (user.github_stats or {}).get("username")
                    or github_username_from_url(user.github_url)
                )
                followers = len(user.followers or [])

            items.append(CollaborationRequestItem(
                id=request.id,
                project_id=request.project_id,
                project_title=titles.get(request.project_id),
                comment_id=request.comment_id,
                message=strip_marker(request.message),
                status=request.status,
                created_at=request.created_at,
                time_ago=time_ago(request.created_at, now),
                requester=summary,
                requester_stats=RequesterStats(
                    projects_count=project_counts.get(request.user_id, 0),
                    followers_count=followers,
                    collab_history_count=collab_counts.get(request.user_id, 0),
                    github_username=github_username,
                ),
            ))
        return items


# Singleton instance
collaboration_service = CollaborationService()
