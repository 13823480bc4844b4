"""
Admin Service - dashboard statistics and user management

Handles:
- Dashboard counts
- Suspension
- Cascading account deletion
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, or_, cast, String
from datetime import datetime
from typing import Optional, Dict
import logging

from app.core.exceptions import UserNotFoundError
from app.core.types import is_valid_uuid
from app.models.notification import Notification
from app.models.project import Project, ProjectComment
from app.models.request import UserRequest, RequestStatus, ADMIN_REQUEST_TYPES
from app.models.user import User
from app.models.verification import VerificationApplication, ApplicationStatus
from app.schemas.admin import DashboardStats

logger = logging.getLogger(__name__)


def _json_mentions(column, value: str):
    """Coarse SQL pre-filter for JSON id lists; callers re-check in Python"""
    return cast(column, String).contains(value)


class AdminService:

    async def get_user(self, db: AsyncSession, user_id: str) -> User:
        if not is_valid_uuid(user_id):
            raise UserNotFoundError(user_id)
        user = await db.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    # ==================== DASHBOARD ====================

    async def dashboard_stats(self, db: AsyncSession) -> DashboardStats:
        total_users = await db.scalar(select(func.count(User.id))) or 0
        verified_users = await db.scalar(
            select(func.count(User.id)).where(User.verified.is_(True))
        ) or 0
        total_projects = await db.scalar(select(func.count(Project.id))) or 0

        application_counts = dict((await db.execute(
            select(VerificationApplication.status, func.count(VerificationApplication.id))
            .group_by(VerificationApplication.status)
        )).all())

        request_counts = dict((await db.execute(
            select(UserRequest.status, func.count(UserRequest.id))
            .where(UserRequest.type.in_([t.value for t in ADMIN_REQUEST_TYPES]))
            .group_by(UserRequest.status)
        )).all())

        return DashboardStats(
            total_users=total_users,
            verified_users=verified_users,
            total_projects=total_projects,
            pending_applications=application_counts.get(ApplicationStatus.PENDING, 0),
            approved_applications=application_counts.get(ApplicationStatus.APPROVED, 0),
            rejected_applications=application_counts.get(ApplicationStatus.REJECTED, 0),
            total_requests=sum(request_counts.values()),
            pending_requests=request_counts.get(RequestStatus.PENDING, 0),
            submitted_requests=request_counts.get(RequestStatus.SUBMITTED, 0),
            verification_rate=round(verified_users / total_users * 100, 1) if total_users else 0.0,
        )

    # ==================== USER MANAGEMENT ====================

    async def suspend_user(
        self,
        db: AsyncSession,
        user_id: str,
        reason: Optional[str],
        admin_id: str
    ) -> User:
        user = await self.get_user(db, user_id)
        user.verified = False
        user.suspended_at = datetime.utcnow()
        user.suspension_reason = (reason or "").strip() or "Suspended by admin"
        await db.commit()

        logger.info(f"User {user.id} suspended by {admin_id}: {user.suspension_reason}")
        return user

    async def delete_user_cascade(self, db: AsyncSession, user_id: str, admin_id: str) -> Dict[str, int]:
        """
        Remove a user and everything that belongs to them.

        Deletes their projects (with the comments and collaboration requests on
        them), their comments, likes, follows and collaborator entries on other
        projects, their follower links, requests, verification applications and
        notifications. Returns row counts per kind.
        """
        user = await self.get_user(db, user_id)
        uid = user.id
        counts: Dict[str, int] = {}

        own_project_ids = list((await db.execute(
            select(Project.id).where(Project.author_id == uid)
        )).scalars())

        if own_project_ids:
            result = await db.execute(
                delete(ProjectComment).where(ProjectComment.project_id.in_(own_project_ids))
            )
            counts["project_comments"] = result.rowcount or 0
            result = await db.execute(
                delete(UserRequest).where(UserRequest.project_id.in_(own_project_ids))
            )
            counts["project_requests"] = result.rowcount or 0
            result = await db.execute(delete(Project).where(Project.id.in_(own_project_ids)))
            counts["projects"] = result.rowcount or 0

        result = await db.execute(delete(ProjectComment).where(ProjectComment.user_id == uid))
        counts["comments"] = result.rowcount or 0

        # Likes, follows and collaborator slots on other people's projects
        touched_projects = 0
        others = (await db.execute(
            select(Project).where(or_(
                _json_mentions(Project.likes, uid),
                _json_mentions(Project.follows, uid),
                _json_mentions(Project.collaborator_ids, uid),
            ))
        )).scalars().all()
        for project in others:
            changed = False
            for attr in ("likes", "follows", "collaborator_ids"):
                ids = list(getattr(project, attr) or [])
                if uid in ids:
                    setattr(project, attr, [i for i in ids if i != uid])
                    changed = True
            if changed:
                project.collaborator_count = len(set(project.collaborator_ids or []))
                touched_projects += 1
        counts["projects_updated"] = touched_projects

        # Follower graph
        related = (await db.execute(
            select(User).where(
                User.id != uid,
                or_(_json_mentions(User.followers, uid), _json_mentions(User.following, uid)),
            )
        )).scalars().all()
        for other in related:
            other.followers = [i for i in (other.followers or []) if i != uid]
            other.following = [i for i in (other.following or []) if i != uid]
        counts["users_updated"] = len(related)

        result = await db.execute(delete(UserRequest).where(UserRequest.user_id == uid))
        counts["requests"] = result.rowcount or 0
        result = await db.execute(
            delete(VerificationApplication).where(VerificationApplication.user_id == uid)
        )
        counts["verification_applications"] = result.rowcount or 0
        result = await db.execute(delete(Notification).where(Notification.user_id == uid))
        counts["notifications"] = result.rowcount or 0

        await db.execute(delete(User).where(User.id == uid))
        await db.commit()

        logger.info(f"User {uid} deleted by {admin_id}: {counts}")
        return counts


# Singleton instance
admin_service = AdminService()
