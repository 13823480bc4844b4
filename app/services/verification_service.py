"""
Verification Service - innovator verification applications

Handles:
- Submission (one pending/approved application per user)
- Admin approval / rejection and the user's `verified` flag
- Eligibility checks and the admin review queue
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, update
from datetime import datetime
from typing import Optional, List, Tuple
import logging

from app.core.config import settings
from app.core.exceptions import (
    UserNotFoundError,
    ApplicationNotFoundError,
    InvalidIdentifierError,
    InvalidSectorError,
    InvalidStatusError,
    DuplicateApplicationError,
    AlreadyProcessedError,
)
from app.core.types import is_valid_uuid
from app.models.notification import NotificationKind
from app.models.user import User
from app.models.verification import (
    VerificationApplication,
    ApplicationStatus,
    Sector,
    BLOCKING_STATUSES,
    REVIEWABLE_STATUSES,
)
from app.schemas.notification import build_notification
from app.schemas.verification import ApplicationInfo, ApplicationResponse
from app.services.notification_service import notification_service

logger = logging.getLogger(__name__)


def parse_sector(value: str) -> Sector:
    """Match a sector name case-insensitively against the closed set"""
    normalized = (value or "").strip().lower()
    for sector in Sector:
        if sector.value.lower() == normalized:
            return sector
    raise InvalidSectorError(value, [s.value for s in Sector])


class VerificationService:
    """Service for the verification application lifecycle"""

    # ==================== LOOKUPS ====================

    async def get_user(self, db: AsyncSession, user_id: str) -> User:
        if not is_valid_uuid(user_id):
            raise UserNotFoundError(user_id)
        user = await db.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    async def get_application(self, db: AsyncSession, application_id: str) -> VerificationApplication:
        if not is_valid_uuid(application_id):
            raise InvalidIdentifierError("application")
        application = await db.get(VerificationApplication, application_id)
        if not application:
            raise ApplicationNotFoundError(application_id)
        return application

    async def find_blocking_application(
        self,
        db: AsyncSession,
        user_id: str
    ) -> Optional[VerificationApplication]:
        """The user's pending / under review / approved application, if any"""
        result = await db.execute(
            select(VerificationApplication)
            .where(
                VerificationApplication.user_id == user_id,
                VerificationApplication.status.in_(BLOCKING_STATUSES),
            )
            .order_by(VerificationApplication.submitted_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ==================== SUBMISSION ====================

    async def check_eligibility(self, db: AsyncSession, user_id: str) -> dict:
        """isVerified / hasPending / canApply for the apply button"""
        user = await self.get_user(db, user_id)
        if user.verified:
            return {"is_verified": True, "has_pending": False, "can_apply": False}

        blocking = await self.find_blocking_application(db, user.id)
        has_pending = blocking is not None
        return {"is_verified": False, "has_pending": has_pending, "can_apply": not has_pending}

    async def submit_application(
        self,
        db: AsyncSession,
        user_id: str,
        info: ApplicationInfo
    ) -> VerificationApplication:
        """
        Create a pending application for the user.

        Raises:
            UserNotFoundError: unknown user
            DuplicateApplicationError: user already verified, or has a pending/approved application
            InvalidSectorError: sector outside the allowed set
        """
        user = await self.get_user(db, user_id)
        if user.verified:
            raise DuplicateApplicationError(ApplicationStatus.APPROVED.value)

        sector = parse_sector(info.sector)

        existing = await self.find_blocking_application(db, user.id)
        if existing:
            raise DuplicateApplicationError(existing.status.value)

        if info.duration:
            duration = str(info.duration)
        elif info.team_size:
            duration = str(info.team_size)
        else:
            duration = "1"

        github_username = (info.github_username or "").strip() or None
        applicant_id = user.id
        applicant_name = user.full_name or user.email

        application = VerificationApplication(
            user_id=applicant_id,
            type=info.type,
            sector=sector,
            project_title=info.project_title.strip(),
            project_description=info.project_description,
            github_url=info.github_url,
            github_username=github_username,
            team_members=list(info.team_members),
            duration=duration,
            github_stats=dict(user.github_stats) if user.github_stats else None,
            user_email=user.email,
            user_name=applicant_name,
            status=ApplicationStatus.PENDING,
            submitted_at=datetime.utcnow(),
        )
        db.add(application)
        try:
            await db.commit()
        except IntegrityError:
            # A concurrent submission won the partial unique index
            await db.rollback()
            existing = await self.find_blocking_application(db, applicant_id)
            raise DuplicateApplicationError(
                existing.status.value if existing else ApplicationStatus.PENDING.value
            )
        await db.refresh(application)

        logger.info(f"Verification application {application.id} submitted by user {applicant_id}")

        await notification_service.emit(db, applicant_id, build_notification(
            NotificationKind.APPLICATION_UPDATE,
            title="Application Pending",
            message=(
                "Your verification is under review. You will be notified once "
                "the admin reviews your application."
            ),
            application_id=application.id,
            status=ApplicationStatus.PENDING.value,
        ))
        await notification_service.notify_admins(db, build_notification(
            NotificationKind.APPLICATION,
            title="Verification application",
            message=f"New verification application from {applicant_name}",
            application_id=application.id,
            user_id=applicant_id,
            username=applicant_name,
        ))

        return application

    # ==================== REVIEW ====================

    async def _review(self, db: AsyncSession, application_id: str, from_statuses, **values) -> bool:
        """
        Write a review decision only while the application is in one of
        `from_statuses`. Returns False (after rolling back) when a concurrent
        review changed the status first.
        """
        result = await db.execute(
            update(VerificationApplication)
            .where(
                VerificationApplication.id == application_id,
                VerificationApplication.status.in_(from_statuses),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            return False
        return True

    async def approve_application(
        self,
        db: AsyncSession,
        application_id: str,
        admin_id: str
    ) -> Tuple[VerificationApplication, bool]:
        """
        Approve an application and verify its owner.

        Returns (application, changed). Approving an approved application is a
        no-op: changed is False and nobody is notified again.
        """
        application = await self.get_application(db, application_id)

        if application.status == ApplicationStatus.APPROVED:
            logger.info(f"Application {application.id} already approved; nothing to do")
            return application, False
        if application.status == ApplicationStatus.REJECTED:
            raise AlreadyProcessedError(application.status.value)

        application_id, user_id = application.id, application.user_id
        github_username = application.github_username
        now = datetime.utcnow()
        claimed = await self._review(
            db, application_id, REVIEWABLE_STATUSES,
            status=ApplicationStatus.APPROVED,
            approved_at=now,
            approved_by=admin_id,
            reviewed_at=now,
            reviewed_by=admin_id,
        )
        if not claimed:
            # Another review landed first
            await db.refresh(application)
            if application.status == ApplicationStatus.APPROVED:
                logger.info(f"Application {application_id} approved concurrently; nothing to do")
                return application, False
            raise AlreadyProcessedError(application.status.value)

        user = await db.get(User, user_id)
        if user:
            user.verified = True
            if github_username:
                user.github_username = github_username
                user.github_url = f"https://github.com/{github_username}"
                stats = dict(user.github_stats or {})
                stats["username"] = github_username
                user.github_stats = stats

        await db.commit()
        await db.refresh(application)

        logger.info(f"Application {application.id} approved by {admin_id}")

        await notification_service.emit(db, application.user_id, build_notification(
            NotificationKind.APPLICATION_UPDATE,
            title="Application Approved!",
            message=(
                "Congratulations! Your innovator application has been approved. You can now "
                "post projects and participate in all platform features."
            ),
            application_id=application.id,
            status=ApplicationStatus.APPROVED.value,
        ))
        return application, True

    async def reject_application(
        self,
        db: AsyncSession,
        application_id: str,
        reason: Optional[str],
        admin_id: str
    ) -> VerificationApplication:
        """
        Reject an application and revoke the owner's verified flag.

        The rejected record no longer blocks a new submission.
        """
        application = await self.get_application(db, application_id)
        if application.status == ApplicationStatus.REJECTED:
            raise AlreadyProcessedError(application.status.value)

        reason = (reason or "").strip() or None
        shown_reason = reason or "Rejected by admin"

        application_id, user_id = application.id, application.user_id
        now = datetime.utcnow()
        claimed = await self._review(
            db, application_id, BLOCKING_STATUSES,
            status=ApplicationStatus.REJECTED,
            rejected_at=now,
            rejection_reason=reason,
            reviewed_at=now,
            reviewed_by=admin_id,
        )
        if not claimed:
            await db.refresh(application)
            raise AlreadyProcessedError(application.status.value)

        user = await db.get(User, user_id)
        if user:
            user.verified = False
            user.suspended_at = now
            user.suspension_reason = shown_reason

        await db.commit()
        await db.refresh(application)

        logger.info(f"Application {application.id} rejected by {admin_id}: {shown_reason}")

        await notification_service.emit(db, application.user_id, build_notification(
            NotificationKind.APPLICATION_UPDATE,
            title="Application Update",
            message=(
                "Your innovator application requires some improvements. "
                f"Reason: {shown_reason}. Please update your application and resubmit."
            ),
            application_id=application.id,
            status=ApplicationStatus.REJECTED.value,
            reason=reason,
        ))
        return application

    # ==================== ADMIN QUEUE ====================

    async def list_applications(
        self,
        db: AsyncSession,
        status: Optional[str] = ApplicationStatus.PENDING.value,
        limit: Optional[int] = None
    ) -> List[ApplicationResponse]:
        """Applications newest first, joined with the applicant's current profile"""
        query = select(VerificationApplication, User).outerjoin(
            User, User.id == VerificationApplication.user_id
        )
        if status and status != "all":
            try:
                wanted = ApplicationStatus(status)
            except ValueError:
                raise InvalidStatusError([s.value for s in ApplicationStatus] + ["all"])
            query = query.where(VerificationApplication.status == wanted)

        query = query.order_by(VerificationApplication.submitted_at.desc()).limit(
            limit or settings.ADMIN_LIST_LIMIT
        )
        result = await db.execute(query)

        applications = []
        for application, user in result.all():
            item = ApplicationResponse.model_validate(application)
            if user:
                item = item.model_copy(update={
                    "user_first_name": user.first_name,
                    "user_email": user.email,
                    "user_avatar": user.avatar_url,
                    "github_stats": user.github_stats or application.github_stats,
                })
            applications.append(item)
        return applications


# Singleton instance
verification_service = VerificationService()
