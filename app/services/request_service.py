"""
Request Service - funding and certificate requests

Status only moves forward: pending -> submitted. Resubmitting or reverting
a submitted request is refused; pending -> pending is accepted as a no-op.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from datetime import datetime
from typing import Optional, List, Tuple
import logging

from app.core.config import settings
from app.core.exceptions import (
    ValidationError,
    InvalidIdentifierError,
    InvalidStatusError,
    RequestNotFoundError,
    IrreversibleTransitionError,
    AlreadySubmittedError,
)
from app.core.types import is_valid_uuid
from app.models.notification import NotificationKind
from app.models.request import (
    UserRequest,
    FundingRequest,
    CertificateRequest,
    RequestType,
    RequestStatus,
    ADMIN_REQUEST_STATUSES,
    ADMIN_REQUEST_TYPES,
)
from app.models.user import User
from app.schemas.notification import build_notification
from app.schemas.request import RequestCreate, AdminRequestResponse
from app.services.notification_service import notification_service

logger = logging.getLogger(__name__)


def status_change_message(request_type: str, status: str) -> str:
    return (
        f"Your {request_type} has been marked as '{status}'. We will contact you soon "
        "through your email address. Please check your email and respond promptly."
    )


class RequestService:
    """Service for funding / certificate requests"""

    # ==================== USER SIDE ====================

    async def create_request(
        self,
        db: AsyncSession,
        user: User,
        data: RequestCreate
    ) -> UserRequest:
        """
        Create a pending funding or certificate request and tell the admins.

        Funding needs a title and a positive amount; certificate needs a
        certificate type, description and link.
        """
        try:
            request_type = RequestType((data.type or "").strip().lower())
        except ValueError:
            request_type = None
        if request_type not in ADMIN_REQUEST_TYPES:
            raise ValidationError("Invalid request type. Allowed: funding | certificate", field="type")

        if request_type == RequestType.FUNDING:
            if not (data.title or "").strip():
                raise ValidationError("Title is required for funding requests", field="title")
            if data.amount is None or data.amount <= 0:
                raise ValidationError("Amount must be greater than zero", field="amount")
            request = FundingRequest(
                user_id=user.id,
                title=data.title.strip(),
                amount=data.amount,
                proposal_url=data.proposal_url,
                description=data.description,
            )
        else:
            missing = [
                name for name, value in (
                    ("certificateType", data.certificate_type),
                    ("description", data.description),
                    ("link", data.link),
                ) if not (value or "").strip()
            ]
            if missing:
                raise ValidationError(
                    f"Missing fields for certificate request: {', '.join(missing)}",
                    field=missing[0],
                )
            request = CertificateRequest(
                user_id=user.id,
                certificate_type=data.certificate_type.strip(),
                description=data.description.strip(),
                link=data.link.strip(),
            )

        request.status = RequestStatus.PENDING
        user_id, user_name = user.id, user.full_name or user.email
        db.add(request)
        await db.commit()
        await db.refresh(request)

        logger.info(f"{request_type.value.title()} request {request.id} created by {user_id}")

        await notification_service.notify_admins(db, build_notification(
            NotificationKind.REQUEST,
            title=f"New {request_type.value} request",
            message=f"New request for {request_type.value} from {user_name}",
            request_id=request.id,
            request_type=request_type.value,
            user_id=user_id,
        ))
        return request

    async def list_user_requests(self, db: AsyncSession, user_id: str) -> List[UserRequest]:
        result = await db.execute(
            select(UserRequest)
            .where(
                UserRequest.user_id == user_id,
                UserRequest.type.in_([t.value for t in ADMIN_REQUEST_TYPES]),
            )
            .order_by(UserRequest.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== ADMIN SIDE ====================

    async def list_all(
        self,
        db: AsyncSession,
        request_type: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[AdminRequestResponse]:
        """Funding/certificate requests newest first, joined with requester name/email"""
        types = [t.value for t in ADMIN_REQUEST_TYPES]
        if request_type:
            if request_type not in types:
                raise ValidationError("Invalid request type. Allowed: funding | certificate", field="type")
            types = [request_type]

        result = await db.execute(
            select(UserRequest, User)
            .outerjoin(User, User.id == UserRequest.user_id)
            .where(UserRequest.type.in_(types))
            .order_by(UserRequest.created_at.desc())
            .limit(limit or settings.ADMIN_LIST_LIMIT)
        )
        items = []
        for request, user in result.all():
            item = AdminRequestResponse.model_validate(request)
            if user:
                item = item.model_copy(update={"user_name": user.full_name, "user_email": user.email})
            items.append(item)
        return items

    async def get_admin_request(self, db: AsyncSession, request_id: str) -> UserRequest:
        if not is_valid_uuid(request_id):
            raise InvalidIdentifierError("request")
        request = await db.get(UserRequest, request_id)
        if not request or request.request_type not in ADMIN_REQUEST_TYPES:
            raise RequestNotFoundError(request_id)
        return request

    async def update_status(
        self,
        db: AsyncSession,
        request_id: str,
        new_status: str
    ) -> Tuple[UserRequest, bool]:
        """
        Apply an admin status change.

        pending -> submitted   ok, requester notified
        pending -> pending     no-op (changed is False)
        submitted -> pending   IrreversibleTransitionError
        submitted -> submitted AlreadySubmittedError
        """
        try:
            target = RequestStatus((new_status or "").strip().lower())
        except ValueError:
            target = None
        if target not in ADMIN_REQUEST_STATUSES:
            raise InvalidStatusError([s.value for s in ADMIN_REQUEST_STATUSES])

        request = await self.get_admin_request(db, request_id)

        if request.status == RequestStatus.SUBMITTED:
            if target == RequestStatus.PENDING:
                raise IrreversibleTransitionError()
            raise AlreadySubmittedError()
        if target == request.status:
            return request, False

        # Only one of two racing submits matches status='pending'
        request_id = request.id
        result = await db.execute(
            update(UserRequest)
            .where(UserRequest.id == request_id, UserRequest.status == RequestStatus.PENDING)
            .values(status=target, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise AlreadySubmittedError()
        await db.commit()
        await db.refresh(request)

        logger.info(f"Request {request.id} marked {target.value}")

        await notification_service.emit(db, request.user_id, build_notification(
            NotificationKind.REQUEST_STATUS,
            title="Request status updated",
            message=status_change_message(request.type, target.value),
            request_id=request.id,
            request_type=request.type,
            status=target.value,
        ))
        return request, True

    async def bulk_submit(self, db: AsyncSession, request_ids: List[str]) -> int:
        """
        Mark every listed pending request as submitted in one update.

        Malformed ids are dropped; already-submitted requests are skipped and
        not notified again. Returns the number of requests updated.
        """
        valid_ids = list(dict.fromkeys(str(i) for i in request_ids if is_valid_uuid(i)))
        if not valid_ids:
            raise ValidationError("No valid requestIds provided", field="requestIds")

        result = await db.execute(
            select(UserRequest).where(
                UserRequest.id.in_(valid_ids),
                UserRequest.type.in_([t.value for t in ADMIN_REQUEST_TYPES]),
                UserRequest.status != RequestStatus.SUBMITTED,
            )
        )
        to_submit = [(r.id, r.user_id, r.type) for r in result.scalars()]
        if not to_submit:
            return 0

        await db.execute(
            update(UserRequest)
            .where(
                UserRequest.id.in_([request_id for request_id, _, _ in to_submit]),
                UserRequest.status != RequestStatus.SUBMITTED,
            )
            .values(status=RequestStatus.SUBMITTED, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await db.commit()

        logger.info(f"Bulk-submitted {len(to_submit)} request(s)")

        for request_id, user_id, request_type in to_submit:
            await notification_service.emit(db, user_id, build_notification(
                NotificationKind.REQUEST_STATUS,
                title="Request status updated",
                message=status_change_message(request_type, RequestStatus.SUBMITTED.value),
                request_id=request_id,
                request_type=request_type,
                status=RequestStatus.SUBMITTED.value,
            ))
        return len(to_submit)


# Singleton instance
request_service = RequestService()
