"""
Notification payloads.

Every NotificationKind has exactly one payload model; build_notification()
refuses a payload that does not match its kind, so a malformed notification
fails where it is created instead of reaching a user's feed.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Type
from datetime import datetime

from app.models.notification import NotificationKind
from app.schemas.base import CamelModel


class _Payload(CamelModel):
    model_config = ConfigDict(extra="forbid")


class ApplicationSubmittedPayload(_Payload):
    application_id: str
    user_id: str
    username: str


class ApplicationUpdatePayload(_Payload):
    application_id: str
    status: str
    reason: Optional[str] = None


class CollabRequestPayload(_Payload):
    project_id: str
    comment_id: str
    from_user_id: str


class CollabResponsePayload(_Payload):
    project_id: str
    comment_id: str
    status: str


class RequestCreatedPayload(_Payload):
    request_id: str
    request_type: str
    user_id: str


class RequestStatusPayload(_Payload):
    request_id: str
    request_type: str
    status: str


# Payloads of the reserved kinds; no workflow here emits them
class EventReminderPayload(_Payload):
    event_id: Optional[str] = None
    starts_at: Optional[datetime] = None


class AnnouncementPayload(_Payload):
    link: Optional[str] = None


PAYLOAD_MODELS: Dict[NotificationKind, Type[_Payload]] = {
    NotificationKind.APPLICATION: ApplicationSubmittedPayload,
    NotificationKind.APPLICATION_UPDATE: ApplicationUpdatePayload,
    NotificationKind.COLLAB_REQUEST: CollabRequestPayload,
    NotificationKind.COLLAB_RESPONSE: CollabResponsePayload,
    NotificationKind.REQUEST: RequestCreatedPayload,
    NotificationKind.REQUEST_STATUS: RequestStatusPayload,
    NotificationKind.EVENT_REMINDER: EventReminderPayload,
    NotificationKind.SYSTEM_ANNOUNCEMENT: AnnouncementPayload,
}


class NotificationMessage(BaseModel):
    """A validated notification, ready to be stored for one or more recipients"""
    kind: NotificationKind
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


def build_notification(kind: NotificationKind, title: str, message: str, **payload) -> NotificationMessage:
    """Validate payload against the kind's model; raises pydantic.ValidationError on mismatch"""
    kind = NotificationKind(kind)
    model = PAYLOAD_MODELS[kind](**payload)
    return NotificationMessage(
        kind=kind,
        title=title,
        message=message,
        data=model.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


# ==================== API Schemas ====================

class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    message: str
    read: bool
    data: Optional[Dict[str, Any]] = None
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: List[NotificationResponse]
    unread_count: int = 0


class ReadAllResponse(CamelModel):
    message: str
    updated: int
