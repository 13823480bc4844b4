from sqlalchemy import Column, String, DateTime, Boolean, Text, JSON, Index
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class NotificationKind(str, enum.Enum):
    """Every notification the portal can emit"""
    APPLICATION = "application"                  # admin fan-out: new verification application
    APPLICATION_UPDATE = "application_update"    # applicant: pending / approved / rejected
    COLLAB_REQUEST = "collab-request"            # project owner: someone wants to join
    COLLAB_RESPONSE = "collab-response"          # requester: accepted / rejected
    REQUEST = "request"                          # admin fan-out: new funding/certificate request
    REQUEST_STATUS = "request-status"            # requester: funding/certificate status change
    # Reserved: written by event moderation, which is not part of this service.
    # Kept so those rows validate and list like the rest of the feed.
    EVENT_REMINDER = "event_reminder"
    SYSTEM_ANNOUNCEMENT = "system_announcement"


# Kinds hidden from the admin notification feed
COLLABORATION_KINDS = (NotificationKind.COLLAB_REQUEST, NotificationKind.COLLAB_RESPONSE)


class Notification(Base):
    __tablename__ = "notifications"

    __table_args__ = (
        Index('ix_notifications_user_created', 'user_id', 'created_at'),
        Index('ix_notifications_user_read', 'user_id', 'read'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, nullable=False)  # users.id or admins.id
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Notification {self.type} -> {self.user_id}>"
