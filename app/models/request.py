"""Structured requests: collaboration, funding and certificate (single table, `type` discriminator)"""
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Text, Float, Index, text
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, enum_values


class RequestType(str, enum.Enum):
    COLLABORATION = "collaboration"
    FUNDING = "funding"
    CERTIFICATE = "certificate"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"   # funding / certificate only
    ACCEPTED = "accepted"     # collaboration only
    REJECTED = "rejected"     # collaboration only


# Statuses an admin may set on funding/certificate requests
ADMIN_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.SUBMITTED)
ADMIN_REQUEST_TYPES = (RequestType.FUNDING, RequestType.CERTIFICATE)

_COLLABORATION_SQL = "type = 'collaboration'"


class UserRequest(Base):
    __tablename__ = "requests"

    __table_args__ = (
        Index('ix_requests_user_id', 'user_id'),
        Index('ix_requests_owner_id', 'owner_id'),
        Index('ix_requests_type_status', 'type', 'status'),
        # One collaboration request per (project, requester)
        Index(
            'uq_requests_collaboration_pair',
            'project_id',
            'user_id',
            unique=True,
            sqlite_where=text(_COLLABORATION_SQL),
            postgresql_where=text(_COLLABORATION_SQL),
        ),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    type = Column(String(20), nullable=False)
    user_id = Column(GUID, nullable=False)  # requester / applicant
    status = Column(
        SQLEnum(RequestStatus, values_callable=enum_values, native_enum=False, length=20, name="request_status"),
        default=RequestStatus.PENDING,
        nullable=False,
    )

    # collaboration
    owner_id = Column(GUID, nullable=True)
    project_id = Column(GUID, nullable=True)
    comment_id = Column(String(64), nullable=True)
    message = Column(Text, nullable=True)

    # funding
    title = Column(String(255), nullable=True)
    amount = Column(Float, nullable=True)
    proposal_url = Column(String(500), nullable=True)

    # certificate
    certificate_type = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    link = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {
        "polymorphic_on": type,
        "polymorphic_identity": "request",
    }

    @property
    def request_type(self) -> RequestType:
        return RequestType(self.type)

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} {self.status.value}>"


class CollaborationRequest(UserRequest):
    __mapper_args__ = {"polymorphic_identity": RequestType.COLLABORATION.value}

    @property
    def requester_id(self) -> str:
        return self.user_id


class FundingRequest(UserRequest):
    __mapper_args__ = {"polymorphic_identity": RequestType.FUNDING.value}


class CertificateRequest(UserRequest):
    __mapper_args__ = {"polymorphic_identity": RequestType.CERTIFICATE.value}


REQUEST_CLASSES = {
    RequestType.COLLABORATION: CollaborationRequest,
    RequestType.FUNDING: FundingRequest,
    RequestType.CERTIFICATE: CertificateRequest,
}
