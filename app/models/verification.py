"""Innovator verification applications"""
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Text, ForeignKey, JSON, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, enum_values


class ApplicationType(str, enum.Enum):
    INDIVIDUAL = "individual"
    TEAM = "team"


class Sector(str, enum.Enum):
    EDUCATION = "Education"
    TECHNOLOGY = "Technology"
    AGRICULTURE = "Agriculture"
    HEALTH = "Health"


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses that stop the same user from submitting again
BLOCKING_STATUSES = (
    ApplicationStatus.PENDING,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.APPROVED,
)

# Statuses an admin decision can still move
REVIEWABLE_STATUSES = (ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW)

_BLOCKING_SQL = "status IN ({})".format(", ".join(f"'{s.value}'" for s in BLOCKING_STATUSES))


def _enum_column(enum_cls, name: str, default):
    return Column(
        SQLEnum(enum_cls, values_callable=enum_values, native_enum=False, length=20, name=name),
        default=default,
        nullable=False,
    )


class VerificationApplication(Base):
    """A user's request to be recognised as a verified innovator"""
    __tablename__ = "verification_applications"

    __table_args__ = (
        Index('ix_verification_applications_status', 'status'),
        Index('ix_verification_applications_user_id', 'user_id'),
        # At most one pending/under-review/approved application per user
        Index(
            'uq_verification_applications_active_user',
            'user_id',
            unique=True,
            sqlite_where=text(_BLOCKING_SQL),
            postgresql_where=text(_BLOCKING_SQL),
        ),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    type = _enum_column(ApplicationType, "application_type", ApplicationType.INDIVIDUAL)
    sector = _enum_column(Sector, "application_sector", None)
    project_title = Column(String(255), nullable=True)
    project_description = Column(Text, nullable=True)
    github_url = Column(String(500), nullable=True)
    github_username = Column(String(100), nullable=True)
    team_members = Column(JSON, default=list, nullable=False)
    duration = Column(String(50), nullable=False, default="1")

    # Snapshot of the applicant at submission time, for the reviewer
    github_stats = Column(JSON, nullable=True)
    user_email = Column(String(255), nullable=True)
    user_name = Column(String(255), nullable=True)

    status = _enum_column(ApplicationStatus, "application_status", ApplicationStatus.PENDING)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(GUID, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(GUID, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def __repr__(self):
        return f"<VerificationApplication {self.id} {self.status.value}>"
