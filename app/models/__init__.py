# Re-export all models for convenient imports
from app.models.user import User, Admin, Role, Capability, role_has
from app.models.project import Project, ProjectComment
from app.models.verification import VerificationApplication, ApplicationStatus, ApplicationType, Sector
from app.models.request import (
    UserRequest,
    CollaborationRequest,
    FundingRequest,
    CertificateRequest,
    RequestType,
    RequestStatus,
)
from app.models.notification import Notification, NotificationKind

__all__ = [
    # Accounts
    "User",
    "Admin",
    "Role",
    "Capability",
    "role_has",
    # Projects
    "Project",
    "ProjectComment",
    # Verification
    "VerificationApplication",
    "ApplicationStatus",
    "ApplicationType",
    "Sector",
    # Requests
    "UserRequest",
    "CollaborationRequest",
    "FundingRequest",
    "CertificateRequest",
    "RequestType",
    "RequestStatus",
    # Notifications
    "Notification",
    "NotificationKind",
]
