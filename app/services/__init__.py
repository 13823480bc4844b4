from app.services.notification_service import NotificationService, notification_service
from app.services.account_service import AccountService, account_service
from app.services.verification_service import VerificationService, verification_service
from app.services.collaboration_service import CollaborationService, collaboration_service
from app.services.request_service import RequestService, request_service
from app.services.admin_service import AdminService, admin_service

__all__ = [
    "NotificationService",
    "notification_service",
    "AccountService",
    "account_service",
    "VerificationService",
    "verification_service",
    "CollaborationService",
    "collaboration_service",
    "RequestService",
    "request_service",
    "AdminService",
    "admin_service",
]
