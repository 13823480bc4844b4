"""
Custom Exceptions for the Innovation Portal
===========================================

Workflow services raise these instead of HTTPException so the same rule
can be exercised from tests, scripts and the API. The API layer turns every
PortalError into a JSON response using its status_code (see app.main).

Usage:
    from app.core.exceptions import ApplicationNotFoundError, DuplicateApplicationError

    if not application:
        raise ApplicationNotFoundError(application_id)

    if existing is not None:
        raise DuplicateApplicationError(existing.status.value)
"""

from typing import Optional, Any, Dict


class PortalError(Exception):
    """Base exception for all portal errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PortalError):
    """Missing or invalid credentials"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(PortalError):
    """Actor not allowed to perform this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


class NotResourceOwnerError(AuthorizationError):
    def __init__(self, message: str = "Only the project owner can do this"):
        super().__init__(message)
        self.code = "NOT_RESOURCE_OWNER"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PortalError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class ProjectNotFoundError(ResourceNotFoundError):
    def __init__(self, project_id: str):
        super().__init__("Project", project_id)


class ApplicationNotFoundError(ResourceNotFoundError):
    def __init__(self, application_id: str):
        super().__init__("Application", application_id)


class RequestNotFoundError(ResourceNotFoundError):
    def __init__(self, request_id: str):
        super().__init__("Request", request_id)


class CollaborationRequestNotFoundError(ResourceNotFoundError):
    def __init__(self, comment_id: str):
        super().__init__("Collaboration request", comment_id)


class NotificationNotFoundError(ResourceNotFoundError):
    def __init__(self, notification_id: str):
        super().__init__("Notification", notification_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(PortalError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidIdentifierError(ValidationError):
    def __init__(self, kind: str):
        super().__init__(f"Invalid {kind} ID")
        self.code = "INVALID_ID"


class InvalidSectorError(ValidationError):
    def __init__(self, sector: Any, allowed: list):
        super().__init__(
            f"Invalid sector. Allowed: {', '.join(allowed)}",
            field="sector"
        )
        self.code = "INVALID_SECTOR"
        self.details["allowed"] = allowed
        self.details["received"] = sector


class InvalidStatusError(ValidationError):
    def __init__(self, allowed: list):
        super().__init__(f"Invalid status. Allowed: {' | '.join(allowed)}", field="status")
        self.code = "INVALID_STATUS"


class InvalidActorError(ValidationError):
    def __init__(self, message: str):
        super().__init__(message)
        self.code = "INVALID_ACTOR"


# ============================================
# Conflict Errors (state already moved on)
# ============================================

class ConflictError(PortalError):
    """The request conflicts with the current state of a resource"""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class DuplicateApplicationError(ConflictError):
    def __init__(self, status: str):
        if status == "approved":
            message = "You are already verified."
        else:
            message = "You already have a pending application."
        super().__init__(message, code="DUPLICATE_APPLICATION", details={"status": status})


class DuplicateRequestError(ConflictError):
    def __init__(self, status: str, project_title: Optional[str]):
        super().__init__(
            "You have already requested to collaborate on this project.",
            code="DUPLICATE_REQUEST",
            details={"status": status, "projectTitle": project_title}
        )


class AlreadyProcessedError(ConflictError):
    def __init__(self, status: str):
        super().__init__(
            "Request already processed",
            code="ALREADY_PROCESSED",
            details={"status": status}
        )


class IrreversibleTransitionError(ConflictError):
    """submitted -> pending on a funding/certificate request"""

    status_code = 400

    def __init__(self):
        super().__init__(
            "Submitted requests can't be reverted to pending",
            code="IRREVERSIBLE_TRANSITION",
            details={"status": "submitted"}
        )


class AlreadySubmittedError(ConflictError):
    status_code = 400

    def __init__(self):
        super().__init__(
            "Request is already submitted",
            code="ALREADY_SUBMITTED",
            details={"status": "submitted"}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: PortalError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "detail": error.message,
        "code": error.code,
        **error.details
    }
