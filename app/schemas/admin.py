from pydantic import EmailStr, Field
from typing import Optional, Dict

from app.models.user import Role
from app.schemas.base import CamelModel


# ==================== Dashboard Schemas ====================

class DashboardStats(CamelModel):
    """Dashboard KPI statistics"""
    total_users: int
    verified_users: int
    total_projects: int

    pending_applications: int
    approved_applications: int
    rejected_applications: int

    total_requests: int
    pending_requests: int
    submitted_requests: int

    verification_rate: float = 0.0  # % of users who are verified


# ==================== User Management Schemas ====================

class SuspendUserRequest(CamelModel):
    reason: Optional[str] = None


class UserDeletionResponse(CamelModel):
    message: str
    deleted: Dict[str, int]


class AdminCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role = Role.ADMIN
