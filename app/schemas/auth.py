from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime

from app.models.user import Role
from app.schemas.base import CamelModel


class UserRegister(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class AccountResponse(CamelModel):
    """Public view of a user or admin account"""
    id: str
    email: str
    first_name: str
    last_name: str
    role: Role
    verified: bool
    avatar_url: Optional[str] = None
    github_username: Optional[str] = None
    github_url: Optional[str] = None
    created_at: datetime


class TokenResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    user: AccountResponse
