from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, IdList, generate_uuid, enum_values


class Role(str, enum.Enum):
    """Account roles"""
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def parse(cls, value) -> "Role":
        """Case-insensitive lookup; raises ValueError for unknown roles"""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class Capability(str, enum.Enum):
    """What a role is allowed to do"""
    MODERATE = "moderate"            # review applications and requests, manage users
    MANAGE_ADMINS = "manage_admins"  # create admin accounts


ROLE_CAPABILITIES = {
    Role.USER: frozenset(),
    Role.ADMIN: frozenset({Capability.MODERATE}),
    Role.SUPERADMIN: frozenset({Capability.MODERATE, Capability.MANAGE_ADMINS}),
}


def role_has(role, capability: Capability) -> bool:
    """The single authorization check used by every admin surface"""
    try:
        role = Role.parse(role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES[role]


def role_column(default: Role) -> Column:
    return Column(
        SQLEnum(Role, values_callable=enum_values, native_enum=False, length=20, name="account_role"),
        default=default,
        nullable=False,
    )


class AccountMixin:
    """Columns shared by regular users and admin accounts"""

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)  # None for OAuth-only accounts
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    avatar_url = Column(Text, nullable=True)
    verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def is_admin(self) -> bool:
        return role_has(self.role, Capability.MODERATE)


class User(AccountMixin, Base):
    """Portal member (innovator)"""
    __tablename__ = "users"

    role = role_column(Role.USER)

    # OAuth / GitHub linking
    google_id = Column(String(255), unique=True, nullable=True)
    github_username = Column(String(100), nullable=True)
    github_url = Column(String(500), nullable=True)
    github_stats = Column(JSON, nullable=True)

    # Social graph (ids of other users)
    followers = Column(IdList, default=list, nullable=False)
    following = Column(IdList, default=list, nullable=False)

    # Suspension (set on rejection or by an admin)
    suspended_at = Column(DateTime, nullable=True)
    suspension_reason = Column(Text, nullable=True)

    projects = relationship("Project", back_populates="author", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email}>"


class Admin(AccountMixin, Base):
    """Admin account, stored apart from regular users"""
    __tablename__ = "admins"

    role = role_column(Role.ADMIN)

    def __repr__(self):
        return f"<Admin {self.email} ({self.role.value})>"
