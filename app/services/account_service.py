"""
Account Service - registration, login and admin account creation

Regular members live in `users`, admins in `admins`. Both are looked up by
email on login and by id when a token is presented.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select
from typing import Optional, Union
import logging

from app.core.exceptions import AuthenticationError, ConflictError, ValidationError
from app.core.security import hash_password, verify_password, create_access_token
from app.core.types import is_valid_uuid
from app.models.user import User, Admin, Role
from app.schemas.admin import AdminCreate
from app.schemas.auth import UserRegister

logger = logging.getLogger(__name__)

Account = Union[User, Admin]


class AccountService:

    async def get_account(self, db: AsyncSession, account_id: str) -> Optional[Account]:
        """Resolve a token subject: users first, then admins"""
        if not is_valid_uuid(account_id):
            return None
        user = await db.get(User, account_id)
        if user:
            return user
        return await db.get(Admin, account_id)

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[Account]:
        email = email.strip().lower()
        user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if user:
            return user
        return (await db.execute(select(Admin).where(Admin.email == email))).scalar_one_or_none()

    def issue_token(self, account: Account) -> str:
        return create_access_token(account.id, account.email, account.role.value)

    async def register(self, db: AsyncSession, data: UserRegister) -> User:
        if await self.find_by_email(db, data.email):
            raise ValidationError("User already exists", field="email")

        user = User(
            email=data.email.strip().lower(),
            hashed_password=hash_password(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            role=Role.USER,
            verified=False,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValidationError("User already exists", field="email")
        await db.refresh(user)

        logger.info(f"Registered user {user.id}")
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> Account:
        account = await self.find_by_email(db, email)
        if not account or not verify_password(password, account.hashed_password):
            raise AuthenticationError("Invalid credentials")
        return account

    async def create_admin(self, db: AsyncSession, data: AdminCreate) -> Admin:
        """Admin and superadmin accounts start out verified"""
        if data.role not in (Role.ADMIN, Role.SUPERADMIN):
            raise ValidationError("Role must be admin or superadmin", field="role")
        if await self.find_by_email(db, data.email):
            raise ConflictError("An account with this email already exists", code="ACCOUNT_EXISTS")

        admin = Admin(
            email=data.email.strip().lower(),
            hashed_password=hash_password(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            role=data.role,
            verified=True,
        )
        db.add(admin)
        await db.commit()
        await db.refresh(admin)

        logger.info(f"Created {admin.role.value} account {admin.id}")
        return admin


# Singleton instance
account_service = AccountService()
