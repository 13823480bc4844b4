from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Union

from app.core.database import get_db
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging_config import set_user_id
from app.core.security import read_access_token
from app.models.user import User, Admin, Capability, role_has
from app.services.account_service import account_service

# auto_error=False so a missing header is a 401 rather than Starlette's 403
security = HTTPBearer(auto_error=False)


async def get_current_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Union[User, Admin]:
    """Get the authenticated account (member or admin)"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    claims = read_access_token(credentials.credentials)

    account = await account_service.get_account(db, claims["sub"])
    if not account:
        raise AuthenticationError("User not found")

    account_id = str(account.id)
    set_user_id(account_id)
    # Read back by RequestContextMiddleware for the completion and audit lines
    request.state.user_id = account_id
    return account


async def get_current_user(
    account: Union[User, Admin] = Depends(get_current_account)
) -> User:
    """Get current authenticated member; admin accounts have no projects or requests"""
    if not isinstance(account, User):
        raise AuthorizationError("User account required")
    return account


def require_capability(capability: Capability, detail: str = "Admin access required"):
    """Dependency factory: the account's role must grant `capability`"""

    async def checker(
        account: Union[User, Admin] = Depends(get_current_account)
    ) -> Union[User, Admin]:
        if not role_has(account.role, capability):
            raise AuthorizationError(detail)
        return account

    return checker


get_current_admin = require_capability(Capability.MODERATE)
get_current_superadmin = require_capability(Capability.MANAGE_ADMINS, "Superadmin access required")
