from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Union

from app.core.database import get_db
from app.core.exceptions import PortalError
from app.core.logging_config import logger
from app.core.rate_limiter import limiter, LOGIN_LIMIT, REGISTER_LIMIT
from app.models.user import User, Admin
from app.modules.auth.dependencies import get_current_account
from app.schemas.auth import UserRegister, UserLogin, AccountResponse, TokenResponse
from app.services.account_service import account_service

router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register new user (rate limited: 3/min)"""
    client_ip = request.client.host if request.client else "unknown"

    try:
        user = await account_service.register(db, user_data)
    except PortalError as e:
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason=e.message,
            client_ip=client_ip
        )
        raise

    logger.log_auth_event(event="register", success=True, user_email=user.email, client_ip=client_ip)

    return TokenResponse(
        token=account_service.issue_token(user),
        user=AccountResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password; works for member and admin accounts (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"

    try:
        account = await account_service.authenticate(db, credentials.email, credentials.password)
    except PortalError as e:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason=e.message,
            client_ip=client_ip
        )
        raise

    logger.log_auth_event(
        event="login",
        success=True,
        user_email=account.email,
        client_ip=client_ip,
        user_role=account.role.value
    )

    return TokenResponse(
        token=account_service.issue_token(account),
        user=AccountResponse.model_validate(account),
    )


@router.get("/me", response_model=AccountResponse)
async def get_me(
    current_account: Union[User, Admin] = Depends(get_current_account)
):
    """Get the authenticated account"""
    return AccountResponse.model_validate(current_account)
