"""
Rate Limiting for the Innovation Portal API
===========================================
Implements rate limiting using slowapi.

Only the account endpoints carry their own limits:
- /auth/login: 5 req/min (brute force protection)
- /auth/register: 3 req/min

Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at a
shared backend when running several workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import logger


LOGIN_LIMIT = "5/minute"
REGISTER_LIMIT = "3/minute"


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key based on user authentication.

    Priority:
    1. Authenticated account ID (set by the auth dependency)
    2. IP address (for anonymous users)
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON response with a Retry-After header.
    """
    retry_after = exc.detail.split(":")[-1].strip() if exc.detail else "60"

    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please slow down.",
            "code": "RATE_LIMIT_EXCEEDED",
            "limit": str(exc.detail),
        },
        headers={"Retry-After": retry_after if retry_after.isdigit() else "60"}
    )
