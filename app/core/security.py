"""
Password hashing and access tokens for portal accounts.

Members (users table) and moderators (admins table) share one token
format: sub is the account id, role is user | admin | superadmin.
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, ExpiredSignatureError, jwt
import bcrypt

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.types import is_valid_uuid

TOKEN_TYPE = "access"

# bcrypt ignores everything past 72 bytes
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """bcrypt hash with BCRYPT_ROUNDS rounds"""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    """Always False for OAuth-only accounts, which store no hash"""
    if not hashed_password:
        return False
    return bcrypt.checkpw(_password_bytes(password), hashed_password.encode("utf-8"))


def create_access_token(
    account_id: str,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    expires_delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(account_id),
        "email": email,
        "role": role,
        "type": TOKEN_TYPE,
        "exp": datetime.utcnow() + expires_delta,
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def read_access_token(token: str) -> Dict[str, Any]:
    """
    Decode an access token and check its claims.

    Raises:
        AuthenticationError: expired, bad signature, wrong type or no account id
    """
    try:
        claims = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except JWTError:
        raise AuthenticationError("Could not validate credentials")

    if claims.get("type") != TOKEN_TYPE:
        raise AuthenticationError("Invalid token type")
    if not is_valid_uuid(claims.get("sub")):
        raise AuthenticationError("Invalid token payload")
    return claims
