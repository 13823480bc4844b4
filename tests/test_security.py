from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from jose import jwt

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.security import hash_password, verify_password, create_access_token, read_access_token


def test_password_round_trip():
    hashed = hash_password("secret123")

    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_passwords_past_bcrypt_limit_still_verify():
    long_password = "x" * 100
    assert verify_password(long_password, hash_password(long_password))


def test_account_without_password_never_verifies():
    """OAuth-only accounts have no hash"""
    assert verify_password("anything", None) is False
    assert verify_password("anything", "") is False


def test_token_claims():
    token = create_access_token("8d0f7a52-2f3e-4b7c-9d7e-0b9b8f0c1a11", "a@example.com", "admin")

    claims = read_access_token(token)

    assert claims["sub"] == "8d0f7a52-2f3e-4b7c-9d7e-0b9b8f0c1a11"
    assert claims["role"] == "admin"
    assert claims["type"] == "access"


@pytest.mark.parametrize("claims,message", [
    ({"sub": "8d0f7a52-2f3e-4b7c-9d7e-0b9b8f0c1a11", "type": "refresh"}, "Invalid token type"),
    ({"sub": "not-an-id", "type": "access"}, "Invalid token payload"),
    ({"type": "access"}, "Invalid token payload"),
])
def test_token_claims_are_checked(claims, message):
    claims = {**claims, "exp": datetime.utcnow() + timedelta(minutes=5)}
    token = jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    with pytest.raises(AuthenticationError) as exc_info:
        read_access_token(token)
    assert exc_info.value.message == message


def test_token_signed_with_another_key():
    token = jwt.encode({"sub": "x", "type": "access"}, "some-other-key", algorithm=settings.JWT_ALGORITHM)

    with pytest.raises(AuthenticationError):
        read_access_token(token)


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client: AsyncClient, test_user):
    token = create_access_token(test_user.id, test_user.email, "user", expires_delta=timedelta(minutes=-1))

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"
