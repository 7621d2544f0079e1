# stockpile/core/security.py
"""
Password hashing and token helpers.

Access tokens are short-lived HS256 JWTs carrying the user id (``sub``), the
organization and the role. Refresh tokens are opaque random strings stored per
user and exchanged for new access tokens.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from stockpile.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    # Archived users have no password
    if not hashed_password:
        return False
    return pwd_context.verify(password, hashed_password)


def create_access_token(
    user_id: int,
    organization_id: int,
    role_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user_id),
        "organization_id": organization_id,
        "role_id": role_id,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate an access token. Raises ``JWTError`` when invalid."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def generate_refresh_token(user_id: int) -> str:
    return f"{user_id}{secrets.token_hex(40)}"


def tokens_match(given: Optional[str], stored: Optional[str]) -> bool:
    if not given or not stored:
        return False
    return secrets.compare_digest(given, stored)


__all__ = [
    "JWTError",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    "generate_refresh_token",
    "tokens_match",
]
