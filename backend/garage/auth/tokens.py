"""Signed bearer tokens identifying one login session."""
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt

from garage.core.config import settings


def create_access_token(
    principal: str, session_id: str, expires_delta: Optional[timedelta] = None
) -> str:
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {"sub": principal, "sid": session_id, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Claims of a valid token. Raises ``jose.JWTError`` (expired, tampered, malformed)."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
