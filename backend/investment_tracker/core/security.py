"""
Investment Tracker - Security Module
JWT token issuing and verification
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Any
import uuid

from jose import jwt, JWTError

from investment_tracker.config import settings


def create_access_token(
    subject: str | Any,
    expires_delta: Optional[timedelta] = None,
    jti: Optional[str] = None
) -> tuple[str, str]:
    """
    Create a JWT access token.

    Args:
        subject: The subject of the token (the user id)
        expires_delta: Optional custom expiration time
        jti: Optional JWT ID (auto-generated if not provided)

    Returns:
        Tuple of (encoded JWT token string, jti)
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    token_jti = jti or str(uuid.uuid4())

    to_encode = {
        "exp": expire,
        "sub": str(subject),
        "iat": now,
        "type": "access",
        "jti": token_jti,
    }
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt, token_jti


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token, None if invalid or expired."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def verify_token(token: str, token_type: str = "access") -> Optional[str]:
    """
    Verify a JWT token and return the subject.

    Returns:
        Subject (user id) if the token is valid, None otherwise
    """
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.get("type") != token_type:
        return None

    # jose checks exp on decode; a token without one is rejected here
    if payload.get("exp") is None:
        return None

    return payload.get("sub")
