"""Security utilities for invocation tokens"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import uuid
from jose import JWTError, jwt
from automation_engine.core.config import settings


SERVICE_ROLE = "service_role"


def create_access_token(
    subject: str,
    role: str = SERVICE_ROLE,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Caller identity (scheduler, service or user id)
        role: Role claim carried by the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(subject),
        "role": role,
        "exp": expire,
        "iat": now,
        "jti": str(uuid.uuid4())
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def create_service_token(expires_delta: Optional[timedelta] = None) -> str:
    """Token used by the periodic scheduler and other trusted callers"""
    return create_access_token("automation-scheduler", SERVICE_ROLE, expires_delta)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Signature and expiry are both checked by jose.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded token payload if valid, None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return None


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a JWT token and return its payload.

    Args:
        token: JWT token string to verify

    Returns:
        Token payload if valid and not expired, None otherwise
    """
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.get("exp") is None:
        return None

    return payload
