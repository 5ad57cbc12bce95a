"""
JWT utility functions
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from bugtracker.core.config import settings
from bugtracker.core.exceptions import JWTDecodeError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _encode(data: dict, *, secret: str, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": datetime.now(timezone.utc) + expires_delta,
            "type": token_type,
        }
    )
    return jwt.encode(to_encode, secret, algorithm=settings.algorithm)


def _decode(token: str, *, secret: str, token_type: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise JWTDecodeError(f"Invalid or expired {token_type} token") from exc

    if payload.get("type") != token_type:
        raise JWTDecodeError(f"Token is not a {token_type} token")
    return payload


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create JWT access token with expiration

    Args:
        data: Claims to encode
        expires_delta: Optional override for expiration duration
    """
    return _encode(
        data,
        secret=settings.secret_key,
        token_type=ACCESS_TOKEN_TYPE,
        expires_delta=expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create JWT refresh token signed with the refresh secret."""
    return _encode(
        data,
        secret=settings.refresh_secret_key,
        token_type=REFRESH_TOKEN_TYPE,
        expires_delta=expires_delta
        if expires_delta is not None
        else timedelta(days=settings.refresh_token_expire_days),
    )


def decode_access_token(token: str) -> dict:
    """
    Decode and validate JWT access token

    Raises:
        JWTDecodeError: if token is invalid or expired
    """
    return _decode(token, secret=settings.secret_key, token_type=ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> dict:
    """
    Decode and validate JWT refresh token

    Raises:
        JWTDecodeError: if token is invalid or expired
    """
    return _decode(token, secret=settings.refresh_secret_key, token_type=REFRESH_TOKEN_TYPE)
