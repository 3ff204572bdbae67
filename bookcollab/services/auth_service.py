"""Caller authentication from JWT bearer tokens.

Tokens are issued by the identity provider; this service only verifies them
and exposes the claims the collaboration endpoints consume.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..config import settings
from ..errors import AppErrorCode, UnauthenticatedError
from ..schemas.user import CallerIdentity

# Bearer scheme; missing credentials are reported by get_current_caller
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode (``sub``, ``email``, ``email_verified``, ``name``)
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.jwt_expiration_minutes
        )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[CallerIdentity]:
    """
    Decode and validate a JWT access token.

    Args:
        token: The JWT token string to decode

    Returns:
        CallerIdentity built from the claims, or None if the token is
        invalid, expired or has no subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    uid = payload.get("sub")
    if not uid:
        return None

    return CallerIdentity(
        uid=str(uid),
        email=payload.get("email"),
        email_verified=payload.get("email_verified") is True,
        name=payload.get("name"),
    )


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CallerIdentity:
    """
    FastAPI dependency resolving the authenticated caller.

    Raises:
        UnauthenticatedError: If no valid bearer token was presented
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("You must be signed in.", AppErrorCode.UNAUTHENTICATED)

    caller = decode_access_token(credentials.credentials)
    if caller is None:
        raise UnauthenticatedError("You must be signed in.", AppErrorCode.UNAUTHENTICATED)

    return caller
