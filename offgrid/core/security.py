"""
Security utilities for authentication.
Validates the auth provider's bearer JWTs locally.
"""
import jwt
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from fastapi import HTTPException, status
from offgrid.config import settings
from offgrid.utils.datetime_utils import utc_now


class SecurityException(HTTPException):
    """Custom exception for security-related errors."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token shaped like the auth provider's.

    Used by tests and local tooling; production tokens come from the
    auth provider itself.

    Args:
        data: Payload data to encode (sub, email, email_confirmed_at)
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token

    Example:
        ```python
        token = create_access_token(
            data={"sub": user_id, "email": "ada@example.com"},
            expires_delta=timedelta(hours=1)
        )
        ```
    """
    to_encode = data.copy()

    now = utc_now()
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(hours=settings.jwt_expiration_hours)

    to_encode.update({"exp": expire, "iat": now, "aud": settings.auth_jwt_audience})

    encoded_jwt = jwt.encode(
        to_encode,
        settings.auth_jwt_secret,
        algorithm=settings.auth_jwt_algorithm
    )
    return encoded_jwt


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        SecurityException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience
        )
    except jwt.ExpiredSignatureError:
        raise SecurityException("Token has expired")
    except jwt.InvalidTokenError:
        raise SecurityException("Invalid token")

    if not payload.get("sub"):
        raise SecurityException("Token missing subject claim")

    return payload


def parse_identity_claims(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract identity fields from a decoded token.

    Returns:
        Dict with user_id, email and email_confirmed_at (datetime or None)
    """
    confirmed_at = payload.get("email_confirmed_at")
    if isinstance(confirmed_at, (int, float)):
        confirmed_at = datetime.fromtimestamp(confirmed_at, tz=utc_now().tzinfo)
    elif isinstance(confirmed_at, str) and confirmed_at:
        try:
            confirmed_at = datetime.fromisoformat(confirmed_at.replace("Z", "+00:00"))
        except ValueError:
            confirmed_at = None
    else:
        confirmed_at = None

    return {
        "user_id": str(payload["sub"]),
        "email": payload.get("email"),
        "email_confirmed_at": confirmed_at,
    }


def extract_token_from_header(authorization: str) -> str:
    """
    Extract JWT token from Authorization header.

    Args:
        authorization: Authorization header value (e.g., "Bearer <token>")

    Returns:
        Extracted token

    Raises:
        SecurityException: If header format is invalid
    """
    if not authorization:
        raise SecurityException("Missing authorization header")

    parts = authorization.split()

    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise SecurityException("Invalid authorization header format")

    return parts[1]
