"""
Dependency injection for FastAPI routes.
Provides reusable dependencies for the session, database and pagination.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.database import get_db
from offgrid.core.security import decode_token, extract_token_from_header, parse_identity_claims
from offgrid.services.session_service import Session, SessionService

logger = logging.getLogger(__name__)


async def get_current_session(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> Session:
    """
    Dependency to get the explicit session of the caller.

    1. Extract the bearer token
    2. Verify it locally against the auth provider's secret
    3. Attach the caller's profile, if one has been set up

    Args:
        authorization: Authorization header containing Bearer token
        db: Database session

    Returns:
        Session of the caller (profile may be None)

    Raises:
        HTTPException: 401 if token is missing or invalid

    Example:
        ```python
        @router.get("/session")
        async def read_session(session: Session = Depends(get_current_session)):
            return {"user_id": session.user_id}
        ```
    """
    token = extract_token_from_header(authorization)
    claims = parse_identity_claims(decode_token(token))
    return await SessionService(db).load(**claims)


async def require_profile(
    session: Session = Depends(get_current_session)
) -> Session:
    """
    Dependency for routes that need a finished profile setup.

    Raises:
        HTTPException: 403 until the email is confirmed and the profile exists
    """
    if not session.email_confirmed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email address not confirmed"
        )

    if session.profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile setup required"
        )

    return session


def get_pagination_params(limit: int = 50) -> dict:
    """
    Dependency for list size limits.

    Args:
        limit: Number of items to return (default: 50, max: 200)

    Returns:
        Dictionary with pagination parameters
    """
    if limit > 200:
        limit = 200
    elif limit < 1:
        limit = 1

    return {"limit": limit}
