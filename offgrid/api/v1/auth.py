"""
Authentication API routes.

Tokens are issued by the external auth provider; these routes expose the
resulting session and let the client report auth state changes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.database import get_db
from offgrid.dependencies import get_current_session
from offgrid.schemas.session import AuthEventRequest, AuthEventResponse, SessionResponse
from offgrid.services.session_service import Session, SessionService

router = APIRouter()


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Get the current session",
    description="Identity claims of the bearer token, the caller's profile and where the client should go next."
)
async def get_session(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """
    Return the caller's session.

    **nextStep** is `verify_email` until the email is confirmed,
    `setup_profile` until a profile exists, then `dashboard`.
    """
    return SessionService(db).describe(session)


@router.post(
    "/events",
    response_model=AuthEventResponse,
    summary="Report an auth event",
    description="SIGNED_IN / SIGNED_OUT update presence; USER_UPDATED re-evaluates the session."
)
async def report_auth_event(
    payload: AuthEventRequest,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Apply an auth state change reported by the client."""
    step = await SessionService(db).handle_auth_event(session, payload.event)
    return AuthEventResponse(event=payload.event, next_step=step)
