"""
Session service.

A Session is the explicit identity of a request: the verified token
claims plus the caller's profile, when one exists. Routing decisions
(verify email, set up profile, go to the dashboard) derive from it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.models.profile import Profile
from offgrid.schemas.profile import ProfileResponse
from offgrid.schemas.session import AuthEvent, NextStep, SessionResponse
from offgrid.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Authenticated caller."""

    user_id: str
    email: Optional[str] = None
    email_confirmed_at: Optional[datetime] = None
    profile: Optional[Profile] = None

    @property
    def email_confirmed(self) -> bool:
        return self.email_confirmed_at is not None


def next_step(session: Session) -> NextStep:
    """verify_email until confirmed, then setup_profile until a profile exists."""
    if not session.email_confirmed:
        return NextStep.VERIFY_EMAIL
    if session.profile is None:
        return NextStep.SETUP_PROFILE
    return NextStep.DASHBOARD


class SessionService:
    """Service for session lookups and auth events."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.profile_service = ProfileService(db)

    async def load(
        self,
        user_id: str,
        email: Optional[str] = None,
        email_confirmed_at: Optional[datetime] = None
    ) -> Session:
        """Build a session from token claims, attaching the profile if any."""
        profile = await self.profile_service.get_profile(user_id)
        return Session(
            user_id=user_id,
            email=email,
            email_confirmed_at=email_confirmed_at,
            profile=profile
        )

    async def refresh(self, session: Session) -> Session:
        """Reload the profile of a session."""
        session.profile = await self.profile_service.get_profile(session.user_id)
        return session

    def describe(self, session: Session) -> SessionResponse:
        return SessionResponse(
            user_id=session.user_id,
            email=session.email,
            email_confirmed=session.email_confirmed,
            next_step=next_step(session),
            profile=ProfileResponse.model_validate(session.profile) if session.profile else None
        )

    async def handle_auth_event(self, session: Session, event: AuthEvent) -> NextStep:
        """
        Apply an auth state change.

        SIGNED_IN marks the profile online, SIGNED_OUT marks it offline,
        TOKEN_REFRESHED changes nothing and USER_UPDATED re-reads the
        session (this is how an email confirmation arrives).

        Returns:
            Where the client should go next
        """
        if event == AuthEvent.SIGNED_IN:
            await self.profile_service.go_online(session.user_id)
        elif event == AuthEvent.SIGNED_OUT:
            await self.profile_service.go_offline(session.user_id)
        elif event == AuthEvent.USER_UPDATED:
            await self.refresh(session)

        logger.info(f"Auth event {event.value} for {session.user_id}")
        return next_step(session)
