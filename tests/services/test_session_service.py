"""
Unit tests for SessionService and routing decisions.
"""
from datetime import datetime, timezone

import pytest

from offgrid.models.profile import PresenceStatus
from offgrid.schemas.session import AuthEvent, NextStep
from offgrid.services.session_service import Session, SessionService, next_step

CONFIRMED_AT = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestNextStep:
    """Routing decisions derived from the session."""

    def test_unconfirmed_email(self):
        assert next_step(Session(user_id="u1")) == NextStep.VERIFY_EMAIL

    def test_confirmed_without_profile(self):
        session = Session(user_id="u1", email_confirmed_at=CONFIRMED_AT)
        assert next_step(session) == NextStep.SETUP_PROFILE

    def test_confirmed_with_profile(self, mocker):
        session = Session(user_id="u1", email_confirmed_at=CONFIRMED_AT, profile=mocker.Mock())
        assert next_step(session) == NextStep.DASHBOARD


@pytest.mark.asyncio
class TestSessionService:
    """Test cases for loading sessions and auth events."""

    async def test_load_attaches_profile(self, db_session, alice):
        session = await SessionService(db_session).load(alice.id, "alice@example.com", CONFIRMED_AT)

        assert session.profile.id == alice.id
        assert session.email_confirmed is True

    async def test_load_without_profile(self, db_session):
        session = await SessionService(db_session).load("newcomer", "new@example.com", CONFIRMED_AT)

        assert session.profile is None

    async def test_describe(self, db_session, alice):
        service = SessionService(db_session)
        session = await service.load(alice.id, "alice@example.com", CONFIRMED_AT)

        response = service.describe(session)

        assert response.user_id == alice.id
        assert response.next_step == NextStep.DASHBOARD
        assert response.profile.display_name == "Alice"

    async def test_signed_in_marks_online(self, db_session, alice):
        service = SessionService(db_session)
        session = await service.load(alice.id, email_confirmed_at=CONFIRMED_AT)

        step = await service.handle_auth_event(session, AuthEvent.SIGNED_IN)

        await db_session.refresh(alice)
        assert alice.status == PresenceStatus.ONLINE
        assert step == NextStep.DASHBOARD

    async def test_signed_out_marks_offline(self, db_session, make_profile):
        profile = await make_profile("dave", status=PresenceStatus.ONLINE)
        service = SessionService(db_session)
        session = await service.load(profile.id, email_confirmed_at=CONFIRMED_AT)

        await service.handle_auth_event(session, AuthEvent.SIGNED_OUT)

        await db_session.refresh(profile)
        assert profile.status == PresenceStatus.OFFLINE
        assert profile.last_seen is not None

    async def test_user_updated_picks_up_new_profile(self, db_session, make_profile):
        """Test USER_UPDATED re-reads the session."""
        service = SessionService(db_session)
        session = await service.load("erin", email_confirmed_at=CONFIRMED_AT)
        assert next_step(session) == NextStep.SETUP_PROFILE

        await make_profile("erin")
        step = await service.handle_auth_event(session, AuthEvent.USER_UPDATED)

        assert step == NextStep.DASHBOARD

    async def test_token_refreshed_changes_nothing(self, db_session):
        service = SessionService(db_session)
        session = await service.load("nobody")

        assert await service.handle_auth_event(session, AuthEvent.TOKEN_REFRESHED) == NextStep.VERIFY_EMAIL
