"""
Integration tests for Authentication API endpoints.
"""
from datetime import timedelta

import pytest

from offgrid.models.profile import PresenceStatus


@pytest.mark.asyncio
class TestSessionAPI:
    """Test cases for the session endpoint."""

    async def test_session_unauthorized(self, client):
        """Test reading the session without a token."""
        response = await client.get("/api/v1/auth/session")

        assert response.status_code == 401

    async def test_session_expired_token(self, client, alice, token_for):
        token = token_for(alice.id, expires_delta=timedelta(seconds=-1))

        response = await client.get(
            "/api/v1/auth/session",
            headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401

    async def test_session_unconfirmed_email(self, client, token_for):
        """Test an unconfirmed account is sent to email verification."""
        token = token_for("newcomer", confirmed=False)

        response = await client.get(
            "/api/v1/auth/session",
            headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["userId"] == "newcomer"
        assert data["emailConfirmed"] is False
        assert data["nextStep"] == "verify_email"

    async def test_session_without_profile(self, client, token_for):
        token = token_for("newcomer")

        response = await client.get(
            "/api/v1/auth/session",
            headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        assert response.json()["nextStep"] == "setup_profile"

    async def test_session_with_profile(self, client, auth_headers):
        response = await client.get("/api/v1/auth/session", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["userId"] == "alice"
        assert data["nextStep"] == "dashboard"


@pytest.mark.asyncio
class TestAuthEventAPI:
    """Test cases for reported auth events."""

    async def test_signed_in_sets_online(self, client, db_session, alice, auth_headers):
        """Test SIGNED_IN marks the caller online."""
        response = await client.post(
            "/api/v1/auth/events",
            headers=auth_headers,
            json={"event": "SIGNED_IN"}
        )

        assert response.status_code == 200
        assert response.json() == {"event": "SIGNED_IN", "nextStep": "dashboard"}

        await db_session.refresh(alice)
        assert alice.status == PresenceStatus.ONLINE

    async def test_signed_out_sets_offline(self, client, db_session, make_profile, token_for):
        carol = await make_profile("carol", status=PresenceStatus.ONLINE)
        headers = {"Authorization": f"Bearer {token_for(carol.id)}"}

        response = await client.post(
            "/api/v1/auth/events",
            headers=headers,
            json={"event": "SIGNED_OUT"}
        )

        assert response.status_code == 200
        await db_session.refresh(carol)
        assert carol.status == PresenceStatus.OFFLINE

    async def test_unknown_event(self, client, auth_headers):
        response = await client.post(
            "/api/v1/auth/events",
            headers=auth_headers,
            json={"event": "PASSWORD_RECOVERY_MAYBE"}
        )

        assert response.status_code == 422
