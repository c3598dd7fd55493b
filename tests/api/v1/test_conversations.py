"""
Integration tests for Conversation API endpoints.
Tests API routes for direct conversations, read cursors and settings.
"""
from datetime import timedelta

import pytest
from sqlalchemy import update

from offgrid.models.conversation import ConversationParticipant
from offgrid.utils.datetime_utils import utc_now


async def _rewind_cursor(db_session, conversation_id, user_id, hours=1):
    """Move a read cursor into the past so fresh messages count as unread."""
    await db_session.execute(
        update(ConversationParticipant)
        .where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id
        )
        .values(last_read_at=utc_now() - timedelta(hours=hours))
    )
    await db_session.commit()


@pytest.mark.asyncio
class TestConversationAPI:
    """Test conversation API endpoints."""

    async def test_open_direct_unauthorized(self, client, bob):
        response = await client.post("/api/v1/conversations/direct", json={"user_id": bob.id})

        assert response.status_code == 401

    async def test_open_direct_requires_profile(self, client, bob, token_for):
        headers = {"Authorization": f"Bearer {token_for('newcomer')}"}

        response = await client.post(
            "/api/v1/conversations/direct",
            headers=headers,
            json={"user_id": bob.id}
        )

        assert response.status_code == 403

    async def test_open_direct_is_idempotent(
        self, client, auth_headers, bob_headers, alice, bob, make_friends
    ):
        """Test both sides opening the pair get the same conversation."""
        await make_friends(alice.id, bob.id)

        first = await client.post(
            "/api/v1/conversations/direct",
            headers=auth_headers,
            json={"user_id": bob.id}
        )
        second = await client.post(
            "/api/v1/conversations/direct",
            headers=bob_headers,
            json={"user_id": alice.id}
        )

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["id"] == second.json()["id"]
        assert first.json()["type"] == "direct"
        assert first.json()["otherParticipant"]["id"] == "bob"
        assert second.json()["otherParticipant"]["id"] == "alice"

    async def test_open_direct_not_friends(self, client, auth_headers, bob):
        response = await client.post(
            "/api/v1/conversations/direct",
            headers=auth_headers,
            json={"user_id": bob.id}
        )

        assert response.status_code == 403

    async def test_open_direct_with_self(self, client, auth_headers, alice):
        response = await client.post(
            "/api/v1/conversations/direct",
            headers=auth_headers,
            json={"user_id": alice.id}
        )

        assert response.status_code == 400

    async def test_list_conversations(
        self, client, db_session, auth_headers, direct_conversation, make_message, bob
    ):
        await _rewind_cursor(db_session, direct_conversation.id, "alice")
        await make_message(direct_conversation.id, bob.id, "are you there?")

        response = await client.get("/api/v1/conversations/", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        item = data["data"][0]
        assert item["id"] == direct_conversation.id
        assert item["lastMessage"]["content"] == "are you there?"
        assert item["unreadCount"] == 1

    async def test_get_conversation_not_participant(
        self, client, direct_conversation, make_profile, token_for
    ):
        """Test an outsider sees the conversation as missing."""
        await make_profile("carol")
        headers = {"Authorization": f"Bearer {token_for('carol')}"}

        response = await client.get(
            f"/api/v1/conversations/{direct_conversation.id}",
            headers=headers
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestReadCursorAPI:
    """Test unread counts and marking read."""

    async def test_unread_then_mark_read(
        self, client, db_session, auth_headers, direct_conversation, make_message, bob
    ):
        await _rewind_cursor(db_session, direct_conversation.id, "alice")
        earlier = utc_now() - timedelta(minutes=30)
        await make_message(direct_conversation.id, bob.id, "one", created_at=earlier)
        await make_message(direct_conversation.id, bob.id, "two", created_at=earlier + timedelta(seconds=1))

        response = await client.get(
            f"/api/v1/conversations/{direct_conversation.id}/unread-count",
            headers=auth_headers
        )
        assert response.json() == {"conversationId": direct_conversation.id, "unreadCount": 2}

        total = await client.get("/api/v1/conversations/unread-count", headers=auth_headers)
        assert total.json()["unreadCount"] == 2

        response = await client.post(
            f"/api/v1/conversations/{direct_conversation.id}/read",
            headers=auth_headers
        )
        assert response.status_code == 200

        response = await client.get(
            f"/api/v1/conversations/{direct_conversation.id}/unread-count",
            headers=auth_headers
        )
        assert response.json()["unreadCount"] == 0

    async def test_badge_skips_own_messages(
        self, client, db_session, bob_headers, direct_conversation, make_message, bob
    ):
        await _rewind_cursor(db_session, direct_conversation.id, "bob")
        await make_message(direct_conversation.id, bob.id, "mine", created_at=utc_now() - timedelta(minutes=30))

        response = await client.get(
            "/api/v1/conversations/unread-count",
            headers=bob_headers
        )

        assert response.json()["unreadCount"] == 0


@pytest.mark.asyncio
class TestConversationSettingsAPI:
    """Test per-conversation ephemeral settings."""

    async def test_default_settings(self, client, auth_headers, direct_conversation):
        response = await client.get(
            f"/api/v1/conversations/{direct_conversation.id}/settings",
            headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json() == {"ephemeralEnabled": False, "ephemeralDurationMinutes": 15}

    async def test_update_settings(self, client, auth_headers, bob_headers, direct_conversation):
        """Test settings are shared by both participants."""
        response = await client.put(
            f"/api/v1/conversations/{direct_conversation.id}/settings",
            headers=auth_headers,
            json={"ephemeral_enabled": True, "ephemeral_duration_minutes": 60}
        )

        assert response.status_code == 200

        response = await client.get(
            f"/api/v1/conversations/{direct_conversation.id}/settings",
            headers=bob_headers
        )
        assert response.json() == {"ephemeralEnabled": True, "ephemeralDurationMinutes": 60}

    async def test_invalid_duration(self, client, auth_headers, direct_conversation):
        response = await client.put(
            f"/api/v1/conversations/{direct_conversation.id}/settings",
            headers=auth_headers,
            json={"ephemeral_duration_minutes": 0}
        )

        assert response.status_code == 422


@pytest.mark.asyncio
class TestTypingAPI:
    async def test_typing_users(self, client, db_session, auth_headers, direct_conversation, bob):
        """Test the caller sees the other participant typing, never themselves."""
        from offgrid.services.typing_service import TypingService

        await TypingService(db_session).set_typing(direct_conversation.id, bob.id, True)
        await TypingService(db_session).set_typing(direct_conversation.id, "alice", True)

        response = await client.get(
            f"/api/v1/conversations/{direct_conversation.id}/typing",
            headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["conversationId"] == direct_conversation.id
        assert [u["id"] for u in data["users"]] == ["bob"]
