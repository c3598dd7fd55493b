"""
Tests for database models: keys, defaults and unique constraints.
"""
import pytest
from sqlalchemy.exc import IntegrityError

from offgrid.models import (
    Conversation,
    ConversationParticipant,
    ConversationType,
    Friendship,
    FriendshipStatus,
    Message,
    MessageReaction,
    MessageType,
    PresenceStatus,
    TypingIndicator,
)
from offgrid.models.conversation import direct_key_for


class TestDirectKey:
    def test_order_independent(self):
        assert direct_key_for("alice", "bob") == direct_key_for("bob", "alice")

    def test_distinct_pairs(self):
        assert direct_key_for("alice", "bob") != direct_key_for("alice", "carol")


@pytest.mark.asyncio
class TestModelDefaults:
    """Column defaults applied on insert."""

    async def test_profile_defaults(self, make_profile):
        profile = await make_profile("dave")

        assert profile.status == PresenceStatus.OFFLINE
        assert profile.privacy_mode is False
        assert profile.created_at is not None

    async def test_message_defaults(self, db_session, direct_conversation, alice):
        message = Message(
            conversation_id=direct_conversation.id,
            sender_id=alice.id,
            content="hello",
            message_type=MessageType.TEXT
        )
        db_session.add(message)
        await db_session.commit()

        assert message.id is not None
        assert message.is_edited is False
        assert message.is_deleted is False
        assert message.ephemeral_expires_at is None

    async def test_participant_cursor_defaults(self, db_session, direct_conversation):
        for participant in direct_conversation.participants:
            assert participant.joined_at is not None
            assert participant.last_read_at is not None


@pytest.mark.asyncio
class TestUniqueConstraints:
    """One row per natural key."""

    async def test_one_friendship_row_per_direction(self, db_session, alice, bob):
        db_session.add(Friendship(user_id=alice.id, friend_id=bob.id, status=FriendshipStatus.PENDING))
        await db_session.commit()

        db_session.add(Friendship(user_id=alice.id, friend_id=bob.id, status=FriendshipStatus.PENDING))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_one_direct_conversation_per_pair(self, db_session, direct_conversation, alice, bob):
        db_session.add(Conversation(
            type=ConversationType.DIRECT,
            direct_key=direct_key_for(bob.id, alice.id)
        ))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_one_participant_row_per_user(self, db_session, direct_conversation, alice):
        db_session.add(ConversationParticipant(conversation_id=direct_conversation.id, user_id=alice.id))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_one_reaction_per_user_and_emoji(self, db_session, direct_conversation, make_message, alice):
        message = await make_message(direct_conversation.id, alice.id)
        db_session.add(MessageReaction(message_id=message.id, user_id=alice.id, emoji="👍"))
        await db_session.commit()

        db_session.add(MessageReaction(message_id=message.id, user_id=alice.id, emoji="👍"))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_one_typing_row_per_user(self, db_session, direct_conversation, alice):
        db_session.add(TypingIndicator(conversation_id=direct_conversation.id, user_id=alice.id, is_typing=True))
        await db_session.commit()
        db_session.expunge_all()

        db_session.add(TypingIndicator(conversation_id=direct_conversation.id, user_id=alice.id, is_typing=False))
        with pytest.raises(IntegrityError):
            await db_session.commit()
