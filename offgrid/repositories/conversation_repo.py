"""
Conversation repository for database operations.
Handles conversations, participants, read cursors and unread counts.
"""
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import select, func, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from offgrid.models.base import generate_id
from offgrid.models.conversation import (
    Conversation,
    ConversationParticipant,
    ConversationSettings,
    ConversationType,
    direct_key_for,
)
from offgrid.models.message import Message
from offgrid.repositories.base import BaseRepository
from offgrid.utils.datetime_utils import utc_now


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversation database operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(Conversation, db)

    async def get_with_relations(self, conversation_id: str) -> Optional[Conversation]:
        """
        Get conversation with participants (and their profiles) and settings loaded.

        Args:
            conversation_id: Conversation ID

        Returns:
            Conversation with relations or None
        """
        result = await self.db.execute(
            select(Conversation)
            .where(Conversation.id == conversation_id)
            .options(
                selectinload(Conversation.participants).selectinload(ConversationParticipant.profile),
                selectinload(Conversation.settings)
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_direct_key(self, direct_key: str) -> Optional[Conversation]:
        """Get the direct conversation stored under a pair key."""
        result = await self.db.execute(
            select(Conversation).where(Conversation.direct_key == direct_key)
        )
        return result.scalar_one_or_none()

    async def get_or_create_direct(self, user_a: str, user_b: str) -> Tuple[Conversation, bool]:
        """
        Find or create the direct conversation of a pair.

        Every write is an INSERT ... ON CONFLICT DO NOTHING keyed by a
        unique column, so callers racing on the same pair converge on a
        single conversation with exactly two participants.

        Args:
            user_a: First participant
            user_b: Second participant

        Returns:
            Tuple of (conversation with relations, created flag)
        """
        key = direct_key_for(user_a, user_b)

        created = await self.insert_ignoring_conflicts(
            {
                "id": generate_id(),
                "type": ConversationType.DIRECT,
                "direct_key": key,
                "created_by": user_a,
            },
            index_elements=["direct_key"]
        )

        conversation = await self.get_by_direct_key(key)

        participants = ConversationParticipantRepository(self.db)
        for user_id in (user_a, user_b):
            await participants.insert_ignoring_conflicts(
                {"conversation_id": conversation.id, "user_id": user_id},
                index_elements=["conversation_id", "user_id"]
            )

        await self.insert_settings_if_missing(conversation.id)

        return await self.get_with_relations(conversation.id), created

    async def insert_settings_if_missing(self, conversation_id: str) -> None:
        """Create the default settings row of a conversation once."""
        settings_repo = BaseRepository(ConversationSettings, self.db)
        await settings_repo.insert_ignoring_conflicts(
            {"conversation_id": conversation_id},
            index_elements=["conversation_id"]
        )

    async def get_settings(self, conversation_id: str) -> Optional[ConversationSettings]:
        """Get the settings row of a conversation."""
        result = await self.db.execute(
            select(ConversationSettings)
            .where(ConversationSettings.conversation_id == conversation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_user_conversations(self, user_id: str) -> List[Conversation]:
        """
        Get every conversation the user participates in.

        Args:
            user_id: Participant profile ID

        Returns:
            Conversations with participants loaded, most recently updated first
        """
        member_subquery = (
            select(ConversationParticipant.conversation_id)
            .where(ConversationParticipant.user_id == user_id)
        )

        result = await self.db.execute(
            select(Conversation)
            .where(Conversation.id.in_(member_subquery))
            .options(
                selectinload(Conversation.participants).selectinload(ConversationParticipant.profile),
                selectinload(Conversation.settings)
            )
            .order_by(desc(Conversation.updated_at))
        )
        return list(result.scalars().all())

    async def touch(self, conversation_id: str) -> None:
        """Bump updated_at so the conversation sorts as recently active."""
        conversation = await self.get(conversation_id)
        if conversation is not None:
            conversation.updated_at = utc_now()
            await self.db.flush()

    async def get_last_message(self, conversation_id: str) -> Optional[Message]:
        """
        Get the last message in a conversation.

        Deleted messages are included; they render as the deleted sentinel.

        Args:
            conversation_id: Conversation ID

        Returns:
            Last message or None
        """
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(1)
        )
        return result.scalar_one_or_none()


class ConversationParticipantRepository(BaseRepository[ConversationParticipant]):
    """Repository for participant and read-cursor operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(ConversationParticipant, db)

    async def get_participant(
        self, conversation_id: str, user_id: str
    ) -> Optional[ConversationParticipant]:
        """
        Get participant record.

        Args:
            conversation_id: Conversation ID
            user_id: Profile ID

        Returns:
            ConversationParticipant or None
        """
        result = await self.db.execute(
            select(ConversationParticipant)
            .where(
                and_(
                    ConversationParticipant.conversation_id == conversation_id,
                    ConversationParticipant.user_id == user_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def is_participant(self, conversation_id: str, user_id: str) -> bool:
        """
        Check if user is a participant of the conversation.

        Args:
            conversation_id: Conversation ID
            user_id: Profile ID

        Returns:
            True if participant, False otherwise
        """
        result = await self.db.execute(
            select(func.count())
            .select_from(ConversationParticipant)
            .where(
                and_(
                    ConversationParticipant.conversation_id == conversation_id,
                    ConversationParticipant.user_id == user_id
                )
            )
        )
        return result.scalar() > 0

    async def update_last_read(
        self,
        conversation_id: str,
        user_id: str,
        read_at: Optional[datetime] = None
    ) -> Optional[ConversationParticipant]:
        """
        Advance the read cursor.

        Args:
            conversation_id: Conversation ID
            user_id: Profile ID
            read_at: Cursor position (defaults to now)

        Returns:
            Updated participant or None
        """
        participant = await self.get_participant(conversation_id, user_id)
        if not participant:
            return None

        participant.last_read_at = read_at or utc_now()
        await self.db.flush()
        await self.db.refresh(participant)
        return participant

    async def get_unread_count(
        self,
        conversation_id: str,
        user_id: str
    ) -> int:
        """
        Count messages created after the participant's read cursor.

        Args:
            conversation_id: Conversation ID
            user_id: Participant profile ID

        Returns:
            Number of unread messages (0 for non-participants)
        """
        query = (
            select(func.count(Message.id))
            .select_from(Message)
            .join(
                ConversationParticipant,
                and_(
                    ConversationParticipant.conversation_id == Message.conversation_id,
                    ConversationParticipant.user_id == user_id
                )
            )
            .where(
                and_(
                    Message.conversation_id == conversation_id,
                    Message.created_at > ConversationParticipant.last_read_at
                )
            )
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def get_total_unread_count(self, user_id: str) -> int:
        """
        Unread messages from others across all of the user's conversations.

        Args:
            user_id: Participant profile ID

        Returns:
            Aggregate unread count for navigation badges
        """
        result = await self.db.execute(
            select(func.count(Message.id))
            .select_from(Message)
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == Message.conversation_id
            )
            .where(
                and_(
                    ConversationParticipant.user_id == user_id,
                    Message.sender_id != user_id,
                    Message.created_at > ConversationParticipant.last_read_at
                )
            )
        )
        return result.scalar() or 0
