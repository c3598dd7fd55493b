"""
Message repository for database operations.
Handles messages and reactions.
"""
from typing import Optional, List

from sqlalchemy import select, and_, desc, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from offgrid.models.message import Message, MessageReaction, DELETED_MESSAGE_SENTINEL
from offgrid.repositories.base import BaseRepository
from offgrid.utils.datetime_utils import utc_now


class MessageRepository(BaseRepository[Message]):
    """Repository for message database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize message repository."""
        super().__init__(Message, db)

    async def get_with_relations(self, message_id: str) -> Optional[Message]:
        """
        Get message with sender and reactions loaded.

        Args:
            message_id: Message ID

        Returns:
            Message with relations or None
        """
        result = await self.db.execute(
            select(Message)
            .where(Message.id == message_id)
            .options(
                selectinload(Message.sender),
                selectinload(Message.reactions).selectinload(MessageReaction.profile)
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_conversation_messages(
        self,
        conversation_id: str,
        limit: int = 200
    ) -> List[Message]:
        """
        Get the most recent messages of a conversation in display order.

        Args:
            conversation_id: Conversation ID
            limit: Maximum number of messages

        Returns:
            Messages ascending by created_at, ties broken by id
        """
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .options(
                selectinload(Message.sender),
                selectinload(Message.reactions).selectinload(MessageReaction.profile)
            )
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        messages = list(result.scalars().all())
        messages.reverse()
        return messages

    async def soft_delete(self, message_id: str) -> Optional[Message]:
        """
        Soft delete a message.

        The row stays in place for timeline continuity; its content is
        replaced by the sentinel and the file reference is cleared.

        Args:
            message_id: Message ID

        Returns:
            Updated message or None
        """
        return await self.update(
            message_id,
            is_deleted=True,
            content=DELETED_MESSAGE_SENTINEL,
            file_url=None
        )

    async def edit_content(self, message_id: str, content: str) -> Optional[Message]:
        """Replace message content and mark it edited."""
        return await self.update(
            message_id,
            content=content,
            is_edited=True,
            edited_at=utc_now()
        )


class MessageReactionRepository(BaseRepository[MessageReaction]):
    """Repository for message reaction operations."""

    def __init__(self, db: AsyncSession):
        """Initialize message reaction repository."""
        super().__init__(MessageReaction, db)

    async def add_reaction(self, message_id: str, user_id: str, emoji: str) -> bool:
        """
        Add a reaction to a message.

        Args:
            message_id: Message ID
            user_id: Reacting profile ID
            emoji: Emoji string

        Returns:
            True if created, False if it already existed
        """
        return await self.insert_ignoring_conflicts(
            {"message_id": message_id, "user_id": user_id, "emoji": emoji},
            index_elements=["message_id", "user_id", "emoji"]
        )

    async def remove_reaction(self, message_id: str, user_id: str, emoji: str) -> bool:
        """
        Remove a reaction from a message.

        Args:
            message_id: Message ID
            user_id: Reacting profile ID
            emoji: Emoji string

        Returns:
            True if removed, False if not found
        """
        result = await self.db.execute(
            delete(MessageReaction).where(
                and_(
                    MessageReaction.message_id == message_id,
                    MessageReaction.user_id == user_id,
                    MessageReaction.emoji == emoji
                )
            )
        )
        await self.db.flush()
        return result.rowcount > 0

    async def toggle_reaction(self, message_id: str, user_id: str, emoji: str) -> bool:
        """
        Toggle a reaction: remove it when present, add it otherwise.

        Returns:
            True if the reaction is present afterwards
        """
        if await self.remove_reaction(message_id, user_id, emoji):
            return False
        await self.add_reaction(message_id, user_id, emoji)
        return True

