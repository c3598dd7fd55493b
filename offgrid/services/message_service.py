"""
Message service containing business logic for message operations.
Handles sending text and attachments, edits, soft deletes, reactions and
the rendered conversation timeline.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.config import settings
from offgrid.core.websocket import connection_manager
from offgrid.models.conversation import ConversationType
from offgrid.models.message import Message, MessageType
from offgrid.repositories.conversation_repo import (
    ConversationRepository,
    ConversationParticipantRepository,
)
from offgrid.repositories.message_repo import MessageRepository, MessageReactionRepository
from offgrid.schemas.message import ReactionToggleResponse, RenderedMessage
from offgrid.services.friendship_service import FriendshipService
from offgrid.services.storage_service import StorageService
from offgrid.utils.datetime_utils import is_within, utc_now
from offgrid.utils.message_layout import group_reactions, render_message, render_messages
from offgrid.utils.validators import is_image_mime_type, validate_emoji, validate_message_content

logger = logging.getLogger(__name__)


class MessageService:
    """Service for message operations with business logic."""

    def __init__(self, db: AsyncSession, storage: Optional[StorageService] = None):
        """
        Initialize message service.

        Args:
            db: Database session
            storage: Object storage for attachments (defaults to OSS from settings)
        """
        self.db = db
        self.message_repo = MessageRepository(db)
        self.reaction_repo = MessageReactionRepository(db)
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ConversationParticipantRepository(db)
        self.storage = storage or StorageService()
        self.ws_manager = connection_manager

    @property
    def edit_window(self) -> timedelta:
        return timedelta(seconds=settings.message_edit_window_seconds)

    async def _verify_participant(self, conversation_id: str, user_id: str) -> None:
        """
        Verify user is a participant of the conversation.

        Raises:
            HTTPException: 403 if not a participant
        """
        if not await self.participant_repo.is_participant(conversation_id, user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a participant of this conversation"
            )

    async def _verify_can_write(self, conversation_id: str, user_id: str) -> None:
        """
        Verify user may write into the conversation.

        Raises:
            HTTPException: 403 if not a participant, or if the direct
                conversation's pair is blocked in either direction
        """
        await self._verify_participant(conversation_id, user_id)

        conversation = await self.conversation_repo.get(conversation_id)
        if conversation is None or conversation.type != ConversationType.DIRECT or not conversation.direct_key:
            return

        # direct_key is "<id>:<id>" of the sorted pair
        for other_id in conversation.direct_key.split(":"):
            if other_id == user_id:
                continue
            if await FriendshipService(self.db).is_blocked(user_id, other_id):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Messaging is blocked in this conversation"
                )

    async def _get_message_or_404(self, message_id: str) -> Message:
        message = await self.message_repo.get(message_id)
        if not message:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Message not found"
            )
        return message

    async def _verify_reply_target(self, conversation_id: str, reply_to_id: Optional[str]) -> None:
        if reply_to_id is None:
            return
        target = await self.message_repo.get(reply_to_id)
        if not target or target.conversation_id != conversation_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Reply target not found in this conversation"
            )

    async def _notify(self, conversation_id: str, event: str, message_id: str, table: str = "messages") -> None:
        try:
            await self.ws_manager.notify_conversation(conversation_id, table, event, {"id": message_id})
        except Exception as e:
            logger.error(f"Failed to broadcast {table} {event}: {e}")

    async def _rendered(self, message_id: str, viewer_id: str) -> RenderedMessage:
        """Reload a message with its relations and render it standalone."""
        message = await self.message_repo.get_with_relations(message_id)
        return render_message(message, viewer_id, utc_now(), edit_window=self.edit_window)

    async def send_text(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        reply_to_id: Optional[str] = None
    ) -> RenderedMessage:
        """
        Send a text message.

        Args:
            conversation_id: Target conversation
            sender_id: Sending participant
            content: Text, must not be blank
            reply_to_id: Optional message of the same conversation

        Returns:
            The new message rendered for the sender

        Raises:
            HTTPException: 400 blank content or bad reply target, 403 not a
                participant or the pair is blocked
        """
        content = validate_message_content(content)
        await self._verify_can_write(conversation_id, sender_id)
        await self._verify_reply_target(conversation_id, reply_to_id)

        message = await self.message_repo.create(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=MessageType.TEXT,
            reply_to_id=reply_to_id
        )
        await self.conversation_repo.touch(conversation_id)

        logger.info(f"Message {message.id} sent to {conversation_id} by {sender_id}")
        await self._notify(conversation_id, "INSERT", message.id)
        return await self._rendered(message.id, sender_id)

    async def send_file(
        self,
        conversation_id: str,
        sender_id: str,
        content: bytes,
        filename: str,
        content_type: str,
        image_only: bool = False,
        ephemeral: Optional[bool] = None,
        reply_to_id: Optional[str] = None
    ) -> RenderedMessage:
        """
        Upload an attachment and send it as an image or file message.

        The file goes to object storage first; the message row only ever
        references an uploaded object. Images may be ephemeral: they expire
        after the conversation's ephemeral duration. When ephemeral is None
        the conversation's ephemeral_enabled setting decides.

        Raises:
            HTTPException: 400/413/415 invalid file, 403 not a participant,
                503 storage unavailable
        """
        self.storage.validate_chat_file(content, content_type, image_only=image_only)
        await self._verify_can_write(conversation_id, sender_id)
        await self._verify_reply_target(conversation_id, reply_to_id)

        key = self.storage.chat_file_key(conversation_id, filename)
        uploaded = await self.storage.upload(key, content, content_type)

        is_image = is_image_mime_type(content_type)
        conv_settings = await self.conversation_repo.get_settings(conversation_id)
        if ephemeral is None:
            ephemeral = bool(conv_settings and conv_settings.ephemeral_enabled)

        expires_at: Optional[datetime] = None
        if is_image and ephemeral:
            minutes = (
                conv_settings.ephemeral_duration_minutes
                if conv_settings else settings.ephemeral_duration_minutes
            )
            expires_at = utc_now() + timedelta(minutes=minutes)

        message = await self.message_repo.create(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=None,
            message_type=MessageType.IMAGE if is_image else MessageType.FILE,
            file_url=uploaded["url"],
            file_name=filename,
            file_size=uploaded["file_size"],
            ephemeral_expires_at=expires_at,
            reply_to_id=reply_to_id
        )
        await self.conversation_repo.touch(conversation_id)

        logger.info(
            f"{message.message_type.value} message {message.id} sent to {conversation_id} "
            f"({uploaded['file_size']} bytes, ephemeral={expires_at is not None})"
        )
        await self._notify(conversation_id, "INSERT", message.id)
        return await self._rendered(message.id, sender_id)

    async def edit_message(self, message_id: str, user_id: str, new_content: str) -> RenderedMessage:
        """
        Edit a text message inside the edit window (inclusive).

        Raises:
            HTTPException: 404 missing, 403 not the sender or window expired,
                400 deleted, non-text or blank content
        """
        new_content = validate_message_content(new_content)
        message = await self._get_message_or_404(message_id)

        if message.sender_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only edit your own messages"
            )

        if message.is_deleted:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot edit deleted message"
            )

        if message.message_type != MessageType.TEXT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only text messages can be edited"
            )

        if not is_within(message.created_at, self.edit_window):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Edit window has expired"
            )

        await self._verify_can_write(message.conversation_id, user_id)

        await self.message_repo.edit_content(message_id, new_content)
        await self._notify(message.conversation_id, "UPDATE", message_id)
        return await self._rendered(message_id, user_id)

    async def delete_message(self, message_id: str, user_id: str) -> RenderedMessage:
        """
        Soft delete a message. Terminal: the row keeps its place in the
        timeline with the sentinel content and no file reference.

        Raises:
            HTTPException: 404 missing, 403 not the sender
        """
        message = await self._get_message_or_404(message_id)

        if message.sender_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only delete your own messages"
            )

        if not message.is_deleted:
            await self.message_repo.soft_delete(message_id)
            logger.info(f"Message {message_id} deleted by {user_id}")
            await self._notify(message.conversation_id, "UPDATE", message_id)

        return await self._rendered(message_id, user_id)

    async def toggle_reaction(self, message_id: str, user_id: str, emoji: str) -> ReactionToggleResponse:
        """
        Toggle a reaction: remove it when present, add it otherwise.

        Raises:
            HTTPException: 400 invalid emoji, 404 missing message, 403 not a participant
        """
        emoji = (emoji or "").strip()
        if not validate_emoji(emoji):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid emoji"
            )

        message = await self._get_message_or_404(message_id)
        await self._verify_can_write(message.conversation_id, user_id)

        reacted = await self.reaction_repo.toggle_reaction(message_id, user_id, emoji)
        await self._notify(
            message.conversation_id,
            "INSERT" if reacted else "DELETE",
            message_id,
            table="message_reactions"
        )

        reloaded = await self.message_repo.get_with_relations(message_id)
        return ReactionToggleResponse(
            message_id=message_id,
            emoji=emoji,
            reacted=reacted,
            reactions=group_reactions(reloaded.reactions, user_id)
        )

    async def list_messages(
        self,
        conversation_id: str,
        viewer_id: str,
        now: Optional[datetime] = None,
        limit: int = 200
    ) -> List[RenderedMessage]:
        """
        Rendered timeline of a conversation for a viewer.

        Raises:
            HTTPException: 404 when the viewer is not a participant
        """
        if not await self.participant_repo.is_participant(conversation_id, viewer_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found"
            )

        try:
            messages = await self.message_repo.get_conversation_messages(conversation_id, limit)
        except Exception as e:
            logger.error(f"Failed to load messages of {conversation_id}: {e}")
            return []

        return render_messages(messages, viewer_id, now or utc_now(), self.edit_window)
