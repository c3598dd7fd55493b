"""
Conversation service containing business logic for conversation operations.
Handles direct chat creation, listing, read cursors and settings.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.websocket import connection_manager
from offgrid.models.conversation import Conversation, ConversationSettings
from offgrid.repositories.conversation_repo import (
    ConversationRepository,
    ConversationParticipantRepository,
)
from offgrid.repositories.profile_repo import ProfileRepository
from offgrid.schemas.conversation import (
    ConversationListItem,
    ConversationResponse,
    ConversationSettingsResponse,
    LastMessagePreview,
    ParticipantResponse,
)
from offgrid.schemas.profile import ProfileSummary
from offgrid.services.friendship_service import FriendshipService, profile_matches
from offgrid.utils.datetime_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class ConversationService:
    """Service for conversation operations with business logic."""

    def __init__(self, db: AsyncSession):
        """
        Initialize conversation service.

        Args:
            db: Database session
        """
        self.db = db
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ConversationParticipantRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.ws_manager = connection_manager

    async def _require_participant(self, conversation_id: str, user_id: str) -> None:
        """Writes by non-participants are forbidden."""
        if not await self.participant_repo.is_participant(conversation_id, user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a participant of this conversation"
            )

    async def _require_viewer(self, conversation_id: str, user_id: str) -> None:
        """Views by non-participants look like a missing conversation."""
        if not await self.participant_repo.is_participant(conversation_id, user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found"
            )

    def _to_response(self, conversation: Conversation, viewer_id: str) -> ConversationResponse:
        participants = [
            ParticipantResponse.model_validate(p)
            for p in sorted(conversation.participants, key=lambda p: ensure_utc(p.joined_at))
        ]

        other = next(
            (p.profile for p in conversation.participants
             if p.user_id != viewer_id and p.profile is not None),
            None
        )

        settings_row = conversation.settings
        return ConversationResponse(
            id=conversation.id,
            type=conversation.type,
            name=conversation.name,
            created_by=conversation.created_by,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            participants=participants,
            other_participant=ProfileSummary.model_validate(other) if other else None,
            settings=(
                ConversationSettingsResponse.model_validate(settings_row)
                if settings_row else ConversationSettingsResponse()
            )
        )

    async def open_direct(self, user_id: str, other_user_id: str) -> ConversationResponse:
        """
        Open the direct chat with a friend, creating it on first use.

        Repeated or concurrent calls for the same pair, in either order,
        return the same conversation.

        Args:
            user_id: Caller
            other_user_id: The friend

        Returns:
            The direct conversation

        Raises:
            HTTPException: 400 with self, 404 unknown user, 403 not friends
        """
        if user_id == other_user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot open a conversation with yourself"
            )

        if not await self.profile_repo.exists(other_user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        if not await FriendshipService(self.db).are_friends(user_id, other_user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only message friends"
            )

        conversation, created = await self.conversation_repo.get_or_create_direct(
            user_id, other_user_id
        )

        if created:
            logger.info(f"Direct conversation {conversation.id} created for {user_id} and {other_user_id}")
            try:
                await self.ws_manager.notify_users(
                    [user_id, other_user_id], "conversations", "INSERT", {"id": conversation.id}
                )
            except Exception as e:
                logger.error(f"Failed to broadcast new conversation: {e}")

        return self._to_response(conversation, user_id)

    def _matches(self, conversation: Conversation, viewer_id: str, query: Optional[str]) -> bool:
        """Search on the conversation name or the other participants' names."""
        needle = (query or "").strip().lower()
        if not needle:
            return True
        if conversation.name and needle in conversation.name.lower():
            return True
        return any(
            profile_matches(p.profile, needle)
            for p in conversation.participants
            if p.user_id != viewer_id and p.profile is not None
        )

    async def list_conversations(self, user_id: str, query: Optional[str] = None) -> List[ConversationListItem]:
        """
        Conversations of a user with preview and unread count.

        Sorted by last message time, falling back to updated_at, newest
        first. A failed load degrades to an empty list.

        Args:
            user_id: Participant profile ID
            query: Optional case-insensitive match on the conversation name
                or the other participant's display name or username
        """
        try:
            conversations = await self.conversation_repo.get_user_conversations(user_id)
        except Exception as e:
            logger.error(f"Failed to load conversations of {user_id}: {e}")
            return []

        items: List[ConversationListItem] = []
        for conversation in conversations:
            if not self._matches(conversation, user_id, query):
                continue
            last_message = await self.conversation_repo.get_last_message(conversation.id)
            unread = await self.participant_repo.get_unread_count(conversation.id, user_id)

            base = self._to_response(conversation, user_id)
            items.append(
                ConversationListItem(
                    **base.model_dump(),
                    last_message=LastMessagePreview.model_validate(last_message) if last_message else None,
                    unread_count=unread
                )
            )

        def activity(item: ConversationListItem) -> datetime:
            if item.last_message is not None:
                return ensure_utc(item.last_message.created_at)
            return ensure_utc(item.updated_at)

        items.sort(key=activity, reverse=True)
        return items

    async def get_conversation(
        self,
        conversation_id: str,
        user_id: str,
        mark_read: bool = True
    ) -> ConversationResponse:
        """
        Get conversation details, advancing the viewer's read cursor.

        Raises:
            HTTPException: 404 when missing or the viewer is not a participant
        """
        await self._require_viewer(conversation_id, user_id)

        conversation = await self.conversation_repo.get_with_relations(conversation_id)
        if not conversation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found"
            )

        if mark_read:
            await self.mark_read(conversation_id, user_id)
            conversation = await self.conversation_repo.get_with_relations(conversation_id)

        return self._to_response(conversation, user_id)

    async def mark_read(
        self,
        conversation_id: str,
        user_id: str,
        read_at: Optional[datetime] = None
    ) -> datetime:
        """
        Move the read cursor to now.

        Returns:
            The new last_read_at
        """
        participant = await self.participant_repo.update_last_read(
            conversation_id, user_id, read_at or utc_now()
        )
        if participant is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found"
            )

        try:
            await self.ws_manager.notify_users(
                [user_id], "conversation_participants", "UPDATE", {"conversation_id": conversation_id}
            )
        except Exception as e:
            logger.error(f"Failed to broadcast read cursor: {e}")

        return participant.last_read_at

    async def unread_count(self, conversation_id: str, user_id: str) -> int:
        """Messages created after the viewer's read cursor."""
        await self._require_viewer(conversation_id, user_id)
        return await self.participant_repo.get_unread_count(conversation_id, user_id)

    async def total_unread(self, user_id: str) -> int:
        """Aggregate badge: unread messages from others across all conversations."""
        try:
            return await self.participant_repo.get_total_unread_count(user_id)
        except Exception as e:
            logger.error(f"Failed to count unread messages of {user_id}: {e}")
            return 0

    async def get_settings(self, conversation_id: str, user_id: str) -> ConversationSettingsResponse:
        """Ephemeral settings, defaults when the row is missing."""
        await self._require_viewer(conversation_id, user_id)
        row = await self.conversation_repo.get_settings(conversation_id)
        if row is None:
            return ConversationSettingsResponse()
        return ConversationSettingsResponse.model_validate(row)

    async def update_settings(
        self,
        conversation_id: str,
        user_id: str,
        ephemeral_enabled: Optional[bool] = None,
        ephemeral_duration_minutes: Optional[int] = None
    ) -> ConversationSettings:
        """
        Update ephemeral media settings of a conversation.

        Raises:
            HTTPException: 403 when the user is not a participant
        """
        await self._require_participant(conversation_id, user_id)
        await self.conversation_repo.insert_settings_if_missing(conversation_id)

        row = await self.conversation_repo.get_settings(conversation_id)
        if ephemeral_enabled is not None:
            row.ephemeral_enabled = ephemeral_enabled
        if ephemeral_duration_minutes is not None:
            row.ephemeral_duration_minutes = ephemeral_duration_minutes

        await self.db.flush()
        await self.db.refresh(row)

        try:
            await self.ws_manager.notify_conversation(
                conversation_id, "conversation_settings", "UPDATE"
            )
        except Exception as e:
            logger.error(f"Failed to broadcast settings change: {e}")

        return row
