"""
Repository layer exports.
Provides database access layer for the application.
"""
from offgrid.repositories.base import BaseRepository
from offgrid.repositories.profile_repo import (
    ProfileRepository,
    DiscoverySettingRepository
)
from offgrid.repositories.friendship_repo import FriendshipRepository
from offgrid.repositories.conversation_repo import (
    ConversationRepository,
    ConversationParticipantRepository
)
from offgrid.repositories.message_repo import (
    MessageRepository,
    MessageReactionRepository
)
from offgrid.repositories.typing_repo import TypingIndicatorRepository

__all__ = [
    "BaseRepository",
    "ProfileRepository",
    "DiscoverySettingRepository",
    "FriendshipRepository",
    "ConversationRepository",
    "ConversationParticipantRepository",
    "MessageRepository",
    "MessageReactionRepository",
    "TypingIndicatorRepository",
]
