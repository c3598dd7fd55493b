"""
SQLAlchemy models for the OffGrid messaging application.

All models must be imported here for Alembic auto-generation to work.
"""

# Import Base first
from offgrid.models.base import Base, TimestampMixin, UUIDMixin, generate_id

# Import all models (order matters for relationships)
from offgrid.models.profile import Profile, DiscoverySetting, PresenceStatus
from offgrid.models.friendship import Friendship, FriendshipStatus, RelationshipStatus
from offgrid.models.conversation import (
    Conversation,
    ConversationParticipant,
    ConversationSettings,
    ConversationType,
    direct_key_for,
)
from offgrid.models.message import Message, MessageReaction, MessageType, DELETED_MESSAGE_SENTINEL
from offgrid.models.typing_indicator import TypingIndicator

# Export all models and enums
__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "generate_id",
    # Profiles
    "Profile",
    "DiscoverySetting",
    "PresenceStatus",
    # Friendships
    "Friendship",
    "FriendshipStatus",
    "RelationshipStatus",
    # Conversations
    "Conversation",
    "ConversationParticipant",
    "ConversationSettings",
    "ConversationType",
    "direct_key_for",
    # Messages
    "Message",
    "MessageReaction",
    "MessageType",
    "DELETED_MESSAGE_SENTINEL",
    # Typing
    "TypingIndicator",
]
