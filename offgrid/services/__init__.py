"""
Service layer exports.
Provides business logic for the application.
"""
from offgrid.services.conversation_service import ConversationService
from offgrid.services.discovery_service import DiscoveryService
from offgrid.services.friendship_service import FriendshipService
from offgrid.services.message_service import MessageService
from offgrid.services.profile_service import ProfileService
from offgrid.services.session_service import Session, SessionService
from offgrid.services.storage_service import StorageService
from offgrid.services.typing_service import TypingDebouncer, TypingService

__all__ = [
    "ConversationService",
    "DiscoveryService",
    "FriendshipService",
    "MessageService",
    "ProfileService",
    "Session",
    "SessionService",
    "StorageService",
    "TypingDebouncer",
    "TypingService",
]
