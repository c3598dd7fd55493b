"""
Pydantic schema exports.
Provides request/response models for API endpoints.
"""
from offgrid.schemas.conversation import (
    ConversationListItem,
    ConversationListResponse,
    ConversationResponse,
    ConversationSettingsResponse,
    ConversationSettingsUpdate,
    DirectConversationCreate,
    LastMessagePreview,
    ParticipantResponse,
    TypingUsersResponse,
    UnreadCountResponse,
)
from offgrid.schemas.discovery import DiscoverableProfile, DiscoverResponse
from offgrid.schemas.friendship import (
    CountResponse,
    FriendRequestCreate,
    FriendRequestResponse,
    FriendRequestsResponse,
    FriendResponse,
    FriendshipResponse,
    RelationshipStatusResponse,
)
from offgrid.schemas.message import (
    EphemeralState,
    MessageCreate,
    MessageListResponse,
    MessageReactionCreate,
    MessageResponse,
    MessageState,
    MessageUpdate,
    ReactionGroup,
    ReactionToggleResponse,
    RenderedMessage,
)
from offgrid.schemas.profile import (
    AvatarUploadResponse,
    DiscoverySettingsResponse,
    DiscoverySettingsUpdate,
    PresenceUpdateRequest,
    ProfileResponse,
    ProfileSetupRequest,
    ProfileSummary,
    ProfileUpdateRequest,
    UsernameAvailabilityResponse,
)
from offgrid.schemas.session import (
    AuthEvent,
    AuthEventRequest,
    AuthEventResponse,
    NextStep,
    SessionResponse,
)

__all__ = [
    "ConversationListItem",
    "ConversationListResponse",
    "ConversationResponse",
    "ConversationSettingsResponse",
    "ConversationSettingsUpdate",
    "DirectConversationCreate",
    "LastMessagePreview",
    "ParticipantResponse",
    "TypingUsersResponse",
    "UnreadCountResponse",
    "DiscoverableProfile",
    "DiscoverResponse",
    "CountResponse",
    "FriendRequestCreate",
    "FriendRequestResponse",
    "FriendRequestsResponse",
    "FriendResponse",
    "FriendshipResponse",
    "RelationshipStatusResponse",
    "EphemeralState",
    "MessageCreate",
    "MessageListResponse",
    "MessageReactionCreate",
    "MessageResponse",
    "MessageState",
    "MessageUpdate",
    "ReactionGroup",
    "ReactionToggleResponse",
    "RenderedMessage",
    "AvatarUploadResponse",
    "DiscoverySettingsResponse",
    "DiscoverySettingsUpdate",
    "PresenceUpdateRequest",
    "ProfileResponse",
    "ProfileSetupRequest",
    "ProfileSummary",
    "ProfileUpdateRequest",
    "UsernameAvailabilityResponse",
    "AuthEvent",
    "AuthEventRequest",
    "AuthEventResponse",
    "NextStep",
    "SessionResponse",
]
