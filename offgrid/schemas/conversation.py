"""
Pydantic schemas for conversation requests and responses.
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict

from offgrid.models.conversation import ConversationType
from offgrid.models.message import MessageType
from offgrid.schemas.profile import ProfileSummary


# ============================================================================
# Request Schemas
# ============================================================================

class DirectConversationCreate(BaseModel):
    """Schema for opening the direct chat with a friend."""

    user_id: str = Field(..., min_length=1, description="The other participant")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "123e4567-e89b-12d3-a456-426614174000"
            }
        }


class ConversationSettingsUpdate(BaseModel):
    """Schema for updating ephemeral media settings."""

    ephemeral_enabled: Optional[bool] = None
    ephemeral_duration_minutes: Optional[int] = Field(None, ge=1, le=10080)


# ============================================================================
# Response Schemas
# ============================================================================

class ParticipantResponse(BaseModel):
    """A participant with the read cursor."""

    user_id: str = Field(serialization_alias="userId")
    joined_at: datetime = Field(serialization_alias="joinedAt")
    last_read_at: datetime = Field(serialization_alias="lastReadAt")
    profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ConversationSettingsResponse(BaseModel):
    """Ephemeral media settings of a conversation."""

    ephemeral_enabled: bool = Field(False, serialization_alias="ephemeralEnabled")
    ephemeral_duration_minutes: int = Field(15, serialization_alias="ephemeralDurationMinutes")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class LastMessagePreview(BaseModel):
    """Preview line of the conversation list."""

    id: str
    sender_id: str = Field(serialization_alias="senderId")
    content: Optional[str] = None
    message_type: MessageType = Field(serialization_alias="messageType")
    is_deleted: bool = Field(False, serialization_alias="isDeleted")
    created_at: datetime = Field(serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ConversationResponse(BaseModel):
    """Conversation details with participants and settings."""

    id: str
    type: ConversationType
    name: Optional[str] = None
    created_by: Optional[str] = Field(None, serialization_alias="createdBy")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")
    participants: List[ParticipantResponse] = Field(default_factory=list)
    other_participant: Optional[ProfileSummary] = Field(None, serialization_alias="otherParticipant")
    settings: ConversationSettingsResponse = Field(default_factory=ConversationSettingsResponse)

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ConversationListItem(ConversationResponse):
    """Conversation list entry with preview and unread count."""

    last_message: Optional[LastMessagePreview] = Field(None, serialization_alias="lastMessage")
    unread_count: int = Field(0, serialization_alias="unreadCount")


class ConversationListResponse(BaseModel):
    """Conversations of the caller, most recently active first."""

    data: List[ConversationListItem]
    total: int


class UnreadCountResponse(BaseModel):
    """Unread counter for one conversation or the aggregate badge."""

    conversation_id: Optional[str] = Field(None, serialization_alias="conversationId")
    unread_count: int = Field(serialization_alias="unreadCount")

    model_config = ConfigDict(populate_by_name=True)


class TypingUsersResponse(BaseModel):
    """Users currently typing in a conversation, viewer excluded."""

    conversation_id: str = Field(serialization_alias="conversationId")
    users: List[ProfileSummary] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
