"""
Pydantic schemas for message requests and responses.
Handles validation for message-related API endpoints.
"""
import enum
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, ConfigDict

from offgrid.models.message import MessageType
from offgrid.schemas.profile import ProfileSummary


class MessageState(str, enum.Enum):
    """Lifecycle state of a message as rendered."""
    ACTIVE = "active"
    EDITED = "edited"
    DELETED = "deleted"


class EphemeralState(str, enum.Enum):
    """Ephemeral state of a message at render time."""
    NONE = "none"
    PENDING = "pending"
    EXPIRED = "expired"


# ============================================================================
# Request Schemas
# ============================================================================

class MessageCreate(BaseModel):
    """Schema for sending a text message."""

    content: str = Field(..., min_length=1, max_length=10000, description="Message text content")
    reply_to_id: Optional[str] = Field(None, description="ID of message being replied to")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Ensure content is not empty or whitespace."""
        if len(v.strip()) == 0:
            raise ValueError("Content cannot be empty or whitespace only")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "content": "Hello, how are you?",
                "reply_to_id": None
            }
        }


class MessageUpdate(BaseModel):
    """Schema for editing a message."""

    content: str = Field(..., min_length=1, max_length=10000, description="Updated message content")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Ensure content is not empty or whitespace."""
        if len(v.strip()) == 0:
            raise ValueError("Content cannot be empty or whitespace only")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "content": "Updated message content"
            }
        }


class MessageReactionCreate(BaseModel):
    """Schema for toggling a reaction on a message."""

    emoji: str = Field(..., min_length=1, max_length=32, description="Emoji reaction")

    @field_validator("emoji")
    @classmethod
    def validate_emoji(cls, v: str) -> str:
        """Basic emoji validation."""
        if not v or len(v.strip()) == 0:
            raise ValueError("Emoji cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "emoji": "👍"
            }
        }


# ============================================================================
# Response Schemas
# ============================================================================

class MessageResponse(BaseModel):
    """Schema for a stored message row."""

    id: str
    conversation_id: str = Field(serialization_alias="conversationId")
    sender_id: str = Field(serialization_alias="senderId")
    content: Optional[str] = None
    message_type: MessageType = Field(serialization_alias="messageType")
    file_url: Optional[str] = Field(None, serialization_alias="fileUrl")
    file_name: Optional[str] = Field(None, serialization_alias="fileName")
    file_size: Optional[int] = Field(None, serialization_alias="fileSize")
    ephemeral_expires_at: Optional[datetime] = Field(None, serialization_alias="ephemeralExpiresAt")
    reply_to_id: Optional[str] = Field(None, serialization_alias="replyToId")
    is_edited: bool = Field(False, serialization_alias="isEdited")
    edited_at: Optional[datetime] = Field(None, serialization_alias="editedAt")
    is_deleted: bool = Field(False, serialization_alias="isDeleted")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ReactionGroup(BaseModel):
    """Reactions of one emoji with the reacting users."""

    emoji: str
    count: int
    user_ids: List[str] = Field(default_factory=list, serialization_alias="userIds")
    users: List[ProfileSummary] = Field(default_factory=list)
    reacted_by_viewer: bool = Field(False, serialization_alias="reactedByViewer")

    model_config = ConfigDict(populate_by_name=True)


class RenderedMessage(MessageResponse):
    """
    A message as shown in the conversation view.

    content and file_url are already suppressed according to the deleted
    and ephemeral states; the raw row is never exposed through this schema.
    """

    sender: Optional[ProfileSummary] = None
    state: MessageState
    ephemeral_state: EphemeralState = Field(serialization_alias="ephemeralState")
    is_own: bool = Field(serialization_alias="isOwn")
    can_edit: bool = Field(serialization_alias="canEdit")
    show_avatar: bool = Field(serialization_alias="showAvatar")
    show_timestamp: bool = Field(serialization_alias="showTimestamp")
    date_separator: Optional[str] = Field(None, serialization_alias="dateSeparator")
    reactions: List[ReactionGroup] = Field(default_factory=list)


class MessageListResponse(BaseModel):
    """Rendered messages of a conversation in display order."""

    data: List[RenderedMessage]
    total: int


class ReactionToggleResponse(BaseModel):
    """Outcome of a reaction toggle."""

    message_id: str = Field(serialization_alias="messageId")
    emoji: str
    reacted: bool
    reactions: List[ReactionGroup] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
