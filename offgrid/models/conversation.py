"""
Conversation, ConversationParticipant and ConversationSettings models.

Handles both direct chats and group chats.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from offgrid.models.base import Base, UUIDMixin, TimestampMixin
from offgrid.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from offgrid.models.profile import Profile
    from offgrid.models.message import Message


class ConversationType(str, enum.Enum):
    """Enum for conversation types."""
    DIRECT = "direct"
    GROUP = "group"


def direct_key_for(user_a: str, user_b: str) -> str:
    """Order-independent key identifying the direct chat of a pair."""
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}:{second}"


class Conversation(Base, UUIDMixin, TimestampMixin):
    """
    Conversation model for direct and group chats.

    Direct conversations carry a unique direct_key so that the pair maps to
    exactly one conversation no matter who opens it first.
    """

    __tablename__ = "conversations"

    type: Mapped[ConversationType] = mapped_column(
        SQLEnum(ConversationType, name="conversation_type", native_enum=False,
                values_callable=lambda e: [m.value for m in e]),
        default=ConversationType.DIRECT,
        nullable=False,
        doc="Type of conversation: 'direct' or 'group'"
    )

    # Group metadata (null for direct chats)
    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Group name (null for direct chats)"
    )

    created_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        doc="Profile that created the conversation"
    )

    direct_key: Mapped[Optional[str]] = mapped_column(
        String(80),
        unique=True,
        nullable=True,
        doc="Sorted participant pair for direct chats"
    )

    # Relationships
    participants: Mapped[List["ConversationParticipant"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    messages: Mapped[List["Message"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="select"  # Potentially large collection
    )

    settings: Mapped[Optional["ConversationSettings"]] = relationship(
        back_populates="conversation",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, type={self.type}, name={self.name})>"


class ConversationParticipant(Base, UUIDMixin):
    """
    ConversationParticipant model - membership plus the read cursor.

    last_read_at is advanced by the reader; unread counts are always derived
    from it and never stored.
    """

    __tablename__ = "conversation_participants"

    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        doc="Conversation ID"
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="Participant profile ID"
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        doc="When the user joined the conversation"
    )

    last_read_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        doc="Read cursor"
    )

    # Relationships
    conversation: Mapped["Conversation"] = relationship(back_populates="participants")
    profile: Mapped["Profile"] = relationship(back_populates="participations", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_participant_conversation_user"),
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationParticipant(conversation_id={self.conversation_id}, "
            f"user_id={self.user_id})>"
        )


class ConversationSettings(Base, UUIDMixin, TimestampMixin):
    """Per-conversation ephemeral media settings."""

    __tablename__ = "conversation_settings"

    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        doc="Conversation ID"
    )

    ephemeral_enabled: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
        doc="Send images as ephemeral by default"
    )

    ephemeral_duration_minutes: Mapped[int] = mapped_column(
        default=15,
        nullable=False,
        doc="Lifetime of ephemeral images"
    )

    conversation: Mapped["Conversation"] = relationship(back_populates="settings")

    def __repr__(self) -> str:
        return (
            f"<ConversationSettings(conversation_id={self.conversation_id}, "
            f"ephemeral_enabled={self.ephemeral_enabled})>"
        )


# Indexes for performance
Index("idx_conversation_participants_user", ConversationParticipant.user_id)
Index("idx_conversations_type", Conversation.type)
