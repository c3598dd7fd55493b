"""
Message and MessageReaction models.

Handles text, image, file and system messages plus emoji reactions.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from offgrid.models.base import Base, TimestampMixin, UUIDMixin
from offgrid.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from offgrid.models.profile import Profile
    from offgrid.models.conversation import Conversation


# Content written over a message when its sender deletes it
DELETED_MESSAGE_SENTINEL = "[Message deleted]"


class MessageType(str, enum.Enum):
    """Enum for message types."""
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class Message(Base, UUIDMixin, TimestampMixin):
    """
    Message model for all message types.

    Deleted messages are kept (is_deleted + sentinel content) so the
    conversation timeline stays continuous.
    """

    __tablename__ = "messages"

    # References
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Conversation this message belongs to"
    )

    sender_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Profile that sent the message"
    )

    # Message content
    content: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Message text content (null for attachments)"
    )

    message_type: Mapped[MessageType] = mapped_column(
        SQLEnum(MessageType, name="message_type", native_enum=False,
                values_callable=lambda e: [m.value for m in e]),
        default=MessageType.TEXT,
        nullable=False,
        doc="Type of message: text, image, file or system"
    )

    # Attachment
    file_url: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
        doc="Public URL of the stored attachment"
    )

    file_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Original attachment file name"
    )

    file_size: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        doc="Attachment size in bytes"
    )

    ephemeral_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="After this moment the payload renders as expired"
    )

    # Threading
    reply_to_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("messages.id", ondelete="SET NULL"),
        nullable=True,
        doc="ID of message this is replying to"
    )

    # Message state
    is_edited: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
        doc="Whether the message has been edited"
    )

    edited_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the message was last edited"
    )

    is_deleted: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
        doc="Soft delete flag"
    )

    # Relationships
    conversation: Mapped["Conversation"] = relationship(back_populates="messages")
    sender: Mapped["Profile"] = relationship(foreign_keys=[sender_id], lazy="selectin")

    reply_to: Mapped[Optional["Message"]] = relationship(
        remote_side="Message.id",
        foreign_keys=[reply_to_id]
    )

    reactions: Mapped[List["MessageReaction"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MessageReaction.created_at"
    )

    def __repr__(self) -> str:
        content_preview = self.content[:50] if self.content else f"<{self.message_type}>"
        return f"<Message(id={self.id}, type={self.message_type}, content='{content_preview}')>"


class MessageReaction(Base, UUIDMixin):
    """
    MessageReaction model - emoji reactions to messages.

    Each user can react with several different emojis to the same message,
    but only once per emoji.
    """

    __tablename__ = "message_reactions"

    message_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Message ID"
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="Reacting profile ID"
    )

    emoji: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        doc="Emoji reaction (e.g. '👍', '❤️')"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        doc="When the reaction was added"
    )

    # Relationships
    message: Mapped["Message"] = relationship(back_populates="reactions")
    profile: Mapped["Profile"] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", "emoji", name="uq_message_user_emoji"),
    )

    def __repr__(self) -> str:
        return f"<MessageReaction(message_id={self.message_id}, user_id={self.user_id}, emoji={self.emoji})>"


# Composite index for timeline queries
Index("idx_messages_conversation_created", Message.conversation_id, Message.created_at)
