"""
TypingIndicator model.

Liveness signal only: rows are upserted on keystrokes and cleared after a
short inactivity timeout.
"""
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from offgrid.models.base import Base
from offgrid.utils.datetime_utils import utc_now


class TypingIndicator(Base):
    """Per-conversation "is typing" flag for one user."""

    __tablename__ = "typing_indicators"

    # Composite primary key
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        primary_key=True,
        doc="Conversation ID"
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
        doc="Typing profile ID"
    )

    is_typing: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
        doc="Whether the user is currently typing"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        doc="Last keystroke or clear"
    )

    def __repr__(self) -> str:
        return (
            f"<TypingIndicator(conversation_id={self.conversation_id}, "
            f"user_id={self.user_id}, is_typing={self.is_typing})>"
        )
