"""
Friendship model.

Edges are directional: a pending request is a single row owned by the sender,
an accepted friendship is two rows, one per direction.
"""
import enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from offgrid.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from offgrid.models.profile import Profile


class FriendshipStatus(str, enum.Enum):
    """Enum for friendship edge states."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


class RelationshipStatus(str, enum.Enum):
    """Friendship state of a pair as seen by one of its members."""
    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


class Friendship(Base, UUIDMixin, TimestampMixin):
    """
    Friendship edge between two profiles.

    user_id is the initiator for pending rows; for accepted friendships a
    reciprocal row exists with the ids swapped.
    """

    __tablename__ = "friends"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="Edge owner (request sender)"
    )

    friend_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="Edge target (request receiver)"
    )

    status: Mapped[FriendshipStatus] = mapped_column(
        SQLEnum(FriendshipStatus, name="friendship_status", native_enum=False,
                values_callable=lambda e: [m.value for m in e]),
        default=FriendshipStatus.PENDING,
        nullable=False,
        doc="pending, accepted or blocked"
    )

    # Relationships
    user: Mapped["Profile"] = relationship(foreign_keys=[user_id], lazy="selectin")
    friend: Mapped["Profile"] = relationship(foreign_keys=[friend_id], lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "friend_id", name="uq_friends_user_friend"),
    )

    def __repr__(self) -> str:
        return f"<Friendship(user_id={self.user_id}, friend_id={self.friend_id}, status={self.status})>"


# Indexes for performance
Index("idx_friends_friend_status", Friendship.friend_id, Friendship.status)
Index("idx_friends_user_status", Friendship.user_id, Friendship.status)
