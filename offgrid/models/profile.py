"""
Profile and DiscoverySetting models.

A profile is created once per auth identity during the profile-setup step
and is only ever mutated by its owner.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from offgrid.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from offgrid.models.conversation import ConversationParticipant


class PresenceStatus(str, enum.Enum):
    """Enum for presence states shown next to avatars."""
    ONLINE = "online"
    OFFLINE = "offline"
    AWAY = "away"


class Profile(Base, TimestampMixin):
    """
    Profile model keyed by the auth provider's user id.

    Usernames are optional, unique, and stored lower-case so that lookups
    are case-insensitive.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        doc="Auth provider user id"
    )

    username: Mapped[Optional[str]] = mapped_column(
        String(50),
        unique=True,
        nullable=True,
        index=True,
        doc="Unique lower-case username"
    )

    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Name shown across the app"
    )

    bio: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Short bio (max 200 characters)"
    )

    avatar_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        doc="Public URL of the avatar object"
    )

    status: Mapped[PresenceStatus] = mapped_column(
        SQLEnum(PresenceStatus, name="presence_status", native_enum=False,
                values_callable=lambda e: [m.value for m in e]),
        default=PresenceStatus.OFFLINE,
        nullable=False,
        doc="Presence: online, offline or away"
    )

    last_seen: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Last time the user went offline"
    )

    privacy_mode: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
        doc="Hide presence details from other users"
    )

    # Relationships
    discovery_setting: Mapped[Optional["DiscoverySetting"]] = relationship(
        back_populates="profile",
        uselist=False,
        cascade="all, delete-orphan"
    )

    participations: Mapped[List["ConversationParticipant"]] = relationship(
        back_populates="profile",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, username={self.username}, display_name={self.display_name})>"


class DiscoverySetting(Base, UUIDMixin, TimestampMixin):
    """
    DiscoverySetting model - opt-in visibility in the discover page.

    A missing row means the profile is discoverable.
    """

    __tablename__ = "discovery_settings"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        doc="Owner profile id"
    )

    discoverable: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
        doc="Whether the profile appears in discovery"
    )

    location_sharing: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
        doc="Location sharing opt-in"
    )

    interests: Mapped[Optional[list]] = mapped_column(
        JSON,
        nullable=True,
        doc="Free-form interest tags"
    )

    profile: Mapped["Profile"] = relationship(back_populates="discovery_setting")

    def __repr__(self) -> str:
        return f"<DiscoverySetting(user_id={self.user_id}, discoverable={self.discoverable})>"
