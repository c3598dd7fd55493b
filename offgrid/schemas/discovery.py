"""
Pydantic schemas for the discover page.
"""
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict

from offgrid.models.friendship import RelationshipStatus
from offgrid.models.profile import PresenceStatus


class DiscoverableProfile(BaseModel):
    """A visible profile annotated with the viewer's friendship status."""

    id: str
    username: Optional[str] = None
    display_name: str = Field(serialization_alias="displayName")
    bio: Optional[str] = None
    avatar_url: Optional[str] = Field(None, serialization_alias="avatarUrl")
    status: PresenceStatus
    friendship_status: RelationshipStatus = Field(
        RelationshipStatus.NONE,
        serialization_alias="friendshipStatus"
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class DiscoverResponse(BaseModel):
    """Discover page result."""

    data: List[DiscoverableProfile]
    total: int
