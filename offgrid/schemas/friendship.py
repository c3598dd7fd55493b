"""
Pydantic schemas for friend requests and friendships.
"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, ConfigDict

from offgrid.models.friendship import FriendshipStatus, RelationshipStatus
from offgrid.schemas.profile import ProfileSummary


class FriendRequestCreate(BaseModel):
    """Schema for sending a friend request."""

    friend_id: str = Field(..., min_length=1, description="Profile ID of the recipient")

    class Config:
        json_schema_extra = {
            "example": {
                "friend_id": "123e4567-e89b-12d3-a456-426614174000"
            }
        }


class FriendshipResponse(BaseModel):
    """A single directional friendship edge."""

    id: str
    user_id: str = Field(serialization_alias="userId")
    friend_id: str = Field(serialization_alias="friendId")
    status: FriendshipStatus
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class FriendResponse(BaseModel):
    """An accepted friend with their profile."""

    friendship_id: str = Field(serialization_alias="friendshipId")
    since: datetime
    profile: ProfileSummary

    model_config = ConfigDict(populate_by_name=True)


class FriendRequestResponse(BaseModel):
    """A pending request with the counterpart's profile."""

    id: str
    direction: str = Field(..., description="incoming or outgoing")
    created_at: datetime = Field(serialization_alias="createdAt")
    profile: ProfileSummary

    model_config = ConfigDict(populate_by_name=True)


class FriendRequestsResponse(BaseModel):
    """Incoming and outgoing pending requests."""

    incoming: List[FriendRequestResponse] = Field(default_factory=list)
    outgoing: List[FriendRequestResponse] = Field(default_factory=list)


class RelationshipStatusResponse(BaseModel):
    """Friendship state of a pair as seen by the viewer."""

    user_id: str = Field(serialization_alias="userId")
    status: RelationshipStatus

    model_config = ConfigDict(populate_by_name=True)


class CountResponse(BaseModel):
    """Badge counter."""

    count: int
