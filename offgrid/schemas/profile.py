"""
Pydantic schemas for profiles, presence and discovery settings.
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

from offgrid.models.profile import PresenceStatus


# ============================================================================
# Request Schemas
# ============================================================================

class ProfileSetupRequest(BaseModel):
    """Schema for the first-run profile setup step."""

    display_name: str = Field(..., min_length=1, max_length=100, description="Name shown across the app")
    username: Optional[str] = Field(None, max_length=50, description="Optional unique username")
    bio: Optional[str] = Field(None, description="Short bio (max 200 characters)")

    class Config:
        json_schema_extra = {
            "example": {
                "display_name": "Ada Lovelace",
                "username": "ada",
                "bio": "Analytical engines and poetry"
            }
        }


class ProfileUpdateRequest(BaseModel):
    """Schema for profile edits from the settings page. Omitted fields are left untouched."""

    display_name: Optional[str] = Field(None, max_length=100)
    username: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = None
    privacy_mode: Optional[bool] = None
    show_online_status: Optional[bool] = Field(None, description="Maps to presence online/offline")


class PresenceUpdateRequest(BaseModel):
    """Schema for presence changes."""

    status: PresenceStatus


class DiscoverySettingsUpdate(BaseModel):
    """Schema for updating discovery settings."""

    discoverable: Optional[bool] = None
    location_sharing: Optional[bool] = None
    interests: Optional[List[str]] = Field(None, max_length=50)

    @field_validator("interests")
    @classmethod
    def clean_interests(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Drop blank tags and surrounding whitespace."""
        if v is None:
            return v
        return [tag.strip() for tag in v if tag and tag.strip()]


# ============================================================================
# Response Schemas
# ============================================================================

class ProfileSummary(BaseModel):
    """Compact profile embedded in other responses."""

    id: str
    username: Optional[str] = None
    display_name: str = Field(serialization_alias="displayName")
    avatar_url: Optional[str] = Field(None, serialization_alias="avatarUrl")
    status: PresenceStatus = PresenceStatus.OFFLINE

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ProfileResponse(BaseModel):
    """Full profile of the signed-in user."""

    id: str
    username: Optional[str] = None
    display_name: str = Field(serialization_alias="displayName")
    bio: Optional[str] = None
    avatar_url: Optional[str] = Field(None, serialization_alias="avatarUrl")
    status: PresenceStatus
    last_seen: Optional[datetime] = Field(None, serialization_alias="lastSeen")
    privacy_mode: bool = Field(serialization_alias="privacyMode")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class UsernameAvailabilityResponse(BaseModel):
    """Result of a username availability check."""

    username: str
    available: bool
    reason: Optional[str] = None


class AvatarUploadResponse(BaseModel):
    """Result of an avatar upload."""

    avatar_url: str = Field(serialization_alias="avatarUrl")

    model_config = ConfigDict(populate_by_name=True)


class DiscoverySettingsResponse(BaseModel):
    """Discovery settings of a profile (defaults when no row exists)."""

    discoverable: bool = True
    location_sharing: bool = Field(False, serialization_alias="locationSharing")
    interests: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_validator("interests", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []
