"""
Pydantic schemas for the session and auth events.
"""
import enum
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from offgrid.schemas.profile import ProfileResponse


class NextStep(str, enum.Enum):
    """Where a signed-in identity goes next."""
    VERIFY_EMAIL = "verify_email"
    SETUP_PROFILE = "setup_profile"
    DASHBOARD = "dashboard"


class AuthEvent(str, enum.Enum):
    """Auth state changes reported by the client's auth provider."""
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class SessionResponse(BaseModel):
    """The explicit session of the caller."""

    user_id: str = Field(serialization_alias="userId")
    email: Optional[str] = None
    email_confirmed: bool = Field(serialization_alias="emailConfirmed")
    next_step: NextStep = Field(serialization_alias="nextStep")
    profile: Optional[ProfileResponse] = None

    model_config = ConfigDict(populate_by_name=True)


class AuthEventRequest(BaseModel):
    """Schema for reporting an auth event."""

    event: AuthEvent


class AuthEventResponse(BaseModel):
    """Outcome of an auth event."""

    event: AuthEvent
    next_step: NextStep = Field(serialization_alias="nextStep")

    model_config = ConfigDict(populate_by_name=True)
