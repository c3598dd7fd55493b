"""
Profile API routes.
Provides endpoints for profile setup, edits, avatar upload, presence and
discovery settings.
"""
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.database import get_db
from offgrid.dependencies import get_current_session, require_profile
from offgrid.schemas.profile import (
    AvatarUploadResponse,
    DiscoverySettingsResponse,
    DiscoverySettingsUpdate,
    PresenceUpdateRequest,
    ProfileResponse,
    ProfileSetupRequest,
    ProfileSummary,
    ProfileUpdateRequest,
    UsernameAvailabilityResponse,
)
from offgrid.services.profile_service import ProfileService
from offgrid.services.session_service import Session
from offgrid.services.storage_service import StorageService, get_storage_service

router = APIRouter()


@router.post(
    "/setup",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Set up the caller's profile",
    description="First-run step after email confirmation. Fails with 409 if the profile already exists."
)
async def setup_profile(
    payload: ProfileSetupRequest,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """
    Create the caller's profile.

    - **display_name**: Required
    - **username**: Optional, unique, stored lower-case
    - **bio**: Optional, max 200 characters
    """
    if not session.email_confirmed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email address not confirmed"
        )

    return await ProfileService(db).setup_profile(
        user_id=session.user_id,
        display_name=payload.display_name,
        username=payload.username,
        bio=payload.bio
    )


@router.get(
    "/username-availability",
    response_model=UsernameAvailabilityResponse,
    summary="Check username availability"
)
async def check_username(
    username: str = Query(..., description="Candidate username"),
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Case-insensitive check; the caller's own username counts as available."""
    return await ProfileService(db).check_username(username, exclude_user_id=session.user_id)


@router.get(
    "/me",
    response_model=ProfileResponse,
    summary="Get the caller's profile"
)
async def get_my_profile(session: Session = Depends(require_profile)):
    return session.profile


@router.patch(
    "/me",
    response_model=ProfileResponse,
    summary="Update the caller's profile",
    description="Omitted fields are left unchanged. An empty username or bio clears it."
)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ProfileService(db).update_profile(
        session.user_id,
        display_name=payload.display_name,
        username=payload.username,
        bio=payload.bio,
        privacy_mode=payload.privacy_mode,
        show_online_status=payload.show_online_status
    )


@router.post(
    "/me/avatar",
    response_model=AvatarUploadResponse,
    summary="Upload a new avatar",
    description="JPEG, PNG, WebP or GIF up to 5MB. Replaces (and removes) the previous avatar."
)
async def upload_avatar(
    file: UploadFile = File(..., description="Avatar image"),
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service)
):
    content = await file.read()
    url = await ProfileService(db, storage).upload_avatar(
        session.user_id, content, file.content_type or ""
    )
    return AvatarUploadResponse(avatar_url=url)


@router.put(
    "/me/presence",
    response_model=ProfileResponse,
    summary="Set presence"
)
async def update_presence(
    payload: PresenceUpdateRequest,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ProfileService(db).update_presence(session.user_id, payload.status)


@router.get(
    "/me/discovery",
    response_model=DiscoverySettingsResponse,
    summary="Get discovery settings"
)
async def get_discovery_settings(
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ProfileService(db).get_discovery_settings(session.user_id)


@router.put(
    "/me/discovery",
    response_model=DiscoverySettingsResponse,
    summary="Update discovery settings"
)
async def update_discovery_settings(
    payload: DiscoverySettingsUpdate,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ProfileService(db).update_discovery_settings(
        session.user_id,
        discoverable=payload.discoverable,
        location_sharing=payload.location_sharing,
        interests=payload.interests
    )


@router.get(
    "/{user_id}",
    response_model=ProfileSummary,
    summary="Get a profile by ID"
)
async def get_profile(
    user_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ProfileService(db).get_profile_or_404(user_id)
