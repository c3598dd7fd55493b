"""
Profile service: first-run setup, profile edits, avatar, presence and
discovery settings.
"""
import logging
from typing import Optional, List

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.websocket import connection_manager
from offgrid.models.profile import Profile, DiscoverySetting, PresenceStatus
from offgrid.repositories.profile_repo import ProfileRepository, DiscoverySettingRepository
from offgrid.schemas.profile import (
    UsernameAvailabilityResponse,
    DiscoverySettingsResponse,
)
from offgrid.services.storage_service import StorageService
from offgrid.services.typing_service import TypingService
from offgrid.utils.datetime_utils import utc_now
from offgrid.utils.validators import (
    USERNAME_MIN_LENGTH,
    normalize_username,
    validate_bio,
    validate_display_name,
    validate_username,
)

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for profile operations."""

    def __init__(self, db: AsyncSession, storage: Optional[StorageService] = None):
        """
        Initialize profile service.

        Args:
            db: Database session
            storage: Object storage (defaults to OSS from settings)
        """
        self.db = db
        self.profile_repo = ProfileRepository(db)
        self.discovery_repo = DiscoverySettingRepository(db)
        self.storage = storage or StorageService()
        self.ws_manager = connection_manager

    async def _notify_profile(self, user_id: str) -> None:
        try:
            await self.ws_manager.invalidate("profiles", "UPDATE", {"id": user_id})
        except Exception as e:
            logger.error(f"Failed to broadcast profile update: {e}")

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        return await self.profile_repo.get(user_id)

    async def get_profile_or_404(self, user_id: str) -> Profile:
        profile = await self.profile_repo.get(user_id)
        if not profile:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Profile not found"
            )
        return profile

    async def check_username(
        self,
        username: str,
        exclude_user_id: Optional[str] = None
    ) -> UsernameAvailabilityResponse:
        """
        Check username availability, case-insensitively.

        Args:
            username: Candidate username
            exclude_user_id: The caller, whose own username counts as available

        Returns:
            Availability with a reason when unavailable
        """
        normalized = normalize_username(username)

        if len(normalized) < USERNAME_MIN_LENGTH:
            return UsernameAvailabilityResponse(
                username=normalized,
                available=False,
                reason=f"Username must be at least {USERNAME_MIN_LENGTH} characters"
            )

        try:
            validate_username(normalized)
        except HTTPException as e:
            return UsernameAvailabilityResponse(username=normalized, available=False, reason=e.detail)

        taken = await self.profile_repo.username_taken(normalized, exclude_user_id)
        return UsernameAvailabilityResponse(
            username=normalized,
            available=not taken,
            reason="Username is already taken" if taken else None
        )

    async def _claim_username(self, username: Optional[str], user_id: str) -> Optional[str]:
        """Validate a username and make sure no one else holds it."""
        if username is None or not username.strip():
            return None

        normalized = validate_username(username)
        if await self.profile_repo.username_taken(normalized, exclude_user_id=user_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username is already taken"
            )
        return normalized

    async def setup_profile(
        self,
        user_id: str,
        display_name: str,
        username: Optional[str] = None,
        bio: Optional[str] = None
    ) -> Profile:
        """
        Create the profile of a new identity.

        Raises:
            HTTPException: 400 invalid fields, 409 profile exists or username taken
        """
        display_name = validate_display_name(display_name)
        bio = validate_bio(bio)

        if await self.profile_repo.exists(user_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Profile already exists"
            )

        username = await self._claim_username(username, user_id)

        try:
            profile = await self.profile_repo.create(
                id=user_id,
                display_name=display_name,
                username=username,
                bio=bio,
                status=PresenceStatus.ONLINE
            )
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username is already taken"
            )

        logger.info(f"Profile created for {user_id}")
        await self._notify_profile(user_id)
        return profile

    async def update_profile(
        self,
        user_id: str,
        display_name: Optional[str] = None,
        username: Optional[str] = None,
        bio: Optional[str] = None,
        privacy_mode: Optional[bool] = None,
        show_online_status: Optional[bool] = None
    ) -> Profile:
        """
        Update profile fields. None leaves a field unchanged; an empty
        username or bio clears it.
        """
        profile = await self.get_profile_or_404(user_id)

        if display_name is not None:
            profile.display_name = validate_display_name(display_name)

        if username is not None:
            profile.username = await self._claim_username(username, user_id)

        if bio is not None:
            profile.bio = validate_bio(bio)

        if privacy_mode is not None:
            profile.privacy_mode = privacy_mode

        if show_online_status is not None:
            profile.status = PresenceStatus.ONLINE if show_online_status else PresenceStatus.OFFLINE
            if not show_online_status:
                profile.last_seen = utc_now()

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username is already taken"
            )

        await self.db.refresh(profile)
        await self._notify_profile(user_id)
        return profile

    async def upload_avatar(self, user_id: str, content: bytes, content_type: str) -> str:
        """
        Store a new avatar and point the profile at it.

        The previous avatar object is removed best effort.

        Returns:
            Public URL of the new avatar

        Raises:
            HTTPException: 413/415 for invalid files, 503 when storage fails
        """
        self.storage.validate_avatar(content, content_type)
        profile = await self.get_profile_or_404(user_id)
        previous_url = profile.avatar_url

        key = self.storage.avatar_key(user_id, content_type)
        uploaded = await self.storage.upload(key, content, content_type)

        profile.avatar_url = uploaded["url"]
        await self.db.flush()

        previous_key = self.storage.key_from_url(previous_url)
        if previous_key and previous_key != key:
            self.storage.remove(previous_key)

        logger.info(f"Avatar updated for {user_id}")
        await self._notify_profile(user_id)
        return uploaded["url"]

    async def get_discovery_settings(self, user_id: str) -> DiscoverySettingsResponse:
        """Discovery settings, defaulting to discoverable when no row exists."""
        setting = await self.discovery_repo.get_for_user(user_id)
        if setting is None:
            return DiscoverySettingsResponse()
        return DiscoverySettingsResponse.model_validate(setting)

    async def update_discovery_settings(
        self,
        user_id: str,
        discoverable: Optional[bool] = None,
        location_sharing: Optional[bool] = None,
        interests: Optional[List[str]] = None
    ) -> DiscoverySetting:
        """Update-or-insert the discovery settings row."""
        await self.get_profile_or_404(user_id)

        values = {}
        if discoverable is not None:
            values["discoverable"] = discoverable
        if location_sharing is not None:
            values["location_sharing"] = location_sharing
        if interests is not None:
            values["interests"] = interests

        setting = await self.discovery_repo.save_for_user(user_id, **values)
        await self._notify_profile(user_id)
        return setting

    async def update_presence(self, user_id: str, presence: PresenceStatus) -> Profile:
        """Set presence; going offline stamps last_seen."""
        last_seen = utc_now() if presence == PresenceStatus.OFFLINE else None
        if not await self.profile_repo.set_presence(user_id, presence, last_seen):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Profile not found"
            )
        await self._notify_profile(user_id)
        return await self.get_profile_or_404(user_id)

    async def go_online(self, user_id: str) -> bool:
        """Mark online if the profile exists (sign-in, socket connect)."""
        updated = await self.profile_repo.set_presence(user_id, PresenceStatus.ONLINE)
        if updated:
            await self._notify_profile(user_id)
        return updated

    async def go_offline(self, user_id: str) -> bool:
        """Mark offline and clear typing flags (sign-out, last socket closed)."""
        updated = await self.profile_repo.set_presence(user_id, PresenceStatus.OFFLINE, utc_now())
        await TypingService(self.db).clear_user(user_id)
        if updated:
            await self._notify_profile(user_id)
        return updated
