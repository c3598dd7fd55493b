"""
Profile repository for database operations.
Handles profiles, username lookups, presence and discovery settings.
"""
from datetime import datetime
from typing import Optional, List

from sqlalchemy import select, func, and_, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.models.profile import Profile, DiscoverySetting, PresenceStatus
from offgrid.repositories.base import BaseRepository
from offgrid.utils.validators import escape_like


class ProfileRepository(BaseRepository[Profile]):
    """Repository for profile database operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(Profile, db)

    async def username_taken(self, username: str, exclude_user_id: Optional[str] = None) -> bool:
        """
        Check whether a username is used by another profile.

        Args:
            username: Username to check
            exclude_user_id: Profile allowed to hold the username (the owner editing it)

        Returns:
            True if another profile holds the username
        """
        query = (
            select(func.count())
            .select_from(Profile)
            .where(func.lower(Profile.username) == username.strip().lower())
        )
        if exclude_user_id:
            query = query.where(Profile.id != exclude_user_id)

        result = await self.db.execute(query)
        return result.scalar() > 0

    async def list_discoverable(
        self,
        viewer_id: str,
        search: Optional[str] = None,
        limit: int = 100,
        online_only: bool = False
    ) -> List[Profile]:
        """
        Profiles visible in discovery for the viewer.

        A profile is visible when it has no discovery settings row or when
        its row has discoverable = true. The viewer is always excluded.

        Args:
            viewer_id: Requesting profile ID
            search: Optional case-insensitive match on display name or username
            limit: Maximum profiles to return
            online_only: Only profiles whose presence is online

        Returns:
            Profiles ordered by display name
        """
        query = (
            select(Profile)
            .outerjoin(DiscoverySetting, DiscoverySetting.user_id == Profile.id)
            .where(
                and_(
                    Profile.id != viewer_id,
                    or_(
                        DiscoverySetting.id.is_(None),
                        DiscoverySetting.discoverable.is_(True)
                    )
                )
            )
        )

        if search:
            pattern = f"%{escape_like(search.strip().lower())}%"
            query = query.where(
                or_(
                    func.lower(Profile.display_name).like(pattern, escape="\\"),
                    func.lower(Profile.username).like(pattern, escape="\\")
                )
            )

        if online_only:
            query = query.where(Profile.status == PresenceStatus.ONLINE)

        query = query.order_by(Profile.display_name, Profile.id).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def set_presence(
        self,
        user_id: str,
        status: PresenceStatus,
        last_seen: Optional[datetime] = None
    ) -> bool:
        """
        Update presence fields without loading the profile.

        Args:
            user_id: Profile ID
            status: New presence status
            last_seen: Optional last-seen timestamp

        Returns:
            True if the profile exists
        """
        values = {"status": status}
        if last_seen is not None:
            values["last_seen"] = last_seen

        result = await self.db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(**values)
        )
        await self.db.flush()
        return result.rowcount > 0


class DiscoverySettingRepository(BaseRepository[DiscoverySetting]):
    """Repository for discovery settings."""

    def __init__(self, db: AsyncSession):
        super().__init__(DiscoverySetting, db)

    async def get_for_user(self, user_id: str) -> Optional[DiscoverySetting]:
        """Get the discovery settings row of a profile, if any."""
        result = await self.db.execute(
            select(DiscoverySetting).where(DiscoverySetting.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def save_for_user(self, user_id: str, **values) -> DiscoverySetting:
        """
        Update the settings row, inserting it on first save.

        Args:
            user_id: Owner profile ID
            **values: discoverable / location_sharing / interests

        Returns:
            Stored settings row
        """
        existing = await self.get_for_user(user_id)
        if existing is None:
            return await self.create(user_id=user_id, **values)

        for key, value in values.items():
            setattr(existing, key, value)
        await self.db.flush()
        await self.db.refresh(existing)
        return existing
