"""
Discovery service for the discover page.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.models.friendship import Friendship
from offgrid.repositories.friendship_repo import FriendshipRepository
from offgrid.repositories.profile_repo import ProfileRepository
from offgrid.schemas.discovery import DiscoverableProfile
from offgrid.services.friendship_service import relationship_from_edges

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Lists profiles the viewer may discover."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.profile_repo = ProfileRepository(db)
        self.friendship_repo = FriendshipRepository(db)

    async def list_discoverable(
        self,
        viewer_id: str,
        query: Optional[str] = None,
        limit: int = 100,
        online_only: bool = False
    ) -> List[DiscoverableProfile]:
        """
        Every profile except the viewer's whose discovery setting is not
        turned off, annotated with the viewer's friendship status.

        Friendship status is informational; friends, pending and blocked
        profiles are all still listed.

        Args:
            viewer_id: Requesting profile
            query: Optional case-insensitive search on display name or username
            limit: Maximum profiles to return
            online_only: Only profiles that are currently online

        Returns:
            Profiles ordered by display name (empty on load failure)
        """
        try:
            profiles = await self.profile_repo.list_discoverable(
                viewer_id, query, limit, online_only=online_only
            )
            edges = await self.friendship_repo.get_edges_touching(viewer_id)
        except Exception as e:
            logger.error(f"Failed to load discoverable profiles for {viewer_id}: {e}")
            return []

        edges_by_other: Dict[str, List[Friendship]] = {}
        for edge in edges:
            other_id = edge.friend_id if edge.user_id == viewer_id else edge.user_id
            edges_by_other.setdefault(other_id, []).append(edge)

        result = []
        for profile in profiles:
            item = DiscoverableProfile.model_validate(profile)
            item.friendship_status = relationship_from_edges(
                viewer_id, edges_by_other.get(profile.id, [])
            )
            result.append(item)
        return result
