"""
Discover API routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.database import get_db
from offgrid.dependencies import get_pagination_params, require_profile
from offgrid.schemas.discovery import DiscoverResponse
from offgrid.services.discovery_service import DiscoveryService
from offgrid.services.session_service import Session

router = APIRouter()


@router.get(
    "/",
    response_model=DiscoverResponse,
    summary="Discover profiles",
    description="Profiles other than the caller's that have not opted out of discovery."
)
async def discover_profiles(
    q: Optional[str] = Query(None, description="Search display name or username"),
    online_only: bool = Query(False, description="Only profiles that are online now"),
    pagination: dict = Depends(get_pagination_params),
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    List discoverable profiles annotated with the caller's friendship status.

    Search-as-you-type clients should use the `discover_search` socket
    event instead, which discards superseded results.
    """
    profiles = await DiscoveryService(db).list_discoverable(
        session.user_id, q, limit=pagination["limit"], online_only=online_only
    )
    return DiscoverResponse(data=profiles, total=len(profiles))
