"""
Friendship API routes.
Provides endpoints for friend requests, friends, blocks and relationship status.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from offgrid.config import settings
from offgrid.core.database import get_db
from offgrid.dependencies import require_profile
from offgrid.schemas.friendship import (
    CountResponse,
    FriendRequestCreate,
    FriendRequestsResponse,
    FriendResponse,
    FriendshipResponse,
    RelationshipStatusResponse,
)
from offgrid.services.friendship_service import FriendshipService
from offgrid.services.session_service import Session

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get(
    "/",
    response_model=List[FriendResponse],
    summary="List friends",
    description="Accepted friends of the caller, one entry per friend."
)
async def list_friends(
    q: Optional[str] = Query(None, description="Search display name or username"),
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await FriendshipService(db).list_friends(session.user_id, q)


@router.get(
    "/requests",
    response_model=FriendRequestsResponse,
    summary="List pending friend requests"
)
async def list_requests(
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await FriendshipService(db).list_requests(session.user_id)


@router.get(
    "/requests/count",
    response_model=CountResponse,
    summary="Count incoming friend requests"
)
async def count_incoming_requests(
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    count = await FriendshipService(db).pending_incoming_count(session.user_id)
    return CountResponse(count=count)


@router.post(
    "/requests",
    response_model=FriendshipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a friend request",
    description="Fails with 409 when any relationship already exists between the pair."
)
@limiter.limit(settings.rate_limit_friend_requests)
async def send_friend_request(
    request: Request,
    payload: FriendRequestCreate,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Send a friend request.

    - **friend_id**: Profile ID of the recipient
    """
    return await FriendshipService(db).send_request(session.user_id, payload.friend_id)


@router.post(
    "/requests/{request_id}/accept",
    response_model=FriendshipResponse,
    summary="Accept a friend request",
    description="Only the recipient may accept. Retrying an accept is harmless."
)
async def accept_friend_request(
    request_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await FriendshipService(db).accept_request(request_id, session.user_id)


@router.post(
    "/requests/{request_id}/decline",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Decline a friend request"
)
async def decline_friend_request(
    request_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    await FriendshipService(db).decline_request(request_id, session.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/requests/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel a sent friend request"
)
async def cancel_friend_request(
    request_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    await FriendshipService(db).cancel_request(request_id, session.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/status/{user_id}",
    response_model=RelationshipStatusResponse,
    summary="Relationship status with another profile"
)
async def get_relationship_status(
    user_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    relationship = await FriendshipService(db).get_relationship_status(session.user_id, user_id)
    return RelationshipStatusResponse(user_id=user_id, status=relationship)


@router.post(
    "/{user_id}/block",
    response_model=FriendshipResponse,
    summary="Block a profile",
    description="Replaces any friendship or pending request with a block."
)
async def block_user(
    user_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await FriendshipService(db).block_user(session.user_id, user_id)


@router.delete(
    "/{user_id}/block",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unblock a profile",
    description="Only the profile that set the block can lift it."
)
async def unblock_user(
    user_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    await FriendshipService(db).unblock_user(session.user_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{friend_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a friend",
    description="Removes the friendship in both directions."
)
async def remove_friend(
    friend_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    await FriendshipService(db).remove_friend(session.user_id, friend_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
