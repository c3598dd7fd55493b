"""
Friendship service containing the friend request state machine.

States per unordered pair: none -> pending(sender) -> accepted (one row per
direction) or back to none (decline/cancel), or blocked.
"""
import logging
from typing import List, Optional, Dict

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.websocket import connection_manager
from offgrid.models.friendship import Friendship, FriendshipStatus, RelationshipStatus
from offgrid.repositories.friendship_repo import FriendshipRepository
from offgrid.repositories.profile_repo import ProfileRepository
from offgrid.schemas.friendship import (
    FriendResponse,
    FriendRequestResponse,
    FriendRequestsResponse,
)
from offgrid.schemas.profile import ProfileSummary

logger = logging.getLogger(__name__)


def relationship_from_edges(viewer_id: str, edges: List[Friendship]) -> RelationshipStatus:
    """
    Collapse the edges of a pair into the viewer's relationship status.

    Accepted wins over pending; a block in either direction wins over all.
    """
    status_by_direction: Dict[str, FriendshipStatus] = {}
    for edge in edges:
        direction = "out" if edge.user_id == viewer_id else "in"
        status_by_direction[direction] = edge.status

    values = set(status_by_direction.values())
    if FriendshipStatus.BLOCKED in values:
        return RelationshipStatus.BLOCKED
    if FriendshipStatus.ACCEPTED in values:
        return RelationshipStatus.ACCEPTED
    if status_by_direction.get("out") == FriendshipStatus.PENDING:
        return RelationshipStatus.PENDING_SENT
    if status_by_direction.get("in") == FriendshipStatus.PENDING:
        return RelationshipStatus.PENDING_RECEIVED
    return RelationshipStatus.NONE


def profile_matches(profile, query: Optional[str]) -> bool:
    """Case-insensitive substring match on display name or username; no query matches all."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(
        needle in (value or "").lower()
        for value in (profile.display_name, profile.username)
    )


class FriendshipService:
    """Service for friend requests and friendships."""

    def __init__(self, db: AsyncSession):
        """
        Initialize friendship service.

        Args:
            db: Database session
        """
        self.db = db
        self.friendship_repo = FriendshipRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.ws_manager = connection_manager

    async def _notify(self, user_ids: List[str], event: str, friendship_id: Optional[str] = None) -> None:
        """Invalidate the friends resources of both parties."""
        try:
            await self.ws_manager.notify_users(user_ids, "friends", event, {"id": friendship_id})
        except Exception as e:
            logger.error(f"Failed to broadcast friends {event}: {e}")

    async def _get_request_or_404(self, request_id: str) -> Friendship:
        request = await self.friendship_repo.get(request_id)
        if not request:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Friend request not found"
            )
        return request

    async def send_request(self, from_user_id: str, to_user_id: str) -> Friendship:
        """
        Send a friend request.

        Args:
            from_user_id: Sender
            to_user_id: Recipient

        Returns:
            The pending request row

        Raises:
            HTTPException: 400 to self, 404 unknown recipient, 409 existing relationship
        """
        if from_user_id == to_user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot send a friend request to yourself"
            )

        if not await self.profile_repo.exists(to_user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        existing = await self.friendship_repo.get_pair_edges(from_user_id, to_user_id)
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Friend request already exists"
            )

        try:
            request = await self.friendship_repo.create(
                user_id=from_user_id,
                friend_id=to_user_id,
                status=FriendshipStatus.PENDING
            )
        except IntegrityError:
            # Lost a race against an identical request
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Friend request already exists"
            )

        logger.info(f"Friend request {request.id}: {from_user_id} -> {to_user_id}")
        await self._notify([from_user_id, to_user_id], "INSERT", request.id)
        return request

    async def accept_request(self, request_id: str, user_id: str) -> Friendship:
        """
        Accept a pending request addressed to user_id.

        Marks the request accepted and writes the reciprocal accepted row.
        Retrying an accept is a no-op that returns the same row.

        Raises:
            HTTPException: 404 missing, 403 not the receiver, 409 blocked
        """
        request = await self._get_request_or_404(request_id)

        if request.friend_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the recipient can accept this request"
            )

        if request.status == FriendshipStatus.BLOCKED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Friend request is no longer pending"
            )

        if request.status != FriendshipStatus.ACCEPTED:
            request.status = FriendshipStatus.ACCEPTED
            await self.db.flush()

        await self.friendship_repo.insert_reciprocal(request.friend_id, request.user_id)
        await self.db.refresh(request)

        logger.info(f"Friend request {request.id} accepted by {user_id}")
        await self._notify([request.user_id, request.friend_id], "UPDATE", request.id)
        return request

    async def _delete_pending(self, request_id: str, user_id: str) -> None:
        request = await self._get_request_or_404(request_id)

        if user_id not in (request.user_id, request.friend_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a party to this friend request"
            )

        if request.status != FriendshipStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Friend request is no longer pending"
            )

        parties = [request.user_id, request.friend_id]
        await self.friendship_repo.delete(request.id)
        await self._notify(parties, "DELETE", request_id)

    async def decline_request(self, request_id: str, user_id: str) -> None:
        """Decline a pending request (receiver side). Leaves the pair in none."""
        await self._delete_pending(request_id, user_id)
        logger.info(f"Friend request {request_id} declined by {user_id}")

    async def cancel_request(self, request_id: str, user_id: str) -> None:
        """Cancel a pending request (sender side). Leaves the pair in none."""
        await self._delete_pending(request_id, user_id)
        logger.info(f"Friend request {request_id} cancelled by {user_id}")

    async def remove_friend(self, user_id: str, friend_id: str) -> int:
        """
        Remove a friendship in both directions with one delete.

        Returns:
            Number of rows removed

        Raises:
            HTTPException: 404 when the pair has no accepted edge
        """
        edges = await self.friendship_repo.get_pair_edges(user_id, friend_id)
        if not any(edge.status == FriendshipStatus.ACCEPTED for edge in edges):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Friendship not found"
            )

        removed = await self.friendship_repo.delete_pair(user_id, friend_id)
        logger.info(f"Friendship removed: {user_id} <-> {friend_id} ({removed} rows)")
        await self._notify([user_id, friend_id], "DELETE")
        return removed

    async def block_user(self, user_id: str, target_id: str) -> Friendship:
        """
        Block another profile.

        Any friendship or pending request of the pair is replaced by a single
        blocked row owned by the blocker. Blocking again is a no-op.

        Raises:
            HTTPException: 400 self, 404 unknown target, 409 already blocked
                by the target
        """
        if user_id == target_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot block yourself"
            )

        if not await self.profile_repo.exists(target_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        edges = await self.friendship_repo.get_pair_edges(user_id, target_id)
        for edge in edges:
            if edge.status != FriendshipStatus.BLOCKED:
                continue
            if edge.user_id == user_id:
                return edge
            # Only the blocker may lift or replace a block
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This profile has blocked you"
            )

        await self.friendship_repo.delete_pair(user_id, target_id)
        block = await self.friendship_repo.create(
            user_id=user_id,
            friend_id=target_id,
            status=FriendshipStatus.BLOCKED
        )
        logger.info(f"User {target_id} blocked by {user_id}")
        await self._notify([user_id, target_id], "UPDATE", block.id)
        return block

    async def unblock_user(self, user_id: str, target_id: str) -> None:
        """
        Lift a block set by user_id. The pair returns to none.

        Raises:
            HTTPException: 404 when user_id has not blocked target_id
        """
        removed = await self.friendship_repo.delete_block(user_id, target_id)
        if not removed:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Block not found"
            )

        logger.info(f"User {target_id} unblocked by {user_id}")
        await self._notify([user_id, target_id], "DELETE")

    async def is_blocked(self, user_a: str, user_b: str) -> bool:
        """True when either side of the pair has blocked the other."""
        return await self.get_relationship_status(user_a, user_b) == RelationshipStatus.BLOCKED

    async def get_relationship_status(self, viewer_id: str, other_id: str) -> RelationshipStatus:
        """Friendship state of the pair as seen by the viewer."""
        if viewer_id == other_id:
            return RelationshipStatus.NONE
        edges = await self.friendship_repo.get_pair_edges(viewer_id, other_id)
        return relationship_from_edges(viewer_id, edges)

    async def are_friends(self, user_a: str, user_b: str) -> bool:
        return await self.get_relationship_status(user_a, user_b) == RelationshipStatus.ACCEPTED

    async def list_friends(self, user_id: str, query: Optional[str] = None) -> List[FriendResponse]:
        """
        Accepted friends of a user, one entry per friend.

        Both directions are scanned so that a friendship missing its
        reciprocal row still shows up.

        Args:
            user_id: Profile whose friends are listed
            query: Optional case-insensitive match on display name or username
        """
        try:
            edges = await self.friendship_repo.get_accepted_edges(user_id)
        except Exception as e:
            logger.error(f"Failed to load friends of {user_id}: {e}")
            return []

        friends: Dict[str, FriendResponse] = {}
        for edge in edges:
            other = edge.friend if edge.user_id == user_id else edge.user
            if other is None or other.id in friends:
                continue
            if not profile_matches(other, query):
                continue
            friends[other.id] = FriendResponse(
                friendship_id=edge.id,
                since=edge.updated_at,
                profile=ProfileSummary.model_validate(other)
            )

        return sorted(friends.values(), key=lambda f: f.profile.display_name.lower())

    async def list_requests(self, user_id: str) -> FriendRequestsResponse:
        """Pending incoming and outgoing requests with the counterpart profile."""
        try:
            incoming = await self.friendship_repo.get_incoming_requests(user_id)
            outgoing = await self.friendship_repo.get_outgoing_requests(user_id)
        except Exception as e:
            logger.error(f"Failed to load friend requests of {user_id}: {e}")
            return FriendRequestsResponse()

        return FriendRequestsResponse(
            incoming=[
                FriendRequestResponse(
                    id=r.id,
                    direction="incoming",
                    created_at=r.created_at,
                    profile=ProfileSummary.model_validate(r.user)
                )
                for r in incoming
            ],
            outgoing=[
                FriendRequestResponse(
                    id=r.id,
                    direction="outgoing",
                    created_at=r.created_at,
                    profile=ProfileSummary.model_validate(r.friend)
                )
                for r in outgoing
            ]
        )

    async def pending_incoming_count(self, user_id: str) -> int:
        """Badge count of requests waiting for the user."""
        return await self.friendship_repo.count_incoming_pending(user_id)
