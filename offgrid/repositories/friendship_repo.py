"""
Friendship repository for database operations.
Handles directional friendship edges between profiles.
"""
from typing import List

from sqlalchemy import select, func, and_, or_, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.models.friendship import Friendship, FriendshipStatus
from offgrid.repositories.base import BaseRepository


def _pair_clause(user_a: str, user_b: str):
    """Match edges of the pair in either direction."""
    return or_(
        and_(Friendship.user_id == user_a, Friendship.friend_id == user_b),
        and_(Friendship.user_id == user_b, Friendship.friend_id == user_a),
    )


class FriendshipRepository(BaseRepository[Friendship]):
    """Repository for friendship edge operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(Friendship, db)

    async def get_pair_edges(self, user_a: str, user_b: str) -> List[Friendship]:
        """Get every edge between two profiles, in both directions."""
        result = await self.db.execute(
            select(Friendship).where(_pair_clause(user_a, user_b))
        )
        return list(result.scalars().all())

    async def delete_pair(self, user_a: str, user_b: str) -> int:
        """
        Delete all edges between two profiles with one statement.

        Returns:
            Number of rows removed
        """
        result = await self.db.execute(
            delete(Friendship).where(_pair_clause(user_a, user_b))
        )
        await self.db.flush()
        return result.rowcount

    async def delete_block(self, blocker_id: str, target_id: str) -> int:
        """Delete the block row owned by blocker_id, leaving any other edge alone."""
        result = await self.db.execute(
            delete(Friendship).where(
                and_(
                    Friendship.user_id == blocker_id,
                    Friendship.friend_id == target_id,
                    Friendship.status == FriendshipStatus.BLOCKED
                )
            )
        )
        await self.db.flush()
        return result.rowcount

    async def insert_reciprocal(self, user_id: str, friend_id: str) -> bool:
        """
        Write the accepted edge user_id -> friend_id.

        The insert ignores an existing row; when one exists (a mirrored
        pending request, or a retried accept) it is promoted to accepted.

        Returns:
            True if a new row was inserted
        """
        inserted = await self.insert_ignoring_conflicts(
            {
                "user_id": user_id,
                "friend_id": friend_id,
                "status": FriendshipStatus.ACCEPTED,
            },
            index_elements=["user_id", "friend_id"]
        )
        if not inserted:
            await self.db.execute(
                update(Friendship)
                .where(
                    and_(
                        Friendship.user_id == user_id,
                        Friendship.friend_id == friend_id,
                        Friendship.status == FriendshipStatus.PENDING
                    )
                )
                .values(status=FriendshipStatus.ACCEPTED)
            )
            await self.db.flush()
        return inserted

    async def get_accepted_edges(self, user_id: str) -> List[Friendship]:
        """Accepted edges touching the profile in either direction."""
        result = await self.db.execute(
            select(Friendship)
            .where(
                and_(
                    or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
                    Friendship.status == FriendshipStatus.ACCEPTED
                )
            )
            .order_by(Friendship.created_at)
        )
        return list(result.scalars().all())

    async def get_incoming_requests(self, user_id: str) -> List[Friendship]:
        """Pending requests received by the profile, newest first."""
        result = await self.db.execute(
            select(Friendship)
            .where(
                and_(
                    Friendship.friend_id == user_id,
                    Friendship.status == FriendshipStatus.PENDING
                )
            )
            .order_by(Friendship.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_outgoing_requests(self, user_id: str) -> List[Friendship]:
        """Pending requests sent by the profile, newest first."""
        result = await self.db.execute(
            select(Friendship)
            .where(
                and_(
                    Friendship.user_id == user_id,
                    Friendship.status == FriendshipStatus.PENDING
                )
            )
            .order_by(Friendship.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_incoming_pending(self, user_id: str) -> int:
        """Number of pending requests waiting for the profile."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Friendship)
            .where(
                and_(
                    Friendship.friend_id == user_id,
                    Friendship.status == FriendshipStatus.PENDING
                )
            )
        )
        return result.scalar()

    async def get_edges_touching(self, user_id: str) -> List[Friendship]:
        """Every edge where the profile is either endpoint."""
        result = await self.db.execute(
            select(Friendship).where(
                or_(Friendship.user_id == user_id, Friendship.friend_id == user_id)
            )
        )
        return list(result.scalars().all())
