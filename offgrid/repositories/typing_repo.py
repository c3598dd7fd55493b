"""
Typing indicator repository.
Upserts and clears the per-conversation typing flag.
"""
from datetime import datetime
from typing import List

from sqlalchemy import select, and_, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.models.typing_indicator import TypingIndicator
from offgrid.repositories.base import BaseRepository
from offgrid.utils.datetime_utils import utc_now


class TypingIndicatorRepository(BaseRepository[TypingIndicator]):
    """Repository for typing indicator rows."""

    def __init__(self, db: AsyncSession):
        super().__init__(TypingIndicator, db)

    async def upsert(self, conversation_id: str, user_id: str, is_typing: bool) -> None:
        """
        Insert or update the typing row of (conversation, user).

        Args:
            conversation_id: Conversation ID
            user_id: Profile ID
            is_typing: New flag value
        """
        now = utc_now()
        stmt = self._dialect_insert().values(
            conversation_id=conversation_id,
            user_id=user_id,
            is_typing=is_typing,
            updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["conversation_id", "user_id"],
            set_={"is_typing": is_typing, "updated_at": now}
        )
        await self.db.execute(stmt)
        await self.db.flush()

    async def set_not_typing(self, conversation_id: str, user_id: str) -> int:
        """
        Flip the flag to false in place.

        Returns:
            Number of rows updated
        """
        result = await self.db.execute(
            update(TypingIndicator)
            .where(
                and_(
                    TypingIndicator.conversation_id == conversation_id,
                    TypingIndicator.user_id == user_id
                )
            )
            .values(is_typing=False, updated_at=utc_now())
        )
        await self.db.flush()
        return result.rowcount

    async def remove(self, conversation_id: str, user_id: str) -> int:
        """Delete the typing row of (conversation, user)."""
        result = await self.db.execute(
            delete(TypingIndicator).where(
                and_(
                    TypingIndicator.conversation_id == conversation_id,
                    TypingIndicator.user_id == user_id
                )
            )
        )
        await self.db.flush()
        return result.rowcount

    async def get_active(
        self,
        conversation_id: str,
        since: datetime,
        exclude_user_id: str
    ) -> List[TypingIndicator]:
        """
        Typing rows refreshed at or after `since`, excluding one user.

        Args:
            conversation_id: Conversation ID
            since: Oldest updated_at still considered live
            exclude_user_id: Usually the viewer

        Returns:
            Live typing rows
        """
        result = await self.db.execute(
            select(TypingIndicator)
            .where(
                and_(
                    TypingIndicator.conversation_id == conversation_id,
                    TypingIndicator.is_typing.is_(True),
                    TypingIndicator.updated_at >= since,
                    TypingIndicator.user_id != exclude_user_id
                )
            )
            .order_by(TypingIndicator.updated_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def clear_user(self, user_id: str) -> int:
        """Clear every typing flag held by a user (disconnect)."""
        result = await self.db.execute(
            update(TypingIndicator)
            .where(
                and_(
                    TypingIndicator.user_id == user_id,
                    TypingIndicator.is_typing.is_(True)
                )
            )
            .values(is_typing=False, updated_at=utc_now())
        )
        await self.db.flush()
        return result.rowcount
