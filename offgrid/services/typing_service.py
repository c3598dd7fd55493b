"""
Typing signal service.

Typing flags are a liveness heuristic: they are upserted on keystrokes,
cleared after a short inactivity timeout, and never allowed to interfere
with sending messages.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.config import settings
from offgrid.core.websocket import connection_manager
from offgrid.models.profile import Profile
from offgrid.repositories.conversation_repo import ConversationParticipantRepository
from offgrid.repositories.profile_repo import ProfileRepository
from offgrid.repositories.typing_repo import TypingIndicatorRepository
from offgrid.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class TypingService:
    """Service for per-conversation typing flags."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.typing_repo = TypingIndicatorRepository(db)
        self.participant_repo = ConversationParticipantRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.ws_manager = connection_manager

    async def _notify(self, conversation_id: str, user_id: str) -> None:
        try:
            await self.ws_manager.notify_conversation(
                conversation_id, "typing_indicators", "UPDATE", {"user_id": user_id}
            )
        except Exception as e:
            logger.error(f"Failed to broadcast typing change: {e}")

    async def set_typing(self, conversation_id: str, user_id: str, is_typing: bool) -> None:
        """
        Assert or clear the typing flag of a participant.

        Asserting upserts the row. Clearing updates it in place and falls
        back to deleting the row when the update fails, so a stale "typing"
        never lingers.

        Raises:
            HTTPException: 403 when the user is not a participant
        """
        if not await self.participant_repo.is_participant(conversation_id, user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a participant of this conversation"
            )

        if is_typing:
            await self.typing_repo.upsert(conversation_id, user_id, True)
        else:
            try:
                await self.typing_repo.set_not_typing(conversation_id, user_id)
            except SQLAlchemyError as e:
                logger.warning(f"Typing update failed, deleting row instead: {e}")
                await self.db.rollback()
                await self.typing_repo.remove(conversation_id, user_id)

        await self._notify(conversation_id, user_id)

    async def clear_user(self, user_id: str) -> int:
        """Clear every typing flag of a user."""
        return await self.typing_repo.clear_user(user_id)

    async def get_typing_users(
        self,
        conversation_id: str,
        viewer_id: str,
        timeout_seconds: Optional[float] = None
    ) -> List[Profile]:
        """
        Profiles currently typing, viewer excluded.

        Rows not refreshed within the inactivity timeout are ignored even
        if their flag is still set.
        """
        if not await self.participant_repo.is_participant(conversation_id, viewer_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found"
            )

        timeout = timeout_seconds if timeout_seconds is not None else settings.typing_timeout_seconds
        since = utc_now() - timedelta(seconds=timeout)

        try:
            rows = await self.typing_repo.get_active(conversation_id, since, viewer_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load typing users: {e}")
            return []

        return await self.profile_repo.get_many([row.user_id for row in rows])


class TypingDebouncer:
    """
    Keystroke debouncer for one (conversation, user).

    Every keystroke asserts typing and re-arms a timer; when the timer
    fires without further keystrokes the flag is cleared. Writes are
    serialized and tagged with a generation, so a timer that fires while a
    newer keystroke is being written never clears the newer flag. Writer
    errors are logged and swallowed.
    """

    def __init__(
        self,
        write: Callable[[bool], Awaitable[None]],
        timeout: float = 3.0,
        name: str = "typing"
    ):
        """
        Args:
            write: Coroutine that persists the flag
            timeout: Seconds of inactivity before auto-clear
            name: Label used in log lines
        """
        self._write = write
        self.timeout = timeout
        self.name = name
        self.is_typing = False
        self._timer: Optional[asyncio.Task] = None
        self._generation = 0
        self._lock = asyncio.Lock()

    async def _safe_write(self, is_typing: bool) -> None:
        try:
            await self._write(is_typing)
        except Exception as e:
            logger.warning(f"[typing {self.name}] failed to write {is_typing}: {e}")

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _expire(self, generation: int) -> None:
        await asyncio.sleep(self.timeout)
        # Past the sleep the timer is no longer cancellable
        if self._timer is asyncio.current_task():
            self._timer = None
        async with self._lock:
            if generation != self._generation:
                return
            self.is_typing = False
            await self._safe_write(False)

    async def keystroke(self) -> None:
        """Assert typing and restart the inactivity timer."""
        self._generation += 1
        generation = self._generation
        self._cancel_timer()
        self.is_typing = True
        async with self._lock:
            await self._safe_write(True)
        if generation == self._generation:
            self._timer = asyncio.ensure_future(self._expire(generation))

    async def clear(self) -> None:
        """Clear immediately (input cleared, message sent, view closed)."""
        self._generation += 1
        self._cancel_timer()
        if self.is_typing:
            self.is_typing = False
            async with self._lock:
                await self._safe_write(False)

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()
