"""
Unit tests for TypingService and TypingDebouncer.
"""
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from offgrid.models.typing_indicator import TypingIndicator
from offgrid.services.typing_service import TypingDebouncer, TypingService
from offgrid.utils.datetime_utils import utc_now


@pytest.mark.asyncio
class TestTypingService:
    """Test cases for typing flags."""

    async def test_typing_visible_to_other_participant(self, db_session, alice, bob, direct_conversation):
        """Test a typing flag shows up for the other side only."""
        service = TypingService(db_session)

        await service.set_typing(direct_conversation.id, alice.id, True)

        seen_by_bob = await service.get_typing_users(direct_conversation.id, bob.id)
        seen_by_alice = await service.get_typing_users(direct_conversation.id, alice.id)
        assert [p.id for p in seen_by_bob] == [alice.id]
        assert seen_by_alice == []

    async def test_repeated_keystrokes_keep_one_row(self, db_session, alice, direct_conversation):
        """Test asserting typing twice upserts the same row."""
        service = TypingService(db_session)

        await service.set_typing(direct_conversation.id, alice.id, True)
        await service.set_typing(direct_conversation.id, alice.id, True)

        result = await db_session.execute(select(TypingIndicator))
        assert len(result.scalars().all()) == 1

    async def test_clear_typing(self, db_session, alice, bob, direct_conversation):
        """Test clearing the flag hides the user."""
        service = TypingService(db_session)
        await service.set_typing(direct_conversation.id, alice.id, True)

        await service.set_typing(direct_conversation.id, alice.id, False)

        assert await service.get_typing_users(direct_conversation.id, bob.id) == []

    async def test_stale_rows_ignored(self, db_session, alice, bob, direct_conversation):
        """Test a flag not refreshed within the timeout is not shown."""
        service = TypingService(db_session)
        await service.set_typing(direct_conversation.id, alice.id, True)
        await db_session.execute(
            update(TypingIndicator).values(updated_at=utc_now() - timedelta(seconds=30))
        )

        assert await service.get_typing_users(direct_conversation.id, bob.id, timeout_seconds=3) == []

    async def test_clear_falls_back_to_delete(self, db_session, alice, bob, direct_conversation, mocker):
        """Test a failing update deletes the row instead."""
        service = TypingService(db_session)
        await service.set_typing(direct_conversation.id, alice.id, True)
        await db_session.commit()
        mocker.patch.object(
            service.typing_repo, "set_not_typing",
            side_effect=OperationalError("UPDATE", {}, Exception("locked"))
        )

        await service.set_typing(direct_conversation.id, alice.id, False)

        result = await db_session.execute(select(TypingIndicator))
        assert result.scalars().all() == []

    async def test_non_participant_cannot_type(self, db_session, carol, direct_conversation):
        with pytest.raises(HTTPException) as exc_info:
            await TypingService(db_session).set_typing(direct_conversation.id, carol.id, True)

        assert exc_info.value.status_code == 403

    async def test_clear_user_on_disconnect(self, db_session, alice, bob, direct_conversation):
        """Test every flag of a user is cleared at once."""
        service = TypingService(db_session)
        await service.set_typing(direct_conversation.id, alice.id, True)

        cleared = await service.clear_user(alice.id)

        assert cleared == 1
        assert await service.get_typing_users(direct_conversation.id, bob.id) == []


@pytest.mark.asyncio
class TestTypingDebouncer:
    """Test cases for the keystroke debouncer."""

    async def test_keystroke_then_timeout_clears(self):
        """Test the flag is cleared after the inactivity timeout."""
        write = AsyncMock()
        debouncer = TypingDebouncer(write, timeout=0.05)

        await debouncer.keystroke()
        assert debouncer.is_typing is True
        assert debouncer.pending is True

        await asyncio.sleep(0.15)

        assert debouncer.is_typing is False
        assert [c.args[0] for c in write.await_args_list] == [True, False]

    async def test_keystrokes_rearm_timer(self):
        """Test continued typing postpones the clear."""
        write = AsyncMock()
        debouncer = TypingDebouncer(write, timeout=0.1)

        await debouncer.keystroke()
        await asyncio.sleep(0.06)
        await debouncer.keystroke()
        await asyncio.sleep(0.06)

        assert debouncer.is_typing is True
        assert False not in [c.args[0] for c in write.await_args_list]
        await debouncer.clear()

    async def test_clear_cancels_timer(self):
        """Test an explicit clear writes false once and stops the timer."""
        write = AsyncMock()
        debouncer = TypingDebouncer(write, timeout=0.05)

        await debouncer.keystroke()
        await debouncer.clear()
        await asyncio.sleep(0.1)

        assert debouncer.pending is False
        assert [c.args[0] for c in write.await_args_list] == [True, False]

    async def test_write_errors_are_swallowed(self):
        """Test a failing writer never breaks typing."""
        write = AsyncMock(side_effect=RuntimeError("offline"))
        debouncer = TypingDebouncer(write, timeout=0.05)

        await debouncer.keystroke()
        await debouncer.clear()

        assert debouncer.is_typing is False

    async def test_keystroke_during_expiry_write_lands_last(self):
        """Test a keystroke made while the timeout clear is being written ends typing=true."""
        completed = []
        release = asyncio.Event()

        async def write(flag):
            if flag is False and not release.is_set():
                await release.wait()
            completed.append(flag)

        debouncer = TypingDebouncer(write, timeout=0.01)
        await debouncer.keystroke()
        await asyncio.sleep(0.05)

        typing_again = asyncio.ensure_future(debouncer.keystroke())
        await asyncio.sleep(0.01)
        release.set()
        await typing_again

        assert completed == [True, False, True]
        assert debouncer.is_typing is True
        assert debouncer.pending is True
        await debouncer.clear()
