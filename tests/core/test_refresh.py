"""
Tests for RefreshCoordinator.
"""
import asyncio

import pytest

from offgrid.core.refresh import RefreshCoordinator


@pytest.mark.asyncio
class TestRefreshCoordinator:
    """Test cases for superseding in-flight loads."""

    async def test_single_refresh_delivers_value(self):
        coordinator = RefreshCoordinator()

        async def load():
            return ["alice"]

        result = await coordinator.refresh("discover", load)

        assert result.stale is False
        assert result.value == ["alice"]
        assert result.sequence == 1

    async def test_superseded_refresh_is_discarded(self):
        """Test a slow older load never delivers after a newer one starts."""
        coordinator = RefreshCoordinator()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "old"

        async def fast():
            return "new"

        older = asyncio.ensure_future(coordinator.refresh("discover", slow))
        await asyncio.sleep(0)
        newer = await coordinator.refresh("discover", fast)
        release.set()
        older_result = await older

        assert newer.value == "new"
        assert newer.stale is False
        assert older_result.stale is True
        assert older_result.value is None
        assert older_result.sequence < newer.sequence

    async def test_keys_are_independent(self):
        coordinator = RefreshCoordinator()

        async def load():
            return 1

        first = await coordinator.refresh("sid1:discover", load)
        second = await coordinator.refresh("sid2:discover", load)

        assert first.stale is False
        assert second.stale is False

    async def test_loader_error_propagates(self):
        coordinator = RefreshCoordinator()

        async def broken():
            raise RuntimeError("db down")

        with pytest.raises(RuntimeError):
            await coordinator.refresh("discover", broken)

        assert "discover" not in coordinator._tasks

    async def test_cancel_prefix_drops_connection_state(self):
        """Test closing a connection cancels its loads and forgets its sequences."""
        coordinator = RefreshCoordinator()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "late"

        pending = asyncio.ensure_future(coordinator.refresh("sid1:discover", slow))
        await asyncio.sleep(0)
        assert "sid1:discover" in coordinator._tasks

        coordinator.cancel_prefix("sid1:")
        result = await pending

        assert result.stale is True
        assert "sid1:discover" not in coordinator._latest

