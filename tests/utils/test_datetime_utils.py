"""
Tests for datetime utilities module.

Tests timezone handling and the window and deadline comparisons used by
edits, ephemeral media and the timeline layout.
"""
from datetime import datetime, timezone, timedelta

from offgrid.utils.datetime_utils import (
    ensure_utc,
    has_elapsed,
    is_within,
    same_calendar_day,
    seconds_between,
    utc_now,
)

BASE = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


class TestUtcNow:
    """Tests for utc_now() function."""

    def test_returns_timezone_aware_datetime(self):
        """Test that utc_now returns timezone-aware datetime."""
        result = utc_now()
        assert result.tzinfo == timezone.utc

    def test_returns_current_time(self):
        before = datetime.now(timezone.utc)
        result = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= result <= after


class TestEnsureUtc:
    """Tests for ensure_utc() function."""

    def test_converts_naive_datetime_to_aware(self):
        """Test that naive datetime (as SQLite returns it) is taken as UTC."""
        naive_dt = datetime(2025, 12, 16, 11, 30, 0, 123456)
        result = ensure_utc(naive_dt)

        assert result.tzinfo == timezone.utc
        assert result.replace(tzinfo=None) == naive_dt

    def test_converts_aware_datetime_to_utc(self):
        """Test that timezone-aware datetime is converted to UTC."""
        utc_plus_8 = timezone(timedelta(hours=8))
        aware_dt = datetime(2025, 12, 16, 19, 30, 0, tzinfo=utc_plus_8)

        result = ensure_utc(aware_dt)

        assert result.tzinfo == timezone.utc
        assert (result.hour, result.minute) == (11, 30)

    def test_handles_none_input(self):
        assert ensure_utc(None) is None


class TestIsWithin:
    """Tests for the inclusive window check used by message edits."""

    def test_inside_window(self):
        now = BASE + timedelta(minutes=4, seconds=59)
        assert is_within(BASE, timedelta(minutes=5), now) is True

    def test_boundary_is_inclusive(self):
        now = BASE + timedelta(minutes=5)
        assert is_within(BASE, timedelta(minutes=5), now) is True

    def test_outside_window(self):
        now = BASE + timedelta(minutes=5, seconds=1)
        assert is_within(BASE, timedelta(minutes=5), now) is False

    def test_mixed_naive_and_aware(self):
        """Test a naive start from the database compares with an aware now."""
        naive_start = BASE.replace(tzinfo=None)
        assert is_within(naive_start, timedelta(minutes=5), BASE + timedelta(minutes=1)) is True


class TestHasElapsed:
    """Tests for deadline checks used by ephemeral media."""

    def test_before_deadline(self):
        assert has_elapsed(BASE, BASE - timedelta(seconds=1)) is False

    def test_at_deadline(self):
        """Test the deadline itself counts as elapsed."""
        assert has_elapsed(BASE, BASE) is True

    def test_no_deadline_never_elapses(self):
        assert has_elapsed(None, BASE) is False


class TestCalendarHelpers:
    """Tests for timeline spacing helpers."""

    def test_seconds_between(self):
        assert seconds_between(BASE, BASE + timedelta(minutes=2)) == 120.0

    def test_same_calendar_day(self):
        assert same_calendar_day(BASE, BASE.replace(hour=23, minute=59)) is True

    def test_different_calendar_day(self):
        late = BASE.replace(hour=23, minute=59)
        assert same_calendar_day(late, late + timedelta(minutes=2)) is False

    def test_calendar_day_is_utc(self):
        """Test dates are compared in UTC, not in the offset of the input."""
        utc_minus_5 = timezone(timedelta(hours=-5))
        evening_local = datetime(2026, 3, 14, 20, 0, tzinfo=utc_minus_5)  # 01:00 UTC next day
        assert same_calendar_day(evening_local, datetime(2026, 3, 15, 2, 0, tzinfo=timezone.utc)) is True
