from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from theme_sender.runtime.clock import Clock, SteppedClock, SystemClock, resolve_timezone


def test_system_clock_is_aware_utc():
    now = SystemClock().now_utc()

    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)
    assert isinstance(SystemClock(), Clock)


def test_stepped_clock_advances_only_when_told():
    start = datetime(2024, 6, 15, 7, 0, tzinfo=timezone.utc)
    clock = SteppedClock(start)

    assert clock.now_utc() == start
    assert clock.advance(timedelta(minutes=5)) == start + timedelta(minutes=5)
    assert clock.now_utc() == start + timedelta(minutes=5)


def test_stepped_clock_rejects_backwards_and_naive():
    clock = SteppedClock(datetime(2024, 6, 15, tzinfo=timezone.utc))

    with pytest.raises(ValueError):
        clock.advance(timedelta(seconds=-1))
    with pytest.raises(ValueError):
        SteppedClock(datetime(2024, 6, 15))


def test_resolve_timezone():
    assert resolve_timezone("UTC").utcoffset(datetime(2024, 1, 1)) == timedelta(0)
    assert resolve_timezone(timezone.utc) is timezone.utc
    assert resolve_timezone(None) is not None
    with pytest.raises(ValueError):
        resolve_timezone("Mars/Olympus_Mons")
