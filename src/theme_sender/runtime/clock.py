"""Clock abstractions used by the publish loop and the resolver.

All runtime components read time through a :class:`Clock` so tests can drive
schedule boundaries deterministically.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from threading import Lock
from typing import Protocol, runtime_checkable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@runtime_checkable
class Clock(Protocol):
    """Protocol implemented by clock providers."""

    def now_utc(self) -> datetime:
        """Return the current time as an aware UTC datetime."""


class SystemClock:
    """Wall clock returning timezone-aware UTC timestamps."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class SteppedClock:
    """Deterministic clock used for tests.

    Time advances only when :meth:`advance` or :meth:`set` is called.
    """

    def __init__(self, start: datetime) -> None:
        ensure_aware(start)
        self._current = start.astimezone(timezone.utc)
        self._lock = Lock()

    def now_utc(self) -> datetime:
        with self._lock:
            return self._current

    def advance(self, delta: timedelta) -> datetime:
        """Advance the clock by ``delta`` (must be non-negative)."""
        if delta < timedelta(0):
            raise ValueError("delta must be non-negative")
        with self._lock:
            self._current += delta
            return self._current

    def set(self, moment: datetime) -> None:
        ensure_aware(moment)
        with self._lock:
            self._current = moment.astimezone(timezone.utc)


def ensure_aware(dt: datetime) -> None:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Datetime must be timezone-aware")


def resolve_timezone(tz: str | tzinfo | None) -> tzinfo:
    """Return a tzinfo for ``tz``, defaulting to the system local zone.

    Raises:
        ValueError: if ``tz`` names an unknown zone.
    """
    if tz is None:
        return datetime.now().astimezone().tzinfo or timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {tz}") from exc
