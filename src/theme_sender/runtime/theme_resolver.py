"""Theme resolution and override lifecycle.

ThemeResolver is the single authority for "what to publish now". It owns the
day's solar schedule and the override state:

- An override is applied when a ``SetOverride`` command is consumed and
  remembers the solar theme active at that moment.
- It is cleared when a ``Revert`` is consumed, or on the first resolution at
  which the solar theme differs from the remembered one, whichever comes
  first. Expiry is a comparison made inside :meth:`ThemeResolver.resolve`;
  there is no timer.

Before the first event of a local day the previous day's final event
still applies, so the period that began last evening runs on past midnight.

Boundary crossings are detected on the solar ThemeId, not on the publish
label, so Sunrise -> Day expires an override even though both publish
``light``.

Not thread-safe: the publish loop is the only caller.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Sequence

import structlog

from ..domain.entities import OverrideCommand, Revert, SetOverride, SolarEvent
from ..domain.themes import ThemeId
from ..infra.exceptions import ScheduleError
from .clock import ensure_aware, resolve_timezone

logger = structlog.get_logger(__name__)

ScheduleSource = Callable[[date], Sequence[SolarEvent]]


@dataclass(frozen=True)
class OverrideState:
    """Active operator override."""

    value: str
    applied_at: datetime
    solar_theme: ThemeId


@dataclass
class ResolverSnapshot:
    """Resolver-owned view of today's schedule and the last emission."""

    day: date | None = None
    schedule: tuple[SolarEvent, ...] = field(default_factory=tuple)
    last_emitted_label: str | None = None
    last_solar_theme: ThemeId | None = None
    previous_day_final: SolarEvent | None = None


def lookup_event(
    schedule: Sequence[SolarEvent],
    now: datetime,
    previous_final: SolarEvent | None = None,
) -> SolarEvent:
    """Latest event with ``instant <= now``.

    Before the first event the previous day's final event applies
    (``previous_final``); without one, the schedule's own final event is used.

    Intervals are half-open: at exactly an event's instant, that event applies.
    """
    if not schedule:
        raise ScheduleError("Solar schedule is empty")
    instants = [event.instant for event in schedule]
    index = bisect_right(instants, now) - 1
    if index < 0:
        return previous_final if previous_final is not None else schedule[-1]
    return schedule[index]


class ThemeResolver:
    """Decide the label to publish from the schedule and the override state."""

    def __init__(self, schedule_source: ScheduleSource, tz: str | tzinfo | None = None) -> None:
        self._schedule_source = schedule_source
        self._tz = resolve_timezone(tz)
        self._snapshot = ResolverSnapshot()
        self._override: OverrideState | None = None

    @property
    def snapshot(self) -> ResolverSnapshot:
        return self._snapshot

    @property
    def override(self) -> OverrideState | None:
        return self._override

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def resolve(self, now: datetime, pending: OverrideCommand | None = None) -> str:
        """Return the label to publish at ``now``, consuming ``pending`` first."""
        ensure_aware(now)
        solar = self.solar_event_at(now)

        if isinstance(pending, Revert):
            if self._override is not None:
                logger.info("override_reverted", value=self._override.value)
            else:
                logger.debug("override_revert_without_override")
            self._override = None
        elif isinstance(pending, SetOverride):
            self._override = OverrideState(value=pending.value, applied_at=now, solar_theme=solar.theme)
            logger.info("override_applied", value=pending.value, solar_theme=solar.theme.display_name)

        previous_solar = self._snapshot.last_solar_theme
        if previous_solar is not None and previous_solar != solar.theme:
            logger.info(
                "solar_theme_changed",
                previous=previous_solar.display_name,
                current=solar.theme.display_name,
            )
        self._snapshot.last_solar_theme = solar.theme

        if self._override is not None:
            if solar.theme != self._override.solar_theme:
                logger.info(
                    "override_expired",
                    value=self._override.value,
                    applied_under=self._override.solar_theme.display_name,
                    solar_theme=solar.theme.display_name,
                )
                self._override = None
                label = solar.label
            else:
                label = self._override.value
        else:
            label = solar.label

        self._snapshot.last_emitted_label = label
        return label

    def solar_event_at(self, now: datetime) -> SolarEvent:
        """Solar event in effect at ``now``, recomputing the schedule on a new local day."""
        ensure_aware(now)
        self._ensure_schedule(now)
        return lookup_event(self._snapshot.schedule, now, self._snapshot.previous_day_final)

    def _ensure_schedule(self, now: datetime) -> None:
        local_day = now.astimezone(self._tz).date()
        if self._snapshot.day == local_day:
            return
        schedule = self._load_day(local_day)
        if not schedule:
            raise ScheduleError(f"No solar events computed for {local_day}")

        previous_day = local_day - timedelta(days=1)
        if self._snapshot.day == previous_day and self._snapshot.schedule:
            previous_final = self._snapshot.schedule[-1]
        else:
            previous = self._load_day(previous_day)
            previous_final = previous[-1] if previous else None

        self._snapshot.day = local_day
        self._snapshot.schedule = schedule
        self._snapshot.previous_day_final = previous_final
        logger.info(
            "solar_schedule_loaded",
            day=local_day.isoformat(),
            events=[
                f"{event.instant.astimezone(self._tz).strftime('%H:%M:%S')} {event.theme.display_name}"
                for event in schedule
            ],
            carried_over=previous_final.theme.display_name if previous_final else None,
        )

    def _load_day(self, day: date) -> tuple[SolarEvent, ...]:
        return tuple(sorted(self._schedule_source(day), key=lambda event: event.instant))
