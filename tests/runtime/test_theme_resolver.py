"""Tests for ThemeResolver.

Verifies:
- Solar lookup uses half-open intervals and wraps to the previous day's final event
- Overrides hold until the solar theme changes, then stay cleared
- Revert clears immediately
- The schedule is recomputed once per local day
- Override values are opaque strings
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from structlog.testing import capture_logs

from theme_sender.domain.entities import Revert, SetOverride, SolarEvent
from theme_sender.domain.themes import ThemeId
from theme_sender.infra.exceptions import ScheduleError
from theme_sender.runtime.theme_resolver import ThemeResolver, lookup_event


def _at(hh: int, mm: int = 0, ss: int = 0, day: int = 15) -> datetime:
    return datetime(2024, 6, day, hh, mm, ss, tzinfo=timezone.utc)


def _make_resolver(events) -> tuple[ThemeResolver, list[date]]:
    """Resolver over a fixed schedule; returns the list of requested days too."""
    requested: list[date] = []

    def source(day: date):
        requested.append(day)
        return events

    return ThemeResolver(source, tz=timezone.utc), requested


# ---------------------------------------------------------------------------
# Solar lookup
# ---------------------------------------------------------------------------


class TestSolarLookup:
    def test_latest_event_at_or_before_now(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        assert resolver.resolve(_at(7)) == "light"
        assert resolver.resolve(_at(12)) == "light"
        assert resolver.resolve(_at(19)) == "light-soft"

    def test_transition_instant_belongs_to_new_event(self):
        events = [
            SolarEvent(_at(5), ThemeId.CIVIL_DAWN),
            SolarEvent(_at(6), ThemeId.SUNRISE),
        ]
        resolver, _ = _make_resolver(events)

        assert resolver.resolve(_at(5, 59, 59)) == "light-soft"
        assert resolver.resolve(_at(6)) == "light"

    def test_wraps_to_final_event_before_first(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        assert resolver.solar_event_at(_at(3)).theme is ThemeId.CIVIL_DUSK
        assert resolver.resolve(_at(3)) == "light-soft"

    def test_wraps_to_previous_days_final_event(self):
        """A day whose final event differs from yesterday's still starts in yesterday's period."""
        schedules = {
            date(2024, 6, 14): [
                SolarEvent(_at(3, day=14), ThemeId.ASTRONOMICAL_DAWN),
                SolarEvent(_at(22, day=14), ThemeId.ASTRONOMICAL_DUSK),
                SolarEvent(_at(23, 50, day=14), ThemeId.NIGHT),
            ],
            date(2024, 6, 15): [
                SolarEvent(_at(3), ThemeId.ASTRONOMICAL_DAWN),
                SolarEvent(_at(22), ThemeId.ASTRONOMICAL_DUSK),
            ],
        }
        resolver = ThemeResolver(lambda day: schedules.get(day, []), tz=timezone.utc)

        with capture_logs() as logs:
            assert resolver.resolve(_at(23, 55, day=14)) == "dark"
            assert resolver.resolve(_at(0, 30)) == "dark"
            assert resolver.resolve(_at(3)) == "dark-dimmed"

        changes = [log for log in logs if log["event"] == "solar_theme_changed"]
        assert [(c["previous"], c["current"]) for c in changes] == [("Night", "AstronomicalDawn")]

    def test_override_survives_midnight_inside_carried_period(self):
        schedules = {
            date(2024, 6, 14): [SolarEvent(_at(23, 50, day=14), ThemeId.NIGHT)],
            date(2024, 6, 15): [
                SolarEvent(_at(3), ThemeId.ASTRONOMICAL_DAWN),
                SolarEvent(_at(22), ThemeId.ASTRONOMICAL_DUSK),
            ],
        }
        resolver = ThemeResolver(lambda day: schedules.get(day, []), tz=timezone.utc)

        resolver.resolve(_at(23, 55, day=14), SetOverride("movie"))

        assert resolver.resolve(_at(0, 30)) == "movie"
        assert resolver.resolve(_at(3)) == "dark-dimmed"

    def test_lookup_event_uses_previous_final_before_first(self, scenario_schedule):
        previous = SolarEvent(_at(22, day=14), ThemeId.NIGHT)

        assert lookup_event(scenario_schedule, _at(1), previous) is previous
        assert lookup_event(scenario_schedule, _at(1)).theme is ThemeId.CIVIL_DUSK

    def test_lookup_event_rejects_empty_schedule(self):
        with pytest.raises(ScheduleError):
            lookup_event([], _at(12))

    def test_every_instant_matches_latest_event(self):
        events = [
            SolarEvent(_at(4, 10), ThemeId.ASTRONOMICAL_DAWN),
            SolarEvent(_at(4, 50), ThemeId.NAUTICAL_DAWN),
            SolarEvent(_at(5, 30), ThemeId.CIVIL_DAWN),
            SolarEvent(_at(6, 5), ThemeId.SUNRISE),
            SolarEvent(_at(7, 0), ThemeId.DAY),
            SolarEvent(_at(20, 0), ThemeId.CIVIL_DUSK),
            SolarEvent(_at(20, 40), ThemeId.NAUTICAL_DUSK),
            SolarEvent(_at(21, 20), ThemeId.ASTRONOMICAL_DUSK),
            SolarEvent(_at(22, 0), ThemeId.NIGHT),
        ]
        resolver, _ = _make_resolver(events)

        t = _at(0)
        while t < _at(23, 59):
            expected = [e for e in events if e.instant <= t]
            label = expected[-1].label if expected else events[-1].label
            assert resolver.resolve(t) == label
            t += timedelta(minutes=7)


# ---------------------------------------------------------------------------
# Override lifecycle
# ---------------------------------------------------------------------------


class TestOverride:
    def test_scenario_sunrise_to_day(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        assert resolver.resolve(_at(7)) == "light"
        assert resolver.resolve(_at(7, 30), SetOverride("party")) == "party"
        assert resolver.resolve(_at(7, 45)) == "party"

        # Sunrise -> Day: both publish "light", but the boundary still expires the override.
        assert resolver.resolve(_at(8)) == "light"
        assert resolver.override is None
        assert resolver.resolve(_at(8, 5)) == "light"

    def test_override_held_until_boundary(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)
        resolver.resolve(_at(9), SetOverride("x"))

        for minute in range(0, 60 * 9, 15):
            assert resolver.resolve(_at(9) + timedelta(minutes=minute)) == "x"

        assert resolver.resolve(_at(18)) == "light-soft"
        assert resolver.resolve(_at(18, 1)) == "light-soft"
        assert resolver.resolve(_at(23)) == "light-soft"

    def test_override_applied_and_resolved_same_instant(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        assert resolver.resolve(_at(12), SetOverride("dark")) == "dark"
        assert resolver.override is not None
        assert resolver.override.applied_at == _at(12)
        assert resolver.override.solar_theme is ThemeId.DAY

    def test_new_override_replaces_previous(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)
        resolver.resolve(_at(9), SetOverride("first"))

        assert resolver.resolve(_at(10), SetOverride("second")) == "second"
        assert resolver.resolve(_at(11)) == "second"

    def test_revert_clears_immediately(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)
        resolver.resolve(_at(9), SetOverride("x"))

        assert resolver.resolve(_at(9, 30), Revert()) == "light"
        assert resolver.override is None
        assert resolver.resolve(_at(9, 31)) == "light"

    def test_revert_without_override_is_harmless(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        assert resolver.resolve(_at(19), Revert()) == "light-soft"

    def test_override_value_is_opaque(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        assert resolver.resolve(_at(9), SetOverride('{"not": "a theme"}')) == '{"not": "a theme"}'
        assert resolver.resolve(_at(9, 1), SetOverride("")) == ""

    def test_override_in_wrapped_period_survives_until_first_event(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        assert resolver.resolve(_at(2), SetOverride("night-owl")) == "night-owl"
        assert resolver.resolve(_at(5, 59)) == "night-owl"
        assert resolver.resolve(_at(6)) == "light"


# ---------------------------------------------------------------------------
# Snapshot and day rollover
# ---------------------------------------------------------------------------


class TestSnapshot:
    def test_last_emitted_label_tracks_override_and_solar(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        resolver.resolve(_at(7))
        assert resolver.snapshot.last_emitted_label == "light"
        resolver.resolve(_at(7, 10), SetOverride("party"))
        assert resolver.snapshot.last_emitted_label == "party"
        assert resolver.snapshot.last_solar_theme is ThemeId.SUNRISE

    def test_schedule_computed_once_per_local_day(self, scenario_schedule):
        resolver, requested = _make_resolver(scenario_schedule)

        resolver.resolve(_at(7))
        resolver.resolve(_at(12))
        resolver.resolve(_at(23, 59))
        assert requested == [date(2024, 6, 15), date(2024, 6, 14)]

        # The 15th is reused as the previous day, not recomputed.
        resolver.resolve(_at(0, 1, day=16))
        assert requested == [date(2024, 6, 15), date(2024, 6, 14), date(2024, 6, 16)]

    def test_local_day_follows_resolver_timezone(self, scenario_schedule):
        requested: list[date] = []

        def source(day: date):
            requested.append(day)
            return scenario_schedule

        resolver = ThemeResolver(source, tz="America/New_York")
        # 02:00 UTC on the 15th is still the 14th in New York.
        resolver.resolve(_at(2))
        assert requested[0] == date(2024, 6, 14)

    def test_empty_schedule_raises(self):
        resolver = ThemeResolver(lambda day: [], tz=timezone.utc)

        with pytest.raises(ScheduleError):
            resolver.resolve(_at(12))

    def test_naive_time_rejected(self, scenario_schedule):
        resolver, _ = _make_resolver(scenario_schedule)

        with pytest.raises(ValueError):
            resolver.resolve(datetime(2024, 6, 15, 12, 0))
