"""Solar schedule: one local day of theme transition points.

The sun's altitude is sampled once per minute from local midnight to the next
local midnight. Each theme begins where the altitude crosses its threshold in
its direction of travel:

    AstronomicalDawn  -18.000 rising     CivilDusk         -0.833 setting
    NauticalDawn      -12.000 rising     NauticalDusk      -6.000 setting
    CivilDawn          -6.000 rising     AstronomicalDusk -12.000 setting
    Sunrise            -0.833 rising     Night            -18.000 setting
    Day                +6.000 rising

Instants are linearly interpolated between the two samples that bracket the
crossing and rounded to the second.

Polar policy: a crossing that does not happen on the day is dropped and
logged, so the preceding boundary's theme carries over the gap (lookups are
cyclic). A threshold crossed more than once in the same direction keeps its
first crossing and the repeat is logged. When no crossing happens at all, the
day gets a single event at local midnight whose theme is the altitude band
the sun sits in at midday.
``strict=True`` raises :class:`NoEventForLatitude` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Sequence

import numpy as np
import structlog
from astropy import units as u
from astropy.coordinates import AltAz, EarthLocation, get_body
from astropy.time import Time
from astropy.utils import iers

from ..domain.entities import Location, SolarEvent
from ..domain.themes import ThemeId
from ..infra.exceptions import NoEventForLatitude
from .clock import resolve_timezone

logger = structlog.get_logger(__name__)

SUNRISE_ALTITUDE_DEG = -0.833
SAMPLES_PER_MINUTE = 1

AltitudeFn = Callable[[Location, datetime, int], Sequence[float]]


@dataclass(frozen=True)
class Boundary:
    theme: ThemeId
    altitude_deg: float
    rising: bool


BOUNDARIES: tuple[Boundary, ...] = (
    Boundary(ThemeId.ASTRONOMICAL_DAWN, -18.0, rising=True),
    Boundary(ThemeId.NAUTICAL_DAWN, -12.0, rising=True),
    Boundary(ThemeId.CIVIL_DAWN, -6.0, rising=True),
    Boundary(ThemeId.SUNRISE, SUNRISE_ALTITUDE_DEG, rising=True),
    Boundary(ThemeId.DAY, 6.0, rising=True),
    Boundary(ThemeId.CIVIL_DUSK, SUNRISE_ALTITUDE_DEG, rising=False),
    Boundary(ThemeId.NAUTICAL_DUSK, -6.0, rising=False),
    Boundary(ThemeId.ASTRONOMICAL_DUSK, -12.0, rising=False),
    Boundary(ThemeId.NIGHT, -18.0, rising=False),
)


def astropy_sun_altitudes(location: Location, start_utc: datetime, samples: int) -> np.ndarray:
    """Apparent sun altitude in degrees, one sample per minute from ``start_utc``."""
    site = EarthLocation.from_geodetic(
        lon=location.longitude * u.deg,
        lat=location.latitude * u.deg,
        height=0 * u.m,
    )
    t0 = Time(start_utc.astimezone(timezone.utc).replace(tzinfo=None), scale="utc")
    times = t0 + np.arange(samples) * u.min
    # Minute-level precision does not need fresh Earth orientation data.
    with iers.conf.set_temp("auto_download", False), iers.conf.set_temp(
        "iers_degraded_accuracy", "warn"
    ):
        frame = AltAz(obstime=times, location=site)
        altitudes = get_body("sun", times, location=site).transform_to(frame).alt
    return np.asarray(altitudes.to_value(u.deg), dtype=float)


def band_theme(altitude_deg: float) -> ThemeId:
    """Theme for a sun that stays at ``altitude_deg`` all day."""
    if altitude_deg >= 6.0:
        return ThemeId.DAY
    if altitude_deg >= SUNRISE_ALTITUDE_DEG:
        return ThemeId.SUNRISE
    if altitude_deg >= -6.0:
        return ThemeId.CIVIL_DAWN
    if altitude_deg >= -12.0:
        return ThemeId.NAUTICAL_DAWN
    if altitude_deg >= -18.0:
        return ThemeId.ASTRONOMICAL_DAWN
    return ThemeId.NIGHT


def _crossings(altitudes: np.ndarray, boundary: Boundary) -> list[float]:
    """Fractional sample indices of every crossing, in order."""
    before, after = altitudes[:-1], altitudes[1:]
    threshold = boundary.altitude_deg
    if boundary.rising:
        mask = (before < threshold) & (after >= threshold)
    else:
        mask = (before >= threshold) & (after < threshold)
    return [
        int(i) + float((threshold - altitudes[i]) / (altitudes[i + 1] - altitudes[i]))
        for i in np.flatnonzero(mask)
    ]


def compute_schedule(
    location: Location,
    day: date,
    tz: tzinfo,
    *,
    altitude_fn: AltitudeFn = astropy_sun_altitudes,
    strict: bool = False,
) -> list[SolarEvent]:
    """Return the ordered solar events for the local calendar ``day``.

    Raises:
        NoEventForLatitude: in strict mode, for the first event that does not occur.
    """
    start_utc = datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)
    end_utc = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)
    minutes = int((end_utc - start_utc).total_seconds() // 60)
    altitudes = np.asarray(altitude_fn(location, start_utc, minutes * SAMPLES_PER_MINUTE + 1), dtype=float)

    events: list[SolarEvent] = []
    missing: list[str] = []
    repeated: list[str] = []
    for boundary in BOUNDARIES:
        crossings = _crossings(altitudes, boundary)
        if not crossings:
            if strict:
                raise NoEventForLatitude(boundary.theme.display_name, day)
            missing.append(boundary.theme.display_name)
            continue
        if len(crossings) > 1:
            repeated.append(boundary.theme.display_name)
        offset = timedelta(seconds=round(crossings[0] * 60 / SAMPLES_PER_MINUTE))
        events.append(SolarEvent(instant=(start_utc + offset).astimezone(tz), theme=boundary.theme))

    if not events:
        theme = band_theme(float(altitudes[len(altitudes) // 2]))
        logger.warning(
            "solar_schedule_no_events",
            day=day.isoformat(),
            latitude=location.latitude,
            substitute=theme.display_name,
        )
        return [SolarEvent(instant=start_utc.astimezone(tz), theme=theme)]

    if missing:
        logger.warning(
            "solar_schedule_events_missing",
            day=day.isoformat(),
            latitude=location.latitude,
            missing=missing,
        )

    if repeated:
        logger.warning(
            "solar_schedule_extra_crossings",
            day=day.isoformat(),
            latitude=location.latitude,
            repeated=repeated,
            kept="first",
        )

    events.sort(key=lambda event: event.instant)
    return events


class SolarSchedule:
    """Schedule source bound to one observer location and local timezone."""

    def __init__(
        self,
        location: Location,
        tz: str | tzinfo | None = None,
        *,
        altitude_fn: AltitudeFn = astropy_sun_altitudes,
        strict: bool = False,
    ) -> None:
        self.location = location
        self.tz = resolve_timezone(tz)
        self._altitude_fn = altitude_fn
        self._strict = strict

    def compute(self, day: date) -> list[SolarEvent]:
        return compute_schedule(
            self.location,
            day,
            self.tz,
            altitude_fn=self._altitude_fn,
            strict=self._strict,
        )

    __call__ = compute
