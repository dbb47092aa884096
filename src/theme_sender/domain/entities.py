"""Value types shared across the runtime."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from .themes import ThemeId


@dataclass(frozen=True)
class Location:
    """Observer position in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class SolarEvent:
    """Instant at which a solar theme period begins."""

    instant: datetime
    theme: ThemeId

    def __post_init__(self) -> None:
        if self.instant.tzinfo is None or self.instant.tzinfo.utcoffset(self.instant) is None:
            raise ValueError("SolarEvent.instant must be timezone-aware")

    @property
    def label(self) -> str:
        return self.theme.label


@dataclass(frozen=True)
class SetOverride:
    """Operator command: publish ``value`` until the next solar transition."""

    value: str


@dataclass(frozen=True)
class Revert:
    """Operator command: drop any active override now."""


OverrideCommand = Union[SetOverride, Revert]
