"""Theme vocabulary and the published message.

``ThemeId`` is the closed set of solar-derived themes. Each member carries its
publish label and a human description, so the label mapping is total by
construction: adding a theme means adding a member with both values.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, field_serializer


class ThemeId(Enum):
    """Solar period themes, in the order they occur across a day."""

    NIGHT = ("Night", "dark", "Full night - stars visible")
    ASTRONOMICAL_DAWN = ("AstronomicalDawn", "dark-dimmed", "Astronomical dawn - faint light appears in sky")
    NAUTICAL_DAWN = ("NauticalDawn", "dark-soft", "Nautical dawn - horizon becomes visible")
    CIVIL_DAWN = ("CivilDawn", "light-soft", "Civil dawn - enough light for outdoor activities")
    SUNRISE = ("Sunrise", "light", "Sunrise - sun breaks the horizon")
    DAY = ("Day", "light", "Full daylight")
    CIVIL_DUSK = ("CivilDusk", "light-soft", "Civil dusk - sun below horizon, still light out")
    NAUTICAL_DUSK = ("NauticalDusk", "dark-soft", "Nautical dusk - darker, horizon still visible")
    ASTRONOMICAL_DUSK = ("AstronomicalDusk", "dark-dimmed", "Astronomical dusk - fading light in sky")

    def __init__(self, display_name: str, label: str, description: str) -> None:
        self.display_name = display_name
        self.label = label
        self.description = description

    def __str__(self) -> str:
        return self.display_name

    @classmethod
    def from_name(cls, name: str) -> "ThemeId":
        """Look up a theme by its display name (``"CivilDusk"``) or member name."""
        for theme in cls:
            if name in (theme.display_name, theme.name):
                return theme
        raise ValueError(f"Unknown theme: {name}")


PUBLISH_LABELS: frozenset[str] = frozenset(theme.label for theme in ThemeId)


class PublishedMessage(BaseModel):
    """Payload published on the theme topic.

    ``data`` is the instant the message was produced, not the instant of the
    solar event behind it.
    """

    theme: str
    data: datetime

    @field_serializer("data")
    def _serialize_data(self, value: datetime) -> str:
        if value.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware")
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_payload(self) -> bytes:
        return self.model_dump_json().encode("utf-8")
