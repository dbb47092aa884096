"""Domain types: themes, solar events and operator commands."""

from .entities import Location, OverrideCommand, Revert, SetOverride, SolarEvent
from .themes import PUBLISH_LABELS, PublishedMessage, ThemeId

__all__ = [
    "Location",
    "OverrideCommand",
    "PUBLISH_LABELS",
    "PublishedMessage",
    "Revert",
    "SetOverride",
    "SolarEvent",
    "ThemeId",
]
