"""
Custom exceptions for theme-sender operations.

Startup-time failures (configuration, geolocation, schedule computation) are
fatal; transport failures during publishing are logged and survived.
"""


class ThemeSenderError(Exception):
    """Base exception for all theme-sender errors."""

    pass


class ConfigurationError(ThemeSenderError):
    """Raised when flags or environment cannot be parsed, or the broker is unreachable at startup."""

    pass


class GeolocationUnavailable(ThemeSenderError):
    """Raised when the host location cannot be resolved."""

    pass


class ScheduleError(ThemeSenderError):
    """Raised when a solar schedule cannot be computed."""

    pass


class NoEventForLatitude(ScheduleError):
    """Raised when a solar event does not occur on a date at a latitude."""

    def __init__(self, event: str, day: object) -> None:
        super().__init__(f"{event} does not occur on {day} at this latitude")
        self.event = event
        self.day = day


class TransportError(ThemeSenderError):
    """Raised when a message cannot be delivered to the broker."""

    pass
