"""ThemeSenderService: wires collaborators and owns the two runtime threads.

Startup order: resolve location, build the schedule and prime today's
events (fatal on failure), connect the override listener (fatal if the
broker is unreachable), then start the publish loop, whose first cycle
publishes immediately. Shutdown stops the loop first, then the listener,
joining both.
"""

from __future__ import annotations

import signal
import threading
from dataclasses import dataclass
from typing import Callable

import structlog

from .adapters.geolocation import IpGeolocator
from .adapters.mqtt import MqttPublisher, MqttSubscription
from .domain.entities import Location
from .infra.exceptions import ConfigurationError
from .infra.settings import Settings
from .runtime.clock import Clock, SystemClock, resolve_timezone
from .runtime.override_channel import OverrideChannel
from .runtime.override_listener import OverrideListener, Subscription
from .runtime.publish_loop import PublishLoop, Publisher
from .runtime.solar_schedule import SolarSchedule
from .runtime.theme_resolver import ThemeResolver

logger = structlog.get_logger(__name__)


@dataclass
class Collaborators:
    """External collaborators; defaults are built from settings."""

    publisher: Publisher | None = None
    subscription: Subscription | None = None
    schedule: SolarSchedule | None = None
    locate: Callable[[], Location] | None = None
    clock: Clock | None = None


class ThemeSenderService:
    """Owns the resolver, channel, publish loop and override listener."""

    def __init__(self, settings: Settings, collaborators: Collaborators | None = None) -> None:
        self.settings = settings
        self._collaborators = collaborators or Collaborators()
        self._shutdown = threading.Event()
        self.channel = OverrideChannel()
        self.resolver: ThemeResolver | None = None
        self.loop: PublishLoop | None = None
        self.listener: OverrideListener | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def resolve_location(self) -> Location:
        if self.settings.has_fixed_location:
            location = Location(latitude=self.settings.latitude, longitude=self.settings.longitude)  # type: ignore[arg-type]
            logger.info("location_configured", latitude=location.latitude, longitude=location.longitude)
            return location
        locate = self._collaborators.locate or IpGeolocator(
            url=self.settings.geolocation_url,
            timeout=self.settings.geolocation_timeout_secs,
        ).locate
        return locate()

    def build_schedule(self) -> SolarSchedule:
        if self._collaborators.schedule is not None:
            return self._collaborators.schedule
        try:
            tz = resolve_timezone(self.settings.timezone)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        return SolarSchedule(self.resolve_location(), tz)

    def _build_publisher(self) -> Publisher:
        if self._collaborators.publisher is not None:
            return self._collaborators.publisher
        s = self.settings
        return MqttPublisher(
            s.mqtt_host,
            s.mqtt_port,
            client_id=s.mqtt_client_id,
            username=s.mqtt_username,
            password=s.mqtt_password,
            max_attempts=s.publish_max_attempts,
            cancel_event=self._shutdown,
        )

    def _build_subscription(self) -> Subscription:
        if self._collaborators.subscription is not None:
            return self._collaborators.subscription
        s = self.settings
        return MqttSubscription(
            s.mqtt_host,
            s.mqtt_port,
            client_id=f"{s.mqtt_client_id}-listener",
            username=s.mqtt_username,
            password=s.mqtt_password,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        s = self.settings
        logger.info(
            "theme_sender_starting",
            mqtt_host=s.mqtt_host,
            mqtt_port=s.mqtt_port,
            mqtt_username=s.mqtt_username,
            mqtt_topic=s.mqtt_topic,
            mqtt_override_topic=s.mqtt_override_topic,
            mqtt_revert_topic=s.mqtt_revert_topic,
            publish_interval_secs=s.publish_interval_secs,
        )
        clock = self._collaborators.clock or SystemClock()

        schedule = self.build_schedule()
        self.resolver = ThemeResolver(schedule.compute, schedule.tz)
        # Prime today's schedule so computation errors surface before publishing.
        self.resolver.solar_event_at(clock.now_utc())

        self.loop = PublishLoop(
            self.resolver,
            self.channel,
            self._build_publisher(),
            s.mqtt_topic,
            interval_seconds=s.publish_interval_secs,
            clock=clock,
        )
        self.listener = OverrideListener(
            self.channel,
            s.mqtt_override_topic,
            s.mqtt_revert_topic,
            on_command=self.loop.notify if s.publish_on_override else None,
        )
        self.listener.start(self._build_subscription())
        self.loop.start()

    def stop(self) -> None:
        # Interrupts any publish backoff so the loop thread can be joined.
        self._shutdown.set()
        if self.loop is not None:
            self.loop.stop()
        if self.listener is not None:
            self.listener.stop()
        logger.info("theme_sender_stopped")

    def request_shutdown(self, *_args: object) -> None:
        self._shutdown.set()

    def run(self, install_signal_handlers: bool = True) -> None:
        """Start, block until shutdown is requested, then stop."""
        if install_signal_handlers:
            signal.signal(signal.SIGINT, self.request_shutdown)
            signal.signal(signal.SIGTERM, self.request_shutdown)
        self.start()
        try:
            self._shutdown.wait()
        finally:
            self.stop()
