"""Publish loop: drain, resolve, publish, wait.

Lifecycle: start()/stop() run a background thread. The first cycle runs as
soon as the thread starts; later cycles run every ``interval_seconds``.
:meth:`PublishLoop.notify` wakes the loop early (used when an override
arrives) and re-arms the interval from that cycle.

run_once() can be called manually for testing.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Protocol

import structlog

from ..domain.themes import PublishedMessage
from ..infra.exceptions import TransportError
from .clock import Clock, SystemClock
from .override_channel import OverrideChannel
from .theme_resolver import ThemeResolver

logger = structlog.get_logger(__name__)


class Publisher(Protocol):
    """Transport collaborator that delivers a payload to a topic."""

    def publish(self, topic: str, payload: bytes) -> None:
        """Deliver ``payload`` or raise :class:`TransportError`."""


class LoopState(Enum):
    IDLE = "idle"
    PUBLISHING = "publishing"


class PublishLoop:
    """Timer-driven driver handing the resolved theme to the publisher."""

    def __init__(
        self,
        resolver: ThemeResolver,
        channel: OverrideChannel,
        publisher: Publisher,
        topic: str,
        *,
        interval_seconds: float = 300.0,
        clock: Clock | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        self._resolver = resolver
        self._channel = channel
        self._publisher = publisher
        self._topic = topic
        self._interval_s = interval_seconds
        self._clock = clock or SystemClock()

        self._state = LoopState.IDLE
        self._cycles = 0
        self._publish_failures = 0
        self._last_message: PublishedMessage | None = None

        # Lifecycle
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def cycles(self) -> int:
        return self._cycles

    @property
    def publish_failures(self) -> int:
        return self._publish_failures

    @property
    def last_message(self) -> PublishedMessage | None:
        return self._last_message

    def run_once(self) -> PublishedMessage:
        """Drain the channel, resolve the theme, publish it.

        A transport failure is logged and counted; the message is still
        returned.
        """
        now = self._clock.now_utc()
        pending = self._channel.drain()
        label = self._resolver.resolve(now, pending)

        self._state = LoopState.PUBLISHING
        message = PublishedMessage(theme=label, data=now)
        try:
            if self._last_message is None or self._last_message.theme != label:
                logger.info("theme_changed", theme=label, topic=self._topic)
            else:
                logger.info("theme_republished", theme=label, topic=self._topic)
            self._publisher.publish(self._topic, message.to_payload())
        except TransportError as exc:
            self._publish_failures += 1
            logger.error("theme_publish_failed", theme=label, topic=self._topic, error=str(exc))
        finally:
            self._state = LoopState.IDLE
            self._cycles += 1
        self._last_message = message
        return message

    def notify(self) -> None:
        """Wake the loop so the next cycle runs immediately."""
        self._wake_event.set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="PublishLoop", daemon=True)
        self._thread.start()
        logger.info("publish_loop_started", interval_seconds=self._interval_s, topic=self._topic)

    def stop(self, timeout: float | None = 10.0) -> None:
        self._stop_event.set()
        self._wake_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("publish_loop_stop_timeout", timeout_seconds=timeout)
                return
            self._thread = None
        logger.info("publish_loop_stopped", cycles=self._cycles)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("publish_cycle_failed")
            self._wake_event.wait(timeout=self._interval_s)
            self._wake_event.clear()
