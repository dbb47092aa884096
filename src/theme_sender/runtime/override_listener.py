"""Override listener: inbound transport messages -> OverrideChannel commands.

The override topic's payload is used verbatim (decoded as UTF-8, invalid
bytes replaced) as the override value. Any message on the revert topic is a
revert; its payload is ignored.
"""

from __future__ import annotations

from typing import Callable, Protocol

import structlog

from ..domain.entities import OverrideCommand, Revert, SetOverride
from .override_channel import OverrideChannel

logger = structlog.get_logger(__name__)

MessageHandler = Callable[[str, bytes], None]


class Subscription(Protocol):
    """Transport collaborator delivering messages for a set of topics."""

    def start(self, topics: list[str], handler: MessageHandler) -> None: ...

    def stop(self) -> None: ...


class OverrideListener:
    """Decode override/revert messages and push them into the channel.

    ``on_command`` is invoked after every push; the service uses it to wake
    the publish loop.
    """

    def __init__(
        self,
        channel: OverrideChannel,
        override_topic: str,
        revert_topic: str,
        *,
        on_command: Callable[[], None] | None = None,
    ) -> None:
        if override_topic == revert_topic:
            raise ValueError("override and revert topics must differ")
        self._channel = channel
        self._override_topic = override_topic
        self._revert_topic = revert_topic
        self._on_command = on_command
        self._subscription: Subscription | None = None

    @property
    def topics(self) -> list[str]:
        return [self._override_topic, self._revert_topic]

    def decode(self, topic: str, payload: bytes) -> OverrideCommand | None:
        if topic == self._revert_topic:
            return Revert()
        if topic == self._override_topic:
            return SetOverride(payload.decode("utf-8", errors="replace"))
        return None

    def handle_message(self, topic: str, payload: bytes) -> None:
        command = self.decode(topic, payload)
        if command is None:
            logger.debug("override_listener_ignored_topic", topic=topic)
            return
        logger.info("override_command_received", topic=topic, command=repr(command))
        self._channel.push(command)
        if self._on_command is not None:
            self._on_command()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, subscription: Subscription) -> None:
        """Subscribe to both topics; messages arrive on the transport's thread."""
        if self._subscription is not None:
            return
        subscription.start(self.topics, self.handle_message)
        self._subscription = subscription
        logger.info("override_listener_started", topics=self.topics)

    def stop(self) -> None:
        if self._subscription is None:
            return
        self._subscription.stop()
        self._subscription = None
        logger.info("override_listener_stopped")
