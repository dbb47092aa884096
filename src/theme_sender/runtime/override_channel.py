"""Single-slot, latest-wins mailbox between the override listener and the publish loop.

One producer (the MQTT network thread) pushes, one consumer (the publish loop)
drains once per tick. The slot never holds more than one command: a push
replaces whatever has not been drained yet.
"""

from __future__ import annotations

import threading

import structlog

from ..domain.entities import OverrideCommand

logger = structlog.get_logger(__name__)


class OverrideChannel:
    """Mutex-guarded cell holding at most one pending override command.

    Thread-safe. Neither :meth:`push` nor :meth:`drain` blocks beyond the
    short critical section.
    """

    def __init__(self) -> None:
        self._pending: OverrideCommand | None = None
        self._lock = threading.Lock()

    def push(self, command: OverrideCommand) -> None:
        """Store ``command``, superseding any command not yet drained."""
        with self._lock:
            superseded = self._pending
            self._pending = command
        if superseded is not None:
            logger.debug("override_command_superseded", dropped=repr(superseded), kept=repr(command))

    def drain(self) -> OverrideCommand | None:
        """Return and clear the pending command, if any."""
        with self._lock:
            command, self._pending = self._pending, None
        return command

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None
