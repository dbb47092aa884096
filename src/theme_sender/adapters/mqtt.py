"""
MQTT transport adapters built on paho-mqtt.

``MqttPublisher`` opens a short-lived connection per message and owns the
retry/backoff policy for publishing. ``MqttSubscription`` keeps one persistent
connection with paho's network thread, reconnecting automatically and
re-subscribing on every successful connect.
"""

from __future__ import annotations

import threading
from typing import Callable
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt
import paho.mqtt.publish as mqtt_publish
import structlog
from paho.mqtt import MQTTException

from ..infra.exceptions import ConfigurationError, TransportError

logger = structlog.get_logger(__name__)

DEFAULT_PORT = 1883
DEFAULT_KEEPALIVE = 20
MAX_RETRY_DELAY = 30.0
MIN_RECONNECT_DELAY = 1
MAX_RECONNECT_DELAY = 60

MessageHandler = Callable[[str, bytes], None]


def parse_broker(host: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Split ``host``, ``host:port`` or ``tcp://host:port`` into (host, port)."""
    value = host.strip()
    if not value:
        raise ConfigurationError("MQTT host is empty")
    if "://" not in value:
        value = f"tcp://{value}"
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"Invalid MQTT host: {host}") from exc
    if not parts.hostname:
        raise ConfigurationError(f"Invalid MQTT host: {host}")
    return parts.hostname, port or default_port


def _auth(username: str | None, password: str | None) -> dict[str, str] | None:
    if username is None:
        return None
    auth = {"username": username}
    if password is not None:
        auth["password"] = password
    return auth


class MqttPublisher:
    """Publish one message per connection, retrying with exponential backoff.

    Raises :class:`TransportError` once ``max_attempts`` attempts have failed,
    or as soon as ``cancel_event`` is set during a backoff wait.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        client_id: str = "theme-sender",
        username: str | None = None,
        password: str | None = None,
        qos: int = 1,
        max_attempts: int = 5,
        initial_delay: float = 1.0,
        cancel_event: threading.Event | None = None,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.host, self.port = parse_broker(host, port)
        self._client_id = client_id
        self._auth = _auth(username, password)
        self._qos = qos
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._cancel_event = cancel_event or threading.Event()
        self._sleep = sleep or self._cancel_event.wait

    def publish(self, topic: str, payload: bytes) -> None:
        delay = self._initial_delay
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                mqtt_publish.single(
                    topic,
                    payload=payload,
                    qos=self._qos,
                    hostname=self.host,
                    port=self.port,
                    client_id=self._client_id,
                    keepalive=DEFAULT_KEEPALIVE,
                    auth=self._auth,
                )
                logger.debug("mqtt_published", topic=topic, attempt=attempt, bytes=len(payload))
                return
            except (OSError, MQTTException) as exc:
                last_error = exc
                if attempt == self._max_attempts:
                    break
                logger.warning(
                    "mqtt_publish_retry",
                    topic=topic,
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    retry_in_seconds=delay,
                    error=str(exc),
                )
                if self._sleep(delay) or self._cancel_event.is_set():
                    logger.info("mqtt_publish_cancelled", topic=topic, attempt=attempt)
                    break
                delay = min(delay * 2, MAX_RETRY_DELAY)

        raise TransportError(
            f"Failed to publish to {topic} after {attempt} attempts: {last_error}"
        ) from last_error


class MqttSubscription:
    """Persistent subscriber delivering ``(topic, payload)`` to a handler.

    start() connects synchronously so an unreachable broker fails fast with
    :class:`ConfigurationError`; afterwards paho's network thread handles
    reconnects (1s to 60s backoff).
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        client_id: str = "theme-sender-listener",
        username: str | None = None,
        password: str | None = None,
        qos: int = 1,
        keepalive: int = DEFAULT_KEEPALIVE,
        client_factory: Callable[[str], mqtt.Client] | None = None,
    ) -> None:
        self.host, self.port = parse_broker(host, port)
        self._client_id = client_id
        self._username = username
        self._password = password
        self._qos = qos
        self._keepalive = keepalive
        self._client_factory = client_factory or _default_client
        self._client: mqtt.Client | None = None
        self._topics: list[str] = []
        self._handler: MessageHandler | None = None

    def start(self, topics: list[str], handler: MessageHandler) -> None:
        if self._client is not None:
            return
        self._topics = list(topics)
        self._handler = handler

        client = self._client_factory(self._client_id)
        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect
        if self._username is not None:
            client.username_pw_set(self._username, self._password)
        client.reconnect_delay_set(min_delay=MIN_RECONNECT_DELAY, max_delay=MAX_RECONNECT_DELAY)

        logger.info("mqtt_listener_connecting", host=self.host, port=self.port)
        try:
            client.connect(self.host, self.port, keepalive=self._keepalive)
        except (OSError, MQTTException) as exc:
            raise ConfigurationError(
                f"Cannot reach MQTT broker at {self.host}:{self.port}: {exc}"
            ) from exc
        client.loop_start()
        self._client = client

    def stop(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        client.disconnect()
        client.loop_stop()
        logger.info("mqtt_listener_disconnected", host=self.host)

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_connect(self, client, _userdata, _flags, reason_code, _properties=None) -> None:
        if reason_code.is_failure:
            logger.error("mqtt_listener_connect_refused", reason=str(reason_code))
            return
        for topic in self._topics:
            client.subscribe(topic, qos=self._qos)
        logger.info("mqtt_listener_subscribed", topics=self._topics)

    def _on_disconnect(self, _client, _userdata, _flags, reason_code, _properties=None) -> None:
        if self._client is None:
            return
        logger.warning("mqtt_listener_connection_lost", reason=str(reason_code))

    def _on_message(self, _client, _userdata, message) -> None:
        logger.debug("mqtt_message_received", topic=message.topic, bytes=len(message.payload))
        if self._handler is None:
            return
        try:
            self._handler(message.topic, message.payload)
        except Exception:
            logger.exception("mqtt_message_handler_failed", topic=message.topic)


def _default_client(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        clean_session=False,
    )
