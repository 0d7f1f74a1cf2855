"""Thin wrapper around the paho MQTT client used by every publisher."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlparse

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from .config import MqttConfig

LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]

_SCHEMES = {
    # scheme: (transport, tls, default port)
    "mqtt": ("tcp", False, 1883),
    "tcp": ("tcp", False, 1883),
    "mqtts": ("tcp", True, 8883),
    "ssl": ("tcp", True, 8883),
    "ws": ("websockets", False, 80),
    "wss": ("websockets", True, 443),
}


class BusError(RuntimeError):
    """The broker connection failed or refused an operation."""


class BusClient:
    def __init__(self, config: MqttConfig, client_factory: Callable[..., mqtt.Client] = mqtt.Client):
        parsed = urlparse(config.url or "")
        if parsed.scheme not in _SCHEMES or not parsed.hostname:
            raise ValueError(f"Unsupported MQTT broker URL: {config.url}")

        transport, use_tls, default_port = _SCHEMES[parsed.scheme]
        self.config = config
        self.host = parsed.hostname
        self.port = parsed.port or default_port

        self._client = client_factory(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=config.client_id or "",
            transport=transport,
        )
        if use_tls:
            self._client.tls_set()
        if transport == "websockets":
            self._client.ws_set_options(path=parsed.path or "/mqtt")

        username = config.username or parsed.username
        password = config.password or parsed.password
        if username:
            self._client.username_pw_set(username, password)

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        self._handlers: List[MessageHandler] = []
        self._subscriptions: List[str] = []
        self._connected = threading.Event()
        self._connack = threading.Event()
        self._connect_error: Optional[str] = None
        self._has_connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def add_message_handler(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def connect(self) -> None:
        LOGGER.info("Connecting to MQTT broker at %s:%s", self.host, self.port)
        try:
            self._client.connect(self.host, self.port, keepalive=self.config.keepalive)
        except OSError as exc:
            raise BusError(f"Could not connect to MQTT broker {self.host}:{self.port}: {exc}") from exc
        self._client.loop_start()

        if not self._connack.wait(self.config.connect_timeout) or self._connect_error:
            self._client.loop_stop()
            reason = self._connect_error or "timed out waiting for CONNACK"
            raise BusError(f"MQTT connection to {self.host}:{self.port} failed: {reason}")

    def publish(self, topic: str, payload: str, retain: bool = False) -> mqtt.MQTTMessageInfo:
        info = self._client.publish(topic, payload, qos=self.config.qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise BusError(f"Publishing to {topic} failed: {mqtt.error_string(info.rc)}")
        return info

    def wait_for(self, infos: Iterable[mqtt.MQTTMessageInfo]) -> None:
        for info in infos:
            try:
                info.wait_for_publish(self.config.publish_timeout)
            except (RuntimeError, ValueError) as exc:
                raise BusError(f"Message {info.mid} was not published: {exc}") from exc
            if not info.is_published():
                raise BusError(f"Message {info.mid} was not acknowledged within {self.config.publish_timeout}s")

    def subscribe(self, topic: str) -> None:
        result, _mid = self._client.subscribe(topic, qos=self.config.qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise BusError(f"Subscribing to {topic} failed: {mqtt.error_string(result)}")
        if topic not in self._subscriptions:
            self._subscriptions.append(topic)
        LOGGER.info("Subscribed to %s", topic)

    def disconnect(self) -> None:
        self._client.disconnect()
        self._client.loop_stop()
        self._connected.clear()

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            self._connect_error = str(reason_code)
            LOGGER.error("MQTT broker refused the connection: %s", reason_code)
            self._connack.set()
            return

        if self._has_connected:
            LOGGER.info("Reconnected to MQTT broker")
            for topic in self._subscriptions:
                client.subscribe(topic, qos=self.config.qos)
        else:
            LOGGER.info("Connected to MQTT broker")
        self._has_connected = True
        self._connect_error = None
        self._connected.set()
        self._connack.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        self._connected.clear()
        if reason_code.is_failure:
            LOGGER.warning("Lost connection to MQTT broker: %s", reason_code)

    def _on_message(self, client, userdata, message):
        for handler in self._handlers:
            handler(message.topic, message.payload)
