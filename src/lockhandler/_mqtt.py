"""The Things Stack MQTT integration: threaded runtime, topics and downlinks."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from lockhandler._redact import redact_for_log
from lockhandler.config import LockhandlerConfig
from lockhandler.exceptions import LockhandlerTransportError
from lockhandler.ingestion.uplink import Uplink, parse_uplink

#: Downlink queue operation per delivery strategy.
_STRATEGY_OPERATIONS: dict[str, str] = {
    "last": "replace",
    "replace": "replace",
    "first": "push",
    "push": "push",
}


@dataclass(frozen=True)
class MqttBootstrap:
    """Broker/session data required to connect to the MQTT integration."""

    broker_host: str
    broker_port: int
    tls: bool
    username: str
    password: str
    topic_prefix: str

    @property
    def uplink_topic(self) -> str:
        return f"{self.topic_prefix}/devices/+/up"

    def downlink_topic(self, device_id: str, strategy: str) -> str:
        operation = _STRATEGY_OPERATIONS.get(strategy)
        if operation is None:
            raise ValueError(f"Unknown downlink strategy: {strategy!r}")
        return f"{self.topic_prefix}/devices/{device_id}/down/{operation}"


def build_bootstrap(config: LockhandlerConfig) -> MqttBootstrap:
    """Derive MQTT connection details from configuration."""
    return MqttBootstrap(
        broker_host=config.mqtt_host,
        broker_port=config.mqtt_port,
        tls=config.mqtt_tls,
        username=config.mqtt_username,
        password=config.ttn_access_key,
        topic_prefix=f"v3/{config.mqtt_username}",
    )


def build_downlink_message(payload: bytes, port: int, confirmed: bool) -> dict[str, Any]:
    """Build the JSON body for a ``down/push`` or ``down/replace`` publish."""
    return {
        "downlinks": [
            {
                "f_port": port,
                "frm_payload": base64.b64encode(payload).decode("ascii"),
                "confirmed": confirmed,
                "priority": "NORMAL",
            }
        ]
    }


def decode_uplink_message(payload: bytes) -> Uplink | None:
    """Parse MQTT payload bytes into an :class:`Uplink`."""
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        return None
    return parse_uplink(parsed)


class TtnMqttRuntime:
    """Threaded paho-mqtt runtime that emits uplinks onto an asyncio loop.

    Uplinks are handed to *on_uplink* with ``call_soon_threadsafe`` so all
    state mutation happens on the loop thread. :meth:`send` may be called
    from the loop; paho's publish is thread-safe and non-blocking.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_uplink: Callable[[Uplink], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_uplink = on_uplink
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._bootstrap: MqttBootstrap | None = None
        self._running = False
        self._connected = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    def start(self, bootstrap: MqttBootstrap) -> None:
        """Connect and subscribe with provided broker details."""
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s username=%s tls=%s",
            bootstrap.broker_host,
            bootstrap.broker_port,
            bootstrap.username,
            bootstrap.tls,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        client.username_pw_set(bootstrap.username, bootstrap.password)
        if bootstrap.tls:
            client.tls_set()

        self._bootstrap = bootstrap

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._connected = True
            self._logger.info("Connected to %s", bootstrap.broker_host)
            c.subscribe(bootstrap.uplink_topic, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                uplink = decode_uplink_message(msg.payload)
            except Exception:
                self._logger.debug("MQTT payload parse failure topic=%s", msg.topic, exc_info=True)
                return
            if uplink is None:
                self._logger.debug("Ignoring message without application payload topic=%s", msg.topic)
                return
            self._logger.debug(
                "Received uplink device=%s port=%s payload=%s",
                uplink.device_id,
                uplink.port,
                redact_for_log(uplink.raw),
            )
            self._loop.call_soon_threadsafe(self._on_uplink, uplink)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._connected = False
            if self._running:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(bootstrap.broker_host, bootstrap.broker_port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def send(self, device_id: str, payload: bytes, port: int, confirmed: bool, strategy: str = "last") -> None:
        """Publish a downlink for *device_id*.

        Fire-and-forget: the network server schedules it for the device's
        next receive window.
        """
        client = self._client
        bootstrap = self._bootstrap
        if client is None or bootstrap is None or not self._running:
            raise LockhandlerTransportError("MQTT runtime is not running", device_id=device_id)

        topic = bootstrap.downlink_topic(device_id, strategy)
        body = build_downlink_message(payload, port, confirmed)
        self._logger.debug("Publishing downlink topic=%s body=%s", topic, redact_for_log(body))
        info = client.publish(topic, json.dumps(body, separators=(",", ":")), qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise LockhandlerTransportError(
                f"Publish to {topic} failed: {mqtt.error_string(info.rc)}",
                device_id=device_id,
                topic=topic,
            )

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected = False
        self._bootstrap = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
