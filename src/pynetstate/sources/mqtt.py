"""MQTT-fed connectivity source.

A network daemon publishes the device's raw identifiers to a topic,
either as a bare JSON list (``["wifi", "vpn"]``) or as an object with a
``connectivity`` list. Publishing retained lets a fresh subscriber pull
the current value immediately.

paho runs its network loop on its own thread; readings hop onto the
asyncio loop with ``call_soon_threadsafe`` before reaching listeners.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import secrets
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pynetstate.config import NetstateConfig
from pynetstate.exceptions import ConnectivitySourceError, NetstateConfigError
from pynetstate.sources.base import PushCallback, RawReading

_logger = logging.getLogger(__name__)


def parse_connectivity_payload(payload: bytes) -> list[str]:
    """Decode one message into raw identifiers (not yet mapped)."""
    try:
        decoded = json.loads(payload.decode("utf-8"))
    except ValueError as exc:
        raise ConnectivitySourceError(f"Connectivity payload is not JSON: {exc}", source="mqtt") from exc

    if isinstance(decoded, dict):
        decoded = decoded.get("connectivity")
    if not isinstance(decoded, list) or not all(isinstance(value, str) for value in decoded):
        raise ConnectivitySourceError("Connectivity payload must be a list of strings", source="mqtt")
    return decoded


class MqttConnectivitySource:
    """Threaded paho-mqtt subscriber exposing the connectivity source interface."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        topic: str = "netstate/connectivity",
        keepalive: int = 60,
        username: str | None = None,
        password: str | None = None,
        tls: bool = False,
        pull_timeout: float = 5.0,
        client_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._topic = topic
        self._keepalive = keepalive
        self._username = username
        self._password = password
        self._tls = tls
        self._pull_timeout = pull_timeout
        self._client_id = client_id or f"pynetstate-{secrets.token_hex(4)}"
        self._logger = logger or _logger
        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._running = False
        self._listeners: list[PushCallback] = []
        self._last: list[str] | None = None
        self._first_reading = asyncio.Event()

    @classmethod
    def from_config(cls, config: NetstateConfig) -> MqttConnectivitySource:
        if not config.mqtt_host:
            raise NetstateConfigError("mqtt_host is required for the MQTT connectivity source")
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic=config.mqtt_topic,
            keepalive=config.mqtt_keepalive,
            username=config.mqtt_username,
            password=config.mqtt_password,
            tls=config.mqtt_tls,
            pull_timeout=config.mqtt_pull_timeout,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_reading(self) -> list[str] | None:
        return None if self._last is None else list(self._last)

    async def __aenter__(self) -> MqttConnectivitySource:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Connect and subscribe. Connection errors propagate."""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        client = self._build_client()
        try:
            await self._loop.run_in_executor(None, self._connect, client)
        except OSError as exc:
            raise ConnectivitySourceError(
                f"Cannot connect to MQTT broker {self._host}:{self._port}: {exc}",
                source="mqtt",
            ) from exc
        self._client = client
        self._running = True

    async def stop(self) -> None:
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        if client is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(None, self._disconnect, client, was_running)

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._username:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()
        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect
        return client

    def _connect(self, client: mqtt.Client) -> None:
        self._logger.debug(
            "MQTT connect host=%s port=%s topic=%s client_id=%s",
            self._host,
            self._port,
            self._topic,
            self._client_id,
        )
        client.connect(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()

    def _disconnect(self, client: mqtt.Client, was_running: bool) -> None:
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._logger.debug("MQTT connected, subscribing topic=%s", self._topic)
        client.subscribe(self._topic, qos=1)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)

    def _on_message(self, _client: Any, _userdata: Any, msg: Any) -> None:
        try:
            reading = parse_connectivity_payload(msg.payload)
        except ConnectivitySourceError:
            self._logger.debug("Dropping malformed connectivity payload topic=%s", msg.topic, exc_info=True)
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._deliver, reading)

    # ------------------------------------------------------------------
    # Source interface
    # ------------------------------------------------------------------

    def _deliver(self, reading: list[str]) -> None:
        self._last = reading
        self._first_reading.set()
        for callback in list(self._listeners):
            callback(list(reading))

    async def pull(self) -> RawReading:
        """Return the latest reported identifiers.

        Waits up to ``pull_timeout`` for the first report when nothing has
        arrived yet.
        """
        if self._last is None:
            try:
                await asyncio.wait_for(self._first_reading.wait(), self._pull_timeout)
            except TimeoutError as exc:
                raise ConnectivitySourceError(
                    f"No connectivity report on {self._topic} within {self._pull_timeout}s",
                    source="mqtt",
                ) from exc
        assert self._last is not None  # noqa: S101
        return list(self._last)

    def subscribe(self, callback: PushCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _cancel() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _cancel
