"""MQTT provider.

Each feed path is an MQTT topic whose retained message holds the current
JSON node (``{"value": 21.5, "timestamp": 1700000000000}``). An empty
retained payload means the node does not exist.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Any, cast

import paho.mqtt.client as mqtt

from sensordash.exceptions import FeedTransportError
from sensordash.providers.base import ErrorCallback, FeedNotification, ValueCallback


def decode_mqtt_payload(topic: str, payload: bytes) -> FeedNotification | None:
    """Parse a topic payload into a notification; ``None`` when unparseable."""
    text = payload.decode("utf-8", errors="replace").strip()
    if not text:
        return FeedNotification(path=topic, exists=False)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return FeedNotification(path=topic, exists=parsed is not None, value=parsed)


class MqttSubscription:
    def __init__(
        self,
        provider: MqttFeedProvider,
        topic: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._provider = provider
        self.topic = topic
        self.on_value = on_value
        self.on_error = on_error
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._provider._detach(self)


class MqttFeedProvider:
    """Threaded paho-mqtt client that delivers notifications onto an asyncio loop.

    paho callbacks run on its network thread; they only parse the payload
    and hop onto the loop with ``call_soon_threadsafe``. Subscriber
    bookkeeping and user callbacks always run on the loop thread.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        host: str,
        port: int = 1883,
        keepalive: int = 60,
        client_id: str = "",
        username: str | None = None,
        password: str | None = None,
        tls: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._host = host
        self._port = port
        self._keepalive = keepalive
        self._client_id = client_id
        self._username = username
        self._password = password
        self._tls = tls
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._subscriptions: dict[str, list[MqttSubscription]] = {}
        # Topics are read from the paho thread on (re)connect.
        self._topics_lock = threading.Lock()
        self._topics: set[str] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Connect to the broker and start the network loop."""
        self.stop()
        self._logger.debug("MQTT provider start requested host=%s port=%s", self._host, self._port)

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._username is not None:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                self._loop.call_soon_threadsafe(self._fail_all, f"MQTT connect failed: {reason_code}")
                return
            self._logger.debug("MQTT connected reason=%s", reason_code)
            with self._topics_lock:
                topics = sorted(self._topics)
            for topic in topics:
                c.subscribe(topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            notification = decode_mqtt_payload(msg.topic, msg.payload)
            if notification is None:
                self._logger.debug("MQTT payload parse failure topic=%s", msg.topic)
                return
            self._loop.call_soon_threadsafe(self._dispatch, notification)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running and reason_code.value != 0:
                self._logger.debug("MQTT disconnected: %s", reason_code)
                self._loop.call_soon_threadsafe(self._fail_all, f"MQTT disconnected: {reason_code}")

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(self._host, self._port, keepalive=self._keepalive)
        except OSError as exc:
            raise FeedTransportError(f"MQTT connect to {self._host}:{self._port} failed: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def subscribe(self, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> MqttSubscription:
        client = self._client
        if client is None or not self._running:
            raise FeedTransportError("MQTT provider is not running", path=path)

        topic = path.strip("/")
        subscription = MqttSubscription(self, topic, on_value, on_error)
        subscribers = self._subscriptions.setdefault(topic, [])
        subscribers.append(subscription)
        if len(subscribers) == 1:
            with self._topics_lock:
                self._topics.add(topic)
            client.subscribe(topic, qos=1)
            self._logger.debug("MQTT subscribed topic=%s", topic)
        return subscription

    def _dispatch(self, notification: FeedNotification) -> None:
        for subscription in list(self._subscriptions.get(notification.path, [])):
            if not subscription.closed:
                subscription.on_value(notification)

    def _fail_all(self, message: str) -> None:
        for topic, subscribers in list(self._subscriptions.items()):
            for subscription in list(subscribers):
                if not subscription.closed:
                    subscription.on_error(FeedTransportError(message, path=topic))

    def _detach(self, subscription: MqttSubscription) -> None:
        subscribers = self._subscriptions.get(subscription.topic, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if subscribers:
            return
        self._subscriptions.pop(subscription.topic, None)
        with self._topics_lock:
            self._topics.discard(subscription.topic)
        client = self._client
        if client is not None and self._running:
            client.unsubscribe(subscription.topic)
            self._logger.debug("MQTT unsubscribed topic=%s", subscription.topic)
