from __future__ import annotations

import asyncio

import pytest

from sensordash.exceptions import FeedTransportError
from sensordash.providers.base import FeedNotification
from sensordash.providers.mqtt import MqttFeedProvider, decode_mqtt_payload


class _FakeClient:
    def __init__(self) -> None:
        self.subscribed: list[str] = []
        self.unsubscribed: list[str] = []

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscribed.append(topic)

    def unsubscribe(self, topic: str) -> None:
        self.unsubscribed.append(topic)


def _running_provider(loop: asyncio.AbstractEventLoop) -> tuple[MqttFeedProvider, _FakeClient]:
    provider = MqttFeedProvider(loop=loop, host="broker.local")
    client = _FakeClient()
    # Bypass the network; subscribe only needs a running client.
    provider._client = client  # type: ignore[assignment]  # noqa: SLF001
    provider._running = True  # noqa: SLF001
    return provider, client


def test_decode_json_payload() -> None:
    notification = decode_mqtt_payload("sensor/temperature", b'{"value": 21.5, "timestamp": 1700000000000}')
    assert notification == FeedNotification(
        path="sensor/temperature",
        exists=True,
        value={"value": 21.5, "timestamp": 1700000000000},
    )


def test_decode_empty_payload_means_missing() -> None:
    assert decode_mqtt_payload("sensor/humidity", b"") == FeedNotification(path="sensor/humidity", exists=False)


def test_decode_garbage_payload() -> None:
    assert decode_mqtt_payload("sensor/humidity", b"\x00not-json") is None


@pytest.mark.asyncio
async def test_subscribe_requires_running_client() -> None:
    provider = MqttFeedProvider(loop=asyncio.get_running_loop(), host="broker.local")
    with pytest.raises(FeedTransportError):
        provider.subscribe("sensor/temperature", lambda n: None, lambda e: None)


@pytest.mark.asyncio
async def test_dispatch_reaches_topic_subscribers_only() -> None:
    provider, client = _running_provider(asyncio.get_running_loop())
    temps: list[FeedNotification] = []
    hums: list[FeedNotification] = []

    provider.subscribe("/sensor/temperature", temps.append, lambda e: None)
    provider.subscribe("sensor/humidity", hums.append, lambda e: None)
    provider._dispatch(FeedNotification(path="sensor/temperature", exists=True, value={"value": 1}))  # noqa: SLF001

    assert client.subscribed == ["sensor/temperature", "sensor/humidity"]
    assert len(temps) == 1
    assert hums == []


@pytest.mark.asyncio
async def test_close_unsubscribes_when_last_subscriber_leaves() -> None:
    provider, client = _running_provider(asyncio.get_running_loop())
    first = provider.subscribe("sensor/temperature", lambda n: None, lambda e: None)
    second = provider.subscribe("sensor/temperature", lambda n: None, lambda e: None)

    first.close()
    assert client.unsubscribed == []
    second.close()
    second.close()

    assert client.subscribed == ["sensor/temperature"]
    assert client.unsubscribed == ["sensor/temperature"]


@pytest.mark.asyncio
async def test_connection_loss_fails_every_subscription() -> None:
    provider, _client = _running_provider(asyncio.get_running_loop())
    errors: list[Exception] = []
    provider.subscribe("sensor/temperature", lambda n: None, errors.append)
    provider.subscribe("sensor/humidity", lambda n: None, errors.append)

    provider._fail_all("MQTT disconnected: Unspecified error")  # noqa: SLF001

    assert sorted(e.path for e in errors if isinstance(e, FeedTransportError)) == [
        "sensor/humidity",
        "sensor/temperature",
    ]


@pytest.mark.asyncio
async def test_closed_subscription_receives_nothing() -> None:
    provider, _client = _running_provider(asyncio.get_running_loop())
    seen: list[FeedNotification] = []
    sub = provider.subscribe("sensor/temperature", seen.append, lambda e: None)
    sub.close()

    provider._dispatch(FeedNotification(path="sensor/temperature", exists=True, value={"value": 1}))  # noqa: SLF001

    assert seen == []
