from __future__ import annotations

from datetime import UTC, datetime

import pytest

from sensordash.exceptions import FeedDecodeError
from sensordash.ingestion.decode import decode_notification
from sensordash.models.feed import FeedId, PresenceStatus, Reading
from sensordash.providers.base import FeedNotification

_OBSERVED = datetime(2026, 1, 1, tzinfo=UTC)


def _note(value: object, *, exists: bool = True, path: str = "sensor/x") -> FeedNotification:
    return FeedNotification(path=path, exists=exists, value=value)


def test_temperature_notification_decodes_to_reading() -> None:
    event = decode_notification(
        FeedId.TEMPERATURE,
        _note({"value": 21.5, "timestamp": 1_700_000_000_000}),
        observed_at=_OBSERVED,
    )

    assert event.feed == FeedId.TEMPERATURE
    assert event.payload == Reading(value=21.5)
    assert event.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
    assert event.observed_at == _OBSERVED


def test_presence_notification_decodes_to_status() -> None:
    event = decode_notification(FeedId.PRESENCE, _note({"status": True, "timestamp": 1_700_000_000_000}))
    assert event.payload == PresenceStatus(detected=True)


def test_missing_timestamp_falls_back_to_observation_time() -> None:
    event = decode_notification(FeedId.HUMIDITY, _note({"value": 48}), observed_at=_OBSERVED)
    assert event.timestamp == _OBSERVED


def test_non_existent_snapshot_is_rejected() -> None:
    with pytest.raises(FeedDecodeError):
        decode_notification(FeedId.TEMPERATURE, _note(None, exists=False))


@pytest.mark.parametrize("value", [21.5, "21.5", [1, 2], True])
def test_non_object_node_is_rejected(value: object) -> None:
    with pytest.raises(FeedDecodeError):
        decode_notification(FeedId.TEMPERATURE, _note(value))


def test_missing_value_field_is_rejected() -> None:
    with pytest.raises(FeedDecodeError):
        decode_notification(FeedId.SOIL_MOISTURE, _note({"timestamp": 1_700_000_000_000}))


def test_presence_shape_on_numeric_feed_is_rejected() -> None:
    with pytest.raises(FeedDecodeError):
        decode_notification(FeedId.TEMPERATURE, _note({"status": True}))
