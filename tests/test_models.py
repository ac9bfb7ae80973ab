"""Tests for feed payload models and feed events."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from sensordash.models.dashboard import DashboardState
from sensordash.models.feed import FeedEvent, FeedId, PresenceStatus, Reading
from sensordash.models.payloads import NumericPayload, PresencePayload

# ------------------------------------------------------------------
# Payloads
# ------------------------------------------------------------------


class TestNumericPayload:
    def test_millisecond_timestamp(self) -> None:
        payload = NumericPayload.model_validate({"value": 21, "timestamp": 1_700_000_000_000})
        assert payload.value == 21.0
        assert payload.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_second_timestamp(self) -> None:
        payload = NumericPayload.model_validate({"value": 40.5, "timestamp": 1_700_000_000})
        assert payload.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_timestamp_optional(self) -> None:
        payload = NumericPayload.model_validate({"value": 55})
        assert payload.timestamp is None

    def test_unknown_keys_ignored(self) -> None:
        payload = NumericPayload.model_validate({"value": 1, "timestamp": 2, "unit": "C"})
        assert payload.model_dump() == {"value": 1.0, "timestamp": datetime(1970, 1, 1, 0, 0, 2, tzinfo=UTC)}

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"timestamp": 1_700_000_000_000},
            {"value": None},
            {"value": ""},
            {"value": float("nan")},
            {"value": "warm"},
            {"value": True},
            {"value": 1, "timestamp": "yesterday"},
        ],
    )
    def test_malformed_rejected(self, data: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            NumericPayload.model_validate(data)


class TestPresencePayload:
    def test_status(self) -> None:
        payload = PresencePayload.model_validate({"status": False, "timestamp": 1_700_000_000_000})
        assert payload.status is False

    @pytest.mark.parametrize("data", [{}, {"status": "yes"}, {"status": 1}, {"value": True}])
    def test_malformed_rejected(self, data: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            PresencePayload.model_validate(data)


# ------------------------------------------------------------------
# FeedEvent
# ------------------------------------------------------------------


class TestFeedEvent:
    def test_numeric_feed_requires_reading(self) -> None:
        with pytest.raises(ValidationError):
            FeedEvent(feed=FeedId.TEMPERATURE, payload=PresenceStatus(detected=True))

    def test_presence_feed_requires_status(self) -> None:
        with pytest.raises(ValidationError):
            FeedEvent(feed=FeedId.PRESENCE, payload=Reading(value=1.0))

    def test_naive_timestamp_becomes_utc(self) -> None:
        event = FeedEvent(
            feed=FeedId.HUMIDITY,
            payload=Reading(value=60.0),
            timestamp=datetime(2026, 1, 1, 12, 0),
        )
        assert event.timestamp.tzinfo is UTC

    def test_event_is_frozen(self) -> None:
        event = FeedEvent(feed=FeedId.HUMIDITY, payload=Reading(value=60.0))
        with pytest.raises(ValidationError):
            event.feed = FeedId.TEMPERATURE  # type: ignore[misc]


def test_feed_id_numeric_flag() -> None:
    assert FeedId.TEMPERATURE.is_numeric
    assert FeedId.SOIL_MOISTURE.is_numeric
    assert not FeedId.PRESENCE.is_numeric


def test_dashboard_state_defaults() -> None:
    state = DashboardState()
    assert state.loading is True
    assert state.error is None
    assert state.temperature is None
    assert state.presence is None
    assert state.last_update_time is None
    assert not state.has_error
