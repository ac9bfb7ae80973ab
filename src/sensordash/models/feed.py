"""Typed feed updates.

Every provider notification is decoded into one of these models before
it reaches the state layer. Only the aggregator is allowed to merge them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FeedId(StrEnum):
    TEMPERATURE = "temperature"
    PRESENCE = "presence"
    SOIL_MOISTURE = "soil_moisture"
    HUMIDITY = "humidity"

    @property
    def is_numeric(self) -> bool:
        return self is not FeedId.PRESENCE


class Reading(BaseModel):
    """Numeric sensor value; the unit is implied by the feed."""

    model_config = ConfigDict(frozen=True)

    value: float


class PresenceStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    detected: bool


class FeedEvent(BaseModel):
    """One accepted update from one named feed."""

    model_config = ConfigDict(frozen=True)

    feed: FeedId
    payload: Reading | PresenceStatus
    timestamp: datetime = Field(default_factory=_utcnow, description="Provider timestamp of the reading")
    observed_at: datetime = Field(default_factory=_utcnow)

    @field_validator("timestamp", "observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _payload_matches_feed(self) -> FeedEvent:
        expected = Reading if self.feed.is_numeric else PresenceStatus
        if not isinstance(self.payload, expected):
            raise ValueError(f"{self.feed} events carry {expected.__name__}, got {type(self.payload).__name__}")
        return self


class FeedError(BaseModel):
    """Transport failure reported for one feed."""

    model_config = ConfigDict(frozen=True)

    feed: FeedId
    message: str
    observed_at: datetime = Field(default_factory=_utcnow)
