"""Wire shapes of the realtime database sensor nodes."""

from __future__ import annotations

from pydantic import StrictBool, field_validator

from sensordash.models._base import EpochTimestamp, SensorBaseModel


class NumericPayload(SensorBaseModel):
    """``{"value": number, "timestamp": number}`` node."""

    value: float
    timestamp: EpochTimestamp = None

    @field_validator("value", mode="before")
    @classmethod
    def _reject_bool(cls, value: object) -> object:
        if isinstance(value, bool):
            raise ValueError("value must be numeric")
        return value


class PresencePayload(SensorBaseModel):
    """``{"status": bool, "timestamp": number}`` node."""

    status: StrictBool
    timestamp: EpochTimestamp = None
