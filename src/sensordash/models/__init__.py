"""Pydantic models for feed events, payloads and dashboard snapshots."""

from sensordash.models.dashboard import DashboardState
from sensordash.models.feed import FeedError, FeedEvent, FeedId, PresenceStatus, Reading
from sensordash.models.payloads import NumericPayload, PresencePayload

__all__ = [
    "DashboardState",
    "FeedError",
    "FeedEvent",
    "FeedId",
    "NumericPayload",
    "PresencePayload",
    "PresenceStatus",
    "Reading",
]
