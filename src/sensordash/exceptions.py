"""Custom exception hierarchy for sensordash."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sensordash.models.feed import FeedId


class SensorDashError(Exception):
    """Base exception for all sensordash errors."""


class SensorDashConfigError(SensorDashError):
    """Invalid or missing configuration."""


class SensorDashStateError(SensorDashError):
    """Lifecycle call made in a state that does not allow it.

    Raised for example when subscriptions are opened twice, or when a
    retry is requested before anything was ever started.
    """


class FeedDecodeError(SensorDashError):
    """Notification payload did not have the expected shape.

    Never surfaced to the dashboard: the subscription manager discards
    the notification and logs it at DEBUG level.
    """


class FeedTransportError(SensorDashError):
    """Subscription or channel failure reported by a provider."""

    def __init__(
        self,
        message: str,
        *,
        feed: FeedId | None = None,
        path: str = "",
    ) -> None:
        self.feed = feed
        self.path = path
        super().__init__(message)
