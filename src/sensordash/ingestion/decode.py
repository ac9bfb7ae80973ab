"""Decode provider notifications into feed events.

Parsing goes through the Pydantic payload models; anything that does not
match the expected node shape raises :class:`FeedDecodeError`, which the
subscription manager treats as "no update".
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import ValidationError

from sensordash.exceptions import FeedDecodeError
from sensordash.models.feed import FeedEvent, FeedId, PresenceStatus, Reading
from sensordash.models.payloads import NumericPayload, PresencePayload
from sensordash.providers.base import FeedNotification


def decode_notification(
    feed: FeedId,
    notification: FeedNotification,
    *,
    observed_at: datetime | None = None,
) -> FeedEvent:
    """Build a :class:`FeedEvent` for *feed* from a provider notification.

    The payload timestamp is used when present; otherwise the event is
    stamped with the observation time.
    """
    if not notification.exists or notification.value is None:
        raise FeedDecodeError(f"No data at {notification.path!r}")
    if not isinstance(notification.value, dict):
        raise FeedDecodeError(f"Expected an object at {notification.path!r}, got {type(notification.value).__name__}")

    observed = observed_at or datetime.now(UTC)
    payload: Reading | PresenceStatus
    try:
        if feed.is_numeric:
            numeric = NumericPayload.model_validate(notification.value)
            payload = Reading(value=numeric.value)
            timestamp = numeric.timestamp
        else:
            presence = PresencePayload.model_validate(notification.value)
            payload = PresenceStatus(detected=presence.status)
            timestamp = presence.timestamp
    except ValidationError as exc:
        raise FeedDecodeError(f"Malformed {feed} payload at {notification.path!r}: {exc.error_count()} error(s)") from exc

    return FeedEvent(
        feed=feed,
        payload=payload,
        timestamp=timestamp or observed,
        observed_at=observed,
    )
