"""Per-feed live subscriptions.

Owns:
- opening one provider subscription per feed path
- decoding provider notifications into feed events
- translating provider failures into feed errors
- deterministic teardown and retry
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime

from sensordash._redact import redact_for_log
from sensordash.exceptions import FeedDecodeError, SensorDashStateError
from sensordash.ingestion.decode import decode_notification
from sensordash.models.feed import FeedError, FeedEvent, FeedId
from sensordash.providers.base import FeedNotification, FeedProvider, SubscriptionHandle

_logger = logging.getLogger(__name__)

EventSink = Callable[[int, FeedEvent], None]
ErrorSink = Callable[[int, FeedError], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SubscriptionManager:
    """One independent subscription per feed.

    Every delivery handed to the sinks is stamped with the generation it
    was produced under. :meth:`close` bumps the generation before releasing
    any handle, so notifications that race with teardown are dropped here,
    and deliveries already queued downstream can be recognised as stale by
    comparing against :attr:`generation`.
    """

    def __init__(
        self,
        provider: FeedProvider,
        *,
        on_event: EventSink,
        on_error: ErrorSink,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._provider = provider
        self._on_event = on_event
        self._on_error = on_error
        self._clock = clock
        self._handles: dict[FeedId, SubscriptionHandle] = {}
        self._feed_paths: dict[FeedId, str] | None = None
        self._generation = 0
        self._open = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def feed_paths(self) -> dict[FeedId, str]:
        return dict(self._feed_paths or {})

    def open(self, feed_paths: Mapping[FeedId, str]) -> None:
        """Subscribe to every feed in *feed_paths*.

        A provider that fails to subscribe one path produces a feed error
        for that feed only; the remaining feeds are still opened.
        """
        if self._open:
            raise SensorDashStateError("Subscriptions already open; close() or retry() first")
        self._feed_paths = dict(feed_paths)
        self._open = True
        generation = self._generation

        for feed, path in self._feed_paths.items():
            _logger.debug("Subscribing feed=%s path=%s generation=%d", feed, path, generation)
            try:
                handle = self._provider.subscribe(
                    path,
                    self._value_callback(feed, generation),
                    self._error_callback(feed, generation),
                )
            except Exception as exc:
                _logger.debug("Subscribe failed feed=%s path=%s", feed, path, exc_info=True)
                self._emit_error(feed, generation, exc)
                continue
            self._handles[feed] = handle

    def close(self) -> None:
        """Release every open subscription. Safe to call repeatedly."""
        self._generation += 1
        self._open = False
        handles = self._handles
        self._handles = {}
        for feed, handle in handles.items():
            try:
                handle.close()
            except Exception:
                _logger.warning("Closing subscription for %s failed", feed, exc_info=True)
        if handles:
            _logger.debug("Closed %d subscriptions, generation now %d", len(handles), self._generation)

    def retry(self) -> None:
        """Close everything, then re-open the original feed paths."""
        if self._feed_paths is None:
            raise SensorDashStateError("retry() called before open()")
        feed_paths = self._feed_paths
        self.close()
        self.open(feed_paths)

    def _is_stale(self, generation: int) -> bool:
        return not self._open or generation != self._generation

    def _value_callback(self, feed: FeedId, generation: int) -> Callable[[FeedNotification], None]:
        def on_value(notification: FeedNotification) -> None:
            if self._is_stale(generation):
                _logger.debug("Dropping stale %s notification (generation %d)", feed, generation)
                return
            try:
                event = decode_notification(feed, notification, observed_at=self._clock())
            except FeedDecodeError as exc:
                _logger.debug(
                    "Discarding %s notification: %s payload=%s",
                    feed,
                    exc,
                    redact_for_log(notification.value),
                )
                return
            self._on_event(generation, event)

        return on_value

    def _error_callback(self, feed: FeedId, generation: int) -> Callable[[Exception], None]:
        def on_error(exc: Exception) -> None:
            if self._is_stale(generation):
                _logger.debug("Dropping stale %s error (generation %d): %s", feed, generation, exc)
                return
            self._emit_error(feed, generation, exc)

        return on_error

    def _emit_error(self, feed: FeedId, generation: int, exc: Exception) -> None:
        message = str(exc) or type(exc).__name__
        self._on_error(generation, FeedError(feed=feed, message=message, observed_at=self._clock()))
