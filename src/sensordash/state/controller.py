"""Error/retry state machine.

The controller owns the dashboard-level lifecycle::

    IDLE -> LOADING -> READY
                   \\-> FAILED -> LOADING (retry)

A failure on one feed is recorded (first error wins) but never blocks
events still flowing from the other feeds.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Protocol

from sensordash.exceptions import SensorDashStateError
from sensordash.models.feed import FeedError, FeedId
from sensordash.state.aggregator import StateAggregator

_logger = logging.getLogger(__name__)


class ControllerState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class SubscriptionCommands(Protocol):
    """The part of the subscription manager the controller drives."""

    def open(self, feed_paths: dict[FeedId, str]) -> None: ...

    def close(self) -> None: ...

    def retry(self) -> None: ...


class ErrorRetryController:
    def __init__(
        self,
        *,
        subscriptions: SubscriptionCommands,
        aggregator: StateAggregator,
        feed_paths: dict[FeedId, str],
    ) -> None:
        self._subscriptions = subscriptions
        self._aggregator = aggregator
        self._feed_paths = dict(feed_paths)
        self._state = ControllerState.IDLE
        self._error: FeedError | None = None

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def error(self) -> FeedError | None:
        """First error recorded since the last start/retry."""
        return self._error

    def start(self) -> None:
        """Open every feed and enter LOADING."""
        if self._state != ControllerState.IDLE:
            raise SensorDashStateError(f"Cannot start from state {self._state}")
        self._error = None
        self._aggregator.reset()
        self._state = ControllerState.LOADING
        _logger.debug("Opening %d feeds", len(self._feed_paths))
        self._subscriptions.open(self._feed_paths)

    def on_event(self) -> None:
        """Note an accepted feed event."""
        if self._state == ControllerState.LOADING:
            _logger.debug("First feed event received, dashboard ready")
            self._state = ControllerState.READY

    def on_feed_error(self, error: FeedError) -> None:
        """Record a feed failure; only the first one per cycle is surfaced."""
        if self._state == ControllerState.IDLE:
            _logger.debug("Ignoring %s error while idle: %s", error.feed, error.message)
            return
        self._state = ControllerState.FAILED
        if self._error is not None:
            _logger.info(
                "Suppressing %s error %r, already showing %s error",
                error.feed,
                error.message,
                self._error.feed,
            )
            return
        _logger.warning("Feed %s failed: %s", error.feed, error.message)
        self._error = error
        self._aggregator.record_error(error.message)

    def retry(self) -> bool:
        """Clear the error and re-open every subscription.

        Only acts from FAILED. Returns ``True`` when a retry was issued.
        """
        if self._state == ControllerState.IDLE:
            raise SensorDashStateError("Cannot retry before start()")
        if self._state != ControllerState.FAILED:
            _logger.debug("Retry ignored in state %s", self._state)
            return False
        _logger.info("Retrying all feeds after error: %s", self._error.message if self._error else "")
        self._error = None
        self._aggregator.reset()
        self._state = ControllerState.LOADING
        self._subscriptions.retry()
        return True

    def stop(self) -> None:
        """Close every subscription and go back to IDLE."""
        self._subscriptions.close()
        self._state = ControllerState.IDLE
