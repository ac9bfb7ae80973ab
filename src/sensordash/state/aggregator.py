"""Single-writer merge point for feed events.

This is the only component allowed to produce new dashboard snapshots.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sensordash._constants import DEFAULT_HISTORY_CAPACITY
from sensordash.models.dashboard import DashboardState
from sensordash.models.feed import FeedEvent, FeedId, PresenceStatus, Reading
from sensordash.state.history import RollingHistory

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[DashboardState], None]


class StateAggregator:
    """Owns the canonical :class:`DashboardState`.

    Every mutation goes through :meth:`apply`, :meth:`reset` or
    :meth:`record_error`, each of which publishes a new frozen snapshot
    with a bumped ``version`` to all registered listeners. The aggregator
    itself performs no locking: callers must serialize access, which
    :class:`sensordash.dashboard.SensorDashboard` does by funnelling all
    deliveries through one queue consumer.
    """

    def __init__(self, *, history_capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        self._history = RollingHistory(history_capacity)
        self._state = DashboardState(temperature_history=self._history.rendered())
        self._listeners: list[SnapshotListener] = []
        self._last_sample: tuple[datetime, float] | None = None

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def history(self) -> RollingHistory:
        return self._history

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener* for every published snapshot.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def apply(self, event: FeedEvent) -> DashboardState:
        """Merge one feed event and publish the resulting snapshot."""
        updates: dict[str, Any]
        if event.feed == FeedId.TEMPERATURE:
            reading = _reading(event)
            # Re-subscribing replays the current node; that is not a new sample.
            sample = (event.timestamp, reading.value)
            if sample != self._last_sample:
                self._history.push(reading.value)
                self._last_sample = sample
            updates = {
                "temperature": reading.value,
                "temperature_history": self._history.rendered(),
                "last_update_time": event.timestamp,
            }
        elif event.feed == FeedId.PRESENCE:
            status = event.payload
            assert isinstance(status, PresenceStatus)  # noqa: S101
            updates = {"presence": status.detected, "last_update_time": event.timestamp}
        elif event.feed == FeedId.SOIL_MOISTURE:
            # These nodes carry no timestamp worth showing; last_update_time
            # only follows temperature and presence.
            updates = {"soil_moisture": _reading(event).value}
        elif event.feed == FeedId.HUMIDITY:
            updates = {"humidity": _reading(event).value}
        else:  # pragma: no cover
            raise ValueError(f"Unhandled feed {event.feed!r}")

        # A recorded failure freezes the loading flag until the next reset.
        if self._state.loading and self._state.error is None:
            updates["loading"] = False

        _logger.debug("Applying %s event: %s", event.feed, updates)
        return self._publish(updates)

    def reset(self) -> DashboardState:
        """Start a new loading cycle: clear the error, keep values and history."""
        return self._publish({"loading": True, "error": None})

    def record_error(self, message: str) -> DashboardState:
        """Surface *message* as the dashboard-level error."""
        return self._publish({"error": message})

    def _publish(self, updates: dict[str, Any]) -> DashboardState:
        updates["version"] = self._state.version + 1
        snapshot = self._state.model_copy(update=updates)
        self._state = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.exception("Snapshot listener %r failed", listener)
        return snapshot


def _reading(event: FeedEvent) -> Reading:
    payload = event.payload
    assert isinstance(payload, Reading)  # noqa: S101
    return payload
