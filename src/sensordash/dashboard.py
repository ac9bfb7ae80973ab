"""High-level async runtime for the sensor dashboard."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sensordash.config import DashboardConfig
from sensordash.models.dashboard import DashboardState
from sensordash.models.feed import FeedError, FeedEvent
from sensordash.providers.base import FeedProvider
from sensordash.state.aggregator import SnapshotListener, StateAggregator
from sensordash.state.controller import ControllerState, ErrorRetryController
from sensordash.state.history import RollingHistory
from sensordash.subscriptions import SubscriptionManager

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class _Delivery:
    """A queued event or error, tagged with the subscription generation."""

    generation: int
    item: FeedEvent | FeedError


class SensorDashboard:
    """Live dashboard state fed by one subscription per sensor feed.

    Provider callbacks only enqueue; a single task drains the queue and is
    the only writer of the dashboard state, so deliveries are merged one
    at a time in arrival order.

    Usage::

        async with SensorDashboard(provider, config) as dashboard:
            dashboard.add_listener(render)
            await dashboard.start()
            ...
            dashboard.retry()  # after the user taps "Retry"
    """

    def __init__(
        self,
        provider: FeedProvider,
        config: DashboardConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or DashboardConfig()
        self._aggregator = StateAggregator(history_capacity=self._config.history_capacity)
        self._queue: asyncio.Queue[_Delivery] = asyncio.Queue()
        self._subscriptions = SubscriptionManager(
            provider,
            on_event=self._enqueue,
            on_error=self._enqueue,
            clock=clock,
        )
        self._controller = ErrorRetryController(
            subscriptions=self._subscriptions,
            aggregator=self._aggregator,
            feed_paths=self._config.feed_paths(),
        )
        self._worker: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SensorDashboard:
        self._ensure_worker()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def config(self) -> DashboardConfig:
        return self._config

    @property
    def state(self) -> DashboardState:
        """Latest published snapshot."""
        return self._aggregator.state

    @property
    def history(self) -> RollingHistory:
        return self._aggregator.history

    @property
    def controller_state(self) -> ControllerState:
        return self._controller.state

    @property
    def subscriptions(self) -> SubscriptionManager:
        return self._subscriptions

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* with every new snapshot; returns an unsubscribe callable."""
        return self._aggregator.add_listener(listener)

    async def start(self) -> None:
        """Open every feed subscription."""
        self._ensure_worker()
        self._controller.start()

    def retry(self) -> bool:
        """Re-establish every subscription after a failure.

        Clears the error and sets ``loading`` again; the temperature
        history is kept. Returns ``False`` when there was nothing to retry.
        """
        return self._controller.retry()

    async def drain(self) -> None:
        """Wait until every queued delivery has been merged.

        Returns immediately when the merge task is not running.
        """
        if self._worker is None or self._worker.done():
            return
        await self._queue.join()

    async def close(self) -> None:
        """Release all subscriptions and stop the merge task."""
        self._controller.stop()
        worker = self._worker
        self._worker = None
        if worker is None:
            return
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
        # Anything still queued belongs to a closed generation.
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_worker(self) -> None:
        if self._worker is not None and not self._worker.done():
            return
        loop = asyncio.get_running_loop()
        self._worker = loop.create_task(self._run(), name="sensordash-merge")

    def _enqueue(self, generation: int, item: FeedEvent | FeedError) -> None:
        self._queue.put_nowait(_Delivery(generation, item))

    async def _run(self) -> None:
        while True:
            delivery = await self._queue.get()
            try:
                self._process(delivery)
            except Exception:
                _logger.exception("Failed to merge %r", delivery.item)
            finally:
                self._queue.task_done()

    def _process(self, delivery: _Delivery) -> None:
        if delivery.generation != self._subscriptions.generation:
            _logger.debug(
                "Discarding delivery from closed generation %d (current %d)",
                delivery.generation,
                self._subscriptions.generation,
            )
            return
        item = delivery.item
        if isinstance(item, FeedEvent):
            self._aggregator.apply(item)
            self._controller.on_event()
        else:
            self._controller.on_feed_error(item)
