"""In-process provider.

Behaves like a realtime database listener: a new subscription immediately
receives the current value at its path (if any), and every later write
notifies all live subscriptions of that path. Useful for demos, replaying
recorded sessions and tests.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from sensordash.exceptions import FeedTransportError
from sensordash.providers.base import ErrorCallback, FeedNotification, ValueCallback

_logger = logging.getLogger(__name__)


class MemorySubscription:
    def __init__(
        self,
        provider: InMemoryFeedProvider,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._provider = provider
        self.path = path
        self.on_value = on_value
        self.on_error = on_error
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._provider._detach(self)


class InMemoryFeedProvider:
    def __init__(self, *, initial: dict[str, Any] | None = None, replay_on_subscribe: bool = True) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self._subscriptions: dict[str, list[MemorySubscription]] = {}
        self._subscribe_failures: dict[str, str] = {}
        self._replay_on_subscribe = replay_on_subscribe
        self.subscribe_counts: Counter[str] = Counter()

    def subscribe(self, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> MemorySubscription:
        self.subscribe_counts[path] += 1
        failure = self._subscribe_failures.get(path)
        if failure is not None:
            raise FeedTransportError(failure, path=path)

        subscription = MemorySubscription(self, path, on_value, on_error)
        self._subscriptions.setdefault(path, []).append(subscription)
        _logger.debug("Memory subscription opened path=%s", path)
        if self._replay_on_subscribe and path in self._values:
            on_value(FeedNotification(path=path, exists=True, value=self._values[path]))
        return subscription

    def active_paths(self) -> set[str]:
        """Paths with at least one live subscription."""
        return {path for path, subs in self._subscriptions.items() if subs}

    def set_value(self, path: str, value: Any) -> None:
        """Write *value* at *path* and notify its subscribers."""
        self._values[path] = value
        self._notify(FeedNotification(path=path, exists=True, value=value))

    def delete(self, path: str) -> None:
        """Remove the node at *path*; subscribers see a non-existent snapshot."""
        self._values.pop(path, None)
        self._notify(FeedNotification(path=path, exists=False))

    def fail(self, path: str, message: str) -> None:
        """Report a transport failure to every subscriber of *path*."""
        for subscription in list(self._subscriptions.get(path, [])):
            subscription.on_error(FeedTransportError(message, path=path))

    def fail_on_subscribe(self, path: str, message: str | None) -> None:
        """Make future ``subscribe(path)`` calls raise; ``None`` clears it."""
        if message is None:
            self._subscribe_failures.pop(path, None)
        else:
            self._subscribe_failures[path] = message

    def _notify(self, notification: FeedNotification) -> None:
        for subscription in list(self._subscriptions.get(notification.path, [])):
            subscription.on_value(notification)

    def _detach(self, subscription: MemorySubscription) -> None:
        subs = self._subscriptions.get(subscription.path, [])
        if subscription in subs:
            subs.remove(subscription)
        _logger.debug("Memory subscription closed path=%s", subscription.path)
