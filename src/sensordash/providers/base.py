"""Provider interface for realtime data sources.

A provider turns a feed path into a live subscription. It is the only
layer that knows about the transport; everything above it works with
:class:`FeedNotification` values.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class FeedNotification:
    """One change notification for a path.

    Mirrors a realtime-database snapshot: ``exists`` is ``False`` when
    nothing is stored at the path, in which case ``value`` is ``None``.
    """

    path: str
    exists: bool
    value: Any = None


ValueCallback = Callable[[FeedNotification], None]
ErrorCallback = Callable[[Exception], None]


class SubscriptionHandle(Protocol):
    """Live subscription returned by :meth:`FeedProvider.subscribe`."""

    def close(self) -> None:
        """Stop delivery. Must be idempotent."""
        ...


class FeedProvider(Protocol):
    """Structural provider interface.

    Callbacks must be invoked on the event loop thread that opened the
    subscription; thread-based transports hop over with
    ``loop.call_soon_threadsafe``.
    """

    def subscribe(
        self,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle: ...
