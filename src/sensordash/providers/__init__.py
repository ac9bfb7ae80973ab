"""Realtime data providers.

Concrete transports live in submodules so that importing the package
does not pull in ``aiohttp`` or ``paho-mqtt`` unless they are used.
"""

from sensordash.providers.base import FeedNotification, FeedProvider, SubscriptionHandle
from sensordash.providers.memory import InMemoryFeedProvider

__all__ = [
    "FeedNotification",
    "FeedProvider",
    "InMemoryFeedProvider",
    "SubscriptionHandle",
]
