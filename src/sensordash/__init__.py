"""sensordash - Async aggregation core for live sensor dashboards."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sensordash")
except PackageNotFoundError:
    __version__ = "0+local"
from sensordash.config import DashboardConfig
from sensordash.dashboard import SensorDashboard
from sensordash.exceptions import (
    FeedDecodeError,
    FeedTransportError,
    SensorDashConfigError,
    SensorDashError,
    SensorDashStateError,
)
from sensordash.models import (
    DashboardState,
    FeedError,
    FeedEvent,
    FeedId,
    PresenceStatus,
    Reading,
)
from sensordash.providers import FeedNotification, FeedProvider, InMemoryFeedProvider, SubscriptionHandle
from sensordash.state.aggregator import StateAggregator
from sensordash.state.controller import ControllerState, ErrorRetryController
from sensordash.state.history import RollingHistory
from sensordash.subscriptions import SubscriptionManager
from sensordash.view import DashboardView, build_view

__all__ = [
    "__version__",
    "ControllerState",
    "DashboardConfig",
    "DashboardState",
    "DashboardView",
    "ErrorRetryController",
    "FeedDecodeError",
    "FeedError",
    "FeedEvent",
    "FeedId",
    "FeedNotification",
    "FeedProvider",
    "FeedTransportError",
    "InMemoryFeedProvider",
    "PresenceStatus",
    "Reading",
    "RollingHistory",
    "SensorDashConfigError",
    "SensorDashError",
    "SensorDashStateError",
    "SensorDashboard",
    "StateAggregator",
    "SubscriptionHandle",
    "SubscriptionManager",
    "build_view",
]
