"""Dashboard configuration for sensordash."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from sensordash._constants import (
    DEFAULT_HISTORY_CAPACITY,
    DEFAULT_HUMIDITY_PATH,
    DEFAULT_PRESENCE_PATH,
    DEFAULT_SOIL_MOISTURE_PATH,
    DEFAULT_TEMPERATURE_PATH,
)
from sensordash.exceptions import SensorDashConfigError
from sensordash.models.feed import FeedId


def _env_number(env: Mapping[str, str], key: str, kind: type) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return kind(raw.strip())
    except ValueError as exc:
        raise SensorDashConfigError(f"{key} must be a {kind.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class DashboardConfig:
    """Dashboard configuration.

    Parameters
    ----------
    temperature_path : str
        Realtime database path of the temperature feed.
    presence_path : str
        Path of the human presence feed.
    soil_moisture_path : str
        Path of the soil moisture feed.
    humidity_path : str
        Path of the humidity feed.
    history_capacity : int
        Number of temperature samples kept for the trend chart.
    database_url : str
        Base URL of the Firebase Realtime Database used by the streaming
        provider (e.g. ``"https://example-default-rtdb.firebaseio.com"``).
    auth_token : str or None
        Optional database auth token appended as ``?auth=`` to stream URLs.
    stream_timeout : float
        Seconds without any stream traffic (including keep-alives) before
        a Firebase subscription is reported as failed. ``0`` disables it.
    mqtt_host : str
        Broker host for the MQTT provider.
    mqtt_port : int
        Broker port for the MQTT provider.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    """

    temperature_path: str = DEFAULT_TEMPERATURE_PATH
    presence_path: str = DEFAULT_PRESENCE_PATH
    soil_moisture_path: str = DEFAULT_SOIL_MOISTURE_PATH
    humidity_path: str = DEFAULT_HUMIDITY_PATH
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    database_url: str = ""
    auth_token: str | None = None
    stream_timeout: float = 90.0
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_keepalive: int = 60

    def __post_init__(self) -> None:
        if self.history_capacity < 1:
            raise SensorDashConfigError("history_capacity must be at least 1")
        if self.stream_timeout < 0:
            raise SensorDashConfigError("stream_timeout must not be negative")
        for feed, path in self.feed_paths().items():
            if not path.strip("/ "):
                raise SensorDashConfigError(f"Empty path for feed {feed}")

    def feed_paths(self) -> dict[FeedId, str]:
        """Return the ``FeedId -> path`` mapping subscribed at start."""
        return {
            FeedId.TEMPERATURE: self.temperature_path,
            FeedId.PRESENCE: self.presence_path,
            FeedId.SOIL_MOISTURE: self.soil_moisture_path,
            FeedId.HUMIDITY: self.humidity_path,
        }

    @classmethod
    def from_env(cls, **overrides: Any) -> DashboardConfig:
        """Create configuration from ``SENSORDASH_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "SENSORDASH_TEMPERATURE_PATH": "temperature_path",
            "SENSORDASH_PRESENCE_PATH": "presence_path",
            "SENSORDASH_SOIL_MOISTURE_PATH": "soil_moisture_path",
            "SENSORDASH_HUMIDITY_PATH": "humidity_path",
            "SENSORDASH_DATABASE_URL": "database_url",
            "SENSORDASH_AUTH_TOKEN": "auth_token",
            "SENSORDASH_MQTT_HOST": "mqtt_host",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type]] = {
            "SENSORDASH_HISTORY_CAPACITY": ("history_capacity", int),
            "SENSORDASH_MQTT_PORT": ("mqtt_port", int),
            "SENSORDASH_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "SENSORDASH_STREAM_TIMEOUT": ("stream_timeout", float),
        }
        for env_key, (field_name, kind) in _ENV_NUMBER_MAP.items():
            if field_name in overrides:
                continue
            val = _env_number(env, env_key, kind)
            if val is not None:
                config_kwargs[field_name] = val

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
