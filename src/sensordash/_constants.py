"""Shared constants for sensordash."""

from __future__ import annotations

#: Number of temperature samples kept for the trend chart.
DEFAULT_HISTORY_CAPACITY: int = 5

#: Minimum number of real samples before the trend chart shows data.
MIN_RENDERED_SAMPLES: int = 2

#: Upper bound of the temperature gauge, in degrees Celsius.
TEMPERATURE_GAUGE_MAX: float = 50.0

DEFAULT_TEMPERATURE_PATH = "sensor/temperature"
DEFAULT_PRESENCE_PATH = "sensor/humanPresence"
DEFAULT_SOIL_MOISTURE_PATH = "sensor/soil_moisture"
DEFAULT_HUMIDITY_PATH = "sensor/humidity"

USER_AGENT = "sensordash/1 (+aiohttp)"
