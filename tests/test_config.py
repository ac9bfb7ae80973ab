from __future__ import annotations

import pytest

from sensordash.config import DashboardConfig
from sensordash.exceptions import SensorDashConfigError
from sensordash.models.feed import FeedId


def test_default_feed_paths() -> None:
    assert DashboardConfig().feed_paths() == {
        FeedId.TEMPERATURE: "sensor/temperature",
        FeedId.PRESENCE: "sensor/humanPresence",
        FeedId.SOIL_MOISTURE: "sensor/soil_moisture",
        FeedId.HUMIDITY: "sensor/humidity",
    }


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SENSORDASH_TEMPERATURE_PATH", "greenhouse/temp")
    monkeypatch.setenv("SENSORDASH_DATABASE_URL", "https://db.example.com")
    monkeypatch.setenv("SENSORDASH_HISTORY_CAPACITY", "8")
    monkeypatch.setenv("SENSORDASH_STREAM_TIMEOUT", "30.5")

    config = DashboardConfig.from_env()

    assert config.temperature_path == "greenhouse/temp"
    assert config.database_url == "https://db.example.com"
    assert config.history_capacity == 8
    assert config.stream_timeout == 30.5


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SENSORDASH_HISTORY_CAPACITY", "8")
    monkeypatch.setenv("SENSORDASH_MQTT_HOST", "env-broker")

    config = DashboardConfig.from_env(history_capacity=3, mqtt_host="broker")

    assert config.history_capacity == 3
    assert config.mqtt_host == "broker"


def test_invalid_number_in_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SENSORDASH_MQTT_PORT", "eighteen")
    with pytest.raises(SensorDashConfigError):
        DashboardConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [{"history_capacity": 0}, {"stream_timeout": -1.0}, {"humidity_path": "/"}],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(SensorDashConfigError):
        DashboardConfig(**kwargs)  # type: ignore[arg-type]
