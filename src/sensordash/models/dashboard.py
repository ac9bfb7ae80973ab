"""Published dashboard snapshot."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DashboardState(BaseModel):
    """One immutable version of the aggregated dashboard state.

    A value field stays ``None`` until the first accepted event of its
    feed. ``temperature_history`` is the chart-ready series produced by
    :meth:`sensordash.state.history.RollingHistory.rendered`.
    """

    model_config = ConfigDict(frozen=True)

    temperature: float | None = None
    presence: bool | None = None
    soil_moisture: float | None = None
    humidity: float | None = None
    temperature_history: tuple[float, ...] = Field(default_factory=tuple)
    last_update_time: datetime | None = None
    loading: bool = True
    error: str | None = None
    version: int = 0

    @property
    def has_error(self) -> bool:
        return self.error is not None
