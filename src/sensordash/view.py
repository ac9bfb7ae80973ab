"""Display-ready projection of a dashboard snapshot.

Rendering itself belongs to the presentation layer; this module only
computes the numbers the gauges and the trend chart need.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from sensordash._constants import TEMPERATURE_GAUGE_MAX
from sensordash.models.dashboard import DashboardState

LAST_UPDATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def history_labels(points: int) -> tuple[str, ...]:
    """Relative minute labels ending in ``"Now"``, e.g. ``("-4m", ..., "Now")``."""
    if points <= 0:
        return ()
    return tuple(f"-{offset}m" for offset in range(points - 1, 0, -1)) + ("Now",)


class DashboardView(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature_fill: float
    presence_fill: float
    soil_moisture_fill: float
    humidity_fill: float
    history_labels: tuple[str, ...]
    history_data: tuple[float, ...]
    last_update_text: str
    show_spinner: bool
    show_retry: bool
    error_text: str | None = None


def build_view(state: DashboardState) -> DashboardView:
    """Project *state* into gauge fills (0-100), chart series and texts."""
    temperature_fill = 0.0
    if state.temperature is not None:
        temperature_fill = _clamp_percent(state.temperature / TEMPERATURE_GAUGE_MAX * 100.0)

    last_update_text = ""
    if state.last_update_time is not None:
        last_update_text = state.last_update_time.astimezone().strftime(LAST_UPDATE_FORMAT)

    return DashboardView(
        temperature_fill=temperature_fill,
        presence_fill=100.0 if state.presence else 0.0,
        soil_moisture_fill=_clamp_percent(state.soil_moisture or 0.0),
        humidity_fill=_clamp_percent(state.humidity or 0.0),
        history_labels=history_labels(len(state.temperature_history)),
        history_data=state.temperature_history,
        last_update_text=last_update_text,
        show_spinner=state.loading and state.error is None,
        show_retry=state.error is not None,
        error_text=f"Error: {state.error}" if state.error is not None else None,
    )
