"""Fixed-capacity rolling window backing the temperature trend."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from sensordash._constants import DEFAULT_HISTORY_CAPACITY, MIN_RENDERED_SAMPLES


class RollingHistory:
    """FIFO buffer keeping the most recent ``capacity`` samples.

    The oldest sample is evicted first once the buffer is full.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._samples: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        maxlen = self._samples.maxlen
        assert maxlen is not None  # noqa: S101
        return maxlen

    @property
    def values(self) -> tuple[float, ...]:
        """Samples, oldest first."""
        return tuple(self._samples)

    def push(self, value: float) -> tuple[float, ...]:
        """Append *value* and return the samples, oldest first."""
        self._samples.append(float(value))
        return self.values

    def rendered(self) -> tuple[float, ...]:
        """Chart-ready series of exactly ``capacity`` points.

        Below two real samples a line chart would get a degenerate series,
        so an all-zero placeholder is returned instead. Otherwise samples
        are left-padded with zeros.
        """
        if len(self._samples) < MIN_RENDERED_SAMPLES:
            return (0.0,) * self.capacity
        padding = self.capacity - len(self._samples)
        return (0.0,) * padding + self.values

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    def __repr__(self) -> str:
        return f"RollingHistory(capacity={self.capacity}, values={list(self._samples)!r})"
