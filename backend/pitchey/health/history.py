"""Bounded rolling time series of health metrics."""

from collections import deque
from collections.abc import Iterator

# Samples kept per metric key
MAX_SAMPLES = 100


class MetricsHistory:
    """Rolling, size-capped series of numeric samples keyed by metric name.

    Oldest samples are evicted first once a series reaches ``max_samples``.
    Owned by a single engine instance; mutated only after every probe of a
    cycle has settled.
    """

    def __init__(self, max_samples: int = MAX_SAMPLES) -> None:
        if max_samples < 1:
            raise ValueError("max_samples must be at least 1")
        self.max_samples = max_samples
        self._series: dict[str, deque[float]] = {}

    def record(self, key: str, value: float) -> None:
        """Append a sample, evicting the oldest one beyond the cap."""
        series = self._series.get(key)
        if series is None:
            series = deque(maxlen=self.max_samples)
            self._series[key] = series
        series.append(float(value))

    def window(self, key: str, n: int) -> list[float]:
        """Return the last ``n`` samples for ``key`` (fewer if unavailable)."""
        if n <= 0:
            return []
        series = self._series.get(key)
        if not series:
            return []
        return list(series)[-n:]

    def series(self, key: str) -> list[float]:
        """Return a copy of the whole series for ``key``."""
        return list(self._series.get(key, ()))

    def average(self, key: str) -> float | None:
        """Mean of the series, or None when no samples were recorded."""
        series = self._series.get(key)
        if not series:
            return None
        return sum(series) / len(series)

    def keys(self) -> list[str]:
        return list(self._series)

    def __contains__(self, key: object) -> bool:
        return key in self._series

    def __iter__(self) -> Iterator[tuple[str, list[float]]]:
        for key, series in self._series.items():
            yield key, list(series)

    def __len__(self) -> int:
        return len(self._series)


def response_time_key(service: str) -> str:
    """Metric key under which a service's response times are recorded."""
    return f"{service}_responseTime"
