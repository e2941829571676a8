"""Trend analysis over metric history.

Two evaluations compare the most recent window of samples with the window
just before it:

- Escalation: a high-confidence alert trigger. Needs at least
  ESCALATION_MIN_SAMPLES samples and fires when the recent mean exceeds the
  previous mean by ESCALATION_FACTOR.
- Trend: a softer reporting signal. Needs at least TREND_MIN_SAMPLES samples
  and classifies the series as improving, degrading or stable using
  IMPROVING_FACTOR / DEGRADING_FACTOR.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from pitchey.health.history import MetricsHistory

# Samples per comparison window
TREND_WINDOW = 10

ESCALATION_MIN_SAMPLES = 10
ESCALATION_FACTOR = 1.5

TREND_MIN_SAMPLES = 20
IMPROVING_FACTOR = 0.9
DEGRADING_FACTOR = 1.1


class Trend(str, Enum):
    """Direction of a metric over the trend window."""

    IMPROVING = "improving"
    STABLE = "stable"
    DEGRADING = "degrading"


@dataclass(frozen=True)
class Escalation:
    """A metric whose recent mean jumped above the escalation factor.

    Attributes:
        key: Metric key (e.g. "Database_responseTime")
        recent_avg: Mean of the most recent window
        previous_avg: Mean of the window before it
    """

    key: str
    recent_avg: float
    previous_avg: float


class TrendAnalyzer:
    """Compares recent and prior sub-windows of metric series."""

    def __init__(self, window: int = TREND_WINDOW) -> None:
        if window < 1:
            raise ValueError("window must be at least 1")
        self.window = window

    def escalation(self, key: str, values: Sequence[float]) -> Escalation | None:
        """Check one series for a performance-degradation event.

        Args:
            key: Metric key the values belong to
            values: Samples, oldest first

        Returns:
            Escalation when the recent mean exceeds the previous mean by
            ESCALATION_FACTOR, None otherwise (including too few samples)
        """
        if len(values) < ESCALATION_MIN_SAMPLES:
            return None

        recent, previous = self._split(values)
        if not previous:
            return None

        recent_avg = _mean(recent)
        previous_avg = _mean(previous)
        if recent_avg > previous_avg * ESCALATION_FACTOR:
            return Escalation(key=key, recent_avg=recent_avg, previous_avg=previous_avg)
        return None

    def trend(self, values: Sequence[float]) -> Trend:
        """Classify the direction of one series.

        Returns:
            IMPROVING, DEGRADING or STABLE; STABLE with too few samples or
            no prior window
        """
        if len(values) < TREND_MIN_SAMPLES:
            return Trend.STABLE

        recent, previous = self._split(values)
        if not previous:
            return Trend.STABLE

        recent_avg = _mean(recent)
        previous_avg = _mean(previous)

        if recent_avg < previous_avg * IMPROVING_FACTOR:
            return Trend.IMPROVING
        if recent_avg > previous_avg * DEGRADING_FACTOR:
            return Trend.DEGRADING
        return Trend.STABLE

    def escalations(self, history: MetricsHistory) -> list[Escalation]:
        """Escalation events across every series in the history."""
        found = []
        for key, values in history:
            event = self.escalation(key, values)
            if event is not None:
                found.append(event)
        return found

    def trends(self, history: MetricsHistory) -> dict[str, Trend]:
        """Trend per metric key across the history."""
        return {key: self.trend(values) for key, values in history}

    def _split(self, values: Sequence[float]) -> tuple[list[float], list[float]]:
        values = list(values)
        recent = values[-self.window :]
        previous = values[-2 * self.window : -self.window]
        return recent, previous


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)
