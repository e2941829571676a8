"""Health monitoring package."""

from pitchey.health.classifier import classify
from pitchey.health.history import MetricsHistory
from pitchey.health.models import (
    HealthCheckResult,
    HealthSummary,
    ProbeOutcome,
    Snapshot,
    Status,
    Thresholds,
)
from pitchey.health.probes import (
    ApiProbe,
    AuthProbe,
    BaseProbe,
    CacheProbe,
    DatabaseProbe,
    HealthProbe,
    RealtimeProbe,
    StorageProbe,
)
from pitchey.health.trends import Escalation, Trend, TrendAnalyzer

# Note: the runner, publisher and setup modules are intentionally not exported
# here to avoid circular imports with pitchey.alerts. Import them directly.

__all__ = [
    "ApiProbe",
    "AuthProbe",
    "BaseProbe",
    "CacheProbe",
    "DatabaseProbe",
    "Escalation",
    "HealthCheckResult",
    "HealthProbe",
    "HealthSummary",
    "MetricsHistory",
    "ProbeOutcome",
    "RealtimeProbe",
    "Snapshot",
    "Status",
    "StorageProbe",
    "Thresholds",
    "Trend",
    "TrendAnalyzer",
    "classify",
]
