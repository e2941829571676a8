"""Health monitoring models."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Status(str, Enum):
    """Status of a probed service.

    Ordered by severity: UNHEALTHY > DEGRADED > HEALTHY.
    """

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def worst(cls, statuses: Iterable["Status"]) -> "Status":
        """Return the most severe status, HEALTHY for an empty input."""
        return max(statuses, key=lambda s: s.severity, default=cls.HEALTHY)


_SEVERITY = {
    Status.HEALTHY: 0,
    Status.DEGRADED: 1,
    Status.UNHEALTHY: 2,
}


@dataclass(frozen=True)
class Thresholds:
    """Classification thresholds, loaded once and shared read-only.

    Attributes:
        response_time_ms: Latency at or above which a service is degraded
        error_rate: Acceptable request error ratio
        cpu_ms: Per-request CPU budget in milliseconds
        memory_mb: Memory budget in megabytes
        cache_hit_rate: Minimum acceptable cache hit ratio
        pool_utilization: Connection pool occupancy ratio at or above which
            the database is degraded
    """

    response_time_ms: float = 2000
    error_rate: float = 0.01
    cpu_ms: float = 45
    memory_mb: float = 128
    cache_hit_rate: float = 0.6
    pool_utilization: float = 0.8


@dataclass(frozen=True)
class ProbeOutcome:
    """Raw observation made by a probe, before classification.

    Attributes:
        reachable: Whether the dependency could be contacted at all
        response_time_ms: Elapsed time of the check in milliseconds
        expected_response: Whether the dependency answered the way a healthy
            instance would (2xx for most endpoints, 401 for the auth probe)
        pool_active: Connections currently checked out, if known
        pool_max: Maximum pool size, if known
        subchecks: Per sub-dependency success flags for composite probes
        details: Free-form diagnostic data copied into the result
    """

    reachable: bool
    response_time_ms: float
    expected_response: bool = True
    pool_active: int | None = None
    pool_max: int | None = None
    subchecks: Mapping[str, bool] | None = None
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HealthCheckResult:
    """Result of one probe invocation.

    Attributes:
        service: Name of the probed service (API, Database, Cache, ...)
        status: Classified status
        response_time_ms: Wall-clock time of the check in milliseconds
        details: Diagnostic data; contains "error" when the probe failed
        timestamp: When the result was produced (UTC)
    """

    service: str
    status: Status
    response_time_ms: float
    details: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation used for the snapshot cache."""
        return {
            "service": self.service,
            "status": self.status.value,
            "responseTime": self.response_time_ms,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class HealthSummary:
    """Count of results per status."""

    healthy: int
    degraded: int
    unhealthy: int

    @classmethod
    def from_results(cls, results: Iterable[HealthCheckResult]) -> "HealthSummary":
        statuses = [r.status for r in results]
        return cls(
            healthy=statuses.count(Status.HEALTHY),
            degraded=statuses.count(Status.DEGRADED),
            unhealthy=statuses.count(Status.UNHEALTHY),
        )


@dataclass(frozen=True)
class Snapshot:
    """Latest full set of probe results with a computed summary."""

    results: tuple[HealthCheckResult, ...]
    summary: HealthSummary
    taken_at: datetime

    @classmethod
    def from_results(cls, results: Iterable[HealthCheckResult]) -> "Snapshot":
        results = tuple(results)
        return cls(
            results=results,
            summary=HealthSummary.from_results(results),
            taken_at=datetime.now(tz=timezone.utc),
        )

    @property
    def healthy(self) -> bool:
        return self.summary.degraded == 0 and self.summary.unhealthy == 0

    @property
    def overall_status(self) -> Status:
        return Status.worst(r.status for r in self.results)


@dataclass(frozen=True)
class AggregateMetrics:
    """Platform-wide aggregates. None means the source is unavailable, not zero."""

    avg_response_time: float | None = None
    error_rate: float | None = None
    cache_hit_rate: float | None = None
    active_users: int | None = None


@dataclass(frozen=True)
class MetricsReport:
    """Reporting view of one check cycle plus history-derived trends."""

    timestamp: datetime
    services: tuple[HealthCheckResult, ...]
    metrics: AggregateMetrics
    trends: Mapping[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "services": [
                {"name": r.service, "status": r.status.value, "responseTime": r.response_time_ms}
                for r in self.services
            ],
            "metrics": {
                "avgResponseTime": self.metrics.avg_response_time,
                "errorRate": self.metrics.error_rate,
                "cacheHitRate": self.metrics.cache_hit_rate,
                "activeUsers": self.metrics.active_users,
            },
            "trends": dict(self.trends),
        }
