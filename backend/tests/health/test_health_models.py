"""Tests for health monitoring models."""

from datetime import datetime, timezone

import pytest
from pitchey.health.models import (
    HealthCheckResult,
    HealthSummary,
    Snapshot,
    Status,
    Thresholds,
)


class TestStatus:
    """Tests for Status enum."""

    def test_status_values(self):
        assert Status.HEALTHY.value == "healthy"
        assert Status.DEGRADED.value == "degraded"
        assert Status.UNHEALTHY.value == "unhealthy"

    def test_severity_order(self):
        assert Status.UNHEALTHY.severity > Status.DEGRADED.severity > Status.HEALTHY.severity

    def test_worst_picks_most_severe(self):
        statuses = [Status.HEALTHY, Status.UNHEALTHY, Status.DEGRADED]
        assert Status.worst(statuses) == Status.UNHEALTHY

    def test_worst_of_nothing_is_healthy(self):
        assert Status.worst([]) == Status.HEALTHY


class TestThresholds:
    """Tests for Thresholds defaults and immutability."""

    def test_defaults(self):
        thresholds = Thresholds()
        assert thresholds.response_time_ms == 2000
        assert thresholds.error_rate == 0.01
        assert thresholds.cpu_ms == 45
        assert thresholds.memory_mb == 128
        assert thresholds.cache_hit_rate == 0.6
        assert thresholds.pool_utilization == 0.8

    def test_thresholds_are_frozen(self):
        thresholds = Thresholds()
        with pytest.raises(AttributeError):
            thresholds.response_time_ms = 10


class TestHealthCheckResult:
    """Tests for HealthCheckResult."""

    def test_result_is_frozen(self, make_result):
        result = make_result()
        with pytest.raises(AttributeError):
            result.status = Status.UNHEALTHY

    def test_timestamp_defaults_to_utc_now(self):
        result = HealthCheckResult(service="API", status=Status.HEALTHY, response_time_ms=1.0)
        assert result.timestamp.tzinfo == timezone.utc

    def test_to_dict_shape(self, make_result):
        result = make_result("Database", Status.UNHEALTHY, 42.0, error="connection timeout")

        data = result.to_dict()

        assert data == {
            "service": "Database",
            "status": "unhealthy",
            "responseTime": 42.0,
            "details": {"error": "connection timeout"},
            "timestamp": datetime(2026, 1, 25, 12, 0, 0, tzinfo=timezone.utc).isoformat(),
        }


class TestSnapshot:
    """Tests for HealthSummary and Snapshot."""

    def test_summary_counts(self, make_result):
        results = [
            make_result("API", Status.HEALTHY),
            make_result("Database", Status.UNHEALTHY),
            make_result("Cache", Status.DEGRADED),
            make_result("Auth", Status.HEALTHY),
        ]

        summary = HealthSummary.from_results(results)

        assert summary == HealthSummary(healthy=2, degraded=1, unhealthy=1)

    def test_snapshot_healthy_only_when_all_healthy(self, make_result):
        healthy = Snapshot.from_results([make_result("API"), make_result("Auth")])
        degraded = Snapshot.from_results([make_result("API", Status.DEGRADED)])

        assert healthy.healthy is True
        assert degraded.healthy is False

    def test_snapshot_overall_status(self, make_result):
        snapshot = Snapshot.from_results(
            [make_result("API"), make_result("Cache", Status.DEGRADED)]
        )
        assert snapshot.overall_status == Status.DEGRADED
        assert len(snapshot.results) == 2
