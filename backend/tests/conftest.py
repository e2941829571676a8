from datetime import datetime, timedelta, timezone

import pytest
from pitchey.alerts.models import Alert
from pitchey.alerts.sinks import AlertSink, DeliveryResult
from pitchey.health.models import HealthCheckResult, Status


class StaticProbe:
    """Probe double that returns a fixed result."""

    def __init__(self, result: HealthCheckResult) -> None:
        self.name = result.service
        self.result = result
        self.calls = 0

    async def check(self) -> HealthCheckResult:
        self.calls += 1
        return self.result


class RecordingSink(AlertSink):
    """Sink double that records every alert it receives."""

    def __init__(self, name: str = "recorder", fail_with: Exception | None = None) -> None:
        self.name = name
        self.fail_with = fail_with
        self.alerts: list[Alert] = []

    async def send(self, alert: Alert) -> DeliveryResult:
        self.alerts.append(alert)
        if self.fail_with is not None:
            raise self.fail_with
        return DeliveryResult(success=True)


class ManualClock:
    """Controllable clock for cooldown tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 25, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def make_result():
    """Factory for HealthCheckResult instances."""

    def _make(
        service: str = "API",
        status: Status = Status.HEALTHY,
        response_time_ms: float = 12.0,
        **details,
    ) -> HealthCheckResult:
        return HealthCheckResult(
            service=service,
            status=status,
            response_time_ms=response_time_ms,
            details=details,
            timestamp=datetime(2026, 1, 25, 12, 0, 0, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def static_probe(make_result):
    """Factory for probes returning a fixed result."""

    def _make(service: str = "API", status: Status = Status.HEALTHY, **kwargs) -> StaticProbe:
        return StaticProbe(make_result(service, status, **kwargs))

    return _make


@pytest.fixture
def recording_sink():
    """Factory for sinks that record delivered alerts."""

    def _make(name: str = "recorder", fail_with: Exception | None = None) -> RecordingSink:
        return RecordingSink(name=name, fail_with=fail_with)

    return _make


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()
