# backend/pitchey/api/health.py
"""Health monitoring API endpoints."""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pitchey.health.models import HealthCheckResult
from pitchey.health.publisher import SnapshotPublisher
from pitchey.health.runner import HealthCheckRunner
from pitchey.health.setup import run_scheduled_health_check

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


class ServiceHealthResponse(BaseModel):
    """Response for a single service result."""

    model_config = ConfigDict(populate_by_name=True)

    service: str
    status: str
    response_time_ms: float = Field(alias="responseTime")
    details: dict[str, Any]
    timestamp: datetime


class HealthSummaryResponse(BaseModel):
    """Count of services per status."""

    healthy: int
    degraded: int
    unhealthy: int


class HealthCheckRunResponse(BaseModel):
    """Response for a triggered check cycle."""

    timestamp: datetime
    healthy: bool
    status: str
    summary: HealthSummaryResponse
    services: list[ServiceHealthResponse]
    published: bool


_health_runner: HealthCheckRunner | None = None
_snapshot_publisher: SnapshotPublisher | None = None


def get_health_runner() -> HealthCheckRunner:
    """Get the global health check runner."""
    global _health_runner
    if _health_runner is None:
        _health_runner = HealthCheckRunner(probes=[])
    return _health_runner


def get_snapshot_publisher() -> SnapshotPublisher | None:
    """Get the global snapshot publisher, None if not configured."""
    return _snapshot_publisher


def set_health_engine(runner: HealthCheckRunner, publisher: SnapshotPublisher | None) -> None:
    """Set the global runner and publisher."""
    global _health_runner, _snapshot_publisher
    _health_runner = runner
    _snapshot_publisher = publisher


def _to_response(result: HealthCheckResult) -> ServiceHealthResponse:
    return ServiceHealthResponse(
        service=result.service,
        status=result.status.value,
        response_time_ms=result.response_time_ms,
        details=dict(result.details),
        timestamp=result.timestamp,
    )


@router.get("/latest", response_model=list[ServiceHealthResponse])
async def get_latest_snapshot() -> list[ServiceHealthResponse]:
    """Get the last published snapshot.

    The snapshot is a short-lived cache; returns 404 when it is absent.
    """
    publisher = get_snapshot_publisher()
    cached = await publisher.read_latest() if publisher is not None else None
    if cached is None:
        raise HTTPException(status_code=404, detail="No health snapshot available")

    try:
        return [ServiceHealthResponse.model_validate(item) for item in cached]
    except ValidationError as e:
        logger.warning("Cached health snapshot has an unexpected shape: %s", e)
        raise HTTPException(status_code=404, detail="No health snapshot available") from e


@router.post("/check", response_model=HealthCheckRunResponse)
async def trigger_health_check(response: Response) -> HealthCheckRunResponse:
    """Run one check cycle and publish the snapshot.

    Returns 200 if every service is healthy, 503 otherwise.
    """
    report = await run_scheduled_health_check(get_health_runner(), get_snapshot_publisher())

    if not report.healthy:
        response.status_code = 503

    return HealthCheckRunResponse(
        timestamp=report.timestamp,
        healthy=report.healthy,
        status=report.status.value,
        summary=HealthSummaryResponse(
            healthy=report.summary.healthy,
            degraded=report.summary.degraded,
            unhealthy=report.summary.unhealthy,
        ),
        services=[_to_response(r) for r in report.services],
        published=report.published,
    )


@router.get("/metrics")
async def get_health_metrics() -> dict[str, Any]:
    """Run a check cycle and return services, aggregates and trends."""
    report = await get_health_runner().get_metrics()
    return report.to_dict()
