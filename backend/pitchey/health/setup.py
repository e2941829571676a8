"""Health monitoring initialization and scheduled entry point.

This module wires probes, alert sinks, the runner and the snapshot
publisher from Settings, and provides the contract of a single scheduled
invocation.

Usage:
    from pitchey.health.setup import create_health_engine, run_scheduled_health_check

    engine = create_health_engine(settings)
    report = await run_scheduled_health_check(engine.runner, engine.publisher)
    ...
    await engine.aclose()
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import aioboto3
import httpx
import sentry_sdk
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import create_async_engine

from pitchey.alerts.dispatcher import AlertDispatcher
from pitchey.alerts.sinks import AnalyticsSink, ErrorTrackingSink, WebhookSink
from pitchey.config import Settings
from pitchey.health.models import HealthCheckResult, HealthSummary, Snapshot, Status
from pitchey.health.probes import (
    ApiProbe,
    AuthProbe,
    CacheProbe,
    DatabaseProbe,
    HealthProbe,
    RealtimeProbe,
    StorageProbe,
)
from pitchey.health.publisher import SnapshotPublisher
from pitchey.health.runner import AggregateSources, HealthCheckRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledRunReport:
    """Summary returned by one scheduled invocation."""

    timestamp: datetime
    healthy: bool
    status: Status
    summary: HealthSummary
    services: tuple[HealthCheckResult, ...]
    published: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "healthy": self.healthy,
            "status": self.status.value,
            "summary": {
                "healthy": self.summary.healthy,
                "degraded": self.summary.degraded,
                "unhealthy": self.summary.unhealthy,
            },
            "services": [r.to_dict() for r in self.services],
            "published": self.published,
        }


async def run_scheduled_health_check(
    runner: HealthCheckRunner, publisher: SnapshotPublisher | None
) -> ScheduledRunReport:
    """Run one check cycle and publish the snapshot.

    Publisher failures are logged and reported through ``published``; they
    never fail the cycle. A run that yields no results (skipped while the
    first cycle is still in flight, or no probes configured) is reported as
    not healthy and does not overwrite the published snapshot.

    Args:
        runner: Long-lived runner owned by the scheduler integration
        publisher: Snapshot publisher, or None to skip publishing

    Returns:
        ScheduledRunReport for the cycle
    """
    results = await runner.check_health()
    snapshot = Snapshot.from_results(results)

    if not snapshot.results:
        logger.warning("Health check produced no results, snapshot not published")
        return ScheduledRunReport(
            timestamp=snapshot.taken_at,
            healthy=False,
            status=Status.UNHEALTHY,
            summary=snapshot.summary,
            services=(),
            published=False,
        )

    published = await publisher.publish(results) if publisher is not None else False
    return ScheduledRunReport(
        timestamp=snapshot.taken_at,
        healthy=snapshot.healthy,
        status=snapshot.overall_status,
        summary=snapshot.summary,
        services=snapshot.results,
        published=published,
    )


def build_probes(
    settings: Settings,
    http_client: httpx.AsyncClient,
    redis: Any,
    db_engine: Any,
    storage_session: Any | None = None,
) -> list[HealthProbe]:
    """Build the probes for every dependency configured in settings.

    Storage and realtime probes are left out when their settings are absent;
    the auth probe falls back to the API base URL.
    """
    common = {
        "thresholds": settings.thresholds(),
        "timeout_seconds": settings.probe_timeout_seconds,
    }
    probes: list[HealthProbe] = [
        ApiProbe(http_client, settings.api_base_url, **common),
        DatabaseProbe(db_engine, max_connections=settings.database_pool_capacity(), **common),
        CacheProbe(
            redis,
            rest_client=http_client,
            rest_url=settings.upstash_redis_rest_url,
            rest_token=settings.upstash_redis_rest_token,
            **common,
        ),
    ]

    if settings.storage_bucket and storage_session is not None:
        probes.append(
            StorageProbe(
                storage_session,
                settings.storage_bucket,
                endpoint_url=settings.storage_endpoint_url,
                region_name=settings.storage_region,
                aws_access_key_id=settings.storage_access_key_id,
                aws_secret_access_key=settings.storage_secret_access_key,
                **common,
            )
        )
    if settings.realtime_base_url:
        probes.append(RealtimeProbe(http_client, settings.realtime_base_url, **common))

    probes.append(AuthProbe(http_client, settings.auth_base_url or settings.api_base_url, **common))
    return probes


def build_dispatcher(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    analytics_dataset: Any | None = None,
) -> AlertDispatcher:
    """Build the alert dispatcher with the sinks configured in settings."""
    error_tracker = None
    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn)
        error_tracker = ErrorTrackingSink()
        logger.info("Error-tracking sink configured")

    webhook = None
    if settings.slack_webhook_url:
        webhook = WebhookSink(settings.slack_webhook_url, http_client=http_client)
        logger.info("Webhook sink configured")

    analytics = None
    if analytics_dataset is not None:
        analytics = AnalyticsSink(analytics_dataset)
        logger.info("Analytics sink configured")

    return AlertDispatcher(
        error_tracker=error_tracker,
        webhook=webhook,
        analytics=analytics,
        cooldown_seconds=settings.alert_cooldown_seconds,
        sink_timeout_seconds=settings.alert_sink_timeout_seconds,
    )


@dataclass
class HealthEngine:
    """Long-lived engine instance owned by the scheduler integration."""

    runner: HealthCheckRunner
    publisher: SnapshotPublisher
    http_client: httpx.AsyncClient
    redis: Any
    db_engine: Any

    async def aclose(self) -> None:
        """Release network clients and the database pool."""
        await self.http_client.aclose()
        await self.redis.aclose()
        await self.db_engine.dispose()


def create_health_engine(
    settings: Settings,
    analytics_dataset: Any | None = None,
    aggregate_sources: AggregateSources | None = None,
) -> HealthEngine:
    """Create clients from settings and wire a complete health engine.

    Args:
        settings: Application settings
        analytics_dataset: Optional dataset for the analytics sink
        aggregate_sources: Optional providers for metrics report aggregates

    Returns:
        HealthEngine holding the runner, the publisher and their clients
    """
    http_client = httpx.AsyncClient()
    redis = Redis.from_url(settings.redis_url)
    db_engine = create_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    storage_session = aioboto3.Session() if settings.storage_bucket else None

    runner = HealthCheckRunner(
        probes=build_probes(settings, http_client, redis, db_engine, storage_session),
        dispatcher=build_dispatcher(settings, http_client, analytics_dataset),
        aggregate_sources=aggregate_sources,
    )
    publisher = SnapshotPublisher(redis, ttl=settings.snapshot_ttl_seconds)
    logger.info("Health engine initialized with %d probes", len(runner.probes))

    return HealthEngine(
        runner=runner,
        publisher=publisher,
        http_client=http_client,
        redis=redis,
        db_engine=db_engine,
    )
