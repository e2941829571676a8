"""Health check runner that orchestrates probes, history and alerting."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from pitchey import metrics
from pitchey.alerts.dispatcher import AlertDispatcher
from pitchey.alerts.policy import evaluate_alerts
from pitchey.health.history import MetricsHistory, response_time_key
from pitchey.health.models import (
    AggregateMetrics,
    HealthCheckResult,
    MetricsReport,
    Status,
)
from pitchey.health.probes import HealthProbe, describe_error, elapsed_ms
from pitchey.health.trends import TrendAnalyzer

logger = logging.getLogger(__name__)

# Backstop deadline around each probe call, on top of the probe's own timeout
DEFAULT_PROBE_DEADLINE_SECONDS = 30.0

# Service whose response time history feeds avgResponseTime
PRIMARY_SERVICE = "API"

AggregateSource = Callable[[], Awaitable[float | int | None]]


@dataclass(frozen=True)
class AggregateSources:
    """Optional providers for platform-wide aggregates.

    Each provider is an async callable; a missing or failing provider
    yields None in the metrics report.
    """

    error_rate: AggregateSource | None = None
    cache_hit_rate: AggregateSource | None = None
    active_users: AggregateSource | None = None


class HealthCheckRunner:
    """Runs every probe concurrently and feeds the results to alerting.

    Holds the state shared across invocations (metrics history and, through
    the dispatcher, the alert cooldown map). That state is only mutated after
    all probes of a cycle have settled.

    Overlapping invocations are skipped: a call made while a cycle is in
    flight returns the results of the last completed cycle.
    """

    def __init__(
        self,
        probes: Sequence[HealthProbe],
        dispatcher: AlertDispatcher | None = None,
        history: MetricsHistory | None = None,
        analyzer: TrendAnalyzer | None = None,
        aggregate_sources: AggregateSources | None = None,
        probe_deadline_seconds: float = DEFAULT_PROBE_DEADLINE_SECONDS,
    ) -> None:
        """Initialize the runner.

        Args:
            probes: Probes to run on every cycle
            dispatcher: Alert dispatcher (a log-only dispatcher if omitted)
            history: Metrics history (a fresh one if omitted)
            analyzer: Trend analyzer (defaults if omitted)
            aggregate_sources: Providers for the metrics report aggregates
            probe_deadline_seconds: Backstop deadline per probe call
        """
        self._probes = list(probes)
        self.dispatcher = dispatcher or AlertDispatcher()
        self.history = history or MetricsHistory()
        self.analyzer = analyzer or TrendAnalyzer()
        self._sources = aggregate_sources or AggregateSources()
        self._probe_deadline = probe_deadline_seconds
        self._lock = asyncio.Lock()
        self._last_results: list[HealthCheckResult] = []

    @property
    def probes(self) -> list[HealthProbe]:
        return list(self._probes)

    @property
    def last_results(self) -> list[HealthCheckResult]:
        return list(self._last_results)

    async def check_health(self) -> list[HealthCheckResult]:
        """Run one check cycle.

        Returns:
            One result per probe. Never raises.
        """
        if self._lock.locked():
            logger.warning("Health check already in progress, returning last completed results")
            metrics.check_runs_total.labels(status="skipped").inc()
            return self.last_results

        async with self._lock:
            results = await self._run_probes()

            try:
                await self._aggregate(results)
            except Exception as e:
                logger.exception("Health check aggregation failed: %s", e)

            self._last_results = results
            metrics.check_runs_total.labels(status="completed").inc()
            return list(results)

    async def get_metrics(self) -> MetricsReport:
        """Run a check cycle and build the reporting view.

        Aggregates whose source is unavailable are None. Never raises.
        """
        results = await self.check_health()
        aggregates = AggregateMetrics(
            avg_response_time=self.history.average(response_time_key(PRIMARY_SERVICE)),
            error_rate=await self._read_aggregate("error_rate", self._sources.error_rate),
            cache_hit_rate=await self._read_aggregate(
                "cache_hit_rate", self._sources.cache_hit_rate
            ),
            active_users=await self._read_aggregate("active_users", self._sources.active_users),
        )
        return MetricsReport(
            timestamp=datetime.now(tz=timezone.utc),
            services=tuple(results),
            metrics=aggregates,
            trends={key: trend.value for key, trend in self.analyzer.trends(self.history).items()},
        )

    async def _run_probes(self) -> list[HealthCheckResult]:
        """Fan out to every probe and wait for all of them to settle."""
        return list(await asyncio.gather(*(self._guarded(probe) for probe in self._probes)))

    async def _guarded(self, probe: HealthProbe) -> HealthCheckResult:
        """Call one probe under the backstop deadline, converting any raise."""
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(probe.check(), timeout=self._probe_deadline)
        except Exception as e:
            # Probe broke its never-raise contract
            name = getattr(probe, "name", type(probe).__name__)
            logger.error("Probe %s raised instead of returning a result: %r", name, e)
            if isinstance(e, TimeoutError):
                error = f"Probe deadline of {self._probe_deadline:g}s exceeded"
            else:
                error = describe_error(e)
            return HealthCheckResult(
                service=name,
                status=Status.UNHEALTHY,
                response_time_ms=elapsed_ms(start),
                details={"error": error},
            )

    async def _aggregate(self, results: list[HealthCheckResult]) -> None:
        """Record history and dispatch alerts for a settled cycle."""
        for result in results:
            self.history.record(response_time_key(result.service), result.response_time_ms)
            metrics.probe_duration_seconds.labels(service=result.service).observe(
                result.response_time_ms / 1000
            )
            metrics.probe_status.labels(service=result.service).set(result.status.severity)

        escalations = self.analyzer.escalations(self.history)
        for alert in evaluate_alerts(results, escalations):
            await self.dispatcher.dispatch(alert)

    async def _read_aggregate(
        self, name: str, source: AggregateSource | None
    ) -> float | int | None:
        if source is None:
            return None
        try:
            return await source()
        except Exception as e:
            logger.warning("Aggregate %s unavailable: %s", name, e)
            return None
