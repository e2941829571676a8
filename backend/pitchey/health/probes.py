"""Dependency probes for the health monitoring engine.

Each probe performs one bounded check against a single dependency and
returns a HealthCheckResult. Probes never raise: transport errors, timeouts
and malformed responses are converted into an UNHEALTHY result carrying the
elapsed time and a human-readable ``error`` in its details.

Concrete probes:
- ApiProbe: liveness endpoint of the public API
- DatabaseProbe: ``SELECT 1`` plus connection pool occupancy
- CacheProbe: primary Redis round-trip and optional secondary REST cache ping
- StorageProbe: bounded object listing against S3-compatible storage
- RealtimeProbe: request/response round trip to a named realtime actor
- AuthProbe: session endpoint called with a deliberately invalid credential

Usage:
    probe = ApiProbe(http_client, base_url="https://api.pitchey.example")
    result = await probe.check()
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

import httpx
from sqlalchemy import text

from pitchey.health.classifier import classify
from pitchey.health.models import HealthCheckResult, ProbeOutcome, Status, Thresholds

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_SECONDS = 5.0

# Key used for the cache write/read round-trip
HEALTH_CHECK_KEY = "__health_check__"
HEALTH_CHECK_KEY_TTL_SECONDS = 60


class ProbeError(Exception):
    """Raised inside a probe when a dependency answers incorrectly."""


@runtime_checkable
class HealthProbe(Protocol):
    """Protocol for dependency probes."""

    name: str

    async def check(self) -> HealthCheckResult:
        """Perform one bounded check. Must never raise."""
        ...


class BaseProbe(ABC):
    """Base class implementing the timeout and failure handling of a probe.

    Subclasses implement ``_observe`` and may raise freely; ``check`` turns
    any exception into an UNHEALTHY result.
    """

    name: str = "unknown"

    def __init__(
        self,
        thresholds: Thresholds | None = None,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the probe.

        Args:
            thresholds: Classification thresholds (defaults if not provided)
            timeout_seconds: Deadline for one check
        """
        self.thresholds = thresholds or Thresholds()
        self.timeout_seconds = timeout_seconds

    async def check(self) -> HealthCheckResult:
        """Run the check under a deadline and classify the outcome.

        Returns:
            HealthCheckResult, UNHEALTHY with details["error"] on failure
        """
        start = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(self._observe(start), timeout=self.timeout_seconds)
        except TimeoutError:
            return self._failure(start, f"Health check timeout after {self.timeout_seconds:g}s")
        except Exception as e:
            logger.debug("%s probe failed: %s", self.name, e)
            return self._failure(start, describe_error(e))

        return HealthCheckResult(
            service=self.name,
            status=classify(outcome, self.thresholds),
            response_time_ms=outcome.response_time_ms,
            details=dict(outcome.details),
        )

    @abstractmethod
    async def _observe(self, start: float) -> ProbeOutcome:
        """Contact the dependency and describe what was observed.

        Args:
            start: perf_counter() value taken when the check began
        """

    def _failure(self, start: float, error: str) -> HealthCheckResult:
        return HealthCheckResult(
            service=self.name,
            status=Status.UNHEALTHY,
            response_time_ms=elapsed_ms(start),
            details={"error": error},
        )


class ApiProbe(BaseProbe):
    """Probe for the public API liveness endpoint."""

    name = "API"

    def __init__(self, http_client: httpx.AsyncClient, base_url: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = http_client
        self._base_url = base_url.rstrip("/")

    async def _observe(self, start: float) -> ProbeOutcome:
        response = await self._client.get(f"{self._base_url}/health")
        response_time = elapsed_ms(start)
        return ProbeOutcome(
            reachable=True,
            response_time_ms=response_time,
            expected_response=response.is_success,
            details={"responseCode": response.status_code, "body": response_body(response)},
        )


class DatabaseProbe(BaseProbe):
    """Probe for the relational store.

    Runs ``SELECT 1`` and reads connection pool occupancy from the engine's
    pool when the pool exposes it. Unknown pool figures are reported as None
    and do not affect classification.
    """

    name = "Database"

    def __init__(self, engine: Any, max_connections: int | None = None, **kwargs: Any) -> None:
        """Initialize with an async SQLAlchemy engine.

        Args:
            engine: AsyncEngine (or anything with async ``connect()``)
            max_connections: Pool ceiling; falls back to the pool size plus
                its overflow, None when the overflow is unbounded
        """
        super().__init__(**kwargs)
        self._engine = engine
        self._max_connections = max_connections

    async def _observe(self, start: float) -> ProbeOutcome:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        response_time = elapsed_ms(start)

        pool = self.pool_stats()
        return ProbeOutcome(
            reachable=True,
            response_time_ms=response_time,
            pool_active=pool["activeConnections"],
            pool_max=pool["maxConnections"],
            details={"connected": True, "pool": pool},
        )

    def pool_stats(self) -> dict[str, int | None]:
        """Connection pool statistics, None for figures the pool cannot report."""
        stats: dict[str, int | None] = {
            "activeConnections": None,
            "idleConnections": None,
            "maxConnections": self._max_connections,
            "waitingRequests": None,
        }
        pool = getattr(self._engine, "pool", None)
        if pool is None or not hasattr(pool, "checkedout"):
            return stats

        stats["activeConnections"] = pool.checkedout()
        stats["idleConnections"] = pool.checkedin()
        if stats["maxConnections"] is None:
            # QueuePool keeps its overflow ceiling private; negative means unbounded
            max_overflow = getattr(pool, "_max_overflow", 0)
            if max_overflow >= 0:
                stats["maxConnections"] = pool.size() + max_overflow
        return stats


class CacheProbe(BaseProbe):
    """Probe for the cache tier.

    Sub-checks:
    - kv: write+read round-trip against the primary Redis
    - redis: PING against the secondary REST cache (only when configured)

    HEALTHY when every sub-check passes, DEGRADED when some fail,
    UNHEALTHY when all fail.
    """

    name = "Cache"

    def __init__(
        self,
        redis: Any,
        rest_client: httpx.AsyncClient | None = None,
        rest_url: str | None = None,
        rest_token: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._redis = redis
        self._rest_client = rest_client
        self._rest_url = rest_url.rstrip("/") if rest_url else None
        self._rest_token = rest_token

    async def _observe(self, start: float) -> ProbeOutcome:
        checks = {"kv": self._check_primary}
        if self._rest_url and self._rest_client is not None:
            checks["redis"] = self._check_rest

        subchecks: dict[str, bool] = {}
        errors: dict[str, str] = {}
        for check_name, check in checks.items():
            try:
                await check()
                subchecks[check_name] = True
            except Exception as e:
                subchecks[check_name] = False
                errors[check_name] = describe_error(e)

        details: dict[str, Any] = {"kv": subchecks["kv"], "redis": subchecks.get("redis")}
        if errors:
            details["errors"] = errors
        if not any(subchecks.values()):
            details["error"] = "; ".join(f"{k}: {v}" for k, v in errors.items())

        return ProbeOutcome(
            reachable=True,
            response_time_ms=elapsed_ms(start),
            subchecks=subchecks,
            details=details,
        )

    async def _check_primary(self) -> None:
        token = str(time.time())
        await self._redis.set(HEALTH_CHECK_KEY, token, ex=HEALTH_CHECK_KEY_TTL_SECONDS)
        value = await self._redis.get(HEALTH_CHECK_KEY)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        if value != token:
            raise ProbeError("Cache read-back did not return the written value")

    async def _check_rest(self) -> None:
        headers = {"Authorization": f"Bearer {self._rest_token}"} if self._rest_token else {}
        response = await self._rest_client.get(f"{self._rest_url}/ping", headers=headers)
        response.raise_for_status()


class StorageProbe(BaseProbe):
    """Probe for S3-compatible object storage via aioboto3."""

    name = "Storage"

    def __init__(
        self,
        session: Any,
        bucket: str,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the storage probe.

        Args:
            session: aioboto3.Session used to open the S3 client
            bucket: Bucket to list
            endpoint_url: Custom endpoint for S3-compatible providers
        """
        super().__init__(**kwargs)
        self._session = session
        self._bucket = bucket
        self._client_kwargs = {
            "endpoint_url": endpoint_url,
            "region_name": region_name,
            "aws_access_key_id": aws_access_key_id,
            "aws_secret_access_key": aws_secret_access_key,
        }

    async def _observe(self, start: float) -> ProbeOutcome:
        async with self._session.client("s3", **self._client_kwargs) as s3:
            response = await s3.list_objects_v2(Bucket=self._bucket, MaxKeys=1)
        return ProbeOutcome(
            reachable=True,
            response_time_ms=elapsed_ms(start),
            details={"accessible": True, "objectCount": len(response.get("Contents", []))},
        )


class RealtimeProbe(BaseProbe):
    """Probe for the realtime channel actor.

    Sends one internal request to the named stateful actor and expects a
    2xx answer.
    """

    name = "WebSocket"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        actor_name: str = "health-check",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._actor_name = actor_name

    async def _observe(self, start: float) -> ProbeOutcome:
        response = await self._client.get(f"{self._base_url}/actors/{self._actor_name}/health")
        response_time = elapsed_ms(start)
        return ProbeOutcome(
            reachable=True,
            response_time_ms=response_time,
            expected_response=response.is_success,
            details={
                "actor": self._actor_name,
                "responseCode": response.status_code,
                "body": response_body(response),
            },
        )


class AuthProbe(BaseProbe):
    """Probe for the authentication service.

    Calls the session endpoint with a deliberately invalid session cookie.
    A 401 is the expected, healthy answer; any other status means the
    endpoint is misbehaving or accepted a bogus credential, and is DEGRADED.
    """

    name = "Auth"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        cookie_name: str = "better-auth.session",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._cookie_name = cookie_name

    async def _observe(self, start: float) -> ProbeOutcome:
        response = await self._client.get(
            f"{self._base_url}/api/auth/session",
            headers={"Cookie": f"{self._cookie_name}=test"},
        )
        response_time = elapsed_ms(start)

        details: dict[str, Any] = {"accessible": True, "responseCode": response.status_code}
        rejected = response.status_code == 401
        if response.is_success:
            details["warning"] = "Invalid session credential was accepted"
        elif not rejected:
            details["warning"] = f"Unexpected status {response.status_code} for invalid session"

        return ProbeOutcome(
            reachable=True,
            response_time_ms=response_time,
            expected_response=rejected,
            details=details,
        )


def elapsed_ms(start: float) -> float:
    """Milliseconds elapsed since a perf_counter() reading."""
    return (time.perf_counter() - start) * 1000


def describe_error(error: BaseException) -> str:
    """Human-readable, never empty, description of an exception."""
    return str(error) or type(error).__name__


def response_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to (truncated) text."""
    try:
        return response.json()
    except ValueError:
        return response.text[:200]
