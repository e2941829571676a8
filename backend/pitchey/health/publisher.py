"""Snapshot publisher for the dashboard cache.

The latest result list is written to a single Redis key with a short
expiry. It is a last-known-good cache for dashboards, not a source of
truth: readers must tolerate the key being absent or stale.

Example:
    >>> from redis.asyncio import Redis
    >>> publisher = SnapshotPublisher(redis=Redis.from_url("redis://localhost:6379"))
    >>> await publisher.publish(results)
    >>> latest = await publisher.read_latest()
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pitchey import metrics
from pitchey.health.models import HealthCheckResult

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class SnapshotPublisher:
    """Persists the latest health results to Redis with an expiry.

    Attributes:
        SNAPSHOT_KEY: Redis key holding the JSON result array
        DEFAULT_TTL: Default time-to-live in seconds (1 hour)

    Args:
        redis: Async Redis client instance
        key: Redis key to write (default: "health:latest")
        ttl: Time-to-live in seconds (default: 3600)
    """

    SNAPSHOT_KEY = "health:latest"
    DEFAULT_TTL = 3600  # 1 hour

    def __init__(self, redis: Redis, key: str = SNAPSHOT_KEY, ttl: int = DEFAULT_TTL) -> None:
        self.redis = redis
        self.key = key
        self.ttl = ttl

    async def publish(self, results: Sequence[HealthCheckResult]) -> bool:
        """Write the results with expiry.

        Args:
            results: Results of the latest check cycle

        Returns:
            True if written, False if the write failed (failure is logged)
        """
        payload = json.dumps([r.to_dict() for r in results], default=str)
        try:
            await self.redis.set(self.key, payload, ex=self.ttl)
        except Exception as e:
            logger.error("Failed to publish health snapshot to %s: %s", self.key, e)
            metrics.snapshot_publish_failures_total.inc()
            return False
        return True

    async def read_latest(self) -> list[dict[str, Any]] | None:
        """Read the cached results.

        Returns:
            The cached result dicts, or None if absent, unreadable or invalid
        """
        try:
            data = await self.redis.get(self.key)
        except Exception as e:
            logger.warning("Failed to read health snapshot from %s: %s", self.key, e)
            return None

        if data is None:
            return None

        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON in health snapshot key %s", self.key)
            return None

        if not isinstance(parsed, list):
            logger.warning("Unexpected health snapshot shape in key %s", self.key)
            return None
        return parsed
