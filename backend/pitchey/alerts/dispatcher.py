"""AlertDispatcher for deduplicated multi-sink alert delivery.

This module provides the AlertDispatcher class which handles:
- Cooldown-based deduplication keyed on ``{severity}:{message}``
- Fan-out to the error-tracking, webhook and analytics sinks
- Per-sink failure isolation (one failing sink never silences the others)
- A structured log line for every dispatched alert

Usage:
    from pitchey.alerts.dispatcher import AlertDispatcher

    dispatcher = AlertDispatcher(
        error_tracker=ErrorTrackingSink(),
        webhook=WebhookSink(url),
    )
    sent = await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: Database", {})
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from pitchey import metrics
from pitchey.alerts.models import Alert, AlertSeverity, alert_key
from pitchey.alerts.sinks import AlertSink

logger = logging.getLogger(__name__)

# Minimum time between two dispatches of the same alert key
DEFAULT_COOLDOWN_SECONDS = 300.0

# Deadline for one sink delivery
DEFAULT_SINK_TIMEOUT_SECONDS = 10.0

_LOG_LEVELS = {
    AlertSeverity.CRITICAL: logging.ERROR,
    AlertSeverity.WARNING: logging.WARNING,
    AlertSeverity.INFO: logging.INFO,
}


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class AlertDispatcher:
    """Deduplicates alerts and fans them out to independent sinks.

    Routing:
    - error_tracker: CRITICAL alerts only
    - webhook: every severity, when configured
    - analytics: every severity, when configured
    - log: always

    The cooldown record is written before any sink is invoked, so a failing
    sink cannot cause the same alert to be re-sent on the next cycle. The log
    line is written before the fan-out and every sink call runs under
    sink_timeout_seconds, so a hung sink cannot stall the caller.
    Sink failures never propagate out of send_alert().
    """

    def __init__(
        self,
        error_tracker: AlertSink | None = None,
        webhook: AlertSink | None = None,
        analytics: AlertSink | None = None,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        sink_timeout_seconds: float = DEFAULT_SINK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the dispatcher.

        Args:
            error_tracker: Sink receiving CRITICAL alerts
            webhook: Chat webhook sink
            analytics: Analytics data-point sink
            cooldown_seconds: Deduplication window (default: 300 seconds)
            sink_timeout_seconds: Deadline for each sink call (default: 10 seconds)
            clock: Returns the current time; injectable for tests
        """
        self.error_tracker = error_tracker
        self.webhook = webhook
        self.analytics = analytics
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.sink_timeout_seconds = sink_timeout_seconds
        self._clock = clock
        self._last_sent: dict[str, datetime] = {}

    async def send_alert(
        self, severity: AlertSeverity | str, message: str, details: Any = None
    ) -> bool:
        """Dispatch an alert unless the same key fired within the cooldown.

        Args:
            severity: Alert severity (an AlertSeverity or its string value)
            message: Alert message (part of the deduplication key)
            details: Structured context for the sinks

        Returns:
            True if the alert was dispatched, False if suppressed by cooldown

        Raises:
            ValueError: If severity is not a known AlertSeverity value
        """
        alert = Alert(severity=AlertSeverity(severity), message=message, details=details)
        return await self.dispatch(alert)

    async def dispatch(self, alert: Alert) -> bool:
        """Dispatch a prepared Alert. See send_alert()."""
        now = self._clock()
        key = alert.key

        last_sent = self._last_sent.get(key)
        if last_sent is not None and now - last_sent < self.cooldown:
            logger.debug("Alert suppressed by cooldown (key=%s, last_sent=%s)", key, last_sent)
            metrics.alerts_total.labels(severity=alert.severity.value, outcome="suppressed").inc()
            return False

        self._last_sent[key] = now
        self._prune(now)

        logger.log(
            _LOG_LEVELS.get(alert.severity, logging.INFO),
            "[%s] %s",
            alert.severity.value.upper(),
            alert.message,
            extra={
                "alert_severity": alert.severity.value,
                "alert_key": key,
                "alert_details": alert.details,
            },
        )

        await asyncio.gather(
            *(self._deliver(sink, alert) for sink in self._sinks_for(alert.severity))
        )

        metrics.alerts_total.labels(severity=alert.severity.value, outcome="sent").inc()
        return True

    def last_sent(self, severity: AlertSeverity | str, message: str) -> datetime | None:
        """When an alert key was last dispatched, None if never (or pruned)."""
        return self._last_sent.get(alert_key(AlertSeverity(severity), message))

    def _sinks_for(self, severity: AlertSeverity) -> list[AlertSink]:
        sinks: list[AlertSink] = []
        if self.error_tracker is not None and severity == AlertSeverity.CRITICAL:
            sinks.append(self.error_tracker)
        if self.webhook is not None:
            sinks.append(self.webhook)
        if self.analytics is not None:
            sinks.append(self.analytics)
        return sinks

    async def _deliver(self, sink: AlertSink, alert: Alert) -> None:
        """Invoke one sink under its deadline, absorbing and logging any failure."""
        try:
            result = await asyncio.wait_for(sink.send(alert), timeout=self.sink_timeout_seconds)
        except TimeoutError:
            logger.warning(
                "Alert sink %s timed out after %gs for %s",
                sink.name,
                self.sink_timeout_seconds,
                alert.key,
            )
            metrics.alert_sink_failures_total.labels(sink=sink.name).inc()
            return
        except Exception as e:
            logger.warning("Alert sink %s raised for %s: %s", sink.name, alert.key, e)
            metrics.alert_sink_failures_total.labels(sink=sink.name).inc()
            return

        if not result.success:
            logger.warning(
                "Alert sink %s failed for %s (code=%s): %s",
                sink.name,
                alert.key,
                result.response_code,
                result.error_message,
            )
            metrics.alert_sink_failures_total.labels(sink=sink.name).inc()

    def _prune(self, now: datetime) -> None:
        """Drop cooldown records that can no longer suppress anything."""
        expired = [key for key, sent in self._last_sent.items() if now - sent >= self.cooldown]
        for key in expired:
            del self._last_sent[key]
