"""Alert-triggering policy for one health check cycle.

Evaluated once per cycle after every probe has settled:
- CRITICAL when any service is unhealthy
- WARNING when more than MAX_DEGRADED_BEFORE_WARNING services are degraded
- WARNING per metric whose recent mean escalated (see pitchey.health.trends)
"""

from collections.abc import Iterable, Sequence
from typing import Any

from pitchey.alerts.models import Alert, AlertSeverity
from pitchey.health.models import HealthCheckResult, Status
from pitchey.health.trends import Escalation

MAX_DEGRADED_BEFORE_WARNING = 2


def evaluate_alerts(
    results: Sequence[HealthCheckResult],
    escalations: Iterable[Escalation] = (),
) -> list[Alert]:
    """Decide which alerts a cycle's results call for.

    Args:
        results: Every result of the cycle
        escalations: Metrics that satisfied the escalation check

    Returns:
        Alerts to dispatch, critical first
    """
    alerts: list[Alert] = []

    unhealthy = [r for r in results if r.status == Status.UNHEALTHY]
    if unhealthy:
        alerts.append(
            Alert(
                severity=AlertSeverity.CRITICAL,
                message=f"Services unhealthy: {_names(unhealthy)}",
                details=_describe(unhealthy),
            )
        )

    degraded = [r for r in results if r.status == Status.DEGRADED]
    if len(degraded) > MAX_DEGRADED_BEFORE_WARNING:
        alerts.append(
            Alert(
                severity=AlertSeverity.WARNING,
                message=f"Multiple services degraded: {_names(degraded)}",
                details=_describe(degraded),
            )
        )

    for event in escalations:
        alerts.append(
            Alert(
                severity=AlertSeverity.WARNING,
                message=f"Performance degradation detected for {event.key}",
                details={"recent": event.recent_avg, "previous": event.previous_avg},
            )
        )

    return alerts


def _names(results: Sequence[HealthCheckResult]) -> str:
    return ", ".join(r.service for r in results)


def _describe(results: Sequence[HealthCheckResult]) -> dict[str, Any]:
    return {
        r.service: {
            "status": r.status.value,
            "responseTime": round(r.response_time_ms, 1),
            **({"error": r.details["error"]} if "error" in r.details else {}),
        }
        for r in results
    }
