"""Alert system package.

This package provides the alerting side of the health engine:
- Alert models and severities
- Alert sinks (error tracking, chat webhook, analytics)
- AlertDispatcher with cooldown deduplication and per-sink isolation
- The per-cycle alert-triggering policy
"""

from pitchey.alerts.dispatcher import DEFAULT_COOLDOWN_SECONDS, AlertDispatcher
from pitchey.alerts.models import Alert, AlertSeverity, alert_key
from pitchey.alerts.policy import MAX_DEGRADED_BEFORE_WARNING, evaluate_alerts
from pitchey.alerts.sinks import (
    AlertSink,
    AnalyticsSink,
    DeliveryResult,
    ErrorTrackingSink,
    WebhookSink,
)

__all__ = [
    # Models
    "Alert",
    "AlertSeverity",
    "alert_key",
    # Constants
    "DEFAULT_COOLDOWN_SECONDS",
    "MAX_DEGRADED_BEFORE_WARNING",
    # Sinks
    "AlertSink",
    "AnalyticsSink",
    "DeliveryResult",
    "ErrorTrackingSink",
    "WebhookSink",
    # Dispatch
    "AlertDispatcher",
    "evaluate_alerts",
]
