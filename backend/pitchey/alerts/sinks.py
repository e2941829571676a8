"""Alert sink implementations.

This module provides:
- DeliveryResult: Result dataclass for a sink delivery
- AlertSink: Abstract base class for alert sinks
- ErrorTrackingSink: Sentry error-tracking sink (used for critical alerts)
- WebhookSink: Slack-compatible chat webhook sink
- AnalyticsSink: Structured data-point writer for an analytics dataset
"""

import inspect
import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
import sentry_sdk

from pitchey.alerts.models import Alert, AlertSeverity

WEBHOOK_FOOTER = "Pitchey Health Monitor"


class HealthAlertError(Exception):
    """Exception reported to error tracking for a critical health alert."""


@dataclass
class DeliveryResult:
    """Result of an alert delivery attempt.

    Attributes:
        success: Whether the delivery succeeded
        response_code: HTTP status code (if applicable)
        error_message: Error message if delivery failed
    """

    success: bool
    response_code: int | None = None
    error_message: str | None = None


class AlertSink(ABC):
    """Abstract base class for alert sinks.

    All sinks must implement the send() method. Sinks may raise; the
    dispatcher isolates every sink call.
    """

    name: str = "sink"

    @abstractmethod
    async def send(self, alert: Alert) -> DeliveryResult:
        """Deliver the alert.

        Args:
            alert: The alert to deliver

        Returns:
            DeliveryResult indicating success or failure
        """
        pass


class ErrorTrackingSink(AlertSink):
    """Reports alerts to Sentry as errors, with details attached as extras."""

    name = "error_tracking"

    async def send(self, alert: Alert) -> DeliveryResult:
        with sentry_sdk.new_scope() as scope:
            scope.set_level("error")
            scope.set_tag("alert_severity", alert.severity.value)
            for key, value in details_as_mapping(alert.details).items():
                scope.set_extra(key, value)
            event_id = sentry_sdk.capture_exception(HealthAlertError(alert.message))

        if event_id is None:
            return DeliveryResult(success=False, error_message="Event was not captured")
        return DeliveryResult(success=True)


class WebhookSink(AlertSink):
    """Chat webhook sink.

    Sends a Slack-compatible attachment payload via POST request.
    """

    name = "webhook"

    SEVERITY_COLOR = {
        AlertSeverity.CRITICAL: "danger",
        AlertSeverity.WARNING: "warning",
        AlertSeverity.INFO: "good",
    }

    def __init__(
        self,
        url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ):
        """Initialize the webhook sink.

        Args:
            url: Webhook URL
            http_client: Shared client; a short-lived one is opened per call if omitted
            timeout_seconds: HTTP request timeout (default: 10.0 seconds)
        """
        self.url = url
        self.http_client = http_client
        self.timeout_seconds = timeout_seconds

    def build_payload(self, alert: Alert) -> dict[str, Any]:
        """Build the Slack attachment payload for an alert."""
        fields = [
            {"title": str(key), "value": to_json_text(value), "short": True}
            for key, value in details_as_mapping(alert.details).items()
        ]
        return {
            "attachments": [
                {
                    "color": self.SEVERITY_COLOR.get(alert.severity, "good"),
                    "title": f":rotating_light: {alert.severity.value.upper()}: {alert.message}",
                    "fields": fields,
                    "footer": WEBHOOK_FOOTER,
                    "ts": int(alert.created_at.timestamp()),
                }
            ]
        }

    async def send(self, alert: Alert) -> DeliveryResult:
        payload = self.build_payload(alert)
        try:
            if self.http_client is not None:
                response = await self.http_client.post(
                    self.url, json=payload, timeout=self.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
            return DeliveryResult(success=True, response_code=response.status_code)
        except httpx.TimeoutException:
            return DeliveryResult(
                success=False,
                error_message="Request timed out",
            )
        except httpx.HTTPStatusError as e:
            return DeliveryResult(
                success=False,
                response_code=e.response.status_code,
                error_message=str(e),
            )
        except httpx.RequestError as e:
            return DeliveryResult(
                success=False,
                error_message=str(e),
            )


class AnalyticsSink(AlertSink):
    """Writes one data point per alert to an analytics dataset.

    The dataset is any object exposing ``write_data_point(point)``; the call
    may be synchronous or return an awaitable.
    """

    name = "analytics"

    def __init__(self, dataset: Any):
        self.dataset = dataset

    @staticmethod
    def build_data_point(alert: Alert) -> dict[str, list]:
        return {
            "labels": [f"health_alert_{alert.severity.value}"],
            "values": [1.0],
            "indexes": [alert.key],
        }

    async def send(self, alert: Alert) -> DeliveryResult:
        outcome = self.dataset.write_data_point(self.build_data_point(alert))
        if inspect.isawaitable(outcome):
            await outcome
        return DeliveryResult(success=True)


def details_as_mapping(details: Any) -> Mapping[str, Any]:
    """Normalize alert details to a mapping (lists are keyed by index)."""
    if details is None:
        return {}
    if isinstance(details, Mapping):
        return details
    if isinstance(details, (list, tuple)):
        return {str(i): value for i, value in enumerate(details)}
    return {"details": details}


def to_json_text(value: Any) -> str:
    """Render a value as compact JSON, falling back to str() for unknown types."""
    return json.dumps(value, default=str, separators=(",", ":"))
