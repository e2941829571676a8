"""Alert models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class AlertSeverity(str, Enum):
    """How urgent an alert is."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Alert:
    """A health alert ready for dispatch.

    Attributes:
        severity: Alert severity
        message: Human-readable one-line message
        details: Structured context forwarded to the sinks
        created_at: When the alert was raised (UTC)
    """

    severity: AlertSeverity
    message: str
    details: Any = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @property
    def key(self) -> str:
        """Deduplication key: ``{severity}:{message}``."""
        return alert_key(self.severity, self.message)


def alert_key(severity: AlertSeverity, message: str) -> str:
    """Build the cooldown key for an alert.

    The key includes the rendered message, so two alerts that differ only in
    an interpolated service list are not deduplicated against each other.
    """
    return f"{severity.value}:{message}"
