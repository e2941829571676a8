"""Prometheus metrics for health monitoring.

Metrics exported:
- health_check_runs_total: Counter of check cycles by outcome
- health_probe_duration_seconds: Histogram of probe response times by service
- health_probe_status: Gauge of the last status per service (0 healthy, 1 degraded, 2 unhealthy)
- health_alerts_total: Counter of alerts by severity and outcome
- health_alert_sink_failures_total: Counter of failed sink deliveries
- health_snapshot_publish_failures_total: Counter of failed snapshot writes
"""

from prometheus_client import Counter, Gauge, Histogram

# Cycle metrics
check_runs_total = Counter(
    "health_check_runs_total",
    "Total number of health check cycles",
    ["status"],  # completed, skipped
)

# Probe metrics
probe_duration_seconds = Histogram(
    "health_probe_duration_seconds",
    "Response time of dependency probes in seconds",
    ["service"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

probe_status = Gauge(
    "health_probe_status",
    "Last classified status per service (0 healthy, 1 degraded, 2 unhealthy)",
    ["service"],
)

# Alert metrics
alerts_total = Counter(
    "health_alerts_total",
    "Total number of health alerts",
    ["severity", "outcome"],  # sent, suppressed
)

alert_sink_failures_total = Counter(
    "health_alert_sink_failures_total",
    "Total number of failed alert sink deliveries",
    ["sink"],
)

# Snapshot metrics
snapshot_publish_failures_total = Counter(
    "health_snapshot_publish_failures_total",
    "Total number of failed snapshot cache writes",
)
