"""Classification of probe outcomes into a three-state status.

Classification is a pure function of (outcome, thresholds): no I/O, no
hidden state. Rules are applied in order of severity:

1. Dependency unreachable -> UNHEALTHY
2. Composite probe with every sub-check failing -> UNHEALTHY
3. Composite probe with some sub-checks failing -> DEGRADED
4. Unexpected response from the dependency -> DEGRADED
5. Connection pool utilization at or above threshold -> DEGRADED
6. Response time at or above threshold -> DEGRADED
7. Otherwise -> HEALTHY
"""

from pitchey.health.models import ProbeOutcome, Status, Thresholds


def classify(outcome: ProbeOutcome, thresholds: Thresholds) -> Status:
    """Map a probe outcome to a status.

    Args:
        outcome: Raw observation made by the probe
        thresholds: Configured classification thresholds

    Returns:
        The classified Status
    """
    if not outcome.reachable:
        return Status.UNHEALTHY

    if outcome.subchecks:
        passed = sum(1 for ok in outcome.subchecks.values() if ok)
        if passed == 0:
            return Status.UNHEALTHY
        if passed < len(outcome.subchecks):
            return Status.DEGRADED

    if not outcome.expected_response:
        return Status.DEGRADED

    utilization = pool_utilization(outcome.pool_active, outcome.pool_max)
    if utilization is not None and utilization >= thresholds.pool_utilization:
        return Status.DEGRADED

    if outcome.response_time_ms >= thresholds.response_time_ms:
        return Status.DEGRADED

    return Status.HEALTHY


def pool_utilization(active: int | None, maximum: int | None) -> float | None:
    """Fraction of the pool in use, None when the stats are unknown."""
    if active is None or not maximum:
        return None
    return active / maximum
