"""Tests for AlertDispatcher."""

import asyncio
import logging

import pytest
from pitchey.alerts.dispatcher import DEFAULT_COOLDOWN_SECONDS, AlertDispatcher
from pitchey.alerts.models import AlertSeverity
from pitchey.alerts.sinks import AlertSink, DeliveryResult


class FailedDeliverySink(AlertSink):
    """Sink that reports a failed delivery without raising."""

    name = "failing"

    def __init__(self) -> None:
        self.calls = 0

    async def send(self, alert):
        self.calls += 1
        return DeliveryResult(success=False, response_code=500, error_message="boom")


class HangingSink(AlertSink):
    """Sink whose delivery never completes."""

    name = "analytics"

    async def send(self, alert):
        await asyncio.Event().wait()


class TestCooldown:
    """Tests for cooldown deduplication."""

    def test_default_cooldown(self):
        assert DEFAULT_COOLDOWN_SECONDS == 300.0
        assert AlertDispatcher().cooldown.total_seconds() == 300.0

    @pytest.mark.asyncio
    async def test_duplicate_within_cooldown_suppressed(self, recording_sink, clock):
        sink = recording_sink()
        dispatcher = AlertDispatcher(webhook=sink, clock=clock)

        first = await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: API")
        clock.advance(seconds=1)
        second = await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: API")

        assert first is True
        assert second is False
        assert len(sink.alerts) == 1

    @pytest.mark.asyncio
    async def test_dispatched_again_after_cooldown(self, recording_sink, clock):
        sink = recording_sink()
        dispatcher = AlertDispatcher(webhook=sink, clock=clock)

        await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: API")
        await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: API")
        clock.advance(minutes=5)
        third = await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: API")

        assert third is True
        assert len(sink.alerts) == 2

    @pytest.mark.asyncio
    async def test_different_message_is_not_suppressed(self, recording_sink, clock):
        sink = recording_sink()
        dispatcher = AlertDispatcher(webhook=sink, clock=clock)

        await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: API")
        await dispatcher.send_alert(AlertSeverity.CRITICAL, "Services unhealthy: API, Database")

        assert len(sink.alerts) == 2

    @pytest.mark.asyncio
    async def test_different_severity_is_not_suppressed(self, recording_sink, clock):
        sink = recording_sink()
        dispatcher = AlertDispatcher(webhook=sink, clock=clock)

        await dispatcher.send_alert(AlertSeverity.CRITICAL, "API")
        await dispatcher.send_alert(AlertSeverity.WARNING, "API")

        assert len(sink.alerts) == 2

    @pytest.mark.asyncio
    async def test_expired_records_are_pruned(self, clock):
        dispatcher = AlertDispatcher(clock=clock)

        await dispatcher.send_alert(AlertSeverity.WARNING, "old")
        clock.advance(minutes=6)
        await dispatcher.send_alert(AlertSeverity.WARNING, "new")

        assert dispatcher.last_sent(AlertSeverity.WARNING, "old") is None
        assert dispatcher.last_sent(AlertSeverity.WARNING, "new") == clock.now


class TestRouting:
    """Tests for sink routing."""

    @pytest.mark.asyncio
    async def test_error_tracker_receives_critical_only(self, recording_sink, clock):
        tracker = recording_sink("error_tracking")
        webhook = recording_sink("webhook")
        analytics = recording_sink("analytics")
        dispatcher = AlertDispatcher(
            error_tracker=tracker, webhook=webhook, analytics=analytics, clock=clock
        )

        await dispatcher.send_alert(AlertSeverity.CRITICAL, "down")
        await dispatcher.send_alert(AlertSeverity.WARNING, "slow")

        assert [a.message for a in tracker.alerts] == ["down"]
        assert [a.message for a in webhook.alerts] == ["down", "slow"]
        assert [a.message for a in analytics.alerts] == ["down", "slow"]

    @pytest.mark.asyncio
    async def test_no_sinks_still_logs(self, clock, caplog):
        dispatcher = AlertDispatcher(clock=clock)

        with caplog.at_level(logging.WARNING, logger="pitchey.alerts.dispatcher"):
            sent = await dispatcher.send_alert(AlertSeverity.WARNING, "slow", {"API": 1})

        assert sent is True
        record = next(r for r in caplog.records if "slow" in r.getMessage())
        assert record.levelno == logging.WARNING
        assert record.alert_key == "warning:slow"
        assert record.alert_details == {"API": 1}

    @pytest.mark.asyncio
    async def test_string_severity_is_accepted(self, recording_sink, clock):
        sink = recording_sink()
        dispatcher = AlertDispatcher(webhook=sink, clock=clock)

        sent = await dispatcher.send_alert("critical", "down")

        assert sent is True
        assert sink.alerts[0].severity == AlertSeverity.CRITICAL
        assert dispatcher.last_sent("critical", "down") == clock.now

    @pytest.mark.asyncio
    async def test_critical_logged_as_error(self, clock, caplog):
        dispatcher = AlertDispatcher(clock=clock)

        with caplog.at_level(logging.ERROR, logger="pitchey.alerts.dispatcher"):
            await dispatcher.send_alert(AlertSeverity.CRITICAL, "down")

        assert any(r.levelno == logging.ERROR and "down" in r.getMessage() for r in caplog.records)


class TestFailureIsolation:
    """Tests for per-sink failure isolation."""

    @pytest.mark.asyncio
    async def test_raising_sink_does_not_block_others(self, recording_sink, clock):
        tracker = recording_sink("error_tracking", fail_with=RuntimeError("sentry down"))
        webhook = recording_sink("webhook")
        dispatcher = AlertDispatcher(error_tracker=tracker, webhook=webhook, clock=clock)

        sent = await dispatcher.send_alert(AlertSeverity.CRITICAL, "down")

        assert sent is True
        assert len(webhook.alerts) == 1

    @pytest.mark.asyncio
    async def test_failed_delivery_is_absorbed(self, recording_sink, clock):
        failing = FailedDeliverySink()
        analytics = recording_sink("analytics")
        dispatcher = AlertDispatcher(webhook=failing, analytics=analytics, clock=clock)

        sent = await dispatcher.send_alert(AlertSeverity.WARNING, "slow")

        assert sent is True
        assert failing.calls == 1
        assert len(analytics.alerts) == 1

    @pytest.mark.asyncio
    async def test_cooldown_recorded_even_when_every_sink_fails(self, recording_sink, clock):
        sink = recording_sink("webhook", fail_with=ConnectionError("unreachable"))
        dispatcher = AlertDispatcher(webhook=sink, clock=clock)

        await dispatcher.send_alert(AlertSeverity.CRITICAL, "down")
        clock.advance(seconds=30)
        again = await dispatcher.send_alert(AlertSeverity.CRITICAL, "down")

        assert again is False
        assert len(sink.alerts) == 1
        assert dispatcher.last_sent(AlertSeverity.CRITICAL, "down") is not None

    @pytest.mark.asyncio
    async def test_hung_sink_times_out(self, recording_sink, clock, caplog):
        webhook = recording_sink("webhook")
        dispatcher = AlertDispatcher(
            webhook=webhook, analytics=HangingSink(), sink_timeout_seconds=0.05, clock=clock
        )

        with caplog.at_level(logging.WARNING, logger="pitchey.alerts.dispatcher"):
            sent = await asyncio.wait_for(
                dispatcher.send_alert(AlertSeverity.WARNING, "slow"), timeout=2
            )

        assert sent is True
        assert len(webhook.alerts) == 1
        messages = [r.getMessage() for r in caplog.records]
        assert any("[WARNING] slow" in m for m in messages)
        assert any("timed out" in m for m in messages)
