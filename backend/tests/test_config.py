"""Tests for application settings."""

from pitchey.config import Settings
from pitchey.health.models import Thresholds


class TestSettings:
    """Tests for Settings."""

    def test_engine_defaults(self):
        settings = Settings()

        assert settings.probe_timeout_seconds == 5.0
        assert settings.alert_cooldown_seconds == 300.0
        assert settings.snapshot_ttl_seconds == 3600

    def test_default_thresholds(self):
        assert Settings().thresholds() == Thresholds()

    def test_threshold_overrides_from_environment(self, monkeypatch):
        monkeypatch.setenv("THRESHOLD_RESPONSE_TIME_MS", "750")
        monkeypatch.setenv("THRESHOLD_POOL_UTILIZATION", "0.9")

        thresholds = Settings().thresholds()

        assert thresholds.response_time_ms == 750
        assert thresholds.pool_utilization == 0.9
        assert thresholds.error_rate == 0.01

    def test_pool_capacity_includes_overflow(self):
        assert Settings().database_pool_capacity() == 15
        assert Settings(database_pool_size=3, database_max_overflow=2).database_pool_capacity() == 5

    def test_explicit_max_connections_wins(self):
        assert Settings(database_max_connections=40).database_pool_capacity() == 40

    def test_unbounded_overflow_has_no_capacity(self):
        assert Settings(database_max_overflow=-1).database_pool_capacity() is None

    def test_no_debug_flag(self):
        assert "debug" not in Settings.model_fields
