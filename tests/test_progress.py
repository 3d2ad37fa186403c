"""Tests for progress reporting and settings."""

import pytest
import structlog

from py_geoforge.config import Settings
from py_geoforge.utils.logging_config import configure_logging
from py_geoforge.utils.progress import format_progress_bar, log_reporter


class TestFormatProgressBar:
    """Test the text progress bar."""

    def test_half_done(self):
        bar = format_progress_bar(2, 4, prefix="Trunk", bar_width=10)
        assert bar == "Trunk [|||||.....] 50% (2/4)"

    def test_complete(self):
        bar = format_progress_bar(15, 15, bar_width=4)
        assert bar.endswith("[||||] 100% (15/15)")

    def test_zero_total(self):
        assert format_progress_bar(0, 0, bar_width=3) == " [---] 0% (0/0)"


class TestLogReporter:
    """Test the default reporter."""

    def test_returns_none(self):
        assert log_reporter("Capitals placed", "capitals") is None
        assert log_reporter("No group") is None


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GEOFORGE_HEX_SIZE_KM", raising=False)
        settings = Settings()
        assert settings.log_level == "INFO"
        assert settings.hex_size_km == 10.0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("GEOFORGE_HEX_SIZE_KM", "2.5")
        monkeypatch.setenv("GEOFORGE_LOG_FORMAT", "json")
        settings = Settings()
        assert settings.hex_size_km == pytest.approx(2.5)
        assert settings.log_format == "json"


class TestConfigureLogging:
    """Test structlog setup."""

    def teardown_method(self):
        structlog.reset_defaults()

    def test_configure_json(self):
        configure_logging("debug", "json")

        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
