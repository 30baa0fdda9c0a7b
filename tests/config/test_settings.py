"""Tests for environment-driven settings."""

import logging
from unittest.mock import patch

import pytest

from aenea.config.settings import AeneaSettings, configure_logging, settings_summary


class TestAeneaSettings:
    """Tests for AeneaSettings loading and validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENERGY_MAX", raising=False)
        settings = AeneaSettings(_env_file=None)
        assert settings.energy_max == 100.0
        assert settings.dormancy_floor == 10.0
        assert settings.wake_threshold == 20.0
        assert settings.random_seed is None

    def test_env_aliases(self, monkeypatch):
        """Upper-case environment names populate fields."""
        monkeypatch.setenv("ENERGY_MAX", "250")
        monkeypatch.setenv("SLEEP_PHASE_SECONDS", "0")
        monkeypatch.setenv("RANDOM_SEED", "42")
        settings = AeneaSettings(_env_file=None)
        assert settings.energy_max == 250.0
        assert settings.sleep_phase_seconds == 0.0
        assert settings.random_seed == 42

    def test_wake_must_exceed_floor(self):
        """Equal thresholds would make the scheduler flap."""
        with pytest.raises(ValueError, match="WAKE_THRESHOLD"):
            AeneaSettings(_env_file=None, dormancy_floor=20.0, wake_threshold=20.0)

    def test_weight_bounds_checked(self):
        with pytest.raises(ValueError):
            AeneaSettings(_env_file=None, weight_min=0.9, weight_max=0.5)

    def test_negative_durations_clamped(self):
        settings = AeneaSettings(_env_file=None, heartbeat_seconds=-3.0)
        assert settings.heartbeat_seconds == 0.0

    def test_log_level_upper_cased(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert AeneaSettings(_env_file=None).log_level == "DEBUG"

    def test_configure_logging_uses_level(self):
        with patch("logging.basicConfig") as basic_config:
            configure_logging(AeneaSettings(_env_file=None, log_level="warning"))
        assert basic_config.call_args.kwargs["level"] == logging.WARNING

    def test_summary(self):
        summary = settings_summary(AeneaSettings(_env_file=None))
        assert summary["weight_bounds"] == (0.05, 0.85)
        assert summary["wake_threshold"] > summary["dormancy_floor"]
