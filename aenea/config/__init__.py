"""Configuration for the Aenea engine."""

from aenea.config.settings import (
    AeneaSettings,
    configure_logging,
    get_settings,
    settings_summary,
)

__all__ = ["AeneaSettings", "configure_logging", "get_settings", "settings_summary"]
