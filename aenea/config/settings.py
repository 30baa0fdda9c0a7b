"""Runtime settings for the engine, loaded from the environment or a .env file."""

from __future__ import annotations

import functools
import logging
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AeneaSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Energy
    energy_max: float = Field(100.0, alias="ENERGY_MAX")
    energy_initial: float = Field(80.0, alias="ENERGY_INITIAL")
    energy_recovery_per_minute: float = Field(2.0, alias="ENERGY_RECOVERY_PER_MINUTE")
    energy_critical_percent: float = Field(8.0, alias="ENERGY_CRITICAL_PERCENT")
    energy_low_percent: float = Field(15.0, alias="ENERGY_LOW_PERCENT")
    deep_rest_amount: float = Field(50.0, alias="DEEP_REST_AMOUNT")
    recharge_amount: float = Field(20.0, alias="RECHARGE_AMOUNT")

    # Dormancy
    dormancy_floor: float = Field(10.0, alias="DORMANCY_FLOOR")
    wake_threshold: float = Field(20.0, alias="WAKE_THRESHOLD")

    # Scheduling
    heartbeat_seconds: float = Field(5.0, alias="HEARTBEAT_SECONDS")
    cycle_interval_seconds: float = Field(30.0, alias="CYCLE_INTERVAL_SECONDS")
    persona_timeout_seconds: float = Field(120.0, alias="PERSONA_TIMEOUT_SECONDS")
    sleep_phase_seconds: float = Field(2.0, alias="SLEEP_PHASE_SECONDS")

    # Weight evolution
    weight_learning_rate: float = Field(0.05, alias="WEIGHT_LEARNING_RATE")
    weight_min: float = Field(0.05, alias="WEIGHT_MIN")
    weight_max: float = Field(0.85, alias="WEIGHT_MAX")
    weight_decay: float = Field(0.99, alias="WEIGHT_DECAY")
    weight_perturbation_interval: int = Field(10, alias="WEIGHT_PERTURBATION_INTERVAL")
    weight_perturbation_strength: float = Field(0.15, alias="WEIGHT_PERTURBATION_STRENGTH")
    random_seed: Optional[int] = Field(None, alias="RANDOM_SEED")

    # Growth analysis
    growth_min_samples: int = Field(15, alias="GROWTH_MIN_SAMPLES")
    growth_max_patterns: int = Field(10, alias="GROWTH_MAX_PATTERNS")

    @field_validator(
        "energy_max",
        "energy_initial",
        "energy_recovery_per_minute",
        "deep_rest_amount",
        "recharge_amount",
        "dormancy_floor",
        "wake_threshold",
        "heartbeat_seconds",
        "cycle_interval_seconds",
        "persona_timeout_seconds",
        "sleep_phase_seconds",
    )
    @classmethod
    def clamp_non_negative(cls, v: float) -> float:
        return max(0.0, v)

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    @model_validator(mode="after")
    def check_thresholds(self) -> "AeneaSettings":
        if self.wake_threshold <= self.dormancy_floor:
            raise ValueError(
                f"WAKE_THRESHOLD ({self.wake_threshold}) must exceed "
                f"DORMANCY_FLOOR ({self.dormancy_floor})"
            )
        if not 0.0 < self.weight_min < self.weight_max <= 1.0:
            raise ValueError("WEIGHT_MIN and WEIGHT_MAX must satisfy 0 < min < max <= 1")
        return self


@functools.lru_cache(maxsize=1)
def get_settings() -> AeneaSettings:
    return AeneaSettings()


def configure_logging(settings: Optional[AeneaSettings] = None) -> None:
    """Apply the configured log level to the root logger."""
    s = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, s.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def settings_summary(settings: Optional[AeneaSettings] = None) -> dict[str, Any]:
    s = settings or get_settings()
    return {
        "energy_max": s.energy_max,
        "dormancy_floor": s.dormancy_floor,
        "wake_threshold": s.wake_threshold,
        "heartbeat_seconds": s.heartbeat_seconds,
        "cycle_interval_seconds": s.cycle_interval_seconds,
        "weight_bounds": (s.weight_min, s.weight_max),
    }


__all__ = ["AeneaSettings", "get_settings", "configure_logging", "settings_summary"]
