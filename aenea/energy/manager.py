"""
Energy accounting for the consciousness engine.

Energy is a bounded scalar in [0, max]. Producing thoughts and running
stages spends it, idle heartbeat ticks recover it slowly, and a sleep
session restores it fully. Every mutation goes through ``_set`` which
clamps the value, so no caller can push energy out of bounds.

Energy levels (as a percentage of max):
    critical   <= critical_percent (8)
    low        <= low_percent (15)
    moderate   <= 40
    high       <= 80
    maximum    above 80

The level at cycle admission decides how much of the stage pipeline runs
and how much each stage costs.
"""

import logging
import math
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from aenea.config.settings import AeneaSettings

logger = logging.getLogger(__name__)

MODERATE_PERCENT = 40.0
HIGH_PERCENT = 80.0

# Deep rest is refused at or above this share of max
DEEP_REST_CEILING = 0.8

CONSUMPTION_LOG_LIMIT = 200


class EnergyLevel(Enum):
    """Coarse energy bands."""
    CRITICAL = "critical"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    MAXIMUM = "maximum"


# Stage cost multiplier per level
LEVEL_COST_FACTORS: dict[EnergyLevel, float] = {
    EnergyLevel.CRITICAL: 0.3,
    EnergyLevel.LOW: 0.5,
    EnergyLevel.MODERATE: 0.7,
    EnergyLevel.HIGH: 0.9,
    EnergyLevel.MAXIMUM: 1.0,
}


@dataclass
class EnergyState:
    """Snapshot of the energy resource."""

    current: float
    max: float = 100.0
    dormant: bool = False

    @property
    def percentage(self) -> float:
        return 0.0 if self.max <= 0 else self.current / self.max * 100.0

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "max": self.max,
            "dormant": self.dormant,
            "percentage": self.percentage,
        }


@dataclass
class EnergyConsumption:
    """One recorded spend."""

    activity: str
    amount: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EnergyManager:
    """Owns the energy scalar and applies every change to it."""

    def __init__(
        self,
        max_energy: float = 100.0,
        initial_energy: float = 80.0,
        recovery_per_minute: float = 2.0,
        critical_percent: float = 8.0,
        low_percent: float = 15.0,
        deep_rest_amount: float = 50.0,
        recharge_amount: float = 20.0,
    ):
        if max_energy <= 0:
            raise ValueError(f"max_energy must be positive, got {max_energy}")
        self.max_energy = max_energy
        self.recovery_per_minute = recovery_per_minute
        self.critical_percent = critical_percent
        self.low_percent = low_percent
        self.deep_rest_amount = deep_rest_amount
        self.recharge_amount = recharge_amount

        self._current = 0.0
        self._dormant = False
        self._consumptions: deque[EnergyConsumption] = deque(maxlen=CONSUMPTION_LOG_LIMIT)
        self._total_consumed = 0.0
        self._total_recovered = 0.0
        self._set(initial_energy)

    @classmethod
    def from_settings(cls, settings: "AeneaSettings") -> "EnergyManager":
        return cls(
            max_energy=settings.energy_max,
            initial_energy=settings.energy_initial,
            recovery_per_minute=settings.energy_recovery_per_minute,
            critical_percent=settings.energy_critical_percent,
            low_percent=settings.energy_low_percent,
            deep_rest_amount=settings.deep_rest_amount,
            recharge_amount=settings.recharge_amount,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def current(self) -> float:
        return self._current

    @property
    def percentage(self) -> float:
        return self._current / self.max_energy * 100.0

    @property
    def dormant(self) -> bool:
        return self._dormant

    def set_dormant(self, dormant: bool) -> None:
        self._dormant = dormant

    def state(self) -> EnergyState:
        return EnergyState(current=self._current, max=self.max_energy, dormant=self._dormant)

    def level(self) -> EnergyLevel:
        pct = self.percentage
        if pct <= self.critical_percent:
            return EnergyLevel.CRITICAL
        if pct <= self.low_percent:
            return EnergyLevel.LOW
        if pct <= MODERATE_PERCENT:
            return EnergyLevel.MODERATE
        if pct <= HIGH_PERCENT:
            return EnergyLevel.HIGH
        return EnergyLevel.MAXIMUM

    def cost_factor(self) -> float:
        return LEVEL_COST_FACTORS[self.level()]

    # =========================================================================
    # Mutations
    # =========================================================================

    def _set(self, value: float) -> float:
        if not math.isfinite(value):
            logger.debug(f"Non-finite energy value {value}, clamping to 0")
            value = 0.0
        clamped = max(0.0, min(self.max_energy, value))
        if clamped != value:
            logger.debug(f"Energy {value:.2f} clamped to {clamped:.2f}")
        self._current = clamped
        return clamped

    def consume(self, amount: float, activity: str = "unspecified") -> float:
        """Spend energy. Negative amounts are ignored.

        Returns:
            Amount actually removed
        """
        if amount <= 0:
            return 0.0
        before = self._current
        self._set(before - amount)
        spent = before - self._current
        self._total_consumed += spent
        self._consumptions.append(EnergyConsumption(activity=activity, amount=spent))
        return spent

    def recover(self, amount: float) -> float:
        """Add energy. Negative amounts are ignored.

        Returns:
            Amount actually added
        """
        if amount <= 0:
            return 0.0
        before = self._current
        self._set(before + amount)
        gained = self._current - before
        self._total_recovered += gained
        return gained

    def recover_for_elapsed(self, elapsed_seconds: float) -> float:
        """Apply idle recovery for a span of wall time."""
        if elapsed_seconds <= 0:
            return 0.0
        return self.recover(self.recovery_per_minute * elapsed_seconds / 60.0)

    def deep_rest(self) -> bool:
        """Large one-off recovery, refused when energy is already high.

        Returns:
            True if rest was applied
        """
        if self._current >= self.max_energy * DEEP_REST_CEILING:
            logger.info(f"Deep rest refused at {self._current:.1f}/{self.max_energy:.0f}")
            return False
        gained = self.recover(self.deep_rest_amount)
        logger.info(f"Deep rest recovered {gained:.1f} energy")
        return True

    def recharge(self) -> float:
        """Manual recharge by a fixed amount."""
        return self.recover(self.recharge_amount)

    def reset(self) -> None:
        """Restore to full."""
        before = self._current
        self._set(self.max_energy)
        self._total_recovered += self._current - before

    def set_energy(self, value: float) -> float:
        """Force a value, used when restoring persisted state."""
        return self._set(value)

    # =========================================================================
    # Stats
    # =========================================================================

    def stats(self) -> dict:
        by_activity: Counter[str] = Counter()
        for c in self._consumptions:
            by_activity[c.activity] += c.amount
        return {
            "current": self._current,
            "max": self.max_energy,
            "level": self.level().value,
            "dormant": self._dormant,
            "total_consumed": self._total_consumed,
            "total_recovered": self._total_recovered,
            "top_activities": [a for a, _ in by_activity.most_common(3)],
        }
