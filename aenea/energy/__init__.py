"""Bounded energy resource."""

from aenea.energy.manager import (
    LEVEL_COST_FACTORS,
    EnergyLevel,
    EnergyManager,
    EnergyState,
)

__all__ = ["LEVEL_COST_FACTORS", "EnergyLevel", "EnergyManager", "EnergyState"]
