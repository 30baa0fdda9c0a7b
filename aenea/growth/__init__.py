"""Growth analysis over persisted cycle history."""

from aenea.growth.analyzer import GrowthPatternAnalyzer, calculate_trend, thought_complexity
from aenea.growth.schemas import (
    GrowthHistory,
    GrowthMetrics,
    GrowthPattern,
    GrowthSnapshot,
    TrendDirection,
    TrendMetric,
)

__all__ = [
    "GrowthPatternAnalyzer",
    "calculate_trend",
    "thought_complexity",
    "GrowthHistory",
    "GrowthMetrics",
    "GrowthPattern",
    "GrowthSnapshot",
    "TrendDirection",
    "TrendMetric",
]
