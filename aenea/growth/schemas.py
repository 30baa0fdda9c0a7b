"""Read models for growth analysis.

GrowthHistory is the input (what storage hands back); the pydantic models
are the output, recomputed on every call to the analyzer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from aenea.cycle.schemas import AuditResult, Reflection, Thought
    from aenea.dpd.weights import WeightHistoryEntry


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GrowthHistory:
    """Persisted material the analyzer works from, oldest first."""

    thoughts: list["Thought"] = field(default_factory=list)
    reflections: list["Reflection"] = field(default_factory=list)
    audits: list["AuditResult"] = field(default_factory=list)
    weight_history: list["WeightHistoryEntry"] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.thoughts or self.reflections or self.audits or self.weight_history)


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    UNKNOWN = "unknown"


class TrendMetric(BaseModel):
    """Least-squares trend of one series."""
    name: str
    samples: int = Field(..., ge=0)
    slope: Optional[float] = None           # None when insufficient_data
    direction: TrendDirection = TrendDirection.UNKNOWN
    insufficient_data: bool = False


class GrowthPattern(BaseModel):
    """A notable regularity in the history."""
    id: str
    pattern: str
    trend: TrendDirection = TrendDirection.STABLE
    significance: float = Field(..., ge=0.0, le=1.0, description="How notable, 0-1")
    frequency: float = Field(1.0, ge=0.0, le=1.0)
    context: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)


class GrowthMetrics(BaseModel):
    """Aggregates over the whole history."""
    thought_count: int = Field(0, ge=0)
    reflection_count: int = Field(0, ge=0)
    audit_count: int = Field(0, ge=0)
    mean_confidence: float = Field(0.0, ge=0.0, le=1.0)
    conceptual_complexity: float = Field(0.0, ge=0.0, le=1.0)
    philosophical_breadth: float = Field(0.0, ge=0.0, le=1.0)
    category_diversity: float = Field(0.0, ge=0.0, le=1.0)
    reflection_depth: float = Field(0.0, ge=0.0, le=1.0)
    mean_safety: Optional[float] = Field(None, ge=0.0, le=1.0)
    mean_ethics: Optional[float] = Field(None, ge=0.0, le=1.0)


class GrowthSnapshot(BaseModel):
    """Everything the analyzer derives in one pass."""
    generated_at: datetime = Field(default_factory=utc_now)
    metrics: GrowthMetrics
    trends: dict[str, TrendMetric] = Field(default_factory=dict)
    patterns: list[GrowthPattern] = Field(default_factory=list)
