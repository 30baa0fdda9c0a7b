"""DPD (Dynamic Prime Directive) weight and score records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import numpy as np

# Baseline used when normalization has nothing to work with
DEFAULT_BASELINE = (0.33, 0.33, 0.34)

# Tolerance for the sum-to-one check
SUM_TOLERANCE = 1e-9


@dataclass(frozen=True)
class DPDWeights:
    """Three normalized priority weights.

    Attributes:
        empathy: Weight given to empathic resonance
        coherence: Weight given to logical and systemic coherence
        dissonance: Weight given to creative/ethical dissonance
        version: Monotonic version number, 0 for the initial weights
        timestamp: When this version was produced
    """

    empathy: float
    coherence: float
    dissonance: float
    version: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def initial(cls) -> "DPDWeights":
        """Equal-ish starting weights."""
        return cls(*DEFAULT_BASELINE, version=0)

    @classmethod
    def from_vector(
        cls,
        vector: np.ndarray,
        version: int,
        timestamp: Optional[datetime] = None,
    ) -> "DPDWeights":
        empathy, coherence, dissonance = (float(x) for x in vector)
        return cls(
            empathy=empathy,
            coherence=coherence,
            dissonance=dissonance,
            version=version,
            timestamp=timestamp or datetime.now(timezone.utc),
        )

    def as_vector(self) -> np.ndarray:
        return np.array([self.empathy, self.coherence, self.dissonance], dtype=float)

    @property
    def total(self) -> float:
        return self.empathy + self.coherence + self.dissonance

    def is_normalized(self) -> bool:
        values = (self.empathy, self.coherence, self.dissonance)
        return (
            all(math.isfinite(v) and 0.0 <= v <= 1.0 for v in values)
            and abs(self.total - 1.0) <= SUM_TOLERANCE
        )

    def dominant(self) -> str:
        """Name of the largest component."""
        values = {"empathy": self.empathy, "coherence": self.coherence, "dissonance": self.dissonance}
        return max(values, key=values.get)

    def to_dict(self) -> dict[str, Any]:
        return {
            "empathy": self.empathy,
            "coherence": self.coherence,
            "dissonance": self.dissonance,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class DPDScores:
    """Per-cycle assessment of how a cycle performed on each dimension."""

    empathy: float
    coherence: float
    dissonance: float

    def as_vector(self) -> np.ndarray:
        return np.array([self.empathy, self.coherence, self.dissonance], dtype=float)

    def weighted_total(self, weights: DPDWeights) -> float:
        return float(np.dot(self.as_vector(), weights.as_vector()))

    def to_dict(self) -> dict[str, float]:
        return {
            "empathy": self.empathy,
            "coherence": self.coherence,
            "dissonance": self.dissonance,
        }


@dataclass(frozen=True)
class WeightHistoryEntry:
    """One appended version in the weight history."""

    version: int
    weights: DPDWeights
    timestamp: datetime
    trigger_category: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "weights": self.weights.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "trigger_category": self.trigger_category,
        }


def normalize_vector(vector: np.ndarray) -> Optional[np.ndarray]:
    """Scale a vector to sum to exactly one.

    Returns None when the vector is degenerate (non-finite or non-positive
    total) so the caller can decide how to recover.
    """
    total = float(np.sum(vector))
    if not math.isfinite(total) or total <= 0.0 or not np.all(np.isfinite(vector)):
        return None
    normalized = vector / total
    # Absorb rounding into the last component so the sum is exact
    normalized[-1] = 1.0 - float(np.sum(normalized[:-1]))
    return normalized
