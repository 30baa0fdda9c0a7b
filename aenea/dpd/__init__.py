"""DPD (Dynamic Prime Directive) weights, their evolution and assessment."""

from aenea.dpd.assessor import ImpactAssessment, assess_impact, assess_scores, controversy_level
from aenea.dpd.evolver import ConvergenceStatus, WeightEvolver, WeightSignals, WeightUpdateResult
from aenea.dpd.history import SamplingStrategy, sample_history
from aenea.dpd.weights import (
    DEFAULT_BASELINE,
    DPDScores,
    DPDWeights,
    WeightHistoryEntry,
    normalize_vector,
)

__all__ = [
    "ImpactAssessment",
    "assess_impact",
    "assess_scores",
    "controversy_level",
    "ConvergenceStatus",
    "WeightEvolver",
    "WeightSignals",
    "WeightUpdateResult",
    "SamplingStrategy",
    "sample_history",
    "DEFAULT_BASELINE",
    "DPDScores",
    "DPDWeights",
    "WeightHistoryEntry",
    "normalize_vector",
]
