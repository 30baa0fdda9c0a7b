"""Heuristic scoring of generated text."""

from aenea.scoring.confidence import (
    MAX_SCORE,
    MIN_SCORE,
    ConfidenceEvaluator,
    IdentityValidator,
    persona_identity_validator,
    score_confidence,
)

__all__ = [
    "MAX_SCORE",
    "MIN_SCORE",
    "ConfidenceEvaluator",
    "IdentityValidator",
    "persona_identity_validator",
    "score_confidence",
]
