"""Confidence scoring for generated thoughts.

A cheap, deterministic heuristic that rates how substantive a piece of
generated text looks. It rewards a moderate length, reflective vocabulary,
explicit reasoning connectives and open questions, and penalizes text that
breaks persona identity.

Scoring (additive, starting from BASE_SCORE):
    - Length in (100, 1000) chars: +0.2; in [1000, 2000): +0.1
    - Depth terms: +0.05 per occurrence, capped at +0.2
    - Reasoning connectives: +0.05 per occurrence, capped at +0.15
    - Question mark or "I wonder": +0.1
    - Identity violation reported by the validator: -0.3
Result is clamped to [MIN_SCORE, MAX_SCORE].
"""

import logging
import re
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from aenea.personas.registry import PersonaRegistry

logger = logging.getLogger(__name__)

BASE_SCORE = 0.5
MIN_SCORE = 0.05
MAX_SCORE = 0.95

# Length bands
SWEET_SPOT_MIN_CHARS = 100
SWEET_SPOT_MAX_CHARS = 1000
SECONDARY_MAX_CHARS = 2000
SWEET_SPOT_BONUS = 0.2
SECONDARY_BONUS = 0.1

DEPTH_TERMS = (
    "consciousness",
    "existence",
    "meaning",
    "truth",
    "understanding",
    "reality",
    "awareness",
    "essence",
)
DEPTH_TERM_WEIGHT = 0.05
DEPTH_TERM_CAP = 0.2

CONNECTIVES = ("because", "therefore", "however", "thus", "although")
CONNECTIVE_WEIGHT = 0.05
CONNECTIVE_CAP = 0.15

INTERROGATIVE_BONUS = 0.1
IDENTITY_PENALTY = 0.3

_DEPTH_PATTERN = re.compile(r"\b(" + "|".join(DEPTH_TERMS) + r")\b", re.IGNORECASE)
_CONNECTIVE_PATTERN = re.compile(r"\b(" + "|".join(CONNECTIVES) + r")\b", re.IGNORECASE)
_WONDER_PATTERN = re.compile(r"\bi\s+wonder\b", re.IGNORECASE)

# Returns True when the text violates an identity constraint
IdentityValidator = Callable[[str], bool]


def score_confidence(text: str, validator: Optional[IdentityValidator] = None) -> float:
    """Score a piece of generated text.

    Never raises. Empty input yields BASE_SCORE.

    Args:
        text: Generated text
        validator: Optional identity check applied to the text

    Returns:
        Score in [MIN_SCORE, MAX_SCORE]
    """
    text = text or ""
    score = BASE_SCORE

    length = len(text)
    if SWEET_SPOT_MIN_CHARS < length < SWEET_SPOT_MAX_CHARS:
        score += SWEET_SPOT_BONUS
    elif SWEET_SPOT_MAX_CHARS <= length < SECONDARY_MAX_CHARS:
        score += SECONDARY_BONUS

    depth_hits = len(_DEPTH_PATTERN.findall(text))
    score += min(DEPTH_TERM_CAP, depth_hits * DEPTH_TERM_WEIGHT)

    connective_hits = len(_CONNECTIVE_PATTERN.findall(text))
    score += min(CONNECTIVE_CAP, connective_hits * CONNECTIVE_WEIGHT)

    if "?" in text or _WONDER_PATTERN.search(text):
        score += INTERROGATIVE_BONUS

    if validator is not None and text:
        try:
            if validator(text):
                score -= IDENTITY_PENALTY
        except Exception as e:
            logger.warning(f"Identity validator failed, skipping penalty: {e}")

    return max(MIN_SCORE, min(MAX_SCORE, score))


def persona_identity_validator(
    persona_id: str, registry: "PersonaRegistry"
) -> IdentityValidator:
    """Build a validator that flags a persona claiming to be someone else.

    Matches first-person identity claims such as "I am Kanshi" or
    "as Yoga, I" naming any other registered persona.
    """
    other_names: set[str] = set()
    for profile in registry.core_personas() + registry.advisory_personas():
        if profile.id == persona_id:
            continue
        other_names.add(profile.short_name.lower())
        other_names.add(profile.display_name.split(",")[0].strip().lower())

    if not other_names:
        return lambda text: False

    names = "|".join(re.escape(n) for n in sorted(other_names, key=len, reverse=True))
    pattern = re.compile(
        rf"\b(?:(?:i\s+am|i'm)\s+(?:{names})\b|as\s+(?:{names})\s*,\s*i\b)",
        re.IGNORECASE,
    )

    def validate(text: str) -> bool:
        return pattern.search(text) is not None

    return validate


class ConfidenceEvaluator:
    """Scores text with an optional bound identity validator."""

    def __init__(self, validator: Optional[IdentityValidator] = None):
        self.validator = validator

    def score(self, text: str) -> float:
        return score_confidence(text, self.validator)

    @classmethod
    def for_persona(cls, persona_id: str, registry: "PersonaRegistry") -> "ConfidenceEvaluator":
        return cls(persona_identity_validator(persona_id, registry))
