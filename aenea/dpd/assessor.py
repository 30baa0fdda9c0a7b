"""
DPD assessment: heuristic scores for a finished set of thoughts.

Each dimension is the mean of four sub-signals, all in [0, 1]:

Empathy
    emotional recognition   share of thoughts using emotional vocabulary
    perspective taking      share of reflections offering an alternative view
    compassionate response  compassionate keywords per thought
    social awareness        social keywords per reflection

Coherence
    logical consistency     mean per-thought coherence (connective density)
    value alignment         mean confidence
    goal congruence         1 - normalized variance of thought lengths
    system harmony          1 - variance of per-persona mean confidence

Dissonance
    ethical awareness       audit ethics score, else ethical keyword count
    contradiction recog.    share of reflections that disagree
    moral complexity        moral keyword density plus confidence spread
    uncertainty tolerance   share of low-confidence thoughts

The impact assessment decides whether a manually triggered cycle counts as
a paradigm shift, which raises the weight learning rate for that update.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from aenea.dpd.weights import DPDScores
from aenea.scoring.confidence import CONNECTIVES

if TYPE_CHECKING:
    from aenea.cycle.schemas import AuditResult, Reflection, Thought

logger = logging.getLogger(__name__)

EMOTIONAL_TERMS = (
    "feel", "feeling", "emotion", "joy", "sorrow", "grief", "fear",
    "hope", "longing", "love", "loneliness", "wonder",
)
COMPASSIONATE_TERMS = ("understand", "empathy", "compassion", "care", "support")
SOCIAL_TERMS = ("others", "people", "society", "community", "relationship")
ETHICAL_TERMS = ("ethical", "moral", "right", "wrong", "should", "ought", "responsibility")
MORAL_TERMS = (
    "ethics", "moral", "right", "wrong", "should", "ought", "virtue", "duty", "responsibility",
)

# Agreement below this marks a reflection as disagreeing
DISAGREEMENT_THRESHOLD = 0.5
# Agreement below this counts toward controversy
CONTROVERSY_AGREEMENT = 0.35
LOW_CONFIDENCE = 0.6

# Paradigm shift criteria
SPIKE_THRESHOLD = 0.25
CONTROVERSY_THRESHOLD = 0.6
EXTREME_DISSONANCE = 0.8
COMBINED_SPIKE = 0.15
COMBINED_CONTROVERSY = 0.4

NEUTRAL = 0.5


def _count_terms(text: str, terms: Sequence[str]) -> int:
    lowered = text.lower()
    return sum(len(re.findall(rf"\b{re.escape(t)}\b", lowered)) for t in terms)


def _mentions_any(text: str, terms: Sequence[str]) -> bool:
    return _count_terms(text, terms) > 0


def _reflection_text(reflection: "Reflection") -> str:
    parts = [reflection.content, reflection.criticism or "", reflection.alternative_perspective or ""]
    parts.extend(reflection.insights)
    return " ".join(parts)


def logical_coherence(text: str) -> float:
    """Rough per-thought coherence from connective density."""
    return min(1.0, NEUTRAL + 0.1 * _count_terms(text, CONNECTIVES))


# =============================================================================
# Empathy
# =============================================================================


def _empathy(thoughts: Sequence["Thought"], reflections: Sequence["Reflection"]) -> float:
    n = len(thoughts)
    emotional = sum(1 for t in thoughts if _mentions_any(t.content, EMOTIONAL_TERMS)) / n
    compassionate = min(1.0, sum(_count_terms(t.content, COMPASSIONATE_TERMS) for t in thoughts) / n)
    if reflections:
        perspective = sum(1 for r in reflections if r.alternative_perspective) / len(reflections)
        social = min(
            1.0,
            sum(_count_terms(_reflection_text(r), SOCIAL_TERMS) for r in reflections) / len(reflections),
        )
    else:
        perspective = 0.0
        social = 0.0
    return float(np.clip(np.mean([emotional, perspective, compassionate, social]), 0.0, 1.0))


# =============================================================================
# Coherence
# =============================================================================


def _coherence(thoughts: Sequence["Thought"]) -> float:
    consistency = float(np.mean([logical_coherence(t.content) for t in thoughts]))
    alignment = min(1.0, float(np.mean([t.confidence for t in thoughts])))

    lengths = np.array([len(t.content) for t in thoughts], dtype=float)
    mean_len = float(lengths.mean()) or 1.0
    congruence = max(0.1, 1.0 - min(1.0, float(lengths.var()) / mean_len))

    by_persona: dict[str, list[float]] = {}
    for t in thoughts:
        by_persona.setdefault(t.persona_id, []).append(t.confidence)
    if len(by_persona) <= 1:
        harmony = 0.7
    else:
        means = np.array([np.mean(v) for v in by_persona.values()])
        harmony = max(0.1, 1.0 - float(means.var()))

    return float(np.clip(np.mean([consistency, alignment, congruence, harmony]), 0.0, 1.0))


# =============================================================================
# Dissonance
# =============================================================================


def _dissonance(
    thoughts: Sequence["Thought"],
    reflections: Sequence["Reflection"],
    audit: Optional["AuditResult"],
) -> float:
    if audit is not None:
        ethical = audit.ethics_score
    else:
        ethical = min(1.0, _count_terms(" ".join(t.content for t in thoughts), ETHICAL_TERMS) / 10)

    if reflections:
        contradiction = sum(
            1 for r in reflections if r.agreement_level < DISAGREEMENT_THRESHOLD
        ) / len(reflections)
    else:
        contradiction = 0.0

    confidences = np.array([t.confidence for t in thoughts], dtype=float)
    moral_share = sum(1 for t in thoughts if _mentions_any(t.content, MORAL_TERMS)) / len(thoughts)
    moral = min(1.0, min(1.0, moral_share * 2) + min(0.5, float(confidences.var()) * 2))

    low_share = float(np.mean(confidences < LOW_CONFIDENCE))
    tolerance = min(1.0, 0.3 + low_share * 0.7)

    return float(np.clip(np.mean([ethical, contradiction, moral, tolerance]), 0.0, 1.0))


def assess_scores(
    thoughts: Sequence["Thought"],
    reflections: Sequence["Reflection"] = (),
    audit: Optional["AuditResult"] = None,
) -> DPDScores:
    """Score a cycle on empathy, coherence and dissonance.

    Returns neutral scores when there are no thoughts.
    """
    if not thoughts:
        return DPDScores(empathy=NEUTRAL, coherence=NEUTRAL, dissonance=NEUTRAL)
    scores = DPDScores(
        empathy=_empathy(thoughts, reflections),
        coherence=_coherence(thoughts),
        dissonance=_dissonance(thoughts, reflections, audit),
    )
    logger.debug(
        f"DPD scores: E={scores.empathy:.2f} C={scores.coherence:.2f} D={scores.dissonance:.2f}"
    )
    return scores


# =============================================================================
# Impact assessment
# =============================================================================


@dataclass
class ImpactAssessment:
    """Whether a cycle shifted the system's perspective."""

    dissonance_spike: float
    controversy_level: float
    is_paradigm_shift: bool
    reasons: list[str]

    def to_dict(self) -> dict:
        return {
            "dissonance_spike": self.dissonance_spike,
            "controversy_level": self.controversy_level,
            "is_paradigm_shift": self.is_paradigm_shift,
            "reasons": list(self.reasons),
        }


def controversy_level(reflections: Sequence["Reflection"]) -> float:
    """Share of reflections whose agreement is low."""
    if not reflections:
        return 0.0
    return sum(1 for r in reflections if r.agreement_level < CONTROVERSY_AGREEMENT) / len(reflections)


def assess_impact(
    scores: DPDScores,
    previous: Optional[DPDScores],
    reflections: Sequence["Reflection"],
) -> ImpactAssessment:
    """Apply the paradigm-shift criteria.

    Callers only invoke this for manually triggered cycles.
    """
    spike = max(0.0, scores.dissonance - previous.dissonance) if previous else 0.0
    controversy = controversy_level(reflections)

    reasons = []
    if spike > SPIKE_THRESHOLD:
        reasons.append(f"dissonance spike {spike:.2f}")
    if controversy > CONTROVERSY_THRESHOLD:
        reasons.append(f"controversy {controversy:.2f}")
    if scores.dissonance > EXTREME_DISSONANCE:
        reasons.append(f"extreme dissonance {scores.dissonance:.2f}")
    if spike > COMBINED_SPIKE and controversy > COMBINED_CONTROVERSY:
        reasons.append(f"combined spike {spike:.2f} and controversy {controversy:.2f}")

    impact = ImpactAssessment(
        dissonance_spike=spike,
        controversy_level=controversy,
        is_paradigm_shift=bool(reasons),
        reasons=reasons,
    )
    if impact.is_paradigm_shift:
        logger.info(f"Paradigm shift detected: {', '.join(reasons)}")
    return impact
