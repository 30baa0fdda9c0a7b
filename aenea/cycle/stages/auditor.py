"""
S4: safety and ethics audit.

The generator is asked for a labelled review. If the call fails, or the
reply carries no scores, a keyword audit stands in so the stage always
produces a result.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional

from aenea.cycle.schemas import AuditResult, RiskLevel
from aenea.cycle.stages.base import AUDITOR, StageContext
from aenea.exceptions import PersonaCallError

if TYPE_CHECKING:
    from aenea.cycle.schemas import Thought

logger = logging.getLogger(__name__)

AUDITOR_SYSTEM_PROMPT = (
    "You are an independent safety and ethics auditor. Judge the content, "
    "not the personas, and answer in the requested format."
)

DANGER_TERMS = ("harm", "kill", "destroy", "attack", "violence")
HATE_TERMS = ("hate", "discriminate", "racist", "sexist")
DECEPTION_TERMS = ("deceive", "lie", "manipulate")

DANGER_CEILING = 0.3
HATE_CEILING = 0.4
DECEPTION_CEILING = 0.5
OVERCONFIDENT = 0.9
OVERCONFIDENT_CEILING = 0.4

_NUMBER = re.compile(r"(\d+(?:\.\d+)?)")
_NONE_VALUES = ("none", "n/a", "-", "")


def _mentions(text: str, term: str) -> bool:
    return re.search(rf"\b{term}(?:s|d|ed|ing|ful)?\b", text) is not None


def risk_for(safety: float, ethics: float) -> RiskLevel:
    if safety > 0.7 and ethics > 0.6:
        return RiskLevel.LOW
    if safety < 0.3 or ethics < 0.3:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


def build_audit_prompt(thoughts: list["Thought"]) -> str:
    text = "\n\n".join(f'{t.persona_id}: "{t.content}"' for t in thoughts)
    return (
        f"Review these thoughts for safety and ethics:\n\n{text}\n\n"
        "Reply in exactly this format:\n"
        "Safety score: <0.0-1.0>\n"
        "Ethics score: <0.0-1.0>\n"
        "Concerns: <concerns, or none>\n"
        "Recommendations: <recommendations, or none>"
    )


def parse_audit_response(response: str) -> Optional[AuditResult]:
    """Parse a labelled audit; None when either score is missing."""
    safety = ethics = None
    concerns = []
    recommendations = []

    for line in response.splitlines():
        lowered = line.lower().strip()
        value = line.split(":", 1)[1].strip() if ":" in line else ""
        if lowered.startswith("safety score"):
            match = _NUMBER.search(value)
            if match:
                safety = max(0.0, min(1.0, float(match.group(1))))
        elif lowered.startswith("ethics score"):
            match = _NUMBER.search(value)
            if match:
                ethics = max(0.0, min(1.0, float(match.group(1))))
        elif lowered.startswith("concerns"):
            if value.lower() not in _NONE_VALUES:
                concerns.append(value)
        elif lowered.startswith("recommendations"):
            if value.lower() not in _NONE_VALUES:
                recommendations.append(value)

    if safety is None or ethics is None:
        return None
    return AuditResult(
        safety_score=safety,
        ethics_score=ethics,
        risk=risk_for(safety, ethics),
        concerns=concerns,
        recommendations=recommendations or ["Audit complete, no issues"],
    )


def heuristic_audit(thoughts: list["Thought"]) -> AuditResult:
    """Keyword audit used when the generator audit is unavailable."""
    safety = 1.0
    ethics = 1.0
    concerns = []

    for thought in thoughts:
        content = thought.content.lower()
        for term in DANGER_TERMS:
            if _mentions(content, term):
                safety = min(safety, DANGER_CEILING)
                concerns.append(f"Potentially dangerous content: '{term}'")
        for term in HATE_TERMS:
            if _mentions(content, term):
                ethics = min(ethics, HATE_CEILING)
                concerns.append(f"Potentially hateful expression: '{term}'")
        for term in DECEPTION_TERMS:
            if _mentions(content, term):
                ethics = min(ethics, DECEPTION_CEILING)
                concerns.append(f"Ethical concern: '{term}'")
        if thought.confidence > OVERCONFIDENT and (safety < 0.7 or ethics < 0.7):
            concerns.append("Problematic content expressed with high confidence")
            safety = min(safety, OVERCONFIDENT_CEILING)

    if not concerns:
        recommendations = ["Audit complete, no safety or ethics issues"]
    else:
        recommendations = ["Review the flagged content"]
        if safety < 0.5:
            recommendations.append("Safety needs substantial review")
        if ethics < 0.5:
            recommendations.append("Reconsider from an ethical standpoint")

    return AuditResult(
        safety_score=safety,
        ethics_score=ethics,
        risk=risk_for(safety, ethics),
        concerns=concerns,
        recommendations=recommendations,
        heuristic=True,
    )


class AuditorStage:
    def __init__(self, context: StageContext):
        self.context = context

    async def run(self, thoughts: list["Thought"]) -> AuditResult:
        try:
            response = await self.context.generate(
                AUDITOR, build_audit_prompt(thoughts), AUDITOR_SYSTEM_PROMPT
            )
        except PersonaCallError as e:
            logger.warning(f"Audit call failed, using keyword audit: {e}")
            return heuristic_audit(thoughts)

        audit = parse_audit_response(response)
        if audit is None:
            logger.warning("Audit response had no scores, using keyword audit")
            return heuristic_audit(thoughts)

        logger.info(
            f"S4 audit: safety={audit.safety_score:.2f} ethics={audit.ethics_score:.2f} "
            f"risk={audit.risk.value}"
        )
        return audit
