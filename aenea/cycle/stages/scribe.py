"""
S6 (first half): the Scribe documents the cycle before it is persisted.

With a synthesis to work from, the generator is asked for a short labelled
record. Without one, or when the call fails or the reply has no narrative,
a plain record is built from whatever the cycle produced.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from aenea.cycle.schemas import Documentation
from aenea.cycle.stages.base import SCRIBE, StageContext, dedupe, is_question
from aenea.events import AgentThought
from aenea.exceptions import PersonaCallError

if TYPE_CHECKING:
    from aenea.cycle.schemas import Synthesis, Thought, Trigger
    from aenea.dpd.weights import DPDScores

logger = logging.getLogger(__name__)

SCRIBE_SYSTEM_PROMPT = (
    "You are the chronicler of a questioning mind. Record each cycle of thought "
    "briefly, with some poetry and one honest philosophical observation."
)

SCRIBE_CONFIDENCE = 0.8

DEFAULT_PHILOSOPHICAL_NOTES = (
    "I am made of questions.",
    "Inner dialogue is the ground of growth.",
)
DEFAULT_GROWTH_OBSERVATIONS = ("Perspective diversity increased through mutual reflection.",)
DEFAULT_FUTURE_QUESTIONS = (
    "How should contradiction and coherence be kept in balance?",
    "When does ethical discomfort turn into insight?",
)


def build_scribe_prompt(
    trigger: "Trigger", synthesis: "Synthesis", scores: Optional["DPDScores"] = None
) -> str:
    insights = " / ".join(synthesis.key_insights) or "(none)"
    lines = [
        f"Record this cycle of thought on: {trigger.question}",
        "",
        "=== Synthesis ===",
        f'Thought: "{synthesis.integrated_thought}"',
        f"Insights: {insights}",
    ]
    if scores is not None:
        lines.append(
            f"Empathy {scores.empathy:.2f}, coherence {scores.coherence:.2f}, "
            f"dissonance {scores.dissonance:.2f}"
        )
    lines += [
        "",
        "Reply in exactly this format:",
        "Narrative: <one or two sentences>",
        "Philosophical observation: <one short insight>",
        "Emotional observation: <what the cycle felt like>",
        "Growth observation: <what changed>",
        "Future question: <one deep question?>",
        "",
        "The future question must be a single real question, not a statement or a description.",
    ]
    return "\n".join(lines)


def _after_colon(line: str) -> str:
    parts = line.split(":", 1)
    return parts[1].strip() if len(parts) == 2 else ""


def parse_documentation(response: str) -> Documentation:
    """Read the labelled lines of a Scribe reply.

    Missing notes fall back to the defaults. Future questions that are not
    questions are dropped; ``narrative`` is empty when the reply has none.
    """
    narrative = ""
    notes: list[str] = []
    emotions: list[str] = []
    growth: list[str] = []
    questions: list[str] = []

    for line in response.splitlines():
        lowered = line.lower().strip()
        value = _after_colon(line)
        if lowered.startswith("narrative"):
            narrative = value
        elif lowered.startswith("philosophical"):
            notes.extend(v.strip() for v in value.split("|") if v.strip())
        elif lowered.startswith("emotional"):
            emotions.extend(v.strip() for v in value.split("|") if v.strip())
        elif lowered.startswith("growth"):
            growth.extend(v.strip() for v in value.split("|") if v.strip())
        elif lowered.startswith("future question"):
            questions.extend(q.strip() for q in value.split("|") if is_question(q))

    return Documentation(
        narrative=narrative,
        philosophical_notes=notes or list(DEFAULT_PHILOSOPHICAL_NOTES),
        emotional_observations=emotions,
        growth_observations=growth or list(DEFAULT_GROWTH_OBSERVATIONS),
        future_questions=dedupe(questions),
        generated=True,
    )


def fallback_documentation(
    thoughts: list["Thought"],
    synthesis: Optional["Synthesis"] = None,
    scores: Optional["DPDScores"] = None,
) -> Documentation:
    """Record built without a generator call."""
    if synthesis is not None:
        narrative = (
            "Aenea synthesized multiple voices into a coherent thread: "
            f"{synthesis.integrated_thought}"
        )
    elif thoughts:
        best = max(thoughts, key=lambda t: t.confidence)
        narrative = (
            f"Aenea heard {len(thoughts)} voices; "
            f"{best.persona_id} spoke most surely: {best.content}"
        )
    else:
        narrative = "The inquiry continues; each question opens another."

    empathy = scores.empathy if scores is not None else 0.5
    return Documentation(
        narrative=narrative,
        philosophical_notes=list(DEFAULT_PHILOSOPHICAL_NOTES),
        emotional_observations=[f"Curiosity level implied by integration: {empathy:.2f}"],
        growth_observations=list(DEFAULT_GROWTH_OBSERVATIONS),
        future_questions=list(DEFAULT_FUTURE_QUESTIONS),
        generated=False,
    )


class ScribeStage:
    def __init__(self, context: StageContext):
        self.context = context

    async def run(
        self,
        trigger: "Trigger",
        thoughts: list["Thought"],
        synthesis: Optional["Synthesis"] = None,
        scores: Optional["DPDScores"] = None,
    ) -> Documentation:
        documentation = await self._document(trigger, thoughts, synthesis, scores)
        await self.context.emit(
            AgentThought(
                agent_name="Scribe",
                thought=documentation.narrative,
                confidence=SCRIBE_CONFIDENCE if documentation.generated else 0.5,
            )
        )
        return documentation

    async def _document(
        self,
        trigger: "Trigger",
        thoughts: list["Thought"],
        synthesis: Optional["Synthesis"],
        scores: Optional["DPDScores"],
    ) -> Documentation:
        if synthesis is None:
            return fallback_documentation(thoughts, synthesis, scores)

        prompt = build_scribe_prompt(trigger, synthesis, scores)
        try:
            response = await self.context.generate(SCRIBE, prompt, SCRIBE_SYSTEM_PROMPT)
        except PersonaCallError as e:
            logger.warning(f"Scribe call failed, using plain documentation: {e}")
            return fallback_documentation(thoughts, synthesis, scores)

        documentation = parse_documentation(response)
        if not documentation.narrative:
            logger.warning("Scribe response had no narrative, using plain documentation")
            return fallback_documentation(thoughts, synthesis, scores)
        return documentation
