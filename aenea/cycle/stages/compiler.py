"""S2 (second half): compile thoughts and reflections into one synthesis."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from aenea.cycle.schemas import Synthesis
from aenea.cycle.stages.base import COMPILER, StageContext, dedupe, extract_questions, is_question
from aenea.exceptions import PersonaCallError

if TYPE_CHECKING:
    from aenea.cycle.schemas import Reflection, Thought, Trigger

logger = logging.getLogger(__name__)

COMPILER_SYSTEM_PROMPT = (
    "You integrate several perspectives into one coherent understanding. "
    "Look for the deeper view that holds them together rather than averaging them."
)

DEFAULT_SYNTHESIS_CONFIDENCE = 0.8

_NUMBER = re.compile(r"(\d+(?:\.\d+)?)")


def build_compiler_prompt(
    trigger: "Trigger",
    thoughts: list["Thought"],
    reflections: list["Reflection"],
) -> str:
    thoughts_text = "\n\n".join(
        f'Thought {i} ({t.persona_id}): "{t.content}"' for i, t in enumerate(thoughts, 1)
    )
    reflections_text = "\n\n".join(
        f'Reflection {i} ({r.reflector_id}): "{r.content}"' for i, r in enumerate(reflections, 1)
    ) or "(none)"
    return (
        f"Integrate the council's thinking on: {trigger.question}\n\n"
        f"=== Thoughts ===\n{thoughts_text}\n\n"
        f"=== Reflections ===\n{reflections_text}\n\n"
        "Reply in exactly this format:\n"
        "Integrated thought: <two or three sentences>\n"
        "Key insights: <insight 1> | <insight 2>\n"
        "Contradictions: <how the tensions fit together>\n"
        "Unresolved questions: <question 1?> | <question 2?>\n"
        "Confidence: <0.0-1.0>\n\n"
        "Unresolved questions must be real questions, not statements or descriptions."
    )


def _after_colon(line: str) -> str:
    parts = line.split(":", 1)
    return parts[1].strip() if len(parts) == 2 else ""


def parse_synthesis(response: str) -> Synthesis:
    """Read the labelled lines of a compiler response.

    Missing fields fall back to neutral values; unresolved entries that
    are not questions are dropped.
    """
    integrated = ""
    insights: list[str] = []
    contradictions: list[str] = []
    questions: list[str] = []
    confidence = DEFAULT_SYNTHESIS_CONFIDENCE

    for line in response.splitlines():
        lowered = line.lower().strip()
        if lowered.startswith("integrated thought"):
            integrated = _after_colon(line)
        elif lowered.startswith("key insights"):
            insights.extend(i.strip() for i in _after_colon(line).split("|") if i.strip())
        elif lowered.startswith("contradictions"):
            value = _after_colon(line)
            if value and value.lower() not in ("none", "n/a"):
                contradictions.append(value)
        elif lowered.startswith("unresolved"):
            questions.extend(q.strip() for q in _after_colon(line).split("|") if is_question(q))
        elif lowered.startswith("confidence"):
            match = _NUMBER.search(line)
            if match:
                confidence = max(0.0, min(1.0, float(match.group(1))))

    if not integrated:
        integrated = response.strip().splitlines()[0] if response.strip() else ""

    return Synthesis(
        integrated_thought=integrated,
        key_insights=insights,
        contradictions=contradictions,
        unresolved_questions=dedupe(questions),
        confidence=confidence,
        generated=True,
    )


def fallback_synthesis(thoughts: list["Thought"], reflections: list["Reflection"]) -> Synthesis:
    """Synthesis built without a compiler call, anchored on the most confident thought."""
    best = max(thoughts, key=lambda t: t.confidence)
    questions = []
    for t in thoughts:
        questions.extend(extract_questions(t.content))
    contradictions = [r.criticism for r in reflections if r.criticism and r.agreement_level < 0.5]
    return Synthesis(
        integrated_thought=best.content,
        key_insights=[f"{best.persona_id} offered the most confident perspective"],
        contradictions=contradictions,
        unresolved_questions=dedupe(questions),
        confidence=sum(t.confidence for t in thoughts) / len(thoughts),
        generated=False,
    )


class CompilerStage:
    def __init__(self, context: StageContext):
        self.context = context

    async def run(
        self,
        trigger: "Trigger",
        thoughts: list["Thought"],
        reflections: list["Reflection"],
    ) -> Synthesis:
        prompt = build_compiler_prompt(trigger, thoughts, reflections)
        try:
            response = await self.context.generate(COMPILER, prompt, COMPILER_SYSTEM_PROMPT)
        except PersonaCallError as e:
            logger.warning(f"Compiler call failed, using fallback synthesis: {e}")
            return fallback_synthesis(thoughts, reflections)

        synthesis = parse_synthesis(response)
        if not synthesis.integrated_thought:
            logger.warning("Compiler response had no integrated thought, using fallback synthesis")
            return fallback_synthesis(thoughts, reflections)
        return synthesis
