"""S2 (first half): each persona reflects on what the others said."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Optional

from aenea.cycle.schemas import Reflection, Thought
from aenea.cycle.stages.base import StageContext
from aenea.exceptions import UnknownPersonaError

if TYPE_CHECKING:
    from aenea.cycle.schemas import Trigger

logger = logging.getLogger(__name__)

HIGH_AGREEMENT = 0.8
NEUTRAL_AGREEMENT = 0.5
LOW_AGREEMENT = 0.2

_DISAGREE = re.compile(r"\b(disagree|reject|oppose|mistaken|wrong|not convinced)\b", re.IGNORECASE)
_AGREE = re.compile(r"\b(agree|share|concur|convinced|resonates?)\b", re.IGNORECASE)
_CRITICISM = re.compile(r"\b(however|but|yet|on the other hand|overlooks?|misses)\b", re.IGNORECASE)
_ALTERNATIVE = re.compile(
    r"\b(alternatively|instead|another way|what if|perhaps|could also)\b", re.IGNORECASE
)
_SENTENCE = re.compile(r"[^.!?\n]+[.!?]?")

INSIGHT_MARKERS = (
    ("different perspective", "Multiple perspectives identified in dialogue"),
    ("common ground", "Common ground found between personas"),
    ("tension", "Divergent viewpoints requiring further exploration"),
    ("integrat", "Integration of perspectives could yield insights"),
)


def build_reflection_prompt(trigger: "Trigger", own: Thought, others: list[Thought]) -> str:
    dialogue = "\n\n".join(f'{t.persona_id}: "{t.content}"' for t in others)
    return (
        f"Question: {trigger.question}\n\n"
        f'Your thought:\n"{own.content}"\n\n'
        f"The others said:\n{dialogue}\n\n"
        "From your own perspective, briefly:\n"
        "1. Evaluate what the others said\n"
        "2. Say where you disagree and why\n"
        "3. Offer an alternative or a way to integrate\n"
        "4. Ask one new question"
    )


def _first_sentence(text: str, pattern: re.Pattern) -> Optional[str]:
    for sentence in _SENTENCE.findall(text):
        if pattern.search(sentence):
            return sentence.strip()
    return None


def parse_reflection(content: str, reflector_id: str, targets: list[Thought]) -> Reflection:
    """Turn a free-text reflection into a structured one."""
    if _DISAGREE.search(content):
        agreement = LOW_AGREEMENT
    elif _AGREE.search(content):
        agreement = HIGH_AGREEMENT
    else:
        agreement = NEUTRAL_AGREEMENT

    lowered = content.lower()
    insights = [label for marker, label in INSIGHT_MARKERS if marker in lowered]

    return Reflection(
        reflector_id=reflector_id,
        target_thought_ids=[t.id for t in targets],
        content=content,
        agreement_level=agreement,
        insights=insights or ["Cross-persona dialogue reflects thoughtful engagement"],
        criticism=_first_sentence(content, _CRITICISM),
        alternative_perspective=_first_sentence(content, _ALTERNATIVE),
    )


class MutualReflectionStage:
    def __init__(self, context: StageContext):
        self.context = context

    async def _reflect(self, trigger: "Trigger", own: Thought, others: list[Thought]) -> Reflection:
        try:
            system_prompt = self.context.registry.get(own.persona_id).system_prompt()
        except UnknownPersonaError:
            system_prompt = None
        prompt = build_reflection_prompt(trigger, own, others)
        content = await self.context.generate(own.persona_id, prompt, system_prompt)
        return parse_reflection(content, own.persona_id, others)

    async def run(self, trigger: "Trigger", thoughts: list[Thought]) -> list[Reflection]:
        """Collect one reflection per thought; failed reflections are dropped."""
        pairs = [(t, [o for o in thoughts if o.id != t.id]) for t in thoughts]
        pairs = [(t, others) for t, others in pairs if others]
        if not pairs:
            return []

        results = await asyncio.gather(
            *(self._reflect(trigger, t, others) for t, others in pairs),
            return_exceptions=True,
        )

        reflections = []
        for (thought, _), result in zip(pairs, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"Reflection by {thought.persona_id} failed: {result}")
                continue
            reflections.append(result)

        logger.info(f"S2 collected {len(reflections)}/{len(pairs)} reflections")
        return reflections
