"""S3: the contrasting persona challenges the synthesis."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from aenea.cycle.schemas import Critique
from aenea.cycle.stages.base import StageContext
from aenea.exceptions import PersonaCallError, UnknownPersonaError
from aenea.scoring.confidence import ConfidenceEvaluator

if TYPE_CHECKING:
    from aenea.cycle.schemas import Synthesis, Trigger

logger = logging.getLogger(__name__)


def build_critique_prompt(trigger: "Trigger", synthesis: "Synthesis") -> str:
    return (
        f"Question: {trigger.question}\n\n"
        f"The council concluded:\n{synthesis.integrated_thought}\n\n"
        "Challenge this conclusion. Name its weakest point, what it overlooks, "
        "and what would have to be true for it to be wrong."
    )


class CritiqueStage:
    def __init__(self, context: StageContext):
        self.context = context

    async def run(
        self, trigger: "Trigger", synthesis: "Synthesis", persona_id: str
    ) -> Optional[Critique]:
        """Ask ``persona_id`` for a critique. Returns None if the call fails."""
        try:
            profile = self.context.registry.get(persona_id)
        except UnknownPersonaError as e:
            logger.warning(f"Cannot critique: {e}")
            return None

        try:
            content = await self.context.generate(
                persona_id, build_critique_prompt(trigger, synthesis), profile.system_prompt()
            )
        except PersonaCallError as e:
            logger.warning(f"Critique by {persona_id} failed: {e}")
            return None

        evaluator = ConfidenceEvaluator.for_persona(persona_id, self.context.registry)
        return Critique(persona_id=persona_id, content=content, confidence=evaluator.score(content))
