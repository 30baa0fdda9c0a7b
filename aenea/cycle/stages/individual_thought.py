"""S1: every selected persona answers the trigger independently."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Sequence

from aenea.cycle.schemas import Thought
from aenea.cycle.stages.base import StageContext
from aenea.events import AgentThought
from aenea.scoring.confidence import ConfidenceEvaluator

if TYPE_CHECKING:
    from aenea.cycle.schemas import Trigger
    from aenea.personas.registry import PersonaProfile
    from aenea.personas.selector import PersonaSelection

logger = logging.getLogger(__name__)


@dataclass
class IndividualThoughtResult:
    thoughts: list[Thought] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def attempted(self) -> int:
        return len(self.thoughts) + len(self.failed)


def build_thought_prompt(trigger: "Trigger", beliefs: Sequence[str] = ()) -> str:
    lines = [
        f"Question ({trigger.category}): {trigger.question}",
        "",
        "Answer from your own perspective in one or two short paragraphs.",
        "Say what you actually think, where you are unsure, and what remains open.",
    ]
    if beliefs:
        lines.append("")
        lines.append("Beliefs you have held so far:")
        lines.extend(f"- {b}" for b in beliefs)
    return "\n".join(lines)


class IndividualThoughtStage:
    """Fan out to the core personas and the two selected advisory personas."""

    def __init__(self, context: StageContext):
        self.context = context

    def participants(self, selection: "PersonaSelection") -> list["PersonaProfile"]:
        """Core personas first, then optimal and contrasting advisory personas."""
        registry = self.context.registry
        profiles = list(registry.core_personas())
        for persona_id in selection.as_tuple():
            if persona_id in registry:
                profiles.append(registry.get(persona_id))
            else:
                logger.warning(f"Selected persona {persona_id} is not registered, skipping")
        return profiles

    async def run(
        self,
        trigger: "Trigger",
        selection: "PersonaSelection",
        beliefs: Optional[Sequence[str]] = None,
    ) -> IndividualThoughtResult:
        profiles = self.participants(selection)
        prompt = build_thought_prompt(trigger, beliefs or ())

        results = await asyncio.gather(
            *(self.context.generate(p.id, prompt, p.system_prompt()) for p in profiles),
            return_exceptions=True,
        )

        outcome = IndividualThoughtResult()
        for profile, result in zip(profiles, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"Persona {profile.id} produced no thought: {result}")
                outcome.failed[profile.id] = str(result)
                continue

            evaluator = ConfidenceEvaluator.for_persona(profile.id, self.context.registry)
            thought = Thought.create(
                persona_id=profile.id,
                content=result,
                confidence=evaluator.score(result),
                trigger=trigger,
                advisory=not profile.is_core,
            )
            outcome.thoughts.append(thought)
            await self.context.emit(
                AgentThought(
                    agent_name=profile.id,
                    thought=thought.content,
                    confidence=thought.confidence,
                    advisory=thought.advisory,
                )
            )

        logger.info(
            f"S1 produced {len(outcome.thoughts)}/{outcome.attempted} thoughts"
            + (f" (failed: {', '.join(outcome.failed)})" if outcome.failed else "")
        )
        return outcome
