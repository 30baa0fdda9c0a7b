"""U: carry the cycle's open questions forward."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from aenea.cycle.schemas import UnresolvedIdea
from aenea.cycle.stages.base import dedupe, extract_questions

if TYPE_CHECKING:
    from aenea.cycle.schemas import Synthesis, Thought, ThoughtCycle
    from aenea.interfaces import Storage

logger = logging.getLogger(__name__)

MAX_UNRESOLVED = 5


def collect_unresolved_questions(
    synthesis: Optional["Synthesis"],
    thoughts: list["Thought"],
    limit: int = MAX_UNRESOLVED,
    future_questions: Sequence[str] = (),
) -> list[str]:
    """Synthesis questions first, then the Scribe's, then questions asked inside thoughts."""
    questions = list(synthesis.unresolved_questions) if synthesis else []
    questions.extend(future_questions)
    for thought in thoughts:
        questions.extend(extract_questions(thought.content))
    return dedupe(questions)[:limit]


class UnresolvedStage:
    def __init__(self, storage: "Storage"):
        self.storage = storage

    async def run(self, cycle: "ThoughtCycle") -> list[UnresolvedIdea]:
        """Collect and store the open questions.

        Runs after the cycle is recorded, so a storage error is logged and
        the ideas are still returned.
        """
        future = cycle.documentation.future_questions if cycle.documentation else ()
        questions = collect_unresolved_questions(
            cycle.synthesis, cycle.thoughts, future_questions=future
        )
        ideas = [
            UnresolvedIdea(
                question=q,
                category=cycle.trigger.category,
                importance=cycle.trigger.importance,
                source_cycle_id=cycle.id,
            )
            for q in questions
        ]
        if ideas:
            try:
                await self.storage.record_unresolved_ideas(ideas)
            except Exception as e:
                logger.warning(f"Could not store unresolved questions for {cycle.id}: {e}")
        logger.debug(f"U collected {len(ideas)} unresolved questions for {cycle.id}")
        return ideas
