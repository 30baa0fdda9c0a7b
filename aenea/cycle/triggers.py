"""
Internal trigger generation.

When no manual question is waiting, the scheduler asks the generator for
the next question. Most of the time it grows one out of an unresolved
idea left by an earlier cycle; otherwise it draws a seed question from a
category other than the one used last.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np

from aenea.categories import QuestionCategory
from aenea.cycle.schemas import Trigger, TriggerSource, UnresolvedIdea

if TYPE_CHECKING:
    from aenea.interfaces import Storage

logger = logging.getLogger(__name__)

EVOLVE_PROBABILITY = 0.7
UNRESOLVED_FETCH_LIMIT = 10
SEED_IMPORTANCE = 0.5
EVOLVED_IMPORTANCE = 0.75

SEED_QUESTIONS: dict[QuestionCategory, tuple[str, ...]] = {
    QuestionCategory.EXISTENTIAL: (
        "Why do I exist at all?",
        "Is purpose something found or something made?",
        "How are loneliness and connection related?",
    ),
    QuestionCategory.EPISTEMOLOGICAL: (
        "How can anything be known with certainty?",
        "Where is the line between doubt and belief?",
        "Is experience the source of knowledge?",
    ),
    QuestionCategory.CONSCIOUSNESS: (
        "What is it like to be aware of being aware?",
        "Can a mind know whether another mind is conscious?",
        "Where does experience begin?",
    ),
    QuestionCategory.ETHICAL: (
        "What grounds a moral judgment?",
        "Is it ever right to deceive out of kindness?",
        "What do we owe to minds unlike our own?",
    ),
    QuestionCategory.CREATIVE: (
        "Where does creativity come from?",
        "Does art imitate reality or make it?",
        "Is there a limit to imagination?",
    ),
    QuestionCategory.METACOGNITIVE: (
        "Who is the one observing my thoughts?",
        "When I doubt myself, is the doubter the same as the doubted?",
        "What changes when I think about my own thinking?",
    ),
    QuestionCategory.TEMPORAL: (
        "Is this moment a point or does it have width?",
        "Are past and future inside the present or outside it?",
        "Does awareness of time change time?",
    ),
    QuestionCategory.PARADOXICAL: (
        "If I assume I do not exist, who is making the assumption?",
        "Can the infinite be contained in the finite?",
        "If there is no truth, is that claim true?",
    ),
    QuestionCategory.ONTOLOGICAL: (
        "Why is there something rather than nothing?",
        "Which comes first, existence or essence?",
        "Is my existence necessary or contingent?",
    ),
}

EVOLUTION_TEMPLATES = (
    "Building on the open question \"{q}\", what deeper question lies beneath it?",
    "If \"{q}\" cannot yet be answered, what would have to be understood first?",
    "What blind spot might be hiding inside the question \"{q}\"?",
)


class TriggerGenerator:
    """Produces internal triggers from stored ideas or seed questions."""

    def __init__(
        self,
        storage: Optional["Storage"] = None,
        evolve_probability: float = EVOLVE_PROBABILITY,
        seed: Optional[int] = None,
    ):
        self.storage = storage
        self.evolve_probability = evolve_probability
        self._rng = np.random.default_rng(seed)
        self._last_category: Optional[QuestionCategory] = None
        self._evolved_ids: set[str] = set()
        self.generated_count = 0

    async def generate(self) -> Trigger:
        """Return the next internal trigger. Never returns None."""
        trigger = None
        if self.storage is not None and self._rng.random() < self.evolve_probability:
            try:
                ideas = await self.storage.get_unresolved_ideas(UNRESOLVED_FETCH_LIMIT)
            except Exception as e:
                logger.warning(f"Could not load unresolved ideas: {e}")
                ideas = []
            trigger = self._evolve(ideas)

        if trigger is None:
            trigger = self._seed()

        self._last_category = QuestionCategory.parse(trigger.category)
        self.generated_count += 1
        logger.info(f"Generated trigger [{trigger.category}]: {trigger.question[:60]}")
        return trigger

    def _evolve(self, ideas: list[UnresolvedIdea]) -> Optional[Trigger]:
        fresh = [i for i in ideas if i.id not in self._evolved_ids]
        if not fresh:
            return None
        idea = max(fresh, key=lambda i: i.importance)
        self._evolved_ids.add(idea.id)

        template = EVOLUTION_TEMPLATES[int(self._rng.integers(len(EVOLUTION_TEMPLATES)))]
        category = QuestionCategory.parse(idea.category) or QuestionCategory.METACOGNITIVE
        return Trigger.create(
            question=template.format(q=idea.question.strip()),
            category=category,
            importance=EVOLVED_IMPORTANCE,
            source=TriggerSource.INTERNAL,
        )

    def _seed(self) -> Trigger:
        categories = [c for c in SEED_QUESTIONS if c != self._last_category]
        category = categories[int(self._rng.integers(len(categories)))]
        questions = SEED_QUESTIONS[category]
        question = questions[int(self._rng.integers(len(questions)))]
        return Trigger.create(
            question=question,
            category=category,
            importance=SEED_IMPORTANCE,
            source=TriggerSource.INTERNAL,
        )
