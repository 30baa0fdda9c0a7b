"""Tests for internal trigger generation."""

from unittest.mock import AsyncMock

import pytest

from aenea.categories import QuestionCategory
from aenea.cycle.schemas import TriggerSource, UnresolvedIdea
from aenea.cycle.triggers import (
    EVOLVED_IMPORTANCE,
    SEED_IMPORTANCE,
    SEED_QUESTIONS,
    TriggerGenerator,
)


class TestTriggerGenerator:
    """Tests for TriggerGenerator.generate."""

    @pytest.mark.asyncio
    async def test_seed_question_without_storage(self):
        generator = TriggerGenerator(seed=1)
        trigger = await generator.generate()

        category = QuestionCategory(trigger.category)
        assert trigger.question in SEED_QUESTIONS[category]
        assert trigger.importance == SEED_IMPORTANCE
        assert trigger.source == TriggerSource.INTERNAL
        assert generator.generated_count == 1
        trigger.validate()

    @pytest.mark.asyncio
    async def test_seed_category_never_repeats_back_to_back(self):
        generator = TriggerGenerator(seed=2)
        categories = [(await generator.generate()).category for _ in range(30)]
        assert all(a != b for a, b in zip(categories, categories[1:]))

    @pytest.mark.asyncio
    async def test_evolves_most_important_idea(self, storage):
        await storage.record_unresolved_ideas(
            [
                UnresolvedIdea(question="Is memory identity?", category="temporal", importance=0.4),
                UnresolvedIdea(question="Can doubt doubt itself?", category="epistemological", importance=0.9),
            ]
        )
        generator = TriggerGenerator(storage=storage, evolve_probability=1.0, seed=3)

        trigger = await generator.generate()

        assert "Can doubt doubt itself?" in trigger.question
        assert trigger.category == "epistemological"
        assert trigger.importance == EVOLVED_IMPORTANCE

    @pytest.mark.asyncio
    async def test_each_idea_evolved_once(self, storage):
        await storage.record_unresolved_ideas(
            [UnresolvedIdea(question="Is memory identity?", category="temporal")]
        )
        generator = TriggerGenerator(storage=storage, evolve_probability=1.0, seed=4)

        first = await generator.generate()
        second = await generator.generate()

        assert "Is memory identity?" in first.question
        assert "Is memory identity?" not in second.question

    @pytest.mark.asyncio
    async def test_unknown_idea_category_becomes_metacognitive(self, storage):
        await storage.record_unresolved_ideas(
            [UnresolvedIdea(question="What is a question?", category="culinary")]
        )
        generator = TriggerGenerator(storage=storage, evolve_probability=1.0, seed=5)
        assert (await generator.generate()).category == "metacognitive"

    @pytest.mark.asyncio
    async def test_storage_failure_falls_back_to_seed(self):
        storage = AsyncMock()
        storage.get_unresolved_ideas.side_effect = RuntimeError("db down")
        generator = TriggerGenerator(storage=storage, evolve_probability=1.0, seed=6)

        trigger = await generator.generate()

        assert trigger.importance == SEED_IMPORTANCE
        storage.get_unresolved_ideas.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zero_probability_never_reads_storage(self):
        storage = AsyncMock()
        generator = TriggerGenerator(storage=storage, evolve_probability=0.0, seed=7)
        await generator.generate()
        storage.get_unresolved_ideas.assert_not_awaited()
