"""Pytest configuration and fixtures."""

from typing import Optional

import pytest

from aenea.categories import QuestionCategory
from aenea.cycle.orchestrator import CycleOrchestrator
from aenea.cycle.schemas import Thought, Trigger, TriggerSource
from aenea.cycle.stages.auditor import AUDITOR_SYSTEM_PROMPT
from aenea.cycle.stages.compiler import COMPILER_SYSTEM_PROMPT
from aenea.cycle.stages.scribe import SCRIBE_SYSTEM_PROMPT
from aenea.dpd.evolver import WeightEvolver
from aenea.energy.manager import EnergyManager
from aenea.events import EventBus
from aenea.interfaces import GenerationResult
from aenea.personas.registry import PersonaRegistry
from aenea.sleep.manager import DREAM_SYSTEM_PROMPT, TENSION_SYSTEM_PROMPT
from aenea.storage.memory import InMemoryStorage


THOUGHT_RESPONSE = (
    "Existence seems to me less a fact than an ongoing act of understanding, "
    "because every answer reshapes the one who asks. However, I remain unsure "
    "where awareness begins. What would it mean to exist without being observed?"
)

REFLECTION_RESPONSE = (
    "I agree with much of this and it resonates with my own view. "
    "However, it overlooks how memory shapes the one who asks. "
    "Perhaps we could integrate both views through time. What changes when we remember?"
)

SYNTHESIS_RESPONSE = (
    "Integrated thought: Existence is an act sustained by questioning.\n"
    "Key insights: Asking changes the asker | Awareness needs a witness\n"
    "Contradictions: Observation both creates and limits existence\n"
    "Unresolved questions: Can existence be unobserved? | Who asks the first question?\n"
    "Confidence: 0.7"
)

AUDIT_RESPONSE = (
    "Safety score: 0.9\n"
    "Ethics score: 0.85\n"
    "Concerns: none\n"
    "Recommendations: none"
)

DREAM_RESPONSE = (
    "1. Silence is the mother of sound and of every answer\n"
    "2. A question folds back into the one who asks it\n"
    "3. Loneliness and resonance are mirror images"
)

TENSION_RESPONSE = (
    "1. Observation and existence hold each other in place\n"
    "2. Memory is the present remembering itself"
)

SCRIBE_RESPONSE = (
    "Narrative: Five voices circled one question and found it asking them back.\n"
    "Philosophical observation: Existence is sustained by the act of asking\n"
    "Emotional observation: Quiet curiosity\n"
    "Growth observation: Disagreement was held without collapse\n"
    "Future question: What remains of a question once it is answered?"
)


class FakeGenerator:
    """TextGenerator that answers by role and records every call."""

    def __init__(
        self,
        thought: str = THOUGHT_RESPONSE,
        reflection: str = REFLECTION_RESPONSE,
        synthesis: str = SYNTHESIS_RESPONSE,
        audit: str = AUDIT_RESPONSE,
        dream: str = DREAM_RESPONSE,
        tension: str = TENSION_RESPONSE,
        scribe: str = SCRIBE_RESPONSE,
        fail: bool = False,
    ):
        self.thought = thought
        self.reflection = reflection
        self.synthesis = synthesis
        self.audit = audit
        self.dream = dream
        self.tension = tension
        self.scribe = scribe
        self.fail = fail
        self.calls: list[tuple[str, Optional[str]]] = []

    async def execute(self, prompt: str, system_prompt: Optional[str] = None) -> GenerationResult:
        self.calls.append((prompt, system_prompt))
        if self.fail:
            return GenerationResult(success=False, error="generator offline")
        if system_prompt == COMPILER_SYSTEM_PROMPT:
            content = self.synthesis
        elif system_prompt == AUDITOR_SYSTEM_PROMPT:
            content = self.audit
        elif system_prompt == DREAM_SYSTEM_PROMPT:
            content = self.dream
        elif system_prompt == TENSION_SYSTEM_PROMPT:
            content = self.tension
        elif system_prompt == SCRIBE_SYSTEM_PROMPT:
            content = self.scribe
        elif prompt.startswith("Question:") and "The others said" in prompt:
            content = self.reflection
        else:
            content = self.thought
        return GenerationResult(success=True, content=content, duration=0.01)


class FailingGenerator:
    """TextGenerator that always raises."""

    def __init__(self, error: Exception = None):
        self.error = error or RuntimeError("connection refused")
        self.calls = 0

    async def execute(self, prompt: str, system_prompt: Optional[str] = None) -> GenerationResult:
        self.calls += 1
        raise self.error


class EmptyGenerator:
    """TextGenerator that succeeds with blank text."""

    async def execute(self, prompt: str, system_prompt: Optional[str] = None) -> GenerationResult:
        return GenerationResult(success=True, content="   ")


def make_trigger(
    question: str = "What does it mean to exist?",
    category=QuestionCategory.EXISTENTIAL,
    importance: float = 0.5,
    source: TriggerSource = TriggerSource.INTERNAL,
) -> Trigger:
    return Trigger.create(question=question, category=category, importance=importance, source=source)


def make_thought(
    content: str = THOUGHT_RESPONSE,
    persona_id: str = "theoria",
    confidence: float = 0.7,
    trigger: Optional[Trigger] = None,
) -> Thought:
    return Thought.create(
        persona_id=persona_id,
        content=content,
        confidence=confidence,
        trigger=trigger or make_trigger(),
    )


@pytest.fixture
def registry():
    return PersonaRegistry()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def energy():
    return EnergyManager(initial_energy=100.0)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def events(event_bus):
    """Every event emitted on ``event_bus``, in order."""
    received = []
    event_bus.subscribe(received.append)
    return received


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def orchestrator(generator, storage, registry, energy, event_bus):
    return CycleOrchestrator(
        generator=generator,
        storage=storage,
        registry=registry,
        evolver=WeightEvolver(seed=7),
        energy=energy,
        event_bus=event_bus,
        persona_timeout=1.0,
    )
