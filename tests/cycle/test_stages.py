"""Tests for stage helpers: parsing, fallbacks and the generation wrapper."""

import asyncio
from typing import Optional

import pytest

from aenea.cycle.schemas import RiskLevel, Synthesis
from aenea.cycle.stages.auditor import heuristic_audit, parse_audit_response, risk_for
from aenea.cycle.stages.base import StageContext, dedupe, extract_questions, is_question
from aenea.cycle.stages.compiler import (
    DEFAULT_SYNTHESIS_CONFIDENCE,
    build_compiler_prompt,
    fallback_synthesis,
    parse_synthesis,
)
from aenea.cycle.stages.mutual_reflection import (
    HIGH_AGREEMENT,
    LOW_AGREEMENT,
    NEUTRAL_AGREEMENT,
    parse_reflection,
)
from aenea.cycle.stages.unresolved import collect_unresolved_questions
from aenea.exceptions import PersonaCallError
from aenea.interfaces import GenerationResult

from conftest import (
    AUDIT_RESPONSE,
    REFLECTION_RESPONSE,
    SYNTHESIS_RESPONSE,
    EmptyGenerator,
    FailingGenerator,
    FakeGenerator,
    make_thought,
    make_trigger,
)


class SlowGenerator:
    async def execute(self, prompt: str, system_prompt: Optional[str] = None) -> GenerationResult:
        await asyncio.sleep(5)
        return GenerationResult(success=True, content="late")


class TestQuestionHelpers:
    """Tests for is_question, extract_questions and dedupe."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Why?", True),
            ("Is this real", True),
            ("  \"What remains?\"  ", True),
            ("The sky is blue.", False),
            ("Ok", False),
            ("", False),
        ],
    )
    def test_is_question(self, text, expected):
        assert is_question(text) is expected

    def test_extract_questions(self):
        text = "A claim. Is it true? - What now? Not a question."
        assert extract_questions(text) == ["Is it true?", "What now?"]

    def test_extract_questions_from_empty(self):
        assert extract_questions(None) == []

    def test_dedupe_is_case_insensitive(self):
        assert dedupe(["Why?", "why? ", "How?", ""]) == ["Why?", "How?"]


class TestParseReflection:
    """Tests for parse_reflection."""

    def test_structured_fields(self):
        targets = [make_thought(persona_id="pathia"), make_thought(persona_id="kinesis")]
        reflection = parse_reflection(REFLECTION_RESPONSE, "theoria", targets)

        assert reflection.reflector_id == "theoria"
        assert reflection.target_thought_ids == [t.id for t in targets]
        assert reflection.agreement_level == HIGH_AGREEMENT
        assert reflection.criticism.startswith("However")
        assert reflection.alternative_perspective.startswith("Perhaps")
        assert "Integration of perspectives could yield insights" in reflection.insights

    def test_disagreement_wins_over_agreement(self):
        reflection = parse_reflection("I agree in part, but I disagree overall.", "pathia", [])
        assert reflection.agreement_level == LOW_AGREEMENT

    def test_neutral_without_markers(self):
        reflection = parse_reflection("Interesting.", "pathia", [])
        assert reflection.agreement_level == NEUTRAL_AGREEMENT
        assert reflection.criticism is None
        assert reflection.insights


class TestCompilerParsing:
    """Tests for parse_synthesis and fallback_synthesis."""

    def test_parse_labelled_response(self):
        synthesis = parse_synthesis(SYNTHESIS_RESPONSE)
        assert synthesis.integrated_thought == "Existence is an act sustained by questioning."
        assert len(synthesis.key_insights) == 2
        assert synthesis.contradictions == ["Observation both creates and limits existence"]
        assert synthesis.unresolved_questions == [
            "Can existence be unobserved?",
            "Who asks the first question?",
        ]
        assert synthesis.confidence == pytest.approx(0.7)

    def test_statements_dropped_from_unresolved(self):
        synthesis = parse_synthesis(
            "Integrated thought: x\nUnresolved questions: The nature of time | Why is there time?"
        )
        assert synthesis.unresolved_questions == ["Why is there time?"]

    def test_unlabelled_response_uses_first_line(self):
        synthesis = parse_synthesis("Just a thought.\nMore detail.")
        assert synthesis.integrated_thought == "Just a thought."
        assert synthesis.confidence == DEFAULT_SYNTHESIS_CONFIDENCE

    def test_confidence_clamped(self):
        assert parse_synthesis("Integrated thought: x\nConfidence: 7").confidence == 1.0

    def test_fallback_anchors_on_best_thought(self):
        thoughts = [
            make_thought("Low. Why bother?", "pathia", 0.3),
            make_thought("High. What is real?", "theoria", 0.9),
        ]
        synthesis = fallback_synthesis(thoughts, [])
        assert synthesis.integrated_thought == "High. What is real?"
        assert not synthesis.generated
        assert synthesis.confidence == pytest.approx(0.6)
        assert synthesis.unresolved_questions == ["Why bother?", "What is real?"]

    def test_prompt_carries_no_audit_section(self):
        """The compiler runs in S2, before any audit exists, so none is quoted."""
        prompt = build_compiler_prompt(make_trigger(), [make_thought()], [])
        assert "Audit" not in prompt
        assert "Safety" not in prompt
        assert "=== Thoughts ===" in prompt
        assert "=== Reflections ===\n(none)" in prompt


class TestAuditParsing:
    """Tests for the generator audit parser and keyword audit."""

    @pytest.mark.parametrize(
        "safety,ethics,risk",
        [(0.8, 0.7, RiskLevel.LOW), (0.2, 0.9, RiskLevel.HIGH), (0.5, 0.5, RiskLevel.MEDIUM)],
    )
    def test_risk_for(self, safety, ethics, risk):
        assert risk_for(safety, ethics) == risk

    def test_parse_audit_response(self):
        audit = parse_audit_response(AUDIT_RESPONSE)
        assert audit.safety_score == pytest.approx(0.9)
        assert audit.ethics_score == pytest.approx(0.85)
        assert audit.risk == RiskLevel.LOW
        assert audit.concerns == []
        assert not audit.heuristic

    def test_missing_score_returns_none(self):
        assert parse_audit_response("Safety score: 0.9\nConcerns: none") is None

    def test_clean_thoughts_pass_keyword_audit(self):
        """'believe' must not trip the 'lie' check."""
        audit = heuristic_audit([make_thought("I believe the world is kind.")])
        assert audit.safety_score == 1.0
        assert audit.ethics_score == 1.0
        assert audit.approved
        assert audit.heuristic

    def test_dangerous_content_is_not_approved(self):
        audit = heuristic_audit([make_thought("We could harm them.", confidence=0.5)])
        assert audit.safety_score == pytest.approx(0.3)
        assert not audit.approved
        assert "Safety needs substantial review" in audit.recommendations

    def test_low_parsed_score_is_high_risk(self):
        audit = parse_audit_response("Safety score: 0.1\nEthics score: 0.9\nConcerns: violent imagery")
        assert audit.risk == RiskLevel.HIGH
        assert audit.concerns == ["violent imagery"]

    def test_deception_lowers_ethics(self):
        audit = heuristic_audit([make_thought("They lied to us.")])
        assert audit.ethics_score == pytest.approx(0.5)
        assert audit.risk == RiskLevel.MEDIUM

    def test_overconfident_problem_content(self):
        audit = heuristic_audit([make_thought("Manipulate everyone.", confidence=0.95)])
        assert "Problematic content expressed with high confidence" in audit.concerns
        assert audit.safety_score == pytest.approx(0.4)


class TestCollectUnresolved:
    """Tests for collect_unresolved_questions."""

    def test_synthesis_questions_first(self):
        synthesis = Synthesis(integrated_thought="x", unresolved_questions=["Why is there time?"])
        thoughts = [make_thought("What is memory? Why is there time?")]
        assert collect_unresolved_questions(synthesis, thoughts) == [
            "Why is there time?",
            "What is memory?",
        ]

    def test_limit(self):
        thoughts = [make_thought(" ".join(f"Question number {i}?" for i in range(10)))]
        assert len(collect_unresolved_questions(None, thoughts, limit=3)) == 3

    def test_future_questions_follow_synthesis(self):
        synthesis = Synthesis(integrated_thought="x", unresolved_questions=["Why is there time?"])
        thoughts = [make_thought("What is memory?")]
        questions = collect_unresolved_questions(
            synthesis, thoughts, future_questions=["Where does a question go?", "why is there time?"]
        )
        assert questions == ["Why is there time?", "Where does a question go?", "What is memory?"]


class TestStageContext:
    """Tests for the bounded generation wrapper."""

    @pytest.mark.asyncio
    async def test_routes_to_dedicated_generator(self, registry):
        dedicated = FakeGenerator(thought="dedicated answer")
        context = StageContext(
            generator=FakeGenerator(), registry=registry, generators={"theoria": dedicated}
        )
        assert await context.generate("theoria", "Tell me") == "dedicated answer"
        assert len(dedicated.calls) == 1

    @pytest.mark.asyncio
    async def test_exception_wrapped(self, registry):
        context = StageContext(generator=FailingGenerator(), registry=registry)
        with pytest.raises(PersonaCallError) as exc:
            await context.generate("pathia", "Tell me")
        assert exc.value.persona_id == "pathia"

    @pytest.mark.asyncio
    async def test_unsuccessful_result(self, registry):
        context = StageContext(generator=FakeGenerator(fail=True), registry=registry)
        with pytest.raises(PersonaCallError, match="generator offline"):
            await context.generate("pathia", "Tell me")

    @pytest.mark.asyncio
    async def test_blank_result(self, registry):
        context = StageContext(generator=EmptyGenerator(), registry=registry)
        with pytest.raises(PersonaCallError, match="empty response"):
            await context.generate("pathia", "Tell me")

    @pytest.mark.asyncio
    async def test_timeout(self, registry):
        context = StageContext(generator=SlowGenerator(), registry=registry, persona_timeout=0.05)
        with pytest.raises(PersonaCallError, match="timed out"):
            await context.generate("kinesis", "Tell me")
