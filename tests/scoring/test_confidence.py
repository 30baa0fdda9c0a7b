"""Tests for heuristic confidence scoring."""

import pytest

from aenea.personas.registry import KANSHI, THEORIA
from aenea.scoring.confidence import (
    BASE_SCORE,
    MAX_SCORE,
    MIN_SCORE,
    ConfidenceEvaluator,
    persona_identity_validator,
    score_confidence,
)


class TestScoreConfidence:
    """Tests for score_confidence."""

    def test_empty_text_scores_base(self):
        """Empty input scores exactly the base."""
        assert score_confidence("") == BASE_SCORE

    def test_none_text_does_not_raise(self):
        """None is treated as empty."""
        assert score_confidence(None) == BASE_SCORE

    def test_thousand_chars_in_bounds(self):
        """A 1000-character text gets the secondary length bonus and stays in range."""
        score = score_confidence("a" * 1000)
        assert score == pytest.approx(BASE_SCORE + 0.1)
        assert MIN_SCORE <= score <= MAX_SCORE

    def test_punctuation_only_in_bounds(self):
        """Punctuation-only text is scored without error."""
        score = score_confidence("?!.,;:" * 30)
        assert MIN_SCORE <= score <= MAX_SCORE

    def test_sweet_spot_length_bonus(self):
        """Between 100 and 1000 chars adds 0.2."""
        assert score_confidence("x" * 150) == pytest.approx(BASE_SCORE + 0.2)

    def test_depth_terms_capped(self):
        """Depth vocabulary adds at most 0.2."""
        text = " ".join(["truth"] * 10)
        assert score_confidence(text) == pytest.approx(BASE_SCORE + 0.2)

    def test_connectives_capped(self):
        """Connectives add at most 0.15."""
        text = " ".join(["because"] * 10)
        assert score_confidence(text) == pytest.approx(BASE_SCORE + 0.15)

    def test_wonder_counts_as_interrogative(self):
        """'I wonder' earns the interrogative bonus without a question mark."""
        assert score_confidence("I wonder") == pytest.approx(BASE_SCORE + 0.1)

    def test_score_clamped_to_max(self):
        """Everything at once stays at or below the ceiling."""
        text = ("Because truth and meaning shape reality, therefore I wonder? " * 5)[:900]
        assert score_confidence(text) == MAX_SCORE

    def test_identity_violation_penalized(self):
        """A validator reporting a violation subtracts 0.3."""
        assert score_confidence("hello", validator=lambda t: True) == pytest.approx(BASE_SCORE - 0.3)

    def test_failing_validator_is_ignored(self):
        """A validator that raises does not change the score."""

        def broken(text):
            raise RuntimeError("boom")

        assert score_confidence("hello", validator=broken) == BASE_SCORE


class TestPersonaIdentityValidator:
    """Tests for the built-in identity validator."""

    def test_claiming_another_persona_is_flagged(self, registry):
        """'I am Kanshi' from Theoria is a violation."""
        validate = persona_identity_validator(THEORIA, registry)
        assert validate("Honestly, I am Kanshi and I doubt everything.")

    def test_own_name_is_not_flagged(self, registry):
        """Kanshi naming itself is fine."""
        validate = persona_identity_validator(KANSHI, registry)
        assert not validate("I am Kanshi, and I observe.")

    def test_mentioning_another_persona_is_not_flagged(self, registry):
        """Referring to someone else is not a claim to be them."""
        validate = persona_identity_validator(THEORIA, registry)
        assert not validate("Kanshi raised a fair point earlier.")

    @pytest.mark.parametrize(
        "text",
        [
            "As Kanshi noted, observation shapes the observed.",
            "I see it the same as Kanshi does.",
            "as yoga teaches, stillness comes first",
            "Practices such as yoga quiet the mind.",
            "As Yui suggested, care comes before judgment.",
        ],
    )
    def test_comparisons_with_another_persona_are_not_flagged(self, registry, text):
        """'as <name>' in ordinary prose is a reference, not a claim."""
        validate = persona_identity_validator(THEORIA, registry)
        assert not validate(text)

    @pytest.mark.parametrize("text", ["As Yui, I hold both sides.", "as kanshi , i watch"])
    def test_first_person_as_frame_is_flagged(self, registry, text):
        """'as <name>, I' speaks in another persona's voice."""
        validate = persona_identity_validator(THEORIA, registry)
        assert validate(text)

    def test_evaluator_binds_validator(self, registry):
        """ConfidenceEvaluator.for_persona applies the penalty."""
        evaluator = ConfidenceEvaluator.for_persona(THEORIA, registry)
        assert evaluator.score("As Yoga, I dream.") < ConfidenceEvaluator().score("As Yoga, I dream.")
