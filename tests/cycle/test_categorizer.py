"""Tests for keyword question categorization."""

import pytest

from aenea.categories import QuestionCategory
from aenea.cycle.categorizer import categorize_question, category_scores


class TestCategorizeQuestion:
    """Tests for categorize_question."""

    @pytest.mark.parametrize(
        "question,expected",
        [
            ("Is it morally right to lie to a friend?", QuestionCategory.ETHICAL),
            ("What is consciousness and subjective experience?", QuestionCategory.CONSCIOUSNESS),
            ("Can time flow backward in memory?", QuestionCategory.TEMPORAL),
            ("Is a paradox ever resolved?", QuestionCategory.PARADOXICAL),
            ("How can I know anything with certainty?", QuestionCategory.EPISTEMOLOGICAL),
            ("Where does imagination come from?", QuestionCategory.CREATIVE),
        ],
    )
    def test_keyword_categories(self, question, expected):
        assert categorize_question(question) == expected

    @pytest.mark.parametrize("question", ["", "   ", "Banana?"])
    def test_default_is_existential(self, question):
        assert categorize_question(question) == QuestionCategory.EXISTENTIAL

    def test_ties_go_to_earlier_category(self):
        """Ethical comes first in the table."""
        scores = category_scores("Is it wrong to create?")
        assert scores[QuestionCategory.ETHICAL] == scores[QuestionCategory.CREATIVE] == 1
        assert categorize_question("Is it wrong to create?") == QuestionCategory.ETHICAL

    def test_case_insensitive(self):
        assert categorize_question("WHAT IS QUALIA?") == QuestionCategory.CONSCIOUSNESS
