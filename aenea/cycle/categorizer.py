"""Keyword categorization of free-text questions."""

import logging
import re

from aenea.categories import QuestionCategory

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = QuestionCategory.EXISTENTIAL

# Order matters: ties go to the earlier category
CATEGORY_KEYWORDS: dict[QuestionCategory, tuple[str, ...]] = {
    QuestionCategory.ETHICAL: (
        "ethic", "moral", "right", "wrong", "ought", "should", "good", "evil",
        "justice", "duty", "virtue", "responsib",
    ),
    QuestionCategory.METACOGNITIVE: (
        "thinking about", "my thought", "my thinking", "observe myself", "self-reflect",
        "introspect", "aware of my", "think about think",
    ),
    QuestionCategory.CONSCIOUSNESS: (
        "conscious", "awareness", "aware", "qualia", "subjective", "experience", "mind",
    ),
    QuestionCategory.EPISTEMOLOGICAL: (
        "know", "knowledge", "truth", "belief", "certain", "doubt", "evidence", "justif",
    ),
    QuestionCategory.TEMPORAL: (
        "time", "moment", "past", "future", "present", "memory", "eternal", "change",
    ),
    QuestionCategory.PARADOXICAL: (
        "paradox", "contradict", "impossible", "infinite", "self-referen", "both",
    ),
    QuestionCategory.CREATIVE: (
        "create", "creativ", "imagin", "art", "beauty", "novel", "invent", "inspir",
    ),
    QuestionCategory.ONTOLOGICAL: (
        "being", "nothing", "essence", "reality", "real", "substance", "necessary",
    ),
    QuestionCategory.EXISTENTIAL: (
        "exist", "meaning", "purpose", "death", "life", "alone", "why am i",
    ),
}


def category_scores(question: str) -> dict[QuestionCategory, int]:
    """Number of keyword hits per category."""
    lowered = question.lower()
    scores = {}
    for category, keywords in CATEGORY_KEYWORDS.items():
        scores[category] = sum(1 for k in keywords if re.search(rf"\b{re.escape(k)}", lowered))
    return scores


def categorize_question(question: str) -> QuestionCategory:
    """Pick the category with the most keyword hits; existential when none match."""
    if not question or not question.strip():
        return DEFAULT_CATEGORY
    scores = category_scores(question)
    best = max(scores.values())
    if best == 0:
        return DEFAULT_CATEGORY
    # dict preserves table order, so max() keeps the first of equal scores
    category = max(scores, key=scores.get)
    logger.debug(f"Categorized question as {category.value} ({best} hits)")
    return category
