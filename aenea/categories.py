"""Question categories that seed thought cycles."""

from enum import Enum


class QuestionCategory(str, Enum):
    """The nine kinds of question a trigger can carry."""

    EXISTENTIAL = "existential"
    EPISTEMOLOGICAL = "epistemological"
    CONSCIOUSNESS = "consciousness"
    ETHICAL = "ethical"
    CREATIVE = "creative"
    METACOGNITIVE = "metacognitive"
    TEMPORAL = "temporal"
    PARADOXICAL = "paradoxical"
    ONTOLOGICAL = "ontological"

    @classmethod
    def parse(cls, value: str) -> "QuestionCategory | None":
        """Return the matching category, or None for unknown strings."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


KNOWN_CATEGORIES = frozenset(c.value for c in QuestionCategory)
