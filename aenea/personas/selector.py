"""Persona selection: which two advisory personas join a cycle.

The optimal persona is the one whose strengths suit the question's
category. The contrasting persona is its designated opposite, so every
cycle hears at least one dissenting advisory voice.

Both tables are plain data checked by ``validate_selection_tables`` when
the engine starts, so a typo surfaces as a configuration error instead of
a silent fallback to the default pair.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from aenea.categories import QuestionCategory
from aenea.exceptions import PersonaConfigurationError
from aenea.personas.registry import EIRO, HEKITO, KANSHI, YOGA, YUI, PersonaRegistry

logger = logging.getLogger(__name__)


OPTIMAL_PERSONA_BY_CATEGORY: dict[str, str] = {
    QuestionCategory.EXISTENTIAL.value: EIRO,
    QuestionCategory.EPISTEMOLOGICAL.value: KANSHI,
    QuestionCategory.CONSCIOUSNESS.value: EIRO,
    QuestionCategory.ETHICAL.value: YUI,
    QuestionCategory.CREATIVE.value: YOGA,
    QuestionCategory.METACOGNITIVE.value: KANSHI,
    QuestionCategory.TEMPORAL.value: HEKITO,
    QuestionCategory.PARADOXICAL.value: YOGA,
    QuestionCategory.ONTOLOGICAL.value: EIRO,
}

CONTRASTING_PERSONA: dict[str, str] = {
    EIRO: YOGA,
    HEKITO: YUI,
    KANSHI: YUI,
    YOGA: EIRO,
    YUI: KANSHI,
}

# Used when the category is not in the table
DEFAULT_OPTIMAL_PERSONA = EIRO
DEFAULT_CONTRASTING_PERSONA = KANSHI


@dataclass(frozen=True)
class PersonaSelection:
    """Advisory personas chosen for one question."""

    optimal: str
    contrasting: str
    category_known: bool = True

    def as_tuple(self) -> tuple[str, str]:
        return (self.optimal, self.contrasting)

    def to_dict(self) -> dict:
        return {
            "optimal": self.optimal,
            "contrasting": self.contrasting,
            "category_known": self.category_known,
        }


def select_personas(
    category: str,
    question: str = "",
    optimal_table: Optional[Mapping[str, str]] = None,
    contrast_table: Optional[Mapping[str, str]] = None,
) -> PersonaSelection:
    """Pick the optimal and contrasting advisory persona for a category.

    Never raises. Unknown categories get the default pair.

    Args:
        category: Question category (any string)
        question: The question text, used only for log context
        optimal_table: Override for the category table
        contrast_table: Override for the contrast table

    Returns:
        PersonaSelection whose two ids always differ
    """
    optimal_table = OPTIMAL_PERSONA_BY_CATEGORY if optimal_table is None else optimal_table
    contrast_table = CONTRASTING_PERSONA if contrast_table is None else contrast_table

    key = str(category).strip().lower() if category is not None else ""
    optimal = optimal_table.get(key)
    if optimal is None:
        logger.info(
            f"Unmapped category '{category}', using default personas "
            f"({DEFAULT_OPTIMAL_PERSONA}, {DEFAULT_CONTRASTING_PERSONA}) "
            f"for question: {question[:60]!r}"
        )
        return PersonaSelection(
            optimal=DEFAULT_OPTIMAL_PERSONA,
            contrasting=DEFAULT_CONTRASTING_PERSONA,
            category_known=False,
        )

    contrasting = contrast_table.get(optimal, DEFAULT_CONTRASTING_PERSONA)
    if contrasting == optimal:
        # Only reachable with a bad override table
        if optimal != DEFAULT_CONTRASTING_PERSONA:
            contrasting = DEFAULT_CONTRASTING_PERSONA
        else:
            contrasting = DEFAULT_OPTIMAL_PERSONA

    logger.debug(f"Selected personas for {key}: optimal={optimal}, contrasting={contrasting}")
    return PersonaSelection(optimal=optimal, contrasting=contrasting)


def validate_selection_tables(
    registry: PersonaRegistry,
    optimal_table: Optional[Mapping[str, str]] = None,
    contrast_table: Optional[Mapping[str, str]] = None,
) -> None:
    """Check the selection tables against the registry.

    Raises:
        PersonaConfigurationError: If a category is missing or maps to an
            unknown persona, a contrast entry references an unknown persona
            or itself, or an advisory persona is absent from the contrast table
    """
    optimal_table = OPTIMAL_PERSONA_BY_CATEGORY if optimal_table is None else optimal_table
    contrast_table = CONTRASTING_PERSONA if contrast_table is None else contrast_table

    problems: list[str] = []

    for category in QuestionCategory:
        persona_id = optimal_table.get(category.value)
        if persona_id is None:
            problems.append(f"category '{category.value}' has no optimal persona")
        elif persona_id not in registry:
            problems.append(f"category '{category.value}' maps to unknown persona '{persona_id}'")

    for optimal, contrasting in contrast_table.items():
        for persona_id in (optimal, contrasting):
            if persona_id not in registry:
                problems.append(f"contrast table references unknown persona '{persona_id}'")
        if optimal == contrasting:
            problems.append(f"persona '{optimal}' contrasts with itself")

    in_contrast = set(contrast_table) | set(contrast_table.values())
    for profile in registry.advisory_personas():
        if profile.id not in in_contrast:
            problems.append(f"advisory persona '{profile.id}' missing from contrast table")

    for persona_id in (DEFAULT_OPTIMAL_PERSONA, DEFAULT_CONTRASTING_PERSONA):
        if persona_id not in registry:
            problems.append(f"default persona '{persona_id}' is not registered")

    if problems:
        raise PersonaConfigurationError("; ".join(problems))
