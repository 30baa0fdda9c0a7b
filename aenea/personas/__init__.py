"""Reasoning personas and the rules that choose them."""

from aenea.personas.registry import (
    DEFAULT_PERSONAS,
    EIRO,
    HEKITO,
    KANSHI,
    KINESIS,
    PATHIA,
    THEORIA,
    YOGA,
    YUI,
    PersonaProfile,
    PersonaRegistry,
    PersonaRole,
)
from aenea.personas.selector import (
    CONTRASTING_PERSONA,
    DEFAULT_CONTRASTING_PERSONA,
    DEFAULT_OPTIMAL_PERSONA,
    OPTIMAL_PERSONA_BY_CATEGORY,
    PersonaSelection,
    select_personas,
    validate_selection_tables,
)

__all__ = [
    "DEFAULT_PERSONAS",
    "EIRO",
    "HEKITO",
    "KANSHI",
    "KINESIS",
    "PATHIA",
    "THEORIA",
    "YOGA",
    "YUI",
    "PersonaProfile",
    "PersonaRegistry",
    "PersonaRole",
    "CONTRASTING_PERSONA",
    "DEFAULT_CONTRASTING_PERSONA",
    "DEFAULT_OPTIMAL_PERSONA",
    "OPTIMAL_PERSONA_BY_CATEGORY",
    "PersonaSelection",
    "select_personas",
    "validate_selection_tables",
]
