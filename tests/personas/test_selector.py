"""Tests for persona registry and advisory persona selection."""

import asyncio

import pytest

from aenea.categories import QuestionCategory
from aenea.exceptions import PersonaConfigurationError, UnknownPersonaError
from aenea.personas.registry import (
    EIRO,
    HEKITO,
    KANSHI,
    YOGA,
    YUI,
    PersonaProfile,
    PersonaRegistry,
    PersonaRole,
)
from aenea.personas.selector import (
    CONTRASTING_PERSONA,
    OPTIMAL_PERSONA_BY_CATEGORY,
    select_personas,
    validate_selection_tables,
)


class TestPersonaRegistry:
    """Tests for the static persona registry."""

    def test_default_registry_has_three_core_and_five_advisory(self, registry):
        """Should ship the three core voices and five advisors."""
        assert len(registry.core_personas()) == 3
        assert {p.id for p in registry.advisory_personas()} == {EIRO, HEKITO, KANSHI, YOGA, YUI}

    def test_get_unknown_raises(self, registry):
        """Should raise UnknownPersonaError, which is also a KeyError."""
        with pytest.raises(UnknownPersonaError) as exc:
            registry.get("nobody-001")
        assert isinstance(exc.value, KeyError)
        assert "nobody-001" in str(exc.value)

    def test_duplicate_ids_rejected(self):
        """Should refuse two profiles with the same id."""
        profile = PersonaProfile(
            id="x", display_name="X", role=PersonaRole.CORE,
            personality="", tone="", communication_style="", approach="",
        )
        with pytest.raises(PersonaConfigurationError):
            PersonaRegistry([profile, profile])

    def test_registry_needs_advisory_persona(self):
        """Should refuse a registry with no advisory persona."""
        core = PersonaProfile(
            id="x", display_name="X", role=PersonaRole.CORE,
            personality="", tone="", communication_style="", approach="",
        )
        with pytest.raises(PersonaConfigurationError):
            PersonaRegistry([core])

    def test_system_prompt_names_persona(self, registry):
        """System prompt should open with the display name."""
        prompt = registry.get(KANSHI).system_prompt()
        assert prompt.startswith("You are Kanshi.")


class TestSelectPersonas:
    """Tests for optimal/contrasting selection."""

    @pytest.mark.parametrize("category", list(QuestionCategory))
    def test_every_category_yields_distinct_known_personas(self, registry, category):
        """Each of the nine categories maps to two different registered personas."""
        selection = select_personas(category.value, "q")
        assert selection.optimal in registry
        assert selection.contrasting in registry
        assert selection.optimal != selection.contrasting
        assert selection.category_known

    def test_ethical_selects_yui_and_kanshi(self):
        """Ethical questions go to Yui, contrasted by Kanshi."""
        assert select_personas("ethical", "Is lying ever right?").as_tuple() == (YUI, KANSHI)

    def test_unknown_category_uses_default_pair(self):
        """Unmapped categories fall back to Eiro and Kanshi."""
        selection = select_personas("culinary", "What is soup?")
        assert selection.as_tuple() == (EIRO, KANSHI)
        assert not selection.category_known

    def test_unknown_category_is_deterministic(self):
        """Repeated calls with the same unknown category agree."""
        results = {select_personas("unknown", "q").as_tuple() for _ in range(20)}
        assert len(results) == 1

    def test_none_category_does_not_raise(self):
        """The selector is total."""
        assert select_personas(None, "q").as_tuple() == (EIRO, KANSHI)

    def test_category_is_case_insensitive(self):
        """Category keys are normalized."""
        assert select_personas(" Creative ", "q").optimal == YOGA

    def test_optimal_outside_contrast_table_falls_back(self):
        """An optimal persona missing from the contrast table is contrasted by Kanshi."""
        selection = select_personas("temporal", "q", contrast_table={})
        assert selection.as_tuple() == (HEKITO, KANSHI)

    def test_self_contrast_in_override_is_avoided(self):
        """Even a bad override never returns the same persona twice."""
        selection = select_personas("epistemological", "q", contrast_table={KANSHI: KANSHI})
        assert selection.optimal == KANSHI
        assert selection.contrasting != KANSHI

    @pytest.mark.asyncio
    async def test_concurrent_calls_agree(self):
        """Concurrent callers get consistent results."""

        async def pick(category):
            await asyncio.sleep(0)
            return select_personas(category, "q").as_tuple()

        results = await asyncio.gather(*(pick("paradoxical") for _ in range(10)))
        assert set(results) == {(YOGA, EIRO)}


class TestValidateSelectionTables:
    """Tests for startup validation of the selection tables."""

    def test_default_tables_are_valid(self, registry):
        """Shipped tables pass validation."""
        validate_selection_tables(registry)

    def test_unknown_optimal_persona_rejected(self, registry):
        """A category mapped to an unregistered id is a configuration error."""
        table = dict(OPTIMAL_PERSONA_BY_CATEGORY, ethical="ghost-001")
        with pytest.raises(PersonaConfigurationError, match="ghost-001"):
            validate_selection_tables(registry, optimal_table=table)

    def test_self_referential_contrast_rejected(self, registry):
        """A persona contrasting with itself is rejected."""
        table = dict(CONTRASTING_PERSONA, **{YUI: YUI})
        with pytest.raises(PersonaConfigurationError, match="contrasts with itself"):
            validate_selection_tables(registry, contrast_table=table)

    def test_advisory_persona_missing_from_contrast_table(self, registry):
        """Every advisory persona must appear in the contrast table."""
        table = {EIRO: YOGA, YOGA: EIRO}
        with pytest.raises(PersonaConfigurationError, match="missing from contrast table"):
            validate_selection_tables(registry, contrast_table=table)
