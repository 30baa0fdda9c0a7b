"""
Stage Pipeline Orchestrator.

Runs one thought cycle through the stages in order:

    S0 intake -> S1 individual thought -> S2 mutual reflection + synthesis
    -> S3 critique + DPD scores -> S4 audit -> S5 weight update
    -> S6 scribe + record -> U unresolved questions

The energy level when the cycle starts picks an execution plan; stages
outside the plan are marked skipped. Persona calls inside a stage run
concurrently, and the stage finishes only after all of them return. Energy
and DPD weights are changed here and nowhere else, after each join.

S5 only stages the new weights. S6 writes them before the cycle record,
and that write is what commits them; a cycle that stops or fails earlier
rolls the evolver back. U runs after the commit: a stop request there
skips it, and a storage error there is only logged.

Outcomes:
    completed  S6 ran; the weights and the cycle were persisted
    failed     intake rejected the trigger, no persona produced a thought,
               or a write failed; CycleFailed emitted
    stopped    the gate reported a stop request before S6; nothing
               persisted
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from aenea.cycle.schemas import CycleStatus, ThoughtCycle, Trigger
from aenea.cycle.stage import (
    PIPELINE_ORDER,
    ExecutionPlan,
    Stage,
    build_execution_plan,
    stage_display_name,
)
from aenea.cycle.stages.auditor import AuditorStage
from aenea.cycle.stages.base import StageContext
from aenea.cycle.stages.compiler import CompilerStage
from aenea.cycle.stages.critique import CritiqueStage
from aenea.cycle.stages.individual_thought import IndividualThoughtStage
from aenea.cycle.stages.mutual_reflection import MutualReflectionStage
from aenea.cycle.stages.scribe import ScribeStage
from aenea.cycle.stages.unresolved import UnresolvedStage
from aenea.dpd.assessor import assess_impact, assess_scores
from aenea.dpd.evolver import EvolverCheckpoint, WeightEvolver, WeightSignals
from aenea.energy.manager import EnergyLevel
from aenea.events import (
    CycleFailed,
    DPDUpdated,
    EnergyUpdated,
    StageChanged,
    StageCompleted,
    ThoughtCycleCompleted,
)
from aenea.exceptions import CycleFailure, TriggerValidationError
from aenea.personas.registry import PersonaRegistry
from aenea.personas.selector import select_personas, validate_selection_tables

if TYPE_CHECKING:
    from aenea.config.settings import AeneaSettings
    from aenea.dpd.weights import DPDScores
    from aenea.energy.manager import EnergyManager
    from aenea.events import ConsciousnessEvent, EventBus
    from aenea.interfaces import Storage, TextGenerator

logger = logging.getLogger(__name__)

BELIEF_CONTEXT_LIMIT = 3


@runtime_checkable
class StageGate(Protocol):
    """Consulted before each stage starts."""

    async def wait_for_stage_start(self) -> bool:
        """Block while paused; return False when the cycle should stop."""
        ...


class OpenGate:
    """Gate that never pauses or stops."""

    async def wait_for_stage_start(self) -> bool:
        return True


class CycleOrchestrator:
    """Runs thought cycles against a generator and a storage backend."""

    def __init__(
        self,
        generator: "TextGenerator",
        storage: "Storage",
        registry: Optional[PersonaRegistry] = None,
        evolver: Optional[WeightEvolver] = None,
        energy: Optional["EnergyManager"] = None,
        event_bus: Optional["EventBus"] = None,
        persona_timeout: float = 120.0,
        generators: Optional[dict[str, "TextGenerator"]] = None,
    ):
        self.registry = registry or PersonaRegistry()
        validate_selection_tables(self.registry)

        self.storage = storage
        self.evolver = evolver or WeightEvolver()
        self.energy = energy
        self.event_bus = event_bus

        self.context = StageContext(
            generator=generator,
            registry=self.registry,
            event_bus=event_bus,
            persona_timeout=persona_timeout,
            generators=dict(generators or {}),
        )
        self.individual_thought = IndividualThoughtStage(self.context)
        self.mutual_reflection = MutualReflectionStage(self.context)
        self.compiler = CompilerStage(self.context)
        self.critique = CritiqueStage(self.context)
        self.auditor = AuditorStage(self.context)
        self.scribe = ScribeStage(self.context)
        self.unresolved = UnresolvedStage(storage)

        self._previous_scores: Optional["DPDScores"] = None
        self._staged: Optional[tuple[EvolverCheckpoint, Optional["DPDScores"]]] = None

    @classmethod
    def from_settings(
        cls,
        settings: "AeneaSettings",
        generator: "TextGenerator",
        storage: "Storage",
        energy: Optional["EnergyManager"] = None,
        event_bus: Optional["EventBus"] = None,
        registry: Optional[PersonaRegistry] = None,
    ) -> "CycleOrchestrator":
        return cls(
            generator=generator,
            storage=storage,
            registry=registry,
            evolver=WeightEvolver.from_settings(settings),
            energy=energy,
            event_bus=event_bus,
            persona_timeout=settings.persona_timeout_seconds,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _emit(self, event: "ConsciousnessEvent") -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event)

    def _plan(self) -> ExecutionPlan:
        level = self.energy.level() if self.energy is not None else EnergyLevel.MAXIMUM
        return build_execution_plan(level)

    async def _begin(self, cycle: ThoughtCycle, stage: Stage, gate: StageGate) -> bool:
        if not await gate.wait_for_stage_start():
            return False
        cycle.start_stage(stage)
        await self._emit(StageChanged(stage=stage.value))
        return True

    async def _finish(self, cycle: ThoughtCycle, stage: Stage) -> None:
        cycle.complete_stage(stage)
        await self._emit(StageCompleted(stage=stage.value, name=stage_display_name(stage)))

    async def _spend(
        self, cycle: ThoughtCycle, plan: ExecutionPlan, stage: Stage, units: int = 1
    ) -> None:
        if self.energy is None:
            return
        spent = self.energy.consume(plan.cost(stage, units), activity=stage.value)
        cycle.add_energy_used(spent)
        if spent > 0:
            await self._emit(
                EnergyUpdated(current=self.energy.current, level=self.energy.level().value)
            )

    def _stopped(self, cycle: ThoughtCycle) -> ThoughtCycle:
        self._rollback_weights()
        cycle.seal(CycleStatus.STOPPED, reason="stop requested")
        logger.info(f"Cycle {cycle.id} stopped before completion")
        return cycle

    async def _failed(self, cycle: ThoughtCycle, reason: str) -> ThoughtCycle:
        self._rollback_weights()
        cycle.seal(CycleStatus.FAILED, reason=reason)
        logger.error(f"Cycle {cycle.id} failed: {reason}")
        await self._emit(CycleFailed(cycle_id=cycle.id, reason=reason))
        return cycle

    async def _load_beliefs(self) -> list[str]:
        try:
            return list(await self.storage.get_core_beliefs(BELIEF_CONTEXT_LIMIT))
        except Exception as e:
            logger.warning(f"Could not load core beliefs: {e}")
            return []

    # =========================================================================
    # Cycle
    # =========================================================================

    async def run_cycle(
        self, trigger: Optional[Trigger], gate: Optional[StageGate] = None
    ) -> ThoughtCycle:
        """Run one full thought cycle.

        Never raises for expected failures; inspect ``cycle.status``.

        Args:
            trigger: The question to explore
            gate: Pause/stop control consulted before each stage

        Returns:
            The sealed cycle
        """
        gate = gate or OpenGate()
        if trigger is None:
            trigger = Trigger(id="missing", question="", category="")
        cycle = ThoughtCycle(trigger=trigger)
        plan = self._plan()
        cycle.execution_mode = plan.mode.value
        logger.info(
            f"Cycle {cycle.id} starting ({plan.mode.value} plan, "
            f"energy level {plan.energy_level.value}): {trigger.question[:60]!r}"
        )

        for stage in PIPELINE_ORDER:
            if not plan.includes(stage):
                cycle.skip_stage(stage)

        try:
            completed = await self._run_stages(cycle, plan, gate)
        except (TriggerValidationError, CycleFailure) as e:
            return await self._failed(cycle, str(e))
        except Exception as e:
            logger.error(f"Unexpected error in cycle {cycle.id}: {e}", exc_info=True)
            return await self._failed(cycle, f"unexpected error: {e}")

        if not completed:
            return self._stopped(cycle)

        cycle.seal(CycleStatus.COMPLETED)
        await self._emit(
            ThoughtCycleCompleted(
                cycle_id=cycle.id,
                dpd_weights=self.evolver.current,
                system_stats=self._cycle_stats(cycle),
            )
        )
        logger.info(
            f"Cycle {cycle.id} completed with {len(cycle.thoughts)} thoughts, "
            f"energy used {cycle.energy_used:.2f}"
        )
        return cycle

    async def _run_stages(self, cycle: ThoughtCycle, plan: ExecutionPlan, gate: StageGate) -> bool:
        """Run the planned stages. Returns False if a stop was requested."""
        trigger = cycle.trigger

        # S0: intake
        if not await self._begin(cycle, Stage.INTAKE, gate):
            return False
        trigger.validate()
        selection = select_personas(trigger.category, trigger.question)
        await self._finish(cycle, Stage.INTAKE)

        # S1: individual thought
        if not await self._begin(cycle, Stage.INDIVIDUAL_THOUGHT, gate):
            return False
        beliefs = await self._load_beliefs()
        outcome = await self.individual_thought.run(trigger, selection, beliefs)
        if not outcome.thoughts:
            raise CycleFailure(f"no persona produced a thought ({len(outcome.failed)} failed)")
        for thought in outcome.thoughts:
            cycle.add_thought(thought)
        await self._spend(cycle, plan, Stage.INDIVIDUAL_THOUGHT, units=len(outcome.thoughts))
        await self._finish(cycle, Stage.INDIVIDUAL_THOUGHT)

        # S2: mutual reflection and synthesis
        if plan.includes(Stage.MUTUAL_REFLECTION):
            if not await self._begin(cycle, Stage.MUTUAL_REFLECTION, gate):
                return False
            cycle.reflections = await self.mutual_reflection.run(trigger, cycle.thoughts)
            cycle.synthesis = await self.compiler.run(trigger, cycle.thoughts, cycle.reflections)
            await self._spend(cycle, plan, Stage.MUTUAL_REFLECTION)
            await self._finish(cycle, Stage.MUTUAL_REFLECTION)

        # S3: critique and DPD scores
        if plan.includes(Stage.CRITIQUE):
            if not await self._begin(cycle, Stage.CRITIQUE, gate):
                return False
            if cycle.synthesis is not None:
                cycle.critique = await self.critique.run(
                    trigger, cycle.synthesis, selection.contrasting
                )
            cycle.dpd_scores = assess_scores(cycle.thoughts, cycle.reflections)
            await self._spend(cycle, plan, Stage.CRITIQUE)
            await self._finish(cycle, Stage.CRITIQUE)

        # S4: audit
        if plan.includes(Stage.AUDIT):
            if not await self._begin(cycle, Stage.AUDIT, gate):
                return False
            cycle.audit = await self.auditor.run(cycle.thoughts)
            await self._spend(cycle, plan, Stage.AUDIT)
            await self._finish(cycle, Stage.AUDIT)

        # S5: weight update
        if plan.includes(Stage.WEIGHT_UPDATE):
            if not await self._begin(cycle, Stage.WEIGHT_UPDATE, gate):
                return False
            await self._update_weights(cycle)
            await self._spend(cycle, plan, Stage.WEIGHT_UPDATE)
            await self._finish(cycle, Stage.WEIGHT_UPDATE)

        # S6: scribe and record
        if not await self._begin(cycle, Stage.RECORD, gate):
            return False
        cycle.documentation = await self.scribe.run(
            trigger, cycle.thoughts, cycle.synthesis, cycle.dpd_scores
        )
        if cycle.weights is not None:
            await self.storage.record_dpd_weights(cycle.weights, cycle.weights.version)
            self._staged = None
            await self._emit(DPDUpdated(weights=cycle.weights))
        await self.storage.record_thought_cycle(cycle)
        await self._spend(cycle, plan, Stage.RECORD)
        await self._finish(cycle, Stage.RECORD)

        # U: unresolved questions, after the record is committed
        if plan.includes(Stage.UNRESOLVED):
            if not await self._begin(cycle, Stage.UNRESOLVED, gate):
                logger.info(f"Stop requested after cycle {cycle.id} was recorded, skipping U")
                cycle.skip_stage(Stage.UNRESOLVED)
                return True
            ideas = await self.unresolved.run(cycle)
            cycle.unresolved_questions = [i.question for i in ideas]
            await self._spend(cycle, plan, Stage.UNRESOLVED)
            await self._finish(cycle, Stage.UNRESOLVED)

        return True

    async def _update_weights(self, cycle: ThoughtCycle) -> None:
        scores = cycle.dpd_scores
        if scores is None:
            scores = assess_scores(cycle.thoughts, cycle.reflections, cycle.audit)
            cycle.dpd_scores = scores

        self._staged = (self.evolver.checkpoint(), self._previous_scores)
        paradigm_shift = False
        if cycle.trigger.is_manual:
            cycle.impact = assess_impact(scores, self._previous_scores, cycle.reflections)
            paradigm_shift = cycle.impact.is_paradigm_shift
        self._previous_scores = scores

        cycle.weights = self.evolver.update(
            WeightSignals(
                scores=scores,
                paradigm_shift=paradigm_shift,
                trigger_category=cycle.trigger.category,
            )
        )

    def _rollback_weights(self) -> None:
        """Undo a weight update that S6 never committed."""
        if self._staged is None:
            return
        checkpoint, previous_scores = self._staged
        self._staged = None
        self.evolver.rollback(checkpoint)
        self._previous_scores = previous_scores

    def _cycle_stats(self, cycle: ThoughtCycle) -> dict:
        stats = {
            "thoughts": len(cycle.thoughts),
            "reflections": len(cycle.reflections),
            "energy_used": cycle.energy_used,
            "execution_mode": cycle.execution_mode,
            "dpd_version": self.evolver.version,
        }
        if self.energy is not None:
            stats["energy"] = self.energy.current
            stats["energy_level"] = self.energy.level().value
        return stats
