"""
Consciousness Scheduler: admission, dormancy and sleep.

Two background tasks run while the scheduler is started:

    heartbeat   recover energy for the elapsed wall time, then go dormant
                below ``dormancy_floor`` or wake above ``wake_threshold``
    cycle loop  admit a cycle, pick a trigger (a queued manual question
                wins over the internal generator), run it, wait

A cycle is admitted only while the status is active, the session is not
paused and no other cycle holds the cycle lock. Sleep takes the same lock,
so it starts only after an in-flight cycle has finished. Pause and stop
are cooperative: the orchestrator consults the session before each stage
and in-flight persona calls are never cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional

from pydantic import BaseModel, Field

from aenea.cycle.categorizer import categorize_question
from aenea.cycle.orchestrator import CycleOrchestrator
from aenea.cycle.schemas import CycleStatus, ThoughtCycle, Trigger, TriggerSource
from aenea.cycle.triggers import TriggerGenerator
from aenea.energy.manager import EnergyManager
from aenea.events import (
    ConsciousnessAwakened,
    ConsciousnessDormant,
    CycleProcessingChanged,
    EnergyUpdated,
    ManualTriggerQueued,
    SleepStarted,
    TriggerGenerated,
)
from aenea.scheduler.state import SchedulerStateMachine, SchedulerStatus
from aenea.sleep.manager import SleepManager, SleepSession

if TYPE_CHECKING:
    from aenea.config.settings import AeneaSettings
    from aenea.events import ConsciousnessEvent, EventBus
    from aenea.interfaces import Storage, TextGenerator
    from aenea.personas.registry import PersonaRegistry

logger = logging.getLogger(__name__)

# Persisted weight versions loaded on start
WEIGHT_RESTORE_LIMIT = 1000


class SchedulerSession:
    """Pause/stop control for one run of the scheduler.

    Handed to the orchestrator as its stage gate.
    """

    def __init__(self) -> None:
        self._resume = asyncio.Event()
        self._resume.set()
        self.stop_requested = False
        self.started_at = datetime.now(timezone.utc)

    @property
    def paused(self) -> bool:
        return not self._resume.is_set()

    def pause(self) -> None:
        self._resume.clear()

    def resume(self) -> None:
        self._resume.set()

    def request_stop(self) -> None:
        self.stop_requested = True
        # Release anything blocked on pause so it can observe the stop
        self._resume.set()

    async def wait_for_stage_start(self) -> bool:
        if self.stop_requested:
            return False
        await self._resume.wait()
        return not self.stop_requested


class ConsciousnessState(BaseModel):
    """Read model returned by ``get_state``."""
    is_running: bool
    is_paused: bool
    is_processing_cycle: bool
    status: str
    current_energy: float = Field(..., ge=0.0, description="Energy after clamping")
    energy_level: str
    dpd_weights: dict[str, Any]
    pending_manual_trigger: Optional[str] = None
    statistics: dict[str, Any] = Field(default_factory=dict)


class ConsciousnessScheduler:
    """Owns the control loop around the orchestrator."""

    def __init__(
        self,
        orchestrator: CycleOrchestrator,
        energy: EnergyManager,
        sleep_manager: Optional[SleepManager] = None,
        trigger_generator: Optional[TriggerGenerator] = None,
        event_bus: Optional["EventBus"] = None,
        dormancy_floor: float = 10.0,
        wake_threshold: float = 20.0,
        heartbeat_seconds: float = 5.0,
        cycle_interval_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if wake_threshold <= dormancy_floor:
            raise ValueError(
                f"wake_threshold ({wake_threshold}) must exceed dormancy_floor ({dormancy_floor})"
            )
        self.orchestrator = orchestrator
        self.energy = energy
        self.event_bus = event_bus
        self.sleep_manager = sleep_manager or SleepManager(
            energy=energy,
            storage=orchestrator.storage,
            generator=orchestrator.context.generator,
            event_bus=event_bus,
        )
        self.trigger_generator = trigger_generator or TriggerGenerator(storage=orchestrator.storage)
        self.dormancy_floor = dormancy_floor
        self.wake_threshold = wake_threshold
        self.heartbeat_seconds = heartbeat_seconds
        self.cycle_interval_seconds = cycle_interval_seconds
        self._clock = clock

        self._state = SchedulerStateMachine()
        self.session = SchedulerSession()
        self._cycle_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._pending_trigger: Optional[Trigger] = None
        self._processing = False
        self._last_tick: Optional[float] = None
        self._next_cycle_at: Optional[datetime] = None

        self._heartbeat_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self.sleep_task: Optional[asyncio.Task] = None

        self._stats: dict[str, Any] = {
            "total_cycles": 0,
            "completed_cycles": 0,
            "failed_cycles": 0,
            "stopped_cycles": 0,
            "thoughts_produced": 0,
            "sleep_sessions": 0,
            "failed_sleep_sessions": 0,
            "refused_admissions": 0,
            "last_cycle_id": None,
        }

    @classmethod
    def from_settings(
        cls,
        settings: "AeneaSettings",
        generator: "TextGenerator",
        storage: "Storage",
        event_bus: Optional["EventBus"] = None,
        registry: Optional["PersonaRegistry"] = None,
    ) -> "ConsciousnessScheduler":
        """Wire every component from one settings object."""
        energy = EnergyManager.from_settings(settings)
        orchestrator = CycleOrchestrator.from_settings(
            settings,
            generator=generator,
            storage=storage,
            energy=energy,
            event_bus=event_bus,
            registry=registry,
        )
        return cls(
            orchestrator=orchestrator,
            energy=energy,
            sleep_manager=SleepManager.from_settings(
                settings, energy=energy, storage=storage, generator=generator, event_bus=event_bus
            ),
            trigger_generator=TriggerGenerator(storage=storage, seed=settings.random_seed),
            event_bus=event_bus,
            dormancy_floor=settings.dormancy_floor,
            wake_threshold=settings.wake_threshold,
            heartbeat_seconds=settings.heartbeat_seconds,
            cycle_interval_seconds=settings.cycle_interval_seconds,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def status(self) -> SchedulerStatus:
        return self._state.status

    @property
    def is_running(self) -> bool:
        return self._state.status != SchedulerStatus.STOPPED

    @property
    def is_processing_cycle(self) -> bool:
        return self._processing

    @property
    def pending_trigger(self) -> Optional[Trigger]:
        return self._pending_trigger

    @property
    def statistics(self) -> dict[str, Any]:
        return dict(self._stats)

    @property
    def transitions(self):
        return self._state.history

    async def _emit(self, event: "ConsciousnessEvent") -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self, background: bool = True) -> None:
        """Start the scheduler.

        Args:
            background: Launch the heartbeat and cycle loop tasks. Pass
                False to drive the scheduler with ``tick`` and ``run_once``.
        """
        if self.is_running:
            logger.warning("Scheduler already running")
            return

        self._state.transition_to(SchedulerStatus.ACTIVE, "start", self.energy.current)
        self.session = SchedulerSession()
        self._stop_event = asyncio.Event()
        self._last_tick = self._clock()
        await self._restore_weights()
        await self._evaluate_energy()

        if background:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
            self._cycle_task = asyncio.create_task(self._cycle_loop())
        logger.info(f"Scheduler started at energy {self.energy.current:.1f}")

    async def stop(self) -> None:
        """Stop both loops; an in-flight cycle is sealed as stopped at its next stage."""
        if not self.is_running:
            return

        self.session.request_stop()
        self._stop_event.set()

        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None

        if self._cycle_task:
            try:
                await self._cycle_task
            except asyncio.CancelledError:
                pass
            self._cycle_task = None

        if self.sleep_task and not self.sleep_task.done():
            self.sleep_task.cancel()
            try:
                await self.sleep_task
            except asyncio.CancelledError:
                pass

        self._state.transition_to(SchedulerStatus.STOPPED, "stop", self.energy.current)
        self._next_cycle_at = None
        logger.info("Scheduler stopped")

    def pause(self) -> None:
        """Block new stages and new cycles until ``resume``."""
        self.session.pause()
        logger.info("Scheduler paused")

    def resume(self) -> None:
        self.session.resume()
        logger.info("Scheduler resumed")

    async def _restore_weights(self) -> None:
        try:
            entries = await self.orchestrator.storage.query_dpd_history(WEIGHT_RESTORE_LIMIT, "all")
        except Exception as e:
            logger.warning(f"Could not load DPD weight history: {e}")
            return
        self.orchestrator.evolver.restore(entries)

    # =========================================================================
    # Energy and dormancy
    # =========================================================================

    async def _evaluate_energy(self) -> None:
        current = self.energy.current
        if self.status == SchedulerStatus.ACTIVE and current < self.dormancy_floor:
            self._state.transition_to(SchedulerStatus.DORMANT, "energy below floor", current)
            self.energy.set_dormant(True)
            logger.info(f"Entering dormancy at energy {current:.1f}")
            await self._emit(
                ConsciousnessDormant(reason="energy below dormancy floor", current_energy=current)
            )
        elif self.status == SchedulerStatus.DORMANT and current > self.wake_threshold:
            await self._awaken("energy recovered")

    async def _awaken(self, reason: str) -> None:
        self._state.transition_to(SchedulerStatus.ACTIVE, reason, self.energy.current)
        self.energy.set_dormant(False)
        logger.info(f"Awakened ({reason}) at energy {self.energy.current:.1f}")
        await self._emit(ConsciousnessAwakened(current_energy=self.energy.current))

    async def tick(self, elapsed_seconds: Optional[float] = None) -> SchedulerStatus:
        """One heartbeat: idle recovery, then dormancy/wake evaluation.

        Args:
            elapsed_seconds: Wall time to credit; measured from the last
                tick when omitted

        Returns:
            Status after the tick
        """
        now = self._clock()
        if elapsed_seconds is None:
            elapsed_seconds = now - self._last_tick if self._last_tick is not None else 0.0
        self._last_tick = now

        if self.status in (SchedulerStatus.ACTIVE, SchedulerStatus.DORMANT):
            gained = self.energy.recover_for_elapsed(elapsed_seconds)
            if gained > 0:
                await self._emit(
                    EnergyUpdated(current=self.energy.current, level=self.energy.level().value)
                )
            await self._evaluate_energy()
        return self.status

    async def wake(self) -> bool:
        """Leave dormancy regardless of energy.

        Returns:
            True if the scheduler was dormant
        """
        if self.status != SchedulerStatus.DORMANT:
            logger.debug(f"wake() ignored in status {self.status.value}")
            return False
        await self._awaken("wake command")
        return True

    def deep_rest(self) -> bool:
        return self.energy.deep_rest()

    def recharge(self) -> float:
        return self.energy.recharge()

    # =========================================================================
    # Sleep
    # =========================================================================

    async def enter_sleep(self, reason: str = "manual") -> bool:
        """Switch to sleeping and schedule the session as a task.

        Returns:
            False when the current status cannot enter sleep
        """
        if not self._state.can_transition_to(SchedulerStatus.SLEEPING):
            logger.warning(f"Cannot enter sleep from {self.status.value}")
            return False
        self._state.transition_to(SchedulerStatus.SLEEPING, reason, self.energy.current)
        await self._emit(SleepStarted(reason=reason))
        self.sleep_task = asyncio.create_task(self.run_sleep(reason))
        return True

    async def run_sleep(self, reason: str = "manual") -> SleepSession:
        """Run a sleep session once any in-flight cycle has finished.

        Raises:
            ValueError: If called in a status that cannot sleep
        """
        if self.status != SchedulerStatus.SLEEPING:
            self._state.transition_to(SchedulerStatus.SLEEPING, reason, self.energy.current)
            await self._emit(SleepStarted(reason=reason))

        try:
            async with self._cycle_lock:
                session = await self.sleep_manager.run(reason)
        finally:
            if self.status == SchedulerStatus.SLEEPING:
                self._state.transition_to(SchedulerStatus.ACTIVE, "sleep ended", self.energy.current)
                self.energy.set_dormant(False)

        if session.success:
            self._stats["sleep_sessions"] += 1
        else:
            self._stats["failed_sleep_sessions"] += 1
        return session

    # =========================================================================
    # Manual triggers
    # =========================================================================

    async def submit_manual_trigger(self, question: str, importance: float = 0.8) -> Trigger:
        """Queue a question for the next admitted cycle, replacing any pending one.

        Raises:
            TriggerValidationError: If the question is blank
        """
        question = (question or "").strip()
        trigger = Trigger.create(
            question=question,
            category=categorize_question(question),
            importance=importance,
            source=TriggerSource.MANUAL,
        )
        trigger.validate()

        if self._pending_trigger is not None:
            logger.info(f"Replacing pending manual trigger {self._pending_trigger.id}")
        self._pending_trigger = trigger
        await self._emit(
            ManualTriggerQueued(question=question, estimated_next_cycle=self._estimate_next_cycle())
        )
        logger.info(f"Manual trigger queued ({trigger.category}): {question[:60]!r}")
        return trigger

    def _estimate_next_cycle(self) -> Optional[datetime]:
        if not self.is_running:
            return None
        now = datetime.now(timezone.utc)
        if self._next_cycle_at is None or self._next_cycle_at < now:
            return now
        return self._next_cycle_at

    async def _next_trigger(self) -> Trigger:
        if self._pending_trigger is not None:
            trigger, self._pending_trigger = self._pending_trigger, None
        else:
            trigger = await self.trigger_generator.generate()
        await self._emit(TriggerGenerated(trigger=trigger, source=trigger.source.value))
        return trigger

    # =========================================================================
    # Cycles
    # =========================================================================

    def _refusal(self) -> Optional[str]:
        if not self.is_running:
            return "not running"
        if self.session.paused:
            return "paused"
        if self.status == SchedulerStatus.DORMANT:
            return "dormant"
        if self.status == SchedulerStatus.SLEEPING:
            return "sleeping"
        if self._cycle_lock.locked():
            return "busy"
        return None

    async def run_once(self) -> Optional[ThoughtCycle]:
        """Admit and run one cycle now.

        Returns:
            The sealed cycle, or None when admission was refused
        """
        if self.status == SchedulerStatus.ACTIVE:
            await self._evaluate_energy()
        refusal = self._refusal()
        if refusal is not None:
            self._stats["refused_admissions"] += 1
            logger.debug(f"Cycle admission refused: {refusal}")
            return None

        async with self._cycle_lock:
            trigger = await self._next_trigger()
            self._processing = True
            await self._emit(CycleProcessingChanged(is_processing_cycle=True))
            try:
                cycle = await self.orchestrator.run_cycle(trigger, gate=self.session)
            finally:
                self._processing = False
                await self._emit(CycleProcessingChanged(is_processing_cycle=False))

        self._record_cycle(cycle)
        await self._evaluate_energy()
        return cycle

    def _record_cycle(self, cycle: ThoughtCycle) -> None:
        self._stats["total_cycles"] += 1
        self._stats["last_cycle_id"] = cycle.id
        self._stats["thoughts_produced"] += len(cycle.thoughts)
        if cycle.status == CycleStatus.COMPLETED:
            self._stats["completed_cycles"] += 1
        elif cycle.status == CycleStatus.FAILED:
            self._stats["failed_cycles"] += 1
        elif cycle.status == CycleStatus.STOPPED:
            self._stats["stopped_cycles"] += 1

    # =========================================================================
    # Loops
    # =========================================================================

    async def _wait_or_stop(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _heartbeat_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.sleep(self.heartbeat_seconds)
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Heartbeat error: {e}", exc_info=True)

    async def _cycle_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                cycle = await self.run_once()
                delay = self.cycle_interval_seconds if cycle is not None else self.heartbeat_seconds
                self._next_cycle_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
                await self._wait_or_stop(delay)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Cycle loop error: {e}", exc_info=True)
                await self._wait_or_stop(self.heartbeat_seconds)

    # =========================================================================
    # State
    # =========================================================================

    def get_state(self) -> ConsciousnessState:
        return ConsciousnessState(
            is_running=self.is_running,
            is_paused=self.session.paused,
            is_processing_cycle=self._processing,
            status=self.status.value,
            current_energy=self.energy.current,
            energy_level=self.energy.level().value,
            dpd_weights=self.orchestrator.evolver.current.to_dict(),
            pending_manual_trigger=self._pending_trigger.question if self._pending_trigger else None,
            statistics=self.statistics,
        )
