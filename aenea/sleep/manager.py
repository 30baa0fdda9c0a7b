"""
Sleep sessions: the consolidation mode that restores energy.

A session walks four phases in order, each announced with a
SleepPhaseChanged event and followed by a timed pause:

    REM (25%)                   distill dream patterns from recent thoughts
    Deep Sleep (50%)            consolidate confident thoughts into core beliefs
    Synaptic Pruning (75%)      drop stored thoughts past the age limit
    Emotional Processing (90%)  reframe open tensions into new beliefs

If every phase finishes, energy is reset to max and SleepCompleted is
emitted. If any phase raises, the session stops there, SleepError is
emitted and energy is left untouched.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from aenea.cycle.stages.base import dedupe
from aenea.events import EnergyUpdated, SleepCompleted, SleepError, SleepPhaseChanged
from aenea.exceptions import SleepPhaseError
from aenea.sleep.dreams import DreamPattern, parse_dream_patterns

if TYPE_CHECKING:
    from aenea.config.settings import AeneaSettings
    from aenea.energy.manager import EnergyManager
    from aenea.events import ConsciousnessEvent, EventBus
    from aenea.interfaces import Storage, TextGenerator

logger = logging.getLogger(__name__)

# REM
DREAM_SOURCE_LIMIT = 100
MIN_DREAM_THOUGHTS = 10
DREAM_PROMPT_THOUGHTS = 20

# Deep sleep
BELIEF_CONFIDENCE = 0.75
MIN_CONSOLIDATION_THOUGHTS = 5
BELIEF_LOOKUP_LIMIT = 50

# Pruning
PRUNE_AGE_HOURS = 48.0

# Emotional processing
TENSION_LIMIT = 10

DREAM_SYSTEM_PROMPT = "You are the dreaming mind. Speak in images, briefly."
TENSION_SYSTEM_PROMPT = (
    "You are the unconscious. You hold contradictions together until they become understanding."
)


class SleepPhase(Enum):
    REM = "REM"
    DEEP_SLEEP = "Deep Sleep"
    SYNAPTIC_PRUNING = "Synaptic Pruning"
    EMOTIONAL_PROCESSING = "Emotional Processing"


PHASE_PROGRESS: dict[SleepPhase, int] = {
    SleepPhase.REM: 25,
    SleepPhase.DEEP_SLEEP: 50,
    SleepPhase.SYNAPTIC_PRUNING: 75,
    SleepPhase.EMOTIONAL_PROCESSING: 90,
}


@dataclass
class SleepSession:
    """Record of one sleep, successful or not."""

    reason: str
    energy_before: float
    id: str = field(default_factory=lambda: f"sleep_{uuid.uuid4().hex[:12]}")
    phase: Optional[SleepPhase] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    energy_after: Optional[float] = None
    dreams: list[DreamPattern] = field(default_factory=list)
    log: list[str] = field(default_factory=list)
    stats: dict[str, int] = field(
        default_factory=lambda: {
            "dream_patterns": 0,
            "beliefs_added": 0,
            "thoughts_pruned": 0,
            "tensions_resolved": 0,
        }
    )
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.completed_at is not None and self.error is None

    @property
    def duration(self) -> float:
        """Seconds from start to close, or to now if still open."""
        end = self.completed_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    def close(self, energy_after: float, error: Optional[str] = None) -> None:
        self.completed_at = datetime.now(timezone.utc)
        self.energy_after = energy_after
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "reason": self.reason,
            "phase": self.phase.value if self.phase else None,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration": self.duration,
            "energy_before": self.energy_before,
            "energy_after": self.energy_after,
            "dreams": [d.to_dict() for d in self.dreams],
            "log": list(self.log),
            "stats": dict(self.stats),
            "error": self.error,
            "success": self.success,
        }


class SleepManager:
    """Runs sleep sessions against storage and an optional generator.

    Without a generator the REM and emotional phases have nothing to
    work with and finish empty.
    """

    def __init__(
        self,
        energy: "EnergyManager",
        storage: "Storage",
        generator: Optional["TextGenerator"] = None,
        event_bus: Optional["EventBus"] = None,
        phase_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.energy = energy
        self.storage = storage
        self.generator = generator
        self.event_bus = event_bus
        self.phase_seconds = phase_seconds
        self._sleep = sleep
        self.sessions_completed = 0
        self.sessions_failed = 0

    @classmethod
    def from_settings(
        cls,
        settings: "AeneaSettings",
        energy: "EnergyManager",
        storage: "Storage",
        generator: Optional["TextGenerator"] = None,
        event_bus: Optional["EventBus"] = None,
    ) -> "SleepManager":
        return cls(
            energy=energy,
            storage=storage,
            generator=generator,
            event_bus=event_bus,
            phase_seconds=settings.sleep_phase_seconds,
        )

    async def _emit(self, event: "ConsciousnessEvent") -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event)

    async def _generate(self, prompt: str, system_prompt: str) -> str:
        result = await self.generator.execute(prompt, system_prompt=system_prompt)
        if not result.success:
            raise RuntimeError(result.error or "generation failed")
        return result.content or ""

    # =========================================================================
    # Session
    # =========================================================================

    async def run(self, reason: str) -> SleepSession:
        """Run a full sleep session.

        Returns:
            The closed session; check ``session.success``
        """
        session = SleepSession(reason=reason, energy_before=self.energy.current)
        logger.info(f"Sleep {session.id} starting ({reason}) at energy {session.energy_before:.1f}")

        phases = (
            (SleepPhase.REM, self._rem),
            (SleepPhase.DEEP_SLEEP, self._deep_sleep),
            (SleepPhase.SYNAPTIC_PRUNING, self._synaptic_pruning),
            (SleepPhase.EMOTIONAL_PROCESSING, self._emotional_processing),
        )

        try:
            for phase, handler in phases:
                session.phase = phase
                await self._emit(SleepPhaseChanged(phase=phase.value, progress=PHASE_PROGRESS[phase]))
                session.log.append(f"--- {phase.value} ---")
                try:
                    await handler(session)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    raise SleepPhaseError(phase.value, e) from e
                if self.phase_seconds > 0:
                    await self._sleep(self.phase_seconds)
        except SleepPhaseError as e:
            return await self._fail(session, e)

        self.energy.reset()
        session.log.append(f"Energy recovered: {session.energy_before:.1f} -> {self.energy.current:.1f}")
        session.close(energy_after=self.energy.current)
        self.sessions_completed += 1

        await self._emit(
            EnergyUpdated(current=self.energy.current, level=self.energy.level().value)
        )
        await self._emit(
            SleepCompleted(
                duration=session.duration,
                energy_before=session.energy_before,
                energy_after=self.energy.current,
            )
        )
        await self._record(session)
        logger.info(f"Sleep {session.id} complete: {session.stats}")
        return session

    async def _fail(self, session: SleepSession, error: SleepPhaseError) -> SleepSession:
        logger.error(f"Sleep {session.id} aborted: {error}", exc_info=True)
        session.log.append(f"Aborted: {error}")
        session.close(energy_after=self.energy.current, error=str(error))
        self.sessions_failed += 1
        await self._emit(SleepError(error=str(error)))
        await self._record(session)
        return session

    async def _record(self, session: SleepSession) -> None:
        try:
            await self.storage.record_sleep_session(session)
        except Exception as e:
            logger.warning(f"Could not record sleep session {session.id}: {e}")

    # =========================================================================
    # Phases
    # =========================================================================

    async def _rem(self, session: SleepSession) -> None:
        thoughts = await self.storage.get_significant_thoughts(DREAM_SOURCE_LIMIT)
        if len(thoughts) < MIN_DREAM_THOUGHTS or self.generator is None:
            session.log.append(f"Not enough material for dreams ({len(thoughts)} thoughts)")
            return

        listing = "\n".join(f"- {t.content}" for t in thoughts[:DREAM_PROMPT_THOUGHTS])
        prompt = (
            "Distill three to five dream-like abstract patterns from these thoughts.\n\n"
            f"Thoughts:\n{listing}\n\n"
            "Reply only with a numbered list, one pattern per line, e.g.\n"
            "1. Loneliness and resonance are mirror images; silence is the mother of sound"
        )
        content = await self._generate(prompt, DREAM_SYSTEM_PROMPT)
        dreams = parse_dream_patterns(content, [t.id for t in thoughts[:MIN_DREAM_THOUGHTS]])
        if dreams:
            await self.storage.record_dream_patterns(dreams)
        session.dreams = dreams
        session.stats["dream_patterns"] = len(dreams)
        session.log.append(f"Extracted {len(dreams)} dream patterns")

    async def _deep_sleep(self, session: SleepSession) -> None:
        thoughts = await self.storage.get_significant_thoughts(DREAM_SOURCE_LIMIT)
        confident = [t for t in thoughts if t.confidence >= BELIEF_CONFIDENCE]
        if len(confident) < MIN_CONSOLIDATION_THOUGHTS:
            session.log.append(f"Too few confident thoughts to consolidate ({len(confident)})")
            return

        existing = {
            b.strip().rstrip(".").lower()
            for b in await self.storage.get_core_beliefs(BELIEF_LOOKUP_LIMIT)
        }
        candidates = []
        for thought in sorted(confident, key=lambda t: t.confidence, reverse=True):
            first = thought.content.strip().split(". ")[0].strip().rstrip(".")
            if first and first.lower() not in existing:
                candidates.append(first + ".")
        beliefs = dedupe(candidates)
        if beliefs:
            await self.storage.record_core_beliefs(beliefs)
        session.stats["beliefs_added"] = len(beliefs)
        session.log.append(f"Consolidated {len(confident)} thoughts into {len(beliefs)} beliefs")

    async def _synaptic_pruning(self, session: SleepSession) -> None:
        deleted = await self.storage.prune_thoughts(PRUNE_AGE_HOURS)
        session.stats["thoughts_pruned"] = deleted
        session.log.append(f"Pruned {deleted} thoughts older than {PRUNE_AGE_HOURS:.0f}h")

    async def _emotional_processing(self, session: SleepSession) -> None:
        ideas = await self.storage.get_unresolved_ideas(TENSION_LIMIT)
        if not ideas or self.generator is None:
            session.log.append("No tensions to process")
            return

        listing = "\n".join(f"[{i}] {idea.question}" for i, idea in enumerate(ideas))
        prompt = (
            "These questions remain in tension:\n"
            f"{listing}\n\n"
            "Offer up to three integrated perspectives that hold them together. "
            "Reply only with a numbered list."
        )
        content = await self._generate(prompt, TENSION_SYSTEM_PROMPT)
        resolutions = [d.pattern for d in parse_dream_patterns(content)]
        if resolutions:
            await self.storage.record_core_beliefs(resolutions)
        session.stats["tensions_resolved"] = len(resolutions)
        session.log.append(f"Resolved {len(resolutions)} conceptual tensions")
