"""Typed events emitted by the engine and the bus that delivers them.

Every event kind is a frozen dataclass deriving from ConsciousnessEvent.
Subscribers register for a specific event class (or for everything) and
receive the event object itself, so a renamed or removed event kind fails
at import time rather than silently never firing.

Wire names (the ``type`` key in ``to_dict()``) keep the camelCase names
used by dashboard consumers: stageChanged, agentThought, dpdUpdated, ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional

if TYPE_CHECKING:
    from aenea.cycle.schemas import Trigger
    from aenea.dpd.weights import DPDWeights

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


@dataclass(frozen=True)
class ConsciousnessEvent:
    """Base class for all engine events."""

    event_type: ClassVar[str] = "event"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for transport."""
        payload = {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}
        return {"type": self.event_type, **payload}


@dataclass(frozen=True)
class StageChanged(ConsciousnessEvent):
    event_type: ClassVar[str] = "stageChanged"

    stage: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class StageCompleted(ConsciousnessEvent):
    event_type: ClassVar[str] = "stageCompleted"

    stage: str
    name: Optional[str] = None
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class AgentThought(ConsciousnessEvent):
    event_type: ClassVar[str] = "agentThought"

    agent_name: str
    thought: str
    confidence: float
    advisory: bool = False
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class TriggerGenerated(ConsciousnessEvent):
    event_type: ClassVar[str] = "triggerGenerated"

    trigger: "Trigger"
    source: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ManualTriggerQueued(ConsciousnessEvent):
    event_type: ClassVar[str] = "manualTriggerQueued"

    question: str
    estimated_next_cycle: Optional[datetime] = None
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class DPDUpdated(ConsciousnessEvent):
    event_type: ClassVar[str] = "dpdUpdated"

    weights: "DPDWeights"
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ThoughtCycleCompleted(ConsciousnessEvent):
    event_type: ClassVar[str] = "thoughtCycleCompleted"

    cycle_id: str
    dpd_weights: Optional["DPDWeights"]
    system_stats: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class CycleFailed(ConsciousnessEvent):
    event_type: ClassVar[str] = "cycleFailed"

    cycle_id: str
    reason: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class SleepStarted(ConsciousnessEvent):
    event_type: ClassVar[str] = "sleepStarted"

    reason: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class SleepPhaseChanged(ConsciousnessEvent):
    event_type: ClassVar[str] = "sleepPhaseChanged"

    phase: str
    progress: int
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class SleepCompleted(ConsciousnessEvent):
    event_type: ClassVar[str] = "sleepCompleted"

    duration: float
    energy_before: float
    energy_after: float
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class SleepError(ConsciousnessEvent):
    event_type: ClassVar[str] = "sleepError"

    error: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ConsciousnessDormant(ConsciousnessEvent):
    event_type: ClassVar[str] = "consciousnessDormant"

    reason: str
    current_energy: float
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ConsciousnessAwakened(ConsciousnessEvent):
    event_type: ClassVar[str] = "consciousnessAwakened"

    current_energy: float
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class CycleProcessingChanged(ConsciousnessEvent):
    event_type: ClassVar[str] = "cycleProcessingChanged"

    is_processing_cycle: bool
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class EnergyUpdated(ConsciousnessEvent):
    event_type: ClassVar[str] = "energyUpdated"

    current: float
    level: str
    timestamp: datetime = field(default_factory=_utc_now)


EventHandler = Callable[[ConsciousnessEvent], Any]


class EventBus:
    """Publish/subscribe hub for engine events.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and skipped; it never interrupts delivery to the others or the
    code that emitted the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[Optional[type[ConsciousnessEvent]], EventHandler]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        handler: EventHandler,
        event_type: Optional[type[ConsciousnessEvent]] = None,
    ) -> Callable[[], None]:
        """Register a handler, optionally filtered to one event class.

        Returns:
            A callable that removes the subscription
        """
        entry = (event_type, handler)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    async def emit(self, event: ConsciousnessEvent) -> None:
        """Deliver an event to every matching subscriber."""
        for event_type, handler in list(self._subscribers):
            if event_type is not None and not isinstance(event, event_type):
                continue
            try:
                result = handler(event)
                if hasattr(result, "__await__"):
                    await result
            except Exception as e:
                logger.warning(f"Event handler failed for {event.event_type}: {e}")


__all__ = [
    "ConsciousnessEvent",
    "StageChanged",
    "StageCompleted",
    "AgentThought",
    "TriggerGenerated",
    "ManualTriggerQueued",
    "DPDUpdated",
    "ThoughtCycleCompleted",
    "CycleFailed",
    "SleepStarted",
    "SleepPhaseChanged",
    "SleepCompleted",
    "SleepError",
    "ConsciousnessDormant",
    "ConsciousnessAwakened",
    "CycleProcessingChanged",
    "EnergyUpdated",
    "EventBus",
    "EventHandler",
]
