"""Control loop: cycle admission, dormancy and sleep."""

from aenea.scheduler.scheduler import ConsciousnessScheduler, ConsciousnessState, SchedulerSession
from aenea.scheduler.state import (
    VALID_TRANSITIONS,
    SchedulerStateMachine,
    SchedulerStatus,
    StatusTransition,
)

__all__ = [
    "ConsciousnessScheduler",
    "ConsciousnessState",
    "SchedulerSession",
    "VALID_TRANSITIONS",
    "SchedulerStateMachine",
    "SchedulerStatus",
    "StatusTransition",
]
