"""Scheduler status machine.

    stopped -> active
    active  -> dormant | sleeping | stopped
    dormant -> active | sleeping | stopped
    sleeping -> active | stopped

Transitions outside this table raise ValueError.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

TRANSITION_HISTORY_LIMIT = 100


class SchedulerStatus(Enum):
    STOPPED = "stopped"
    ACTIVE = "active"
    DORMANT = "dormant"
    SLEEPING = "sleeping"


VALID_TRANSITIONS: dict[SchedulerStatus, set[SchedulerStatus]] = {
    SchedulerStatus.STOPPED: {SchedulerStatus.ACTIVE},
    SchedulerStatus.ACTIVE: {
        SchedulerStatus.DORMANT,
        SchedulerStatus.SLEEPING,
        SchedulerStatus.STOPPED,
    },
    SchedulerStatus.DORMANT: {
        SchedulerStatus.ACTIVE,
        SchedulerStatus.SLEEPING,
        SchedulerStatus.STOPPED,
    },
    SchedulerStatus.SLEEPING: {SchedulerStatus.ACTIVE, SchedulerStatus.STOPPED},
}


@dataclass
class StatusTransition:
    """Record of a status change.

    Attributes:
        from_status: Status before the change
        to_status: Status after the change
        reason: Why it happened
        energy: Energy at the moment of the change
        timestamp: When it happened
    """

    from_status: SchedulerStatus
    to_status: SchedulerStatus
    reason: str
    energy: Optional[float] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "reason": self.reason,
            "energy": self.energy,
            "timestamp": self.timestamp.isoformat(),
        }


class SchedulerStateMachine:
    """Holds the scheduler status and validates every change."""

    def __init__(self, initial: SchedulerStatus = SchedulerStatus.STOPPED):
        self._status = initial
        self._history: list[StatusTransition] = []

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def history(self) -> list[StatusTransition]:
        return self._history.copy()

    def can_transition_to(self, target: SchedulerStatus) -> bool:
        return target in VALID_TRANSITIONS.get(self._status, set())

    def transition_to(
        self, target: SchedulerStatus, reason: str, energy: Optional[float] = None
    ) -> StatusTransition:
        """Move to ``target``.

        Raises:
            ValueError: If the table does not allow the change
        """
        if not self.can_transition_to(target):
            raise ValueError(
                f"Invalid transition: {self._status.value} -> {target.value}. "
                f"Valid targets: {sorted(s.value for s in VALID_TRANSITIONS.get(self._status, set()))}"
            )
        transition = StatusTransition(
            from_status=self._status, to_status=target, reason=reason, energy=energy
        )
        self._history.append(transition)
        if len(self._history) > TRANSITION_HISTORY_LIMIT:
            self._history = self._history[-TRANSITION_HISTORY_LIMIT:]
        logger.debug(f"Scheduler: {self._status.value} -> {target.value} ({reason})")
        self._status = target
        return transition
