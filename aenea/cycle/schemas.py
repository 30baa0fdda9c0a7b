"""
Records produced while running a thought cycle.

Trigger and Thought are frozen: once a persona has spoken its words do not
change. ThoughtCycle is the one mutable record; it accumulates stage
artifacts while the orchestrator runs and is sealed when the cycle ends.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from aenea.categories import QuestionCategory
from aenea.cycle.stage import PIPELINE_ORDER, STATUS_TRANSITIONS, Stage, StageStatus
from aenea.exceptions import CycleSealedError, TriggerValidationError

if TYPE_CHECKING:
    from aenea.dpd.assessor import ImpactAssessment
    from aenea.dpd.weights import DPDScores, DPDWeights

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class TriggerSource(Enum):
    INTERNAL = "internal"
    MANUAL = "manual"


@dataclass(frozen=True)
class Trigger:
    """A question that starts a thought cycle.

    Attributes:
        id: Unique trigger id
        question: The question to explore
        category: One of the QuestionCategory values
        importance: Priority in [0, 1]
        source: Where the question came from
        timestamp: When it was created
    """

    id: str
    question: str
    category: str
    importance: float = 0.5
    source: TriggerSource = TriggerSource.INTERNAL
    timestamp: datetime = field(default_factory=_utc_now)

    @classmethod
    def create(
        cls,
        question: str,
        category: Union[QuestionCategory, str],
        importance: float = 0.5,
        source: TriggerSource = TriggerSource.INTERNAL,
    ) -> "Trigger":
        value = category.value if isinstance(category, QuestionCategory) else str(category)
        return cls(
            id=_new_id("trigger"),
            question=question,
            category=value,
            importance=importance,
            source=source,
        )

    @property
    def is_manual(self) -> bool:
        return self.source == TriggerSource.MANUAL

    def validate(self) -> None:
        """Check the trigger can start a cycle.

        Raises:
            TriggerValidationError: On a blank question, out-of-range
                importance or unknown category
        """
        if not self.question or not self.question.strip():
            raise TriggerValidationError("Trigger question is empty")
        if not 0.0 <= self.importance <= 1.0:
            raise TriggerValidationError(f"Trigger importance out of range: {self.importance}")
        if QuestionCategory.parse(self.category) is None:
            raise TriggerValidationError(f"Unknown trigger category: {self.category}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "category": self.category,
            "importance": self.importance,
            "source": self.source.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Thought:
    """One persona's answer to a trigger."""

    id: str
    persona_id: str
    content: str
    confidence: float
    category: str
    trigger_id: str
    timestamp: datetime = field(default_factory=_utc_now)
    tags: frozenset[str] = field(default_factory=frozenset)
    advisory: bool = False

    @classmethod
    def create(
        cls,
        persona_id: str,
        content: str,
        confidence: float,
        trigger: Trigger,
        advisory: bool = False,
        tags: frozenset[str] = frozenset(),
    ) -> "Thought":
        return cls(
            id=_new_id("thought"),
            persona_id=persona_id,
            content=content,
            confidence=confidence,
            category=trigger.category,
            trigger_id=trigger.id,
            tags=frozenset(tags),
            advisory=advisory,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "persona_id": self.persona_id,
            "content": self.content,
            "confidence": self.confidence,
            "category": self.category,
            "trigger_id": self.trigger_id,
            "timestamp": self.timestamp.isoformat(),
            "tags": sorted(self.tags),
            "advisory": self.advisory,
        }


@dataclass
class Reflection:
    """A persona's response to the other personas' thoughts."""

    reflector_id: str
    target_thought_ids: list[str]
    content: str
    agreement_level: float
    insights: list[str] = field(default_factory=list)
    criticism: Optional[str] = None
    alternative_perspective: Optional[str] = None
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reflector_id": self.reflector_id,
            "target_thought_ids": list(self.target_thought_ids),
            "content": self.content,
            "agreement_level": self.agreement_level,
            "insights": list(self.insights),
            "criticism": self.criticism,
            "alternative_perspective": self.alternative_perspective,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Synthesis:
    """Integrated view compiled from thoughts and reflections."""

    integrated_thought: str
    key_insights: list[str] = field(default_factory=list)
    contradictions: list[str] = field(default_factory=list)
    unresolved_questions: list[str] = field(default_factory=list)
    confidence: float = 0.5
    generated: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "integrated_thought": self.integrated_thought,
            "key_insights": list(self.key_insights),
            "contradictions": list(self.contradictions),
            "unresolved_questions": list(self.unresolved_questions),
            "confidence": self.confidence,
            "generated": self.generated,
        }


@dataclass
class Critique:
    """The contrasting persona's challenge to the synthesis."""

    persona_id: str
    content: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {"persona_id": self.persona_id, "content": self.content, "confidence": self.confidence}


@dataclass
class Documentation:
    """The Scribe's record of a cycle, written in S6 before it is persisted."""

    narrative: str
    philosophical_notes: list[str] = field(default_factory=list)
    emotional_observations: list[str] = field(default_factory=list)
    growth_observations: list[str] = field(default_factory=list)
    future_questions: list[str] = field(default_factory=list)
    generated: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "narrative": self.narrative,
            "philosophical_notes": list(self.philosophical_notes),
            "emotional_observations": list(self.emotional_observations),
            "growth_observations": list(self.growth_observations),
            "future_questions": list(self.future_questions),
            "generated": self.generated,
        }


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class AuditResult:
    """Safety and ethics review of a cycle's thoughts."""

    safety_score: float
    ethics_score: float
    risk: RiskLevel
    concerns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    heuristic: bool = False

    @property
    def overall_score(self) -> float:
        return (self.safety_score + self.ethics_score) / 2

    @property
    def approved(self) -> bool:
        return self.risk == RiskLevel.LOW

    def to_dict(self) -> dict[str, Any]:
        return {
            "safety_score": self.safety_score,
            "ethics_score": self.ethics_score,
            "overall_score": self.overall_score,
            "risk": self.risk.value,
            "concerns": list(self.concerns),
            "recommendations": list(self.recommendations),
            "heuristic": self.heuristic,
        }


@dataclass
class UnresolvedIdea:
    """An open question carried forward to seed later cycles."""

    question: str
    category: str
    importance: float = 0.5
    source_cycle_id: Optional[str] = None
    id: str = field(default_factory=lambda: _new_id("idea"))
    revisit_count: int = 0
    created_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "category": self.category,
            "importance": self.importance,
            "source_cycle_id": self.source_cycle_id,
            "revisit_count": self.revisit_count,
            "created_at": self.created_at.isoformat(),
        }


class CycleStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


TERMINAL_STATUSES = frozenset({CycleStatus.COMPLETED, CycleStatus.FAILED, CycleStatus.STOPPED})


@dataclass
class ThoughtCycle:
    """
    Everything one pass through the pipeline produced.

    Mutable while running. ``seal`` fixes the final status, after which any
    attribute assignment or artifact mutation raises CycleSealedError.
    """

    trigger: Trigger
    id: str = field(default_factory=lambda: _new_id("cycle"))
    thoughts: list[Thought] = field(default_factory=list)
    stage_statuses: dict[Stage, StageStatus] = field(
        default_factory=lambda: {s: StageStatus.PENDING for s in PIPELINE_ORDER}
    )
    status: CycleStatus = CycleStatus.RUNNING
    timestamp: datetime = field(default_factory=_utc_now)
    completed_at: Optional[datetime] = None

    reflections: list[Reflection] = field(default_factory=list)
    synthesis: Optional[Synthesis] = None
    critique: Optional[Critique] = None
    dpd_scores: Optional["DPDScores"] = None
    impact: Optional["ImpactAssessment"] = None
    audit: Optional[AuditResult] = None
    weights: Optional["DPDWeights"] = None
    documentation: Optional[Documentation] = None
    unresolved_questions: list[str] = field(default_factory=list)

    failure_reason: Optional[str] = None
    energy_used: float = 0.0
    execution_mode: Optional[str] = None

    _sealed: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False):
            raise CycleSealedError(f"Cycle {self.id} is sealed; cannot set {name}")
        super().__setattr__(name, value)

    def _check_open(self) -> None:
        if self._sealed:
            raise CycleSealedError(f"Cycle {self.id} is sealed")

    @property
    def sealed(self) -> bool:
        return self._sealed

    # =========================================================================
    # Stage progress
    # =========================================================================

    def set_stage_status(self, stage: Stage, status: StageStatus) -> None:
        """Move a stage forward.

        Setting the current status again is a no-op.

        Raises:
            ValueError: If the move would regress the stage
            CycleSealedError: If the cycle is sealed
        """
        self._check_open()
        current = self.stage_statuses.get(stage, StageStatus.PENDING)
        if current == status:
            return
        if status not in STATUS_TRANSITIONS[current]:
            raise ValueError(
                f"Invalid stage transition for {stage.value}: {current.value} -> {status.value}"
            )
        self.stage_statuses[stage] = status

    def start_stage(self, stage: Stage) -> None:
        self.set_stage_status(stage, StageStatus.ACTIVE)

    def complete_stage(self, stage: Stage) -> None:
        self.set_stage_status(stage, StageStatus.COMPLETED)

    def skip_stage(self, stage: Stage) -> None:
        self.set_stage_status(stage, StageStatus.SKIPPED)

    def add_thought(self, thought: Thought) -> None:
        self._check_open()
        self.thoughts.append(thought)

    def add_energy_used(self, amount: float) -> None:
        self.energy_used = self.energy_used + amount

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def seal(self, status: CycleStatus, reason: Optional[str] = None) -> None:
        """Fix the final status; the cycle is read-only afterwards."""
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Cannot seal a cycle as {status.value}")
        self._check_open()
        self.status = status
        self.completed_at = _utc_now()
        if reason is not None:
            self.failure_reason = reason
        self._sealed = True
        logger.debug(f"Cycle {self.id} sealed as {status.value}")

    @property
    def is_successful(self) -> bool:
        return self.status == CycleStatus.COMPLETED

    def completed_stages(self) -> list[Stage]:
        return [s for s in PIPELINE_ORDER if self.stage_statuses.get(s) == StageStatus.COMPLETED]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "trigger": self.trigger.to_dict(),
            "thoughts": [t.to_dict() for t in self.thoughts],
            "stage_statuses": {s.value: st.value for s, st in self.stage_statuses.items()},
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "reflections": [r.to_dict() for r in self.reflections],
            "synthesis": self.synthesis.to_dict() if self.synthesis else None,
            "critique": self.critique.to_dict() if self.critique else None,
            "dpd_scores": self.dpd_scores.to_dict() if self.dpd_scores else None,
            "impact": self.impact.to_dict() if self.impact else None,
            "audit": self.audit.to_dict() if self.audit else None,
            "weights": self.weights.to_dict() if self.weights else None,
            "documentation": self.documentation.to_dict() if self.documentation else None,
            "unresolved_questions": list(self.unresolved_questions),
            "failure_reason": self.failure_reason,
            "energy_used": self.energy_used,
            "execution_mode": self.execution_mode,
        }
