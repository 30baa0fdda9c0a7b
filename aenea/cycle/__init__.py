"""Thought cycles: records, stages and the orchestrator that runs them."""

from aenea.cycle.categorizer import categorize_question
from aenea.cycle.orchestrator import CycleOrchestrator, OpenGate, StageGate
from aenea.cycle.schemas import (
    AuditResult,
    Critique,
    CycleStatus,
    Documentation,
    Reflection,
    RiskLevel,
    Synthesis,
    Thought,
    ThoughtCycle,
    Trigger,
    TriggerSource,
    UnresolvedIdea,
)
from aenea.cycle.stage import (
    PIPELINE_ORDER,
    STAGE_CONFIGS,
    ExecutionMode,
    ExecutionPlan,
    Stage,
    StageConfig,
    StageStatus,
    build_execution_plan,
)
from aenea.cycle.triggers import TriggerGenerator

__all__ = [
    "categorize_question",
    "CycleOrchestrator",
    "OpenGate",
    "StageGate",
    "AuditResult",
    "Critique",
    "CycleStatus",
    "Documentation",
    "Reflection",
    "RiskLevel",
    "Synthesis",
    "Thought",
    "ThoughtCycle",
    "Trigger",
    "TriggerSource",
    "UnresolvedIdea",
    "PIPELINE_ORDER",
    "STAGE_CONFIGS",
    "ExecutionMode",
    "ExecutionPlan",
    "Stage",
    "StageConfig",
    "StageStatus",
    "build_execution_plan",
    "TriggerGenerator",
]
