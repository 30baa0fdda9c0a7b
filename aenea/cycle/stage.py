"""Pipeline stages and the energy-dependent execution plan."""

from dataclasses import dataclass
from enum import Enum

from aenea.energy.manager import LEVEL_COST_FACTORS, EnergyLevel


class Stage(Enum):
    """Stages of a thought cycle, in execution order, plus sleep."""

    INTAKE = "S0"            # Validate and stamp the trigger
    INDIVIDUAL_THOUGHT = "S1"  # Every persona answers independently
    MUTUAL_REFLECTION = "S2"   # Personas reflect on each other, then synthesis
    CRITIQUE = "S3"          # Contrasting critique and DPD assessment
    AUDIT = "S4"             # Safety and ethics audit
    WEIGHT_UPDATE = "S5"     # Evolve the DPD weights
    RECORD = "S6"            # Persist the cycle
    UNRESOLVED = "U"         # Carry open questions forward
    SLEEP = "SLEEP"          # Orthogonal recovery mode, never part of a cycle


class StageStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    SKIPPED = "skipped"


# Legal forward moves; nothing leaves COMPLETED or SKIPPED
STATUS_TRANSITIONS: dict[StageStatus, set[StageStatus]] = {
    StageStatus.PENDING: {StageStatus.ACTIVE, StageStatus.SKIPPED},
    StageStatus.ACTIVE: {StageStatus.COMPLETED},
    StageStatus.COMPLETED: set(),
    StageStatus.SKIPPED: set(),
}


@dataclass
class StageConfig:
    """Static description of a pipeline stage."""

    stage: Stage
    display_name: str
    base_cost: float
    essential: bool = False

    def __post_init__(self):
        if self.base_cost < 0:
            raise ValueError(f"base_cost must be >= 0, got {self.base_cost}")
        if not self.display_name:
            raise ValueError("display_name cannot be empty")


# S1 cost is charged per thought produced, the others once per stage
STAGE_CONFIGS: dict[Stage, StageConfig] = {
    Stage.INTAKE: StageConfig(Stage.INTAKE, "Trigger Intake", 0.0, essential=True),
    Stage.INDIVIDUAL_THOUGHT: StageConfig(
        Stage.INDIVIDUAL_THOUGHT, "Individual Thought", 1.0, essential=True
    ),
    Stage.MUTUAL_REFLECTION: StageConfig(Stage.MUTUAL_REFLECTION, "Mutual Reflection", 0.5),
    Stage.CRITIQUE: StageConfig(Stage.CRITIQUE, "Critique", 0.5),
    Stage.AUDIT: StageConfig(Stage.AUDIT, "Auditor", 0.5),
    Stage.WEIGHT_UPDATE: StageConfig(Stage.WEIGHT_UPDATE, "Weight Update", 0.8),
    Stage.RECORD: StageConfig(Stage.RECORD, "Scribe", 0.3, essential=True),
    Stage.UNRESOLVED: StageConfig(Stage.UNRESOLVED, "Unresolved Questions", 0.2),
}

PIPELINE_ORDER: tuple[Stage, ...] = (
    Stage.INTAKE,
    Stage.INDIVIDUAL_THOUGHT,
    Stage.MUTUAL_REFLECTION,
    Stage.CRITIQUE,
    Stage.AUDIT,
    Stage.WEIGHT_UPDATE,
    Stage.RECORD,
    Stage.UNRESOLVED,
)


class ExecutionMode(Enum):
    FULL = "full"
    MODERATE = "moderate"
    MINIMAL = "minimal"


MODE_STAGES: dict[ExecutionMode, frozenset[Stage]] = {
    ExecutionMode.FULL: frozenset(PIPELINE_ORDER),
    ExecutionMode.MODERATE: frozenset(
        {Stage.INTAKE, Stage.INDIVIDUAL_THOUGHT, Stage.AUDIT, Stage.RECORD}
    ),
    ExecutionMode.MINIMAL: frozenset({Stage.INTAKE, Stage.INDIVIDUAL_THOUGHT, Stage.RECORD}),
}


@dataclass(frozen=True)
class ExecutionPlan:
    """Which stages a cycle runs and how much each costs."""

    mode: ExecutionMode
    energy_level: EnergyLevel
    cost_factor: float

    def includes(self, stage: Stage) -> bool:
        return stage in MODE_STAGES[self.mode]

    @property
    def stages(self) -> list[Stage]:
        return [s for s in PIPELINE_ORDER if self.includes(s)]

    def cost(self, stage: Stage, units: int = 1) -> float:
        return STAGE_CONFIGS[stage].base_cost * self.cost_factor * units

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "energy_level": self.energy_level.value,
            "cost_factor": self.cost_factor,
            "stages": [s.value for s in self.stages],
        }


def build_execution_plan(level: EnergyLevel) -> ExecutionPlan:
    """Choose how much of the pipeline to run at a given energy level."""
    if level in (EnergyLevel.CRITICAL, EnergyLevel.LOW):
        mode = ExecutionMode.MINIMAL
    elif level == EnergyLevel.MODERATE:
        mode = ExecutionMode.MODERATE
    else:
        mode = ExecutionMode.FULL
    return ExecutionPlan(mode=mode, energy_level=level, cost_factor=LEVEL_COST_FACTORS[level])


def stage_display_name(stage: Stage) -> str:
    config = STAGE_CONFIGS.get(stage)
    return config.display_name if config else stage.value
