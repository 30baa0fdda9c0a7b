"""Contracts for the collaborators the engine consumes.

The text-generation engine and the storage engine live outside this
package. Anything satisfying these protocols can be plugged in; the
in-memory storage in ``aenea.storage`` is the reference implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from aenea.cycle.schemas import ThoughtCycle, Thought, UnresolvedIdea
    from aenea.dpd.weights import DPDWeights, WeightHistoryEntry
    from aenea.growth.schemas import GrowthHistory
    from aenea.sleep.dreams import DreamPattern
    from aenea.sleep.manager import SleepSession


@dataclass
class GenerationResult:
    """Outcome of one text-generation call."""

    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def usable(self) -> bool:
        """Call succeeded and returned non-blank text."""
        return self.success and bool(self.content and self.content.strip())

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "content": self.content,
            "error": self.error,
            "duration": self.duration,
        }


@runtime_checkable
class TextGenerator(Protocol):
    """Anything that can turn a prompt into text."""

    async def execute(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> GenerationResult:
        ...


@runtime_checkable
class Storage(Protocol):
    """Persistence operations the engine relies on."""

    async def get_unresolved_ideas(self, n: int) -> list["UnresolvedIdea"]:
        ...

    async def get_significant_thoughts(self, n: int) -> list["Thought"]:
        ...

    async def get_core_beliefs(self, n: int) -> list[str]:
        ...

    async def record_thought_cycle(self, cycle: "ThoughtCycle") -> None:
        ...

    async def record_dpd_weights(self, weights: "DPDWeights", version: int) -> None:
        ...

    async def query_dpd_history(
        self, limit: int, strategy: str = "sampled"
    ) -> list["WeightHistoryEntry"]:
        ...

    async def record_unresolved_ideas(self, ideas: list["UnresolvedIdea"]) -> None:
        ...

    async def record_dream_patterns(self, patterns: list["DreamPattern"]) -> None:
        ...

    async def record_sleep_session(self, session: "SleepSession") -> None:
        ...

    async def prune_thoughts(self, max_age_hours: float) -> int:
        ...

    async def record_core_beliefs(self, beliefs: list[str]) -> None:
        ...

    async def load_growth_history(self) -> "GrowthHistory":
        ...


__all__ = ["GenerationResult", "TextGenerator", "Storage"]
