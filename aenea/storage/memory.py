"""In-process implementation of the Storage protocol.

Keeps everything in lists on the instance. Used by the tests and by
embedders that do not need persistence across restarts.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from aenea.dpd.history import sample_history
from aenea.dpd.weights import WeightHistoryEntry
from aenea.growth.schemas import GrowthHistory

if TYPE_CHECKING:
    from aenea.cycle.schemas import Thought, ThoughtCycle, UnresolvedIdea
    from aenea.dpd.weights import DPDWeights
    from aenea.sleep.dreams import DreamPattern
    from aenea.sleep.manager import SleepSession

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Storage backed by plain Python containers.

    Cycles are stored by reference. Thoughts are also indexed separately
    so pruning can drop them without touching the cycle records.
    """

    def __init__(self, core_beliefs: Optional[list[str]] = None):
        self.cycles: list["ThoughtCycle"] = []
        self.thoughts: list["Thought"] = []
        self.weight_history: list[WeightHistoryEntry] = []
        self.unresolved_ideas: list["UnresolvedIdea"] = []
        self.dream_patterns: list["DreamPattern"] = []
        self.sleep_sessions: list["SleepSession"] = []
        self.core_beliefs: list[str] = list(core_beliefs or [])

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_unresolved_ideas(self, n: int) -> list["UnresolvedIdea"]:
        """Most important first, oldest first among equals."""
        ranked = sorted(self.unresolved_ideas, key=lambda i: (-i.importance, i.created_at))
        return ranked[: max(0, n)]

    async def get_significant_thoughts(self, n: int) -> list["Thought"]:
        """Highest confidence first, newest first among equals."""
        ranked = sorted(self.thoughts, key=lambda t: (t.confidence, t.timestamp), reverse=True)
        return ranked[: max(0, n)]

    async def get_core_beliefs(self, n: int) -> list[str]:
        """Most recently recorded beliefs."""
        if n <= 0:
            return []
        return list(reversed(self.core_beliefs[-n:]))

    async def query_dpd_history(self, limit: int, strategy: str = "sampled") -> list[WeightHistoryEntry]:
        return sample_history(self.weight_history, limit, strategy)

    async def load_growth_history(self) -> GrowthHistory:
        return GrowthHistory(
            thoughts=list(self.thoughts),
            reflections=[r for c in self.cycles for r in c.reflections],
            audits=[c.audit for c in self.cycles if c.audit is not None],
            weight_history=list(self.weight_history),
        )

    # =========================================================================
    # Writes
    # =========================================================================

    async def record_thought_cycle(self, cycle: "ThoughtCycle") -> None:
        self.cycles.append(cycle)
        self.thoughts.extend(cycle.thoughts)
        logger.debug(f"Stored cycle {cycle.id} with {len(cycle.thoughts)} thoughts")

    async def record_dpd_weights(self, weights: "DPDWeights", version: int) -> None:
        if self.weight_history and version <= self.weight_history[-1].version:
            logger.warning(
                f"Ignoring DPD weights v{version}; history is already at "
                f"v{self.weight_history[-1].version}"
            )
            return
        self.weight_history.append(
            WeightHistoryEntry(version=version, weights=weights, timestamp=weights.timestamp)
        )

    async def record_unresolved_ideas(self, ideas: list["UnresolvedIdea"]) -> None:
        known = {i.question.strip().lower() for i in self.unresolved_ideas}
        for idea in ideas:
            key = idea.question.strip().lower()
            if key in known:
                continue
            known.add(key)
            self.unresolved_ideas.append(idea)

    async def record_dream_patterns(self, patterns: list["DreamPattern"]) -> None:
        self.dream_patterns.extend(patterns)

    async def record_sleep_session(self, session: "SleepSession") -> None:
        self.sleep_sessions.append(session)

    async def record_core_beliefs(self, beliefs: list[str]) -> None:
        known = {b.strip().lower() for b in self.core_beliefs}
        for belief in beliefs:
            if belief.strip() and belief.strip().lower() not in known:
                known.add(belief.strip().lower())
                self.core_beliefs.append(belief.strip())

    async def prune_thoughts(self, max_age_hours: float) -> int:
        """Drop thoughts older than ``max_age_hours``.

        Returns:
            Number of thoughts removed
        """
        cutoff = datetime.now(timezone.utc) - timedelta(hours=max_age_hours)
        kept = [t for t in self.thoughts if t.timestamp >= cutoff]
        removed = len(self.thoughts) - len(kept)
        self.thoughts = kept
        if removed:
            logger.info(f"Pruned {removed} thoughts older than {max_age_hours}h")
        return removed
