"""
Weight Evolver: multiplicative-weights evolution of the DPD weights.

Each thought cycle produces DPDScores (how empathic, coherent and
productively dissonant the cycle was). The evolver turns those scores
into a new version of the weights:

    loss_i = max(0, (target_i - score_i)^2)
    w_i   <- w_i * exp(-lr * loss_i) * decay

Dissonance aims lower than the other two (65% of the target) so that some
disagreement is rewarded without being maximized. Every
``perturbation_interval`` updates a small zero-sum perturbation is mixed
in to keep the weights from freezing. The result is normalized, clamped
to [min_weight, max_weight] and normalized again, so the three components
always sum to one.

The learning rate adapts:
    - converged (convergence metric < CONVERGENCE_THRESHOLD): boosted to
      explore away from the fixed point
    - paradigm shift flagged by the assessor: boosted further

The history of versions is append-only and strictly ordered.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Optional

import numpy as np

from aenea.dpd.history import sample_history
from aenea.dpd.weights import (
    DEFAULT_BASELINE,
    DPDScores,
    DPDWeights,
    WeightHistoryEntry,
    normalize_vector,
)

if TYPE_CHECKING:
    from aenea.config.settings import AeneaSettings

logger = logging.getLogger(__name__)

# Scoring targets
PERFORMANCE_TARGET = 0.75
DISSONANCE_TARGET_RATIO = 0.65

# Learning rates
DEFAULT_LEARNING_RATE = 0.05
CONVERGED_LEARNING_RATE = 0.12
PARADIGM_SHIFT_LEARNING_RATE = 0.15

# Convergence detection
CONVERGENCE_WINDOW = 5
CONVERGENCE_THRESHOLD = 0.05
CONVERGENCE_SCALE = 10.0

# Update magnitudes kept for convergence analysis
MAGNITUDE_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class WeightSignals:
    """Inputs to one weight update, derived from a cycle's later stages."""

    scores: DPDScores
    paradigm_shift: bool = False
    trigger_category: Optional[str] = None


@dataclass
class WeightUpdateResult:
    """Details of a single update, kept for monitoring."""

    previous: DPDWeights
    weights: DPDWeights
    learning_rate: float
    magnitude: float
    convergence_metric: float
    perturbed: bool = False
    reset_to_baseline: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "previous": self.previous.to_dict(),
            "weights": self.weights.to_dict(),
            "learning_rate": self.learning_rate,
            "magnitude": self.magnitude,
            "convergence_metric": self.convergence_metric,
            "perturbed": self.perturbed,
            "reset_to_baseline": self.reset_to_baseline,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ConvergenceStatus:
    is_converging: bool
    is_converged: bool
    recent_magnitude: float
    convergence_metric: float

    def to_dict(self) -> dict:
        return {
            "is_converging": self.is_converging,
            "is_converged": self.is_converged,
            "recent_magnitude": self.recent_magnitude,
            "convergence_metric": self.convergence_metric,
        }


@dataclass(frozen=True)
class EvolverCheckpoint:
    """Snapshot of evolver state taken before an uncommitted update."""

    current: DPDWeights
    history: tuple[WeightHistoryEntry, ...]
    updates: tuple[WeightUpdateResult, ...]
    update_count: int
    rng_state: dict


class WeightEvolver:
    """
    Owns the current DPD weights and their version history.

    Only the orchestrator calls ``update``; the evolver is not safe for
    concurrent writers and does not try to be.
    """

    def __init__(
        self,
        initial: Optional[DPDWeights] = None,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        min_weight: float = 0.05,
        max_weight: float = 0.85,
        decay: float = 0.99,
        perturbation_interval: int = 10,
        perturbation_strength: float = 0.15,
        seed: Optional[int] = None,
    ):
        if not 0.0 < min_weight < max_weight <= 1.0:
            raise ValueError(f"Invalid weight bounds: [{min_weight}, {max_weight}]")

        self.learning_rate = learning_rate
        self.min_weight = min_weight
        self.max_weight = max_weight
        self.decay = decay
        self.perturbation_interval = perturbation_interval
        self.perturbation_strength = perturbation_strength
        self._rng = np.random.default_rng(seed)

        self._current = initial or DPDWeights.initial()
        self._history: list[WeightHistoryEntry] = [
            WeightHistoryEntry(
                version=self._current.version,
                weights=self._current,
                timestamp=self._current.timestamp,
            )
        ]
        self._updates: deque[WeightUpdateResult] = deque(maxlen=MAGNITUDE_HISTORY_LIMIT)
        self._update_count = 0

    @classmethod
    def from_settings(
        cls, settings: "AeneaSettings", initial: Optional[DPDWeights] = None
    ) -> "WeightEvolver":
        return cls(
            initial=initial,
            learning_rate=settings.weight_learning_rate,
            min_weight=settings.weight_min,
            max_weight=settings.weight_max,
            decay=settings.weight_decay,
            perturbation_interval=settings.weight_perturbation_interval,
            perturbation_strength=settings.weight_perturbation_strength,
            seed=settings.random_seed,
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def current(self) -> DPDWeights:
        return self._current

    @property
    def version(self) -> int:
        return self._current.version

    @property
    def history(self) -> list[WeightHistoryEntry]:
        return list(self._history)

    @property
    def update_results(self) -> list[WeightUpdateResult]:
        return list(self._updates)

    def restore(self, entries: Iterable[WeightHistoryEntry]) -> None:
        """Rebuild state from persisted history.

        Entries are sorted by version; duplicates keep the last seen.
        Does nothing when ``entries`` is empty.
        """
        by_version = {e.version: e for e in entries}
        if not by_version:
            return
        ordered = [by_version[v] for v in sorted(by_version)]
        self._history = ordered
        self._current = ordered[-1].weights
        logger.info(f"Restored DPD weights at version {self._current.version}")

    def checkpoint(self) -> EvolverCheckpoint:
        """Capture the state ``rollback`` returns to, random generator included."""
        return EvolverCheckpoint(
            current=self._current,
            history=tuple(self._history),
            updates=tuple(self._updates),
            update_count=self._update_count,
            rng_state=self._rng.bit_generator.state,
        )

    def rollback(self, checkpoint: EvolverCheckpoint) -> None:
        """Discard every update made since ``checkpoint`` was taken."""
        if self._current.version != checkpoint.current.version:
            logger.info(
                f"Rolling back DPD weights from version {self._current.version} "
                f"to {checkpoint.current.version}"
            )
        self._current = checkpoint.current
        self._history = list(checkpoint.history)
        self._updates = deque(checkpoint.updates, maxlen=MAGNITUDE_HISTORY_LIMIT)
        self._update_count = checkpoint.update_count
        self._rng.bit_generator.state = checkpoint.rng_state

    # =========================================================================
    # Update
    # =========================================================================

    def update(self, signals: WeightSignals) -> DPDWeights:
        """Apply one multiplicative-weights step.

        Args:
            signals: Scores and flags from the cycle

        Returns:
            The new weights (also stored as current)
        """
        self._update_count += 1
        previous = self._current
        status = self.convergence_status()

        if signals.paradigm_shift:
            lr = PARADIGM_SHIFT_LEARNING_RATE
        elif status.is_converged:
            lr = CONVERGED_LEARNING_RATE
        else:
            lr = self.learning_rate

        scores = np.clip(np.nan_to_num(signals.scores.as_vector(), nan=0.0), 0.0, 1.0)
        targets = np.array(
            [PERFORMANCE_TARGET, PERFORMANCE_TARGET, PERFORMANCE_TARGET * DISSONANCE_TARGET_RATIO]
        )
        losses = np.maximum(0.0, (targets - scores) ** 2)

        vector = previous.as_vector() * np.exp(-lr * losses) * self.decay

        perturbed = False
        if self.perturbation_interval > 0 and self._update_count % self.perturbation_interval == 0:
            vector = vector + self._perturbation()
            perturbed = True

        reset = False
        normalized = normalize_vector(vector)
        if normalized is None:
            logger.warning(
                f"Degenerate DPD weight vector {vector.tolist()}, resetting to baseline"
            )
            normalized = np.array(DEFAULT_BASELINE, dtype=float)
            reset = True

        clamped = np.clip(normalized, self.min_weight, self.max_weight)
        final = normalize_vector(clamped)
        if final is None:
            logger.warning("Degenerate DPD weights after clamping, resetting to baseline")
            final = np.array(DEFAULT_BASELINE, dtype=float)
            reset = True

        new_weights = DPDWeights.from_vector(final, version=previous.version + 1)
        magnitude = float(np.linalg.norm(new_weights.as_vector() - previous.as_vector()))

        self._current = new_weights
        self._history.append(
            WeightHistoryEntry(
                version=new_weights.version,
                weights=new_weights,
                timestamp=new_weights.timestamp,
                trigger_category=signals.trigger_category,
            )
        )

        result = WeightUpdateResult(
            previous=previous,
            weights=new_weights,
            learning_rate=lr,
            magnitude=magnitude,
            convergence_metric=0.0,
            perturbed=perturbed,
            reset_to_baseline=reset,
        )
        self._updates.append(result)
        result.convergence_metric = self._convergence_metric()

        logger.debug(
            f"DPD v{new_weights.version}: E={new_weights.empathy:.3f} "
            f"C={new_weights.coherence:.3f} D={new_weights.dissonance:.3f} "
            f"(lr={lr}, |dw|={magnitude:.4f}{', perturbed' if perturbed else ''})"
        )
        return new_weights

    def _perturbation(self) -> np.ndarray:
        """Zero-sum random offset for exploration."""
        r1, r2 = (self._rng.random(2) - 0.5) * self.perturbation_strength
        return np.array([r1, r2, -(r1 + r2)])

    # =========================================================================
    # Convergence
    # =========================================================================

    def _convergence_metric(self) -> float:
        if len(self._updates) < CONVERGENCE_WINDOW:
            return 1.0
        recent = [u.magnitude for u in list(self._updates)[-CONVERGENCE_WINDOW:]]
        return float(np.clip(np.mean(recent) * CONVERGENCE_SCALE, 0.0, 1.0))

    def convergence_status(self) -> ConvergenceStatus:
        """Summarize how settled the weights are."""
        if not self._updates:
            return ConvergenceStatus(
                is_converging=False,
                is_converged=False,
                recent_magnitude=1.0,
                convergence_metric=1.0,
            )
        latest = self._updates[-1]
        return ConvergenceStatus(
            is_converging=latest.convergence_metric < 0.1,
            is_converged=latest.convergence_metric < CONVERGENCE_THRESHOLD,
            recent_magnitude=latest.magnitude,
            convergence_metric=latest.convergence_metric,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def query_history(self, limit: int = 20, strategy: str = "sampled") -> list[WeightHistoryEntry]:
        """Sample the in-memory history (see ``sample_history``)."""
        return sample_history(self._history, limit, strategy)
