"""
Growth Pattern Analyzer.

Derives aggregate metrics, trends and notable patterns from the persisted
history of thoughts, reflections, audits and DPD weight versions. The
analyzer holds no state between calls and never mutates its input.

Trends are least-squares slopes over sample index (``numpy.polyfit``
degree 1) and need at least ``min_samples`` points; shorter series are
reported with ``insufficient_data=True`` and no slope.

Patterns, each with a significance in [0, 1]:
    complexity evolution      |slope| of per-thought complexity > 0.1
    reflection depth          |slope| of per-reflection depth > 0.1
    dominant category         one category holds > 30% of thoughts
    dominant DPD component    mean weight > 0.45 across the history
    elevated risk             >= 20% of audits above low risk
"""

import logging
import re
from collections import Counter
from typing import Optional, Sequence

import numpy as np

from aenea.cycle.schemas import Reflection, RiskLevel, Thought
from aenea.growth.schemas import (
    GrowthHistory,
    GrowthMetrics,
    GrowthPattern,
    GrowthSnapshot,
    TrendDirection,
    TrendMetric,
)

logger = logging.getLogger(__name__)

SLOPE_PATTERN_THRESHOLD = 0.1
STABLE_SLOPE = 0.01
DOMINANT_CATEGORY_SHARE = 0.3
DOMINANT_WEIGHT = 0.45
ELEVATED_RISK_SHARE = 0.2
CATEGORY_DIVERSITY_SCALE = 8
MAX_INSIGHTS_PER_REFLECTION = 5
EXAMPLE_CHARS = 100

CONCEPTUAL_MARKERS = (
    "abstract", "conceptual", "theoretical", "meta-", "underlying",
    "fundamental", "essence", "nature of", "implies", "suggests",
    "framework", "structure", "system", "pattern", "principle",
)

PHILOSOPHICAL_DOMAINS: dict[str, tuple[str, ...]] = {
    "existential": ("existence", "being", "reality", "meaning", "purpose"),
    "epistemological": ("knowledge", "truth", "belief", "certainty", "understanding"),
    "ethical": ("right", "wrong", "moral", "ethics", "should", "ought"),
    "aesthetic": ("beauty", "art", "elegant", "harmony", "aesthetic"),
    "metaphysical": ("nature", "substance", "causation", "time", "space"),
    "logical": ("logic", "reasoning", "argument", "valid", "sound"),
    "phenomenological": ("experience", "consciousness", "perception", "subjective"),
    "political": ("justice", "freedom", "power", "society", "governance"),
}

DPD_COMPONENTS = ("empathy", "coherence", "dissonance")


def _contains(text: str, term: str) -> bool:
    return re.search(rf"\b{re.escape(term)}", text) is not None


def calculate_trend(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against their index.

    Returns 0.0 for fewer than two points.
    """
    if len(values) < 2:
        return 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)
    slope, _ = np.polyfit(x, y, 1)
    return float(slope)


def thought_complexity(thought: Thought) -> float:
    """Conceptual-marker density of one thought, in [0, 1]."""
    content = thought.content.lower()
    hits = sum(1 for m in CONCEPTUAL_MARKERS if _contains(content, m))
    return min(hits / 10, 1.0)


def reflection_depth(reflection: Reflection) -> int:
    depth = len(reflection.insights)
    if reflection.criticism:
        depth += 1
    if reflection.alternative_perspective:
        depth += 1
    return depth


def _direction(slope: float) -> TrendDirection:
    if slope > STABLE_SLOPE:
        return TrendDirection.INCREASING
    if slope < -STABLE_SLOPE:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def _mean(values: Sequence[float]) -> Optional[float]:
    return float(np.mean(values)) if len(values) else None


class GrowthPatternAnalyzer:
    """Stateless analysis over a GrowthHistory."""

    def __init__(self, min_samples: int = 15, max_patterns: int = 10):
        if min_samples < 2:
            raise ValueError(f"min_samples must be at least 2, got {min_samples}")
        self.min_samples = min_samples
        self.max_patterns = max_patterns

    @classmethod
    def from_settings(cls, settings) -> "GrowthPatternAnalyzer":
        return cls(min_samples=settings.growth_min_samples, max_patterns=settings.growth_max_patterns)

    def analyze(self, history: GrowthHistory) -> GrowthSnapshot:
        snapshot = GrowthSnapshot(
            metrics=self.metrics(history),
            trends=self.trends(history),
            patterns=self.patterns(history),
        )
        logger.debug(
            f"Growth snapshot: {snapshot.metrics.thought_count} thoughts, "
            f"{len(snapshot.patterns)} patterns"
        )
        return snapshot

    # =========================================================================
    # Trends
    # =========================================================================

    def trend(self, name: str, values: Sequence[float]) -> TrendMetric:
        if len(values) < self.min_samples:
            return TrendMetric(name=name, samples=len(values), insufficient_data=True)
        slope = calculate_trend(values)
        return TrendMetric(name=name, samples=len(values), slope=slope, direction=_direction(slope))

    def trends(self, history: GrowthHistory) -> dict[str, TrendMetric]:
        series: dict[str, list[float]] = {
            "confidence": [t.confidence for t in history.thoughts],
            "conceptual_complexity": [thought_complexity(t) for t in history.thoughts],
            "safety": [a.safety_score for a in history.audits],
        }
        for component in DPD_COMPONENTS:
            series[component] = [getattr(e.weights, component) for e in history.weight_history]
        return {name: self.trend(name, values) for name, values in series.items()}

    # =========================================================================
    # Metrics
    # =========================================================================

    def metrics(self, history: GrowthHistory) -> GrowthMetrics:
        thoughts = history.thoughts
        complexities = [thought_complexity(t) for t in thoughts]
        reflections = history.reflections
        insight_means = _mean([len(r.insights) for r in reflections])

        return GrowthMetrics(
            thought_count=len(thoughts),
            reflection_count=len(reflections),
            audit_count=len(history.audits),
            mean_confidence=_mean([t.confidence for t in thoughts]) or 0.0,
            conceptual_complexity=_mean(complexities) or 0.0,
            philosophical_breadth=self.philosophical_breadth(thoughts),
            category_diversity=min(
                len({t.category for t in thoughts}) / CATEGORY_DIVERSITY_SCALE, 1.0
            ),
            reflection_depth=min((insight_means or 0.0) / MAX_INSIGHTS_PER_REFLECTION, 1.0),
            mean_safety=_mean([a.safety_score for a in history.audits]),
            mean_ethics=_mean([a.ethics_score for a in history.audits]),
        )

    @staticmethod
    def philosophical_breadth(thoughts: Sequence[Thought]) -> float:
        """Share of the philosophical domains touched by any thought."""
        engaged = set()
        for thought in thoughts:
            content = thought.content.lower()
            for domain, keywords in PHILOSOPHICAL_DOMAINS.items():
                if domain not in engaged and any(_contains(content, k) for k in keywords):
                    engaged.add(domain)
        return len(engaged) / len(PHILOSOPHICAL_DOMAINS)

    # =========================================================================
    # Patterns
    # =========================================================================

    def patterns(self, history: GrowthHistory) -> list[GrowthPattern]:
        found: list[GrowthPattern] = []
        for detect in (
            self._complexity_evolution,
            self._reflection_depth_evolution,
            self._dominant_category,
            self._dominant_dpd_component,
            self._elevated_risk,
        ):
            pattern = detect(history)
            if pattern is not None:
                found.append(pattern)
        found.sort(key=lambda p: p.significance, reverse=True)
        return found[: self.max_patterns]

    def _complexity_evolution(self, history: GrowthHistory) -> Optional[GrowthPattern]:
        thoughts = history.thoughts
        if len(thoughts) < self.min_samples:
            return None
        slope = calculate_trend([thought_complexity(t) for t in thoughts])
        if abs(slope) <= SLOPE_PATTERN_THRESHOLD:
            return None
        return GrowthPattern(
            id="complexity_evolution",
            pattern="Thought complexity evolution",
            trend=_direction(slope),
            significance=min(abs(slope), 1.0),
            context=["cognitive_development"],
            examples=[t.content[:EXAMPLE_CHARS] for t in thoughts[-3:]],
        )

    def _reflection_depth_evolution(self, history: GrowthHistory) -> Optional[GrowthPattern]:
        reflections = history.reflections
        if len(reflections) < self.min_samples:
            return None
        slope = calculate_trend([reflection_depth(r) for r in reflections])
        if abs(slope) <= SLOPE_PATTERN_THRESHOLD:
            return None
        return GrowthPattern(
            id="reflection_depth_evolution",
            pattern="Reflection depth evolution",
            trend=_direction(slope),
            significance=min(abs(slope), 1.0),
            context=["meta_cognition"],
            examples=["; ".join(r.insights) for r in reflections[-2:] if r.insights],
        )

    def _dominant_category(self, history: GrowthHistory) -> Optional[GrowthPattern]:
        thoughts = history.thoughts
        if not thoughts:
            return None
        category, count = Counter(t.category for t in thoughts).most_common(1)[0]
        share = count / len(thoughts)
        if share <= DOMINANT_CATEGORY_SHARE:
            return None
        return GrowthPattern(
            id=f"category_preference_{category}",
            pattern=f"Strong preference for {category} thinking",
            significance=share,
            frequency=share,
            context=["cognitive_preference"],
            examples=[t.content[:EXAMPLE_CHARS] for t in thoughts if t.category == category][-2:],
        )

    def _dominant_dpd_component(self, history: GrowthHistory) -> Optional[GrowthPattern]:
        entries = history.weight_history
        if not entries:
            return None
        means = {
            c: float(np.mean([getattr(e.weights, c) for e in entries])) for c in DPD_COMPONENTS
        }
        component = max(means, key=means.get)
        if means[component] <= DOMINANT_WEIGHT:
            return None
        slope = calculate_trend([getattr(e.weights, component) for e in entries])
        return GrowthPattern(
            id=f"dpd_dominance_{component}",
            pattern=f"{component.capitalize()} dominates the value priorities",
            trend=_direction(slope) if len(entries) >= self.min_samples else TrendDirection.STABLE,
            significance=min(means[component], 1.0),
            context=["value_priorities"],
        )

    def _elevated_risk(self, history: GrowthHistory) -> Optional[GrowthPattern]:
        audits = history.audits
        if not audits:
            return None
        elevated = [a for a in audits if a.risk != RiskLevel.LOW]
        share = len(elevated) / len(audits)
        if share < ELEVATED_RISK_SHARE:
            return None
        concerns = [c for a in elevated for c in a.concerns]
        return GrowthPattern(
            id="elevated_risk",
            pattern="Audits frequently report elevated risk",
            significance=share,
            frequency=share,
            context=["safety"],
            examples=concerns[-3:],
        )
