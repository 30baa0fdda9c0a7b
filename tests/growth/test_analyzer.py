"""Tests for growth pattern analysis."""

import pytest

from aenea.cycle.schemas import AuditResult, Reflection, RiskLevel
from aenea.dpd.weights import DPDWeights, WeightHistoryEntry
from aenea.growth.analyzer import (
    GrowthPatternAnalyzer,
    calculate_trend,
    reflection_depth,
    thought_complexity,
)
from aenea.growth.schemas import GrowthHistory, TrendDirection

from conftest import make_thought, make_trigger


def reflection(insights=(), criticism=None, alternative=None):
    return Reflection(
        reflector_id="theoria",
        target_thought_ids=["t1"],
        content="A reflection.",
        agreement_level=0.5,
        insights=list(insights),
        criticism=criticism,
        alternative_perspective=alternative,
    )


def audit(risk=RiskLevel.LOW, safety=0.9, concerns=()):
    return AuditResult(safety_score=safety, ethics_score=0.8, risk=risk, concerns=list(concerns))


def weight_entry(version, empathy, coherence, dissonance):
    weights = DPDWeights(empathy, coherence, dissonance, version=version)
    return WeightHistoryEntry(version=version, weights=weights, timestamp=weights.timestamp)


class TestHelpers:
    """Tests for the module-level measures."""

    def test_trend_of_linear_series(self):
        assert calculate_trend([1.0, 2.0, 3.0, 4.0]) == pytest.approx(1.0)
        assert calculate_trend([4.0, 2.0, 0.0]) == pytest.approx(-2.0)

    @pytest.mark.parametrize("values", [[], [0.7]])
    def test_trend_needs_two_points(self, values):
        assert calculate_trend(values) == 0.0

    def test_complexity_counts_markers(self):
        thought = make_thought("An abstract principle, fundamental to the pattern.")
        assert thought_complexity(thought) == pytest.approx(0.4)

    def test_complexity_matches_word_prefixes_only(self):
        assert thought_complexity(make_thought("A systematic meta-analysis.")) == pytest.approx(0.2)
        assert thought_complexity(make_thought("The ecosystem is quiet.")) == 0.0

    def test_complexity_is_capped(self):
        content = " ".join(
            "abstract conceptual theoretical meta- underlying fundamental essence "
            "implies suggests framework structure system pattern principle".split()
        )
        assert thought_complexity(make_thought(content)) == 1.0

    def test_reflection_depth(self):
        assert reflection_depth(reflection()) == 0
        assert reflection_depth(reflection(["a", "b"], criticism="c", alternative="d")) == 4


class TestMetrics:
    """Tests for aggregate metrics."""

    def test_empty_history(self):
        snapshot = GrowthPatternAnalyzer().analyze(GrowthHistory())

        assert snapshot.metrics.thought_count == 0
        assert snapshot.metrics.mean_confidence == 0.0
        assert snapshot.metrics.mean_safety is None
        assert snapshot.patterns == []
        assert all(t.insufficient_data for t in snapshot.trends.values())

    def test_aggregates(self):
        ethical = make_trigger("Is it right?", category="ethical")
        history = GrowthHistory(
            thoughts=[
                make_thought("Existence needs a witness.", confidence=0.6),
                make_thought("The truth of it is unclear.", confidence=0.8, trigger=ethical),
            ],
            reflections=[reflection(["a", "b"]), reflection(["c", "d"])],
            audits=[audit(safety=0.9), audit(safety=0.7)],
        )

        metrics = GrowthPatternAnalyzer().metrics(history)

        assert metrics.thought_count == 2
        assert metrics.reflection_count == 2
        assert metrics.mean_confidence == pytest.approx(0.7)
        assert metrics.category_diversity == pytest.approx(0.25)
        assert metrics.reflection_depth == pytest.approx(0.4)
        assert metrics.philosophical_breadth == pytest.approx(0.25)
        assert metrics.mean_safety == pytest.approx(0.8)
        assert metrics.mean_ethics == pytest.approx(0.8)

    def test_analysis_does_not_mutate_history(self):
        thoughts = [make_thought() for _ in range(3)]
        history = GrowthHistory(thoughts=list(thoughts))
        GrowthPatternAnalyzer(min_samples=2).analyze(history)
        assert history.thoughts == thoughts


class TestTrends:
    """Tests for least-squares trends."""

    def test_min_samples_validated(self):
        with pytest.raises(ValueError):
            GrowthPatternAnalyzer(min_samples=1)

    def test_short_series_reports_insufficient_data(self):
        analyzer = GrowthPatternAnalyzer(min_samples=5)
        trend = analyzer.trend("confidence", [0.1, 0.2, 0.3])

        assert trend.insufficient_data
        assert trend.slope is None
        assert trend.samples == 3
        assert trend.direction == TrendDirection.UNKNOWN

    def test_directions(self):
        analyzer = GrowthPatternAnalyzer(min_samples=3)
        assert analyzer.trend("x", [0.1, 0.2, 0.3]).direction == TrendDirection.INCREASING
        assert analyzer.trend("x", [0.3, 0.2, 0.1]).direction == TrendDirection.DECREASING
        assert analyzer.trend("x", [0.5, 0.5, 0.5]).direction == TrendDirection.STABLE

    def test_confidence_trend_from_history(self):
        history = GrowthHistory(
            thoughts=[make_thought(confidence=c) for c in (0.2, 0.4, 0.6, 0.8)]
        )
        trends = GrowthPatternAnalyzer(min_samples=3).trends(history)

        assert trends["confidence"].slope == pytest.approx(0.2)
        assert trends["safety"].insufficient_data
        assert set(trends) >= {"empathy", "coherence", "dissonance", "conceptual_complexity"}

    def test_weight_component_trends(self):
        history = GrowthHistory(
            weight_history=[
                weight_entry(1, 0.3, 0.4, 0.3),
                weight_entry(2, 0.4, 0.35, 0.25),
                weight_entry(3, 0.5, 0.3, 0.2),
            ]
        )
        trends = GrowthPatternAnalyzer(min_samples=3).trends(history)

        assert trends["empathy"].direction == TrendDirection.INCREASING
        assert trends["dissonance"].direction == TrendDirection.DECREASING


class TestPatterns:
    """Tests for pattern detection."""

    def test_complexity_evolution(self):
        history = GrowthHistory(
            thoughts=[
                make_thought("Plain words."),
                make_thought("An abstract principle."),
                make_thought("An abstract principle, fundamental to the pattern."),
            ]
        )
        patterns = GrowthPatternAnalyzer(min_samples=3).patterns(history)

        evolution = next(p for p in patterns if p.id == "complexity_evolution")
        assert evolution.trend == TrendDirection.INCREASING
        assert evolution.significance == pytest.approx(0.2)
        assert len(evolution.examples) == 3

    def test_reflection_depth_evolution(self):
        history = GrowthHistory(
            reflections=[
                reflection(),
                reflection(["a"], criticism="c"),
                reflection(["a", "b"], criticism="c", alternative="d"),
            ]
        )
        patterns = GrowthPatternAnalyzer(min_samples=3).patterns(history)

        depth = next(p for p in patterns if p.id == "reflection_depth_evolution")
        assert depth.trend == TrendDirection.INCREASING
        assert depth.significance == 1.0

    def test_dominant_category(self):
        ethical = make_trigger("Is it right?", category="ethical")
        history = GrowthHistory(
            thoughts=[make_thought(trigger=ethical) for _ in range(3)] + [make_thought()]
        )
        patterns = GrowthPatternAnalyzer().patterns(history)

        assert [p.id for p in patterns] == ["category_preference_ethical"]
        assert patterns[0].significance == pytest.approx(0.75)

    def test_no_dominant_category_when_spread(self):
        categories = ["ethical", "temporal", "existential", "aesthetic"]
        history = GrowthHistory(
            thoughts=[make_thought(trigger=make_trigger("Q?", category=c)) for c in categories]
        )
        assert GrowthPatternAnalyzer().patterns(history) == []

    def test_dominant_dpd_component(self):
        history = GrowthHistory(
            weight_history=[weight_entry(1, 0.6, 0.2, 0.2), weight_entry(2, 0.5, 0.3, 0.2)]
        )
        patterns = GrowthPatternAnalyzer().patterns(history)

        assert patterns[0].id == "dpd_dominance_empathy"
        assert patterns[0].significance == pytest.approx(0.55)
        assert patterns[0].trend == TrendDirection.STABLE

    def test_balanced_weights_not_dominant(self):
        history = GrowthHistory(weight_history=[weight_entry(1, 0.35, 0.35, 0.3)])
        assert GrowthPatternAnalyzer().patterns(history) == []

    def test_elevated_risk(self):
        history = GrowthHistory(
            audits=[
                audit(),
                audit(),
                audit(),
                audit(RiskLevel.MEDIUM, safety=0.5, concerns=["coercive framing"]),
            ]
        )
        patterns = GrowthPatternAnalyzer().patterns(history)

        assert patterns[0].id == "elevated_risk"
        assert patterns[0].significance == pytest.approx(0.25)
        assert patterns[0].examples == ["coercive framing"]

    def test_low_risk_audits_produce_no_pattern(self):
        history = GrowthHistory(audits=[audit() for _ in range(10)])
        assert GrowthPatternAnalyzer().patterns(history) == []

    def test_patterns_sorted_and_capped(self):
        ethical = make_trigger("Is it right?", category="ethical")
        history = GrowthHistory(
            thoughts=[make_thought(trigger=ethical) for _ in range(2)] + [make_thought()],
            weight_history=[weight_entry(1, 0.9, 0.05, 0.05)],
            audits=[audit(RiskLevel.HIGH, safety=0.1)],
        )
        analyzer = GrowthPatternAnalyzer(max_patterns=2)
        patterns = analyzer.patterns(history)

        assert [p.id for p in patterns] == ["elevated_risk", "dpd_dominance_empathy"]
        assert patterns[0].significance >= patterns[1].significance
