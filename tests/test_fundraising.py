"""Tests for fundraising readiness scoring, timelines and recommendations."""

import pytest
from datetime import datetime, timedelta, timezone

from horizon.analytics.fundraising import (
    FACTOR_WEIGHTS,
    FactorStatus,
    Milestone,
    ReadinessMetrics,
    RecommendationPriority,
    RoundType,
    aggregate_probability,
    build_readiness_metrics,
    calculate_probabilities,
    compute_dau_growth,
    generate_recommendations,
    predict_timeline,
    score_burn,
    score_growth,
    score_revenue,
)

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def make_metrics(**overrides) -> ReadinessMetrics:
    values = dict(
        monthly_burn=50_000.0,
        monthly_revenue=10_000.0,
        total_cash=900_000.0,
        runway_months=18.0,
        dau_growth=0.25,
        team_size=8,
    )
    values.update(overrides)
    return ReadinessMetrics(**values)


class TestFactorScores:
    """Tests for individual factor scores."""

    def test_burn_score_boundaries(self):
        assert score_burn(12.0001) == 0.8
        assert score_burn(12.0) == 0.6
        assert score_burn(6.0) == 0.3

    def test_growth_score_boundaries(self):
        assert score_growth(0.21) == 0.9
        assert score_growth(0.2) == 0.7
        assert score_growth(0.1) == 0.4

    def test_revenue_score(self):
        assert score_revenue(1.0) == 0.8
        assert score_revenue(0.0) == 0.3


class TestProbabilities:
    """Tests for the weighted aggregate."""

    def test_weights_sum_to_one(self):
        assert sum(FACTOR_WEIGHTS.values()) == pytest.approx(1.0)

    def test_probability_ordering(self):
        result = calculate_probabilities(make_metrics())
        assert 0 <= result.amount <= result.timeline <= result.overall <= 1

    def test_all_factors_reported(self):
        result = calculate_probabilities(make_metrics())
        assert [f.factor for f in result.factors] == [
            "Current burn rate",
            "User growth",
            "Market conditions",
            "Team strength",
            "Product-market fit",
            "Revenue traction",
        ]

    def test_factor_status(self):
        result = calculate_probabilities(make_metrics(runway_months=3.0))
        burn = result.factors[0]
        assert burn.impact == 0.3
        assert burn.current_status == FactorStatus.NEGATIVE

    def test_aggregate_renormalises_missing_factors(self):
        assert aggregate_probability({"burnRate": 0.8}) == pytest.approx(0.8)
        assert aggregate_probability({}) == 0.0


class TestTimeline:
    """Tests for predict_timeline."""

    def test_base_timeline(self):
        timeline = predict_timeline(RoundType.SEED, make_metrics(dau_growth=0.0), [], NOW)
        assert timeline.predicted_start_date == NOW + timedelta(days=30)
        assert timeline.estimated_duration_days > 0
        assert timeline.predicted_close_date > timeline.predicted_start_date

    def test_short_runway_accelerates(self):
        calm = predict_timeline(RoundType.SERIES_A, make_metrics(dau_growth=0.0), [], NOW)
        urgent = predict_timeline(
            RoundType.SERIES_A, make_metrics(dau_growth=0.0, runway_months=4.0), [], NOW,
        )
        assert urgent.estimated_duration_days < calm.estimated_duration_days

    def test_confidence_interval_is_a_fifth(self):
        timeline = predict_timeline(RoundType.OTHER, make_metrics(dau_growth=0.0), [], NOW)
        assert timeline.estimated_duration_days == 120
        assert timeline.confidence_interval_days == 24


class TestRecommendations:
    """Tests for generate_recommendations."""

    def test_short_runway_and_flat_growth(self):
        recommendations = generate_recommendations(
            make_metrics(runway_months=5.0, dau_growth=0.0), [], NOW,
        )
        assert [r.priority for r in recommendations] == [
            RecommendationPriority.HIGH, RecommendationPriority.HIGH,
        ]
        assert recommendations[0].deadline == NOW + timedelta(weeks=2)

    def test_incomplete_milestones(self):
        milestones = [Milestone("Launch v2", 20.0), Milestone("Hire CTO", 90.0)]
        recommendations = generate_recommendations(make_metrics(), milestones, NOW)
        assert len(recommendations) == 1
        assert recommendations[0].action == "Complete key milestones: Launch v2"

    def test_healthy_company_needs_nothing(self):
        assert generate_recommendations(make_metrics(), [], NOW) == []


class TestReadinessInputs:
    """Tests for readiness metric derivation."""

    def test_dau_growth_newest_first(self):
        assert compute_dau_growth([150, 120, 100]) == pytest.approx(0.5)

    def test_dau_growth_needs_two_points(self):
        assert compute_dau_growth([150]) == 0.0
        assert compute_dau_growth([150, None, 0]) == 0.0

    def test_build_readiness_metrics(self):
        metrics = build_readiness_metrics(
            expense_total=300_000.0,
            revenue_total=30_000.0,
            total_cash=1_200_000.0,
            dau_growth=0.1,
            team_size=5,
            currency="EUR",
        )
        assert metrics.monthly_burn == pytest.approx(100_000.0)
        assert metrics.runway_months == pytest.approx(12.0)
        assert metrics.currency == "EUR"

    def test_no_burn_defaults_runway(self):
        metrics = build_readiness_metrics(0.0, 0.0, 10.0, 0.0, 1, "USD")
        assert metrics.runway_months == 12.0
