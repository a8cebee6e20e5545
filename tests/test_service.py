"""
Tests for the analytics service.

Runs every operation against the in-memory port with a frozen clock.
"""

import pytest
from datetime import date, timedelta
from pydantic import ValidationError as SchemaValidationError

from horizon.analytics.errors import (
    BadRequestError,
    ConflictError,
    InsufficientHistoryError,
    NotFoundError,
    ValidationError,
)
from horizon.analytics.fundraising import RoundType
from horizon.analytics.ports import ArtifactKind, KpiSnapshotView
from horizon.analytics.runway import BURN_METRIC, REVENUE_METRIC
from horizon.analytics.schemas import (
    Assumption,
    CashFlowForecastCreate,
    CohortMetricIn,
    FundraisingPredictionCreate,
    KeyMilestone,
    PlannedFundraisingEvent,
    RevenueCohortCreate,
    RunwayScenarioCreate,
    ThresholdOverrides,
)
from horizon.analytics.service import sanitize

from tests.conftest import OTHER_TENANT, TENANT


FLAT = [
    Assumption(metric=BURN_METRIC, growth_rate=0.0),
    Assumption(metric=REVENUE_METRIC, growth_rate=0.0),
]


def runway_request(**overrides) -> RunwayScenarioCreate:
    values = dict(
        name="Base case",
        start_date=date(2026, 1, 1),
        assumptions=FLAT,
        simulation_variance=0.0,
        simulation_iterations=100,
        simulation_seed=1,
    )
    values.update(overrides)
    return RunwayScenarioCreate(**values)


def cohort_metrics(retentions, users=1000, arpu=10.0):
    metrics = []
    cumulative = 0.0
    for period, rate in enumerate(retentions):
        active = round(users * rate)
        revenue = active * arpu
        cumulative += revenue
        metrics.append(CohortMetricIn(
            period_number=period,
            period_label=f"Month {period}",
            active_users=active,
            churned_users=users - active,
            retention_rate=rate,
            revenue=revenue,
            average_revenue_per_user=arpu,
            cumulative_revenue=cumulative,
        ))
    return metrics


def cohort_request(retentions, **overrides) -> RevenueCohortCreate:
    values = dict(
        cohort_name="January signups",
        cohort_start_date=date(2026, 1, 1),
        initial_users=1000,
        acquisition_cost=20_000.0,
        metrics=cohort_metrics(retentions),
    )
    values.update(overrides)
    return RevenueCohortCreate(**values)


@pytest.fixture
def funded(port):
    """Tenant with 1M cash and 100k monthly burn."""
    port.add_account(TENANT, 1_000_000.0)
    port.add_expense(TENANT, 2026, 9, 100_000.0)
    return port


# =============================================================================
# Runway scenarios
# =============================================================================

class TestRunwayScenarios:
    """Tests for runway scenario operations."""

    @pytest.mark.asyncio
    async def test_base_runway_from_history(self, service, funded):
        """1M cash at 100k burn gives ten months and a calm simulation."""
        result = await service.create_runway_scenario(TENANT, runway_request(), user_id="usr_1")
        scenario = result.scenario

        assert scenario.id.startswith("rwy_")
        assert scenario.tenant_id == TENANT
        assert scenario.created_by == "usr_1"
        assert scenario.version == 1
        assert scenario.currency == "USD"
        assert scenario.initial_cash_balance == 1_000_000.0
        assert scenario.initial_monthly_burn == 100_000.0
        assert scenario.initial_monthly_revenue == 0.0
        assert scenario.total_runway_months == 10
        assert scenario.date_of_cash_out == date(2026, 11, 1)
        assert scenario.break_even_month is None
        assert len(scenario.monthly_projections) == 10

        assert result.simulation.p10 == 10
        assert result.simulation.p50 == 10
        assert result.simulation.p90 == 10
        assert result.simulation.std_dev == 0.0
        assert scenario.simulation == result.simulation

    @pytest.mark.asyncio
    async def test_break_even_with_overrides(self, service, port):
        request = runway_request(
            initial_cash_balance=500_000.0,
            initial_monthly_burn=50_000.0,
            initial_monthly_revenue=10_000.0,
            assumptions=[
                Assumption(metric=BURN_METRIC, growth_rate=0.0),
                Assumption(metric=REVENUE_METRIC, growth_rate=0.5),
            ],
        )
        result = await service.create_runway_scenario(TENANT, request)
        assert result.scenario.break_even_month == 4
        assert result.scenario.runway_is_floor is True

    @pytest.mark.asyncio
    async def test_default_assumptions_and_start_date(self, service, funded, clock):
        request = RunwayScenarioCreate(name="Defaults", simulation_iterations=10, simulation_seed=3)
        result = await service.create_runway_scenario(TENANT, request)

        assert result.scenario.start_date == clock.today()
        assert [a.metric for a in result.scenario.assumptions] == [BURN_METRIC, REVENUE_METRIC]
        assert result.scenario.assumptions[0].growth_rate == pytest.approx(0.05)
        assert result.scenario.projection_months == 24

    @pytest.mark.asyncio
    async def test_fundraising_event_in_other_currency_rejected(self, service, funded):
        request = runway_request(planned_fundraising_events=[
            PlannedFundraisingEvent(month=3, amount=1_000_000.0, currency="EUR"),
        ])
        with pytest.raises(ValidationError):
            await service.create_runway_scenario(TENANT, request)

    @pytest.mark.asyncio
    async def test_event_beyond_horizon_rejected(self, service, funded):
        request = runway_request(
            projection_months=6,
            planned_fundraising_events=[PlannedFundraisingEvent(month=7, amount=1.0)],
        )
        with pytest.raises(ValidationError):
            await service.create_runway_scenario(TENANT, request)

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, service, funded):
        result = await service.create_runway_scenario(TENANT, runway_request())

        with pytest.raises(NotFoundError):
            await service.get_runway_scenario(OTHER_TENANT, result.scenario.id)
        assert await service.list_runway_scenarios(OTHER_TENANT) == []
        assert len(await service.list_runway_scenarios(TENANT)) == 1

    @pytest.mark.asyncio
    async def test_soft_delete(self, service, funded, port):
        result = await service.create_runway_scenario(TENANT, runway_request())
        scenario_id = result.scenario.id

        response = await service.delete_runway_scenario(TENANT, scenario_id)
        assert response.deleted is True

        with pytest.raises(NotFoundError):
            await service.get_runway_scenario(TENANT, scenario_id)
        with pytest.raises(NotFoundError):
            await service.delete_runway_scenario(TENANT, scenario_id)
        assert await service.list_runway_scenarios(TENANT) == []
        assert port.artifacts[(ArtifactKind.RUNWAY_SCENARIO, scenario_id)].is_active is False

    @pytest.mark.asyncio
    async def test_malformed_id_rejected_before_storage(self, service, port):
        with pytest.raises(BadRequestError):
            await service.get_runway_scenario(TENANT, "not-an-id")
        with pytest.raises(BadRequestError):
            await service.delete_runway_scenario(TENANT, "cff_0123456789ab")
        assert port.calls == []

    @pytest.mark.asyncio
    async def test_compare_orders_by_runway(self, service, funded):
        await service.create_runway_scenario(TENANT, runway_request(name="Lean", initial_monthly_burn=50_000.0))
        await service.create_runway_scenario(TENANT, runway_request(name="Base"))

        comparison = await service.compare_runway_scenarios(TENANT)

        assert [s.name for s in comparison.scenarios] == ["Lean", "Base"]
        assert comparison.insights.best_scenario.total_runway_months == 20
        assert comparison.insights.worst_scenario.total_runway_months == 10
        assert comparison.insights.average_runway == pytest.approx(15.0)

    @pytest.mark.asyncio
    async def test_compare_empty(self, service):
        comparison = await service.compare_runway_scenarios(TENANT)
        assert comparison.scenarios == []
        assert comparison.insights.best_scenario is None


# =============================================================================
# Currency handling
# =============================================================================

class TestCurrency:
    """Tests for currency resolution."""

    @pytest.mark.asyncio
    async def test_mixed_accounts_use_default_currency(self, service, port):
        port.add_account(TENANT, 100.0, "USD")
        port.add_account(TENANT, 900.0, "EUR")

        position = await service.get_current_cash_position(TENANT)

        assert position.currency == "USD"
        assert position.cash == 100.0
        assert position.accounts == 2

    @pytest.mark.asyncio
    async def test_single_currency_is_inferred(self, service, port):
        port.add_account(TENANT, 400.0, "GBP")
        port.add_account(TENANT, 600.0, "gbp")

        position = await service.get_current_cash_position(TENANT)

        assert position.currency == "GBP"
        assert position.cash == 1000.0

    @pytest.mark.asyncio
    async def test_requested_currency_wins(self, service, port):
        port.add_account(TENANT, 100.0, "USD")
        port.add_account(TENANT, 900.0, "EUR")

        position = await service.get_current_cash_position(TENANT, "eur")

        assert position.currency == "EUR"
        assert position.cash == 900.0


# =============================================================================
# Fundraising
# =============================================================================

class TestFundraising:
    """Tests for readiness and predictions."""

    @pytest.fixture
    def company(self, port):
        port.add_account(TENANT, 1_200_000.0)
        for month in (8, 9, 10):
            port.add_expense(TENANT, 2026, month, 100_000.0)
            port.add_revenue(TENANT, 2026, month, 20_000.0)
        port.snapshots[TENANT] = [
            KpiSnapshotView(snapshot_date=date(2026, 10, 1) - timedelta(days=30 * i), dau=dau)
            for i, dau in enumerate([130, 120, 110, 100])
        ]
        port.headcount[TENANT] = 6
        return port

    @pytest.mark.asyncio
    async def test_readiness(self, service, company):
        readiness = await service.get_fundraising_readiness(TENANT)

        assert readiness.metrics.monthly_burn == pytest.approx(100_000.0)
        assert readiness.metrics.monthly_revenue == pytest.approx(20_000.0)
        assert readiness.metrics.runway_months == pytest.approx(12.0)
        assert readiness.metrics.dau_growth == pytest.approx(0.3)
        assert readiness.metrics.team_size == 6
        burn = readiness.probability_factors[0]
        assert burn.factor == "Current burn rate"
        assert burn.impact == 0.6
        assert readiness.amount_probability <= readiness.timeline_probability <= readiness.overall_probability

    @pytest.mark.asyncio
    async def test_prediction_uses_market_score(self, service, company, clock):
        implicit = await service.create_fundraising_prediction(TENANT, FundraisingPredictionCreate(
            prediction_name="Seed",
            round_type=RoundType.SEED,
            target_round_size=2_000_000.0,
            key_milestones=[KeyMilestone(title="Launch", completion_percentage=30.0)],
        ))
        explicit = await service.create_fundraising_prediction(TENANT, FundraisingPredictionCreate(
            prediction_name="Seed explicit",
            round_type=RoundType.SEED,
            target_round_size=2_000_000.0,
            market_conditions=0.7,
        ))

        assert implicit.id.startswith("fpred_")
        assert implicit.prediction_date == clock.now()
        assert implicit.predicted_start_date == clock.now() + timedelta(days=30)
        assert implicit.market_conditions.sector_sentiment == "neutral"
        assert implicit.overall_probability == pytest.approx(explicit.overall_probability)
        assert implicit.recommendations[-1].action == "Complete key milestones: Launch"

    @pytest.mark.asyncio
    async def test_prediction_lifecycle(self, service, company):
        prediction = await service.create_fundraising_prediction(TENANT, FundraisingPredictionCreate(
            prediction_name="Series A", round_type=RoundType.SERIES_A, target_round_size=8_000_000.0,
        ))
        assert [p.id for p in await service.list_fundraising_predictions(TENANT)] == [prediction.id]
        assert (await service.get_fundraising_prediction(TENANT, prediction.id)).id == prediction.id

        await service.delete_fundraising_prediction(TENANT, prediction.id)
        with pytest.raises(NotFoundError):
            await service.get_fundraising_prediction(TENANT, prediction.id)

    @pytest.mark.asyncio
    async def test_market_comparables_validation(self, service):
        with pytest.raises(ValidationError):
            await service.get_market_comparables(TENANT, "Series Z", 1_000_000.0)
        with pytest.raises(ValidationError):
            await service.get_market_comparables(TENANT, "Seed", 0.0)

        conditions = await service.get_market_comparables(TENANT, "Seed", 1_000_000.0)
        assert conditions.sector_sentiment == "neutral"
        assert conditions.average_time_to_close == 120


# =============================================================================
# Cash flow
# =============================================================================

class TestCashFlow:
    """Tests for cash-flow forecasts."""

    @pytest.fixture
    def payroll_only(self, port):
        port.add_account(TENANT, 50_000.0)
        port.add_expense(TENANT, 2026, 9, 80_000.0, category="Salaries & Wages")
        return port

    @pytest.mark.asyncio
    async def test_payroll_only_forecast(self, service, payroll_only):
        forecast = await service.create_cash_flow_forecast(TENANT, CashFlowForecastCreate(
            forecast_name="Q4", start_date=date(2026, 10, 19),
        ))

        assert forecast.id.startswith("cff_")
        assert forecast.end_date == date(2027, 1, 19)
        assert forecast.initial_cash_position == 50_000.0
        balances = [w.cash_balance for w in forecast.weekly_forecasts[:3]]
        assert balances == pytest.approx([30_000.0, 10_000.0, -10_000.0])
        assert forecast.weekly_forecasts[0].payroll == pytest.approx(20_000.0)

        critical = [a for a in forecast.alerts if a.severity == "critical"]
        assert critical[0].metric == "cashBalance"
        assert critical[0].week_number == 3
        assert forecast.requires_additional_funding is True
        assert forecast.additional_funding_date == date(2026, 11, 2)
        assert forecast.thresholds.payroll_categories == ["Salaries & Wages"]

    @pytest.mark.asyncio
    async def test_threshold_overrides(self, service, payroll_only):
        forecast = await service.create_cash_flow_forecast(TENANT, CashFlowForecastCreate(
            forecast_name="Custom",
            start_date=date(2026, 10, 19),
            thresholds=ThresholdOverrides(low_cash=0.0, payroll_categories=["Contractors"]),
        ))

        assert forecast.thresholds.low_cash == 0.0
        assert forecast.thresholds.high_burn == 50_000.0
        assert forecast.weekly_forecasts[0].payroll == 0.0
        assert forecast.weekly_forecasts[0].operating_expenses == pytest.approx(20_000.0)
        assert not any(a.message == "Cash balance below safety threshold" for a in forecast.alerts)

    @pytest.mark.asyncio
    async def test_outstanding_balances_feed_the_forecast(self, service, payroll_only):
        forecast = await service.create_cash_flow_forecast(TENANT, CashFlowForecastCreate(
            forecast_name="Q4",
            start_date=date(2026, 10, 19),
            outstanding_receivables=10_000.0,
            outstanding_payables=4_000.0,
        ))

        assert forecast.initial_cash_position == 50_000.0
        assert forecast.weekly_forecasts[0].cash_balance == pytest.approx(36_000.0)
        assert forecast.additional_funding_date == date(2026, 11, 2)

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, service, port):
        with pytest.raises(ValidationError):
            await service.create_cash_flow_forecast(TENANT, CashFlowForecastCreate(
                forecast_name="Backwards",
                start_date=date(2026, 10, 19),
                end_date=date(2026, 10, 19),
            ))

    @pytest.mark.asyncio
    async def test_historical_data(self, service, payroll_only):
        port = payroll_only
        port.add_expense(TENANT, 2025, 1, 5.0)
        port.add_revenue(TENANT, 2026, 8, 1_000.0)

        history = await service.get_historical_cash_flow_data(TENANT)

        assert history.since == date(2026, 4, 17)
        assert [(e.month, e.category) for e in history.expenses] == [(9, "Salaries & Wages")]
        assert [r.total for r in history.revenues] == [1_000.0]

    @pytest.mark.asyncio
    async def test_soft_delete(self, service, payroll_only):
        forecast = await service.create_cash_flow_forecast(TENANT, CashFlowForecastCreate(forecast_name="Q4"))
        await service.delete_cash_flow_forecast(TENANT, forecast.id)

        assert await service.list_cash_flow_forecasts(TENANT) == []
        with pytest.raises(NotFoundError):
            await service.get_cash_flow_forecast(TENANT, forecast.id)


# =============================================================================
# Revenue cohorts
# =============================================================================

class TestRevenueCohorts:
    """Tests for cohort operations."""

    @pytest.mark.asyncio
    async def test_create_computes_analysis(self, service):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8, 0.6, 0.5]))

        assert cohort.id.startswith("cohort_")
        assert cohort.average_cac == pytest.approx(20.0)
        assert cohort.projected_ltv > cohort.actual_ltv > 0
        assert cohort.ltcac_ratio == pytest.approx(cohort.model_parameters["ltv_per_user"] / 20.0)
        assert cohort.model_parameters["retention_model"] == "exponential"

    @pytest.mark.asyncio
    async def test_create_without_metrics(self, service):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([], metrics=[]))
        assert cohort.projected_ltv == 0.0
        assert cohort.payback_period is None
        assert cohort.insights == []

    @pytest.mark.asyncio
    async def test_short_history_cannot_be_projected(self, service, port):
        """Two historical periods fail and leave the cohort untouched."""
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8]))
        port.calls.clear()

        with pytest.raises(InsufficientHistoryError):
            await service.generate_cohort_projections(TENANT, cohort.id)

        stored = await service.get_revenue_cohort(TENANT, cohort.id)
        assert stored.version == 1
        assert len(stored.metrics) == 2
        assert "update_artifact" not in port.calls

    @pytest.mark.asyncio
    async def test_projections_append_periods(self, service):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8, 0.6]))

        result = await service.generate_cohort_projections(TENANT, cohort.id, projection_months=12)

        assert result.projection_summary.months_projected == 9
        assert result.cohort.version == 2
        assert result.cohort.projection_months == 12
        assert len(result.cohort.metrics) == 12
        assert [m.is_projected for m in result.cohort.metrics[:3]] == [False] * 3
        assert all(m.is_projected for m in result.cohort.metrics[3:])

    @pytest.mark.asyncio
    async def test_reprojecting_replaces_previous_projection(self, service):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8, 0.6]))
        await service.generate_cohort_projections(TENANT, cohort.id, projection_months=12)

        result = await service.generate_cohort_projections(TENANT, cohort.id, projection_months=6)

        assert len(result.cohort.metrics) == 6
        assert result.cohort.version == 3

    @pytest.mark.asyncio
    async def test_same_metrics_are_idempotent(self, service, port):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8, 0.6]))

        updated = await service.update_cohort_metrics(TENANT, cohort.id, cohort_metrics([1.0, 0.8, 0.6]))

        assert updated.version == 1
        assert "update_artifact" not in port.calls

    @pytest.mark.asyncio
    async def test_new_metrics_recompute(self, service):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8, 0.6]))

        updated = await service.update_cohort_metrics(
            TENANT, cohort.id, list(reversed(cohort_metrics([1.0, 0.9, 0.85, 0.8]))),
        )

        assert updated.version == 2
        assert [m.period_number for m in updated.metrics] == [0, 1, 2, 3]
        assert updated.projected_ltv > cohort.projected_ltv

    @pytest.mark.asyncio
    async def test_concurrent_update_conflicts(self, service, port):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8, 0.6]))
        key = (ArtifactKind.REVENUE_COHORT, cohort.id)
        port.artifacts[key] = port.artifacts[key].model_copy(update={"version": 2})

        original_find = port.find_artifact

        async def stale_find(*args, **kwargs):
            record = await original_find(*args, **kwargs)
            return record.model_copy(update={"version": 1})

        port.find_artifact = stale_find

        with pytest.raises(ConflictError):
            await service.update_cohort_metrics(TENANT, cohort.id, cohort_metrics([1.0, 0.9, 0.8]))

    @pytest.mark.asyncio
    async def test_compare(self, service):
        weak = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.5, 0.2], cohort_name="Weak"))
        strong = await service.create_revenue_cohort(TENANT, cohort_request(
            [1.0, 0.9, 0.85], cohort_name="Strong", cohort_start_date=date(2026, 2, 1),
        ))

        comparison = await service.compare_revenue_cohorts(TENANT)

        assert [c.id for c in comparison.cohorts] == [strong.id, weak.id]
        assert comparison.summary.best_by_ltv.id == strong.id
        assert comparison.summary.best_by_retention.id == strong.id
        assert comparison.summary.average_retention == pytest.approx((0.85 + 0.2) / 2)

    @pytest.mark.asyncio
    async def test_hard_delete(self, service, port):
        cohort = await service.create_revenue_cohort(TENANT, cohort_request([1.0, 0.8]))

        await service.delete_revenue_cohort(TENANT, cohort.id)

        assert (ArtifactKind.REVENUE_COHORT, cohort.id) not in port.artifacts
        with pytest.raises(NotFoundError):
            await service.delete_revenue_cohort(TENANT, cohort.id)

    @pytest.mark.asyncio
    async def test_malformed_cohort_id(self, service, port):
        with pytest.raises(BadRequestError):
            await service.generate_cohort_projections(TENANT, "cohort_XYZ")
        assert port.calls == []


class TestRequestSchemas:
    """Tests for non-finite numbers in request models."""

    def test_infinite_acquisition_cost_rejected(self):
        with pytest.raises(SchemaValidationError):
            cohort_request([1.0, 0.8, 0.6], acquisition_cost=float("inf"))

    def test_infinite_round_size_rejected(self):
        with pytest.raises(SchemaValidationError):
            FundraisingPredictionCreate(
                prediction_name="Seed", round_type=RoundType.SEED, target_round_size=float("inf"),
            )

    def test_nan_metric_rejected(self):
        with pytest.raises(SchemaValidationError):
            CohortMetricIn(period_number=0, period_label="Month 0", revenue=float("nan"))

    def test_infinite_threshold_rejected(self):
        with pytest.raises(SchemaValidationError):
            ThresholdOverrides(low_cash=float("inf"))


class TestSanitize:
    """Tests for the persisted-float guard."""

    def test_replaces_non_finite_values(self):
        data = {"a": float("nan"), "b": [1.5, float("inf")], "c": {"d": float("-inf")}, "e": "x"}
        assert sanitize(data) == {"a": 0.0, "b": [1.5, 0.0], "c": {"d": 0.0}, "e": "x"}
