"""
Predictive analytics service - the public entry point of the engine.

Each operation reads history through the data access port, freezes the
derived inputs, runs the pure engines and persists the resulting artifact.
"""
import asyncio
import logging
import math
import weakref
from typing import Any, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from horizon.analytics import cashflow, cohort, fundraising, kernel
from horizon.analytics.clock import Clock, SystemClock
from horizon.analytics.errors import (
    BadRequestError,
    InsufficientHistoryError,
    NotFoundError,
    ValidationError,
)
from horizon.analytics.market import MarketComparablesProvider, build_provider
from horizon.analytics.money import CurrencyMismatchError, Money, sum_money
from horizon.analytics.monte_carlo import MonteCarloRunner, summarise
from horizon.analytics.ports import ArtifactKind, BankAccountBalance, DataAccessPort, MonthlyTotal
from horizon.analytics.runway import (
    BURN_METRIC,
    REVENUE_METRIC,
    FundraisingEvent,
    RunwayInputs,
    default_assumptions,
    growth_for_metric,
    project_runway,
)
from horizon.analytics.schemas import (
    Assumption,
    CashFlowForecastCreate,
    CashFlowForecastRecord,
    CashPositionOut,
    CohortComparison,
    CohortComparisonItem,
    CohortComparisonSummary,
    CohortMetricIn,
    CohortProjectionResult,
    DeleteResponse,
    FundraisingPredictionCreate,
    FundraisingPredictionRecord,
    HistoricalCashFlowData,
    MarketConditionsOut,
    MonthlyTotalOut,
    ProjectionSummary,
    ReadinessResponse,
    RevenueCohortCreate,
    RevenueCohortRecord,
    RunwayComparison,
    RunwayComparisonInsights,
    RunwayComparisonItem,
    RunwayScenarioCreate,
    RunwayScenarioRecord,
    RunwayScenarioResult,
    SimulationSummary,
)
from horizon.config import Settings, settings as default_settings
from horizon.models.base import generate_id, is_valid_id

logger = logging.getLogger(__name__)

RUNWAY_LIST_LIMIT = 20
RUNWAY_COMPARE_LIMIT = 5
PREDICTION_LIST_LIMIT = 50
FORECAST_LIST_LIMIT = 50
COHORT_LIST_LIMIT = 100
TRAILING_MONTHS = 3
HISTORY_MONTHS = 6
KPI_SNAPSHOT_WINDOW = 6

_cohort_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _cohort_lock(cohort_id: str) -> asyncio.Lock:
    lock = _cohort_locks.get(cohort_id)
    if lock is None:
        lock = asyncio.Lock()
        _cohort_locks[cohort_id] = lock
    return lock


def sanitize(value: Any) -> Any:
    """Replace every non-finite float in a nested structure with 0."""
    if isinstance(value, float):
        return kernel.finite_or(value)
    if isinstance(value, dict):
        return {k: sanitize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize(v) for v in value]
    return value


class AnalyticsService:
    """Orchestrates the predictive analytics engines for one data source."""

    def __init__(
        self,
        port: DataAccessPort,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
        comparables: Optional[MarketComparablesProvider] = None,
    ):
        self.port = port
        self.clock = clock or SystemClock()
        self.settings = config or default_settings
        self.comparables = comparables or build_provider(
            self.settings.MARKET_DATA_URL,
            self.settings.MARKET_DATA_API_KEY,
            self.settings.MARKET_DATA_TIMEOUT_SECONDS,
        )

    # =========================================================================
    # Shared helpers
    # =========================================================================

    @staticmethod
    def _check_id(kind: ArtifactKind, artifact_id: str) -> None:
        if not is_valid_id(artifact_id, kind.id_prefix):
            raise BadRequestError(
                f"Invalid {kind.value} id",
                details={"id": artifact_id},
            )

    async def _get(self, tenant_id: str, kind: ArtifactKind, artifact_id: str):
        self._check_id(kind, artifact_id)
        record = await self.port.find_artifact(tenant_id, kind, artifact_id)
        if record is None:
            raise NotFoundError(f"{kind.value} {artifact_id} not found")
        return record

    async def _delete(self, tenant_id: str, kind: ArtifactKind, artifact_id: str) -> DeleteResponse:
        self._check_id(kind, artifact_id)
        if kind.soft_deletable:
            deleted = await self.port.soft_delete_artifact(tenant_id, kind, artifact_id)
        else:
            deleted = await self.port.delete_artifact(tenant_id, kind, artifact_id)
        if not deleted:
            raise NotFoundError(f"{kind.value} {artifact_id} not found")
        logger.info(f"Deleted {kind.value} {artifact_id} for tenant {tenant_id}")
        return DeleteResponse(id=artifact_id, message=f"{kind.value} deleted")

    def _resolve_currency(self, requested: Optional[str], accounts: Sequence[BankAccountBalance]) -> str:
        if requested:
            return requested.upper()
        currencies = {a.currency.upper() for a in accounts}
        if len(currencies) == 1:
            return currencies.pop()
        return self.settings.DEFAULT_CURRENCY

    @staticmethod
    def _total_cash(tenant_id: str, accounts: Sequence[BankAccountBalance], currency: str) -> float:
        matching = [a for a in accounts if a.currency.upper() == currency]
        skipped = len(accounts) - len(matching)
        if skipped:
            logger.warning(f"Skipped {skipped} bank account(s) not in {currency} for tenant {tenant_id}")
        total = sum_money((Money(a.current_balance, a.currency) for a in matching), currency)
        return total.amount

    @staticmethod
    def _in_currency(
        tenant_id: str, totals: Sequence[MonthlyTotal], currency: str, label: str
    ) -> List[MonthlyTotal]:
        matching = [t for t in totals if t.currency.upper() == currency]
        if len(matching) != len(totals):
            logger.warning(
                f"Skipped {len(totals) - len(matching)} {label} total(s) not in {currency} "
                f"for tenant {tenant_id}"
            )
        return matching

    async def _position(self, tenant_id: str, requested_currency: Optional[str]):
        accounts = await self.port.list_bank_accounts(tenant_id)
        currency = self._resolve_currency(requested_currency, accounts)
        return currency, self._total_cash(tenant_id, accounts, currency), len(accounts)

    # =========================================================================
    # Runway scenarios
    # =========================================================================

    async def _simulate(
        self, inputs: RunwayInputs, variance: float, iterations: int, seed: Optional[int]
    ) -> SimulationSummary:
        runner = MonteCarloRunner(inputs, variance, iterations, seed)
        paths = []
        for batch in runner.batches():
            paths.extend(batch)
            await asyncio.sleep(0)
        result = summarise(paths)
        return SimulationSummary(
            **sanitize(result.to_dict()),
            variance=runner.variance,
            seed=seed,
        )

    async def create_runway_scenario(
        self, tenant_id: str, request: RunwayScenarioCreate, user_id: Optional[str] = None
    ) -> RunwayScenarioResult:
        today = self.clock.today()
        start_date = request.start_date or today
        currency, total_cash, _ = await self._position(tenant_id, request.currency)

        since = today - relativedelta(months=TRAILING_MONTHS)
        expenses = self._in_currency(
            tenant_id, await self.port.aggregate_expenses(tenant_id, since), currency, "expense"
        )
        revenues = self._in_currency(
            tenant_id, await self.port.aggregate_revenues(tenant_id, since), currency, "revenue"
        )

        initial_cash = request.initial_cash_balance if request.initial_cash_balance is not None else total_cash
        monthly_burn = (
            request.initial_monthly_burn if request.initial_monthly_burn is not None
            else kernel.mean([t.total for t in expenses])
        )
        monthly_revenue = (
            request.initial_monthly_revenue if request.initial_monthly_revenue is not None
            else kernel.mean([t.total for t in revenues])
        )

        if request.assumptions is not None:
            assumptions = request.assumptions
        else:
            assumptions = [Assumption(**a) for a in default_assumptions(monthly_burn, monthly_revenue)]
        assumption_dicts = [a.model_dump() for a in assumptions]

        for event in request.planned_fundraising_events:
            if event.currency and event.currency.upper() != currency:
                raise CurrencyMismatchError(
                    f"Fundraising event in {event.currency.upper()} cannot fund a {currency} scenario",
                    details={"month": event.month},
                )

        inputs = RunwayInputs(
            start_date=start_date,
            initial_cash=initial_cash,
            initial_burn=monthly_burn,
            initial_revenue=monthly_revenue,
            burn_growth_rate=growth_for_metric(assumption_dicts, BURN_METRIC),
            revenue_growth_rate=growth_for_metric(assumption_dicts, REVENUE_METRIC),
            projection_months=request.projection_months or self.settings.DEFAULT_PROJECTION_MONTHS,
            fundraising_events=[
                FundraisingEvent(
                    month=e.month,
                    amount=e.amount,
                    probability=e.probability,
                    currency=currency,
                    description=e.description,
                )
                for e in request.planned_fundraising_events
            ],
        )
        projection = project_runway(inputs)

        variance = (
            request.simulation_variance if request.simulation_variance is not None
            else self.settings.MONTE_CARLO_VARIANCE
        )
        simulation = await self._simulate(
            inputs,
            variance,
            request.simulation_iterations or self.settings.MONTE_CARLO_ITERATIONS,
            request.simulation_seed,
        )

        record = RunwayScenarioRecord(
            id=generate_id(ArtifactKind.RUNWAY_SCENARIO.id_prefix),
            tenant_id=tenant_id,
            created_by=user_id,
            name=request.name,
            description=request.description,
            scenario_type=request.scenario_type,
            currency=currency,
            start_date=start_date,
            initial_cash_balance=kernel.finite_or(initial_cash),
            initial_monthly_burn=kernel.finite_or(monthly_burn),
            initial_monthly_revenue=kernel.finite_or(monthly_revenue),
            projection_months=inputs.projection_months,
            assumptions=sanitize(assumption_dicts),
            planned_fundraising_events=[
                {**e.model_dump(), "currency": currency} for e in request.planned_fundraising_events
            ],
            monthly_projections=sanitize([row.to_dict() for row in projection.monthly_projections]),
            total_runway_months=projection.runway_months,
            runway_is_floor=projection.runway_is_floor,
            date_of_cash_out=projection.cash_out_date,
            break_even_month=projection.break_even_month,
            total_cash_burned=kernel.finite_or(projection.total_burned),
            total_revenue_generated=kernel.finite_or(projection.total_revenue),
            simulation=simulation,
        )
        stored = await self.port.create_artifact(ArtifactKind.RUNWAY_SCENARIO, record)
        logger.info(
            f"Created runway scenario {stored.id} for tenant {tenant_id}: "
            f"{projection.runway_months} months (p50 {simulation.p50})"
        )
        return RunwayScenarioResult(scenario=stored, simulation=simulation)

    async def list_runway_scenarios(self, tenant_id: str) -> List[RunwayScenarioRecord]:
        return await self.port.list_artifacts(
            tenant_id, ArtifactKind.RUNWAY_SCENARIO, limit=RUNWAY_LIST_LIMIT, active_only=True
        )

    async def compare_runway_scenarios(self, tenant_id: str) -> RunwayComparison:
        scenarios = await self.port.list_artifacts(
            tenant_id, ArtifactKind.RUNWAY_SCENARIO, limit=RUNWAY_COMPARE_LIMIT, active_only=True
        )
        items = [
            RunwayComparisonItem(
                id=s.id,
                name=s.name,
                scenario_type=s.scenario_type,
                total_runway_months=s.total_runway_months,
                runway_is_floor=s.runway_is_floor,
                date_of_cash_out=s.date_of_cash_out,
                break_even_month=s.break_even_month,
                total_cash_burned=s.total_cash_burned,
                burn_growth_rate=growth_for_metric([a.model_dump() for a in s.assumptions], BURN_METRIC),
                revenue_growth_rate=growth_for_metric([a.model_dump() for a in s.assumptions], REVENUE_METRIC),
                created_by=s.created_by,
                created_at=s.created_at,
            )
            for s in scenarios
        ]
        items.sort(key=lambda item: item.total_runway_months, reverse=True)

        if not items:
            return RunwayComparison(scenarios=[], insights=RunwayComparisonInsights())
        return RunwayComparison(
            scenarios=items,
            insights=RunwayComparisonInsights(
                best_scenario=items[0],
                worst_scenario=items[-1],
                average_runway=kernel.mean([i.total_runway_months for i in items]),
            ),
        )

    async def get_runway_scenario(self, tenant_id: str, scenario_id: str) -> RunwayScenarioRecord:
        return await self._get(tenant_id, ArtifactKind.RUNWAY_SCENARIO, scenario_id)

    async def delete_runway_scenario(self, tenant_id: str, scenario_id: str) -> DeleteResponse:
        return await self._delete(tenant_id, ArtifactKind.RUNWAY_SCENARIO, scenario_id)

    # =========================================================================
    # Fundraising
    # =========================================================================

    async def _readiness_metrics(
        self, tenant_id: str, requested_currency: Optional[str] = None
    ) -> fundraising.ReadinessMetrics:
        currency, total_cash, _ = await self._position(tenant_id, requested_currency)
        since = self.clock.today() - relativedelta(months=TRAILING_MONTHS)
        expenses = self._in_currency(
            tenant_id, await self.port.aggregate_expenses(tenant_id, since), currency, "expense"
        )
        revenues = self._in_currency(
            tenant_id, await self.port.aggregate_revenues(tenant_id, since), currency, "revenue"
        )
        snapshots = await self.port.list_kpi_snapshots(tenant_id, KPI_SNAPSHOT_WINDOW)
        team_size = await self.port.count_active_headcount(tenant_id)

        return fundraising.build_readiness_metrics(
            expense_total=sum(t.total for t in expenses),
            revenue_total=sum(t.total for t in revenues),
            total_cash=total_cash,
            dau_growth=fundraising.compute_dau_growth([s.dau for s in snapshots]),
            team_size=team_size,
            currency=currency,
            months=TRAILING_MONTHS,
        )

    async def get_fundraising_readiness(
        self, tenant_id: str, currency: Optional[str] = None
    ) -> ReadinessResponse:
        metrics = await self._readiness_metrics(tenant_id, currency)
        probabilities = fundraising.calculate_probabilities(metrics)
        return ReadinessResponse(
            metrics=sanitize(metrics.to_dict()),
            overall_probability=probabilities.overall,
            timeline_probability=probabilities.timeline,
            amount_probability=probabilities.amount,
            probability_factors=[f.to_dict() for f in probabilities.factors],
        )

    @staticmethod
    def _round_type(value) -> fundraising.RoundType:
        try:
            return fundraising.RoundType(value)
        except ValueError:
            raise ValidationError(f"Unknown round type: {value}")

    async def get_market_comparables(
        self, tenant_id: str, round_type: str, target_size: float
    ) -> MarketConditionsOut:
        parsed = self._round_type(round_type)
        if not math.isfinite(target_size) or target_size <= 0:
            raise ValidationError("target_size must be a positive number")
        conditions = await self.comparables.get_comparables(parsed, target_size)
        return MarketConditionsOut(**sanitize(conditions.to_dict()))

    async def create_fundraising_prediction(
        self, tenant_id: str, request: FundraisingPredictionCreate, user_id: Optional[str] = None
    ) -> FundraisingPredictionRecord:
        now = self.clock.now()
        metrics = await self._readiness_metrics(tenant_id, request.currency)
        market = await self.comparables.get_comparables(request.round_type, request.target_round_size)

        probabilities = fundraising.calculate_probabilities(
            metrics,
            market_conditions=(
                request.market_conditions if request.market_conditions is not None else market.score
            ),
            team_strength=(
                request.team_strength if request.team_strength is not None
                else fundraising.DEFAULT_TEAM_STRENGTH
            ),
            product_market_fit=(
                request.product_market_fit if request.product_market_fit is not None
                else fundraising.DEFAULT_PRODUCT_MARKET_FIT
            ),
        )
        milestones = [
            fundraising.Milestone(m.title, m.completion_percentage) for m in request.key_milestones
        ]
        timeline = fundraising.predict_timeline(request.round_type, metrics, milestones, now)
        recommendations = fundraising.generate_recommendations(metrics, milestones, now)

        record = FundraisingPredictionRecord(
            id=generate_id(ArtifactKind.FUNDRAISING_PREDICTION.id_prefix),
            tenant_id=tenant_id,
            created_by=user_id,
            prediction_name=request.prediction_name,
            round_type=request.round_type,
            target_round_size=request.target_round_size,
            target_valuation=request.target_valuation,
            currency=metrics.currency,
            prediction_date=now,
            predicted_start_date=timeline.predicted_start_date,
            predicted_close_date=timeline.predicted_close_date,
            confidence_interval_days=timeline.confidence_interval_days,
            overall_probability=kernel.finite_or(probabilities.overall),
            timeline_probability=kernel.finite_or(probabilities.timeline),
            amount_probability=kernel.finite_or(probabilities.amount),
            probability_factors=sanitize([f.to_dict() for f in probabilities.factors]),
            key_milestones=request.key_milestones,
            market_conditions=sanitize(market.to_dict()),
            recommendations=[r.to_dict() for r in recommendations],
            readiness_metrics=sanitize(metrics.to_dict()),
        )
        stored = await self.port.create_artifact(ArtifactKind.FUNDRAISING_PREDICTION, record)
        logger.info(
            f"Created fundraising prediction {stored.id} for tenant {tenant_id}: "
            f"overall {probabilities.overall:.2f}"
        )
        return stored

    async def list_fundraising_predictions(self, tenant_id: str) -> List[FundraisingPredictionRecord]:
        return await self.port.list_artifacts(
            tenant_id, ArtifactKind.FUNDRAISING_PREDICTION, limit=PREDICTION_LIST_LIMIT
        )

    async def get_fundraising_prediction(
        self, tenant_id: str, prediction_id: str
    ) -> FundraisingPredictionRecord:
        return await self._get(tenant_id, ArtifactKind.FUNDRAISING_PREDICTION, prediction_id)

    async def delete_fundraising_prediction(self, tenant_id: str, prediction_id: str) -> DeleteResponse:
        return await self._delete(tenant_id, ArtifactKind.FUNDRAISING_PREDICTION, prediction_id)

    # =========================================================================
    # Cash flow
    # =========================================================================

    async def get_current_cash_position(
        self, tenant_id: str, currency: Optional[str] = None
    ) -> CashPositionOut:
        resolved, total_cash, accounts = await self._position(tenant_id, currency)
        return CashPositionOut(
            cash=total_cash,
            receivables=0.0,
            payables=0.0,
            currency=resolved,
            accounts=accounts,
        )

    async def _history(self, tenant_id: str, currency: str):
        since = self.clock.today() - relativedelta(months=HISTORY_MONTHS)
        expenses = self._in_currency(
            tenant_id,
            await self.port.aggregate_expenses(tenant_id, since, by_category=True),
            currency,
            "expense",
        )
        revenues = self._in_currency(
            tenant_id, await self.port.aggregate_revenues(tenant_id, since), currency, "revenue"
        )
        return since, expenses, revenues

    async def get_historical_cash_flow_data(
        self, tenant_id: str, currency: Optional[str] = None
    ) -> HistoricalCashFlowData:
        resolved, _, _ = await self._position(tenant_id, currency)
        since, expenses, revenues = await self._history(tenant_id, resolved)
        return HistoricalCashFlowData(
            currency=resolved,
            since=since,
            expenses=[MonthlyTotalOut(**vars(t)) for t in expenses],
            revenues=[MonthlyTotalOut(**vars(t)) for t in revenues],
        )

    def _thresholds(self, request: CashFlowForecastCreate) -> cashflow.ForecastThresholds:
        overrides = request.thresholds.model_dump(exclude_none=True) if request.thresholds else {}
        payroll = overrides.get("payroll_categories", self.settings.PAYROLL_CATEGORIES)
        return cashflow.ForecastThresholds(
            low_cash=overrides.get("low_cash", self.settings.FORECAST_LOW_CASH_THRESHOLD),
            high_burn=overrides.get("high_burn", self.settings.FORECAST_HIGH_BURN_THRESHOLD),
            best_case_multiplier=overrides.get(
                "best_case_multiplier", self.settings.FORECAST_BEST_CASE_MULTIPLIER
            ),
            worst_case_multiplier=overrides.get(
                "worst_case_multiplier", self.settings.FORECAST_WORST_CASE_MULTIPLIER
            ),
            payroll_categories=tuple(payroll),
        )

    async def create_cash_flow_forecast(
        self, tenant_id: str, request: CashFlowForecastCreate, user_id: Optional[str] = None
    ) -> CashFlowForecastRecord:
        start_date = request.start_date or self.clock.today()
        horizon = request.horizon_months or self.settings.FORECAST_DEFAULT_HORIZON_MONTHS
        end_date = request.end_date or start_date + relativedelta(months=horizon)
        if end_date <= start_date:
            raise ValidationError(
                "end_date must be after start_date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        currency, total_cash, _ = await self._position(tenant_id, request.currency)
        _, expenses, revenues = await self._history(tenant_id, currency)

        expenses_by_category: Dict[str, List[float]] = {}
        for total in expenses:
            expenses_by_category.setdefault(total.category or "Other", []).append(total.total)

        thresholds = self._thresholds(request)
        position = cashflow.CashPosition(
            cash=total_cash,
            receivables=request.outstanding_receivables,
            payables=request.outstanding_payables,
            currency=currency,
        )
        result = cashflow.forecast_cash_flow(
            position,
            expenses_by_category,
            [t.total for t in revenues],
            start_date=start_date,
            end_date=end_date,
            thresholds=thresholds,
            max_weeks=self.settings.FORECAST_MAX_WEEKS,
        )
        gap = result.funding_gap

        record = CashFlowForecastRecord(
            id=generate_id(ArtifactKind.CASH_FLOW_FORECAST.id_prefix),
            tenant_id=tenant_id,
            created_by=user_id,
            forecast_name=request.forecast_name,
            description=request.description,
            forecast_type=request.forecast_type,
            granularity=request.granularity,
            currency=currency,
            start_date=start_date,
            end_date=end_date,
            initial_cash_position=kernel.finite_or(total_cash),
            outstanding_receivables=request.outstanding_receivables,
            outstanding_payables=request.outstanding_payables,
            thresholds=thresholds.to_dict(),
            category_forecasts=sanitize([c.to_dict() for c in result.category_forecasts]),
            weekly_forecasts=sanitize([w.to_dict() for w in result.weekly_forecasts]),
            scenario_analysis=sanitize(result.scenario_analysis.to_dict()),
            alerts=sanitize([a.to_dict() for a in result.alerts]),
            minimum_cash_balance=kernel.finite_or(gap.minimum_cash_balance),
            minimum_cash_date=gap.minimum_cash_date,
            requires_additional_funding=gap.requires_additional_funding,
            additional_funding_needed=kernel.finite_or(gap.additional_funding_needed),
            additional_funding_date=gap.additional_funding_date,
        )
        stored = await self.port.create_artifact(ArtifactKind.CASH_FLOW_FORECAST, record)
        logger.info(
            f"Created cash flow forecast {stored.id} for tenant {tenant_id}: "
            f"{len(result.weekly_forecasts)} weeks, {len(result.alerts)} alerts"
        )
        return stored

    async def list_cash_flow_forecasts(self, tenant_id: str) -> List[CashFlowForecastRecord]:
        return await self.port.list_artifacts(
            tenant_id, ArtifactKind.CASH_FLOW_FORECAST, limit=FORECAST_LIST_LIMIT, active_only=True
        )

    async def get_cash_flow_forecast(self, tenant_id: str, forecast_id: str) -> CashFlowForecastRecord:
        return await self._get(tenant_id, ArtifactKind.CASH_FLOW_FORECAST, forecast_id)

    async def delete_cash_flow_forecast(self, tenant_id: str, forecast_id: str) -> DeleteResponse:
        return await self._delete(tenant_id, ArtifactKind.CASH_FLOW_FORECAST, forecast_id)

    # =========================================================================
    # Revenue cohorts
    # =========================================================================

    @staticmethod
    def _to_engine_metrics(metrics: Sequence[CohortMetricIn]) -> List[cohort.CohortMetric]:
        return cohort.sort_metrics([cohort.CohortMetric(**m.model_dump()) for m in metrics])

    def _analyze(
        self,
        metrics: Sequence[cohort.CohortMetric],
        initial_users: int,
        average_cac: float,
    ) -> Dict[str, Any]:
        """LTV, payback, ratio and insights for a cohort's metric vector."""
        history = cohort.historical_metrics(metrics)
        if not history:
            return {
                "ltv": cohort.calculate_ltv([], initial_users, average_cac),
                "fields": {
                    "actual_ltv": 0.0,
                    "projected_ltv": 0.0,
                    "ltcac_ratio": 0.0,
                    "payback_period": None,
                    "insights": [],
                    "model_parameters": {},
                },
            }

        ltv = cohort.calculate_ltv(
            history,
            initial_users,
            average_cac,
            discount_rate=self.settings.COHORT_DISCOUNT_RATE,
            horizon=self.settings.COHORT_LTV_HORIZON_MONTHS,
        )
        insights = cohort.generate_insights(
            metrics,
            ltv.ltcac_ratio,
            ltv.payback_period,
            long_payback_months=self.settings.COHORT_LONG_PAYBACK_MONTHS,
        )
        payback = ltv.payback_period
        return {
            "ltv": ltv,
            "fields": {
                "actual_ltv": kernel.finite_or(ltv.historical_ltv),
                "projected_ltv": kernel.finite_or(ltv.ltv),
                "ltcac_ratio": kernel.finite_or(ltv.ltcac_ratio),
                "payback_period": float(payback) if payback is not None else None,
                "insights": [i.to_dict() for i in insights],
                "model_parameters": sanitize({
                    **ltv.retention.parameters(),
                    "discount_rate": self.settings.COHORT_DISCOUNT_RATE,
                    "ltv_horizon_months": self.settings.COHORT_LTV_HORIZON_MONTHS,
                    "ltv_per_user": ltv.ltv_per_user,
                    "confidence": ltv.confidence,
                }),
            },
        }

    async def create_revenue_cohort(
        self, tenant_id: str, request: RevenueCohortCreate, user_id: Optional[str] = None
    ) -> RevenueCohortRecord:
        metrics = self._to_engine_metrics(request.metrics)
        cohort.validate_metrics(metrics)

        accounts = await self.port.list_bank_accounts(tenant_id)
        currency = self._resolve_currency(request.currency, accounts)
        average_cac = request.acquisition_cost / request.initial_users
        analysis = self._analyze(metrics, request.initial_users, average_cac)

        record = RevenueCohortRecord(
            id=generate_id(ArtifactKind.REVENUE_COHORT.id_prefix),
            tenant_id=tenant_id,
            created_by=user_id,
            cohort_name=request.cohort_name,
            cohort_type=request.cohort_type,
            cohort_start_date=request.cohort_start_date,
            currency=currency,
            acquisition_channel=request.acquisition_channel,
            initial_users=request.initial_users,
            acquisition_cost=request.acquisition_cost,
            average_cac=average_cac,
            metrics=[m.to_dict() for m in metrics],
            projection_months=request.projection_months,
            **analysis["fields"],
        )
        stored = await self.port.create_artifact(ArtifactKind.REVENUE_COHORT, record)
        logger.info(f"Created revenue cohort {stored.id} for tenant {tenant_id}")
        return stored

    async def list_revenue_cohorts(self, tenant_id: str) -> List[RevenueCohortRecord]:
        return await self.port.list_artifacts(
            tenant_id,
            ArtifactKind.REVENUE_COHORT,
            limit=COHORT_LIST_LIMIT,
            order_by="cohort_start_date",
        )

    async def compare_revenue_cohorts(self, tenant_id: str) -> CohortComparison:
        cohorts = await self.list_revenue_cohorts(tenant_id)
        items = [
            CohortComparisonItem(
                id=c.id,
                cohort_name=c.cohort_name,
                cohort_start_date=c.cohort_start_date,
                initial_users=c.initial_users,
                current_retention=c.metrics[-1].retention_rate if c.metrics else 0.0,
                ltv=c.projected_ltv or c.actual_ltv or 0.0,
                ltcac_ratio=c.ltcac_ratio,
                payback_period=c.payback_period,
            )
            for c in cohorts
        ]
        with_ltv = [i for i in items if i.ltv > 0]
        summary = CohortComparisonSummary(
            best_by_ltv=max(with_ltv, key=lambda i: i.ltv) if with_ltv else None,
            best_by_retention=max(items, key=lambda i: i.current_retention) if items else None,
            average_ltv=kernel.mean([i.ltv for i in with_ltv]),
            average_retention=kernel.mean([i.current_retention for i in items]),
        )
        return CohortComparison(cohorts=items, summary=summary)

    async def get_revenue_cohort(self, tenant_id: str, cohort_id: str) -> RevenueCohortRecord:
        return await self._get(tenant_id, ArtifactKind.REVENUE_COHORT, cohort_id)

    async def update_cohort_metrics(
        self, tenant_id: str, cohort_id: str, metrics: Sequence[CohortMetricIn]
    ) -> RevenueCohortRecord:
        self._check_id(ArtifactKind.REVENUE_COHORT, cohort_id)
        normalized = self._to_engine_metrics(metrics)
        cohort.validate_metrics(normalized)

        async with _cohort_lock(cohort_id):
            current = await self._get(tenant_id, ArtifactKind.REVENUE_COHORT, cohort_id)
            incoming = [CohortMetricIn(**m.to_dict()) for m in normalized]
            if incoming == current.metrics:
                return current

            analysis = self._analyze(normalized, current.initial_users, current.average_cac)
            updated = self._revised(current, metrics=[m.to_dict() for m in normalized], **analysis["fields"])
            stored = await self.port.update_artifact(
                ArtifactKind.REVENUE_COHORT, updated, expected_version=current.version
            )
        logger.info(f"Updated metrics for cohort {cohort_id} (tenant {tenant_id})")
        return stored

    @staticmethod
    def _revised(current: RevenueCohortRecord, **changes) -> RevenueCohortRecord:
        return RevenueCohortRecord.model_validate({**current.model_dump(), **sanitize(changes)})

    async def generate_cohort_projections(
        self, tenant_id: str, cohort_id: str, projection_months: int = cohort.DEFAULT_LTV_HORIZON
    ) -> CohortProjectionResult:
        self._check_id(ArtifactKind.REVENUE_COHORT, cohort_id)

        async with _cohort_lock(cohort_id):
            current = await self._get(tenant_id, ArtifactKind.REVENUE_COHORT, cohort_id)
            history = cohort.historical_metrics(self._to_engine_metrics(current.metrics))
            if len(history) < cohort.MIN_PROJECTION_HISTORY:
                raise InsufficientHistoryError(
                    f"Need at least {cohort.MIN_PROJECTION_HISTORY} historical periods for projections",
                    details={"historical_periods": len(history)},
                )

            projection = cohort.generate_projections(
                history,
                current.initial_users,
                projection_months,
                max_projected=self.settings.COHORT_MAX_PROJECTED_PERIODS,
            )
            combined = history + projection.metrics
            analysis = self._analyze(combined, current.initial_users, current.average_cac)
            ltv = analysis["ltv"]

            updated = self._revised(
                current,
                metrics=[m.to_dict() for m in combined],
                projection_months=projection_months,
                **analysis["fields"],
            )
            stored = await self.port.update_artifact(
                ArtifactKind.REVENUE_COHORT, updated, expected_version=current.version
            )

        logger.info(
            f"Projected {len(projection.metrics)} periods for cohort {cohort_id} (tenant {tenant_id})"
        )
        return CohortProjectionResult(
            cohort=stored,
            projection_summary=ProjectionSummary(
                months_projected=len(projection.metrics),
                projected_ltv=kernel.finite_or(ltv.ltv),
                projected_ltv_per_user=kernel.finite_or(ltv.ltv_per_user),
                payback_period=ltv.payback_period,
                confidence=ltv.confidence,
            ),
        )

    async def delete_revenue_cohort(self, tenant_id: str, cohort_id: str) -> DeleteResponse:
        return await self._delete(tenant_id, ArtifactKind.REVENUE_COHORT, cohort_id)
