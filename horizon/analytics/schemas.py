"""Pydantic schemas for predictive analytics."""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, ClassVar, FrozenSet
from datetime import datetime, date
from enum import Enum

from horizon.analytics.cashflow import ForecastType, Granularity
from horizon.analytics.cohort import CohortType
from horizon.analytics.fundraising import RoundType


class ScenarioType(str, Enum):
    CONSERVATIVE = "Conservative"
    BASE = "Base"
    OPTIMISTIC = "Optimistic"
    CUSTOM = "Custom"


class MilestoneImpact(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RequestModel(BaseModel):
    """Base for request bodies; rejects NaN and infinite floats."""
    model_config = {"allow_inf_nan": False}


# ============================================================================
# RUNWAY SCHEMAS
# ============================================================================

class Assumption(RequestModel):
    """A growth assumption applied month over month."""
    metric: str = Field(..., min_length=1)  # "monthly_burn_rate" | "revenue_growth_rate" | ...
    base_value: float = 0.0
    growth_rate: float = Field(0.0, ge=-0.5, le=0.5)
    variance_percentage: float = Field(0.0, ge=0, le=100)


class PlannedFundraisingEvent(RequestModel):
    month: int = Field(..., ge=1, le=60)
    amount: float = Field(..., ge=0)
    currency: Optional[str] = None
    probability: float = Field(1.0, ge=0, le=1)
    description: Optional[str] = None


class RunwayScenarioCreate(RequestModel):
    """Schema for creating a runway scenario.

    Initial cash, burn and revenue are derived from stored history unless
    explicitly supplied.
    """
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    scenario_type: ScenarioType = ScenarioType.BASE
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    start_date: Optional[date] = None
    projection_months: Optional[int] = Field(None, ge=1, le=60)
    assumptions: Optional[List[Assumption]] = None
    planned_fundraising_events: List[PlannedFundraisingEvent] = Field(default_factory=list)
    initial_cash_balance: Optional[float] = None
    initial_monthly_burn: Optional[float] = Field(None, ge=0)
    initial_monthly_revenue: Optional[float] = Field(None, ge=0)
    simulation_variance: Optional[float] = Field(None, ge=0)
    simulation_iterations: Optional[int] = Field(None, ge=1, le=10000)
    simulation_seed: Optional[int] = None


class MonthlyProjectionRow(BaseModel):
    month: int
    date: date
    starting_cash: float
    revenue: float
    expenses: float
    fundraising_inflow: float = 0.0
    net_cash_flow: float
    ending_cash: float
    runway_remaining: Optional[int]
    is_out_of_cash: bool


class SimulationPathOut(BaseModel):
    runway_months: int
    final_cash: float
    break_even: Optional[int]
    burn_multiple: float


class SimulationSummary(BaseModel):
    p10: float
    p50: float
    p90: float
    mean: float
    std_dev: float
    iterations: int
    variance: float = 0.0
    seed: Optional[int] = None
    scenarios: List[SimulationPathOut] = Field(default_factory=list)


class RunwayScenarioRecord(BaseModel):
    """Stored runway scenario."""
    json_fields: ClassVar[FrozenSet[str]] = frozenset({
        "assumptions", "planned_fundraising_events", "monthly_projections", "simulation",
    })

    id: str
    tenant_id: str
    created_by: Optional[str] = None
    name: str
    description: Optional[str] = None
    scenario_type: ScenarioType
    currency: str
    start_date: date
    initial_cash_balance: float
    initial_monthly_burn: float
    initial_monthly_revenue: float
    projection_months: int
    assumptions: List[Assumption]
    planned_fundraising_events: List[PlannedFundraisingEvent]
    monthly_projections: List[MonthlyProjectionRow]
    total_runway_months: int
    runway_is_floor: bool
    date_of_cash_out: Optional[date] = None
    break_even_month: Optional[int] = None
    total_cash_burned: float
    total_revenue_generated: float
    simulation: Optional[SimulationSummary] = None
    is_active: bool = True
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RunwayScenarioResult(BaseModel):
    scenario: RunwayScenarioRecord
    simulation: SimulationSummary


class RunwayComparisonItem(BaseModel):
    id: str
    name: str
    scenario_type: ScenarioType
    total_runway_months: int
    runway_is_floor: bool
    date_of_cash_out: Optional[date]
    break_even_month: Optional[int]
    total_cash_burned: float
    burn_growth_rate: float
    revenue_growth_rate: float
    created_by: Optional[str]
    created_at: Optional[datetime]


class RunwayComparisonInsights(BaseModel):
    best_scenario: Optional[RunwayComparisonItem] = None
    worst_scenario: Optional[RunwayComparisonItem] = None
    average_runway: float = 0.0


class RunwayComparison(BaseModel):
    scenarios: List[RunwayComparisonItem]
    insights: RunwayComparisonInsights


# ============================================================================
# FUNDRAISING SCHEMAS
# ============================================================================

class KeyMilestone(RequestModel):
    title: str = Field(..., min_length=1)
    completion_percentage: float = Field(0.0, ge=0, le=100)
    target_date: Optional[date] = None
    impact: MilestoneImpact = MilestoneImpact.MEDIUM


class FundraisingPredictionCreate(RequestModel):
    """Schema for creating a fundraising prediction."""
    prediction_name: str = Field(..., min_length=1, max_length=255)
    round_type: RoundType
    target_round_size: float = Field(..., gt=0)
    target_valuation: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    key_milestones: List[KeyMilestone] = Field(default_factory=list)
    market_conditions: Optional[float] = Field(None, ge=0, le=1)
    team_strength: Optional[float] = Field(None, ge=0, le=1)
    product_market_fit: Optional[float] = Field(None, ge=0, le=1)


class ReadinessMetricsOut(BaseModel):
    monthly_burn: float
    monthly_revenue: float
    total_cash: float
    runway_months: float
    dau_growth: float
    team_size: int
    currency: str


class ProbabilityFactorOut(BaseModel):
    factor: str
    weight: float
    current_status: str
    impact: float
    notes: str = ""


class RecommendationOut(BaseModel):
    priority: str
    action: str
    impact: str
    deadline: datetime


class ComparableDealOut(BaseModel):
    company_name: str
    round_size: float
    valuation: Optional[float] = None
    deal_date: Optional[date] = None
    similarity: float = 0.0


class MarketConditionsOut(BaseModel):
    sector_sentiment: str
    comparable_deals: List[ComparableDealOut] = Field(default_factory=list)
    average_round_size: Optional[float] = None
    average_valuation: Optional[float] = None
    average_time_to_close: Optional[int] = None
    source: str = "none"


class ReadinessResponse(BaseModel):
    metrics: ReadinessMetricsOut
    overall_probability: float
    timeline_probability: float
    amount_probability: float
    probability_factors: List[ProbabilityFactorOut]


class FundraisingPredictionRecord(BaseModel):
    """Stored fundraising prediction."""
    json_fields: ClassVar[FrozenSet[str]] = frozenset({
        "probability_factors", "key_milestones", "market_conditions",
        "recommendations", "readiness_metrics",
    })

    id: str
    tenant_id: str
    created_by: Optional[str] = None
    prediction_name: str
    round_type: RoundType
    target_round_size: float
    target_valuation: Optional[float] = None
    currency: str
    prediction_date: datetime
    predicted_start_date: datetime
    predicted_close_date: datetime
    confidence_interval_days: int
    overall_probability: float
    timeline_probability: float
    amount_probability: float
    probability_factors: List[ProbabilityFactorOut]
    key_milestones: List[KeyMilestone]
    market_conditions: MarketConditionsOut
    recommendations: List[RecommendationOut]
    readiness_metrics: ReadinessMetricsOut
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ============================================================================
# CASH FLOW SCHEMAS
# ============================================================================

class ThresholdOverrides(RequestModel):
    low_cash: Optional[float] = Field(None, ge=0)
    high_burn: Optional[float] = Field(None, ge=0)
    best_case_multiplier: Optional[float] = Field(None, gt=0)
    worst_case_multiplier: Optional[float] = Field(None, gt=0)
    payroll_categories: Optional[List[str]] = None


class CashFlowForecastCreate(RequestModel):
    """Schema for creating a cash-flow forecast."""
    forecast_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    forecast_type: ForecastType = ForecastType.SHORT_TERM
    granularity: Granularity = Granularity.WEEKLY
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    horizon_months: Optional[int] = Field(None, ge=1, le=24)
    outstanding_receivables: float = Field(0.0, ge=0)
    outstanding_payables: float = Field(0.0, ge=0)
    thresholds: Optional[ThresholdOverrides] = None


class CashPositionOut(BaseModel):
    cash: float
    receivables: float
    payables: float
    currency: str
    accounts: int


class MonthlyTotalOut(BaseModel):
    year: int
    month: int
    total: float
    currency: str
    category: Optional[str] = None


class HistoricalCashFlowData(BaseModel):
    currency: str
    since: date
    expenses: List[MonthlyTotalOut]
    revenues: List[MonthlyTotalOut]


class CategoryForecastOut(BaseModel):
    category: str
    base_amount: float
    growth_rate: float
    confidence: float
    observations: int


class WeeklyForecastOut(BaseModel):
    week_number: int
    week_start: date
    week_end: date
    revenue_projected: float
    payroll: float
    operating_expenses: float
    total_expenses: float
    net_cash_flow: float
    cumulative_cash_flow: float
    cash_balance: float
    confidence_level: float
    variance_percentage: float
    category_breakdown: Dict[str, float] = Field(default_factory=dict)


class ScenarioCaseOut(BaseModel):
    ending_cash_balance: float
    minimum_cash_balance: float
    probability: float


class ScenarioAnalysisOut(BaseModel):
    best_case: ScenarioCaseOut
    most_likely: ScenarioCaseOut
    worst_case: ScenarioCaseOut


class CashFlowAlertOut(BaseModel):
    severity: str
    metric: str
    week_number: int
    date: date
    message: str
    value: float
    threshold: float


class ForecastThresholdsOut(BaseModel):
    low_cash: float
    high_burn: float
    best_case_multiplier: float
    worst_case_multiplier: float
    payroll_categories: List[str]


class CashFlowForecastRecord(BaseModel):
    """Stored cash-flow forecast."""
    json_fields: ClassVar[FrozenSet[str]] = frozenset({
        "thresholds", "category_forecasts", "weekly_forecasts", "scenario_analysis", "alerts",
    })

    id: str
    tenant_id: str
    created_by: Optional[str] = None
    forecast_name: str
    description: Optional[str] = None
    forecast_type: ForecastType
    granularity: Granularity
    currency: str
    start_date: date
    end_date: date
    initial_cash_position: float
    outstanding_receivables: float
    outstanding_payables: float
    thresholds: ForecastThresholdsOut
    category_forecasts: List[CategoryForecastOut]
    weekly_forecasts: List[WeeklyForecastOut]
    scenario_analysis: ScenarioAnalysisOut
    alerts: List[CashFlowAlertOut]
    minimum_cash_balance: float
    minimum_cash_date: Optional[date] = None
    requires_additional_funding: bool
    additional_funding_needed: float
    additional_funding_date: Optional[date] = None
    is_active: bool = True
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ============================================================================
# COHORT SCHEMAS
# ============================================================================

class CohortMetricIn(RequestModel):
    period_number: int = Field(..., ge=0)
    period_label: str = Field(..., min_length=1)
    active_users: int = Field(0, ge=0)
    churned_users: int = Field(0, ge=0)
    retention_rate: float = Field(0.0, ge=0, le=1)
    revenue: float = Field(0.0, ge=0)
    average_revenue_per_user: float = Field(0.0, ge=0)
    cumulative_revenue: float = Field(0.0, ge=0)
    is_projected: bool = False
    confidence_level: float = Field(1.0, ge=0, le=1)


class RevenueCohortCreate(RequestModel):
    """Schema for creating a revenue cohort."""
    cohort_name: str = Field(..., min_length=1, max_length=255)
    cohort_type: CohortType = CohortType.MONTHLY
    cohort_start_date: date
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    acquisition_channel: Optional[str] = None
    initial_users: int = Field(..., gt=0)
    acquisition_cost: float = Field(0.0, ge=0)
    projection_months: int = Field(24, ge=1, le=60)
    metrics: List[CohortMetricIn] = Field(default_factory=list)


class CohortMetricsUpdate(RequestModel):
    metrics: List[CohortMetricIn]


class CohortProjectionRequest(RequestModel):
    projection_months: int = Field(24, ge=1, le=60)


class CohortInsightOut(BaseModel):
    type: str
    severity: str
    message: str
    recommendation: str


class RevenueCohortRecord(BaseModel):
    """Stored revenue cohort."""
    json_fields: ClassVar[FrozenSet[str]] = frozenset({"metrics", "insights", "model_parameters"})

    id: str
    tenant_id: str
    created_by: Optional[str] = None
    cohort_name: str
    cohort_type: CohortType
    cohort_start_date: date
    currency: str
    acquisition_channel: Optional[str] = None
    initial_users: int
    acquisition_cost: float
    average_cac: float
    metrics: List[CohortMetricIn]
    projection_months: int
    actual_ltv: float
    projected_ltv: float
    ltcac_ratio: float
    payback_period: Optional[float] = None
    insights: List[CohortInsightOut]
    model_parameters: Dict[str, Any] = Field(default_factory=dict)
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProjectionSummary(BaseModel):
    months_projected: int
    projected_ltv: float
    projected_ltv_per_user: float
    payback_period: Optional[float]
    confidence: float


class CohortProjectionResult(BaseModel):
    cohort: RevenueCohortRecord
    projection_summary: ProjectionSummary


class CohortComparisonItem(BaseModel):
    id: str
    cohort_name: str
    cohort_start_date: date
    initial_users: int
    current_retention: float
    ltv: float
    ltcac_ratio: float
    payback_period: Optional[float]


class CohortComparisonSummary(BaseModel):
    best_by_ltv: Optional[CohortComparisonItem] = None
    best_by_retention: Optional[CohortComparisonItem] = None
    average_ltv: float = 0.0
    average_retention: float = 0.0


class CohortComparison(BaseModel):
    cohorts: List[CohortComparisonItem]
    summary: CohortComparisonSummary


class DeleteResponse(BaseModel):
    id: str
    deleted: bool = True
    message: str
