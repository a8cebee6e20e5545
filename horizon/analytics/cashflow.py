"""
Weekly cash-flow forecasting.

History is decomposed per category into a base monthly amount and a growth
rate, then rolled forward week by week from the net cash position (cash plus
outstanding receivables less outstanding payables).
Confidence decays with distance from today and the variance envelope widens.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from horizon.analytics import kernel

REVENUE_CATEGORY = "Revenue"
DEFAULT_PAYROLL_CATEGORIES = ("Salaries & Wages",)

MIN_CONFIDENCE = 0.10
MAX_CONFIDENCE = 0.90
MAX_VARIANCE_PERCENT = 50.0


class Granularity(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ForecastType(str, Enum):
    SHORT_TERM = "Short-term"
    MEDIUM_TERM = "Medium-term"
    LONG_TERM = "Long-term"
    CUSTOM = "Custom"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ForecastThresholds:
    """Alerting and envelope parameters, stored with each forecast."""
    low_cash: float = 100000.0
    high_burn: float = 50000.0
    best_case_multiplier: float = 1.2
    worst_case_multiplier: float = 0.7
    payroll_categories: tuple = DEFAULT_PAYROLL_CATEGORIES

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["payroll_categories"] = list(self.payroll_categories)
        return data


@dataclass
class CashPosition:
    cash: float
    receivables: float = 0.0
    payables: float = 0.0
    currency: str = "USD"

    @property
    def net_position(self) -> float:
        return self.cash + self.receivables - self.payables


@dataclass
class CategoryForecast:
    category: str
    base_amount: float
    growth_rate: float
    confidence: float
    observations: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WeeklyForecast:
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
    category_breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["week_start"] = self.week_start.isoformat()
        data["week_end"] = self.week_end.isoformat()
        return data


@dataclass
class ScenarioCase:
    ending_cash_balance: float
    minimum_cash_balance: float
    probability: float


@dataclass
class ScenarioEnvelope:
    best_case: ScenarioCase
    most_likely: ScenarioCase
    worst_case: ScenarioCase

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CashFlowAlert:
    severity: AlertSeverity
    metric: str
    week_number: int
    date: date
    message: str
    value: float
    threshold: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "metric": self.metric,
            "week_number": self.week_number,
            "date": self.date.isoformat(),
            "message": self.message,
            "value": self.value,
            "threshold": self.threshold,
        }


@dataclass
class FundingGap:
    requires_additional_funding: bool
    additional_funding_needed: float
    additional_funding_date: Optional[date]
    minimum_cash_balance: float
    minimum_cash_date: Optional[date]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("additional_funding_date", "minimum_cash_date"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class CashFlowForecastResult:
    category_forecasts: List[CategoryForecast]
    weekly_forecasts: List[WeeklyForecast]
    scenario_analysis: ScenarioEnvelope
    alerts: List[CashFlowAlert]
    funding_gap: FundingGap
    thresholds: ForecastThresholds


# =============================================================================
# Category decomposition
# =============================================================================

def decompose_category(category: str, series: Sequence[float]) -> Optional[CategoryForecast]:
    """Base amount, growth and confidence for one category's monthly totals."""
    values = kernel.clean_series(series)
    if not values:
        return None

    base = kernel.weighted_moving_average(values)
    if base is None:
        base = values[-1]

    growth = kernel.growth_rates(values)
    confidence = max(0.5, 1 - growth.volatility)

    return CategoryForecast(
        category=category,
        base_amount=kernel.finite_or(base),
        growth_rate=kernel.finite_or(growth.median),
        confidence=min(1.0, max(0.0, confidence)),
        observations=len(values),
    )


def decompose_categories(
    expenses_by_category: Dict[str, Sequence[float]],
    revenue_series: Sequence[float],
) -> List[CategoryForecast]:
    """One forecast per category with at least one observation; revenue last."""
    forecasts = []
    for category in sorted(expenses_by_category):
        forecast = decompose_category(category, expenses_by_category[category])
        if forecast is not None:
            forecasts.append(forecast)

    revenue = decompose_category(REVENUE_CATEGORY, revenue_series)
    if revenue is not None:
        forecasts.append(revenue)
    return forecasts


# =============================================================================
# Weekly projection
# =============================================================================

def confidence_for_week(week: int) -> float:
    """Piecewise-linear confidence decay, kept within [0.10, 0.90]."""
    if week <= 4:
        value = 0.9 - 0.0125 * week
    elif week <= 12:
        value = 0.85 - 0.01875 * (week - 4)
    elif week <= 26:
        value = 0.7 - 0.0143 * (week - 12)
    else:
        value = max(0.30, 0.50 - 0.005 * (week - 26))
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, value))


def variance_for_week(week: int) -> float:
    """Variance envelope in percent."""
    return min(MAX_VARIANCE_PERCENT, 1.5 * week)


def weekly_amount(forecast: CategoryForecast, week: int) -> float:
    amount = (forecast.base_amount / 4) * (1 + forecast.growth_rate) ** ((week - 1) / 4)
    return kernel.finite_or(amount)


def project_weekly(
    categories: Sequence[CategoryForecast],
    initial_cash: float,
    start_date: date,
    end_date: date,
    payroll_categories: Sequence[str] = DEFAULT_PAYROLL_CATEGORIES,
    max_weeks: int = 104,
) -> List[WeeklyForecast]:
    """Roll categories forward one week at a time until end_date."""
    payroll_set = set(payroll_categories)
    weeks: List[WeeklyForecast] = []
    balance = initial_cash
    cumulative = 0.0

    week = 1
    while week <= max_weeks:
        week_start = start_date + timedelta(days=7 * (week - 1))
        if week_start >= end_date:
            break

        revenue = payroll = operating = 0.0
        breakdown: Dict[str, float] = {}
        for forecast in categories:
            amount = weekly_amount(forecast, week)
            breakdown[forecast.category] = amount
            if forecast.category == REVENUE_CATEGORY:
                revenue += amount
            elif forecast.category in payroll_set:
                payroll += amount
            else:
                operating += amount

        total_expenses = payroll + operating
        net = revenue - total_expenses
        cumulative += net
        balance += net

        weeks.append(WeeklyForecast(
            week_number=week,
            week_start=week_start,
            week_end=week_start + timedelta(days=6),
            revenue_projected=revenue,
            payroll=payroll,
            operating_expenses=operating,
            total_expenses=total_expenses,
            net_cash_flow=net,
            cumulative_cash_flow=cumulative,
            cash_balance=balance,
            confidence_level=confidence_for_week(week),
            variance_percentage=variance_for_week(week),
            category_breakdown=breakdown,
        ))
        week += 1

    return weeks


# =============================================================================
# Scenarios, alerts and funding gap
# =============================================================================

def scenario_envelope(
    weeks: Sequence[WeeklyForecast],
    thresholds: ForecastThresholds = ForecastThresholds(),
) -> ScenarioEnvelope:
    if weeks:
        last = weeks[-1].cash_balance
        lowest = min(w.cash_balance for w in weeks)
    else:
        last = lowest = 0.0

    def case(multiplier: float, probability: float) -> ScenarioCase:
        return ScenarioCase(
            ending_cash_balance=last * multiplier,
            minimum_cash_balance=lowest * multiplier,
            probability=probability,
        )

    return ScenarioEnvelope(
        best_case=case(thresholds.best_case_multiplier, 0.25),
        most_likely=case(1.0, 0.5),
        worst_case=case(thresholds.worst_case_multiplier, 0.25),
    )


def generate_alerts(
    weeks: Sequence[WeeklyForecast],
    thresholds: ForecastThresholds = ForecastThresholds(),
) -> List[CashFlowAlert]:
    alerts = []
    for week in weeks:
        if week.cash_balance < 0:
            alerts.append(CashFlowAlert(
                severity=AlertSeverity.CRITICAL,
                metric="cashBalance",
                week_number=week.week_number,
                date=week.week_start,
                message=f"Cash balance goes negative in week {week.week_number}",
                value=week.cash_balance,
                threshold=0.0,
            ))
        elif week.week_number == 1 and week.cash_balance < thresholds.low_cash:
            alerts.append(CashFlowAlert(
                severity=AlertSeverity.WARNING,
                metric="cashBalance",
                week_number=week.week_number,
                date=week.week_start,
                message="Cash balance below safety threshold",
                value=week.cash_balance,
                threshold=thresholds.low_cash,
            ))

        if week.net_cash_flow < -thresholds.high_burn:
            alerts.append(CashFlowAlert(
                severity=AlertSeverity.WARNING,
                metric="burnRate",
                week_number=week.week_number,
                date=week.week_start,
                message=f"High burn rate in week {week.week_number}",
                value=week.net_cash_flow,
                threshold=-thresholds.high_burn,
            ))
    return alerts


def funding_gap(weeks: Sequence[WeeklyForecast]) -> FundingGap:
    if not weeks:
        return FundingGap(False, 0.0, None, 0.0, None)

    lowest = min(weeks, key=lambda w: w.cash_balance)
    first_negative = next((w for w in weeks if w.cash_balance < 0), None)
    return FundingGap(
        requires_additional_funding=first_negative is not None,
        additional_funding_needed=abs(min(0.0, lowest.cash_balance)),
        additional_funding_date=first_negative.week_start if first_negative else None,
        minimum_cash_balance=lowest.cash_balance,
        minimum_cash_date=lowest.week_start,
    )


def forecast_cash_flow(
    position: CashPosition,
    expenses_by_category: Dict[str, Sequence[float]],
    revenue_series: Sequence[float],
    start_date: date,
    end_date: date,
    thresholds: ForecastThresholds = ForecastThresholds(),
    max_weeks: int = 104,
) -> CashFlowForecastResult:
    """Run decomposition, projection, envelope, alerts and funding gap."""
    categories = decompose_categories(expenses_by_category, revenue_series)
    weeks = project_weekly(
        categories,
        initial_cash=position.net_position,
        start_date=start_date,
        end_date=end_date,
        payroll_categories=thresholds.payroll_categories,
        max_weeks=max_weeks,
    )
    return CashFlowForecastResult(
        category_forecasts=categories,
        weekly_forecasts=weeks,
        scenario_analysis=scenario_envelope(weeks, thresholds),
        alerts=generate_alerts(weeks, thresholds),
        funding_gap=funding_gap(weeks),
        thresholds=thresholds,
    )
