"""
Cohort retention, LTV and payback analysis.

Retention is modelled from the observed periods (power law, exponential,
simple geometric decay or a default 15% monthly churn, depending on how much
history there is), ARPU is projected by exponential smoothing, and LTV is
the discounted sum of per-user revenue over history plus a projected horizon.
"""
import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from horizon.analytics import kernel
from horizon.analytics.errors import ValidationError

DEFAULT_DISCOUNT_RATE = 0.1
DEFAULT_LTV_HORIZON = 24
MAX_PROJECTED_PERIODS = 24
MIN_PROJECTION_HISTORY = 3
DEFAULT_RETENTION_DECAY = 0.85
ARPU_ALPHA = 0.3
LONG_PAYBACK_MONTHS = 12.0


class CohortType(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    QUARTERLY = "quarterly"
    CUSTOM = "custom"


class RetentionModel(str, Enum):
    POWER = "power"
    EXPONENTIAL = "exponential"
    SIMPLE = "simple"
    DEFAULT = "default"


class InsightType(str, Enum):
    RETENTION = "retention"
    REVENUE = "revenue"
    LTV = "ltv"
    GENERAL = "general"


class InsightSeverity(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class CohortMetric:
    period_number: int
    period_label: str
    active_users: int = 0
    churned_users: int = 0
    retention_rate: float = 0.0
    revenue: float = 0.0
    average_revenue_per_user: float = 0.0
    cumulative_revenue: float = 0.0
    is_projected: bool = False
    confidence_level: float = 1.0

    @property
    def revenue_per_active_user(self) -> float:
        if self.active_users > 0:
            return self.revenue / self.active_users
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RetentionFit:
    """A fitted retention curve, evaluated at 1-based period position t."""
    model: RetentionModel
    a: float = 1.0
    b: float = 0.0

    def evaluate(self, t: int) -> float:
        if self.model == RetentionModel.POWER:
            value = self.a * t ** self.b
        elif self.model == RetentionModel.EXPONENTIAL:
            value = self.a * math.exp(self.b * t)
        elif self.model == RetentionModel.SIMPLE:
            value = self.a ** t
        else:
            value = DEFAULT_RETENTION_DECAY ** t
        if not math.isfinite(value):
            return 0.0
        return max(0.0, min(1.0, value))

    def parameters(self) -> Dict[str, Any]:
        return {"retention_model": self.model.value, "a": self.a, "b": self.b}


@dataclass
class LtvResult:
    ltv: float
    ltv_per_user: float
    historical_ltv: float
    payback_period: Optional[float]
    confidence: float
    ltcac_ratio: float
    retention: RetentionFit
    projected_months: int


@dataclass
class Insight:
    type: InsightType
    severity: InsightSeverity
    message: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "recommendation": self.recommendation,
        }


@dataclass
class CohortProjection:
    metrics: List[CohortMetric] = field(default_factory=list)
    retention: Optional[RetentionFit] = None


# =============================================================================
# Validation
# =============================================================================

def historical_metrics(metrics: Sequence[CohortMetric]) -> List[CohortMetric]:
    return [m for m in metrics if not m.is_projected]


def sort_metrics(metrics: Sequence[CohortMetric]) -> List[CohortMetric]:
    """Historical periods first, each group ordered by period number."""
    return sorted(metrics, key=lambda m: (m.is_projected, m.period_number))


def validate_metrics(metrics: Sequence[CohortMetric]) -> None:
    previous = None
    for metric in historical_metrics(sort_metrics(metrics)):
        if not 0 <= metric.retention_rate <= 1:
            raise ValidationError(
                "retention_rate must be between 0 and 1",
                details={"period_number": metric.period_number},
            )
        if previous is not None and metric.cumulative_revenue < previous:
            raise ValidationError(
                "cumulative_revenue must not decrease across periods",
                details={"period_number": metric.period_number},
            )
        previous = metric.cumulative_revenue


# =============================================================================
# Retention and ARPU
# =============================================================================

def fit_retention(retentions: Sequence[float]) -> RetentionFit:
    """Pick and fit a retention model from observed rates at t = 1..n."""
    points = [
        (i + 1, r) for i, r in enumerate(retentions)
        if kernel.is_finite_number(r) and r > 0
    ]
    positives = [min(1.0, r) for _, r in points]
    positions = [t for t, _ in points]

    if len(positives) >= 6:
        slope, intercept = kernel.linear_regression(
            [math.log(t) for t in positions],
            [math.log(r) for r in positives],
        )
        return RetentionFit(RetentionModel.POWER, a=math.exp(intercept), b=slope)

    if len(positives) >= 3:
        slope, intercept = kernel.linear_regression(
            positions,
            [math.log(r) for r in positives],
        )
        return RetentionFit(RetentionModel.EXPONENTIAL, a=math.exp(intercept), b=slope)

    if positives:
        geometric_mean = math.exp(kernel.mean([math.log(r) for r in positives]))
        return RetentionFit(RetentionModel.SIMPLE, a=geometric_mean)

    return RetentionFit(RetentionModel.DEFAULT)


def project_arpu(metrics: Sequence[CohortMetric], periods: int) -> List[float]:
    arpu = [m.revenue_per_active_user for m in metrics]
    return kernel.exponential_smoothing(arpu, alpha=ARPU_ALPHA, periods=periods)


# =============================================================================
# LTV and payback
# =============================================================================

def discount_factor(index: int, annual_rate: float) -> float:
    return (1 + annual_rate / 12) ** -index


def payback_period(
    metrics: Sequence[CohortMetric],
    initial_users: int,
    average_cac: float,
) -> Optional[float]:
    """Months until cumulative per-user revenue covers CAC."""
    if average_cac <= 0:
        return 0
    per_user = [m.revenue / initial_users for m in metrics]

    cumulative = 0.0
    for month, value in enumerate(per_user, start=1):
        cumulative += value
        if cumulative >= average_cac:
            return month

    average = kernel.mean(per_user)
    if average <= 0:
        return None
    result = len(per_user) + math.ceil((average_cac - cumulative) / average)
    return result if math.isfinite(result) else None


def ltv_confidence(historical_periods: int) -> float:
    return min(0.9, 0.4 + 0.05 * historical_periods)


def calculate_ltv(
    metrics: Sequence[CohortMetric],
    initial_users: int,
    average_cac: float,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
    horizon: int = DEFAULT_LTV_HORIZON,
) -> LtvResult:
    """Discounted LTV over history plus `horizon` projected months."""
    history = historical_metrics(sort_metrics(metrics))
    retention = fit_retention([m.retention_rate for m in history])

    if initial_users <= 0 or not history:
        return LtvResult(0.0, 0.0, 0.0, None, 0.0, 0.0, retention, 0)

    historical_ltv = sum(
        (m.revenue / initial_users) * discount_factor(i, discount_rate)
        for i, m in enumerate(history)
    )

    projected_arpu = project_arpu(history, horizon)
    projected_ltv = 0.0
    for k, arpu in enumerate(projected_arpu):
        position = len(history) + k
        projected_ltv += arpu * retention.evaluate(position + 1) * discount_factor(position, discount_rate)

    ltv_per_user = kernel.finite_or(historical_ltv + projected_ltv)
    payback = payback_period(history, initial_users, average_cac)

    ratio = 0.0
    if average_cac > 0 and math.isfinite(average_cac):
        ratio = kernel.finite_or(ltv_per_user / average_cac)

    return LtvResult(
        ltv=ltv_per_user * initial_users,
        ltv_per_user=ltv_per_user,
        historical_ltv=kernel.finite_or(historical_ltv) * initial_users,
        payback_period=payback,
        confidence=ltv_confidence(len(history)),
        ltcac_ratio=ratio,
        retention=retention,
        projected_months=len(history) + len(projected_arpu),
    )


# =============================================================================
# Projections and insights
# =============================================================================

def generate_projections(
    metrics: Sequence[CohortMetric],
    initial_users: int,
    projection_months: int,
    max_projected: int = MAX_PROJECTED_PERIODS,
) -> CohortProjection:
    """
    Projected periods appended after the last historical one.

    The total horizon is `projection_months`; at most `max_projected`
    periods are generated.
    """
    history = historical_metrics(sort_metrics(metrics))
    count = min(max_projected, projection_months - len(history))
    retention = fit_retention([m.retention_rate for m in history])
    if count <= 0 or not history:
        return CohortProjection([], retention)

    arpu = project_arpu(history, count)
    last = history[-1]
    fallback_arpu = last.revenue_per_active_user
    cumulative = last.cumulative_revenue

    projected = []
    for k in range(count):
        position = len(history) + k
        rate = retention.evaluate(position + 1)
        active = kernel.round_half_up(initial_users * rate)
        period_arpu = arpu[k] if k < len(arpu) else fallback_arpu
        revenue = kernel.round_half_up(active * period_arpu)
        cumulative += revenue
        period_number = last.period_number + 1 + k
        projected.append(CohortMetric(
            period_number=period_number,
            period_label=f"Month {period_number}",
            active_users=active,
            churned_users=initial_users - active,
            retention_rate=rate,
            revenue=float(revenue),
            average_revenue_per_user=period_arpu,
            cumulative_revenue=cumulative,
            is_projected=True,
            confidence_level=max(0.5, 1 - 0.03 * k),
        ))

    return CohortProjection(projected, retention)


def generate_insights(
    metrics: Sequence[CohortMetric],
    ltcac_ratio: float,
    payback: Optional[float],
    long_payback_months: float = LONG_PAYBACK_MONTHS,
) -> List[Insight]:
    insights = []

    latest_retention = metrics[-1].retention_rate if metrics else 0.0
    if latest_retention < 0.2:
        insights.append(Insight(
            InsightType.RETENTION,
            InsightSeverity.CRITICAL,
            "Retention rate is critically low",
            "Investigate product-market fit and user experience issues",
        ))

    if ltcac_ratio < 1:
        insights.append(Insight(
            InsightType.LTV,
            InsightSeverity.CRITICAL,
            "LTV:CAC ratio is below 1",
            "Reduce acquisition costs or improve monetization",
        ))
    elif ltcac_ratio > 3:
        insights.append(Insight(
            InsightType.LTV,
            InsightSeverity.POSITIVE,
            "Excellent LTV:CAC ratio",
            "Consider scaling acquisition in this channel",
        ))

    if payback is not None and payback > long_payback_months:
        insights.append(Insight(
            InsightType.LTV,
            InsightSeverity.WARNING,
            "Long payback period",
            "Focus on early monetization or reduce CAC",
        ))

    return insights
