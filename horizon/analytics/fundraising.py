"""
Fundraising readiness scoring.

Scores six weighted factors into an overall readiness figure, predicts a
round timeline and emits a fixed set of recommendations.
"""
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from horizon.analytics.kernel import round_half_up


class RoundType(str, Enum):
    PRE_SEED = "Pre-Seed"
    SEED = "Seed"
    SERIES_A = "Series A"
    SERIES_B = "Series B"
    BRIDGE = "Bridge"
    OTHER = "Other"


class FactorStatus(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


BASE_TIMELINE_DAYS = {
    RoundType.PRE_SEED: 90,
    RoundType.SEED: 120,
    RoundType.SERIES_A: 150,
    RoundType.SERIES_B: 180,
    RoundType.BRIDGE: 60,
    RoundType.OTHER: 120,
}

FACTOR_WEIGHTS = {
    "burnRate": 0.25,
    "growth": 0.20,
    "marketConditions": 0.15,
    "teamStrength": 0.15,
    "productMarketFit": 0.15,
    "revenue": 0.10,
}

DEFAULT_MARKET_CONDITIONS = 0.7
DEFAULT_TEAM_STRENGTH = 0.8
DEFAULT_PRODUCT_MARKET_FIT = 0.6

TIMELINE_FACTOR = 0.9
AMOUNT_FACTOR = 0.85
START_DELAY_DAYS = 30
DEFAULT_RUNWAY_WITHOUT_BURN = 12.0


@dataclass
class ReadinessMetrics:
    """Trailing-quarter financial and growth snapshot."""
    monthly_burn: float
    monthly_revenue: float
    total_cash: float
    runway_months: float
    dau_growth: float
    team_size: int
    currency: str = "USD"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Milestone:
    title: str
    completion_percentage: float


@dataclass
class ProbabilityFactor:
    factor: str
    weight: float
    current_status: FactorStatus
    impact: float
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["current_status"] = self.current_status.value
        return data


@dataclass
class Probabilities:
    overall: float
    timeline: float
    amount: float
    factors: List[ProbabilityFactor] = field(default_factory=list)


@dataclass
class TimelinePrediction:
    predicted_start_date: datetime
    predicted_close_date: datetime
    estimated_duration_days: int
    confidence_interval_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predicted_start_date": self.predicted_start_date.isoformat(),
            "predicted_close_date": self.predicted_close_date.isoformat(),
            "estimated_duration_days": self.estimated_duration_days,
            "confidence_interval_days": self.confidence_interval_days,
        }


@dataclass
class Recommendation:
    priority: RecommendationPriority
    action: str
    impact: str
    deadline: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority.value,
            "action": self.action,
            "impact": self.impact,
            "deadline": self.deadline.isoformat(),
        }


def _clamp(score: float) -> float:
    if not math.isfinite(score):
        return 0.0
    return max(0.0, min(1.0, score))


def _status(score: float) -> FactorStatus:
    if score >= 0.7:
        return FactorStatus.POSITIVE
    if score >= 0.5:
        return FactorStatus.NEUTRAL
    return FactorStatus.NEGATIVE


# =============================================================================
# Factor scores
# =============================================================================

def score_burn(runway_months: float) -> float:
    if runway_months > 12:
        return 0.8
    if runway_months > 6:
        return 0.6
    return 0.3


def score_growth(dau_growth: float) -> float:
    if dau_growth > 0.2:
        return 0.9
    if dau_growth > 0.1:
        return 0.7
    return 0.4


def score_revenue(monthly_revenue: float) -> float:
    return 0.8 if monthly_revenue > 0 else 0.3


def aggregate_probability(scores: Dict[str, float]) -> float:
    """Weighted mean over the factors present in `scores`."""
    total_weight = sum(FACTOR_WEIGHTS[name] for name in scores if name in FACTOR_WEIGHTS)
    if total_weight == 0:
        return 0.0
    weighted = sum(
        FACTOR_WEIGHTS[name] * _clamp(score)
        for name, score in scores.items()
        if name in FACTOR_WEIGHTS
    )
    return weighted / total_weight


def calculate_probabilities(
    metrics: ReadinessMetrics,
    market_conditions: float = DEFAULT_MARKET_CONDITIONS,
    team_strength: float = DEFAULT_TEAM_STRENGTH,
    product_market_fit: float = DEFAULT_PRODUCT_MARKET_FIT,
) -> Probabilities:
    """Score every factor and derive overall, timeline and amount probabilities."""
    scores = {
        "burnRate": score_burn(metrics.runway_months),
        "growth": score_growth(metrics.dau_growth),
        "marketConditions": _clamp(market_conditions),
        "teamStrength": _clamp(team_strength),
        "productMarketFit": _clamp(product_market_fit),
        "revenue": score_revenue(metrics.monthly_revenue),
    }
    notes = {
        "burnRate": f"{metrics.runway_months:.1f} months of runway remaining",
        "growth": f"{metrics.dau_growth * 100:.1f}% DAU growth",
        "marketConditions": "Supplied market assessment",
        "teamStrength": f"{metrics.team_size} active team members",
        "productMarketFit": "Supplied product-market fit assessment",
        "revenue": (
            "Generating revenue" if metrics.monthly_revenue > 0 else "No revenue yet"
        ),
    }
    labels = {
        "burnRate": "Current burn rate",
        "growth": "User growth",
        "marketConditions": "Market conditions",
        "teamStrength": "Team strength",
        "productMarketFit": "Product-market fit",
        "revenue": "Revenue traction",
    }

    factors = [
        ProbabilityFactor(
            factor=labels[name],
            weight=FACTOR_WEIGHTS[name],
            current_status=_status(score),
            impact=score,
            notes=notes[name],
        )
        for name, score in scores.items()
    ]

    overall = aggregate_probability(scores)
    return Probabilities(
        overall=overall,
        timeline=overall * TIMELINE_FACTOR,
        amount=overall * AMOUNT_FACTOR,
        factors=factors,
    )


# =============================================================================
# Timeline and recommendations
# =============================================================================

def milestones_mostly_complete(milestones: Sequence[Milestone]) -> bool:
    if not milestones:
        return False
    nearly_done = sum(1 for m in milestones if m.completion_percentage > 80)
    return 2 * nearly_done >= len(milestones)


def predict_timeline(
    round_type: RoundType,
    metrics: ReadinessMetrics,
    milestones: Sequence[Milestone],
    now: datetime,
) -> TimelinePrediction:
    base_days = BASE_TIMELINE_DAYS.get(round_type, BASE_TIMELINE_DAYS[RoundType.OTHER])

    factor = 1.0
    if metrics.runway_months < 6:
        factor *= 0.8
    if metrics.dau_growth > 0.2:
        factor *= 0.9
    if milestones_mostly_complete(milestones):
        factor *= 0.9

    adjusted = round_half_up(base_days * factor)
    start = now + timedelta(days=START_DELAY_DAYS)
    return TimelinePrediction(
        predicted_start_date=start,
        predicted_close_date=start + timedelta(days=adjusted),
        estimated_duration_days=adjusted,
        confidence_interval_days=round_half_up(adjusted * 0.2),
    )


def generate_recommendations(
    metrics: ReadinessMetrics,
    milestones: Sequence[Milestone],
    now: datetime,
) -> List[Recommendation]:
    recommendations = []

    if metrics.runway_months < 9:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.HIGH,
            action="Start fundraising process immediately",
            impact="Critical for maintaining operations",
            deadline=now + relativedelta(weeks=2),
        ))

    if metrics.dau_growth < 0.1:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.HIGH,
            action="Focus on user acquisition to show growth",
            impact="Improve attractiveness to investors",
            deadline=now + relativedelta(months=1),
        ))

    incomplete = [m.title for m in milestones if m.completion_percentage < 50]
    if incomplete:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.MEDIUM,
            action=f"Complete key milestones: {', '.join(incomplete)}",
            impact="Strengthen negotiation position",
            deadline=now + relativedelta(months=2),
        ))

    return recommendations


# =============================================================================
# Readiness inputs
# =============================================================================

def compute_dau_growth(dau_newest_first: Sequence[Optional[float]]) -> float:
    """Growth from the oldest to the newest of the supplied snapshots."""
    values = [v for v in dau_newest_first if v is not None]
    if len(values) < 2:
        return 0.0
    newest, oldest = values[0], values[-1]
    if not oldest:
        return 0.0
    growth = (newest - oldest) / oldest
    return growth if math.isfinite(growth) else 0.0


def build_readiness_metrics(
    expense_total: float,
    revenue_total: float,
    total_cash: float,
    dau_growth: float,
    team_size: int,
    currency: str,
    months: int = 3,
) -> ReadinessMetrics:
    monthly_burn = expense_total / months
    monthly_revenue = revenue_total / months
    runway = total_cash / monthly_burn if monthly_burn > 0 else DEFAULT_RUNWAY_WITHOUT_BURN
    return ReadinessMetrics(
        monthly_burn=monthly_burn,
        monthly_revenue=monthly_revenue,
        total_cash=total_cash,
        runway_months=runway if math.isfinite(runway) else 0.0,
        dau_growth=dau_growth,
        team_size=team_size,
        currency=currency,
    )
