"""Deterministic runway projection."""
import math
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from horizon.analytics.errors import ValidationError

MAX_PROJECTION_MONTHS = 60
MAX_GROWTH_RATE = 0.5

DEFAULT_BURN_GROWTH = 0.05
DEFAULT_REVENUE_GROWTH = 0.10

BURN_METRIC = "monthly_burn_rate"
REVENUE_METRIC = "revenue_growth_rate"


@dataclass
class FundraisingEvent:
    """A planned raise landing in a given projection month (1-based)."""
    month: int
    amount: float
    probability: float = 1.0
    currency: Optional[str] = None
    description: Optional[str] = None

    @property
    def expected_amount(self) -> float:
        return self.amount * self.probability


@dataclass
class RunwayInputs:
    """Frozen inputs for one projection."""
    start_date: date
    initial_cash: float
    initial_burn: float
    initial_revenue: float
    burn_growth_rate: float = 0.0
    revenue_growth_rate: float = 0.0
    projection_months: int = 24
    fundraising_events: List[FundraisingEvent] = field(default_factory=list)

    def inflow_for_month(self, month: int) -> float:
        return sum(e.expected_amount for e in self.fundraising_events if e.month == month)


@dataclass
class MonthlyProjection:
    month: int
    date: date
    starting_cash: float
    revenue: float
    expenses: float
    fundraising_inflow: float
    net_cash_flow: float
    ending_cash: float
    runway_remaining: Optional[int]
    is_out_of_cash: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass
class RunwayProjection:
    """Result of walking the month loop."""
    monthly_projections: List[MonthlyProjection]
    runway_months: int
    cash_out_date: Optional[date]
    total_burned: float
    total_revenue: float
    break_even_month: Optional[int]
    runway_is_floor: bool


@dataclass
class _WalkOutcome:
    runway_months: int
    cash_out: bool
    final_cash: float
    final_burn: float
    break_even_month: Optional[int]


def validate_inputs(inputs: RunwayInputs) -> None:
    """Reject inputs outside the supported envelope."""
    if not 1 <= inputs.projection_months <= MAX_PROJECTION_MONTHS:
        raise ValidationError(
            f"projection_months must be between 1 and {MAX_PROJECTION_MONTHS}",
            details={"projection_months": inputs.projection_months},
        )
    for name in ("burn_growth_rate", "revenue_growth_rate"):
        rate = getattr(inputs, name)
        if not math.isfinite(rate) or abs(rate) > MAX_GROWTH_RATE:
            raise ValidationError(
                f"{name} must be between -{MAX_GROWTH_RATE} and {MAX_GROWTH_RATE}",
                details={name: rate},
            )
    for name in ("initial_cash", "initial_burn", "initial_revenue"):
        if not math.isfinite(getattr(inputs, name)):
            raise ValidationError(f"{name} must be a finite number")
    if inputs.initial_burn < 0 or inputs.initial_revenue < 0:
        raise ValidationError("Burn and revenue must not be negative")
    for event in inputs.fundraising_events:
        if not 1 <= event.month <= inputs.projection_months:
            raise ValidationError(
                "Fundraising event month outside the projection horizon",
                details={"month": event.month},
            )
        if not 0 <= event.probability <= 1:
            raise ValidationError(
                "Fundraising event probability must be between 0 and 1",
                details={"probability": event.probability},
            )
        if not math.isfinite(event.amount) or event.amount < 0:
            raise ValidationError("Fundraising event amount must be a non-negative number")


def _runway_remaining(ending_cash: float, burn: float) -> Optional[int]:
    if burn == 0:
        return None
    if ending_cash > 0 and burn > 0:
        return math.floor(ending_cash / burn)
    return 0


def walk_months(
    inputs: RunwayInputs,
    perturb: Optional[Callable[[float, float], tuple]] = None,
    on_month: Optional[Callable[[MonthlyProjection], None]] = None,
    burn_ceiling: Optional[float] = None,
) -> _WalkOutcome:
    """
    Month loop shared by the projector and the Monte Carlo runner.

    `perturb(burn, revenue)` returns the burn and revenue actually realised
    this month; growth always compounds on the unperturbed values.
    `burn_ceiling` aborts the walk once the monthly burn exceeds it; the
    outcome then carries only the months completed before the abort.
    """
    cash = inputs.initial_cash
    burn = inputs.initial_burn
    revenue = inputs.initial_revenue
    break_even_month = None

    if cash <= 0:
        return _WalkOutcome(0, True, cash, burn, None)

    for month in range(1, inputs.projection_months + 1):
        if burn_ceiling is not None and burn > burn_ceiling:
            return _WalkOutcome(month - 1, False, cash, burn, break_even_month)

        actual_burn, actual_revenue = perturb(burn, revenue) if perturb else (burn, revenue)
        inflow = inputs.inflow_for_month(month)
        net = actual_revenue - actual_burn + inflow
        starting = cash
        cash = starting + net

        if on_month is not None:
            on_month(MonthlyProjection(
                month=month,
                date=inputs.start_date + relativedelta(months=month - 1),
                starting_cash=starting,
                revenue=actual_revenue,
                expenses=actual_burn,
                fundraising_inflow=inflow,
                net_cash_flow=net,
                ending_cash=cash,
                runway_remaining=_runway_remaining(cash, actual_burn),
                is_out_of_cash=cash <= 0,
            ))

        if cash <= 0:
            return _WalkOutcome(month, True, cash, burn, break_even_month)

        if break_even_month is None and actual_revenue >= actual_burn:
            break_even_month = month - 1

        burn *= 1 + inputs.burn_growth_rate
        revenue *= 1 + inputs.revenue_growth_rate

    return _WalkOutcome(inputs.projection_months, False, cash, burn, break_even_month)


def project_runway(inputs: RunwayInputs) -> RunwayProjection:
    """
    Project cash month by month until it runs out or the horizon ends.

    When cash never runs out, runway_months equals projection_months and
    runway_is_floor is set: the true runway is at least that long.
    """
    validate_inputs(inputs)

    rows: List[MonthlyProjection] = []
    outcome = walk_months(inputs, on_month=rows.append)

    cash_out_date = None
    if outcome.cash_out:
        cash_out_date = inputs.start_date + relativedelta(months=outcome.runway_months)

    return RunwayProjection(
        monthly_projections=rows,
        runway_months=outcome.runway_months,
        cash_out_date=cash_out_date,
        total_burned=sum(r.expenses for r in rows),
        total_revenue=sum(r.revenue for r in rows),
        break_even_month=outcome.break_even_month,
        runway_is_floor=not outcome.cash_out,
    )


def growth_for_metric(assumptions: Sequence[Dict[str, Any]], metric: str) -> float:
    """Growth rate of the named assumption, 0 when absent."""
    for assumption in assumptions:
        if assumption.get("metric") == metric:
            return float(assumption.get("growth_rate") or 0.0)
    return 0.0


def default_assumptions(initial_burn: float, initial_revenue: float) -> List[Dict[str, Any]]:
    """Assumptions used when a request supplies none."""
    return [
        {
            "metric": BURN_METRIC,
            "base_value": initial_burn,
            "growth_rate": DEFAULT_BURN_GROWTH,
            "variance_percentage": 0.0,
        },
        {
            "metric": REVENUE_METRIC,
            "base_value": initial_revenue,
            "growth_rate": DEFAULT_REVENUE_GROWTH,
            "variance_percentage": 0.0,
        },
    ]
