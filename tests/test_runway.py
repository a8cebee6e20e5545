"""Tests for the deterministic runway projector."""

import pytest
from datetime import date

from horizon.analytics.errors import ValidationError
from horizon.analytics.runway import (
    BURN_METRIC,
    REVENUE_METRIC,
    FundraisingEvent,
    RunwayInputs,
    default_assumptions,
    growth_for_metric,
    project_runway,
)


def make_inputs(**overrides) -> RunwayInputs:
    values = dict(
        start_date=date(2026, 1, 1),
        initial_cash=1_000_000.0,
        initial_burn=100_000.0,
        initial_revenue=0.0,
        projection_months=24,
    )
    values.update(overrides)
    return RunwayInputs(**values)


class TestProjectRunway:
    """Tests for project_runway."""

    def test_base_runway(self):
        """Cash 1M at 100k burn runs out after ten months."""
        projection = project_runway(make_inputs())

        assert projection.runway_months == 10
        assert projection.cash_out_date == date(2026, 11, 1)
        assert projection.break_even_month is None
        assert projection.runway_is_floor is False
        assert len(projection.monthly_projections) == 10
        assert projection.monthly_projections[-1].is_out_of_cash is True
        assert projection.total_burned == pytest.approx(1_000_000.0)

    def test_break_even_month(self):
        """Revenue growing 50% a month catches a flat 50k burn."""
        inputs = make_inputs(
            initial_cash=500_000.0,
            initial_burn=50_000.0,
            initial_revenue=10_000.0,
            revenue_growth_rate=0.5,
        )
        projection = project_runway(inputs)

        assert projection.break_even_month == 4
        assert projection.runway_is_floor is True
        assert projection.cash_out_date is None
        assert projection.runway_months == 24

    def test_cash_strictly_decreases_without_income(self):
        projection = project_runway(make_inputs(burn_growth_rate=0.05))
        balances = [row.ending_cash for row in projection.monthly_projections]
        assert all(later < earlier for earlier, later in zip(balances, balances[1:]))

    def test_row_dates_are_month_starts_from_start_date(self):
        projection = project_runway(make_inputs())
        assert projection.monthly_projections[0].date == date(2026, 1, 1)
        assert projection.monthly_projections[2].date == date(2026, 3, 1)

    def test_no_cash_means_zero_runway(self):
        projection = project_runway(make_inputs(initial_cash=0.0))
        assert projection.runway_months == 0
        assert projection.cash_out_date == date(2026, 1, 1)
        assert projection.monthly_projections == []

    def test_fundraising_event_extends_runway(self):
        event = FundraisingEvent(month=5, amount=500_000.0, probability=0.5)
        projection = project_runway(make_inputs(fundraising_events=[event]))

        assert projection.monthly_projections[4].fundraising_inflow == pytest.approx(250_000.0)
        assert projection.runway_months == 13

    def test_deterministic(self):
        first = project_runway(make_inputs(burn_growth_rate=0.03, initial_revenue=5_000.0))
        second = project_runway(make_inputs(burn_growth_rate=0.03, initial_revenue=5_000.0))
        assert first == second


class TestValidation:
    """Tests for input validation."""

    def test_rejects_long_horizon(self):
        with pytest.raises(ValidationError):
            project_runway(make_inputs(projection_months=61))

    def test_rejects_growth_above_cap(self):
        with pytest.raises(ValidationError):
            project_runway(make_inputs(burn_growth_rate=0.6))

    def test_rejects_event_outside_horizon(self):
        with pytest.raises(ValidationError):
            project_runway(make_inputs(
                projection_months=12,
                fundraising_events=[FundraisingEvent(month=13, amount=1.0)],
            ))

    def test_rejects_non_finite_cash(self):
        with pytest.raises(ValidationError):
            project_runway(make_inputs(initial_cash=float("nan")))


class TestAssumptions:
    """Tests for assumption helpers."""

    def test_default_assumptions_growth(self):
        assumptions = default_assumptions(100.0, 50.0)
        assert growth_for_metric(assumptions, BURN_METRIC) == pytest.approx(0.05)
        assert growth_for_metric(assumptions, REVENUE_METRIC) == pytest.approx(0.10)

    def test_missing_metric_has_no_growth(self):
        assert growth_for_metric([], BURN_METRIC) == 0.0
