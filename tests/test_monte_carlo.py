"""Tests for the Monte Carlo runway simulation."""

import pytest
from datetime import date

from horizon.analytics.errors import ValidationError
from horizon.analytics.monte_carlo import (
    MAX_RETAINED_PATHS,
    MAX_VARIANCE,
    MonteCarloRunner,
    clamp_variance,
    run_monte_carlo,
    summarise,
)
from horizon.analytics.runway import RunwayInputs, project_runway


@pytest.fixture
def inputs():
    return RunwayInputs(
        start_date=date(2026, 1, 1),
        initial_cash=1_000_000.0,
        initial_burn=100_000.0,
        initial_revenue=0.0,
        projection_months=24,
    )


class TestMonteCarlo:
    """Tests for run_monte_carlo and the runner."""

    def test_zero_variance_collapses_to_deterministic(self, inputs):
        result = run_monte_carlo(inputs, variance=0.0, iterations=200, seed=1)

        assert result.p10 == 10
        assert result.p50 == 10
        assert result.p90 == 10
        assert result.mean == pytest.approx(10.0)
        assert result.std_dev == 0.0
        assert result.iterations == 200

    def test_percentiles_are_ordered(self, inputs):
        result = run_monte_carlo(inputs, variance=0.3, iterations=500, seed=42)
        assert result.p10 <= result.p50 <= result.p90

    def test_seed_reproduces_result(self, inputs):
        first = run_monte_carlo(inputs, variance=0.2, iterations=100, seed=7)
        second = run_monte_carlo(inputs, variance=0.2, iterations=100, seed=7)
        assert first == second

    def test_retained_paths_are_capped(self, inputs):
        result = run_monte_carlo(inputs, variance=0.1, iterations=250, seed=3)
        assert len(result.scenarios) == MAX_RETAINED_PATHS

    def test_batches_cover_all_iterations(self, inputs):
        runner = MonteCarloRunner(inputs, variance=0.1, iterations=250, seed=3)
        sizes = [len(batch) for batch in runner.batches(batch_size=100)]
        assert sizes == [100, 100, 50]

    def test_invalid_inputs_rejected_up_front(self, inputs):
        inputs.projection_months = 0
        with pytest.raises(ValidationError):
            MonteCarloRunner(inputs, variance=0.1)

    def test_variance_is_clamped(self):
        assert clamp_variance(-1.0) == 0.0
        assert clamp_variance(5.0) == MAX_VARIANCE
        assert clamp_variance(float("nan")) == 0.0

    def test_summarise_empty(self):
        result = summarise([])
        assert result.iterations == 0
        assert result.p50 == 0.0


class TestDivergenceGuard:
    """Tests for paths whose burn outgrows the cash base."""

    @pytest.fixture
    def runaway(self):
        """Burn grows 50% a month and passes 10x initial cash in month 7."""
        return RunwayInputs(
            start_date=date(2026, 1, 1),
            initial_cash=1_000.0,
            initial_burn=1_000.0,
            initial_revenue=1_100.0,
            burn_growth_rate=0.5,
            revenue_growth_rate=0.5,
            projection_months=24,
        )

    def test_aborted_path_keeps_completed_months(self, runaway):
        path = MonteCarloRunner(runaway, variance=0.0, iterations=1, seed=1).run_iteration()

        assert path.runway_months == 6
        assert path.burn_multiple == pytest.approx(1.5 ** 6)

    def test_summary_reflects_aborted_paths(self, runaway):
        result = run_monte_carlo(runaway, variance=0.0, iterations=20, seed=1)
        assert result.p10 == result.p50 == result.p90 == 6

    def test_deterministic_projection_is_unguarded(self, runaway):
        assert project_runway(runaway).runway_months == 24
