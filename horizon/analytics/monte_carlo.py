"""
Monte Carlo runway simulation.

Each iteration walks the same month loop as the deterministic projector
with multiplicative noise on burn and revenue. Iterations run in batches so
an async caller can yield to the event loop between them.
"""
import math
import random
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterator, List, Optional

from horizon.analytics import kernel
from horizon.analytics.runway import RunwayInputs, validate_inputs, walk_months

DEFAULT_ITERATIONS = 1000
BATCH_SIZE = 100
MAX_RETAINED_PATHS = 100
MAX_VARIANCE = 0.5
DIVERGENCE_MULTIPLE = 10


@dataclass
class SimulationPath:
    runway_months: int
    final_cash: float
    break_even: Optional[int]
    burn_multiple: float


@dataclass
class SimulationResult:
    p10: float
    p50: float
    p90: float
    mean: float
    std_dev: float
    iterations: int
    scenarios: List[SimulationPath] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def clamp_variance(variance: float) -> float:
    if not math.isfinite(variance):
        return 0.0
    return max(0.0, min(MAX_VARIANCE, variance))


class MonteCarloRunner:
    """Runs noisy projections over a frozen set of runway inputs."""

    def __init__(
        self,
        inputs: RunwayInputs,
        variance: float,
        iterations: int = DEFAULT_ITERATIONS,
        seed: Optional[int] = None,
    ):
        validate_inputs(inputs)
        self.inputs = inputs
        self.variance = clamp_variance(variance)
        self.iterations = max(1, int(iterations))
        self.rng = random.Random(seed)
        self.burn_ceiling = DIVERGENCE_MULTIPLE * inputs.initial_cash

    def _noise(self) -> float:
        return max(0.0, kernel.normal_sample(1.0, self.variance, self.rng))

    def _perturb(self, burn: float, revenue: float):
        return burn * self._noise(), revenue * self._noise()

    def run_iteration(self) -> SimulationPath:
        outcome = walk_months(
            self.inputs,
            perturb=self._perturb,
            burn_ceiling=self.burn_ceiling,
        )
        burn_multiple = (
            outcome.final_burn / self.inputs.initial_burn
            if self.inputs.initial_burn > 0 else 0.0
        )
        return SimulationPath(
            runway_months=outcome.runway_months,
            final_cash=kernel.finite_or(outcome.final_cash),
            break_even=outcome.break_even_month,
            burn_multiple=kernel.finite_or(burn_multiple),
        )

    def batches(self, batch_size: int = BATCH_SIZE) -> Iterator[List[SimulationPath]]:
        """Yield lists of completed iterations, `batch_size` at a time."""
        remaining = self.iterations
        while remaining > 0:
            size = min(batch_size, remaining)
            yield [self.run_iteration() for _ in range(size)]
            remaining -= size

    def run(self) -> SimulationResult:
        paths: List[SimulationPath] = []
        for batch in self.batches():
            paths.extend(batch)
        return summarise(paths)


def _percentile(ordered: List[float], p: float) -> float:
    index = min(len(ordered) - 1, math.floor(len(ordered) * p))
    return ordered[index]


def summarise(paths: List[SimulationPath]) -> SimulationResult:
    """Percentiles and moments over each path's runway."""
    if not paths:
        return SimulationResult(p10=0.0, p50=0.0, p90=0.0, mean=0.0, std_dev=0.0, iterations=0)

    runways = sorted(float(p.runway_months) for p in paths)
    return SimulationResult(
        p10=_percentile(runways, 0.10),
        p50=_percentile(runways, 0.50),
        p90=_percentile(runways, 0.90),
        mean=kernel.mean(runways),
        std_dev=kernel.standard_deviation(runways),
        iterations=len(paths),
        scenarios=paths[:MAX_RETAINED_PATHS],
    )


def run_monte_carlo(
    inputs: RunwayInputs,
    variance: float,
    iterations: int = DEFAULT_ITERATIONS,
    seed: Optional[int] = None,
) -> SimulationResult:
    return MonteCarloRunner(inputs, variance, iterations, seed).run()
