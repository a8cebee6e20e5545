"""
Numeric kernel - statistical primitives shared by the forecasting engines.

Every function here is pure and synchronous. Pathological inputs (NaN,
infinity, empty series, zero divisors) are recovered locally: the kernel
returns 0, None or the last observed value instead of raising, so nothing
non-finite ever reaches an artifact.
"""
import math
import random
import statistics
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from horizon.analytics.cache import BoundedCache

DEFAULT_ALPHA = 0.3
DEFAULT_WMA_WEIGHTS: Tuple[float, ...] = (0.1, 0.2, 0.3, 0.4)
MIN_DATA_POINTS = 2
TREND_CAP = 0.5
TREND_DAMPING = 0.05
SEASONALITY_MIN_MONTHS = 6
SEASONALITY_FLOOR = 0.5
SEASONALITY_CEILING = 2.0

Z_SCORES = {0.90: 1.645, 0.95: 1.96, 0.99: 2.576}

_smoothing_cache: BoundedCache[Tuple[float, ...]] = BoundedCache()


# =============================================================================
# Basic statistics
# =============================================================================

def is_finite_number(value) -> bool:
    """True for real, finite numbers (bools excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def finite_or(value, fallback: float = 0.0) -> float:
    """Return value as float when finite, else the fallback."""
    return float(value) if is_finite_number(value) else fallback


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clean_series(values: Sequence[float], allow_negative: bool = False) -> List[float]:
    """Drop non-finite entries (and negatives unless allowed)."""
    return [
        float(v) for v in values
        if is_finite_number(v) and (allow_negative or v >= 0)
    ]


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return statistics.fmean(values)


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return statistics.median(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two points."""
    if len(values) < 2:
        return 0.0
    return statistics.pstdev(values)


def quantile(values: Sequence[float], p: float) -> float:
    """Quantile with linear interpolation between closest ranks."""
    if not values:
        return 0.0
    ordered = sorted(values)
    p = min(1.0, max(0.0, p))
    position = (len(ordered) - 1) * p
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return ordered[int(position)]
    weight = position - lower
    return ordered[lower] * (1 - weight) + ordered[upper] * weight


def linear_regression(xs: Sequence[float], ys: Sequence[float]) -> Tuple[float, float]:
    """Least-squares fit y = slope * x + intercept.

    A degenerate x axis yields a flat line through the mean of y.
    """
    if len(xs) != len(ys) or not xs:
        return 0.0, 0.0
    if len(xs) < 2:
        return 0.0, float(ys[0])
    try:
        fit = statistics.linear_regression(xs, ys)
    except statistics.StatisticsError:
        return 0.0, mean(ys)
    return fit.slope, fit.intercept


def correlation(series1: Sequence[float], series2: Sequence[float]) -> Optional[float]:
    """Pearson correlation, or None when undefined."""
    if len(series1) != len(series2) or len(series1) < 2:
        return None
    try:
        return statistics.correlation(series1, series2)
    except statistics.StatisticsError:
        return None


# =============================================================================
# Outliers
# =============================================================================

def _fences(values: Sequence[float], k: float) -> Tuple[float, float]:
    q1 = quantile(values, 0.25)
    q3 = quantile(values, 0.75)
    iqr = q3 - q1
    return q1 - k * iqr, q3 + k * iqr


def remove_outliers(values: Sequence[float], k: float = 1.5) -> List[float]:
    """Drop points outside the IQR fences. Series under 4 points pass through."""
    if len(values) < 4:
        return list(values)
    lower, upper = _fences(values, k)
    return [v for v in values if lower <= v <= upper]


def detect_anomalies(values: Sequence[float], k: float = 1.5) -> List[Dict[str, float]]:
    """Flag each point against the IQR fences q1 - k*IQR, q3 + k*IQR."""
    if not values:
        return []
    lower, upper = _fences(values, k)
    return [
        {
            "index": i,
            "value": v,
            "is_anomaly": v < lower or v > upper,
            "lower": lower,
            "upper": upper,
        }
        for i, v in enumerate(values)
    ]


# =============================================================================
# Trends and moving averages
# =============================================================================

def calculate_trend(values: Sequence[float]) -> float:
    """Relative slope (slope / mean) of the trimmed series, capped at +/-0.5."""
    valid = clean_series(values)
    if len(valid) < MIN_DATA_POINTS:
        return 0.0

    trimmed = remove_outliers(valid)
    if len(trimmed) < MIN_DATA_POINTS:
        return 0.0

    slope, _ = linear_regression(list(range(len(trimmed))), trimmed)
    average = mean(trimmed)
    if average == 0:
        return 0.0

    trend = max(-TREND_CAP, min(TREND_CAP, slope / average))
    return trend if math.isfinite(trend) else 0.0


def weighted_moving_average(
    values: Sequence[float],
    weights: Sequence[float] = DEFAULT_WMA_WEIGHTS,
) -> Optional[float]:
    """Weighted average of the most recent len(weights) points.

    Returns None when the series is shorter than the weight vector.
    Weights that do not sum to 1 are normalised.
    """
    if not weights or len(values) < len(weights):
        return None
    total_weight = sum(weights)
    if total_weight <= 0:
        return None
    recent = values[-len(weights):]
    result = sum(v * w for v, w in zip(recent, weights)) / total_weight
    return result if math.isfinite(result) else None


def exponential_smoothing(
    values: Sequence[float],
    alpha: float = DEFAULT_ALPHA,
    periods: int = 12,
    cache: Optional[BoundedCache] = None,
) -> List[float]:
    """
    Forecast `periods` values by simple exponential smoothing plus a
    dampened trend.

    The trend from calculate_trend is multiplied by e^(-0.05 k) at forecast
    step k so long horizons do not compound runaway growth.
    """
    periods = max(0, int(periods))
    valid = clean_series(values)
    if not valid:
        return [0.0] * periods

    alpha = max(0.0, min(1.0, alpha))
    cache = _smoothing_cache if cache is None else cache
    key = (tuple(valid), alpha, periods)
    cached = cache.get(key)
    if cached is not None:
        return list(cached)

    smoothed = valid[0]
    for value in valid[1:]:
        smoothed = alpha * value + (1 - alpha) * smoothed

    trend = calculate_trend(valid)
    forecast = []
    for step in range(periods):
        effective_trend = trend * math.exp(-step * TREND_DAMPING)
        projected = smoothed * (1 + effective_trend) ** (step + 1)
        bounded = max(0.0, projected)
        forecast.append(bounded if math.isfinite(bounded) else smoothed)

    cache.put(key, tuple(forecast))
    return forecast


def smooth(values: Sequence[float], window: int = 5) -> List[float]:
    """Centered moving-window mean."""
    half = window // 2
    result = []
    for i in range(len(values)):
        chunk = values[max(0, i - half):min(len(values), i + half + 1)]
        result.append(mean(chunk))
    return result


@dataclass
class GrowthStats:
    """Period-over-period growth statistics."""
    rates: List[float]
    average: float
    median: float
    volatility: float


def growth_rates(values: Sequence[float]) -> GrowthStats:
    """Growth between consecutive points, skipping zero denominators."""
    rates = []
    for previous, current in zip(values, values[1:]):
        if previous:
            rate = (current - previous) / previous
            if math.isfinite(rate):
                rates.append(rate)
    return GrowthStats(
        rates=rates,
        average=mean(rates),
        median=median(rates),
        volatility=standard_deviation(rates),
    )


# =============================================================================
# Seasonality
# =============================================================================

def calculate_seasonality(points: Sequence[Tuple[date, float]]) -> List[float]:
    """
    Twelve monthly multipliers (January first).

    Needs positive observations in at least six distinct calendar months;
    otherwise every factor is 1. A month without data takes the average of
    its two neighbours when both have data.
    """
    totals = [0.0] * 12
    counts = [0] * 12
    for when, value in points:
        if when is None or not is_finite_number(value) or value <= 0:
            continue
        totals[when.month - 1] += value
        counts[when.month - 1] += 1

    if sum(1 for c in counts if c > 0) < SEASONALITY_MIN_MONTHS:
        return [1.0] * 12

    averages = [totals[i] / counts[i] if counts[i] else 0.0 for i in range(12)]
    present = [a for a in averages if a > 0]
    if not present:
        return [1.0] * 12
    overall = mean(present)

    factors = []
    for i, average in enumerate(averages):
        if average == 0:
            previous = averages[(i + 11) % 12]
            following = averages[(i + 1) % 12]
            if previous > 0 and following > 0:
                average = (previous + following) / 2
            else:
                factors.append(1.0)
                continue
        factors.append(max(SEASONALITY_FLOOR, min(SEASONALITY_CEILING, average / overall)))
    return factors


# =============================================================================
# Sampling and summaries
# =============================================================================

def normal_sample(mean_value: float, stddev: float, rng: random.Random) -> float:
    """One draw from N(mean, stddev) by the Box-Muller transform."""
    u1 = 1.0 - rng.random()  # (0, 1], keeps log finite
    u2 = rng.random()
    z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    return mean_value + z0 * stddev


def percentile_summary(samples: Sequence[float]) -> Dict[str, float]:
    """Worst/best, quartiles and tails of a set of simulated outcomes."""
    if not samples:
        return {key: 0.0 for key in ("worst", "p10", "p25", "median", "p75", "p90", "best", "mean", "std_dev")}
    ordered = sorted(samples)
    return {
        "worst": ordered[0],
        "p10": quantile(ordered, 0.10),
        "p25": quantile(ordered, 0.25),
        "median": median(ordered),
        "p75": quantile(ordered, 0.75),
        "p90": quantile(ordered, 0.90),
        "best": ordered[-1],
        "mean": mean(ordered),
        "std_dev": standard_deviation(ordered),
    }


def confidence_interval(values: Sequence[float], level: float = 0.95) -> Dict[str, float]:
    """Normal-approximation interval around the sample mean."""
    if not values:
        return {"mean": 0.0, "lower": 0.0, "upper": 0.0, "margin_of_error": 0.0}
    average = mean(values)
    z = Z_SCORES.get(level, 1.96)
    margin = z * standard_deviation(values) / math.sqrt(len(values))
    return {
        "mean": average,
        "lower": average - margin,
        "upper": average + margin,
        "margin_of_error": margin,
    }


def accuracy_metrics(actual: Sequence[float], predicted: Sequence[float]) -> Optional[Dict[str, float]]:
    """MAE, MAPE (percent), RMSE and R-squared of a forecast against actuals."""
    if len(actual) != len(predicted) or not actual:
        return None
    errors = [a - p for a, p in zip(actual, predicted)]
    mae = mean([abs(e) for e in errors])
    mape = mean([abs(e / a) if a else 0.0 for a, e in zip(actual, errors)]) * 100
    rmse = math.sqrt(mean([e * e for e in errors]))
    actual_mean = mean(actual)
    ss_total = sum((a - actual_mean) ** 2 for a in actual)
    ss_residual = sum(e * e for e in errors)
    r2 = 1 - ss_residual / ss_total if ss_total else 0.0
    return {"mae": mae, "mape": mape, "rmse": rmse, "r2": r2}
