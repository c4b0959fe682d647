"""Numeric primitives for the predictive analytics layer.

Population mean/variance/covariance, least-squares regression, moving
averages, forecast error metrics and t-distribution confidence intervals.
No health-domain knowledge lives here.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable, Sequence

from healthscore.core.errors import (
    InsufficientDataError,
    InvalidConfidenceLevelError,
    InvalidDateError,
    InvalidWindowError,
    LengthMismatchError,
)


@dataclass(frozen=True)
class DataPoint:
    """A single (x, y) observation for regression."""

    x: float
    y: float


@dataclass(frozen=True)
class RegressionResult:
    """Least-squares fit of y = slope * x + intercept."""

    slope: float
    intercept: float
    r_squared: float
    residual_std_dev: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class ConfidenceInterval:
    upper: float
    lower: float


@dataclass(frozen=True)
class PredictionAccuracy:
    """Forecast error summary."""

    mape: float
    rmse: float
    mae: float
    accuracy: float  # 1 - normalized RMSE, as a percentage

    def to_dict(self) -> dict[str, float]:
        return {
            "mape": self.mape,
            "rmse": self.rmse,
            "mae": self.mae,
            "accuracy": self.accuracy,
        }


# ---------------------------------------------------------------------------
# t-distribution critical values (two-sided, 95%) by degrees of freedom
# ---------------------------------------------------------------------------

_T_TABLE: dict[int, float] = {
    1: 12.706,
    2: 4.303,
    3: 3.182,
    4: 2.776,
    5: 2.571,
    6: 2.447,
    7: 2.365,
    8: 2.306,
    9: 2.262,
    10: 2.228,
    15: 2.131,
    20: 2.086,
    25: 2.060,
    30: 2.042,
}

# (max alpha, z) pairs for the large-sample normal approximation
_Z_TABLE: list[tuple[float, float]] = [
    (0.005, 2.576),  # 99%
    (0.01, 2.326),   # 98%
    (0.025, 1.96),   # 95%
    (0.05, 1.645),   # 90%
]
_Z_FALLBACK = 1.282  # 80%

LARGE_SAMPLE_DF = 30


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------

def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.fmean(values)


def variance(values: Sequence[float], mean_value: float | None = None) -> float:
    """Population variance; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    mu = mean(values) if mean_value is None else mean_value
    return sum((v - mu) ** 2 for v in values) / len(values)


def covariance(
    xs: Sequence[float],
    ys: Sequence[float],
    mean_x: float | None = None,
    mean_y: float | None = None,
) -> float:
    """Population covariance of two equal-length sequences; 0.0 when empty."""
    if len(xs) != len(ys):
        raise LengthMismatchError(len(xs), len(ys))
    if not xs:
        return 0.0
    mx = mean(xs) if mean_x is None else mean_x
    my = mean(ys) if mean_y is None else mean_y
    return sum((x - mx) * (y - my) for x, y in zip(xs, ys)) / len(xs)


def descriptive_stats(values: Sequence[float]) -> tuple[float, float]:
    """Return (mean, std_dev) rounded to 2 decimals for z-score references.

    The standard deviation is floored at 1 so a flat history never produces
    an unbounded z-score. An empty sequence yields (0.0, 1.0).
    """
    if not values:
        return 0.0, 1.0
    mu = mean(values)
    std = math.sqrt(variance(values, mu))
    return round(mu, 2), max(1.0, round(std, 2))


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def linear_regression(points: Sequence[DataPoint]) -> RegressionResult:
    """Ordinary least squares over ``points``.

    Raises:
        InsufficientDataError: fewer than two points.
    """
    n = len(points)
    if n < 2:
        raise InsufficientDataError(
            f"Linear regression requires at least 2 data points (got {n})",
            field="points",
        )

    xs = [p.x for p in points]
    ys = [p.y for p in points]
    x_mean = mean(xs)
    y_mean = mean(ys)
    x_var = variance(xs, x_mean)

    if x_var == 0:
        return RegressionResult(
            slope=0.0,
            intercept=y_mean,
            r_squared=0.0,
            residual_std_dev=math.sqrt(variance(ys, y_mean)),
        )

    slope = covariance(xs, ys, x_mean, y_mean) / x_var
    intercept = y_mean - slope * x_mean

    total_ss = sum((y - y_mean) ** 2 for y in ys)
    residual_ss = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys))
    r_squared = 1.0 if total_ss == 0 else 1.0 - residual_ss / total_ss
    residual_std = math.sqrt(residual_ss / (n - 2)) if n > 2 else 0.0

    return RegressionResult(
        slope=slope,
        intercept=intercept,
        r_squared=max(0.0, min(1.0, r_squared)),
        residual_std_dev=residual_std,
    )


def moving_average(values: Sequence[float], window_size: int) -> list[float]:
    """Simple moving average; returns ``len(values) - window_size + 1`` means."""
    if window_size <= 0 or window_size > len(values):
        raise InvalidWindowError(window_size, len(values))
    return [mean(values[i:i + window_size]) for i in range(len(values) - window_size + 1)]


# ---------------------------------------------------------------------------
# Confidence intervals
# ---------------------------------------------------------------------------

def t_critical_value(alpha: float, degrees_of_freedom: int) -> float:
    """Approximate two-sided critical value for ``alpha`` (one tail).

    Uses the normal approximation from 30 degrees of freedom up and the
    closest tabulated t value below that.
    """
    if degrees_of_freedom >= LARGE_SAMPLE_DF:
        for max_alpha, z in _Z_TABLE:
            if alpha <= max_alpha:
                return z
        return _Z_FALLBACK

    closest = min(_T_TABLE, key=lambda df: (abs(df - degrees_of_freedom), df))
    return _T_TABLE[closest]


def confidence_interval(
    predicted_value: float,
    confidence_level: float,
    residual_std_dev: float,
    sample_size: int,
) -> ConfidenceInterval:
    """Symmetric prediction interval around ``predicted_value``."""
    if not 0 < confidence_level < 1:
        raise InvalidConfidenceLevelError(
            f"Confidence level must be in (0, 1), got {confidence_level!r}",
            field="confidence_level",
        )
    if sample_size <= 0:
        raise InsufficientDataError(
            f"Sample size must be positive, got {sample_size!r}",
            field="sample_size",
        )

    # 1 - 0.95 is 0.05000000000000004 in floating point
    alpha = round(1 - confidence_level, 10)
    critical = t_critical_value(alpha / 2, sample_size - 2)
    margin = critical * residual_std_dev * math.sqrt(1 + 1 / sample_size)
    return ConfidenceInterval(upper=predicted_value + margin, lower=predicted_value - margin)


# ---------------------------------------------------------------------------
# Accuracy metrics
# ---------------------------------------------------------------------------

def _check_lengths(actual: Sequence[float], predicted: Sequence[float]) -> None:
    if len(actual) != len(predicted):
        raise LengthMismatchError(len(actual), len(predicted))


def mape(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Mean absolute percentage error; ``inf`` if any actual value is 0."""
    _check_lengths(actual, predicted)
    if not actual:
        return 0.0
    if any(a == 0 for a in actual):
        return math.inf
    return mean([abs((a - p) / a) for a, p in zip(actual, predicted)]) * 100


def rmse(actual: Sequence[float], predicted: Sequence[float]) -> float:
    _check_lengths(actual, predicted)
    if not actual:
        return 0.0
    return math.sqrt(mean([(a - p) ** 2 for a, p in zip(actual, predicted)]))


def mae(actual: Sequence[float], predicted: Sequence[float]) -> float:
    _check_lengths(actual, predicted)
    if not actual:
        return 0.0
    return mean([abs(a - p) for a, p in zip(actual, predicted)])


def prediction_accuracy(actual: Sequence[float], predicted: Sequence[float]) -> PredictionAccuracy:
    """Combine MAPE/RMSE/MAE with a 0-100 accuracy based on normalized RMSE."""
    _check_lengths(actual, predicted)
    if not actual:
        return PredictionAccuracy(mape=0.0, rmse=0.0, mae=0.0, accuracy=100.0)

    mape_value = mape(actual, predicted)
    rmse_value = rmse(actual, predicted)
    spread = max(actual) - min(actual)
    normalized = rmse_value / spread if spread > 0 else 0.0

    return PredictionAccuracy(
        mape=mape_value if math.isfinite(mape_value) else 0.0,
        rmse=rmse_value,
        mae=mae(actual, predicted),
        accuracy=max(0.0, min(100.0, (1 - normalized) * 100)),
    )


# ---------------------------------------------------------------------------
# Time axis helpers
# ---------------------------------------------------------------------------

def parse_instant(value: Any, *, field: str = "recorded_at", index: int | None = None) -> datetime:
    """Parse an ISO 8601 string, ``date`` or ``datetime`` into an aware UTC datetime.

    Naive values are taken to be UTC.

    Raises:
        InvalidDateError: the value is missing or unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidDateError(value, field=field, index=index) from None
    else:
        raise InvalidDateError(value, field=field, index=index)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def series_to_points(
    series: Iterable[tuple[Any, float]],
    *,
    x_axis: str = "index",
) -> list[DataPoint]:
    """Convert ``(date, value)`` pairs to regression points.

    ``x_axis="index"`` uses 0..n-1; ``x_axis="timestamp"`` uses epoch
    milliseconds of each parsed date.
    """
    if x_axis not in ("index", "timestamp"):
        raise ValueError(f"Unknown x_axis {x_axis!r}")
    points = []
    for i, (when, value) in enumerate(series):
        if x_axis == "timestamp":
            x = parse_instant(when, field="date", index=i).timestamp() * 1000
        else:
            x = float(i)
        points.append(DataPoint(x=x, y=float(value)))
    return points
