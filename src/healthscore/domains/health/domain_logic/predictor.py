"""Forecasting of metric series with confidence bands.

Given a time-ordered series of (date, value) points, fits a linear
regression or a trending moving average and extrapolates ``horizon`` daily
points. Output is always the historical points (unchanged) followed by the
forecast. Too little data is not an error: the forecast is simply empty.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterator, Sequence

from healthscore.core.errors import InsufficientDataError
from healthscore.core.stats.statistics import (
    PredictionAccuracy,
    confidence_interval,
    linear_regression,
    parse_instant,
    prediction_accuracy,
    series_to_points,
)
from healthscore.domains.health.domain_logic.models import (
    DEFAULT_HORIZON,
    DEFAULT_MOVING_AVERAGE_WINDOW,
    IntervalMethod,
    PredictedPoint,
    PredictionAlgorithm,
    SeriesPoint,
)
from healthscore.domains.health.domain_logic.validation import is_finite_number, parse_series

logger = logging.getLogger(__name__)

# Band width per step, as a fraction of |value|.
REGRESSION_BAND_RATE = 0.1
MOVING_AVERAGE_BAND_RATE = 0.05
MIN_BAND = 0.01
MIN_CONFIDENCE = 0.1


@dataclass(frozen=True)
class PredictionOptions:
    """Optional knobs for a prediction request."""

    window_size: int | None = None
    interval: IntervalMethod = IntervalMethod.PROPORTIONAL
    confidence_level: float = 0.95


def resolve_horizon(horizon: Any) -> int:
    """Non-positive, non-finite or non-numeric horizons fall back to 7; fractions floor."""
    if not is_finite_number(horizon) or horizon <= 0:
        return DEFAULT_HORIZON
    return math.floor(horizon)


def resolve_algorithm(algorithm: PredictionAlgorithm | str) -> PredictionAlgorithm:
    if isinstance(algorithm, PredictionAlgorithm):
        return algorithm
    try:
        return PredictionAlgorithm(algorithm)
    except ValueError:
        logger.warning("Unknown prediction algorithm %r, using linear regression", algorithm)
        return PredictionAlgorithm.LINEAR_REGRESSION


def _round2(value: float) -> float:
    return round(value, 2)


def _forecast_point(
    date: str,
    value: float,
    band: float,
    *,
    unit: str,
    algorithm: PredictionAlgorithm,
    confidence: float,
) -> PredictedPoint | None:
    """Build a forecast point, or None when anything is non-finite."""
    if not (math.isfinite(value) and math.isfinite(band)):
        return None
    rounded = _round2(value)
    band = max(_round2(abs(band)), MIN_BAND)
    upper = _round2(rounded + band)
    lower = _round2(rounded - band)
    # at large magnitudes the band can be below one float step
    if not lower < rounded < upper:
        upper = max(upper, math.nextafter(rounded, math.inf))
        lower = min(lower, math.nextafter(rounded, -math.inf))
    if not (math.isfinite(upper) and math.isfinite(lower)):
        return None
    return PredictedPoint(
        date=date,
        value=rounded,
        unit=unit,
        is_prediction=True,
        algorithm=algorithm,
        confidence=confidence,
        confidence_upper=upper,
        confidence_lower=lower,
    )


def _future_dates(last_date: str, horizon: int) -> Iterator[tuple[int, str]]:
    last = parse_instant(last_date, field="date")
    for i in range(1, horizon + 1):
        try:
            future = last + timedelta(days=i)
        except OverflowError:
            logger.debug("Forecast date overflow at step %d, stopping", i)
            return
        yield i, future.date().isoformat()


def _historical(points: Sequence[SeriesPoint]) -> list[PredictedPoint]:
    return [PredictedPoint(date=p.date, value=p.value, unit=p.unit, is_prediction=False) for p in points]


def _linear_regression_forecast(
    points: Sequence[SeriesPoint],
    horizon: int,
    unit: str,
    options: PredictionOptions,
) -> list[PredictedPoint]:
    n = len(points)
    if n < 2:
        logger.debug("Linear regression needs 2 points, got %d; no forecast", n)
        return []

    fit = linear_regression(series_to_points([(p.date, p.value) for p in points]))

    forecast = []
    for i, date in _future_dates(points[-1].date, horizon):
        value = fit.predict(n + i - 1)
        if options.interval == IntervalMethod.STUDENT_T:
            interval = confidence_interval(value, options.confidence_level, fit.residual_std_dev, n)
            band = (interval.upper - interval.lower) / 2
        else:
            band = abs(value) * REGRESSION_BAND_RATE * i
        point = _forecast_point(
            date,
            value,
            band,
            unit=unit,
            algorithm=PredictionAlgorithm.LINEAR_REGRESSION,
            confidence=max(MIN_CONFIDENCE, round(1 - 0.1 * i, 2)),
        )
        if point is None:
            logger.debug("Skipping non-finite regression forecast at step %d", i)
            continue
        forecast.append(point)
    return forecast


def _moving_average_forecast(
    points: Sequence[SeriesPoint],
    horizon: int,
    unit: str,
    options: PredictionOptions,
) -> list[PredictedPoint]:
    n = len(points)
    window = options.window_size if options.window_size is not None else DEFAULT_MOVING_AVERAGE_WINDOW
    window = min(max(int(window), 1), n)
    recent = [p.value for p in points[-window:]]

    if not recent or not all(math.isfinite(v) for v in recent):
        logger.debug("Moving average window empty or invalid; no forecast")
        return []

    average = sum(recent) / len(recent)
    slope = (recent[-1] - recent[0]) / (len(recent) - 1) if len(recent) > 1 else 0.0
    if not (math.isfinite(average) and math.isfinite(slope)):
        return []

    forecast = []
    for i, date in _future_dates(points[-1].date, horizon):
        value = average + slope * i
        point = _forecast_point(
            date,
            value,
            abs(value) * MOVING_AVERAGE_BAND_RATE * i,
            unit=unit,
            algorithm=PredictionAlgorithm.MOVING_AVERAGE,
            confidence=max(MIN_CONFIDENCE, round(1 - 0.05 * i, 2)),
        )
        if point is None:
            logger.debug("Skipping non-finite moving-average forecast at step %d", i)
            continue
        forecast.append(point)
    return forecast


_FORECASTERS = {
    PredictionAlgorithm.LINEAR_REGRESSION: _linear_regression_forecast,
    PredictionAlgorithm.MOVING_AVERAGE: _moving_average_forecast,
}


def predict(
    series: Sequence[SeriesPoint | dict],
    algorithm: PredictionAlgorithm | str = PredictionAlgorithm.LINEAR_REGRESSION,
    horizon: Any = DEFAULT_HORIZON,
    options: PredictionOptions | None = None,
) -> list[PredictedPoint]:
    """Historical points followed by up to ``horizon`` forecast points.

    Raises:
        InvalidSeriesPointError: a point lacks a parseable date or finite value.
    """
    points = parse_series(series)
    if not points:
        return []

    options = options or PredictionOptions()
    resolved = resolve_algorithm(algorithm)
    steps = resolve_horizon(horizon)
    unit = points[0].unit

    forecast = _FORECASTERS[resolved](points, steps, unit, options)
    return [*_historical(points), *forecast]


def backtest(
    series: Sequence[SeriesPoint | dict],
    algorithm: PredictionAlgorithm | str = PredictionAlgorithm.LINEAR_REGRESSION,
    holdout: int = 3,
    options: PredictionOptions | None = None,
) -> PredictionAccuracy:
    """Fit on all but the last ``holdout`` points and score the forecast of them.

    Raises:
        InsufficientDataError: the training part would be empty.
    """
    points = parse_series(series)
    if holdout <= 0 or holdout >= len(points):
        raise InsufficientDataError(
            f"Backtest needs 0 < holdout < {len(points)}, got {holdout}",
            field="holdout",
        )

    training, actual = points[:-holdout], points[-holdout:]
    result = predict(training, algorithm, holdout, options)
    forecast = [p for p in result if p.is_prediction]
    # skipped forecast points shorten the comparison
    paired = list(zip(actual, forecast))
    return prediction_accuracy([a.value for a, _ in paired], [f.value for _, f in paired])
