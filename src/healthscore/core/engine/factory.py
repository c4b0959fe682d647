"""Health analytics engine: application factory.

``create_engine()`` builds the metric catalog once, wires the normalizer,
aggregator and predictor to it, and returns a facade exposing every public
operation. The engine holds no mutable state; one instance can serve
concurrent requests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

from healthscore.core.catalog.loader import default_catalog, load_catalog_file
from healthscore.core.catalog.models import MetricConfig, UserProfile
from healthscore.core.catalog.registry import MetricCatalog
from healthscore.core.config.settings import Settings, get_settings
from healthscore.core.stats.statistics import PredictionAccuracy
from healthscore.domains.health.domain_logic import trend_analyzer
from healthscore.domains.health.domain_logic.aggregator import (
    Aggregator,
    overall_score,
    score_color,
)
from healthscore.domains.health.domain_logic.models import (
    HealthGoal,
    HealthRecord,
    IntervalMethod,
    PredictedPoint,
    PredictionAlgorithm,
    RadarSnapshot,
    ScoredMetric,
    ScoringSystem,
    SeriesPoint,
    SummaryMetric,
    TrendResult,
)
from healthscore.domains.health.domain_logic.normalizer import Normalizer
from healthscore.domains.health.domain_logic.predictor import PredictionOptions, backtest, predict

logger = logging.getLogger(__name__)


class HealthAnalyticsEngine:
    """Facade over the scoring, trend, prediction and aggregation components."""

    def __init__(self, catalog: MetricCatalog, settings: Settings) -> None:
        self.catalog = catalog
        self.settings = settings
        self.normalizer = Normalizer(catalog)
        self.aggregator = Aggregator(catalog, self.normalizer)

    # --- catalog / scoring ---

    def lookup(self, metric_id: str, profile: UserProfile | dict | None = None) -> MetricConfig:
        return self.catalog.lookup(metric_id, _profile(profile))

    def normalize(
        self,
        value: Any,
        metric_id: str,
        system: ScoringSystem | str | None = None,
        *,
        profile: UserProfile | dict | None = None,
    ) -> int:
        return self.normalizer.score(
            value,
            metric_id,
            system or self.settings.default_scoring_system,
            profile=_profile(profile),
        )

    def overall_score(self, scored: Sequence[ScoredMetric | dict | float]) -> int:
        return overall_score(scored)

    def score_color(self, score: Any) -> str:
        return score_color(score)

    # --- trends ---

    def trend(self, current: Any, previous: Any) -> TrendResult:
        return trend_analyzer.trend(current, previous)

    def previous_value(
        self,
        records: Sequence[HealthRecord | dict],
        metric_id: str,
        exclude_id: Any = None,
    ) -> float | None:
        return trend_analyzer.previous_value(records, metric_id, exclude_id)

    # --- prediction ---

    def _options(self, window_size: int | None, interval: IntervalMethod | str) -> PredictionOptions:
        return PredictionOptions(
            window_size=window_size or self.settings.moving_average_window,
            interval=IntervalMethod(interval),
            confidence_level=self.settings.confidence_level,
        )

    def predict(
        self,
        series: Sequence[SeriesPoint | dict],
        algorithm: PredictionAlgorithm | str | None = None,
        horizon: Any = None,
        *,
        window_size: int | None = None,
        interval: IntervalMethod | str = IntervalMethod.PROPORTIONAL,
    ) -> list[PredictedPoint]:
        return predict(
            series,
            algorithm or self.settings.default_prediction_algorithm,
            self.settings.default_prediction_horizon if horizon is None else horizon,
            self._options(window_size, interval),
        )

    def backtest(
        self,
        series: Sequence[SeriesPoint | dict],
        algorithm: PredictionAlgorithm | str | None = None,
        holdout: int = 3,
    ) -> PredictionAccuracy:
        return backtest(
            series,
            algorithm or self.settings.default_prediction_algorithm,
            holdout,
            self._options(None, IntervalMethod.PROPORTIONAL),
        )

    # --- aggregates ---

    def summary_metrics(
        self,
        records: Sequence[HealthRecord | dict],
        goals: Sequence[HealthGoal | dict],
    ) -> list[SummaryMetric]:
        return self.aggregator.summary_metrics(records, goals)

    def radar_snapshot(
        self,
        records: Sequence[HealthRecord | dict],
        goals: Sequence[HealthGoal | dict],
        system: ScoringSystem | str | None = None,
        *,
        profile: UserProfile | dict | None = None,
        timestamp: str | None = None,
    ) -> RadarSnapshot:
        return self.aggregator.radar_snapshot(
            records,
            goals,
            system or self.settings.default_scoring_system,
            profile=_profile(profile),
            timestamp=timestamp,
        )

    def predictive_series(
        self,
        records: Sequence[HealthRecord | dict],
        metric_id: str,
        algorithm: PredictionAlgorithm | str | None = None,
        horizon: Any = None,
    ) -> list[PredictedPoint]:
        return self.aggregator.predictive_series(
            records,
            metric_id,
            algorithm or self.settings.default_prediction_algorithm,
            self.settings.default_prediction_horizon if horizon is None else horizon,
            self._options(None, IntervalMethod.PROPORTIONAL),
        )


def _profile(profile: UserProfile | dict | None) -> UserProfile | None:
    if profile is None or isinstance(profile, UserProfile):
        return profile
    return UserProfile.from_dict(profile)


def _configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))


def create_engine(
    *,
    settings: Settings | None = None,
    catalog_override: MetricCatalog | None = None,
) -> HealthAnalyticsEngine:
    """Create and configure the health analytics engine.

    1. Loads settings (environment / .env) unless given
    2. Configures logging if the host application has not
    3. Builds the metric catalog once (override > settings path > packaged YAML)
    4. Wires the normalizer and aggregator to that catalog
    """
    settings = settings or get_settings()
    _configure_logging(settings)

    if catalog_override is not None:
        catalog = catalog_override
    elif settings.catalog_path:
        path = Path(settings.catalog_path).expanduser()
        if path.is_file():
            catalog = load_catalog_file(path)
        else:
            logger.warning("Catalog file %s not found, using packaged catalog", path)
            catalog = default_catalog()
    else:
        catalog = default_catalog()

    logger.info(
        "Health analytics engine ready (%d metrics, scoring=%s, algorithm=%s)",
        len(catalog),
        settings.default_scoring_system,
        settings.default_prediction_algorithm,
    )
    return HealthAnalyticsEngine(catalog, settings)
