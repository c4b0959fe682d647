"""Presentation-ready aggregates over records and goals.

Composes the normalizer, trend analyzer and predictor into summary cards, a
radar-chart snapshot with an overall health score, and predictive series.
Inputs are validated up front; the first malformed record or goal fails the
whole call.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from healthscore.core.catalog.models import MetricConfig, UserProfile
from healthscore.core.catalog.registry import MetricCatalog, display_label, normalize_metric_id
from healthscore.domains.health.domain_logic.models import (
    NEUTRAL_SCORE,
    RADAR_MIN_METRICS,
    RADAR_PADDED_METRICS,
    RADAR_PLACEHOLDER_METRICS,
    SCORE_COLORS,
    GoalStatus,
    HealthGoal,
    HealthRecord,
    PredictedPoint,
    PredictionAlgorithm,
    RadarSnapshot,
    ScoredMetric,
    ScoringSystem,
    SeriesPoint,
    SummaryMetric,
)
from healthscore.domains.health.domain_logic.normalizer import (
    Normalizer,
    round_half_up,
    score_category,
)
from healthscore.domains.health.domain_logic.predictor import PredictionOptions, predict
from healthscore.domains.health.domain_logic.trend_analyzer import previous_value, trend
from healthscore.domains.health.domain_logic.validation import (
    is_finite_number,
    parse_goals,
    parse_records,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_VALUE = 100.0


# ---------------------------------------------------------------------------
# Stateless helpers
# ---------------------------------------------------------------------------

def overall_score(scored: Sequence[ScoredMetric | dict | float]) -> int:
    """Mean of the finite scores, rounded and clamped; 50 when there are none."""
    if not scored:
        return NEUTRAL_SCORE

    valid = []
    for item in scored:
        if isinstance(item, ScoredMetric):
            value = item.score
        elif isinstance(item, dict):
            value = item.get("score")
        else:
            value = item
        if is_finite_number(value):
            valid.append(value)

    if not valid:
        return NEUTRAL_SCORE
    return max(0, min(100, round_half_up(sum(valid) / len(valid))))


def score_color(score: Any) -> str:
    """Hex colour of the score bucket; a distinct grey for unscorable input."""
    return SCORE_COLORS[score_category(score)]


def latest_by_metric(records: Sequence[HealthRecord]) -> dict[str, HealthRecord]:
    """Most recent record per metric id, in first-seen metric order."""
    latest: dict[str, HealthRecord] = {}
    for record in records:
        key = normalize_metric_id(record.metric_id)
        current = latest.get(key)
        if current is None or record.recorded_at > current.recorded_at:
            latest[key] = record
    return latest


def _active_goals(goals: Sequence[HealthGoal]) -> dict[str, HealthGoal]:
    """First active goal per metric id."""
    active: dict[str, HealthGoal] = {}
    for goal in goals:
        if goal.status != GoalStatus.ACTIVE:
            continue
        active.setdefault(normalize_metric_id(goal.metric_id), goal)
    return active


def format_value(value: Any, unit: str) -> str:
    """Display formatting: thousands separators for counts, one decimal for measures."""
    if not is_finite_number(value):
        return "0"
    unit_key = (unit or "").lower()
    if unit_key in ("steps", "bpm", "min", "mmhg", "kcal"):
        return f"{value:,.0f}" if float(value).is_integer() else f"{value:,}"
    if unit_key in ("kg", "hours", "liters", "mg/dl"):
        return str(int(value)) if float(value).is_integer() else f"{value:.1f}"
    return str(value)


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class Aggregator:
    """Builds summary cards, radar snapshots and predictive series.

    Usage::

        aggregator = Aggregator(catalog)
        cards = aggregator.summary_metrics(records, goals)
        snapshot = aggregator.radar_snapshot(records, goals, ScoringSystem.Z_SCORE)
    """

    def __init__(self, catalog: MetricCatalog, normalizer: Normalizer | None = None) -> None:
        self._catalog = catalog
        self._normalizer = normalizer or Normalizer(catalog)

    def _label(self, metric_id: str, config: MetricConfig) -> str:
        return config.label or display_label(metric_id)

    def summary_metrics(
        self,
        records: Sequence[HealthRecord | dict],
        goals: Sequence[HealthGoal | dict],
    ) -> list[SummaryMetric]:
        """One card per metric: latest reading, previous reading, trend and active goal.

        Raises:
            RecordValidationError / GoalValidationError: on the first malformed input.
        """
        parsed_records = parse_records(records)
        parsed_goals = parse_goals(goals)
        active = _active_goals(parsed_goals)
        latest = latest_by_metric(parsed_records)

        cards: list[SummaryMetric] = []
        for key, record in latest.items():
            config = self._catalog.lookup(record.metric_id)
            if record.id is None:
                # without ids the latest record cannot be excluded by id
                previous = _previous_without_ids(parsed_records, record)
            else:
                previous = previous_value(parsed_records, record.metric_id, exclude_id=record.id)
            goal = active.get(key)
            cards.append(SummaryMetric(
                id=f"metric-{record.metric_id}-{record.id}",
                metric_id=record.metric_id,
                label=self._label(record.metric_id, config),
                value=record.value,
                unit=record.unit or config.unit,
                icon=config.icon,
                previous_value=previous,
                goal_target=goal.target_value if goal else None,
                goal_current=goal.current_value if goal else None,
                trend=trend(record.value, previous) if previous is not None else None,
            ))

        for key, goal in active.items():
            if key in latest:
                continue
            config = self._catalog.lookup(goal.metric_id)
            cards.append(SummaryMetric(
                id=f"metric-goal-{goal.metric_id}-{goal.id}",
                metric_id=goal.metric_id,
                label=self._label(goal.metric_id, config),
                value=goal.current_value,
                unit=config.unit,
                icon=config.icon,
                goal_target=goal.target_value,
                goal_current=goal.current_value,
            ))

        logger.debug("Built %d summary metrics from %d records", len(cards), len(parsed_records))
        return cards

    def radar_snapshot(
        self,
        records: Sequence[HealthRecord | dict],
        goals: Sequence[HealthGoal | dict],
        system: ScoringSystem | str = ScoringSystem.PERCENTAGE,
        *,
        profile: UserProfile | None = None,
        timestamp: str | None = None,
    ) -> RadarSnapshot:
        """Scored metrics for a radar chart, padded to a readable minimum shape.

        Raises:
            RecordValidationError / GoalValidationError: on the first malformed input.
        """
        parsed_records = parse_records(records)
        parsed_goals = parse_goals(goals)
        active = _active_goals(parsed_goals)
        latest = latest_by_metric(parsed_records)

        metrics: list[ScoredMetric] = []
        for key, record in latest.items():
            config = self._catalog.lookup(record.metric_id, profile)
            goal = active.get(key)
            metrics.append(self._scored(
                record.metric_id,
                record.value,
                config,
                system,
                unit=record.unit or config.unit,
                max_value=goal.target_value if goal else _range_max(config),
                profile=profile,
            ))

        for key, goal in active.items():
            if key in latest:
                continue
            config = self._catalog.lookup(goal.metric_id, profile)
            metrics.append(self._scored(
                goal.metric_id,
                goal.current_value,
                config,
                system,
                unit=config.unit,
                max_value=goal.target_value,
                profile=profile,
            ))

        if len(metrics) < RADAR_MIN_METRICS:
            present = {normalize_metric_id(m.metric_id) for m in metrics}
            for metric_id in RADAR_PLACEHOLDER_METRICS:
                if len(metrics) >= RADAR_PADDED_METRICS:
                    break
                if metric_id in present:
                    continue
                config = self._catalog.lookup(metric_id, profile)
                metrics.append(ScoredMetric(
                    metric_id=metric_id,
                    label=self._label(metric_id, config),
                    raw_value=0,
                    score=0,
                    max_value=_range_max(config),
                    unit=config.unit,
                    color=config.color,
                    icon=config.icon,
                ))

        score = overall_score(metrics)
        return RadarSnapshot(
            metrics=metrics,
            overall_score=score,
            overall_color=score_color(score),
            timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        )

    def _scored(
        self,
        metric_id: str,
        value: float,
        config: MetricConfig,
        system: ScoringSystem | str,
        *,
        unit: str,
        max_value: float,
        profile: UserProfile | None,
    ) -> ScoredMetric:
        return ScoredMetric(
            metric_id=metric_id,
            label=self._label(metric_id, config),
            raw_value=value,
            score=self._normalizer.score(value, metric_id, system, profile=profile),
            max_value=max_value,
            unit=unit,
            color=config.color,
            icon=config.icon,
        )

    def predictive_series(
        self,
        records: Sequence[HealthRecord | dict],
        metric_id: str,
        algorithm: PredictionAlgorithm | str = PredictionAlgorithm.LINEAR_REGRESSION,
        horizon: Any = 7,
        options: PredictionOptions | None = None,
    ) -> list[PredictedPoint]:
        """Date-ordered history of one metric plus its forecast."""
        parsed = parse_records(records)
        target = normalize_metric_id(metric_id)
        config = self._catalog.lookup(metric_id)
        history = sorted(
            (r for r in parsed if normalize_metric_id(r.metric_id) == target),
            key=lambda r: r.recorded_at,
        )
        series = [
            SeriesPoint(date=r.recorded_at.isoformat(), value=r.value, unit=r.unit or config.unit)
            for r in history
        ]
        return predict(series, algorithm, horizon, options)


def _range_max(config: MetricConfig) -> float:
    if config.ideal_range is not None and config.ideal_range.is_valid:
        return config.ideal_range.max
    return DEFAULT_MAX_VALUE


def _previous_without_ids(records: Sequence[HealthRecord], latest: HealthRecord) -> float | None:
    """Previous reading when records carry no ids: skip the latest record itself."""
    history = sorted(
        (r for r in records
         if normalize_metric_id(r.metric_id) == normalize_metric_id(latest.metric_id) and r is not latest),
        key=lambda r: r.recorded_at,
        reverse=True,
    )
    return history[0].value if history else None
