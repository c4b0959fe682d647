"""Reading-to-reading trend analysis.

Classifies the change between a current and previous value, and finds the
previous reading of a metric in a record history.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from healthscore.core.catalog.models import MetricConfig
from healthscore.core.catalog.registry import normalize_metric_id
from healthscore.core.errors import InvalidNumberError, RecordValidationError
from healthscore.core.stats.statistics import parse_instant
from healthscore.domains.health.domain_logic.models import (
    HealthRecord,
    TrendAssessment,
    TrendDirection,
    TrendResult,
)
from healthscore.domains.health.domain_logic.validation import is_finite_number

logger = logging.getLogger(__name__)

# Changes below this percentage are measurement jitter, not a trend.
NEUTRAL_THRESHOLD_PCT = 1.0


def trend(current: Any, previous: Any) -> TrendResult:
    """Direction and magnitude (%) of the change from ``previous`` to ``current``.

    Raises:
        InvalidNumberError: either argument is missing, non-numeric or non-finite.
    """
    if not is_finite_number(current):
        raise InvalidNumberError("current", current)
    if not is_finite_number(previous):
        raise InvalidNumberError("previous", previous)

    if previous == 0:
        return TrendResult(TrendDirection.NEUTRAL, 0.0)

    change = (current - previous) / abs(previous) * 100
    percentage = abs(round(change, 2))

    if abs(change) < NEUTRAL_THRESHOLD_PCT:
        return TrendResult(TrendDirection.NEUTRAL, percentage)
    return TrendResult(TrendDirection.UP if change > 0 else TrendDirection.DOWN, percentage)


def assess(result: TrendResult, config: MetricConfig) -> TrendAssessment:
    """Read a trend through the metric's polarity (rising steps improve, rising HR worsens)."""
    if result.direction == TrendDirection.NEUTRAL:
        return TrendAssessment.STABLE
    rising = result.direction == TrendDirection.UP
    if rising == config.higher_is_better:
        return TrendAssessment.IMPROVING
    return TrendAssessment.WORSENING


def _record_fields(record: Any, index: int) -> tuple[Any, Any, Any, Any]:
    if isinstance(record, HealthRecord):
        return record.id, record.metric_id, record.value, record.recorded_at
    if not isinstance(record, Mapping):
        raise RecordValidationError(index, "record", "must be a mapping")
    return (
        record.get("id"),
        record.get("metricId", record.get("metric_id", record.get("type"))),
        record.get("value"),
        record.get("recordedAt", record.get("recorded_at")),
    )


def previous_value(
    records: Sequence[HealthRecord | dict],
    metric_id: str,
    exclude_id: Any = None,
) -> float | None:
    """Most recent value of ``metric_id`` other than the record ``exclude_id``.

    Every record's timestamp is parsed before filtering, so a single bad date
    anywhere in the history fails the call.

    Raises:
        RecordValidationError: a record is neither a HealthRecord nor a mapping.
        InvalidDateError: a record's timestamp is missing or unparseable.
    """
    target = normalize_metric_id(metric_id)
    candidates: list[tuple[Any, Any]] = []

    for i, record in enumerate(records):
        record_id, record_metric, value, recorded_at = _record_fields(record, i)
        instant = parse_instant(recorded_at, field="recordedAt", index=i)
        if not isinstance(record_metric, str) or normalize_metric_id(record_metric) != target:
            continue
        if exclude_id is not None and record_id == exclude_id:
            continue
        candidates.append((instant, value))

    if not candidates:
        return None
    candidates.sort(key=lambda pair: pair[0], reverse=True)
    return candidates[0][1]
