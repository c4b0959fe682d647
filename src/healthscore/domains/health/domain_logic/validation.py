"""Up-front validation of caller-supplied records, goals and series points.

Callers hand the engine plain dicts (as fetched by the persistence layer) or
the domain dataclasses. Every malformed input raises a typed error naming the
offending index and field; nothing here degrades silently.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, Mapping, Sequence

from healthscore.core.errors import (
    GoalValidationError,
    InvalidDateError,
    InvalidSeriesPointError,
    RecordValidationError,
)
from healthscore.core.stats.statistics import parse_instant
from healthscore.domains.health.domain_logic.models import (
    GoalStatus,
    HealthGoal,
    HealthRecord,
    SeriesPoint,
)

_MISSING = object()


def is_finite_number(value: Any) -> bool:
    """True for int/float values that are finite; bools are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _get(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return _MISSING


def _check_record(record: HealthRecord, index: int) -> HealthRecord:
    """Validate a caller-built HealthRecord and normalize its timestamp to aware UTC."""
    if not isinstance(record.metric_id, str) or not record.metric_id.strip():
        raise RecordValidationError(index, "metricId", f"{record.metric_id!r} must be a non-empty string")
    if not is_finite_number(record.value):
        raise RecordValidationError(index, "value", f"{record.value!r} must be a finite number")
    try:
        instant = parse_instant(record.recorded_at, field="recordedAt", index=index)
    except InvalidDateError:
        raise RecordValidationError(
            index, "recordedAt", f"{record.recorded_at!r} is not a valid timestamp"
        ) from None
    return replace(record, value=float(record.value), recorded_at=instant, unit=record.unit or "")


def _check_goal(goal: HealthGoal, index: int) -> HealthGoal:
    """Validate a caller-built HealthGoal; status strings are coerced to GoalStatus."""
    if not isinstance(goal.metric_id, str) or not goal.metric_id.strip():
        raise GoalValidationError(index, "metricId", f"{goal.metric_id!r} must be a non-empty string")
    for field_name, value in (("targetValue", goal.target_value), ("currentValue", goal.current_value)):
        if not is_finite_number(value):
            raise GoalValidationError(index, field_name, f"{value!r} must be a finite number")
    try:
        status = GoalStatus(goal.status)
    except ValueError:
        raise GoalValidationError(
            index, "status", f"{goal.status!r} is not one of active, completed, paused"
        ) from None

    target_date = goal.target_date
    if target_date is not None:
        try:
            target_date = parse_instant(target_date, field="targetDate", index=index).date()
        except InvalidDateError:
            raise GoalValidationError(index, "targetDate", f"{goal.target_date!r} is not a valid date") from None

    return replace(
        goal,
        target_value=float(goal.target_value),
        current_value=float(goal.current_value),
        status=status,
        target_date=target_date,
    )


def parse_record(data: HealthRecord | Mapping[str, Any], index: int = 0) -> HealthRecord:
    """Build a HealthRecord from a dict, checking required fields."""
    if isinstance(data, HealthRecord):
        return _check_record(data, index)
    if not isinstance(data, Mapping):
        raise RecordValidationError(index, "record", "must be a mapping")

    metric_id = _get(data, "metricId", "metric_id", "type")
    if metric_id is _MISSING or metric_id is None:
        raise RecordValidationError(index, "metricId", "is missing")
    if not isinstance(metric_id, str) or not metric_id.strip():
        raise RecordValidationError(index, "metricId", f"{metric_id!r} must be a non-empty string")

    value = _get(data, "value")
    if value is _MISSING:
        raise RecordValidationError(index, "value", "is missing")
    if not is_finite_number(value):
        raise RecordValidationError(index, "value", f"{value!r} must be a finite number")

    recorded_at = _get(data, "recordedAt", "recorded_at")
    if recorded_at is _MISSING:
        raise RecordValidationError(index, "recordedAt", "is missing")
    try:
        instant = parse_instant(recorded_at, field="recordedAt", index=index)
    except InvalidDateError:
        raise RecordValidationError(index, "recordedAt", f"{recorded_at!r} is not a valid timestamp") from None

    unit = data.get("unit") or ""
    return HealthRecord(
        id=data.get("id"),
        metric_id=metric_id,
        value=float(value),
        recorded_at=instant,
        unit=str(unit),
    )


def parse_goal(data: HealthGoal | Mapping[str, Any], index: int = 0) -> HealthGoal:
    """Build a HealthGoal from a dict, checking required fields and status."""
    if isinstance(data, HealthGoal):
        return _check_goal(data, index)
    if not isinstance(data, Mapping):
        raise GoalValidationError(index, "goal", "must be a mapping")

    metric_id = _get(data, "metricId", "metric_id", "type")
    if metric_id is _MISSING or metric_id is None:
        raise GoalValidationError(index, "metricId", "is missing")
    if not isinstance(metric_id, str) or not metric_id.strip():
        raise GoalValidationError(index, "metricId", f"{metric_id!r} must be a non-empty string")

    numbers: dict[str, float] = {}
    for field_name, keys in (
        ("currentValue", ("currentValue", "current_value")),
        ("targetValue", ("targetValue", "target_value")),
    ):
        value = _get(data, *keys)
        if value is _MISSING:
            raise GoalValidationError(index, field_name, "is missing")
        if not is_finite_number(value):
            raise GoalValidationError(index, field_name, f"{value!r} must be a finite number")
        numbers[field_name] = float(value)

    status = _get(data, "status")
    if status is _MISSING:
        raise GoalValidationError(index, "status", "is missing")
    try:
        status = GoalStatus(status)
    except ValueError:
        raise GoalValidationError(index, "status", f"{status!r} is not one of active, completed, paused") from None

    target_date = _get(data, "targetDate", "target_date")
    if target_date is _MISSING or target_date in (None, ""):
        parsed_date = None
    else:
        try:
            parsed_date = parse_instant(target_date, field="targetDate", index=index).date()
        except InvalidDateError:
            raise GoalValidationError(index, "targetDate", f"{target_date!r} is not a valid date") from None

    return HealthGoal(
        id=data.get("id"),
        metric_id=metric_id,
        target_value=numbers["targetValue"],
        current_value=numbers["currentValue"],
        status=status,
        target_date=parsed_date,
    )


def parse_records(records: Sequence[Any]) -> list[HealthRecord]:
    if not isinstance(records, (list, tuple)):
        raise RecordValidationError(-1, "records", "must be a list")
    return [parse_record(r, i) for i, r in enumerate(records)]


def parse_goals(goals: Sequence[Any]) -> list[HealthGoal]:
    if not isinstance(goals, (list, tuple)):
        raise GoalValidationError(-1, "goals", "must be a list")
    return [parse_goal(g, i) for i, g in enumerate(goals)]


def parse_series(series: Sequence[Any]) -> list[SeriesPoint]:
    """Validate a prediction series; dates must parse, values must be finite."""
    if not isinstance(series, (list, tuple)):
        raise InvalidSeriesPointError(-1, "series", "must be a list")

    points = []
    for i, raw in enumerate(series):
        if isinstance(raw, SeriesPoint):
            when, value, unit = raw.date, raw.value, raw.unit
        elif isinstance(raw, Mapping):
            when = _get(raw, "date")
            value = _get(raw, "value")
            unit = raw.get("unit") or ""
        else:
            raise InvalidSeriesPointError(i, "point", "must be a mapping")

        if when is _MISSING:
            raise InvalidSeriesPointError(i, "date", "is missing")
        if value is _MISSING:
            raise InvalidSeriesPointError(i, "value", "is missing")
        if not is_finite_number(value):
            raise InvalidSeriesPointError(i, "value", f"{value!r} must be a finite number")
        try:
            parse_instant(when, field="date", index=i)
        except InvalidDateError:
            raise InvalidSeriesPointError(i, "date", f"{when!r} is not a valid date") from None

        date_text = when if isinstance(when, str) else when.isoformat()
        points.append(SeriesPoint(date=date_text, value=value, unit=str(unit)))
    return points
