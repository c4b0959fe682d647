"""Tests for summary cards, radar snapshots and the overall health score."""

from __future__ import annotations

from datetime import datetime

import pytest

from healthscore.core.catalog.models import ProfileGoals, UserProfile
from healthscore.core.errors import GoalValidationError, RecordValidationError
from healthscore.domains.health.domain_logic.aggregator import (
    Aggregator,
    format_value,
    latest_by_metric,
    overall_score,
    score_color,
)
from healthscore.domains.health.domain_logic.models import (
    NEUTRAL_SCORE,
    SCORE_COLORS,
    HealthGoal,
    HealthRecord,
    ScoreCategory,
    ScoredMetric,
    TrendDirection,
)
from healthscore.domains.health.domain_logic.validation import parse_records


@pytest.fixture
def aggregator(catalog) -> Aggregator:
    return Aggregator(catalog)


def _scored(score) -> ScoredMetric:
    return ScoredMetric("m", "M", 1.0, score, 100, "", "#000", "*")


class TestOverallScore:
    def test_empty_is_neutral(self):
        assert overall_score([]) == NEUTRAL_SCORE

    def test_all_invalid_is_neutral(self):
        assert overall_score([float("nan"), float("inf"), None]) == NEUTRAL_SCORE

    def test_ignores_invalid_entries(self):
        assert overall_score([80, float("nan"), 60]) == 70

    def test_accepts_scored_metrics_and_dicts(self):
        assert overall_score([_scored(90), {"score": 70}]) == 80

    def test_rounds_half_up(self):
        assert overall_score([40, 41]) == 41

    def test_clamped(self):
        assert overall_score([150, 130]) == 100
        assert overall_score([-20]) == 0


class TestScoreColor:
    @pytest.mark.parametrize(
        "score, category",
        [
            (39, ScoreCategory.POOR),
            (40, ScoreCategory.FAIR),
            (59, ScoreCategory.FAIR),
            (60, ScoreCategory.GOOD),
            (79, ScoreCategory.GOOD),
            (80, ScoreCategory.EXCELLENT),
        ],
    )
    def test_boundaries(self, score, category):
        assert score_color(score) == SCORE_COLORS[category]

    @pytest.mark.parametrize("score", [float("nan"), -5, 120, None])
    def test_unscorable_is_grey(self, score):
        assert score_color(score) == "#6b7280"


class TestHelpers:
    def test_latest_by_metric_keeps_first_on_tie(self, record):
        records = parse_records([
            record(value=1, recorded_at="2024-01-01", id=1),
            record(value=2, recorded_at="2024-01-01", id=2),
            record(value=3, recorded_at="2023-12-31", id=3),
        ])
        assert latest_by_metric(records)["weight"].id == 1

    @pytest.mark.parametrize(
        "value, unit, expected",
        [
            (10000, "steps", "10,000"),
            (72.5, "kg", "72.5"),
            (72.0, "kg", "72"),
            (3, "ratio", "3"),
            (float("nan"), "kg", "0"),
        ],
    )
    def test_format_value(self, value, unit, expected):
        assert format_value(value, unit) == expected


class TestSummaryMetrics:
    def test_card_with_previous_and_trend(self, aggregator, record):
        records = [
            record(value=70, recorded_at="2024-01-01", id=1),
            record(value=72, recorded_at="2024-01-02", id=2),
        ]
        [card] = aggregator.summary_metrics(records, [])
        assert card.id == "metric-weight-2"
        assert card.label == "Weight"
        assert card.value == 72
        assert card.unit == "kg"
        assert card.previous_value == 70
        assert card.trend.direction == TrendDirection.UP
        assert card.trend.percentage == 2.86

    def test_single_reading_has_no_trend(self, aggregator, record):
        [card] = aggregator.summary_metrics([record()], [])
        assert card.previous_value is None
        assert card.trend is None
        assert "trend" not in card.to_dict()

    def test_records_without_ids(self, aggregator, record):
        records = [
            record(value=70, recorded_at="2024-01-01", id=None),
            record(value=71, recorded_at="2024-01-03", id=None),
        ]
        [card] = aggregator.summary_metrics(records, [])
        assert card.previous_value == 70

    def test_active_goal_attached(self, aggregator, record, goal):
        records = [record(metric_id="steps", value=9000)]
        [card] = aggregator.summary_metrics(records, [goal(target_value=10000, current_value=9000)])
        assert card.goal_target == 10000
        assert card.goal_current == 9000
        assert card.to_dict()["goalTarget"] == 10000

    def test_goal_only_card(self, aggregator, goal):
        [card] = aggregator.summary_metrics([], [goal(metric_id="sleep", target_value=8, current_value=6.5, id=5)])
        assert card.id == "metric-goal-sleep-5"
        assert card.value == 6.5
        assert card.unit == "hours"

    def test_inactive_goals_ignored(self, aggregator, goal):
        goals = [goal(status="completed"), goal(metric_id="sleep", status="paused", id=2)]
        assert aggregator.summary_metrics([], goals) == []

    def test_unknown_metric_uses_fallback_display(self, aggregator, record):
        [card] = aggregator.summary_metrics([record(metric_id="vo2_max", value=40)], [])
        assert card.label == "Vo2 Max"
        assert card.icon == "📊"

    def test_malformed_value_fails_fast(self, aggregator):
        bad = {"type": "weight", "value": "x", "recorded_at": "2024-01-01"}
        with pytest.raises(RecordValidationError) as exc:
            aggregator.summary_metrics([bad], [])
        assert exc.value.field == "value"
        assert exc.value.index == 0

    def test_malformed_goal_dataclass_fails_fast(self, aggregator):
        bad = HealthGoal(1, "steps", float("nan"), 7500, "bogus")
        with pytest.raises(GoalValidationError) as exc:
            aggregator.summary_metrics([], [bad])
        assert exc.value.field == "targetValue"

    def test_dict_and_naive_dataclass_records_mix(self, aggregator, record):
        records = [
            record(value=70, recorded_at="2024-01-01T00:00:00Z", id=1),
            HealthRecord(2, "weight", 71.0, datetime(2024, 1, 2)),
        ]
        [card] = aggregator.summary_metrics(records, [])
        assert card.value == 71.0
        assert card.previous_value == 70

    def test_malformed_goal_fails_fast(self, aggregator, goal):
        with pytest.raises(GoalValidationError) as exc:
            aggregator.summary_metrics([], [goal(status="abandoned")])
        assert exc.value.field == "status"


class TestRadarSnapshot:
    def test_scores_and_overall(self, aggregator, record, goal):
        records = [
            record(metric_id="weight", value=22, id=1),
            record(metric_id="steps", value=11500, id=2),
            record(metric_id="sleep", value=8, id=3),
        ]
        snapshot = aggregator.radar_snapshot(records, [goal(metric_id="steps", target_value=10000)], "percentage")
        scores = {m.metric_id: m.score for m in snapshot.metrics}
        assert scores == {"weight": 55, "steps": 50, "sleep": 50}
        assert snapshot.overall_score == 52
        assert snapshot.overall_color == SCORE_COLORS[ScoreCategory.FAIR]

    def test_max_value_prefers_goal_target(self, aggregator, record, goal):
        records = [
            record(metric_id="weight", value=22, id=1),
            record(metric_id="steps", value=11500, id=2),
            record(metric_id="vo2_max", value=40, id=3),
        ]
        snapshot = aggregator.radar_snapshot(records, [goal(metric_id="steps", target_value=12000)])
        max_values = {m.metric_id: m.max_value for m in snapshot.metrics}
        assert max_values == {"weight": 24.9, "steps": 12000, "vo2_max": 100.0}

    def test_pads_sparse_snapshot_with_placeholders(self, aggregator, record):
        snapshot = aggregator.radar_snapshot([record(metric_id="sleep", value=8)], [])
        ids = [m.metric_id for m in snapshot.metrics]
        assert ids == ["sleep", "weight", "steps", "heart_rate", "water_intake"]
        assert [m.score for m in snapshot.metrics[1:]] == [0, 0, 0, 0]
        assert snapshot.overall_score == 10

    def test_empty_input_gives_placeholders(self, aggregator):
        snapshot = aggregator.radar_snapshot([], [])
        assert len(snapshot.metrics) == 5
        assert snapshot.overall_score == 0

    def test_no_padding_at_three_metrics(self, aggregator, record):
        records = [
            record(metric_id="weight", value=22, id=1),
            record(metric_id="steps", value=11500, id=2),
            record(metric_id="glucose", value=85, id=3),
        ]
        assert len(aggregator.radar_snapshot(records, []).metrics) == 3

    def test_goal_only_metric_scored_from_current_value(self, aggregator, goal):
        snapshot = aggregator.radar_snapshot([], [goal(metric_id="sleep", target_value=9, current_value=8)])
        sleep = snapshot.metrics[0]
        assert sleep.metric_id == "sleep"
        assert sleep.score == 50
        assert sleep.max_value == 9

    def test_profile_personalizes_scores(self, aggregator, record):
        profile = UserProfile(goals=ProfileGoals(daily_steps=10000))
        records = [record(metric_id="steps", value=10000)]
        personalized = aggregator.radar_snapshot(records, [], profile=profile)
        generic = aggregator.radar_snapshot(records, [])
        assert personalized.metrics[0].score == 50
        assert generic.metrics[0].score == 29

    def test_timestamp_and_to_dict(self, aggregator, record):
        snapshot = aggregator.radar_snapshot([record()], [], timestamp="2024-05-01T00:00:00+00:00")
        data = snapshot.to_dict()
        assert data["timestamp"] == "2024-05-01T00:00:00+00:00"
        assert data["label"] == "Current Health Status"
        assert data["metrics"][0]["category"] == "Weight"

    def test_default_timestamp_is_utc(self, aggregator):
        assert aggregator.radar_snapshot([], []).timestamp.endswith("+00:00")


class TestPredictiveSeries:
    def test_history_sorted_then_forecast(self, aggregator, record):
        records = [
            record(value=72, recorded_at="2024-01-03T08:00:00Z", id=3),
            record(value=70, recorded_at="2024-01-01T08:00:00Z", id=1),
            record(metric_id="steps", value=9000, recorded_at="2024-01-02T08:00:00Z", id=9),
            record(value=71, recorded_at="2024-01-02T08:00:00Z", id=2),
        ]
        result = aggregator.predictive_series(records, "weight", "linear-regression", 2)
        history = [p for p in result if not p.is_prediction]
        assert [p.value for p in history] == [70, 71, 72]
        assert history[0].date == "2024-01-01T08:00:00+00:00"
        assert history[0].unit == "kg"
        forecast = [p for p in result if p.is_prediction]
        assert [p.date for p in forecast] == ["2024-01-04", "2024-01-05"]
        assert [p.value for p in forecast] == pytest.approx([73.0, 74.0])

    def test_unknown_metric_gives_empty_series(self, aggregator, record):
        assert aggregator.predictive_series([record()], "glucose") == []
