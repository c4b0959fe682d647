"""Health analytics domain models and constants."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Selectors and classifications
# ---------------------------------------------------------------------------

class ScoringSystem(str, Enum):
    PERCENTAGE = "percentage"
    Z_SCORE = "z-score"
    CUSTOM = "custom"


class PredictionAlgorithm(str, Enum):
    LINEAR_REGRESSION = "linear-regression"
    MOVING_AVERAGE = "moving-average"


class IntervalMethod(str, Enum):
    """How forecast confidence bands are sized."""

    PROPORTIONAL = "proportional"  # |value| * rate * step
    STUDENT_T = "student-t"        # t-based prediction interval (regression only)


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class TrendAssessment(str, Enum):
    IMPROVING = "improving"
    WORSENING = "worsening"
    STABLE = "stable"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class ScoreCategory(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NEUTRAL_SCORE = 50
DEFAULT_HORIZON = 7
DEFAULT_MOVING_AVERAGE_WINDOW = 5

# Radar charts need a minimum shape to be readable.
RADAR_MIN_METRICS = 3
RADAR_PADDED_METRICS = 5
RADAR_PLACEHOLDER_METRICS = ["weight", "steps", "sleep", "heart_rate", "water_intake"]

SCORE_COLORS: dict[ScoreCategory, str] = {
    ScoreCategory.POOR: "#ef4444",       # red-500
    ScoreCategory.FAIR: "#f59e0b",       # amber-500
    ScoreCategory.GOOD: "#3b82f6",       # blue-500
    ScoreCategory.EXCELLENT: "#10b981",  # green-500
    ScoreCategory.UNKNOWN: "#6b7280",    # gray-500
}


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HealthRecord:
    """A single logged measurement. Read-only to the engine."""

    id: Any
    metric_id: str
    value: float
    recorded_at: datetime
    unit: str = ""


@dataclass(frozen=True)
class HealthGoal:
    """A user goal for one metric."""

    id: Any
    metric_id: str
    target_value: float
    current_value: float
    status: GoalStatus
    target_date: date | None = None


@dataclass(frozen=True)
class SeriesPoint:
    """One historical observation fed to the predictor."""

    date: str
    value: float
    unit: str = ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrendResult:
    direction: TrendDirection
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {"direction": self.direction.value, "percentage": self.percentage}


@dataclass
class ScoredMetric:
    """A metric value normalized for radar display."""

    metric_id: str
    label: str
    raw_value: float
    score: float
    max_value: float
    unit: str
    color: str
    icon: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "metricId": self.metric_id,
            "category": self.label,
            "value": self.raw_value,
            "maxValue": self.max_value,
            "unit": self.unit,
            "score": self.score,
            "color": self.color,
            "icon": self.icon,
        }


@dataclass
class SummaryMetric:
    """A summary card: latest value plus previous reading and goal context."""

    id: str
    metric_id: str
    label: str
    value: float
    unit: str
    icon: str
    previous_value: float | None = None
    goal_target: float | None = None
    goal_current: float | None = None
    trend: TrendResult | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "metricId": self.metric_id,
            "label": self.label,
            "value": self.value,
            "unit": self.unit,
            "icon": self.icon,
        }
        if self.previous_value is not None:
            data["previousValue"] = self.previous_value
        if self.goal_target is not None:
            data["goalTarget"] = self.goal_target
            data["goalCurrent"] = self.goal_current
        if self.trend is not None:
            data["trend"] = self.trend.to_dict()
        return data


@dataclass
class RadarSnapshot:
    """Scored metrics for one radar chart plus the overall health score."""

    metrics: list[ScoredMetric]
    overall_score: int
    overall_color: str
    timestamp: str
    label: str = "Current Health Status"

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics": [m.to_dict() for m in self.metrics],
            "overallScore": self.overall_score,
            "overallColor": self.overall_color,
            "timestamp": self.timestamp,
            "label": self.label,
        }


@dataclass
class PredictedPoint:
    """A historical or forecast point in a predictive series."""

    date: str
    value: float
    unit: str = ""
    is_prediction: bool = False
    algorithm: PredictionAlgorithm | None = None
    confidence: float | None = None
    confidence_upper: float | None = None
    confidence_lower: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "date": self.date,
            "value": self.value,
            "unit": self.unit,
            "isPrediction": self.is_prediction,
        }
        if self.is_prediction:
            data["algorithm"] = self.algorithm.value if self.algorithm else None
            data["confidence"] = self.confidence
            data["confidenceUpper"] = self.confidence_upper
            data["confidenceLower"] = self.confidence_lower
        return data
