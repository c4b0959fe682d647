"""Data models for the metric catalog."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Literal

Gender = Literal["male", "female", "other"]


@dataclass(frozen=True)
class IdealRange:
    """The healthy/target band for a metric."""

    min: float
    max: float

    @property
    def is_valid(self) -> bool:
        return math.isfinite(self.min) and math.isfinite(self.max) and self.min < self.max

    def to_dict(self) -> dict[str, float]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class MetricConfig:
    """Display and scoring metadata for one metric."""

    metric_id: str
    label: str
    icon: str
    color: str
    unit: str
    ideal_range: IdealRange | None = None
    scoring_multiplier: float | None = None
    higher_is_better: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "metricId": self.metric_id,
            "label": self.label,
            "icon": self.icon,
            "color": self.color,
            "unit": self.unit,
            "idealRange": self.ideal_range.to_dict() if self.ideal_range else None,
            "scoringMultiplier": self.scoring_multiplier,
            "higherIsBetter": self.higher_is_better,
        }


@dataclass(frozen=True)
class ProfileGoals:
    """Explicit daily targets a user has set."""

    daily_steps: float | None = None
    sleep_hours: float | None = None
    water_intake: float | None = None


@dataclass(frozen=True)
class UserProfile:
    """Optional profile data used only to personalize ideal ranges."""

    age: int | None = None
    gender: Gender | None = None
    goals: ProfileGoals = field(default_factory=ProfileGoals)

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        goals = data.get("goals") or {}
        return cls(
            age=data.get("age"),
            gender=data.get("gender"),
            goals=ProfileGoals(
                daily_steps=goals.get("daily_steps", goals.get("dailySteps")),
                sleep_hours=goals.get("sleep_hours", goals.get("sleepHours")),
                water_intake=goals.get("water_intake", goals.get("waterIntake")),
            ),
        )
