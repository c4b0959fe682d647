"""Deterministic score normalization: raw metric value -> 0-100 score.

Three interchangeable scoring systems are dispatched through a table keyed by
ScoringSystem. Every path returns an int in [0, 100]; anything that cannot be
scored (non-finite value, unknown system, missing or degenerate range, no
multiplier) yields the neutral score of 50.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional

from healthscore.core.catalog.models import MetricConfig, UserProfile
from healthscore.core.catalog.registry import MetricCatalog
from healthscore.domains.health.domain_logic.models import (
    NEUTRAL_SCORE,
    ScoreCategory,
    ScoringSystem,
)
from healthscore.domains.health.domain_logic.validation import is_finite_number

logger = logging.getLogger(__name__)

# (mean, std_dev) of a user's own history, overriding the range-derived distribution
Reference = tuple[float, float]


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (round() would go to even)."""
    return math.floor(value + 0.5)


def _to_score(value: float) -> int:
    return round_half_up(_clamp(value))


# ---------------------------------------------------------------------------
# Scorers
# ---------------------------------------------------------------------------

def score_percentage(value: float, config: MetricConfig, reference: Reference | None = None) -> int:
    """Linear position of ``value`` inside the ideal range, clamped to 0-100."""
    ideal = config.ideal_range
    if ideal is None or not ideal.is_valid:
        return NEUTRAL_SCORE
    return _to_score((value - ideal.min) / (ideal.max - ideal.min) * 100)


def score_z(value: float, config: MetricConfig, reference: Reference | None = None) -> int:
    """50 + 15 z, with the ideal range read as mean +/- 2 standard deviations."""
    if reference is not None:
        mean, std_dev = reference
    else:
        ideal = config.ideal_range
        if ideal is None or not ideal.is_valid:
            return NEUTRAL_SCORE
        mean = (ideal.min + ideal.max) / 2
        std_dev = (ideal.max - ideal.min) / 4

    if not (math.isfinite(mean) and math.isfinite(std_dev)) or std_dev <= 0:
        return NEUTRAL_SCORE
    z = (value - mean) / std_dev
    return _to_score(50 + z * 15)


def score_custom(value: float, config: MetricConfig, reference: Reference | None = None) -> int:
    """``value * scoring_multiplier`` clamped to 0-100."""
    multiplier = config.scoring_multiplier
    if not is_finite_number(multiplier):
        return NEUTRAL_SCORE
    scaled = value * multiplier
    if not math.isfinite(scaled):
        return NEUTRAL_SCORE
    return _to_score(scaled)


Scorer = Callable[[float, MetricConfig, Optional[Reference]], int]

SCORERS: dict[ScoringSystem, Scorer] = {
    ScoringSystem.PERCENTAGE: score_percentage,
    ScoringSystem.Z_SCORE: score_z,
    ScoringSystem.CUSTOM: score_custom,
}


def resolve_system(system: ScoringSystem | str) -> ScoringSystem | None:
    """Map a selector (enum or its string value) to a ScoringSystem, or None."""
    if isinstance(system, ScoringSystem):
        return system
    try:
        return ScoringSystem(system)
    except ValueError:
        return None


def normalize(
    value: Any,
    config: MetricConfig,
    system: ScoringSystem | str = ScoringSystem.PERCENTAGE,
    *,
    reference: Reference | None = None,
) -> int:
    """Score ``value`` against ``config`` using ``system``. Never raises."""
    if not is_finite_number(value):
        logger.debug("Non-finite value %r for %s, scoring neutral", value, config.metric_id)
        return NEUTRAL_SCORE

    resolved = resolve_system(system)
    if resolved is None:
        logger.debug("Unknown scoring system %r, scoring neutral", system)
        return NEUTRAL_SCORE

    return SCORERS[resolved](float(value), config, reference)


def score_category(score: Any) -> ScoreCategory:
    """Bucket a 0-100 score; non-finite or out-of-range input is UNKNOWN."""
    if not is_finite_number(score) or not 0 <= score <= 100:
        return ScoreCategory.UNKNOWN
    if score < 40:
        return ScoreCategory.POOR
    if score < 60:
        return ScoreCategory.FAIR
    if score < 80:
        return ScoreCategory.GOOD
    return ScoreCategory.EXCELLENT


class Normalizer:
    """Catalog-backed scoring.

    Usage::

        normalizer = Normalizer(catalog)
        score = normalizer.score(8500, "steps", ScoringSystem.PERCENTAGE)
    """

    def __init__(self, catalog: MetricCatalog) -> None:
        self._catalog = catalog

    def score(
        self,
        value: Any,
        metric_id: str,
        system: ScoringSystem | str = ScoringSystem.PERCENTAGE,
        *,
        profile: UserProfile | None = None,
        reference: Reference | None = None,
    ) -> int:
        config = self._catalog.lookup(metric_id, profile)
        return normalize(value, config, system, reference=reference)
