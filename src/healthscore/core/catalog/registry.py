"""Metric catalog: immutable lookup table of metric configuration.

Built once (usually from the packaged YAML) and passed explicitly to the
normalizer and aggregator. Lookups never fail: unknown metric ids resolve to
a neutral fallback config.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from healthscore.core.catalog.models import IdealRange, MetricConfig, UserProfile

logger = logging.getLogger(__name__)

FALLBACK_ICON = "📊"
FALLBACK_COLOR = "#6b7280"

_WHITESPACE = re.compile(r"\s+")


def normalize_metric_id(metric_id: str) -> str:
    """Lower-case and underscore a metric id ('Heart Rate' -> 'heart_rate')."""
    return _WHITESPACE.sub("_", metric_id.strip().lower())


def display_label(metric_id: str) -> str:
    """Title-case an underscored id ('heart_rate' -> 'Heart Rate')."""
    return metric_id.replace("_", " ").title()


def _finite_goal(value: float | None) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) and value > 0 else None


class MetricCatalog:
    """Read-only registry of metric configs keyed by normalized id.

    Usage::

        catalog = MetricCatalog(configs, aliases={"hydration": "water_intake"})
        config = catalog.lookup("steps", profile)
    """

    def __init__(
        self,
        configs: Iterable[MetricConfig],
        *,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        table: dict[str, MetricConfig] = {}
        for config in configs:
            key = normalize_metric_id(config.metric_id)
            if key in table:
                raise ValueError(f"Duplicate metric id registered: {config.metric_id!r}")
            table[key] = config

        alias_table: dict[str, str] = {}
        for alias, target in (aliases or {}).items():
            target_key = normalize_metric_id(target)
            if target_key not in table:
                raise ValueError(f"Alias {alias!r} points at unknown metric {target!r}")
            alias_table[normalize_metric_id(alias)] = target_key

        self._configs: Mapping[str, MetricConfig] = MappingProxyType(table)
        self._aliases: Mapping[str, str] = MappingProxyType(alias_table)

    def __contains__(self, metric_id: object) -> bool:
        return isinstance(metric_id, str) and self._resolve(metric_id) is not None

    def __len__(self) -> int:
        return len(self._configs)

    def __iter__(self) -> Iterator[MetricConfig]:
        return iter(self._configs.values())

    def ids(self) -> list[str]:
        return list(self._configs)

    def _resolve(self, metric_id: str) -> str | None:
        key = normalize_metric_id(metric_id)
        if key in self._configs:
            return key
        return self._aliases.get(key)

    def fallback(self, metric_id: str = "") -> MetricConfig:
        """Neutral config for a metric the catalog does not know."""
        return MetricConfig(
            metric_id=metric_id,
            label=display_label(metric_id) if metric_id else "",
            icon=FALLBACK_ICON,
            color=FALLBACK_COLOR,
            unit="",
        )

    def lookup(self, metric_id: str, profile: UserProfile | None = None) -> MetricConfig:
        """Return the config for ``metric_id``, personalized by ``profile`` if given."""
        if not isinstance(metric_id, str) or not metric_id.strip():
            return self.fallback()

        key = self._resolve(metric_id)
        if key is None:
            logger.debug("Unknown metric %r, using fallback config", metric_id)
            return self.fallback(metric_id)

        config = self._configs[key]
        if profile is not None:
            config = _personalize(config, profile)
        return config


def _personalize(config: MetricConfig, profile: UserProfile) -> MetricConfig:
    """Recentre ideal ranges on the user's goals; branch body fat on gender."""
    goals = profile.goals
    new_range: IdealRange | None = None

    if config.metric_id == "steps":
        goal = _finite_goal(goals.daily_steps)
        if goal is not None:
            new_range = IdealRange(goal * 0.8, goal * 1.2)
    elif config.metric_id == "sleep":
        goal = _finite_goal(goals.sleep_hours)
        if goal is not None:
            new_range = IdealRange(goal - 0.5, goal + 0.5)
    elif config.metric_id == "water_intake":
        goal = _finite_goal(goals.water_intake)
        if goal is not None:
            new_range = IdealRange(goal * 0.9, goal * 1.1)
    elif config.metric_id == "body_fat_percentage":
        if profile.gender == "female":
            new_range = IdealRange(16, 24)
        elif profile.gender == "male":
            new_range = IdealRange(10, 18)

    if new_range is None:
        return config
    return replace(config, ideal_range=new_range)
