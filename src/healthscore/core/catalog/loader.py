"""Catalog loader: reads metric definitions from YAML."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from healthscore.core.catalog.models import IdealRange, MetricConfig
from healthscore.core.catalog.registry import FALLBACK_COLOR, FALLBACK_ICON, MetricCatalog, display_label

logger = logging.getLogger(__name__)

# Packaged definitions live under src/healthscore/domains/health/catalog/
DEFAULT_CATALOG_PATH = (
    Path(__file__).resolve().parent.parent.parent / "domains" / "health" / "catalog" / "metrics.yaml"
)


def _parse_range(data: dict[str, Any] | None) -> IdealRange | None:
    if not data:
        return None
    return IdealRange(min=float(data["min"]), max=float(data["max"]))


def parse_metric(data: dict[str, Any]) -> MetricConfig:
    """Parse one YAML entry into a MetricConfig."""
    metric_id = data["id"]
    multiplier = data.get("scoring_multiplier")
    return MetricConfig(
        metric_id=metric_id,
        label=data.get("label") or display_label(metric_id),
        icon=data.get("icon", FALLBACK_ICON),
        color=data.get("color", FALLBACK_COLOR),
        unit=data.get("unit", ""),
        ideal_range=_parse_range(data.get("ideal_range")),
        scoring_multiplier=float(multiplier) if multiplier is not None else None,
        higher_is_better=bool(data.get("higher_is_better", True)),
    )


def load_catalog_file(path: str | Path) -> MetricCatalog:
    """Parse a YAML catalog file into an immutable MetricCatalog."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    configs = []
    aliases: dict[str, str] = {}
    for entry in data.get("metrics", []):
        config = parse_metric(entry)
        configs.append(config)
        for alias in entry.get("aliases", []):
            aliases[alias] = config.metric_id

    catalog = MetricCatalog(configs, aliases=aliases)
    logger.info("Loaded %d metric definitions from %s", len(catalog), path)
    return catalog


@lru_cache(maxsize=1)
def default_catalog() -> MetricCatalog:
    """The packaged catalog, loaded once per process."""
    return load_catalog_file(DEFAULT_CATALOG_PATH)
