"""Shared test fixtures for the health analytics engine tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "HEALTHSCORE_LOG_LEVEL",
        "HEALTHSCORE_DEFAULT_SCORING_SYSTEM",
        "HEALTHSCORE_DEFAULT_PREDICTION_ALGORITHM",
        "HEALTHSCORE_DEFAULT_PREDICTION_HORIZON",
        "HEALTHSCORE_MOVING_AVERAGE_WINDOW",
        "HEALTHSCORE_CONFIDENCE_LEVEL",
        "HEALTHSCORE_CATALOG_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    # keep a developer's .env out of the tests
    monkeypatch.chdir(Path(__file__).resolve().parent)

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from healthscore.core.catalog.loader import default_catalog  # noqa: E402
from healthscore.core.catalog.models import IdealRange, MetricConfig  # noqa: E402
from healthscore.core.catalog.registry import MetricCatalog  # noqa: E402


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def make_record(
    metric_id: str = "weight",
    value: Any = 70.0,
    recorded_at: Any = "2024-01-01T08:00:00Z",
    id: Any = 1,
    unit: str = "",
) -> dict[str, Any]:
    """A record dict in the shape the persistence layer returns."""
    return {
        "id": id,
        "type": metric_id,
        "value": value,
        "unit": unit,
        "recorded_at": recorded_at,
    }


def make_goal(
    metric_id: str = "steps",
    target_value: Any = 10000,
    current_value: Any = 7500,
    status: Any = "active",
    id: Any = 1,
    target_date: Any = "2024-06-30",
) -> dict[str, Any]:
    """A goal dict in the shape the persistence layer returns."""
    return {
        "id": id,
        "type": metric_id,
        "target_value": target_value,
        "current_value": current_value,
        "status": status,
        "target_date": target_date,
    }


def make_config(
    metric_id: str = "synthetic",
    ideal: tuple[float, float] | None = (0, 100),
    multiplier: float | None = 1.0,
    higher_is_better: bool = True,
) -> MetricConfig:
    """A synthetic metric config for injecting into the normalizer."""
    return MetricConfig(
        metric_id=metric_id,
        label=metric_id.title(),
        icon="*",
        color="#000000",
        unit="u",
        ideal_range=IdealRange(*ideal) if ideal is not None else None,
        scoring_multiplier=multiplier,
        higher_is_better=higher_is_better,
    )


def daily_series(values: list[float], start_day: int = 1, unit: str = "kg") -> list[dict[str, Any]]:
    """Consecutive daily points in January 2024."""
    return [
        {"date": f"2024-01-{start_day + i:02d}", "value": v, "unit": unit}
        for i, v in enumerate(values)
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog() -> MetricCatalog:
    """The packaged metric catalog."""
    return default_catalog()


@pytest.fixture
def engine(catalog: MetricCatalog):
    """An engine with default settings and the packaged catalog."""
    from healthscore.core.config.settings import Settings
    from healthscore.core.engine.factory import create_engine

    return create_engine(settings=Settings(), catalog_override=catalog)


@pytest.fixture
def record():
    """Builder for record dicts."""
    return make_record


@pytest.fixture
def goal():
    """Builder for goal dicts."""
    return make_goal


@pytest.fixture
def config():
    """Builder for synthetic metric configs."""
    return make_config


@pytest.fixture
def series():
    """Builder for consecutive daily series."""
    return daily_series
