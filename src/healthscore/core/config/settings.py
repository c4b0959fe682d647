"""Engine settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Health analytics engine configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "HEALTHSCORE_"}

    log_level: str = "info"

    # Scoring
    default_scoring_system: Literal["percentage", "z-score", "custom"] = "percentage"

    # Prediction
    default_prediction_algorithm: Literal["linear-regression", "moving-average"] = "linear-regression"
    default_prediction_horizon: int = 7
    moving_average_window: int = 5
    confidence_level: float = 0.95

    # Catalog (empty = packaged metrics.yaml)
    catalog_path: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
