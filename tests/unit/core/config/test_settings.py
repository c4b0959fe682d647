"""Tests for environment-driven engine settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from healthscore.core.config.settings import Settings, get_settings


def test_defaults():
    settings = get_settings()
    assert settings.log_level == "info"
    assert settings.default_scoring_system == "percentage"
    assert settings.default_prediction_algorithm == "linear-regression"
    assert settings.default_prediction_horizon == 7
    assert settings.moving_average_window == 5
    assert settings.confidence_level == 0.95
    assert settings.catalog_path == ""


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HEALTHSCORE_DEFAULT_SCORING_SYSTEM", "z-score")
    monkeypatch.setenv("HEALTHSCORE_DEFAULT_PREDICTION_HORIZON", "14")
    settings = Settings()
    assert settings.default_scoring_system == "z-score"
    assert settings.default_prediction_horizon == 14


def test_invalid_scoring_system_rejected(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HEALTHSCORE_DEFAULT_SCORING_SYSTEM", "vibes")
    with pytest.raises(ValidationError):
        Settings()
