"""
Tests for environment-driven settings
"""

import pytest
from pydantic import ValidationError

from calculator_config import CalculatorSettings, get_settings


def test_defaults():
    settings = CalculatorSettings()
    assert settings.heatmap_model_count == 10
    assert settings.toughness_range[0] == 3 and settings.toughness_range[-1] == 14
    assert settings.save_range == [2, 3, 4, 5, 6, 7]
    assert settings.max_display_models == 20


def test_log_level_is_normalised():
    assert CalculatorSettings(log_level="debug").log_level == "DEBUG"


def test_invalid_values_raise():
    with pytest.raises(ValidationError):
        CalculatorSettings(log_level="loud")
    with pytest.raises(ValidationError):
        CalculatorSettings(save_range=[1, 2])


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DAMAGE_CALC_HEATMAP_MODEL_COUNT", "5")
    monkeypatch.setenv("DAMAGE_CALC_LOG_LEVEL", "warning")
    settings = CalculatorSettings()
    assert settings.heatmap_model_count == 5
    assert settings.log_level == "WARNING"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()

