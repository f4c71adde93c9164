"""
Calculator Settings
Environment-driven settings (DAMAGE_CALC_* or .env) and logging setup
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class CalculatorSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DAMAGE_CALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    # Heatmap axes
    toughness_range: List[int] = [3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14]
    save_range: List[int] = [2, 3, 4, 5, 6, 7]  # 7 = no save
    heatmap_model_count: int = 10

    # Defaults
    default_wounds_per_model: int = 2
    max_display_models: int = 20

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("save_range")
    @classmethod
    def check_save_range(cls, value: List[int]) -> List[int]:
        if any(not 2 <= sv <= 7 for sv in value):
            raise ValueError("Save values must be between 2 and 7")
        return value


@lru_cache()
def get_settings() -> CalculatorSettings:
    return CalculatorSettings()


def configure_logging(settings: Optional[CalculatorSettings] = None) -> None:
    """Configure root logging from settings"""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
