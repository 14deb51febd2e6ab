"""Configuration management for the duplicate detection pipeline."""

from .loader import Config, load_config, save_config
from .models import (
    ArbitrationConfig,
    ConfigModel,
    LLMConfig,
    PostgresConfig,
    ScoringConfig,
    ScoringWeights,
    Thresholds,
)

__all__ = [
    "Config",
    "ConfigModel",
    "ArbitrationConfig",
    "LLMConfig",
    "PostgresConfig",
    "ScoringConfig",
    "ScoringWeights",
    "Thresholds",
    "load_config",
    "save_config",
]
