"""Configuration management."""

from .loader import Config, default_config_path, load_config, load_sources, save_config, save_sources
from .models import (
    ConfigModel,
    HistoricalConfig,
    HttpConfig,
    LLMConfig,
    LoggingConfig,
    PipelineSettings,
    PostgresConfig,
    SourceConfig,
)

__all__ = [
    "Config",
    "ConfigModel",
    "HistoricalConfig",
    "HttpConfig",
    "LLMConfig",
    "LoggingConfig",
    "PipelineSettings",
    "PostgresConfig",
    "SourceConfig",
    "default_config_path",
    "load_config",
    "load_sources",
    "save_config",
    "save_sources",
]
