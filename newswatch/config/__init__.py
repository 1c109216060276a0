"""Configuration management for newswatch."""

from .loader import Config, default_config_path, load_config, save_config
from .models import (
    ConfigModel,
    GuardianApiParams,
    GuardianConfig,
    HttpConfig,
    HydrationConfig,
    PostgresConfig,
)

__all__ = [
    "Config",
    "ConfigModel",
    "GuardianApiParams",
    "GuardianConfig",
    "HttpConfig",
    "HydrationConfig",
    "PostgresConfig",
    "default_config_path",
    "load_config",
    "save_config",
]
