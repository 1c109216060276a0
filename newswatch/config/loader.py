"""Configuration loader."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import ConfigModel

CONFIG_PATH_ENV = "NEWSWATCH_CONFIG"


def default_config_path() -> Path:
    """Config path from ``NEWSWATCH_CONFIG`` or the per-user default."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "newswatch" / "config.yaml"


class Config:
    """Configuration manager."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """Initialize config manager."""
        if config_path is None:
            config_path = default_config_path()
        self.config_path = config_path
        self._config: Optional[ConfigModel] = None

    @property
    def config(self) -> ConfigModel:
        """Get loaded config, falling back to defaults when no file exists."""
        if self._config is None:
            if self.config_path.exists():
                self._config = load_config(self.config_path)
            else:
                self._config = ConfigModel()
        return self._config


def load_config(config_path: Path) -> ConfigModel:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}

        return ConfigModel(**config_data)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.to_yaml_dict(), f, default_flow_style=False, sort_keys=False)
