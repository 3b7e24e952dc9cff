"""Configuration loader."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from .models import ConfigModel, SourceConfig

CONFIG_PATH_ENV = "QUOTEFEED_CONFIG"


def default_config_path() -> Path:
    """``$QUOTEFEED_CONFIG``, else ``~/.config/quotefeed/config.yaml``."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "quotefeed" / "config.yaml"


def _resolve_secret(section: Dict[str, Any], env_key: str, target: str) -> Dict[str, Any]:
    """Fill ``section[target]`` from the variable named by ``section[env_key]`` when it is set."""
    variable = section.get(env_key)
    value = os.environ.get(variable) if variable else None
    if value:
        section[target] = value
    return section


class Config:
    """Configuration manager; the YAML file is read on first access."""

    def __init__(self, config_path: Optional[Path] = None, model: Optional[ConfigModel] = None) -> None:
        """Initialize config manager."""
        self.config_path = config_path or default_config_path()
        self._config: Optional[ConfigModel] = model

    @property
    def config(self) -> ConfigModel:
        """Loaded config model."""
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    @property
    def sources_path(self) -> Path:
        """Seed sources file next to the config file."""
        return self.config_path.parent / "sources.yaml"

    def get_db_config(self) -> Dict[str, Any]:
        """Postgres section with the password resolved."""
        return _resolve_secret(self.config.postgres.model_dump(), "password_env", "password")

    def get_llm_config(self) -> Dict[str, Any]:
        """LLM section with the API key resolved."""
        return _resolve_secret(self.config.llm.model_dump(), "api_key_env", "api_key")

    def get_govinfo_api_key(self) -> Optional[str]:
        """GovInfo API key from the configured environment variable."""
        return os.environ.get(self.config.historical.govinfo_api_key_env) or None


def _read_yaml(path: Path, what: str) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"{what} file not found: {path}")
    try:
        with open(path) as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {what.lower()} file: {e}")


def _write_yaml(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def load_config(config_path: Path) -> ConfigModel:
    """Parse and validate the config file."""
    data = _read_yaml(config_path, "Config")
    try:
        return ConfigModel.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}")


def load_sources(sources_path: Path) -> List[SourceConfig]:
    """Parse the seed sources file; a file without a ``sources`` list yields none."""
    data = _read_yaml(sources_path, "Sources")
    try:
        return [SourceConfig.model_validate(entry) for entry in data.get("sources") or []]
    except ValidationError as e:
        raise ValueError(f"Invalid source definition: {e}")


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Write the config model as YAML."""
    _write_yaml(config_path, config.model_dump(mode="json"))


def save_sources(sources: List[SourceConfig], sources_path: Path) -> None:
    """Write seed sources as YAML."""
    _write_yaml(sources_path, {"sources": [s.model_dump(mode="json") for s in sources]})
