"""Configuration management."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

ROOT_DIR = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = ROOT_DIR / "config" / "config.yaml"


class Config(BaseModel):
    """Application configuration."""

    data_path: Path = ROOT_DIR / "data" / "tracker.sqlite"
    storage_key: str = "jobApplicationTracker"
    export_dir: Path = Path(".")
    log_level: str = "INFO"
    log_dir: Path = ROOT_DIR / "logs"
    upcoming_deadline_days: int = 7
    recent_activity_days: int = 30
    lock_timeout: float = 10


_config: Optional[Config] = None


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file.

    Without an explicit path, a missing default file means all defaults.
    An explicit path that does not exist is an error.
    """
    global _config

    if _config is not None and config_path is None:
        return _config

    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            _config = Config()
            return _config
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}. "
            "Copy config/config.yaml.example to config/config.yaml and adjust it."
        )

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    _config = Config(**data)
    return _config


def get_config() -> Config:
    """Get the loaded configuration."""
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Forget the cached configuration."""
    global _config
    _config = None
