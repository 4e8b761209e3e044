"""Configuration loading and validation."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from zelo.config.schema import ZeloConfig


DEFAULT_CONFIG_PATH = Path.home() / ".zelo" / "zelo.yaml"

# Environment variable -> (section, field). First match wins per field.
ENV_OVERRIDES = [
    ("ZELO_HOST", "server", "host"),
    ("HOST", "server", "host"),
    ("ZELO_PORT", "server", "port"),
    ("PORT", "server", "port"),
    ("ZELO_STORAGE_BACKEND", "storage", "backend"),
    ("ZELO_STORAGE_DIR", "storage", "directory"),
    ("ZELO_POSTGRES_DSN", "storage", "postgres_dsn"),
]


class ConfigError(Exception):
    """Configuration loading or validation error."""


def _apply_env_overrides(config_data: dict, environ: Mapping[str, str]) -> dict:
    applied: set[tuple[str, str]] = set()
    for var, section, field in ENV_OVERRIDES:
        value = environ.get(var)
        if not value or (section, field) in applied:
            continue
        config_data.setdefault(section, {})[field] = value
        applied.add((section, field))
    return config_data


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ZeloConfig:
    """Load and validate Zelo configuration from YAML file.

    Args:
        path: Path to config file. If None, tries default location.
              If file doesn't exist, defaults are used.
        environ: Environment used for overrides (defaults to os.environ)

    Returns:
        Validated configuration object

    Raises:
        ConfigError: If config file exists but is invalid
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if environ is None:
        environ = os.environ

    config_data: dict = {}
    try:
        if path.exists():
            with open(path, "r") as f:
                loaded = yaml.safe_load(f)
            if loaded is not None:
                if not isinstance(loaded, dict):
                    raise ConfigError(f"Config root in {path} must be a mapping")
                config_data = loaded

        return ZeloConfig(**_apply_env_overrides(config_data, environ))

    except ConfigError:
        raise
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def save_config(config: ZeloConfig, path: Optional[Union[str, Path]] = None) -> None:
    """Save configuration to YAML file.

    Args:
        config: Configuration object to save
        path: Destination path (string or Path object). If None, uses default location.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    elif isinstance(path, str):
        path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump()

    with open(path, "w") as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)
