"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ward.config.models import ConfigError, WardConfig
from ward.config.paths import (
    DATA_DIR_ENV_VAR,
    SYSTEM_CONFIG_PATH,
    get_config_path,
)

_TRUE_STRINGS = ("1", "true", "yes", "on")


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("ward.toml"),  # Current directory
        get_config_path(),  # ~/.ward/config.toml (or WARD_HOME)
        SYSTEM_CONFIG_PATH,  # System-wide
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Override config values from WARD_* environment variables."""
    if data_dir := os.environ.get(DATA_DIR_ENV_VAR):
        config["data_dir"] = data_dir

    backend = config.setdefault("backend", {})
    if systemctl := os.environ.get("WARD_SYSTEMCTL"):
        backend["systemctl"] = systemctl
    if (user_mode := os.environ.get("WARD_USER_MODE")) is not None:
        backend["user"] = user_mode.strip().lower() in _TRUE_STRINGS

    if level := os.environ.get("WARD_LOG_LEVEL"):
        config.setdefault("logging", {})["level"] = level.upper()

    return config


def load_config(path: Path | None = None) -> WardConfig:
    """Load configuration from a TOML file.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to defaults when none exists.

    Returns:
        Validated WardConfig instance.

    Raises:
        FileNotFoundError: If an explicit config file does not exist.
        ConfigError: If the config file is invalid.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    raw_config = _apply_env_overrides(raw_config)

    try:
        return WardConfig.model_validate(raw_config)
    except ValidationError as e:
        source = config_path or "environment"
        raise ConfigError(f"Invalid configuration ({source}): {e}") from e
