"""Configuration module."""

from ward.config.loader import load_config
from ward.config.models import (
    BackendConfig,
    ConfigError,
    LoggingConfig,
    ServiceConfig,
    WardConfig,
)
from ward.config.paths import (
    get_config_path,
    get_data_dir,
    get_init_dir,
    get_ward_home,
)

__all__ = [
    "BackendConfig",
    "ConfigError",
    "LoggingConfig",
    "ServiceConfig",
    "WardConfig",
    "get_config_path",
    "get_data_dir",
    "get_init_dir",
    "get_ward_home",
    "load_config",
]
