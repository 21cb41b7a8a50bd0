"""Centralized path management for Ward.

Ward keeps its own state (config, per-service unit and script files) under a
single base directory. The base directory can be overridden with the
WARD_HOME environment variable, and the service data directory separately
with WARD_DATA_DIR.

Default locations:
- root: /var/lib/ward for service data, /etc/ward for config
- other users: ~/.ward
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "WARD_HOME"
DATA_DIR_ENV_VAR = "WARD_DATA_DIR"

SYSTEM_DATA_DIR = Path("/var/lib/ward")
SYSTEM_CONFIG_PATH = Path("/etc/ward/config.toml")


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


@lru_cache(maxsize=1)
def get_ward_home() -> Path:
    """Get the base directory for Ward state.

    Resolution order:
    1. WARD_HOME environment variable (if set)
    2. ~/.ward

    Returns:
        Path to the Ward home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".ward"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_ward_home() / "config.toml"


def get_data_dir() -> Path:
    """Get the directory holding managed service files.

    Resolution order:
    1. WARD_DATA_DIR environment variable (if set)
    2. /var/lib/ward when running as root
    3. <ward home>/data
    """
    if env_dir := os.environ.get(DATA_DIR_ENV_VAR):
        return Path(env_dir).expanduser().resolve()

    if _is_root():
        return SYSTEM_DATA_DIR
    return get_ward_home() / "data"


def get_init_dir(data_dir: Path | None = None) -> Path:
    """Get the parent directory of the per-service init directories.

    Structure: <data dir>/init/<service name>/
    """
    return (data_dir or get_data_dir()) / "init"
