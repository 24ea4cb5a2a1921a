"""
Filesystem locations for Atelier configuration and logs.

The central store defaults to ~/.atelier and can be moved with ATELIER_HOME.
The INI file can be pointed elsewhere with ATELIER_CONFIG.
"""

import os

CONFIG_DIR_NAME = ".atelier"
CONFIG_FILE_NAME = "atelier.ini"


def get_central_store_base_path() -> str:
    """Return the base directory for config and logs, creating it if needed."""
    base = os.environ.get("ATELIER_HOME") or os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME)
    os.makedirs(base, exist_ok=True)
    return base


def get_config_path() -> str:
    """Return the path of the INI configuration file."""
    override = os.environ.get("ATELIER_CONFIG")
    if override:
        return override
    return os.path.join(get_central_store_base_path(), CONFIG_FILE_NAME)


def get_log_dir() -> str:
    """Return the log directory inside the central store."""
    log_dir = os.path.join(get_central_store_base_path(), "logs")
    os.makedirs(log_dir, exist_ok=True)
    return log_dir
