"""
Upload configuration for the product image flow.

Provides 3-tier setting fallback: INI [UPLOADS] -> ATELIER_<KEY> environment
variable -> hardcoded defaults.

The deployment mode (local backend-proxied storage vs. direct-to-storage
presigned uploads) is resolved once per process from the environment and
never changes afterwards.
"""

import os
import configparser
from enum import Enum
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, List, Optional, Tuple

from atelier.core.paths import get_config_path
from atelier.utils.logger import log
from atelier_exceptions import SettingsError


# Module-level locks for thread safety
_storage_mode_lock = Lock()
_ini_file_lock = Lock()

DEFAULT_ACCEPTED_TYPES: Tuple[str, ...] = ('image/jpeg', 'image/jpg', 'image/png', 'image/webp')
DEFAULT_MAX_SIZE = 10 * 1024 * 1024  # 10MB

# Hardcoded default values (final fallback)
_HARDCODED_DEFAULTS = {
    "api_base_url": "https://localhost:8080",
    "accepted_types": ",".join(DEFAULT_ACCEPTED_TYPES),
    "max_size_bytes": DEFAULT_MAX_SIZE,
    "max_files": 10,
    "inter_file_delay": 0.5,
    "success_dismiss_delay": 3.0,
    "direct_upload_timeout": 120,
    "request_timeout": 30,
}


class StorageMode(str, Enum):
    LOCAL = "local"
    DIRECT = "direct"


@dataclass
class UploadSettings:
    """Resolved upload limits and timings."""

    api_base_url: str = _HARDCODED_DEFAULTS["api_base_url"]
    accepted_types: List[str] = field(default_factory=lambda: list(DEFAULT_ACCEPTED_TYPES))
    max_size_bytes: int = DEFAULT_MAX_SIZE
    max_files: int = 10
    inter_file_delay: float = 0.5          # seconds between sequential files
    success_dismiss_delay: float = 3.0     # seconds a finished task stays visible
    direct_upload_timeout: int = 120       # seconds, direct-to-storage only
    request_timeout: int = 30              # seconds, admin API calls


def _coerce(raw: Any, value_type: str) -> Any:
    if value_type == "int":
        return int(raw)
    if value_type == "float":
        return float(raw)
    if value_type == "bool":
        return str(raw).strip().lower() in ("1", "true", "yes", "on")
    if value_type == "list":
        if isinstance(raw, (list, tuple)):
            return [str(item).strip() for item in raw if str(item).strip()]
        return [part.strip() for part in str(raw).split(",") if part.strip()]
    return str(raw)


def get_upload_setting(key: str, value_type: str = "str") -> Any:
    """Get an upload setting with 3-tier fallback.

    Lookup order:
      1. INI [UPLOADS] section, key = key
      2. Environment variable ATELIER_<KEY>
      3. _HARDCODED_DEFAULTS[key]

    Args:
        key: Setting name (e.g., 'max_files')
        value_type: 'str', 'int', 'float', 'bool' or 'list'

    Returns:
        Setting value from highest-priority source available.
    """
    ini_path = get_config_path()
    if os.path.exists(ini_path):
        with _ini_file_lock:
            cfg = configparser.ConfigParser()
            cfg.read(ini_path, encoding='utf-8')

            # Tier 1: INI [UPLOADS] section
            if cfg.has_section("UPLOADS") and cfg.has_option("UPLOADS", key):
                raw = cfg.get("UPLOADS", key)
                if raw and raw.strip():
                    try:
                        return _coerce(raw, value_type)
                    except (ValueError, TypeError):
                        log(f"Invalid value for [UPLOADS] {key}: {raw!r}, falling back",
                            level="warning", category="config")

    # Tier 2: environment
    env_raw = os.environ.get(f"ATELIER_{key.upper()}")
    if env_raw is not None and env_raw.strip():
        try:
            return _coerce(env_raw, value_type)
        except (ValueError, TypeError):
            log(f"Invalid value for ATELIER_{key.upper()}: {env_raw!r}, falling back",
                level="warning", category="config")

    # Tier 3: Hardcoded fallback
    if key in _HARDCODED_DEFAULTS:
        return _coerce(_HARDCODED_DEFAULTS[key], value_type)

    log(f"Unknown upload setting requested: {key}", level="warning", category="config")
    return None


def save_upload_setting(key: str, value: Any) -> None:
    """Write a setting to the INI [UPLOADS] section."""
    if key not in _HARDCODED_DEFAULTS:
        raise SettingsError(f"Unknown upload setting: {key}")

    if isinstance(value, (list, tuple)):
        value = ",".join(str(v) for v in value)

    with _ini_file_lock:
        ini_path = get_config_path()
        cfg = configparser.ConfigParser()

        if os.path.exists(ini_path):
            cfg.read(ini_path, encoding='utf-8')

        if not cfg.has_section("UPLOADS"):
            cfg.add_section("UPLOADS")

        cfg.set("UPLOADS", key, str(value))

        try:
            with open(ini_path, 'w', encoding='utf-8') as f:
                cfg.write(f)
        except OSError as e:
            log(f"Error saving upload setting {key}: {e}", level="error", category="config")
            raise SettingsError(f"Could not save upload setting {key}: {e}") from e


def load_upload_settings() -> UploadSettings:
    """Resolve every upload setting into an UploadSettings instance."""
    settings = UploadSettings(
        api_base_url=get_upload_setting("api_base_url", "str").rstrip("/"),
        accepted_types=get_upload_setting("accepted_types", "list"),
        max_size_bytes=get_upload_setting("max_size_bytes", "int"),
        max_files=get_upload_setting("max_files", "int"),
        inter_file_delay=get_upload_setting("inter_file_delay", "float"),
        success_dismiss_delay=get_upload_setting("success_dismiss_delay", "float"),
        direct_upload_timeout=get_upload_setting("direct_upload_timeout", "int"),
        request_timeout=get_upload_setting("request_timeout", "int"),
    )
    if settings.max_files <= 0 or settings.max_size_bytes <= 0:
        raise SettingsError("max_files and max_size_bytes must be positive",
                            details={"max_files": settings.max_files,
                                     "max_size_bytes": settings.max_size_bytes})
    return settings


def _resolve_storage_mode() -> StorageMode:
    for var in ("ATELIER_ENV", "APP_ENV"):
        if os.environ.get(var, "").strip().lower() == "production":
            return StorageMode.DIRECT
    return StorageMode.LOCAL


# Global singleton
_storage_mode: Optional[StorageMode] = None


def get_storage_mode() -> StorageMode:
    """Return the process-wide deployment mode, reading the environment once."""
    global _storage_mode

    if _storage_mode is None:
        with _storage_mode_lock:
            if _storage_mode is None:
                _storage_mode = _resolve_storage_mode()
                log(f"Storage mode resolved: {_storage_mode.value}", level="debug", category="config")
    return _storage_mode
