"""
Application file logging for Atelier.

AppLogger owns a rotating log file under the central store and the
[LOGGING] section of the INI file. Message routing (console, log viewers)
lives in atelier.utils.logger; this module only decides what reaches disk.
"""

import os
import re
import logging
import configparser
import threading
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from atelier.core.paths import get_config_path, get_log_dir


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_logger_lock = threading.Lock()
_instance: Optional["AppLogger"] = None


class AppLogger:
    """Rotating file logger configured from the [LOGGING] INI section."""

    TRACE = TRACE

    DEFAULTS = {
        'enabled': 'true',
        'max_bytes': str(5 * 1024 * 1024),
        'backup_count': '5',
        'level_file': 'INFO',
        'level_gui': 'INFO',
    }

    LEVEL_MAP = {
        'TRACE': TRACE,
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL,
    }

    _BOOL_KEYS = ('enabled',)
    _INT_KEYS = ('max_bytes', 'backup_count')

    def __init__(self, config_path: Optional[str] = None, log_dir: Optional[str] = None):
        self._config_path = config_path or get_config_path()
        self._log_dir = log_dir or get_log_dir()
        self._settings: Dict[str, str] = dict(self.DEFAULTS)
        self._logger = logging.getLogger("atelier")
        self._logger.setLevel(TRACE)
        self._logger.propagate = False
        self._handler: Optional[RotatingFileHandler] = None
        self._file_level = logging.INFO
        self._gui_level = logging.INFO
        self._load_settings()
        self._apply_settings()

    @staticmethod
    def _strip_leading_time(message: str) -> str:
        """Remove a leading HH:MM:SS stamp; the file formatter adds its own."""
        return re.sub(r'^\d{2}:\d{2}:\d{2} ', '', message, count=1)

    def _load_settings(self) -> None:
        if not os.path.exists(self._config_path):
            return
        cfg = configparser.ConfigParser()
        try:
            cfg.read(self._config_path, encoding='utf-8')
        except configparser.Error:
            return
        if cfg.has_section('LOGGING'):
            for key, value in cfg.items('LOGGING'):
                self._settings[key] = value

    def _save_settings(self) -> None:
        cfg = configparser.ConfigParser()
        if os.path.exists(self._config_path):
            cfg.read(self._config_path, encoding='utf-8')
        if not cfg.has_section('LOGGING'):
            cfg.add_section('LOGGING')
        for key, value in self._settings.items():
            cfg.set('LOGGING', key, str(value))
        with open(self._config_path, 'w', encoding='utf-8') as f:
            cfg.write(f)

    def _apply_settings(self) -> None:
        settings = self.get_settings()
        self._file_level = self.LEVEL_MAP.get(str(settings['level_file']).upper(), logging.INFO)
        self._gui_level = self.LEVEL_MAP.get(str(settings['level_gui']).upper(), logging.INFO)

        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

        if settings['enabled']:
            self._handler = RotatingFileHandler(
                self.get_current_log_path(),
                maxBytes=settings['max_bytes'],
                backupCount=settings['backup_count'],
                encoding='utf-8',
                delay=True,
            )
            self._handler.setFormatter(
                logging.Formatter('%(asctime)s %(levelname)s [%(category)s] %(message)s')
            )
            self._logger.addHandler(self._handler)

    def get_settings(self) -> Dict[str, Any]:
        """Return settings with booleans and integers normalized."""
        normalized: Dict[str, Any] = {}
        merged = dict(self.DEFAULTS)
        merged.update(self._settings)
        for key, value in merged.items():
            if key in self._BOOL_KEYS or key.startswith('cats_'):
                normalized[key] = str(value).strip().lower() in ('1', 'true', 'yes', 'on')
            elif key in self._INT_KEYS:
                try:
                    normalized[key] = int(value)
                except (TypeError, ValueError):
                    normalized[key] = int(self.DEFAULTS[key])
            else:
                normalized[key] = value
        return normalized

    def update_settings(self, **kwargs) -> None:
        for key, value in kwargs.items():
            self._settings[key] = str(value)
        self._save_settings()
        self._apply_settings()

    def should_emit_gui(self, category: str, level: int) -> bool:
        if level < self._gui_level:
            return False
        return self.get_settings().get(f'cats_gui_{category}', True)

    def should_emit_file(self, category: str, level: int) -> bool:
        # TRACE is console/viewer only
        if level <= TRACE:
            return False
        if str(self._settings.get('enabled', 'true')).lower() != 'true':
            return False
        if level < self._file_level:
            return False
        return self.get_settings().get(f'cats_file_{category}', True)

    def log_to_file(self, message: str, level: int, category: str = "general") -> None:
        if str(self._settings.get('enabled', 'true')).lower() != 'true':
            return
        if not self.should_emit_file(category, level):
            return
        self._logger.log(level, self._strip_leading_time(message), extra={'category': category})

    def get_current_log_path(self) -> str:
        return os.path.join(self._log_dir, "atelier.log")

    def read_current_log(self, tail_bytes: Optional[int] = None) -> str:
        path = self.get_current_log_path()
        if not os.path.exists(path):
            return ""
        with open(path, 'rb') as f:
            if tail_bytes:
                f.seek(0, os.SEEK_END)
                size = f.tell()
                f.seek(max(0, size - tail_bytes))
            data = f.read()
        return data.decode('utf-8', errors='replace')


def get_logger() -> AppLogger:
    """Get or create the process-wide AppLogger (thread-safe)."""
    global _instance
    if _instance is None:
        with _logger_lock:
            if _instance is None:
                _instance = AppLogger()
    return _instance
