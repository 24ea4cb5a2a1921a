"""
Unified logging entry point for Atelier.

Every module logs through ``log(message, level=..., category=...)``. Messages
are stamped with HH:MM:SS, tagged with a level prefix, written to the
rotating log file (see atelier.utils.logging) and forwarded to any
registered log viewers. Level and ``[category]`` tags embedded in the
message text are detected when not given explicitly.
"""

import re
import sys
import logging
import threading
import traceback
from datetime import datetime
from typing import Any, List, Optional, Tuple

TRACE = 5

LEVEL_MAP = {
    'trace': TRACE,
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'warn': logging.WARNING,
    'error': logging.ERROR,
    'critical': logging.CRITICAL,
}

_log_viewers: List[Any] = []
_viewers_lock = threading.Lock()
_app_logger = None

_CATEGORY_RE = re.compile(r'^(\d{2}:\d{2}:\d{2} )?\[([a-zA-Z_]+)(?::([a-zA-Z_]+))?\]\s*')
_TIMESTAMP_RE = re.compile(r'^\d{2}:\d{2}:\d{2}')


def timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def register_log_viewer(viewer: Any) -> None:
    """Register an object with ``append_message(str)`` to receive log lines."""
    with _viewers_lock:
        if viewer not in _log_viewers:
            _log_viewers.append(viewer)


def unregister_log_viewer(viewer: Any) -> None:
    with _viewers_lock:
        if viewer in _log_viewers:
            _log_viewers.remove(viewer)


def _get_app_logger():
    global _app_logger
    if _app_logger is None:
        from atelier.utils.logging import get_logger
        _app_logger = get_logger()
    return _app_logger


def _detect_level_from_message(message: str) -> Optional[str]:
    upper = message.upper()
    if 'CRITICAL' in upper:
        return 'critical'
    if 'ERROR' in upper:
        return 'error'
    if 'WARN' in upper:
        return 'warning'
    if 'DEBUG' in upper:
        return 'debug'
    if 'TRACE' in upper:
        return 'trace'
    return None


def _detect_category_from_message(message: str) -> Tuple[str, Optional[str], str]:
    """Split a leading ``[category:subtype]`` tag off the message."""
    match = _CATEGORY_RE.match(message)
    if not match:
        return "general", None, message
    stamp = match.group(1) or ""
    cleaned = stamp + message[match.end():]
    return match.group(2), match.group(3), cleaned


def log(message: str, level: Optional[str] = None, category: Optional[str] = None) -> None:
    """Log a message to file, console and registered viewers."""
    subtype = None
    if category is None:
        category, subtype, message = _detect_category_from_message(message)
    elif ':' in category:
        category, subtype = category.split(':', 1)

    if level is None:
        level = _detect_level_from_message(message) or 'info'
    level = level.lower()
    level_value = LEVEL_MAP.get(level, logging.INFO)
    level_name = 'WARNING' if level == 'warn' else level.upper()

    if not _TIMESTAMP_RE.match(message):
        message = f"{timestamp()} {message}"

    stamp, body = message[:8], message[9:]
    if level_value != logging.INFO and not body.upper().startswith(f"{level_name}:"):
        body = f"{level_name}: {body}"
    line = f"{stamp} {body}"

    app_logger = _get_app_logger()
    try:
        if app_logger.should_emit_file(category, level_value):
            app_logger.log_to_file(line, level_value, category)
    except Exception as e:
        print(f"{timestamp()} ERROR: log file write failed: {e}", file=sys.stderr)

    if level_value >= logging.ERROR:
        print(f"[{category}] {line}", file=sys.stderr)

    with _viewers_lock:
        viewers = list(_log_viewers)
    if viewers and not app_logger.should_emit_gui(category, level_value):
        return
    for viewer in viewers:
        try:
            viewer.append_message(f"[{category}] {line}")
        except RuntimeError:
            # Qt widget deleted underneath us
            unregister_log_viewer(viewer)


def install_exception_hook() -> None:
    """Route uncaught exceptions through log() before the default hook runs."""
    previous = sys.excepthook

    def _hook(exc_type, exc_value, exc_tb):
        if not issubclass(exc_type, KeyboardInterrupt):
            details = ''.join(traceback.format_exception(exc_type, exc_value, exc_tb))
            log(f"Uncaught exception: {details}", level="critical", category="general")
        previous(exc_type, exc_value, exc_tb)

    sys.excepthook = _hook
