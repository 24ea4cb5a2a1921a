#!/usr/bin/env python3
"""
Tests for atelier.utils.logger
Level/category detection and message routing to file and viewers
"""

import sys
import logging
import pytest
from unittest.mock import Mock, patch

from atelier.utils import logger
from atelier.utils.logger import (
    timestamp,
    register_log_viewer,
    unregister_log_viewer,
    log,
    install_exception_hook,
    _detect_level_from_message,
    _detect_category_from_message,
    LEVEL_MAP,
    TRACE
)


@pytest.fixture(autouse=True)
def reset_viewers():
    """Start every test with no registered viewers."""
    original = list(logger._log_viewers)
    logger._log_viewers.clear()
    yield
    logger._log_viewers[:] = original


@pytest.fixture
def file_logger():
    """Patch the AppLogger behind log() with a mock that accepts everything."""
    mock_logger = Mock()
    mock_logger.should_emit_file.return_value = True
    with patch('atelier.utils.logger._get_app_logger', return_value=mock_logger):
        yield mock_logger


class TestTimestamp:

    def test_timestamp_format(self):
        ts = timestamp()
        assert len(ts) == 8
        assert ts[2] == ":" and ts[5] == ":"


class TestLevelMap:

    def test_trace_level_value(self):
        assert TRACE == 5
        assert LEVEL_MAP['trace'] == 5

    def test_warn_alias(self):
        assert LEVEL_MAP['warn'] == LEVEL_MAP['warning'] == logging.WARNING


class TestLogViewerManagement:

    def test_register_is_idempotent(self):
        viewer = Mock()
        register_log_viewer(viewer)
        register_log_viewer(viewer)
        assert logger._log_viewers.count(viewer) == 1

    def test_unregister(self):
        viewer = Mock()
        register_log_viewer(viewer)
        unregister_log_viewer(viewer)
        assert viewer not in logger._log_viewers

    def test_unregister_unknown_viewer(self):
        unregister_log_viewer(Mock())  # Should not raise


class TestDetectLevelFromMessage:

    @pytest.mark.parametrize("message,expected", [
        ("CRITICAL: disk gone", "critical"),
        ("ERROR: upload refused", "error"),
        ("Error occurred", "error"),
        ("WARNING: slow transfer", "warning"),
        ("WARN: retrying", "warning"),
        ("DEBUG: slot negotiated", "debug"),
        ("TRACE: bytes sent", "trace"),
        ("INFO: starting", None),
        ("Uploaded ring.png", None),
    ])
    def test_level_detection(self, message, expected):
        assert _detect_level_from_message(message) == expected


class TestDetectCategoryFromMessage:

    @pytest.mark.parametrize("message,expected_category,expected_subtype", [
        ("[uploads] File uploaded", "uploads", None),
        ("[gallery:reorder] Saved", "gallery", "reorder"),
        ("12:34:56 [network] Request sent", "network", None),
        ("No category here", "general", None),
    ])
    def test_category_detection(self, message, expected_category, expected_subtype):
        category, subtype, _ = _detect_category_from_message(message)
        assert category == expected_category
        assert subtype == expected_subtype

    def test_cleaned_message_keeps_timestamp(self):
        _, _, cleaned = _detect_category_from_message("12:34:56 [uploads] Message")
        assert cleaned == "12:34:56 Message"


class TestLogFunction:

    def test_log_writes_to_file(self, file_logger):
        log("Uploaded ring.png", category="uploads")

        message, level, category = file_logger.log_to_file.call_args[0]
        assert message.endswith("Uploaded ring.png")
        assert level == logging.INFO
        assert category == "uploads"

    def test_log_adds_timestamp_and_level_prefix(self, file_logger):
        log("Transfer failed", level="error", category="uploads")

        message = file_logger.log_to_file.call_args[0][0]
        assert message[2] == ":" and message[5] == ":"
        assert "ERROR: Transfer failed" in message

    def test_log_does_not_duplicate_level_prefix(self, file_logger):
        log("ERROR: Transfer failed", level="error")

        message = file_logger.log_to_file.call_args[0][0]
        assert message.count("ERROR:") == 1

    def test_log_preserves_existing_timestamp(self, file_logger):
        log("12:34:56 Test message")
        assert file_logger.log_to_file.call_args[0][0].startswith("12:34:56 ")

    def test_log_auto_detects_level_and_category(self, file_logger):
        log("[gallery] WARNING: image list is not an array")

        _, level, category = file_logger.log_to_file.call_args[0]
        assert level == logging.WARNING
        assert category == "gallery"

    def test_log_splits_category_subtype(self, file_logger):
        log("Saved order", category="gallery:reorder")
        assert file_logger.log_to_file.call_args[0][2] == "gallery"

    def test_log_skips_file_when_filtered(self, file_logger):
        file_logger.should_emit_file.return_value = False
        log("Bytes sent", level="trace")
        file_logger.should_emit_file.assert_called_once_with("general", TRACE)
        file_logger.log_to_file.assert_not_called()

    def test_log_routes_to_viewers(self, file_logger):
        viewer = Mock()
        register_log_viewer(viewer)

        log("Deleted image 7", category="gallery")

        line = viewer.append_message.call_args[0][0]
        assert line.startswith("[gallery] ")
        assert line.endswith("Deleted image 7")

    def test_viewers_respect_gui_level(self, file_logger):
        file_logger.should_emit_gui.return_value = False
        viewer = Mock()
        register_log_viewer(viewer)

        log("Bytes sent", level="debug", category="uploads")

        file_logger.should_emit_gui.assert_called_once_with("uploads", logging.DEBUG)
        viewer.append_message.assert_not_called()

    def test_dead_viewer_is_dropped(self, file_logger):
        viewer = Mock()
        viewer.append_message.side_effect = RuntimeError("wrapped C/C++ object has been deleted")
        register_log_viewer(viewer)

        log("Message")

        assert viewer not in logger._log_viewers

    def test_errors_echo_to_stderr(self, file_logger, capsys):
        log("Confirm failed", level="error", category="uploads")
        assert "ERROR: Confirm failed" in capsys.readouterr().err

    def test_file_failure_does_not_raise(self, file_logger, capsys):
        file_logger.log_to_file.side_effect = OSError("disk full")
        log("Message")
        assert "log file write failed" in capsys.readouterr().err


class TestExceptionHook:

    def test_uncaught_exception_is_logged(self, monkeypatch):
        previous = Mock()
        monkeypatch.setattr(sys, "excepthook", previous)
        install_exception_hook()

        with patch('atelier.utils.logger.log') as mock_log:
            try:
                raise ValueError("boom")
            except ValueError as e:
                sys.excepthook(ValueError, e, e.__traceback__)

        assert "boom" in mock_log.call_args[0][0]
        assert mock_log.call_args[1]["level"] == "critical"
        previous.assert_called_once()
