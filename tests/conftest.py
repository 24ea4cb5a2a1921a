#!/usr/bin/env python3
"""
Shared pytest fixtures.

Every test runs against a throwaway central store (ATELIER_HOME) so config
files and logs never touch the real home directory, and the process-wide
singletons (file logger, storage mode) start fresh.
"""

import os
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Ensure Qt uses offscreen platform for headless testing
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from atelier.core.models import ProductImage, UploadFile  # noqa: E402
from atelier.core.upload_config import UploadSettings  # noqa: E402

# Smallest valid PNG header; content is never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 56


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point config and logs at tmp_path and reset global singletons."""
    from atelier.core import upload_config
    from atelier.utils import logger
    from atelier.utils import logging as app_logging

    home = tmp_path / "atelier_home"
    monkeypatch.setenv("ATELIER_HOME", str(home))
    for var in ("ATELIER_CONFIG", "ATELIER_ENV", "APP_ENV"):
        monkeypatch.delenv(var, raising=False)
    for key in ("MAX_FILES", "MAX_SIZE_BYTES", "ACCEPTED_TYPES", "DIRECT_UPLOAD_TIMEOUT",
                "INTER_FILE_DELAY", "SUCCESS_DISMISS_DELAY", "API_BASE_URL", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(f"ATELIER_{key}", raising=False)

    monkeypatch.setattr(app_logging, "_instance", None)
    monkeypatch.setattr(logger, "_app_logger", None)
    monkeypatch.setattr(upload_config, "_storage_mode", None)

    yield

    instance = app_logging._instance
    if instance is not None and instance._handler is not None:
        instance._logger.removeHandler(instance._handler)
        instance._handler.close()


@pytest.fixture
def settings():
    """Upload settings with no delays so queue tests run instantly."""
    return UploadSettings(inter_file_delay=0, success_dismiss_delay=0)


@pytest.fixture
def make_file(tmp_path):
    """Factory creating a real file on disk wrapped in an UploadFile."""
    counter = {"n": 0}

    def _make(name=None, content=PNG_BYTES, content_type=None, size=None):
        counter["n"] += 1
        name = name or f"image_{counter['n']}.png"
        path = tmp_path / name
        path.write_bytes(content)
        kwargs = {}
        if content_type is not None:
            kwargs["content_type"] = content_type
        if size is not None:
            kwargs["size"] = size
        return UploadFile(str(path), **kwargs)

    return _make


@pytest.fixture
def make_image():
    """Factory for ProductImage records."""
    def _make(image_id, display_order=1, is_main=False, product_id="prod-1"):
        return ProductImage(
            id=image_id,
            product_id=product_id,
            image_url=f"https://cdn.example.com/{product_id}/{image_id}.png",
            is_main=is_main,
            display_order=display_order,
            content_type="image/png",
            file_size=2621440,
        )
    return _make


@pytest.fixture
def image_record():
    """Factory for raw image JSON as the admin API returns it."""
    def _make(image_id, display_order=1, is_main=False, product_id="prod-1"):
        return {
            "id": image_id,
            "product_id": product_id,
            "image_url": f"https://cdn.example.com/{product_id}/{image_id}.png",
            "is_main": is_main,
            "display_order": display_order,
            "content_type": "image/png",
            "file_size": 2621440,
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-01T00:00:00Z",
        }
    return _make


@pytest.fixture
def mock_api():
    """Mock AdminApiClient; configure get/post/put/delete per test."""
    from atelier.network.api_client import AdminApiClient
    return Mock(spec=AdminApiClient)
