"""
Tests for create_upload_transport.
"""

import pytest

from atelier.core.upload_config import StorageMode
from atelier.network.direct_upload_transport import DirectUploadTransport
from atelier.network.local_upload_transport import LocalUploadTransport
from atelier.network.upload_transport_factory import create_upload_transport
from atelier_exceptions import ConfigurationError


def test_development_uses_local_transport(mock_api):
    transport = create_upload_transport(mock_api)

    assert isinstance(transport, LocalUploadTransport)
    assert transport.storage_label == "Local"
    assert transport.stored_message == "(Stored locally)"
    assert transport.transfer_timeout is None


def test_production_uses_direct_transport(mock_api, monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")

    transport = create_upload_transport(mock_api)

    assert isinstance(transport, DirectUploadTransport)
    assert transport.storage_label == "S3"
    assert transport.stored_message == "(Stored in S3)"
    assert transport.transfer_timeout == 120


def test_explicit_mode_wins(mock_api):
    assert isinstance(create_upload_transport(mock_api, StorageMode.DIRECT), DirectUploadTransport)


def test_direct_timeout_configurable(mock_api, monkeypatch):
    monkeypatch.setenv("ATELIER_DIRECT_UPLOAD_TIMEOUT", "45")
    assert create_upload_transport(mock_api, StorageMode.DIRECT).transfer_timeout == 45


def test_unknown_mode(mock_api):
    with pytest.raises(ConfigurationError):
        create_upload_transport(mock_api, "ftp")
