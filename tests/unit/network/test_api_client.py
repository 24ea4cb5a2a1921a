#!/usr/bin/env python3
"""
Tests for AdminApiClient: JSON decoding, error mapping and session clearing.
"""

import json as jsonlib
from unittest.mock import MagicMock, Mock

import pytest
import requests

from atelier.network.api_client import AdminApiClient
from atelier_exceptions import ApiRequestError, AuthenticationError, NetworkError


def make_response(status_code=200, body=None, content_type="application/json", reason="OK", raw=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if raw is not None:
        response._content = raw
    elif body is not None:
        response._content = jsonlib.dumps(body).encode("utf-8")
    else:
        response._content = b""
    if content_type:
        response.headers["Content-Type"] = content_type
    response.encoding = "utf-8"
    return response


@pytest.fixture
def session():
    mock_session = MagicMock()
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def client(session):
    return AdminApiClient("https://api.example.com", session=session, timeout=10)


class TestUrls:

    def test_prefix_added(self, client):
        assert client.url_for("/admin/products/1/images") == \
            "https://api.example.com/api/v1/admin/products/1/images"

    def test_base_url_with_prefix_normalized(self, session):
        client = AdminApiClient("https://api.example.com/api/v1/", session=session)
        assert client.url_for("/x") == "https://api.example.com/api/v1/x"

    def test_default_session_created(self):
        client = AdminApiClient("https://api.example.com")
        assert isinstance(client.session, requests.Session)
        assert client.session.headers["Accept"] == "application/json"


class TestRequest:

    def test_json_body_returned(self, client, session):
        session.request.return_value = make_response(body=[{"id": "img-1"}])

        assert client.get("/admin/products/1/images") == [{"id": "img-1"}]
        session.request.assert_called_once_with(
            "GET", "https://api.example.com/api/v1/admin/products/1/images",
            json=None, params=None, timeout=10)

    def test_post_sends_json(self, client, session):
        session.request.return_value = make_response(body={"ok": True})

        client.post("/admin/products/1/images/confirm", json={"imageKey": "k", "isMain": True})

        assert session.request.call_args[1]["json"] == {"imageKey": "k", "isMain": True}

    def test_empty_body_returns_none(self, client, session):
        session.request.return_value = make_response(status_code=204, content_type=None, reason="No Content")
        assert client.delete("/admin/products/1/images/img-1") is None

    def test_non_json_body_rejected(self, client, session):
        session.request.return_value = make_response(raw=b"<html>ok</html>", content_type="text/html")

        with pytest.raises(ApiRequestError) as exc_info:
            client.get("/admin/products/1/images")
        assert exc_info.value.message == "Invalid JSON response from server"

    def test_malformed_json_rejected(self, client, session):
        session.request.return_value = make_response(raw=b"{not json")
        with pytest.raises(ApiRequestError, match="Invalid JSON"):
            client.get("/admin/products/1/images")

    def test_connection_error(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(NetworkError):
            client.get("/admin/products/1/images")


class TestErrorStatuses:

    def test_message_field_used(self, client, session):
        session.request.return_value = make_response(
            status_code=400, body={"message": "Invalid content type"}, reason="Bad Request")

        with pytest.raises(ApiRequestError) as exc_info:
            client.post("/admin/products/1/images/generate-upload-url", json={})
        assert exc_info.value.message == "Invalid content type"
        assert exc_info.value.status_code == 400

    def test_plain_text_body_used(self, client, session):
        session.request.return_value = make_response(
            status_code=500, raw=b"database unavailable", content_type="text/plain",
            reason="Internal Server Error")

        with pytest.raises(ApiRequestError, match="database unavailable"):
            client.get("/admin/products/1/images")

    def test_fallback_to_status_line(self, client, session):
        session.request.return_value = make_response(status_code=404, body={"error": "x"}, reason="Not Found")

        with pytest.raises(ApiRequestError, match="HTTP 404: Not Found"):
            client.delete("/admin/products/1/images/missing")

    def test_401_clears_session(self, session):
        cleared = Mock()
        client = AdminApiClient("https://api.example.com", session=session, on_session_cleared=cleared)
        session.request.return_value = make_response(status_code=401, body={"message": "expired"},
                                                     reason="Unauthorized")

        with pytest.raises(AuthenticationError, match="Authentication required"):
            client.get("/admin/products/1/images")

        session.cookies.clear.assert_called_once()
        cleared.assert_called_once()

    def test_401_is_not_an_api_request_error(self, client, session):
        session.request.return_value = make_response(status_code=401, reason="Unauthorized")
        with pytest.raises(AuthenticationError) as exc_info:
            client.get("/x")
        assert not isinstance(exc_info.value, ApiRequestError)


class TestLogout:

    def test_logout_posts_outside_api_prefix(self, client, session):
        client.logout()
        session.post.assert_called_once_with("https://api.example.com/auth/logout", timeout=10)
        session.cookies.clear.assert_called_once()

    def test_logout_clears_cookies_even_when_offline(self, client, session):
        session.post.side_effect = requests.exceptions.ConnectionError("offline")
        client.logout()
        session.cookies.clear.assert_called_once()
