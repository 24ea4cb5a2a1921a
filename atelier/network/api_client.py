"""
Authenticated admin API client.

Wraps a requests.Session that already carries the admin session cookie.
Endpoints are given relative to the API root ({base_url}/api/v1). 2xx JSON
bodies are decoded, non-2xx responses raise, and a 401 clears the local
session before raising AuthenticationError.
"""

from typing import Any, Callable, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from atelier.utils.logger import log
from atelier_exceptions import ApiRequestError, AuthenticationError, NetworkError


class AdminApiClient:
    """Credential-bearing JSON client for the admin API."""

    API_PREFIX = "/api/v1"

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = 30,
                 on_session_cleared: Optional[Callable[[], None]] = None):
        """
        Args:
            base_url: Backend origin, e.g. 'https://api.example.com'
            session: Pre-authenticated session; a fresh one is created if omitted
            timeout: Per-request timeout in seconds
            on_session_cleared: Called after a 401 wipes the session
        """
        self.base_url = base_url.rstrip("/")
        if self.base_url.endswith(self.API_PREFIX):
            self.base_url = self.base_url[:-len(self.API_PREFIX)]
        self.timeout = timeout
        self.on_session_cleared = on_session_cleared

        if session is None:
            # No urllib3 retries: every retry in the console is user-initiated
            adapter = HTTPAdapter(max_retries=0, pool_connections=1, pool_maxsize=4)
            session = requests.Session()
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session
        self.session.headers.update({'Accept': 'application/json'})

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{self.API_PREFIX}{endpoint}"

    def request(self, method: str, endpoint: str, json: Any = None,
                params: Optional[Dict[str, Any]] = None) -> Any:
        """Perform an authenticated request and return the decoded JSON body.

        Returns None for an empty 2xx body.

        Raises:
            AuthenticationError: on HTTP 401 (session is cleared first)
            ApiRequestError: on other non-2xx statuses or a non-JSON 2xx body
            NetworkError: when the server cannot be reached
        """
        url = self.url_for(endpoint)
        log(f"Admin API request: {method} {url}", level="debug", category="network")

        try:
            response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            log(f"Admin API request failed: {method} {endpoint}: {e}", level="error", category="network")
            raise NetworkError(f"Could not reach server: {e}", details={"url": url}) from e

        if response.status_code == 401:
            self.clear_session()
            raise AuthenticationError("Authentication required", details={"url": url})

        if not response.ok:
            message = self._error_message(response)
            log(f"Admin API error {response.status_code} for {method} {endpoint}: {message}",
                level="error", category="network")
            raise ApiRequestError(message, status_code=response.status_code, details={"url": url})

        if not response.content:
            return None

        content_type = response.headers.get('Content-Type', '')
        if 'application/json' not in content_type:
            raise ApiRequestError("Invalid JSON response from server",
                                  status_code=response.status_code, details={"url": url})
        try:
            return response.json()
        except ValueError as e:
            raise ApiRequestError("Invalid JSON response from server",
                                  status_code=response.status_code, details={"url": url}) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        fallback = f"HTTP {response.status_code}: {response.reason}"
        text = response.text or ""
        try:
            data = response.json()
        except ValueError:
            return text or fallback
        if isinstance(data, dict) and data.get('message'):
            return str(data['message'])
        return fallback

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, json: Any = None) -> Any:
        return self.request("POST", endpoint, json=json)

    def put(self, endpoint: str, json: Any = None) -> Any:
        return self.request("PUT", endpoint, json=json)

    def delete(self, endpoint: str) -> Any:
        return self.request("DELETE", endpoint)

    def clear_session(self) -> None:
        """Drop session cookies and notify the owner."""
        self.session.cookies.clear()
        log("Admin session cleared", level="warning", category="auth")
        if self.on_session_cleared:
            self.on_session_cleared()

    def logout(self) -> None:
        """Ask the backend to clear its session cookies, then clear ours."""
        try:
            self.session.post(f"{self.base_url}/auth/logout", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            log(f"Admin logout error: {e}", level="warning", category="auth")
        self.session.cookies.clear()
