"""Shared HTTP plumbing for the backend and source API clients.

Every request goes through ``ApiClient.request`` so that authentication
headers, timeouts and error mapping are handled in one place.
"""
from __future__ import annotations
from typing import Any, Dict, Optional, Type

import requests

from .errors import BackendAPIError

REQUEST_TIMEOUT = 10


class ApiClient:
    """Minimal JSON API client; subclasses provide auth headers and error type.

    Usage:
        client = GitLabClient("https://gitlab.example.org", token)
        response = client.get("/api/v4/groups/42/members")
    """

    error_class: Type[BackendAPIError] = BackendAPIError

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _auth_headers(self) -> Dict[str, str]:
        return {}

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Execute a request with authentication and error handling.

        Args:
            method: HTTP method
            path: API endpoint path (e.g., "/admin/realms/demo/users")
            **kwargs: Additional arguments for requests.request

        Returns:
            Response object

        Raises:
            BackendAPIError: On HTTP error or when the request cannot be sent
        """
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        headers.update(kwargs.pop("headers", {}) or {})
        headers.update(self._auth_headers())

        try:
            resp = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise self.error_class(0, str(exc), url) from exc
        self._handle_error(resp)
        return resp

    def get(self, path: str, params: Optional[Dict] = None, **kwargs: Any) -> requests.Response:
        return self.request("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Any = None, **kwargs: Any) -> requests.Response:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs: Any) -> requests.Response:
        return self.request("PUT", path, json=json, **kwargs)

    def patch(self, path: str, json: Any = None, **kwargs: Any) -> requests.Response:
        return self.request("PATCH", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    def get_json(self, path: str, params: Optional[Dict] = None) -> Any:
        resp = self.get(path, params=params)
        try:
            return resp.json()
        except ValueError as exc:
            raise self.error_class(resp.status_code, "response is not valid JSON", resp.url) from exc

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            BackendAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise self.error_class(resp.status_code, resp.text, resp.url)
