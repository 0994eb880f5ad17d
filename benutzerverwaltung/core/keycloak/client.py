"""Low-level HTTP client for Keycloak Admin API.

Handles authentication, token management, and HTTP operations.
"""
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import requests

from ..http_client import ApiClient, REQUEST_TIMEOUT
from .exceptions import KeycloakAPIError, KeycloakAuthError


class PasswordGrantCredentials:
    """Bearer credential provider using the resource-owner password grant.

    Usage:
        credentials = PasswordGrantCredentials("http://keycloak:8080", "admin", "secret", "admin-cli")
        token, expires_in = credentials.acquire()
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        client_id: str = "admin-cli",
        realm: str = "master",
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.client_id = client_id
        self.realm = realm
        self.timeout = timeout

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/realms/{self.realm}/protocol/openid-connect/token"

    def acquire(self) -> tuple[str, int]:
        """Obtain an access token via direct access grant.

        Returns:
            Tuple of (access token, lifetime in seconds)

        Raises:
            KeycloakAuthError: If the token endpoint rejects the request
        """
        data = {
            "grant_type": "password",
            "client_id": self.client_id,
            "username": self.username,
            "password": self.password,
        }
        try:
            resp = requests.post(self.token_url, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise KeycloakAuthError(f"Token request to {self.token_url} failed: {exc}") from exc
        if resp.status_code != 200:
            raise KeycloakAuthError(f"[{resp.status_code}] {self.token_url}: {resp.text}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise KeycloakAuthError(f"{self.token_url}: token response is not valid JSON") from exc
        if not isinstance(payload, dict) or "access_token" not in payload:
            raise KeycloakAuthError(f"{self.token_url}: response carries no access_token")
        return payload["access_token"], int(payload.get("expires_in", 60))


class KeycloakClient(ApiClient):
    """HTTP client for Keycloak Admin API with automatic token management.

    Features:
    - Automatic token refresh when expired
    - Centralized error handling

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate(PasswordGrantCredentials("http://keycloak:8080", "admin", "password"))
        response = client.get("/admin/realms/demo/users")
    """

    error_class = KeycloakAPIError

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        super().__init__(base_url, timeout)
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._credentials: Optional[PasswordGrantCredentials] = None

    def authenticate(self, credentials: PasswordGrantCredentials) -> str:
        """Acquire a token and keep the credentials for auto-refresh.

        Returns:
            Access token
        """
        self._credentials = credentials
        self._refresh()
        return self._token

    def _refresh(self) -> None:
        token, expires_in = self._credentials.acquire()
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._token or not self._token_expires_at or self._credentials is None:
            raise KeycloakAuthError("Not authenticated - call authenticate() first")

        # Refresh if token expired or expiring soon (within 10 seconds)
        if datetime.now() >= self._token_expires_at - timedelta(seconds=10):
            self._refresh()

    def _auth_headers(self) -> Dict[str, str]:
        self._ensure_authenticated()
        return {"Authorization": f"Bearer {self._token}"}

    def get_all(self, path: str, params: Optional[Dict] = None, page_size: int = 100) -> list[Any]:
        """Collect every item of a listing that pages with ``first``/``max``."""
        items: list[Any] = []
        first = 0
        while True:
            query = dict(params or {})
            query.update({"first": first, "max": page_size})
            page = self.get_json(path, params=query) or []
            items.extend(page)
            if len(page) < page_size:
                return items
            first += page_size
