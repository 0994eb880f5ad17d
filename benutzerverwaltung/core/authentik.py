"""authentik as a reconciliation target with groups as the role catalog.

Only users below the configured ``user_path`` are considered managed, so
built-in accounts (akadmin, outpost service accounts) never show up in the
actual state and are never deleted.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config.settings import AuthentikConfig
from .backend import RoleCatalogBackend
from .errors import BackendAPIError
from .http_client import ApiClient, REQUEST_TIMEOUT
from .models import CanonicalUser, ProviderUser, RoleCatalogEntry

logger = logging.getLogger(__name__)


class AuthentikAPIError(BackendAPIError):
    """HTTP error from the authentik API."""
    pass


class AuthentikClient(ApiClient):
    error_class = AuthentikAPIError

    def __init__(self, base_url: str, token: str, timeout: float = REQUEST_TIMEOUT):
        super().__init__(base_url, timeout)
        self._token = token

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    def get_all(self, path: str, params: Optional[Dict] = None, page_size: int = 100) -> List[dict]:
        """Collect ``results`` across pages until ``pagination.next`` is 0."""
        items: List[dict] = []
        page = 1
        while page:
            query = dict(params or {})
            query.update({"page": page, "page_size": page_size})
            payload = self.get_json(path, params=query) or {}
            items.extend(payload.get("results", []))
            page = (payload.get("pagination") or {}).get("next") or 0
        return items


def _full_name(user: CanonicalUser) -> str:
    # authentik rejects a blank name
    return " ".join(part for part in (user.first_name, user.last_name) if part) or user.identifier


def _provider_user(representation: dict) -> ProviderUser:
    return ProviderUser(provider_id=representation["pk"], identifier=representation["username"], attributes=representation)


class AuthentikBackend(RoleCatalogBackend):
    name = "authentik"

    def __init__(self, config: AuthentikConfig, client: Optional[AuthentikClient] = None):
        self.config = config
        self.client = client or AuthentikClient(config.url, config.token, timeout=config.request_timeout)

    def _payload(self, user: CanonicalUser) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "username": user.identifier,
            "name": _full_name(user),
            "email": user.email or "",
            "is_active": user.enabled,
            "path": self.config.user_path,
        }
        if user.matrix_id:
            payload["attributes"] = {"matrix_id": user.matrix_id}
        return payload

    def fetch_actual_users(self) -> List[ProviderUser]:
        users = self.client.get_all("/api/v3/core/users/", params={"path": self.config.user_path})
        logger.debug("[authentik] %d managed user(s) under path '%s'", len(users), self.config.user_path)
        return [_provider_user(user) for user in users]

    def resolve_identifier(self, username: str) -> Optional[ProviderUser]:
        payload = self.client.get_json("/api/v3/core/users/", params={"username": username})
        for user in (payload or {}).get("results", []):
            if user.get("username") == username:
                return _provider_user(user)
        return None

    def create(self, user: CanonicalUser) -> None:
        self.client.post("/api/v3/core/users/", json=self._payload(user))

    def update(self, provider_user: ProviderUser, user: CanonicalUser) -> None:
        self.client.patch(f"/api/v3/core/users/{provider_user.provider_id}/", json=self._payload(user))

    def delete(self, provider_user: ProviderUser) -> None:
        self.client.delete(f"/api/v3/core/users/{provider_user.provider_id}/")

    def fetch_role_catalog(self) -> List[RoleCatalogEntry]:
        groups = self.client.get_all("/api/v3/core/groups/", params={"include_users": "false"})
        return [RoleCatalogEntry(provider_role_id=group["pk"], name=group["name"]) for group in groups]

    def create_role(self, name: str) -> None:
        self.client.post("/api/v3/core/groups/", json={"name": name})

    def fetch_user_roles(self, provider_user: ProviderUser) -> List[RoleCatalogEntry]:
        groups = self.client.get_all(
            "/api/v3/core/groups/",
            params={"members_by_pk": provider_user.provider_id, "include_users": "false"},
        )
        return [RoleCatalogEntry(provider_role_id=group["pk"], name=group["name"]) for group in groups]

    def assign_roles(
        self,
        provider_user: ProviderUser,
        add: Sequence[RoleCatalogEntry],
        remove: Sequence[RoleCatalogEntry],
    ) -> None:
        for group in add:
            self.client.post(
                f"/api/v3/core/groups/{group.provider_role_id}/add_user/",
                json={"pk": provider_user.provider_id},
            )
        for group in remove:
            self.client.post(
                f"/api/v3/core/groups/{group.provider_role_id}/remove_user/",
                json={"pk": provider_user.provider_id},
            )
