"""GitLab group membership as a reconciliation target.

Only canonical users holding the configured owner or maintainer role are
members of the managed group. Their access level follows the role: Owner
when they hold the owner role, Maintainer otherwise.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional

from ..config.settings import GitLabConfig
from .backend import Backend
from .errors import BackendAPIError
from .http_client import ApiClient, REQUEST_TIMEOUT
from .models import CanonicalUser, DesiredState, ProviderUser

logger = logging.getLogger(__name__)

ACCESS_LEVEL_MAINTAINER = 40
ACCESS_LEVEL_OWNER = 50


class GitLabAPIError(BackendAPIError):
    """HTTP error from the GitLab REST API."""
    pass


class GitLabClient(ApiClient):
    error_class = GitLabAPIError

    def __init__(self, base_url: str, token: str, timeout: float = REQUEST_TIMEOUT):
        super().__init__(base_url, timeout)
        self._token = token

    def _auth_headers(self) -> Dict[str, str]:
        return {"PRIVATE-TOKEN": self._token}

    def get_all(self, path: str, params: Optional[Dict] = None, per_page: int = 100) -> List[dict]:
        """Fetch all pages by following the ``X-Next-Page`` header."""
        items: List[dict] = []
        page = "1"
        while page:
            query = dict(params or {})
            query.update({"page": page, "per_page": per_page})
            resp = self.get(path, params=query)
            try:
                items.extend(resp.json() or [])
            except ValueError as exc:
                raise GitLabAPIError(resp.status_code, "response is not valid JSON", resp.url) from exc
            page = resp.headers.get("X-Next-Page", "")
        return items


def _provider_user(representation: dict) -> ProviderUser:
    return ProviderUser(provider_id=representation["id"], identifier=representation["username"], attributes=representation)


class GitLabBackend(Backend):
    name = "gitlab"

    def __init__(self, config: GitLabConfig, client: Optional[GitLabClient] = None):
        self.config = config
        self.client = client or GitLabClient(config.url, config.token, timeout=config.request_timeout)
        self._resolved: Dict[str, ProviderUser] = {}

    def access_level(self, user: CanonicalUser) -> int:
        return ACCESS_LEVEL_OWNER if user.has_role(self.config.owner_role) else ACCESS_LEVEL_MAINTAINER

    def select_desired(self, desired: DesiredState) -> DesiredState:
        """Keep role holders whose username exists in GitLab."""
        selected: DesiredState = {}
        for identifier, user in desired.items():
            if not (user.has_role(self.config.owner_role) or user.has_role(self.config.maintainer_role)):
                continue
            account = self.resolve_identifier(identifier)
            if account is None:
                logger.warning("[gitlab] No GitLab account for '%s', skipping", identifier)
                continue
            self._resolved[identifier] = account
            selected[identifier] = user
        logger.info("[gitlab] %d user(s) qualify for group %s", len(selected), self.config.group_id)
        return selected

    def fetch_actual_users(self) -> List[ProviderUser]:
        members = self.client.get_all(f"/api/v4/groups/{self.config.group_id}/members")
        return [_provider_user(member) for member in members]

    def resolve_identifier(self, username: str) -> Optional[ProviderUser]:
        users = self.client.get_json("/api/v4/users", params={"username": username})
        for user in users or []:
            if user.get("username") == username:
                return _provider_user(user)
        return None

    def create(self, user: CanonicalUser) -> None:
        account = self._resolved.get(user.identifier) or self.resolve_identifier(user.identifier)
        if account is None:
            raise GitLabAPIError(404, f"user '{user.identifier}' not found", "/api/v4/users")
        self.client.post(
            f"/api/v4/groups/{self.config.group_id}/members",
            json={"user_id": account.provider_id, "access_level": self.access_level(user)},
        )

    def update(self, provider_user: ProviderUser, user: CanonicalUser) -> None:
        self.client.put(
            f"/api/v4/groups/{self.config.group_id}/members/{provider_user.provider_id}",
            json={"access_level": self.access_level(user)},
        )

    def delete(self, provider_user: ProviderUser) -> None:
        self.client.delete(f"/api/v4/groups/{self.config.group_id}/members/{provider_user.provider_id}")
