"""Keycloak realm as a reconciliation target with realm roles as catalog."""
from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from ...config.settings import KeycloakConfig
from ..backend import RoleCatalogBackend
from ..models import CanonicalUser, ProviderUser, RoleCatalogEntry
from .client import KeycloakClient, PasswordGrantCredentials
from .roles import RoleService
from .users import UserService

logger = logging.getLogger(__name__)


def _provider_user(representation: dict) -> ProviderUser:
    return ProviderUser(
        provider_id=representation["id"],
        identifier=representation["username"],
        attributes=representation,
    )


class KeycloakBackend(RoleCatalogBackend):
    name = "keycloak"

    def __init__(self, config: KeycloakConfig, client: Optional[KeycloakClient] = None):
        self.config = config
        self.realm = config.realm
        self.client = client or KeycloakClient(config.url, timeout=config.request_timeout)
        self.users = UserService(self.client)
        self.roles = RoleService(self.client)

    def connect(self) -> None:
        credentials = PasswordGrantCredentials(
            self.config.url,
            self.config.username,
            self.config.password,
            client_id=self.config.client_id,
            realm=self.config.auth_realm,
            timeout=self.config.request_timeout,
        )
        self.client.authenticate(credentials)
        logger.info("[keycloak] Authenticated against %s (realm '%s')", self.config.url, self.realm)

    def fetch_actual_users(self) -> List[ProviderUser]:
        return [_provider_user(user) for user in self.users.list_users(self.realm)]

    def resolve_identifier(self, username: str) -> Optional[ProviderUser]:
        user = self.users.get_user_by_username(self.realm, username)
        return _provider_user(user) if user else None

    def create(self, user: CanonicalUser) -> None:
        self.users.create_user(self.realm, user)

    def update(self, provider_user: ProviderUser, user: CanonicalUser) -> None:
        self.users.update_user(self.realm, provider_user.provider_id, provider_user.identifier, user)

    def delete(self, provider_user: ProviderUser) -> None:
        if self.config.leaver_action == "disable":
            self.users.disable_user(self.realm, provider_user.provider_id)
            logger.info("[keycloak] User '%s' disabled", provider_user.identifier)
            return
        self.users.delete_user(self.realm, provider_user.provider_id)

    def fetch_role_catalog(self) -> List[RoleCatalogEntry]:
        return self.roles.list_realm_roles(self.realm)

    def create_role(self, name: str) -> None:
        self.roles.create_role(self.realm, name)

    def fetch_user_roles(self, provider_user: ProviderUser) -> List[RoleCatalogEntry]:
        return self.roles.get_user_realm_roles(self.realm, provider_user.provider_id)

    def assign_roles(
        self,
        provider_user: ProviderUser,
        add: Sequence[RoleCatalogEntry],
        remove: Sequence[RoleCatalogEntry],
    ) -> None:
        if add:
            self.roles.add_realm_roles(self.realm, provider_user.provider_id, add)
        if remove:
            self.roles.remove_realm_roles(self.realm, provider_user.provider_id, remove)
