"""Keycloak realm role management operations."""
from __future__ import annotations
import logging
from typing import Sequence

from ..models import RoleCatalogEntry
from .client import KeycloakClient

logger = logging.getLogger(__name__)


def _role_refs(roles: Sequence[RoleCatalogEntry]) -> list[dict]:
    return [{"id": role.provider_role_id, "name": role.name} for role in roles]


def _to_entries(payload: list[dict]) -> list[RoleCatalogEntry]:
    return [RoleCatalogEntry(provider_role_id=role["id"], name=role["name"]) for role in payload or []]


class RoleService:
    """Service for managing Keycloak realm roles."""

    def __init__(self, client: KeycloakClient):
        """Initialize role service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def list_realm_roles(self, realm: str) -> list[RoleCatalogEntry]:
        logger.debug("[keycloak] Getting all realm roles of '%s'", realm)
        return _to_entries(self.client.get_all(f"/admin/realms/{realm}/roles"))

    def create_role(self, realm: str, role_name: str) -> None:
        """Create a realm-level role.

        Args:
            realm: Realm name
            role_name: Role name
        """
        self.client.post(f"/admin/realms/{realm}/roles", json={"name": role_name})

    def get_user_realm_roles(self, realm: str, user_id: str) -> list[RoleCatalogEntry]:
        logger.debug("[keycloak] Getting realm roles of user %s", user_id)
        return _to_entries(self.client.get_json(f"/admin/realms/{realm}/users/{user_id}/role-mappings/realm"))

    def add_realm_roles(self, realm: str, user_id: str, roles: Sequence[RoleCatalogEntry]) -> None:
        """Grant realm-level roles without removing existing ones."""
        self.client.post(
            f"/admin/realms/{realm}/users/{user_id}/role-mappings/realm",
            json=_role_refs(roles),
        )

    def remove_realm_roles(self, realm: str, user_id: str, roles: Sequence[RoleCatalogEntry]) -> None:
        self.client.delete(
            f"/admin/realms/{realm}/users/{user_id}/role-mappings/realm",
            json=_role_refs(roles),
        )
