"""Keycloak user management operations."""
from __future__ import annotations
import logging
from typing import Optional

from ..models import CanonicalUser
from .client import KeycloakClient

logger = logging.getLogger(__name__)


def user_payload(username: str, user: CanonicalUser) -> dict:
    """Keycloak user representation for a canonical user (full overwrite)."""
    return {
        "username": username,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "enabled": user.enabled,
    }


class UserService:
    """Service for managing Keycloak users."""

    def __init__(self, client: KeycloakClient):
        """Initialize user service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def list_users(self, realm: str) -> list[dict]:
        """Return every user of the realm."""
        logger.debug("[keycloak] Listing users of realm '%s'", realm)
        return self.client.get_all(f"/admin/realms/{realm}/users")

    def get_user_by_username(self, realm: str, username: str) -> Optional[dict]:
        """Return the user representation that exactly matches the username.

        Args:
            realm: Realm name
            username: Username to search for

        Returns:
            User representation or None if not found
        """
        users = self.client.get_json(
            f"/admin/realms/{realm}/users",
            params={"username": username, "exact": "true"},
        )
        for user in users or []:
            if user.get("username") == username:
                return user
        return None

    def create_user(self, realm: str, user: CanonicalUser) -> None:
        self.client.post(f"/admin/realms/{realm}/users", json=user_payload(user.identifier, user))

    def update_user(self, realm: str, user_id: str, username: str, user: CanonicalUser) -> None:
        self.client.put(f"/admin/realms/{realm}/users/{user_id}", json=user_payload(username, user))

    def delete_user(self, realm: str, user_id: str) -> None:
        self.client.delete(f"/admin/realms/{realm}/users/{user_id}")

    def disable_user(self, realm: str, user_id: str) -> None:
        """Disable (leaver) a user account instead of deleting it."""
        self.client.put(f"/admin/realms/{realm}/users/{user_id}", json={"enabled": False})
