"""Keycloak Admin API client library.

Architecture:
- client.py: HTTP client with password-grant authentication and auto-refresh
- users.py: User lifecycle operations (list, create, update, delete, disable)
- roles.py: Realm role catalog and per-user role mappings
- backend.py: Reconciliation backend built on the services above
- exceptions.py: Typed exceptions for error handling

Usage:
    from benutzerverwaltung.core.keycloak import KeycloakClient, PasswordGrantCredentials, UserService

    client = KeycloakClient("http://keycloak:8080")
    client.authenticate(PasswordGrantCredentials("http://keycloak:8080", "admin", "password"))

    user_service = UserService(client)
    user = user_service.get_user_by_username("demo", "alice")
"""
from .backend import KeycloakBackend
from .client import KeycloakClient, PasswordGrantCredentials
from .exceptions import KeycloakAPIError, KeycloakAuthError, KeycloakError
from .roles import RoleService
from .users import UserService

__all__ = [
    "KeycloakBackend",
    "KeycloakClient",
    "PasswordGrantCredentials",
    "KeycloakError",
    "KeycloakAPIError",
    "KeycloakAuthError",
    "RoleService",
    "UserService",
]
