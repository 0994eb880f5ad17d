"""Keycloak-specific exceptions for error handling."""
from ..errors import AuthError, BackendAPIError


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError, BackendAPIError):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        BackendAPIError.__init__(self, status_code, message, endpoint)


class KeycloakAuthError(KeycloakError, AuthError):
    """Token request against the Keycloak token endpoint failed."""
    pass
