"""Error taxonomy shared by the user sources and every backend adapter."""


class ProvisioningError(Exception):
    """Base exception for everything that aborts a provisioning run."""
    pass


class SourceError(ProvisioningError):
    """The desired state could not be loaded (config, user file, table fetch)."""
    pass


class ConfigError(SourceError):
    """Configuration document is unreadable, malformed or incomplete."""
    pass


class AuthError(ProvisioningError):
    """Bearer credential acquisition failed for a backend."""
    pass


class BackendAPIError(ProvisioningError):
    """HTTP error returned by a backend API.

    Attributes:
        status_code: HTTP status code (0 when the request never got a response)
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")
