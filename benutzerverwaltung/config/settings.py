"""Settings loader for the JSON configuration document with Docker secrets integration."""
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

from ..core.errors import ConfigError
from ..core.http_client import REQUEST_TIMEOUT
from ..core.user_extractor import FieldMapping

logger = logging.getLogger(__name__)

SECRETS_DIR = Path("/run/secrets")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.debug("[settings] Loaded %s from %s", secret_name, SECRETS_DIR)
                return secret_value
        except OSError as e:
            logger.warning("[settings] Failed to read %s: %s", secret_file, e)

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            logger.debug("[settings] Loaded %s from environment", env_var)
            return secret_value

    return None


@dataclass
class NextcloudConfig:
    url: str
    username: str
    password: str = field(default="", repr=False)
    request_timeout: float = REQUEST_TIMEOUT


@dataclass
class FileUsersProvider:
    path: str


@dataclass
class NextcloudTableUsersProvider:
    nextcloud: NextcloudConfig
    table_id: int


UsersProvider = Union[FileUsersProvider, NextcloudTableUsersProvider]


@dataclass
class KeycloakConfig:
    url: str
    realm: str
    username: str
    password: str = field(default="", repr=False)
    client_id: str = "admin-cli"
    auth_realm: str = "master"
    leaver_action: str = "delete"
    request_timeout: float = REQUEST_TIMEOUT


@dataclass
class AuthentikConfig:
    url: str
    token: str = field(default="", repr=False)
    user_path: str = "benutzerverwaltung"
    request_timeout: float = REQUEST_TIMEOUT


@dataclass
class GitLabConfig:
    url: str
    group_id: int
    owner_role: str
    maintainer_role: str
    token: str = field(default="", repr=False)
    request_timeout: float = REQUEST_TIMEOUT


@dataclass
class AuditConfig:
    enabled: bool = False
    directory: Optional[str] = None


@dataclass
class Settings:
    """Application configuration container."""
    users_provider: UsersProvider
    keycloak: Optional[KeycloakConfig] = None
    authentik: Optional[AuthentikConfig] = None
    gitlab: Optional[GitLabConfig] = None
    extraction: FieldMapping = field(default_factory=FieldMapping)
    audit: AuditConfig = field(default_factory=AuditConfig)
    request_timeout: float = REQUEST_TIMEOUT


# Annotations are strings here (postponed evaluation)
_FIELD_TYPES = {
    "str": (str,),
    "Optional[str]": (str, type(None)),
    "bool": (bool,),
    "int": (int,),
    "float": (int, float),
}


def _check_types(cls, values: dict, section: str) -> None:
    for f in fields(cls):
        expected = _FIELD_TYPES.get(f.type)
        if expected is None or f.name not in values:
            continue
        value = values[f.name]
        if isinstance(value, bool) and bool not in expected:
            raise ConfigError(f"'{section}.{f.name}' must be of type {f.type}, got a boolean")
        if not isinstance(value, expected):
            raise ConfigError(f"'{section}.{f.name}' must be of type {f.type}, got {type(value).__name__}")


def _section(cls, data: Any, section: str, **overrides: Any):
    """Build a config dataclass from a JSON object, rejecting unknown or missing keys."""
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a JSON object")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"'{section}' has unknown key(s): {', '.join(unknown)}")
    values = dict(data)
    values.update({k: v for k, v in overrides.items() if k not in data})
    _check_types(cls, values, section)
    try:
        return cls(**values)
    except TypeError as exc:
        raise ConfigError(f"'{section}' is incomplete: {exc}") from exc


def _require_secret(value: str, secret_name: str, env_var: str, section: str) -> str:
    if value:
        return value
    resolved = _load_secret_from_file(secret_name, env_var)
    if not resolved:
        raise ConfigError(
            f"'{section}' secret missing: set it in the config, /run/secrets/{secret_name} or {env_var}"
        )
    return resolved


def _users_provider(data: Any, timeout: float) -> UsersProvider:
    if not isinstance(data, dict) or "type" not in data:
        raise ConfigError("'users_provider' must be an object with a 'type'")
    data = dict(data)
    kind = data.pop("type")
    if kind == "file":
        return _section(FileUsersProvider, data, "users_provider")
    if kind == "nextcloud_table":
        nextcloud = _section(NextcloudConfig, data.get("nextcloud"), "users_provider.nextcloud",
                             request_timeout=timeout)
        nextcloud.password = _require_secret(
            nextcloud.password, "nextcloud_password", "NEXTCLOUD_PASSWORD", "users_provider.nextcloud"
        )
        return _section(NextcloudTableUsersProvider, {**data, "nextcloud": nextcloud}, "users_provider")
    raise ConfigError(f"Unknown users_provider type '{kind}' (expected 'file' or 'nextcloud_table')")


def parse_settings(document: Any) -> Settings:
    """Turn a decoded configuration document into Settings."""
    if not isinstance(document, dict):
        raise ConfigError("Configuration must be a JSON object")
    if "users_provider" not in document:
        raise ConfigError("Configuration requires 'users_provider'")

    timeout = document.get("request_timeout", REQUEST_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("'request_timeout' must be a positive number of seconds")
    settings = Settings(
        users_provider=_users_provider(document["users_provider"], timeout),
        request_timeout=timeout,
    )

    if document.get("keycloak") is not None:
        keycloak = _section(KeycloakConfig, document["keycloak"], "keycloak", request_timeout=timeout)
        keycloak.password = _require_secret(keycloak.password, "keycloak_password", "KEYCLOAK_PASSWORD", "keycloak")
        if keycloak.leaver_action not in ("delete", "disable"):
            raise ConfigError("'keycloak.leaver_action' must be 'delete' or 'disable'")
        settings.keycloak = keycloak

    if document.get("authentik") is not None:
        authentik = _section(AuthentikConfig, document["authentik"], "authentik", request_timeout=timeout)
        authentik.token = _require_secret(authentik.token, "authentik_token", "AUTHENTIK_TOKEN", "authentik")
        settings.authentik = authentik

    if document.get("gitlab") is not None:
        gitlab = _section(GitLabConfig, document["gitlab"], "gitlab", request_timeout=timeout)
        gitlab.token = _require_secret(gitlab.token, "gitlab_token", "GITLAB_TOKEN", "gitlab")
        settings.gitlab = gitlab

    if document.get("extraction") is not None:
        settings.extraction = _section(FieldMapping, document["extraction"], "extraction")

    if document.get("audit") is not None:
        settings.audit = _section(AuditConfig, document["audit"], "audit")

    return settings


def load_settings(path: Union[str, Path]) -> Settings:
    """Load settings from a JSON configuration file.

    Raises:
        ConfigError: If the file is unreadable, not JSON, or incomplete
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Configuration {path} is not valid JSON: {exc}") from exc
    return parse_settings(document)
