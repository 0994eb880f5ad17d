"""Build the desired state from the configured user source."""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from ..config.settings import FileUsersProvider, NextcloudTableUsersProvider, Settings
from .errors import SourceError
from .models import CanonicalUser, DesiredState
from .nextcloud import NextcloudTableClient
from .table_decoder import decode
from .user_extractor import FieldMapping, extract

logger = logging.getLogger(__name__)

_OPTIONAL_STRINGS = ("first_name", "last_name", "email", "matrix_id")


def _user_from_entry(identifier: str, entry: Any) -> CanonicalUser:
    if not isinstance(entry, dict):
        raise SourceError(f"User '{identifier}' must be a JSON object")
    roles = entry.get("roles")
    if not isinstance(roles, list) or not all(isinstance(role, str) for role in roles):
        raise SourceError(f"User '{identifier}' requires 'roles' as a list of strings")
    for key in _OPTIONAL_STRINGS:
        if entry.get(key) is not None and not isinstance(entry[key], str):
            raise SourceError(f"User '{identifier}': '{key}' must be a string")
    enabled = entry.get("enabled", True)
    if not isinstance(enabled, bool):
        raise SourceError(f"User '{identifier}': 'enabled' must be a boolean")
    return CanonicalUser(
        identifier=identifier,
        first_name=entry.get("first_name"),
        last_name=entry.get("last_name"),
        email=entry.get("email"),
        matrix_id=entry.get("matrix_id"),
        roles=tuple(roles),
        enabled=enabled,
    )


def load_users_file(path: Union[str, Path]) -> DesiredState:
    """Read canonical users from a JSON object keyed by identifier.

    Example file:
        {"jdoe": {"first_name": "Jane", "last_name": "Doe",
                  "email": "jdoe@hhu.de", "roles": ["CS"]}}
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise SourceError(f"Cannot read user file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SourceError(f"User file {path} is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise SourceError(f"User file {path} must contain a JSON object")

    desired = {identifier: _user_from_entry(identifier, entry) for identifier, entry in document.items()}
    logger.info("[users] Loaded %d user(s) from %s", len(desired), path)
    return desired


def fetch_table_users(
    client: NextcloudTableClient,
    table_id: int,
    mapping: FieldMapping = FieldMapping(),
) -> DesiredState:
    """Fetch, decode and extract the users kept in a Nextcloud table."""
    schema = client.fetch_schema(table_id)
    rows = client.fetch_rows(table_id)
    desired = extract(decode(schema, rows), mapping)
    logger.info("[users] Extracted %d user(s) from %d row(s)", len(desired), len(rows))
    return desired


def load_desired_state(settings: Settings, client: Optional[NextcloudTableClient] = None) -> DesiredState:
    provider = settings.users_provider
    if isinstance(provider, FileUsersProvider):
        return load_users_file(provider.path)
    if isinstance(provider, NextcloudTableUsersProvider):
        client = client or NextcloudTableClient.from_config(provider.nextcloud)
        return fetch_table_users(client, provider.table_id, settings.extraction)
    raise SourceError(f"Unsupported users provider {type(provider).__name__}")
