"""Map decoded table rows onto canonical users."""
from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional

from .models import CanonicalUser, DecodedRow, DesiredState, ListCell, StringCell

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMapping:
    """Column titles and constants that tie the table to the user model."""
    identifier_column: str = "Funktionskennung"
    first_name_column: str = "Vorname"
    last_name_column: str = "Nachname"
    roles_column: str = "Funktion"
    group_column: str = "Fachschaft"
    email_domain: str = "hhu.de"
    keep_base_roles: bool = False


def _string(row: DecodedRow, title: str) -> Optional[str]:
    cell = row.get(title)
    return cell.value if isinstance(cell, StringCell) else None


def _string_list(row: DecodedRow, title: str) -> Optional[List[str]]:
    cell = row.get(title)
    return list(cell.value) if isinstance(cell, ListCell) else None


def derive_roles(base_roles: Iterable[str], group: str, keep_base_roles: bool = False) -> List[str]:
    """Expand base roles into ``"{group} - {role}"`` plus the bare group.

    Example:
        >>> derive_roles(["Admin", "Kasse"], "CS")
        ['CS - Admin', 'CS - Kasse', 'CS']
    """
    base = list(base_roles)
    roles = list(base) if keep_base_roles else []
    roles.extend(f"{group} - {role}" for role in base)
    roles.append(group)
    return roles


def user_from_row(row: DecodedRow, mapping: FieldMapping = FieldMapping()) -> Optional[CanonicalUser]:
    """Build a canonical user from one row, or None when the row is incomplete."""
    identifier = _string(row, mapping.identifier_column)
    first_name = _string(row, mapping.first_name_column)
    last_name = _string(row, mapping.last_name_column)
    base_roles = _string_list(row, mapping.roles_column)
    group = _string(row, mapping.group_column)

    if not identifier or first_name is None or last_name is None or base_roles is None or group is None:
        return None

    return CanonicalUser(
        identifier=identifier,
        first_name=first_name,
        last_name=last_name,
        email=f"{identifier}@{mapping.email_domain}",
        matrix_id=None,
        roles=tuple(derive_roles(base_roles, group, mapping.keep_base_roles)),
        enabled=True,
    )


def extract(rows: Iterable[DecodedRow], mapping: FieldMapping = FieldMapping()) -> DesiredState:
    """Collapse decoded rows into one canonical user per identifier.

    The first row seen for an identifier provides names and email; the roles
    of every later row with the same identifier are appended, duplicates kept.
    """
    first_seen: Dict[str, CanonicalUser] = {}
    roles: Dict[str, List[str]] = {}
    dropped = 0

    for row in rows:
        user = user_from_row(row, mapping)
        if user is None:
            dropped += 1
            continue
        if user.identifier in first_seen:
            roles[user.identifier].extend(user.roles)
        else:
            first_seen[user.identifier] = user
            roles[user.identifier] = list(user.roles)

    if dropped:
        logger.info("[table] Skipped %d incomplete row(s)", dropped)

    return {
        identifier: replace(user, roles=tuple(roles[identifier]))
        for identifier, user in first_seen.items()
    }
