"""Two-phase role catalog synchronization for role-capable backends.

Phase 1 (catalog): every role name used anywhere in the desired state is
created in the backend's catalog if missing, then the catalog is re-read.

Phase 2 (assignment): for each user already matched to a backend identity,
the assigned roles are fetched and diffed against the desired roles:

    add    = catalog roles the user should have but does not
    remove = assigned roles the user should no longer have

Users created in the same pass are not touched here; they pick up their
roles on the next run.
"""
from __future__ import annotations
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .backend import RoleCatalogBackend
from .models import (
    CanonicalUser,
    DesiredState,
    ProviderUser,
    ReconciliationPlan,
    RoleAssignment,
    RoleCatalogEntry,
)

logger = logging.getLogger(__name__)


def desired_role_names(desired: DesiredState) -> List[str]:
    """Ordered union of every role name in the desired state."""
    seen: Dict[str, None] = {}
    for user in desired.values():
        for role in user.roles:
            seen.setdefault(role, None)
    return list(seen)


def sync_catalog(
    backend: RoleCatalogBackend,
    desired: DesiredState,
    *,
    dry_run: bool = False,
    on_applied: Optional[Callable[[str, str], None]] = None,
) -> List[RoleCatalogEntry]:
    """Create missing roles once each and return the refreshed catalog."""
    existing = {entry.name for entry in backend.fetch_role_catalog()}
    missing = [name for name in desired_role_names(desired) if name not in existing]

    for name in missing:
        if dry_run:
            logger.info("[%s] Would create role '%s'", backend.name, name)
            continue
        backend.create_role(name)
        logger.info("[%s] Created role '%s'", backend.name, name)
        if on_applied is not None:
            on_applied("role_create", name)

    return backend.fetch_role_catalog()


def compute_assignment(
    desired_roles: Iterable[str],
    catalog: Sequence[RoleCatalogEntry],
    assigned: Sequence[RoleCatalogEntry],
) -> RoleAssignment:
    wanted = set(desired_roles)
    roles_to_add = [
        entry for entry in catalog
        if entry.name in wanted and entry not in assigned
    ]
    roles_to_remove = [entry for entry in assigned if entry.name not in wanted]
    return RoleAssignment(roles_to_add=roles_to_add, roles_to_remove=roles_to_remove)


def sync_assignments(
    backend: RoleCatalogBackend,
    matched: Sequence[Tuple[ProviderUser, CanonicalUser]],
    catalog: Sequence[RoleCatalogEntry],
    *,
    dry_run: bool = False,
    on_applied: Optional[Callable[[str, str], None]] = None,
) -> Dict[str, RoleAssignment]:
    """Diff and apply role assignments for already-matched users."""
    assignments: Dict[str, RoleAssignment] = {}
    for provider_user, user in matched:
        assigned = backend.fetch_user_roles(provider_user)
        assignment = compute_assignment(user.roles, catalog, assigned)
        assignments[user.identifier] = assignment
        if assignment.is_empty:
            continue

        added = [entry.name for entry in assignment.roles_to_add]
        removed = [entry.name for entry in assignment.roles_to_remove]
        if dry_run:
            logger.info("[%s] Would change roles of '%s': +%s -%s", backend.name, user.identifier, added, removed)
            continue

        backend.assign_roles(provider_user, assignment.roles_to_add, assignment.roles_to_remove)
        logger.info("[%s] Changed roles of '%s': +%s -%s", backend.name, user.identifier, added, removed)
        if on_applied is not None:
            on_applied("role_assign", user.identifier)
    return assignments


def synchronize_roles(
    backend: RoleCatalogBackend,
    desired: DesiredState,
    plan: ReconciliationPlan,
    *,
    dry_run: bool = False,
    on_applied: Optional[Callable[[str, str], None]] = None,
) -> Dict[str, RoleAssignment]:
    """Run the catalog phase, then the assignment phase for ``plan.to_update``."""
    logger.debug("[%s] Synchronizing role catalog", backend.name)
    catalog = sync_catalog(backend, desired, dry_run=dry_run, on_applied=on_applied)
    return sync_assignments(backend, plan.to_update, catalog, dry_run=dry_run, on_applied=on_applied)
