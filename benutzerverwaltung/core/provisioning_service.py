"""
Provisioning Service Layer: one convergence pass over every configured backend

Architecture:
    users file ──────┐
                     ├──> desired state ──> keycloak ──> authentik ──> gitlab
    Nextcloud table ─┘

Per backend:
    connect -> scope desired state -> fetch actual users -> plan
    -> creates -> updates -> role sync (role-capable backends) -> deletes

Backends run strictly one after another. The first failure aborts the run:
the failing backend is logged (and audited), the exception propagates, and
the remaining backends are not touched.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config.settings import Settings
from . import audit
from .authentik import AuthentikBackend
from .backend import Backend, RoleCatalogBackend
from .errors import ProvisioningError
from .gitlab import GitLabBackend
from .keycloak import KeycloakBackend
from .models import DesiredState, ReconciliationPlan
from .reconciliation import apply_creates, apply_deletes, apply_updates, build_plan
from .role_sync import synchronize_roles
from .user_source import load_desired_state

logger = logging.getLogger(__name__)

_AUDIT_EVENTS: Dict[str, audit.EventType] = {
    "create": "user_create",
    "update": "user_update",
    "delete": "user_delete",
    "role_create": "role_create",
    "role_assign": "role_assign",
}


class AuditRecorder:
    """Callback writing every applied operation of one backend to the audit trail."""

    def __init__(self, backend: str, operator: str = "automation", log_dir: Optional[Path] = None):
        self.backend = backend
        self.operator = operator
        self.log_dir = log_dir

    def __call__(self, operation: str, identifier: str) -> None:
        audit.safe_log_provisioning_event(
            _AUDIT_EVENTS[operation],
            identifier,
            backend=self.backend,
            operator=self.operator,
            log_dir=self.log_dir,
        )

    def failure(self, error: Exception) -> None:
        audit.safe_log_provisioning_event(
            "backend_failure",
            "",
            backend=self.backend,
            operator=self.operator,
            details={"error": str(error)},
            success=False,
            log_dir=self.log_dir,
        )


def build_backends(settings: Settings) -> List[Backend]:
    """Instantiate the configured backends in their fixed run order."""
    backends: List[Backend] = []
    if settings.keycloak:
        backends.append(KeycloakBackend(settings.keycloak))
    if settings.authentik:
        backends.append(AuthentikBackend(settings.authentik))
    if settings.gitlab:
        backends.append(GitLabBackend(settings.gitlab))
    return backends


def reconcile_backend(
    backend: Backend,
    desired: DesiredState,
    *,
    dry_run: bool = False,
    on_applied: Optional[Callable[[str, str], None]] = None,
) -> ReconciliationPlan:
    """Converge one backend towards the desired state.

    Returns:
        The plan that was applied (or, in dry-run mode, would have been)
    """
    backend.connect()
    scoped = backend.select_desired(desired)
    actual = backend.fetch_actual_users()
    plan = build_plan(scoped, actual)
    logger.info("[%s] Plan: %s", backend.name, plan.summary())

    if dry_run:
        for user in plan.to_create:
            logger.info("[%s] Would create '%s'", backend.name, user.identifier)
        for provider_user in plan.to_delete:
            logger.info("[%s] Would delete '%s'", backend.name, provider_user.identifier)
        if isinstance(backend, RoleCatalogBackend):
            synchronize_roles(backend, scoped, plan, dry_run=True)
        return plan

    apply_creates(backend, plan, on_applied)
    apply_updates(backend, plan, on_applied)
    if isinstance(backend, RoleCatalogBackend):
        synchronize_roles(backend, scoped, plan, on_applied=on_applied)
    apply_deletes(backend, plan, on_applied)
    return plan


def run_provisioning(
    settings: Settings,
    *,
    dry_run: bool = False,
    operator: str = "automation",
    desired: Optional[DesiredState] = None,
    backends: Optional[List[Backend]] = None,
) -> Dict[str, ReconciliationPlan]:
    """Load the desired state once and reconcile every configured backend.

    Raises:
        ProvisioningError: From the user source or the first failing backend
    """
    if desired is None:
        desired = load_desired_state(settings)
    if backends is None:
        backends = build_backends(settings)
    if not backends:
        logger.warning("[provisioning] No backend configured, nothing to do")

    log_dir = Path(settings.audit.directory) if settings.audit.directory else None
    plans: Dict[str, ReconciliationPlan] = {}
    for backend in backends:
        recorder = AuditRecorder(backend.name, operator, log_dir) if settings.audit.enabled and not dry_run else None
        logger.info("[provisioning] Reconciling %s (%d desired user(s))", backend.name, len(desired))
        try:
            plans[backend.name] = reconcile_backend(backend, desired, dry_run=dry_run, on_applied=recorder)
        except ProvisioningError as exc:
            logger.error("[provisioning] %s failed: %s", backend.name, exc)
            if recorder is not None:
                recorder.failure(exc)
            raise
    return plans
