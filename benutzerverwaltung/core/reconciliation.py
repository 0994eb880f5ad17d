"""Diff desired against actual identities and apply the result.

The plan is a partition by identifier:

    to_create  desired users without a backend counterpart
    to_update  (backend user, desired user) pairs, full overwrite, no field diff
    to_delete  backend users absent from the desired state

Apply order is always creates, updates, deletes so that access is extended
before anything is revoked. Operations run one user at a time; the first
failure propagates immediately and nothing already applied is rolled back.
"""
from __future__ import annotations
import logging
from typing import Callable, Iterable, Optional, Set

from .backend import Backend
from .models import DesiredState, ProviderUser, ReconciliationPlan

logger = logging.getLogger(__name__)

AppliedCallback = Callable[[str, str], None]


def build_plan(desired: DesiredState, actual: Iterable[ProviderUser]) -> ReconciliationPlan:
    """Partition ``desired`` and ``actual`` into create/update/delete sets."""
    plan = ReconciliationPlan()
    matched: Set[str] = set()

    for provider_user in actual:
        user = desired.get(provider_user.identifier)
        if user is None:
            plan.to_delete.append(provider_user)
        else:
            matched.add(provider_user.identifier)
            plan.to_update.append((provider_user, user))

    plan.to_create = [user for identifier, user in desired.items() if identifier not in matched]
    return plan


def _notify(on_applied: Optional[AppliedCallback], operation: str, identifier: str) -> None:
    if on_applied is not None:
        on_applied(operation, identifier)


def apply_creates(backend: Backend, plan: ReconciliationPlan, on_applied: Optional[AppliedCallback] = None) -> None:
    for user in plan.to_create:
        backend.create(user)
        logger.info("[%s] Created user '%s'", backend.name, user.identifier)
        _notify(on_applied, "create", user.identifier)


def apply_updates(backend: Backend, plan: ReconciliationPlan, on_applied: Optional[AppliedCallback] = None) -> None:
    for provider_user, user in plan.to_update:
        backend.update(provider_user, user)
        logger.debug("[%s] Updated user '%s'", backend.name, user.identifier)
        _notify(on_applied, "update", user.identifier)


def apply_deletes(backend: Backend, plan: ReconciliationPlan, on_applied: Optional[AppliedCallback] = None) -> None:
    for provider_user in plan.to_delete:
        backend.delete(provider_user)
        logger.info("[%s] Deleted user '%s'", backend.name, provider_user.identifier)
        _notify(on_applied, "delete", provider_user.identifier)


def apply_plan(backend: Backend, plan: ReconciliationPlan, on_applied: Optional[AppliedCallback] = None) -> None:
    """Apply a plan in creates -> updates -> deletes order."""
    apply_creates(backend, plan, on_applied)
    apply_updates(backend, plan, on_applied)
    apply_deletes(backend, plan, on_applied)
