"""Backend adapter interface implemented once per target system."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .models import CanonicalUser, DesiredState, ProviderUser, RoleCatalogEntry


class Backend(ABC):
    """Each backend overrides the user operations and declares ``name``."""

    name: str = ""

    def connect(self) -> None:
        """Acquire credentials before the first call. May raise AuthError."""

    def select_desired(self, desired: DesiredState) -> DesiredState:
        """Restrict the desired state to the users this backend manages."""
        return desired

    @abstractmethod
    def fetch_actual_users(self) -> List[ProviderUser]:
        """Return every identity currently managed by the backend."""

    @abstractmethod
    def resolve_identifier(self, username: str) -> Optional[ProviderUser]:
        """Look up a single identity by username."""

    @abstractmethod
    def create(self, user: CanonicalUser) -> None:
        ...

    @abstractmethod
    def update(self, provider_user: ProviderUser, user: CanonicalUser) -> None:
        """Overwrite the backend record with the full desired record."""

    @abstractmethod
    def delete(self, provider_user: ProviderUser) -> None:
        ...


class RoleCatalogBackend(Backend):
    """Backend with a provider-wide catalog of named roles."""

    @abstractmethod
    def fetch_role_catalog(self) -> List[RoleCatalogEntry]:
        ...

    @abstractmethod
    def create_role(self, name: str) -> None:
        ...

    @abstractmethod
    def fetch_user_roles(self, provider_user: ProviderUser) -> List[RoleCatalogEntry]:
        ...

    @abstractmethod
    def assign_roles(
        self,
        provider_user: ProviderUser,
        add: Sequence[RoleCatalogEntry],
        remove: Sequence[RoleCatalogEntry],
    ) -> None:
        """Add and/or remove role assignments; empty sequences mean no call."""
