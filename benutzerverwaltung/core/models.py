"""Value types flowing through the convergence engine.

Table side:
    ColumnSchema (TextColumn | SelectionColumn) + RawRow -> DecodedRow of CellValue

User side:
    CanonicalUser (desired) vs ProviderUser (actual) -> ReconciliationPlan

Role side:
    RoleCatalogEntry, RoleAssignment
"""
from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


# ─────────────────────────────────────────────────────────────────────────────
# Table schema
# ─────────────────────────────────────────────────────────────────────────────

class SelectionSubtype(enum.Enum):
    SINGLE = "single"
    MULTI = "multi"
    CHECK = "check"


@dataclass(frozen=True)
class SelectionOption:
    id: int
    label: str


@dataclass(frozen=True)
class TextColumn:
    id: int
    title: str


@dataclass(frozen=True)
class SelectionColumn:
    id: int
    title: str
    subtype: SelectionSubtype
    options: Tuple[SelectionOption, ...] = ()

    def label_for(self, option_id: int) -> Optional[str]:
        """Return the label of the option with the given id, if any."""
        for option in self.options:
            if option.id == option_id:
                return option.label
        return None


Column = Union[TextColumn, SelectionColumn]
ColumnSchema = Tuple[Column, ...]


@dataclass(frozen=True)
class RawCell:
    """One undecoded cell; ``value`` is the JSON payload as received."""
    column_id: int
    value: Any


RawRow = Tuple[RawCell, ...]


# ─────────────────────────────────────────────────────────────────────────────
# Decoded cells
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StringCell:
    value: str


@dataclass(frozen=True)
class BoolCell:
    value: bool


@dataclass(frozen=True)
class ListCell:
    value: Tuple[str, ...]


CellValue = Union[StringCell, BoolCell, ListCell]
DecodedRow = Dict[str, CellValue]


# ─────────────────────────────────────────────────────────────────────────────
# Users
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CanonicalUser:
    """Desired-state record; ``identifier`` is the key across all backends."""
    identifier: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    matrix_id: Optional[str] = None
    roles: Tuple[str, ...] = ()
    enabled: bool = True

    def has_role(self, role: str) -> bool:
        return role in self.roles


DesiredState = Dict[str, CanonicalUser]


@dataclass(frozen=True)
class ProviderUser:
    """Actual-state record as seen by one backend."""
    provider_id: Union[str, int]
    identifier: str
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)


@dataclass
class ReconciliationPlan:
    to_create: List[CanonicalUser] = field(default_factory=list)
    to_update: List[Tuple[ProviderUser, CanonicalUser]] = field(default_factory=list)
    to_delete: List[ProviderUser] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)

    def summary(self) -> Dict[str, int]:
        return {
            "create": len(self.to_create),
            "update": len(self.to_update),
            "delete": len(self.to_delete),
        }


# ─────────────────────────────────────────────────────────────────────────────
# Roles
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RoleCatalogEntry:
    provider_role_id: Union[str, int]
    name: str


@dataclass
class RoleAssignment:
    roles_to_add: List[RoleCatalogEntry] = field(default_factory=list)
    roles_to_remove: List[RoleCatalogEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.roles_to_add or self.roles_to_remove)
