"""Type definitions for access control."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

ACTIONS = ("view", "add", "edit", "delete", "alter")


def _csv_set(value: Any) -> frozenset[str]:
    if not value:
        return frozenset()
    if isinstance(value, str):
        return frozenset(part.strip() for part in value.split(",") if part.strip())
    return frozenset(str(part) for part in value)


@dataclass(frozen=True)
class PrivilegeSet:
    """Per-table permissions granted to a group.

    Attributes:
        table_name: Table the privileges apply to
        allow_view / allow_add / allow_edit / allow_delete / allow_alter: Action flags
        read_field_blacklist: Fields hidden from reads
        write_field_blacklist: Fields that may not be written
    """

    table_name: str
    allow_view: bool = False
    allow_add: bool = False
    allow_edit: bool = False
    allow_delete: bool = False
    allow_alter: bool = False
    read_field_blacklist: frozenset[str] = field(default_factory=frozenset)
    write_field_blacklist: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> PrivilegeSet:
        """Create from a privileges table row (flags stored as 0/1)."""
        return cls(
            table_name=row["table_name"],
            allow_view=bool(row.get("allow_view")),
            allow_add=bool(row.get("allow_add")),
            allow_edit=bool(row.get("allow_edit")),
            allow_delete=bool(row.get("allow_delete")),
            allow_alter=bool(row.get("allow_alter")),
            read_field_blacklist=_csv_set(row.get("read_field_blacklist")),
            write_field_blacklist=_csv_set(row.get("write_field_blacklist")),
        )

    def allows(self, action: str) -> bool:
        if action not in ACTIONS:
            raise ValueError(f"Unknown privilege action: {action}")
        return getattr(self, f"allow_{action}")


@dataclass(frozen=True)
class AclSnapshot:
    """Immutable permission state for one request.

    ``group_privileges`` is None when no user is authenticated or the
    session's user no longer exists. Every check then fails (default-deny).

    Attributes:
        owner_columns_by_table: Column recording the creating user, per table
        group_privileges: Privileges of the current user's group, per table
        current_user_id: Authenticated user's id, if any
        current_group_id: Authenticated user's group, if any
    """

    owner_columns_by_table: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    group_privileges: Mapping[str, PrivilegeSet] | None = None
    current_user_id: Any = None
    current_group_id: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "owner_columns_by_table", MappingProxyType(dict(self.owner_columns_by_table))
        )
        if self.group_privileges is not None:
            object.__setattr__(
                self, "group_privileges", MappingProxyType(dict(self.group_privileges))
            )

    @property
    def has_privileges(self) -> bool:
        return self.group_privileges is not None

    def privileges_for(self, table: str) -> PrivilegeSet | None:
        if self.group_privileges is None:
            return None
        return self.group_privileges.get(table)

    def can(self, table: str, action: str) -> bool:
        privileges = self.privileges_for(table)
        return privileges is not None and privileges.allows(action)

    def owner_column(self, table: str) -> str | None:
        return self.owner_columns_by_table.get(table)

    def is_owner(self, table: str, row: Mapping[str, Any]) -> bool:
        """Whether the current user created ``row`` (per the table's owner column)."""
        column = self.owner_column(table)
        if column is None or self.current_user_id is None:
            return False
        return row.get(column) == self.current_user_id

    def readable_fields(self, table: str, fields: Iterable[str]) -> list[str]:
        privileges = self.privileges_for(table)
        if privileges is None or not privileges.allow_view:
            return []
        return [f for f in fields if f not in privileges.read_field_blacklist]

    def writable_fields(self, table: str, fields: Iterable[str]) -> list[str]:
        privileges = self.privileges_for(table)
        if privileges is None or not (privileges.allow_add or privileges.allow_edit):
            return []
        return [f for f in fields if f not in privileges.write_field_blacklist]
