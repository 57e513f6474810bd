"""Schema introspection for reflected tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import inspect

from tableforge.errors import TableForgeError
from tableforge.persistence.database import Database

SUPPORTED_DIALECTS = ("mysql", "sqlite", "postgresql")


@dataclass
class RelationColumn:
    """A relational column as described by the column metadata.

    Attributes:
        name: Column name on the parent table
        ui: UI hint (e.g. "translation", "one_to_many")
        ui_options: Options for the UI hint
    """

    name: str
    ui: str | None = None
    ui_options: dict[str, Any] = field(default_factory=dict)


class SchemaInspector:
    """Reads table structure from the live database."""

    def __init__(self, db: Database):
        dialect = db.dialect_name
        if dialect not in SUPPORTED_DIALECTS:
            raise TableForgeError(f"Unknown/Unsupported database: {dialect}")
        self.db = db

    def columns(self, table: str) -> list[str]:
        return [col["name"] for col in inspect(self.db.engine).get_columns(table)]

    def primary_key(self, table: str, default: str = "id") -> str:
        """First primary key column of ``table`` (``default`` if none)."""
        constraint = inspect(self.db.engine).get_pk_constraint(table)
        columns = constraint.get("constrained_columns") or []
        return columns[0] if columns else default

    def has_table(self, table: str) -> bool:
        return inspect(self.db.engine).has_table(table)
