"""Persistence layer - database access and table gateways."""

from tableforge.persistence.config import DatabaseConfig
from tableforge.persistence.database import Database, ResultSet
from tableforge.persistence.gateway import (
    PrivilegesGateway,
    RelationalTableGateway,
    SettingsGateway,
    TableGateway,
    TablesGateway,
    UsersGateway,
)
from tableforge.persistence.schema import RelationColumn, SchemaInspector

__all__ = [
    "Database",
    "DatabaseConfig",
    "PrivilegesGateway",
    "RelationColumn",
    "RelationalTableGateway",
    "ResultSet",
    "SchemaInspector",
    "SettingsGateway",
    "TableGateway",
    "TablesGateway",
    "UsersGateway",
]
