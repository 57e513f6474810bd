"""Table gateways.

A gateway runs one table's queries and routes them through the hook
emitter:

- writes apply ``table.<verb>:before`` filters (generic, then table
  specific) to the row, persist it, then run the ``table.<verb>`` and
  ``table.<verb>:after`` actions
- selects apply the ``table.select`` filter, then the table specific
  ``table.<table>.select`` filter, to a payload carrying the result set
"""

from __future__ import annotations

import logging
from typing import Any

from tableforge.config import DEFAULT_TABLES
from tableforge.hooks.emitter import HookEmitter
from tableforge.hooks.events import AFTER, BEFORE, LOAD_RELATIONAL_ONETOMANY, table_events
from tableforge.hooks.types import Payload
from tableforge.persistence.database import Database, ResultSet
from tableforge.persistence.schema import RelationColumn

logger = logging.getLogger(__name__)


class TableGateway:
    """Hook-aware access to a single table."""

    def __init__(self, table: str, db: Database, emitter: HookEmitter | None = None):
        self.table = table
        self.db = db
        self.emitter = emitter

    def select(
        self,
        where: dict[str, Any] | None = None,
        in_: dict[str, list[Any]] | None = None,
    ) -> ResultSet:
        select_state = {"table": self.table, "where": dict(where or {}), "in": dict(in_ or {})}
        result = ResultSet(self.db.select(self.table, where, in_))

        if self.emitter is None:
            return result

        payload = Payload(table_name=self.table, select_state=select_state, result=result)
        for event in table_events("select", self.table):
            payload = self.emitter.apply(event, payload)
        return payload.result

    def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        data = self._before("insert", dict(row))
        created = self.db.insert(self.table, data)
        self._after("insert", created)
        return created

    def update(self, row: dict[str, Any], where: dict[str, Any]) -> int:
        data = self._before("update", dict(row), where=dict(where))
        count = self.db.update(self.table, data, where)
        self._after("update", {**data, **where})
        return count

    def delete(self, where: dict[str, Any]) -> int:
        data = self._before("delete", dict(where))
        count = self.db.delete(self.table, data)
        self._after("delete", data)
        return count

    def _before(self, verb: str, data: dict[str, Any], **extra: Any) -> dict[str, Any]:
        if self.emitter is None:
            return data
        payload = Payload(table_name=self.table, data=data, **extra)
        for event in table_events(verb, self.table, BEFORE):
            payload = self.emitter.apply(event, payload)
        return payload.data

    def _after(self, verb: str, data: dict[str, Any]) -> None:
        if self.emitter is None:
            return
        for event in table_events(verb, self.table) + table_events(verb, self.table, AFTER):
            self.emitter.run(event, data)


class RelationalTableGateway(TableGateway):
    """Gateway with relational loading helpers."""

    def load_items(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Load rows using a filter spec.

        Example:
            gateway.load_items({"filters": {"id": {"in": [1, 2]}, "status": 1}})
        """
        where: dict[str, Any] = {}
        in_: dict[str, list[Any]] = {}
        for column, condition in ((params or {}).get("filters") or {}).items():
            if isinstance(condition, dict) and "in" in condition:
                in_[column] = list(condition["in"])
            else:
                where[column] = condition
        return self.select(where=where, in_=in_).to_list()

    def load_one_to_many(self, column: RelationColumn, rows: list[dict[str, Any]]) -> dict[str, Any]:
        """Wrap one-to-many rows and run them through the relational filters.

        Returns:
            ``{"data": rows}``, possibly re-keyed by the filters
        """
        data = {"data": list(rows)}
        if self.emitter is None:
            return data
        payload = Payload(table_name=self.table, column=column, data=data)
        payload = self.emitter.apply(LOAD_RELATIONAL_ONETOMANY, payload)
        return payload.data


class TablesGateway(TableGateway):
    """Table definitions (one row per managed table)."""

    def __init__(self, db: Database, emitter: HookEmitter | None = None, table: str | None = None):
        super().__init__(table or DEFAULT_TABLES["tables"], db, emitter)

    def owner_columns(self) -> dict[str, str]:
        """Map of table name to its non-empty owner column."""
        owners = {}
        for record in self.select():
            column = record.get("user_create_column")
            if column:
                owners[record["table_name"]] = column
        return owners


class UsersGateway(RelationalTableGateway):
    def __init__(self, db: Database, emitter: HookEmitter | None = None, table: str | None = None):
        super().__init__(table or DEFAULT_TABLES["users"], db, emitter)

    def find(self, user_id: Any) -> dict[str, Any] | None:
        rows = self.select(where={"id": user_id})
        return dict(rows[0]) if len(rows) else None


class PrivilegesGateway(TableGateway):
    """Group privilege rows, one per (group, table)."""

    def __init__(self, db: Database, emitter: HookEmitter | None = None, table: str | None = None):
        super().__init__(table or DEFAULT_TABLES["privileges"], db, emitter)

    def get_group_privileges(self, group_id: Any) -> dict[str, dict[str, Any]]:
        """Privilege rows for a group keyed by table name."""
        return {row["table_name"]: dict(row) for row in self.select(where={"group_id": group_id})}

    def insert_privilege(self, privilege: dict[str, Any]) -> dict[str, Any]:
        return self.insert(privilege)


class SettingsGateway(TableGateway):
    def __init__(self, db: Database, emitter: HookEmitter | None = None, table: str | None = None):
        super().__init__(table or DEFAULT_TABLES["settings"], db, emitter)

    def fetch_collection(self, collection: str, keys: list[str] | None = None) -> dict[str, Any]:
        """Settings of one collection as ``{name: value}``, optionally limited to ``keys``."""
        rows = self.select(where={"collection": collection})
        settings = {row["name"]: row["value"] for row in rows}
        if keys is not None:
            settings = {k: v for k, v in settings.items() if k in keys}
        return settings
