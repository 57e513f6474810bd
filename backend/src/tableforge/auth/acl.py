"""Builds the per-request permission snapshot."""

from __future__ import annotations

import logging
from typing import Any

from tableforge.auth.session import Session
from tableforge.auth.types import AclSnapshot, PrivilegeSet
from tableforge.config import DEFAULT_TABLES
from tableforge.persistence.database import Database
from tableforge.persistence.gateway import PrivilegesGateway, TablesGateway, UsersGateway

logger = logging.getLogger(__name__)


class AccessControlBuilder:
    """Loads owner columns and group privileges into an AclSnapshot.

    Build one snapshot per request. A snapshot is never updated in place,
    so switching users means building again.
    """

    def __init__(self, tables: dict[str, str] | None = None):
        self.tables = {**DEFAULT_TABLES, **(tables or {})}

    def build(self, db: Database, session: Session) -> AclSnapshot:
        """Build the snapshot for ``session``.

        Steps:
        1. Load every table definition and collect non-empty owner columns
        2. If a user is logged in and their row exists, load the privileges
           of their group

        A session pointing at a missing user yields a snapshot without
        group privileges, which denies everything.
        """
        owner_columns = TablesGateway(db, table=self.tables["tables"]).owner_columns()

        if not session.is_logged_in():
            return AclSnapshot(owner_columns_by_table=owner_columns)

        user_id = session.user_id
        user = UsersGateway(db, table=self.tables["users"]).find(user_id)
        if user is None:
            logger.warning("ACL: session user %s not found, denying all", user_id)
            return AclSnapshot(owner_columns_by_table=owner_columns, current_user_id=user_id)

        group_id = user.get("group")
        return AclSnapshot(
            owner_columns_by_table=owner_columns,
            group_privileges=self.load_group_privileges(db, group_id),
            current_user_id=user_id,
            current_group_id=group_id,
        )

    def load_group_privileges(self, db: Database, group_id: Any) -> dict[str, PrivilegeSet]:
        rows = PrivilegesGateway(db, table=self.tables["privileges"]).get_group_privileges(group_id)
        return {table: PrivilegeSet.from_row(row) for table, row in rows.items()}
