"""Database access through SQLAlchemy Core.

Tables are reflected on first use, so the schema itself is owned by the
application's migrations rather than by this module.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from sqlalchemy import MetaData, Table, and_, create_engine, delete, insert, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from tableforge.errors import DatabaseConnectionError, TableForgeError
from tableforge.persistence.config import DatabaseConfig

logger = logging.getLogger(__name__)


class ResultSet:
    """Rows returned by a select.

    Filters may replace the rows in place with ``initialize``; whoever
    holds the result set then sees the new rows.
    """

    def __init__(self, rows: Iterable[dict[str, Any]] = ()):
        self._rows: list[dict[str, Any]] = [dict(r) for r in rows]

    def initialize(self, rows: Iterable[dict[str, Any]]) -> None:
        self._rows = list(rows)

    def to_list(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._rows]

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, index: int) -> dict[str, Any]:
        return self._rows[index]

    def __repr__(self) -> str:
        return f"ResultSet({self._rows!r})"


class Database:
    """Connection to the application database."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine: Engine | None = None
        self._metadata = MetaData()
        self._tables: dict[str, Table] = {}

    def connect(self) -> None:
        """Create the engine and verify the database is reachable.

        Raises:
            DatabaseConnectionError: With a generic message; the driver
                error is logged and chained
        """
        try:
            engine = create_engine(self.config.sqlalchemy_url)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("Database connection failed: %s", e)
            raise DatabaseConnectionError() from e
        except ImportError as e:
            logger.error("Database driver unavailable: %s", e)
            raise DatabaseConnectionError() from e
        self.engine = engine

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
        self._tables.clear()
        self._metadata = MetaData()

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @property
    def _engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("Database not connected")
        return self.engine

    def table(self, name: str) -> Table:
        """Reflected table object for ``name``."""
        if name not in self._tables:
            try:
                self._tables[name] = Table(name, self._metadata, autoload_with=self._engine)
            except NoSuchTableError:
                raise TableForgeError(f"Unknown table: {name}") from None
        return self._tables[name]

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Run a raw statement (DDL, maintenance) and commit."""
        with self._engine.connect() as conn:
            conn.execute(text(sql), params or {})
            conn.commit()
        # Reflected definitions may be stale after DDL
        self._tables.clear()
        self._metadata = MetaData()

    def select(
        self,
        table: str,
        where: dict[str, Any] | None = None,
        in_: dict[str, Iterable[Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows matching equality (``where``) and membership (``in_``) filters."""
        tbl = self.table(table)
        stmt = select(tbl)
        clause = self._where(tbl, where, in_)
        if clause is not None:
            stmt = stmt.where(clause)

        with self._engine.connect() as conn:
            return [dict(row) for row in conn.execute(stmt).mappings()]

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row; returns it with generated primary key values filled in."""
        tbl = self.table(table)
        values = {k: v for k, v in row.items() if k in tbl.c}

        with self._engine.connect() as conn:
            result = conn.execute(insert(tbl).values(**values))
            conn.commit()
            inserted_pk = result.inserted_primary_key or ()

        created = dict(values)
        for column, value in zip(tbl.primary_key.columns, inserted_pk):
            if created.get(column.name) is None:
                created[column.name] = value
        return created

    def update(self, table: str, values: dict[str, Any], where: dict[str, Any]) -> int:
        """Update matching rows; returns the affected row count."""
        tbl = self.table(table)
        values = {k: v for k, v in values.items() if k in tbl.c}
        if not values:
            return 0

        stmt = update(tbl).values(**values)
        clause = self._where(tbl, where)
        if clause is not None:
            stmt = stmt.where(clause)

        with self._engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
            return result.rowcount

    def delete(self, table: str, where: dict[str, Any]) -> int:
        tbl = self.table(table)
        stmt = delete(tbl)
        clause = self._where(tbl, where)
        if clause is not None:
            stmt = stmt.where(clause)

        with self._engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
            return result.rowcount

    def _where(
        self,
        tbl: Table,
        where: dict[str, Any] | None,
        in_: dict[str, Iterable[Any]] | None = None,
    ):
        conditions = []
        for column, value in (where or {}).items():
            if column not in tbl.c:
                raise TableForgeError(f"Unknown column {tbl.name}.{column}")
            conditions.append(tbl.c[column] == value)
        for column, values in (in_ or {}).items():
            if column not in tbl.c:
                raise TableForgeError(f"Unknown column {tbl.name}.{column}")
            conditions.append(tbl.c[column].in_(list(values)))
        if not conditions:
            return None
        return and_(*conditions)
