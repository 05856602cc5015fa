"""Boundary operations consumed by a UI or IPC layer."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from .config import AppConfig, ConnectionStore
from .connections import ConnectionManager
from .ddl import build_create_table, build_drop_table, build_rename_table
from .dialects import default_adapters
from .models import (
    ColumnDraft,
    DeleteResult,
    Dialect,
    ForeignKeyRef,
    ForeignKeyRows,
    QueryFilter,
    QueryResult,
    SortDirection,
    SqlStatement,
    TableSchemaColumn,
    find_column,
)
from .query import build_delete, build_foreign_key_lookup, build_insert, build_select, build_update
from .statements import target_table

LOG = logging.getLogger(__name__)

MAX_FOREIGN_KEY_PREVIEW = 50

FilterInput = QueryFilter | Mapping[str, Any]


class DatabaseService:
    """Connection lifecycle, browsing, editing and table management by connection id.

    Every method takes the id of a stored connection. Query-surface calls on an
    id without a live session raise :class:`~dbrowse.errors.NotConnectedError`.
    """

    def __init__(
        self,
        store: ConnectionStore,
        manager: ConnectionManager | None = None,
        *,
        page_size: int = 100,
        foreign_key_preview_limit: int = 5,
    ) -> None:
        self._store = store
        self._manager = manager or ConnectionManager()
        self._page_size = page_size
        self._foreign_key_preview_limit = foreign_key_preview_limit

    @classmethod
    def from_config(cls, config: AppConfig) -> DatabaseService:
        adapters = default_adapters(
            pool_max_size=config.pool_max_size,
            connect_timeout=config.connect_timeout,
        )
        return cls(
            ConnectionStore(config),
            ConnectionManager(adapters),
            page_size=config.page_size,
            foreign_key_preview_limit=config.foreign_key_preview_limit,
        )

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    # Lifecycle -----------------------------------------------------------

    async def connect(self, connection_id: str) -> None:
        config = self._store.get(connection_id)
        await self._manager.connect(config)

    async def disconnect(self, connection_id: str) -> None:
        await self._manager.disconnect(connection_id)

    async def disconnect_all(self) -> None:
        await self._manager.disconnect_all()

    def is_connected(self, connection_id: str) -> bool:
        return self._manager.is_connected(connection_id)

    # Browsing ------------------------------------------------------------

    async def list_tables(self, connection_id: str) -> list[str]:
        return await self._manager.list_tables(connection_id)

    async def execute_query(self, connection_id: str, sql: str) -> QueryResult:
        if not sql.strip():
            raise ValueError("Provide SQL to execute.")
        return await self._manager.execute_query(connection_id, sql)

    async def get_table_schema(self, connection_id: str, table: str) -> list[TableSchemaColumn]:
        return await self._manager.get_table_schema(connection_id, table)

    async def get_table_data(
        self,
        connection_id: str,
        table: str,
        *,
        limit: int | None = None,
        offset: int = 0,
        filters: Sequence[FilterInput] = (),
        order_by: str | None = None,
        direction: SortDirection | str | None = None,
    ) -> QueryResult:
        """One page of ``table`` with optional filters and sorting."""

        limit = self._page_size if limit is None else limit
        if limit <= 0:
            raise ValueError("limit must be positive")
        if offset < 0:
            raise ValueError("offset must not be negative")
        session = self._manager.require(connection_id)
        schema = await self.get_table_schema(connection_id, table)
        statement = build_select(
            session.adapter,
            table,
            schema,
            limit=limit,
            offset=offset,
            filters=[_as_filter(item) for item in filters],
            order_by=order_by,
            direction=direction,
        )
        return await self._run(connection_id, statement)

    async def get_foreign_key_rows(
        self,
        connection_id: str,
        reference: ForeignKeyRef | Mapping[str, str],
        value: str,
        limit: int | None = None,
    ) -> ForeignKeyRows:
        """Preview rows of the referenced table whose key equals ``value``."""

        limit = self._foreign_key_preview_limit if limit is None else limit
        if not 1 <= limit <= MAX_FOREIGN_KEY_PREVIEW:
            raise ValueError(f"limit must be between 1 and {MAX_FOREIGN_KEY_PREVIEW}")
        if not isinstance(reference, ForeignKeyRef):
            reference = ForeignKeyRef(table=reference["table"], column=reference["column"])
        if not str(value).strip():
            return ForeignKeyRows(rows=(), has_more=False)

        session = self._manager.require(connection_id)
        schema = await self.get_table_schema(connection_id, reference.table)
        column = find_column(schema, reference.column)
        statement = build_foreign_key_lookup(session.adapter, reference, column, str(value), limit)
        result = await self._run(connection_id, statement)
        return ForeignKeyRows(rows=result.rows[:limit], has_more=len(result.rows) > limit)

    def resolve_query_table(self, connection_id: str, sql: str) -> str | None:
        """Table a raw statement targets, for refreshing views after it ran."""

        session = self._manager.session(connection_id)
        dialect = session.dialect if session is not None else Dialect.POSTGRES
        return target_table(sql, dialect.value)

    # Editing -------------------------------------------------------------

    async def insert_row(self, connection_id: str, table: str, values: Mapping[str, str]) -> bool:
        session = self._manager.require(connection_id)
        schema = await self.get_table_schema(connection_id, table)
        await self._run(connection_id, build_insert(session.adapter, table, schema, values))
        return True

    async def update_row(
        self,
        connection_id: str,
        table: str,
        values: Mapping[str, str],
        original_row: Mapping[str, Any],
    ) -> bool:
        session = self._manager.require(connection_id)
        schema = await self.get_table_schema(connection_id, table)
        statement = build_update(session.adapter, table, schema, values, original_row)
        result = await self._run(connection_id, statement)
        if result.row_count == 0:
            LOG.warning("Update matched no rows", extra={"connection_id": connection_id, "table": table})
        return True

    async def delete_rows(
        self,
        connection_id: str,
        table: str,
        rows: Sequence[Mapping[str, Any]],
    ) -> DeleteResult:
        """Delete each snapshot with its own statement.

        No transaction spans the batch: when a statement fails, the rows
        deleted before it stay deleted and the error propagates.
        """

        session = self._manager.require(connection_id)
        if not rows:
            return DeleteResult(success=True, deleted_count=0)
        schema = await self.get_table_schema(connection_id, table)
        statements = [build_delete(session.adapter, table, schema, row) for row in rows]
        for done, statement in enumerate(statements):
            try:
                await self._run(connection_id, statement)
            except Exception:
                LOG.warning(
                    "Bulk delete stopped early",
                    extra={"connection_id": connection_id, "table": table, "deleted": done},
                )
                raise
        return DeleteResult(success=True, deleted_count=len(rows))

    # Table management ----------------------------------------------------

    async def create_table(self, connection_id: str, table: str, columns: Sequence[ColumnDraft]) -> None:
        session = self._manager.require(connection_id)
        await self._execute_ddl(connection_id, build_create_table(session.dialect, table, columns))

    async def rename_table(self, connection_id: str, table: str, new_name: str) -> None:
        session = self._manager.require(connection_id)
        await self._execute_ddl(connection_id, build_rename_table(session.dialect, table, new_name))

    async def drop_table(self, connection_id: str, table: str, *, cascade: bool = False) -> None:
        session = self._manager.require(connection_id)
        await self._execute_ddl(connection_id, build_drop_table(session.dialect, table, cascade=cascade))

    async def _execute_ddl(self, connection_id: str, sql: str) -> None:
        LOG.info("Executing DDL", extra={"connection_id": connection_id, "sql": sql})
        await self._manager.execute_query(connection_id, sql)

    async def _run(self, connection_id: str, statement: SqlStatement) -> QueryResult:
        return await self._manager.execute_statement(connection_id, statement)


def _as_filter(item: FilterInput) -> QueryFilter:
    if isinstance(item, QueryFilter):
        return item
    return QueryFilter(
        column=item["column"],
        value=str(item.get("value", "")),
        operator=item.get("operator", "contains"),
    )


__all__ = ["DatabaseService", "MAX_FOREIGN_KEY_PREVIEW"]
