"""SQLite adapter backed by aiosqlite."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import aiosqlite

from ..models import Dialect, QueryResult, TableSchemaColumn
from ..quoting import quote_identifier
from .base import Stopwatch, foreign_key_map, text

LOG = logging.getLogger(__name__)


class SQLiteAdapter:
    dialect = Dialect.SQLITE

    _TABLES_QUERY = (
        "SELECT name FROM sqlite_master "
        "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' "
        "ORDER BY name"
    )

    def __init__(self, *, connect_timeout: float = 10.0) -> None:
        self._connect_timeout = connect_timeout

    def placeholder(self, index: int, value: Any = None) -> str:
        return "?"

    def adapt_param(self, value: Any, original: Any, type_name: str) -> Any:
        return value

    async def connect(self, config: Any) -> aiosqlite.Connection:
        LOG.info("Opening SQLite database", extra={"file_path": config.file_path})
        # isolation_level=None keeps every statement in autocommit mode.
        conn = await aiosqlite.connect(
            config.file_path,
            timeout=self._connect_timeout,
            isolation_level=None,
        )
        try:
            async with conn.execute("SELECT 1") as cursor:
                await cursor.fetchall()
        except Exception:
            await conn.close()
            raise
        return conn

    async def disconnect(self, client: aiosqlite.Connection) -> None:
        await client.close()

    async def list_tables(self, client: aiosqlite.Connection) -> list[str]:
        async with client.execute(self._TABLES_QUERY) as cursor:
            rows = await cursor.fetchall()
        return [text(row[0]) for row in rows]

    async def execute(self, client: aiosqlite.Connection, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        watch = Stopwatch()
        async with client.execute(sql, tuple(params)) as cursor:
            if cursor.description is None:
                affected = cursor.rowcount if cursor.rowcount >= 0 else None
                return QueryResult(row_count=affected, elapsed_ms=watch.elapsed_ms)
            columns = tuple(description[0] for description in cursor.description)
            records = await cursor.fetchall()
        rows = tuple(dict(zip(columns, record)) for record in records)
        return QueryResult(columns=columns, rows=rows, row_count=len(rows), elapsed_ms=watch.elapsed_ms)

    async def get_table_schema(self, client: aiosqlite.Connection, table: str) -> list[TableSchemaColumn]:
        quoted = quote_identifier(self.dialect, table)
        fk_rows = await self._fetch_dicts(client, f"PRAGMA foreign_key_list({quoted})")
        column_rows = await self._fetch_dicts(client, f"PRAGMA table_info({quoted})")
        references = foreign_key_map(fk_rows, column_key="from", table_key="table", target_key="to")
        key_count = sum(1 for row in column_rows if row["pk"])
        columns: list[TableSchemaColumn] = []
        for row in column_rows:
            name = text(row["name"])
            type_name = text(row["type"])
            is_key = bool(row["pk"])
            columns.append(
                TableSchemaColumn(
                    name=name,
                    type=type_name,
                    nullable=not row["notnull"],
                    # Only a lone INTEGER PRIMARY KEY aliases the rowid.
                    auto_increment=is_key and key_count == 1 and type_name.strip().upper() == "INTEGER",
                    primary_key=is_key,
                    foreign_key=references.get(name),
                )
            )
        return columns

    @staticmethod
    async def _fetch_dicts(client: aiosqlite.Connection, sql: str) -> list[dict[str, Any]]:
        async with client.execute(sql) as cursor:
            columns = [description[0] for description in cursor.description or ()]
            records = await cursor.fetchall()
        return [dict(zip(columns, record)) for record in records]


__all__ = ["SQLiteAdapter"]
